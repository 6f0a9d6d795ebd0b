from __future__ import annotations

from typing import Callable, Dict, Optional

import pytest

from callvm.config import EngineConfig, load_config
from callvm.runtime.engine import Engine
from callvm.state.code import CodeRegistry
from callvm.state.storage import StorageView
from callvm.types.hexutil import to_address
from callvm.types.result import TxResult

ALICE = to_address(0xA1)
USER = to_address(0xEE)


def make_engine(codes: Dict[bytes, bytes], *, config: Optional[EngineConfig] = None) -> Engine:
    cfg = config or load_config(env={})
    return Engine(StorageView(), CodeRegistry(codes, max_code_bytes=cfg.limits.max_code_bytes), config=cfg)


@pytest.fixture
def engine_for() -> Callable[..., Engine]:
    """Factory: engine_for({addr: code}, **config_overrides)."""

    def _mk(codes: Dict[bytes, bytes], **overrides) -> Engine:
        return make_engine(codes, config=load_config(env={}, overrides=overrides))

    return _mk


@pytest.fixture
def run_code() -> Callable[..., TxResult]:
    """Install `code` at ALICE in a fresh engine and execute it once."""

    def _run(code: bytes, calldata: bytes = b"", **overrides) -> TxResult:
        eng = make_engine({ALICE: code}, config=load_config(env={}, overrides=overrides))
        return eng.execute(ALICE, calldata, caller=USER)

    return _run
