"""
callvm.runtime.engine — transaction entry point.

    engine = Engine(StorageView(), CodeRegistry({addr: code}))
    ok, out = engine.execute_transaction(addr, calldata)

A transaction is all-or-nothing with respect to storage:

  1. resolve the target's code (NotFound is raised here, before any context
     or checkpoint exists)
  2. open a transaction checkpoint on the journal
  3. create the root context (depth 0) and run it, nested calls included
  4. SUCCESS → release the checkpoint and commit the journal to the base view;
     anything else → roll the checkpoint back
  5. destroy the root context and return its outcome and return data

REVERTED and FAULTED outcomes are reported through the return value, never
raised. An unexpected Python exception during the run is a bug: storage is
rolled back, contexts are released and the exception propagates.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional, Tuple, Union

from .. import __version__
from ..config import EngineConfig, get_config, summary
from ..state.code import CodeRegistry
from ..state.journal import Journal
from ..state.storage import StorageView
from ..types.hexutil import AddressLike, HexLike, hex_to_bytes, to_address
from ..types.result import TxResult
from ..types.status import Outcome
from .calls import CallManager
from .context import ZERO_ADDRESS
from .interpreter import Interpreter
from .opcodes import Dispatcher
from .pool import ContextPool

log = logging.getLogger(__name__)


class Engine:
    """
    Owns the storage journal and wires the dispatcher, call manager, context
    pool and interpreter around it.

    Parameters
    ----------
    storage : Journal | StorageView | None
        Durable storage. A StorageView is wrapped in a Journal; None creates an
        empty in-memory store.
    code : CodeRegistry | None
        Code provider; an empty registry is created if omitted.
    config : EngineConfig | None
        Limits and feature flags (default: `get_config()`).
    """

    def __init__(
        self,
        storage: Union[Journal, StorageView, None] = None,
        code: Optional[CodeRegistry] = None,
        *,
        config: Optional[EngineConfig] = None,
    ) -> None:
        self.config = config or get_config()
        limits = self.config.limits

        if isinstance(storage, StorageView):
            storage = Journal(storage)
        self.storage: Journal = storage if storage is not None else Journal()
        self.code = code if code is not None else CodeRegistry(max_code_bytes=limits.max_code_bytes)

        self.pool = ContextPool(
            reuse=self.config.features.reuse_contexts,
            max_stack_items=limits.max_stack_items,
            max_memory_bytes=limits.max_memory_bytes,
        )
        self.dispatcher = Dispatcher(self.storage)
        self.calls = CallManager(
            self.storage, self.code, self.pool, max_call_depth=limits.max_call_depth
        )
        self.interpreter = Interpreter(self.dispatcher, self.calls, step_limit=limits.step_limit)
        self._lock = threading.RLock()
        log.debug("engine ready callvm=%s %s", __version__, summary(self.config))

    # ------------------------------------------------------------------ #
    # Entry points
    # ------------------------------------------------------------------ #

    def execute_transaction(
        self,
        target: AddressLike,
        calldata: HexLike = b"",
        *,
        caller: Optional[AddressLike] = None,
        value: int = 0,
    ) -> Tuple[bool, bytes]:
        """Run one transaction; returns (success, return_data)."""
        return self.execute(target, calldata, caller=caller, value=value).as_pair()

    def execute(
        self,
        target: AddressLike,
        calldata: HexLike = b"",
        *,
        caller: Optional[AddressLike] = None,
        value: int = 0,
    ) -> TxResult:
        """Run one transaction and return the detailed TxResult."""
        address = to_address(target)
        sender = ZERO_ADDRESS if caller is None else to_address(caller)
        data = hex_to_bytes(calldata)
        if value < 0:
            raise ValueError("value must be non-negative")

        with self._lock:
            code = self.code.resolve_code(address)
            self.calls.failed_calls = 0
            token = self.storage.checkpoint()
            root = self.pool.acquire(
                0,
                code=code,
                calldata=data,
                address=address,
                caller=sender,
                origin=sender,
                value=value,
            )
            try:
                self.interpreter.run(root)
                result = TxResult(
                    outcome=root.outcome or Outcome.FAULTED,
                    return_data=root.return_data,
                    logs=tuple(root.logs),
                    fault_reason=root.fault_reason,
                    steps=self.interpreter.steps,
                )
            except Exception:
                log.warning("tx to=0x%s aborted by unexpected error; rolling back", address.hex(), exc_info=True)
                self.storage.rollback(token)
                raise
            finally:
                self.pool.release(root)

            failed_calls = self.calls.failed_calls
            if result.success:
                self.storage.release(token)
                self.storage.commit()
            else:
                self.storage.rollback(token)

        log.debug(
            "tx to=0x%s outcome=%s steps=%d returned=%dB failed_calls=%d reason=%s",
            address.hex(), result.outcome, result.steps, len(result.return_data),
            failed_calls, result.fault_reason,
        )
        return result


__all__ = ["Engine"]
