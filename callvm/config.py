"""
callvm.config — runtime configuration for the call engine.

This module centralizes knobs for:
  • Limits (nesting depth, stack items, memory size, code size, step budget)
  • Feature flags (context pooling)

Configuration may be provided via environment variables. Safe defaults are chosen so a
local developer run works out of the box.

Environment variables (all optional):
  CALLVM_MAX_CALL_DEPTH     -> integer (default: 1024)
  CALLVM_MAX_STACK_ITEMS    -> integer (default: 1024)
  CALLVM_MAX_MEMORY_BYTES   -> e.g. "1MiB", "65536" (default: 1MiB)
  CALLVM_MAX_CODE_BYTES     -> e.g. "24KiB" (default: 24KiB)
  CALLVM_STEP_LIMIT         -> integer, opcodes per transaction (default: 10000000)
  CALLVM_REUSE_CONTEXTS     -> 0/1/true/false (default: 1)

Programmatic usage:
    from callvm.config import get_config
    cfg = get_config()
    if cfg.features.reuse_contexts:
        ...
"""

from __future__ import annotations

import os
import re
from dataclasses import asdict, dataclass
from functools import lru_cache
from typing import Dict, Mapping, Optional, Union

# ----------------------------- helpers -------------------------------------


_BOOL_TRUE = {"1", "true", "t", "yes", "y", "on"}
_BOOL_FALSE = {"0", "false", "f", "no", "n", "off"}


def _bool_env(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    v = value.strip().lower()
    if v in _BOOL_TRUE:
        return True
    if v in _BOOL_FALSE:
        return False
    # Be forgiving: non-empty → True, empty → default
    return bool(v) if v != "" else default


_SIZE_RE = re.compile(r"^\s*(\d+)\s*([kKmMgG]i?[bB]|[bB])?\s*$")

_UNITS = {
    "b": 1,
    "kb": 1000,
    "kib": 1024,
    "mb": 1000**2,
    "mib": 1024**2,
    "gb": 1000**3,
    "gib": 1024**3,
}


def _parse_size_bytes(s: Union[str, int, float]) -> int:
    """
    Parse human-friendly byte sizes:
      "1MiB", "64KB", "131072", 131072 -> bytes (int)
    """
    if isinstance(s, (int, float)):
        n = int(s)
        if n < 0:
            raise ValueError("size must be non-negative")
        return n

    m = _SIZE_RE.match(str(s))
    if not m:
        raise ValueError(f"invalid size: {s!r}")

    unit = (m.group(2) or "B").lower()
    if unit not in _UNITS:
        raise ValueError(f"unknown size unit: {unit}")
    return int(m.group(1)) * _UNITS[unit]


# ------------------------------ dataclasses ---------------------------------


@dataclass(frozen=True)
class FeatureFlags:
    reuse_contexts: bool = True


@dataclass(frozen=True)
class Limits:
    max_call_depth: int = 1024
    max_stack_items: int = 1024
    max_memory_bytes: int = 1024 * 1024  # 1 MiB
    max_code_bytes: int = 24 * 1024  # 24 KiB
    step_limit: int = 10_000_000


@dataclass(frozen=True)
class EngineConfig:
    features: FeatureFlags = FeatureFlags()
    limits: Limits = Limits()

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


# ------------------------------ loader --------------------------------------


def _validate_limits(l: Limits) -> Limits:
    if l.max_call_depth < 0:
        raise ValueError("max_call_depth must be ≥ 0")
    if l.max_stack_items <= 0:
        raise ValueError("max_stack_items must be > 0")
    if l.max_memory_bytes < 0:
        raise ValueError("max_memory_bytes must be ≥ 0")
    if l.max_code_bytes <= 0:
        raise ValueError("max_code_bytes must be > 0")
    if l.step_limit <= 0:
        raise ValueError("step_limit must be > 0")
    return l


def load_config(
    env: Optional[Mapping[str, str]] = None,
    *,
    overrides: Optional[Mapping[str, Union[str, int, bool]]] = None,
) -> EngineConfig:
    """
    Build an EngineConfig from environment and optional overrides.

    Args:
        env: mapping to read variables from (default: os.environ)
        overrides: explicit field overrides; keys support:
          'reuse_contexts', 'max_call_depth', 'max_stack_items',
          'max_memory_bytes', 'max_code_bytes', 'step_limit'
    """
    env = os.environ if env is None else env
    overrides = dict(overrides or {})

    if "reuse_contexts" in overrides:
        reuse = bool(overrides["reuse_contexts"])
    else:
        reuse = _bool_env(env.get("CALLVM_REUSE_CONTEXTS"), True)
    features = FeatureFlags(reuse_contexts=reuse)

    limits = Limits(
        max_call_depth=int(
            overrides.get("max_call_depth", env.get("CALLVM_MAX_CALL_DEPTH", 1024))
        ),
        max_stack_items=int(
            overrides.get("max_stack_items", env.get("CALLVM_MAX_STACK_ITEMS", 1024))
        ),
        max_memory_bytes=_parse_size_bytes(
            overrides.get(
                "max_memory_bytes", env.get("CALLVM_MAX_MEMORY_BYTES", 1024 * 1024)
            )
        ),
        max_code_bytes=_parse_size_bytes(
            overrides.get(
                "max_code_bytes", env.get("CALLVM_MAX_CODE_BYTES", 24 * 1024)
            )
        ),
        step_limit=int(
            overrides.get("step_limit", env.get("CALLVM_STEP_LIMIT", 10_000_000))
        ),
    )
    limits = _validate_limits(limits)

    return EngineConfig(features=features, limits=limits)


@lru_cache(maxsize=1)
def get_config() -> EngineConfig:
    """
    Cached global config. Suitable for application bootstraps and module-level consumers.
    """
    return load_config()


# ----------------------------- pretty-print ---------------------------------


def _fmt_bytes(n: int) -> str:
    for unit, div in (("GiB", 1024**3), ("MiB", 1024**2), ("KiB", 1024)):
        if n >= div and n % div == 0:
            return f"{n // div}{unit}"
    return f"{n}B"


def summary(cfg: Optional[EngineConfig] = None) -> str:
    """
    Return a human-friendly one-line summary of the engine knobs.
    """
    cfg = cfg or get_config()
    l = cfg.limits
    return (
        "callvm{"
        f"depth={l.max_call_depth}, stack={l.max_stack_items}, "
        f"mem={_fmt_bytes(l.max_memory_bytes)}, code={_fmt_bytes(l.max_code_bytes)}, "
        f"steps={l.step_limit}, reuse={int(cfg.features.reuse_contexts)}"
        "}"
    )


__all__ = [
    "FeatureFlags",
    "Limits",
    "EngineConfig",
    "load_config",
    "get_config",
    "summary",
]
