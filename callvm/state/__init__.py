"""
callvm.state — durable state collaborators of the engine.

Submodules:
- storage:  StorageView, durable (address, slot) → word mapping
- journal:  Journal, checkpoint/rollback/release/commit over a StorageView
- code:     CodeRegistry, address → bytecode (raises NotFound)

Symbols are lazily re-exported from their submodules on first access.
"""

from __future__ import annotations

from importlib import import_module as _imp
from typing import Any, Dict, Tuple

_exports: Dict[str, Tuple[str, str]] = {
    "StorageView": ("storage", "StorageView"),
    "Journal": ("journal", "Journal"),
    "CodeRegistry": ("code", "CodeRegistry"),
}

__all__ = tuple(_exports.keys())


def __getattr__(name: str) -> Any:
    if name in _exports:
        submod, symbol = _exports[name]
        mod = _imp(f"{__name__}.{submod}")
        return getattr(mod, symbol)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__() -> list[str]:  # pragma: no cover
    return sorted(list(globals().keys()) + list(__all__))
