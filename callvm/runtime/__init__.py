"""
callvm.runtime — contexts, opcode loop, nested calls and the engine.

Submodules
----------
- stack, memory, calldata : per-context ephemeral state
- context                 : ExecutionContext
- pool                    : per-depth ContextPool
- opcodes                 : Op table and the Dispatcher
- calls                   : CallManager (nested-call lifecycle)
- interpreter             : Interpreter (step/run loop)
- engine                  : Engine.execute_transaction
- asm                     : assembler helpers for hand-written programs

Convenience re-exports are lazily loaded:

    from callvm.runtime import Engine, assemble
"""

from __future__ import annotations

from importlib import import_module
from typing import Any, Dict, Tuple

_EXPORTS: Dict[str, Tuple[str, str]] = {
    "Engine": ("engine", "Engine"),
    "ExecutionContext": ("context", "ExecutionContext"),
    "ContextPool": ("pool", "ContextPool"),
    "Dispatcher": ("opcodes", "Dispatcher"),
    "Op": ("opcodes", "Op"),
    "CallManager": ("calls", "CallManager"),
    "Interpreter": ("interpreter", "Interpreter"),
    "assemble": ("asm", "assemble"),
}

__all__ = tuple(_EXPORTS)


def __getattr__(name: str) -> Any:  # PEP 562 lazy attribute access
    target = _EXPORTS.get(name)
    if target:
        mod, attr = target
        return getattr(import_module(f".{mod}", __name__), attr)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__() -> list[str]:
    return sorted(list(__all__))
