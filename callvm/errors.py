"""
callvm.errors — typed exceptions for the call engine.

Only `NotFound` (an unresolved contract address) is ever raised out of
`Engine.execute_transaction`. `Revert` and the `Fault` family are *internal
signals*: opcode handlers raise them, the dispatcher converts them into a
terminal `Halt` step, and the caller observes them as `success=False`.

Hierarchy
---------
ExecError (base)
 ├─ NotFound               : no code installed at the requested address
 ├─ Revert                 : code-requested rollback (may carry return data)
 └─ Fault                  : unrecoverable interpreter condition
     ├─ StackUnderflow
     ├─ StackOverflow
     ├─ InvalidOpcode
     ├─ InvalidJump
     ├─ MemoryLimit
     ├─ ReturnDataOutOfBounds
     └─ DepthExceeded

These classes avoid importing other callvm modules so they can be used from
any layer without cycles.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class ExecError(Exception):
    """
    Base execution error.

    Attributes:
        message: Human-readable explanation.
        code:    Stable machine code string (e.g., 'NOT_FOUND', 'REVERT').
        data:    Optional structured details (kept JSON-serializable).
    """
    message: str = "execution error"
    code: str = "EXEC_ERROR"
    data: Optional[Dict[str, Any]] = field(default=None)

    def __str__(self) -> str:  # pragma: no cover - trivial
        if self.data:
            return f"{self.code}: {self.message} ({self.data})"
        return f"{self.code}: {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-safe dict for results/logs."""
        out: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            out["data"] = self.data
        return out


class NotFound(ExecError):
    """No code is installed at `address`."""

    def __init__(self, message: str = "code not found", *, address: Optional[bytes] = None):
        data = {"address": "0x" + address.hex()} if address is not None else None
        super().__init__(message=message, code="NOT_FOUND", data=data)
        self.address = address


class Revert(ExecError):
    """
    Code-requested revert. `return_data` is preserved and handed back to the
    caller (diagnostic bytes).
    """

    def __init__(self, message: str = "reverted", *, return_data: bytes = b""):
        data = {"return_data": return_data.hex()} if return_data else None
        super().__init__(message=message, code="REVERT", data=data)
        self.return_data = bytes(return_data)


class Fault(ExecError):
    """
    Unrecoverable interpreter condition. Terminates the current context with a
    Faulted outcome; never aborts the process.
    """

    default_message = "fault"
    default_code = "FAULT"

    def __init__(self, message: Optional[str] = None, *, data: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message or self.default_message,
            code=self.default_code,
            data=data,
        )

    @property
    def reason(self) -> str:
        return self.message


class StackUnderflow(Fault):
    default_message = "stack underflow"
    default_code = "STACK_UNDERFLOW"


class StackOverflow(Fault):
    default_message = "stack overflow"
    default_code = "STACK_OVERFLOW"


class InvalidOpcode(Fault):
    default_message = "invalid opcode"
    default_code = "INVALID_OPCODE"


class InvalidJump(Fault):
    default_message = "invalid jump destination"
    default_code = "INVALID_JUMP"


class MemoryLimit(Fault):
    default_message = "memory limit exceeded"
    default_code = "MEMORY_LIMIT"


class ReturnDataOutOfBounds(Fault):
    default_message = "return data out of bounds"
    default_code = "RETURNDATA_OUT_OF_BOUNDS"


class DepthExceeded(Fault):
    default_message = "call depth exceeded"
    default_code = "DEPTH_EXCEEDED"


__all__ = [
    "ExecError",
    "NotFound",
    "Revert",
    "Fault",
    "StackUnderflow",
    "StackOverflow",
    "InvalidOpcode",
    "InvalidJump",
    "MemoryLimit",
    "ReturnDataOutOfBounds",
    "DepthExceeded",
]
