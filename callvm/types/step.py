"""
callvm.types.step — what a single opcode asks the interpreter to do next.

The dispatcher returns exactly one of:

    Continue()                       advance pc by the opcode's encoded width
    Jump(pc)                         set pc (already validated as a JUMPDEST)
    Halt(outcome, return_data, reason)
                                     freeze the context; no further opcodes run
    CallRequest(target, value, calldata, ret_offset, ret_size)
                                     suspend the context and run a nested call
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from .status import Outcome


@dataclass(frozen=True)
class Continue:
    pass


@dataclass(frozen=True)
class Jump:
    pc: int


@dataclass(frozen=True)
class Halt:
    outcome: Outcome
    return_data: bytes = b""
    reason: Optional[str] = None

    @classmethod
    def success(cls, return_data: bytes = b"") -> "Halt":
        return cls(Outcome.SUCCESS, bytes(return_data))

    @classmethod
    def reverted(cls, return_data: bytes = b"") -> "Halt":
        return cls(Outcome.REVERTED, bytes(return_data))

    @classmethod
    def faulted(cls, reason: str) -> "Halt":
        return cls(Outcome.FAULTED, b"", reason)


@dataclass(frozen=True)
class CallRequest:
    """
    A call-type opcode naming another contract.

    `ret_offset`/`ret_size` describe the caller's memory window that receives
    the callee's return data once the call resolves.
    """
    target: bytes
    value: int
    calldata: bytes
    ret_offset: int = 0
    ret_size: int = 0


CONTINUE = Continue()

StepResult = Union[Continue, Jump, Halt, CallRequest]

__all__ = ["Continue", "Jump", "Halt", "CallRequest", "CONTINUE", "StepResult"]
