"""
callvm.types — small, dependency-light types shared across the engine.

Public surface (re-exported):
    Outcome                                 : Enum — SUCCESS / REVERTED / FAULTED
    Continue, Jump, Halt, CallRequest       : StepResult variants
    LogEvent                                : Dataclass — (address, topics, data)
    TxResult                                : Dataclass — result of a transaction
"""

from __future__ import annotations

from .events import LogEvent
from .result import TxResult
from .status import Outcome
from .step import CONTINUE, CallRequest, Continue, Halt, Jump, StepResult

__all__ = [
    "Outcome",
    "Continue",
    "CONTINUE",
    "Jump",
    "Halt",
    "CallRequest",
    "StepResult",
    "LogEvent",
    "TxResult",
]
