"""
callvm.types.result — TxResult container for a finished transaction.

`TxResult` is what `Engine.execute` returns. `Engine.execute_transaction` narrows
it to the `(success, return_data)` pair.

Fields
------
* outcome      : Outcome — SUCCESS / REVERTED / FAULTED of the root context
* return_data  : bytes   — root context's return data
* logs         : tuple[LogEvent, ...] — events (empty unless SUCCESS)
* fault_reason : Optional[str] — set when outcome is FAULTED
* steps        : int     — opcodes executed across all contexts
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from .events import LogEvent
from .hexutil import bytes_to_hex, hex_to_bytes
from .status import Outcome


@dataclass(frozen=True)
class TxResult:
    outcome: Outcome
    return_data: bytes = b""
    logs: Tuple[LogEvent, ...] = ()
    fault_reason: Optional[str] = None
    steps: int = 0

    def __post_init__(self) -> None:
        if self.steps < 0:
            raise ValueError("steps must be >= 0")
        object.__setattr__(self, "return_data", bytes(self.return_data))
        object.__setattr__(self, "logs", tuple(self.logs))

    @property
    def success(self) -> bool:
        return self.outcome.is_success

    def as_pair(self) -> Tuple[bool, bytes]:
        return self.success, self.return_data

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "outcome": self.outcome.code,
            "returnData": bytes_to_hex(self.return_data),
            "logs": [ev.to_dict() for ev in self.logs],
            "steps": self.steps,
        }
        if self.fault_reason is not None:
            out["faultReason"] = self.fault_reason
        return out

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "TxResult":
        logs: Iterable[Any] = d.get("logs", ())
        return cls(
            outcome=Outcome.from_str(str(d["outcome"])),
            return_data=hex_to_bytes(d.get("returnData", b"")),
            logs=tuple(LogEvent.from_dict(x) for x in logs),
            fault_reason=d.get("faultReason"),
            steps=int(d.get("steps", 0)),
        )


__all__ = ["TxResult"]
