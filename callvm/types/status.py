"""
callvm.types.status — terminal outcome of an execution context.

Outcome models how a halted context ended:
  - SUCCESS  : normal halt (STOP / RETURN / falling off the end of the code)
  - REVERTED : code-requested rollback (REVERT)
  - FAULTED  : interpreter-detected unrecoverable condition

String forms:
  - str(Outcome.SUCCESS)   -> "success"   (good for logs)
  - Outcome.SUCCESS.code   -> "SUCCESS"   (good for results/protocols)

Parsing is lenient via `Outcome.from_str(...)`.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class Outcome(str, Enum):
    SUCCESS = "success"
    REVERTED = "reverted"
    FAULTED = "faulted"

    @property
    def code(self) -> str:
        """Uppercase code form, e.g., 'SUCCESS' / 'REVERTED' / 'FAULTED'."""
        return self.value.upper()

    @property
    def is_success(self) -> bool:
        return self is Outcome.SUCCESS

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.value

    @classmethod
    def from_str(cls, s: str, *, default: Optional["Outcome"] = None) -> "Outcome":
        """
        Parse an outcome from a string (case/format-insensitive).

        Accepted values:
          - success : "success", "ok", "stop", "return"
          - reverted: "reverted", "revert", "rv"
          - faulted : "faulted", "fault", "error", "invalid"

        Raises:
            ValueError if parsing fails and no default is provided.
        """
        if not s:
            if default is not None:
                return default
            raise ValueError("empty outcome")

        norm = s.strip().lower().replace("-", "_")
        if norm in {"success", "ok", "stop", "return"}:
            return cls.SUCCESS
        if norm in {"reverted", "revert", "rv"}:
            return cls.REVERTED
        if norm in {"faulted", "fault", "error", "invalid"}:
            return cls.FAULTED
        if default is not None:
            return default
        raise ValueError(f"unknown Outcome: {s!r}")


__all__ = ["Outcome"]
