"""
callvm.runtime.context — the ephemeral unit of execution.

An ExecutionContext exists for exactly one call. It exclusively owns its code
view, program counter, stack, memory, calldata and return data; the only thing
it references but does not own is the storage journal, which lives on the
engine.

Lifecycle
---------
    Running ──halt()──▶ Halted(SUCCESS | REVERTED | FAULTED)

Once halted, `outcome` and `return_data` are frozen: a second `halt()` is a
programming error and raises RuntimeError. `reset()` wipes every ephemeral
field so a pooled slot can be handed to the next call without leaking data.
"""

from __future__ import annotations

from typing import FrozenSet, List, Optional

from ..types.events import LogEvent
from ..types.status import Outcome
from .calldata import Calldata, EMPTY_CALLDATA
from .memory import DEFAULT_MAX_BYTES, Memory
from .stack import DEFAULT_MAX_ITEMS, Stack

ZERO_ADDRESS = b"\x00" * 20

_PUSH1 = 0x60
_PUSH32 = 0x7F
_JUMPDEST = 0x5B


def analyze_jumpdests(code: bytes) -> FrozenSet[int]:
    """Offsets holding a JUMPDEST byte that is not PUSH immediate data."""
    dests = set()
    i = 0
    n = len(code)
    while i < n:
        op = code[i]
        if op == _JUMPDEST:
            dests.add(i)
        elif _PUSH1 <= op <= _PUSH32:
            i += op - _PUSH1 + 1
        i += 1
    return frozenset(dests)


class ExecutionContext:
    def __init__(
        self,
        *,
        depth: int = 0,
        max_stack_items: int = DEFAULT_MAX_ITEMS,
        max_memory_bytes: int = DEFAULT_MAX_BYTES,
    ) -> None:
        self.depth = int(depth)
        self.stack = Stack(max_stack_items)
        self.memory = Memory(max_memory_bytes)
        self.reset()

    def load(
        self,
        *,
        code: bytes,
        calldata: bytes = b"",
        address: bytes = ZERO_ADDRESS,
        caller: bytes = ZERO_ADDRESS,
        origin: bytes = ZERO_ADDRESS,
        value: int = 0,
    ) -> "ExecutionContext":
        """Prepare a reset context for a new call."""
        self.code = bytes(code)
        self.calldata = Calldata(calldata) if calldata else EMPTY_CALLDATA
        self.address = address
        self.caller = caller
        self.origin = origin
        self.value = int(value)
        self.active = True
        return self

    def reset(self) -> None:
        """Discard every piece of ephemeral state."""
        self.code = b""
        self.pc = 0
        self.stack.clear()
        self.memory.clear()
        self.calldata = EMPTY_CALLDATA
        self.return_data = b""
        self.last_return_data = b""
        self.halted = False
        self.outcome: Optional[Outcome] = None
        self.fault_reason: Optional[str] = None
        self.logs: List[LogEvent] = []
        self.address = ZERO_ADDRESS
        self.caller = ZERO_ADDRESS
        self.origin = ZERO_ADDRESS
        self.value = 0
        self.steps = 0
        self.active = False
        self._jumpdests: Optional[FrozenSet[int]] = None

    # ------------------------------------------------------------------ #
    # Terminal transitions
    # ------------------------------------------------------------------ #

    def halt(self, outcome: Outcome, return_data: bytes = b"", reason: Optional[str] = None) -> None:
        if self.halted:
            raise RuntimeError("context already halted")
        self.halted = True
        self.outcome = outcome
        self.return_data = bytes(return_data)
        self.fault_reason = reason if outcome is Outcome.FAULTED else None
        if outcome is not Outcome.SUCCESS:
            self.logs = []

    @property
    def running(self) -> bool:
        return self.active and not self.halted

    # ------------------------------------------------------------------ #
    # Code access
    # ------------------------------------------------------------------ #

    def read_code(self, num_bytes: int) -> bytes:
        """`num_bytes` following the current opcode, zero-padded past the end."""
        start = self.pc + 1
        chunk = self.code[start:start + num_bytes]
        return chunk.ljust(num_bytes, b"\x00")

    @property
    def valid_jumpdests(self) -> FrozenSet[int]:
        if self._jumpdests is None:
            self._jumpdests = analyze_jumpdests(self.code)
        return self._jumpdests

    def __repr__(self) -> str:  # pragma: no cover - cosmetic
        state = "running" if not self.halted else f"halted:{self.outcome}"
        return (
            f"ExecutionContext(depth={self.depth}, address=0x{self.address.hex()}, "
            f"pc={self.pc}, stack={len(self.stack)}, mem={self.memory.size}, {state})"
        )


__all__ = ["ExecutionContext", "ZERO_ADDRESS", "analyze_jumpdests"]
