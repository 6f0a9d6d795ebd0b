"""
callvm.types.events — records emitted by the LOG0..LOG4 opcodes.

A context accumulates its own events plus those of nested calls that halted
with SUCCESS. Events of a reverted or faulted context are discarded together
with its storage writes.

Conventions
-----------
* `address` is the 20-byte address of the emitting contract.
* `topics` is an ordered tuple of 32-byte words (0..4 entries).
* `data` is the raw memory slice passed to the opcode.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Sequence, Tuple

from .hexutil import HexLike, bytes_to_hex, hex_to_bytes

MAX_TOPICS = 4


@dataclass(frozen=True)
class LogEvent:
    address: bytes
    topics: Tuple[bytes, ...]
    data: bytes

    def __init__(self, address: HexLike, topics: Sequence[HexLike] = (), data: HexLike = b""):
        addr_b = hex_to_bytes(address)
        if len(addr_b) != 20:
            raise ValueError(f"address must be 20 bytes (got {len(addr_b)})")
        if len(topics) > MAX_TOPICS:
            raise ValueError(f"at most {MAX_TOPICS} topics are allowed")
        topics_b = tuple(hex_to_bytes(t).rjust(32, b"\x00") for t in topics)
        for t in topics_b:
            if len(t) != 32:
                raise ValueError("topic must fit in 32 bytes")

        object.__setattr__(self, "address", addr_b)
        object.__setattr__(self, "topics", topics_b)
        object.__setattr__(self, "data", hex_to_bytes(data))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": bytes_to_hex(self.address),
            "topics": [bytes_to_hex(t) for t in self.topics],
            "data": bytes_to_hex(self.data),
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "LogEvent":
        topics = d.get("topics", [])
        if not isinstance(topics, (tuple, list)):
            raise TypeError("topics must be a list/tuple")
        return cls(address=d["address"], topics=list(topics), data=d.get("data", b""))


__all__ = ["LogEvent", "MAX_TOPICS"]
