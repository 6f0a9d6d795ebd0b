"""
callvm.runtime.memory — byte-addressable scratch memory of one context.

Memory starts empty and grows in 32-byte words, zero-filled, whenever a read or
write touches a byte past its current size. A zero-length access never grows
it. Growth beyond `max_bytes` raises `MemoryLimit`.
"""

from __future__ import annotations

from ..errors import MemoryLimit
from ..types.hexutil import WORD_MASK

WORD = 32
DEFAULT_MAX_BYTES = 1024 * 1024


def _ceil_word(n: int) -> int:
    return (n + WORD - 1) // WORD * WORD


class Memory:
    __slots__ = ("_buf", "max_bytes")

    def __init__(self, max_bytes: int = DEFAULT_MAX_BYTES) -> None:
        self._buf = bytearray()
        self.max_bytes = int(max_bytes)

    @property
    def size(self) -> int:
        return len(self._buf)

    def ensure(self, offset: int, length: int) -> None:
        """Grow memory to cover [offset, offset+length) or raise MemoryLimit."""
        if length == 0:
            return
        end = offset + length
        if offset < 0 or length < 0 or end > self.max_bytes:
            raise MemoryLimit(
                f"memory access [{offset}, {offset}+{length}) exceeds limit {self.max_bytes}"
            )
        if end > len(self._buf):
            self._buf.extend(b"\x00" * (_ceil_word(end) - len(self._buf)))

    # --------------------------- word access --------------------------------

    def store_word(self, offset: int, value: int) -> None:
        self.ensure(offset, WORD)
        self._buf[offset:offset + WORD] = (value & WORD_MASK).to_bytes(WORD, "big")

    def store_byte(self, offset: int, value: int) -> None:
        self.ensure(offset, 1)
        self._buf[offset] = value & 0xFF

    def load_word(self, offset: int) -> int:
        self.ensure(offset, WORD)
        return int.from_bytes(self._buf[offset:offset + WORD], "big")

    # --------------------------- range access -------------------------------

    def load_range(self, offset: int, length: int) -> bytes:
        if length == 0:
            return b""
        self.ensure(offset, length)
        return bytes(self._buf[offset:offset + length])

    def write(self, offset: int, data: bytes) -> None:
        if not data:
            return
        self.ensure(offset, len(data))
        self._buf[offset:offset + len(data)] = data

    def clear(self) -> None:
        self._buf = bytearray()

    def __len__(self) -> int:
        return len(self._buf)


__all__ = ["Memory", "WORD", "DEFAULT_MAX_BYTES"]
