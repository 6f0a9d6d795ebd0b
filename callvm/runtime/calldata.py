"""
callvm.runtime.calldata — immutable input bytes of a call.

Reads past the end are zero-padded rather than faulting.
"""

from __future__ import annotations


class Calldata:
    __slots__ = ("_data",)

    def __init__(self, data: bytes = b"") -> None:
        self._data = bytes(data)

    @property
    def size(self) -> int:
        return len(self._data)

    def read_range(self, offset: int, length: int) -> bytes:
        if length <= 0:
            return b""
        chunk = self._data[offset:offset + length] if offset < len(self._data) else b""
        return chunk.ljust(length, b"\x00")

    def read_word(self, offset: int) -> int:
        return int.from_bytes(self.read_range(offset, 32), "big")

    def to_bytes(self) -> bytes:
        return self._data

    def __len__(self) -> int:
        return len(self._data)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Calldata):
            return self._data == other._data
        if isinstance(other, (bytes, bytearray)):
            return self._data == bytes(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._data)


EMPTY_CALLDATA = Calldata()

__all__ = ["Calldata", "EMPTY_CALLDATA"]
