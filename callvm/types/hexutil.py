"""Hex/bytes and address helpers shared across callvm."""

from __future__ import annotations

from typing import Union

HexLike = Union[str, bytes, bytearray, memoryview]
AddressLike = Union[str, bytes, bytearray, memoryview, int]

ADDRESS_LEN = 20
WORD_BITS = 256
WORD_MASK = (1 << WORD_BITS) - 1


def hex_to_bytes(v: HexLike) -> bytes:
    if isinstance(v, (bytes, bytearray, memoryview)):
        return bytes(v)
    if isinstance(v, str):
        s = v.strip()
        if s.startswith(("0x", "0X")):
            s = s[2:]
        if len(s) % 2:
            s = "0" + s  # tolerate odd-length hex
        try:
            return bytes.fromhex(s)
        except ValueError as e:
            raise ValueError(f"invalid hex string: {v!r}") from e
    raise TypeError(f"expected hex-like value, got {type(v).__name__}")


def bytes_to_hex(b: bytes) -> str:
    return "0x" + bytes(b).hex()


def to_address(v: AddressLike) -> bytes:
    """
    Normalize an address to 20 raw bytes.

    Accepts 20-byte bytes-likes, 0x-hex strings, or non-negative ints (the low
    160 bits are used, as when an address is taken from a stack word).
    """
    if isinstance(v, bool):
        raise TypeError("address must not be a bool")
    if isinstance(v, int):
        if v < 0:
            raise ValueError("address int must be non-negative")
        return (v & ((1 << (8 * ADDRESS_LEN)) - 1)).to_bytes(ADDRESS_LEN, "big")
    b = hex_to_bytes(v)
    if len(b) != ADDRESS_LEN:
        raise ValueError(f"address must be {ADDRESS_LEN} bytes (got {len(b)})")
    return b


def word_to_bytes(value: int) -> bytes:
    return (value & WORD_MASK).to_bytes(32, "big")


__all__ = [
    "HexLike",
    "AddressLike",
    "ADDRESS_LEN",
    "WORD_BITS",
    "WORD_MASK",
    "hex_to_bytes",
    "bytes_to_hex",
    "to_address",
    "word_to_bytes",
]
