"""
callvm.state.storage — durable per-contract storage (slot → word).

A minimal, deterministic key/value view keyed by contract address (20 bytes)
and storage slot (a 256-bit word) with word values. It is the only state that
outlives a call; every write made during a transaction reaches it through
`callvm.state.journal.Journal`, never directly.

Design goals
------------
- Pure Python, no I/O; deterministic semantics.
- "Zero means absent": storing 0 deletes the slot, reading a missing slot is 0.
- Slots and values are masked to 256 bits.

Typical usage
-------------
    sv = StorageView()
    sv.set(addr, 1, 42)
    sv.get(addr, 1)      # 42
    sv.get(addr, 2)      # 0
    sv.clear_account(addr)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, MutableMapping, Optional, Tuple

from ..types.hexutil import WORD_MASK, AddressLike, to_address


def _word(x: int, *, name: str) -> int:
    if isinstance(x, bool) or not isinstance(x, int):
        raise TypeError(f"{name} must be an int")
    if x < 0:
        raise ValueError(f"{name} must be non-negative")
    return x & WORD_MASK


@dataclass
class StorageView:
    """
    Durable storage for all contracts.

    Parameters
    ----------
    backend :
        Optional external mapping used as the store. Shape is
        {address: {slot: value}}. If not provided, an internal dict is used.
    """
    backend: Optional[MutableMapping[bytes, Dict[int, int]]] = None

    _store: MutableMapping[bytes, Dict[int, int]] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._store = self.backend if self.backend is not None else {}

    # ------------------------------ core ops --------------------------------

    def get(self, address: AddressLike, slot: int) -> int:
        """Return the value at (address, slot), or 0 if absent."""
        addr = to_address(address)
        return self._store.get(addr, {}).get(_word(slot, name="slot"), 0)

    def has(self, address: AddressLike, slot: int) -> bool:
        addr = to_address(address)
        return _word(slot, name="slot") in self._store.get(addr, {})

    def set(self, address: AddressLike, slot: int, value: int) -> None:
        """Set (address, slot). A zero value deletes the slot."""
        addr = to_address(address)
        slot_w = _word(slot, name="slot")
        val_w = _word(value, name="value")
        if val_w == 0:
            self._delete(addr, slot_w)
            return
        acc = self._store.get(addr)
        if acc is None:
            acc = {}
            self._store[addr] = acc
        acc[slot_w] = val_w

    def delete(self, address: AddressLike, slot: int) -> None:
        self._delete(to_address(address), _word(slot, name="slot"))

    def _delete(self, addr: bytes, slot: int) -> None:
        acc = self._store.get(addr)
        if acc is None:
            return
        acc.pop(slot, None)
        if not acc:
            self._store.pop(addr, None)

    def clear_account(self, address: AddressLike) -> None:
        """Remove every slot of `address`."""
        self._store.pop(to_address(address), None)

    # --------------------------- introspection ------------------------------

    def accounts(self) -> List[bytes]:
        """Addresses with at least one non-zero slot, sorted."""
        return sorted(a for a, m in self._store.items() if m)

    def items(self, address: AddressLike) -> Iterator[Tuple[int, int]]:
        """Iterate (slot, value) for `address` in ascending slot order."""
        acc = self._store.get(to_address(address), {})
        for slot in sorted(acc):
            yield slot, acc[slot]

    def export_account_hex(self, address: AddressLike) -> Dict[str, str]:
        """{0x-slot: 0x-value} snapshot of one contract, for debugging/fixtures."""
        return {hex(k): hex(v) for k, v in self.items(address)}

    def __len__(self) -> int:
        return sum(len(m) for m in self._store.values())


__all__ = ["StorageView"]
