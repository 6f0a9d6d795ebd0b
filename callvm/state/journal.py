"""
callvm.state.journal — checkpointed write journal over a StorageView.

The Journal is the Storage handle every execution context references. Writes go
to the top overlay; reads consult overlays from top → base. Checkpoints push a
new overlay and hand back a token:

- `rollback(token)` discards the overlay created by `checkpoint()` and every
  overlay above it, undoing all `set` calls made since the token was issued.
- `release(token)` folds that overlay (and everything above it) into the
  enclosing overlay: the writes are kept, but only as part of the enclosing
  scope, so rolling back an outer checkpoint still undoes them.
- `commit()` discards all outstanding checkpoints and applies every staged write
  to the base view, making it permanent.

Intended usage (one nested call inside a transaction)
-----------------------------------------------------
    j = Journal(StorageView())
    tx = j.checkpoint()
    j.set(addr, 1, 10)
    call = j.checkpoint()
    j.set(callee, 7, 99)
    j.rollback(call)        # callee's write is gone, addr/1 == 10 survives
    j.release(tx)
    j.commit()              # addr/1 == 10 is now durable

Notes
-----
- Tokens are unique for the lifetime of the Journal. Using a token whose
  overlay was already rolled back, released or committed raises ValueError.
- The journal assumes a single writer; callers serialize transactions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..types.hexutil import WORD_MASK, AddressLike, to_address
from .storage import StorageView


@dataclass
class _Overlay:
    """
    A single journal layer. `writes[addr][slot]` holds the staged value; 0 is
    a staged deletion (zero means absent).
    """

    token: int
    writes: Dict[bytes, Dict[int, int]] = field(default_factory=dict)

    def lookup(self, addr: bytes, slot: int) -> Optional[int]:
        m = self.writes.get(addr)
        if m is None:
            return None
        return m.get(slot)

    def put(self, addr: bytes, slot: int, value: int) -> None:
        m = self.writes.get(addr)
        if m is None:
            m = {}
            self.writes[addr] = m
        m[slot] = value

    def merge_from(self, other: "_Overlay") -> None:
        for addr, writes in other.writes.items():
            for slot, value in writes.items():
                self.put(addr, slot, value)

    def count(self) -> int:
        return sum(len(m) for m in self.writes.values())


_ROOT_TOKEN = 0


class Journal:
    """
    A copy-on-write journal with nested checkpoints.

    Parameters
    ----------
    base : StorageView
        The durable storage the journal commits into. A fresh one is created
        if omitted.
    """

    def __init__(self, base: Optional[StorageView] = None) -> None:
        self._base = base if base is not None else StorageView()
        # The root layer collects writes made outside of any checkpoint.
        self._layers: List[_Overlay] = [_Overlay(_ROOT_TOKEN)]
        self._next_token = _ROOT_TOKEN + 1

    @property
    def base(self) -> StorageView:
        return self._base

    # --------------------------------------------------------------------- #
    # Storage API
    # --------------------------------------------------------------------- #

    def get(self, address: AddressLike, slot: int) -> int:
        """Read with overlay precedence. Missing slots read as 0."""
        addr = to_address(address)
        slot_w = int(slot) & WORD_MASK
        for layer in reversed(self._layers):
            local = layer.lookup(addr, slot_w)
            if local is not None:
                return local
        return self._base.get(addr, slot_w)

    def set(self, address: AddressLike, slot: int, value: int) -> None:
        """Stage a write in the top overlay."""
        addr = to_address(address)
        self._layers[-1].put(addr, int(slot) & WORD_MASK, int(value) & WORD_MASK)

    # --------------------------------------------------------------------- #
    # Checkpointing
    # --------------------------------------------------------------------- #

    def depth(self) -> int:
        """Number of outstanding checkpoints (0 when none are open)."""
        return len(self._layers) - 1

    def checkpoint(self) -> int:
        """Open a checkpoint and return its token."""
        token = self._next_token
        self._next_token += 1
        self._layers.append(_Overlay(token))
        return token

    def _index_of(self, token: int) -> int:
        for i in range(len(self._layers) - 1, 0, -1):
            if self._layers[i].token == token:
                return i
        raise ValueError(f"unknown or closed checkpoint token {token!r}")

    def rollback(self, token: int) -> None:
        """Undo every write made since `token` was issued and close it."""
        idx = self._index_of(token)
        del self._layers[idx:]

    def release(self, token: int) -> None:
        """Close `token`, keeping its writes in the enclosing scope."""
        idx = self._index_of(token)
        parent = self._layers[idx - 1]
        for layer in self._layers[idx:]:
            parent.merge_from(layer)
        del self._layers[idx:]

    def commit(self) -> None:
        """Discard all checkpoints and apply every staged write to the base."""
        for layer in self._layers:
            for addr, writes in layer.writes.items():
                for slot, value in writes.items():
                    self._base.set(addr, slot, value)
        self._layers = [_Overlay(_ROOT_TOKEN)]

    def discard(self) -> None:
        """Drop every staged write (including those outside any checkpoint)."""
        self._layers = [_Overlay(_ROOT_TOKEN)]

    # --------------------------------------------------------------------- #
    # Debug/Introspection
    # --------------------------------------------------------------------- #

    def pending_writes(self) -> int:
        """Total number of staged (address, slot) entries across layers."""
        return sum(layer.count() for layer in self._layers)


__all__ = ["Journal"]
