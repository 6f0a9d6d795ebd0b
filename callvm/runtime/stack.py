"""
callvm.runtime.stack — the word stack of one execution context.

Every context owns its own Stack; it is never shared with a parent or child.
Violations raise `StackUnderflow` / `StackOverflow`, which the dispatcher turns
into a Faulted halt.
"""

from __future__ import annotations

from typing import List

from ..errors import StackOverflow, StackUnderflow
from ..types.hexutil import WORD_MASK

DEFAULT_MAX_ITEMS = 1024


class Stack:
    __slots__ = ("_data", "max_items")

    def __init__(self, max_items: int = DEFAULT_MAX_ITEMS) -> None:
        self._data: List[int] = []
        self.max_items = int(max_items)

    def push(self, value: int) -> None:
        if len(self._data) >= self.max_items:
            raise StackOverflow(f"stack overflow (limit {self.max_items})")
        self._data.append(int(value) & WORD_MASK)

    def pop(self) -> int:
        if not self._data:
            raise StackUnderflow("stack underflow: pop on empty stack")
        return self._data.pop()

    def pop_many(self, n: int) -> List[int]:
        """Pop `n` items; element 0 of the result was the top of the stack."""
        if n > len(self._data):
            raise StackUnderflow(f"stack underflow: need {n}, have {len(self._data)}")
        out = self._data[-n:] if n else []
        del self._data[len(self._data) - n:]
        out.reverse()
        return out

    def peek(self, index: int = 0) -> int:
        """Item `index` positions below the top (0 = top)."""
        if index < 0 or index >= len(self._data):
            raise StackUnderflow(f"stack underflow: peek({index}) with {len(self._data)} items")
        return self._data[-1 - index]

    def dup(self, n: int) -> None:
        """DUPn: push a copy of the n-th item (1 = top)."""
        self.push(self.peek(n - 1))

    def swap(self, n: int) -> None:
        """SWAPn: exchange the top with the item n positions below it."""
        if n + 1 > len(self._data):
            raise StackUnderflow(f"stack underflow: swap{n} with {len(self._data)} items")
        d = self._data
        d[-1], d[-1 - n] = d[-1 - n], d[-1]

    def clear(self) -> None:
        self._data.clear()

    def to_list(self) -> List[int]:
        """Copy of the items, bottom first."""
        return list(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:  # pragma: no cover - cosmetic
        return f"Stack({self._data!r})"


__all__ = ["Stack", "DEFAULT_MAX_ITEMS"]
