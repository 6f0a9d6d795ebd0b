"""
callvm.runtime.pool — per-depth arena of execution contexts.

Calls are strictly nested, so at any instant at most one context is live per
call depth. The pool keeps one slot per depth and hands it out again for the
next (non-overlapping) call at that depth. Every slot is `reset()` on release,
so a new call never observes the stack, memory or return data of a previous
one.

With `reuse=False` every acquire allocates a new context and released
contexts are simply dropped.
"""

from __future__ import annotations

from typing import Dict, List

from .context import ExecutionContext
from .memory import DEFAULT_MAX_BYTES
from .stack import DEFAULT_MAX_ITEMS


class ContextPool:
    def __init__(
        self,
        *,
        reuse: bool = True,
        max_stack_items: int = DEFAULT_MAX_ITEMS,
        max_memory_bytes: int = DEFAULT_MAX_BYTES,
    ) -> None:
        self.reuse = bool(reuse)
        self.max_stack_items = int(max_stack_items)
        self.max_memory_bytes = int(max_memory_bytes)
        self._free: Dict[int, ExecutionContext] = {}
        self._in_use: Dict[int, ExecutionContext] = {}

    def acquire(self, depth: int, **env: object) -> ExecutionContext:
        """
        Return a clean context for `depth`, loaded with `env` (see
        ExecutionContext.load). Raises RuntimeError if the depth is occupied.
        """
        if depth in self._in_use:
            raise RuntimeError(f"a context is already active at depth {depth}")
        ctx = self._free.pop(depth, None) if self.reuse else None
        if ctx is None:
            ctx = ExecutionContext(
                depth=depth,
                max_stack_items=self.max_stack_items,
                max_memory_bytes=self.max_memory_bytes,
            )
        ctx.load(**env)  # type: ignore[arg-type]
        self._in_use[depth] = ctx
        return ctx

    def release(self, ctx: ExecutionContext) -> None:
        """Wipe `ctx` and return its slot to the pool."""
        current = self._in_use.get(ctx.depth)
        if current is not ctx:
            raise RuntimeError(f"context at depth {ctx.depth} is not owned by this pool")
        del self._in_use[ctx.depth]
        ctx.reset()
        if self.reuse:
            self._free[ctx.depth] = ctx

    def in_use(self) -> List[int]:
        """Depths that currently hold a live context."""
        return sorted(self._in_use)

    def __len__(self) -> int:
        return len(self._in_use)


__all__ = ["ContextPool"]
