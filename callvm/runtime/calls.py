"""
callvm.runtime.calls — nested-call manager.

When a context issues CALL, the interpreter suspends it and asks the
CallManager to `enter` the call:

  1. depth check: a child deeper than `max_call_depth` is never created; the
     call fails for the caller only (0 pushed, empty return buffer)
  2. resolve the target's code; no code also fails the call the same way
  3. capture a storage checkpoint
  4. acquire a fresh context one level deeper (fresh stack and memory)

Once the child halts, `reconcile` folds it back into the parent:

  SUCCESS   → checkpoint released (writes kept, pending the outer commit),
              child events appended to the parent, 1 pushed
  otherwise → checkpoint rolled back (child and descendants' writes undone),
              child events dropped, 0 pushed

In both cases the child's return data becomes the parent's return buffer
(RETURNDATASIZE/RETURNDATACOPY) and up to `ret_size` bytes of it are copied to
the parent's memory at `ret_offset`. The parent's own outcome is never touched:
only an instruction the parent itself executes can make it fail.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from ..errors import DepthExceeded, ExecError, NotFound
from ..state.code import CodeRegistry
from ..state.journal import Journal
from ..types.status import Outcome
from ..types.step import CallRequest
from .context import ExecutionContext
from .pool import ContextPool

log = logging.getLogger(__name__)


@dataclass
class CallRecord:
    """Bookkeeping for one outstanding nested call."""

    parent: ExecutionContext
    child: ExecutionContext
    target: bytes
    value: int
    calldata: bytes
    token: int
    ret_offset: int = 0
    ret_size: int = 0


class CallManager:
    def __init__(
        self,
        storage: Journal,
        code: CodeRegistry,
        pool: ContextPool,
        *,
        max_call_depth: int = 1024,
    ) -> None:
        self.storage = storage
        self.code = code
        self.pool = pool
        self.max_call_depth = int(max_call_depth)
        self.failed_calls = 0  # reset by the engine at the start of each transaction

    def enter(self, parent: ExecutionContext, request: CallRequest) -> Optional[CallRecord]:
        """
        Start the nested call described by `request`. Returns None when the call
        failed before a child could be created (the parent is already updated).
        """
        depth = parent.depth + 1
        if depth > self.max_call_depth:
            self._fail(parent, DepthExceeded(
                f"call depth {depth} exceeds limit {self.max_call_depth}",
                data={"target": "0x" + request.target.hex()},
            ))
            return None

        try:
            code = self.code.resolve_code(request.target)
        except NotFound as nf:
            self._fail(parent, nf)
            return None

        token = self.storage.checkpoint()
        child = self.pool.acquire(
            depth,
            code=code,
            calldata=request.calldata,
            address=request.target,
            caller=parent.address,
            origin=parent.origin,
            value=request.value,
        )
        log.debug(
            "call enter depth=%d from=0x%s to=0x%s calldata=%dB",
            depth, parent.address.hex(), request.target.hex(), len(request.calldata),
        )
        return CallRecord(
            parent=parent,
            child=child,
            target=request.target,
            value=request.value,
            calldata=request.calldata,
            token=token,
            ret_offset=request.ret_offset,
            ret_size=request.ret_size,
        )

    def reconcile(self, record: CallRecord) -> None:
        """Fold a halted child into its parent and destroy the child."""
        child, parent = record.child, record.parent
        if not child.halted:
            raise RuntimeError("cannot reconcile a running context")

        ok = child.outcome is Outcome.SUCCESS
        if ok:
            self.storage.release(record.token)
            parent.logs.extend(child.logs)
        else:
            self.storage.rollback(record.token)
            self.failed_calls += 1

        data = child.return_data
        parent.last_return_data = data
        if record.ret_size:
            parent.memory.write(record.ret_offset, data[:record.ret_size])
        parent.stack.push(1 if ok else 0)

        log.debug(
            "call exit depth=%d to=0x%s outcome=%s reason=%s returned=%dB",
            child.depth, record.target.hex(), child.outcome, child.fault_reason, len(data),
        )
        self.pool.release(child)

    def unwind(self, records: Iterable[CallRecord]) -> None:
        """
        Roll back and destroy every still-outstanding call, innermost first.
        Used when an unexpected exception aborts a run.
        """
        for record in reversed(list(records)):
            try:
                self.storage.rollback(record.token)
            except ValueError:
                pass  # already closed by an outer rollback
            self.pool.release(record.child)

    def _fail(self, parent: ExecutionContext, err: ExecError) -> None:
        self.failed_calls += 1
        parent.last_return_data = b""
        parent.stack.push(0)
        log.debug("call failed at depth=%d: %s", parent.depth, err)


__all__ = ["CallRecord", "CallManager"]
