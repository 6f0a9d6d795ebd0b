"""
callvm.runtime.interpreter — the opcode loop.

`step` executes at most one opcode of a context and applies the StepResult:

    Continue     → pc += encoded width of the opcode
    Jump(pc)     → pc = target
    Halt(...)    → context frozen with outcome/return data
    CallRequest  → pc += 1; the caller of `step` runs the nested call

Boundary rules, checked before fetching:

    pc == len(code)      implicit STOP (so empty code halts with SUCCESS)
    pc >  len(code)      FAULTED "pc overrun" (a PUSH immediate ran off the end)
    step budget spent    FAULTED "step limit exceeded"

`run` drives a root context to completion. Nested calls are kept on an
explicit list of CallRecords instead of native recursion; its length never
exceeds the configured maximum call depth.
"""

from __future__ import annotations

from typing import List

from ..types.step import CallRequest, Continue, Halt, Jump, StepResult
from .calls import CallManager, CallRecord
from .context import ExecutionContext
from .opcodes import Dispatcher, opcode_width


class Interpreter:
    def __init__(self, dispatcher: Dispatcher, calls: CallManager, *, step_limit: int = 10_000_000) -> None:
        self.dispatcher = dispatcher
        self.calls = calls
        self.step_limit = int(step_limit)
        self.steps = 0

    def step(self, ctx: ExecutionContext) -> StepResult:
        if ctx.halted:
            return Halt(ctx.outcome, ctx.return_data, ctx.fault_reason)  # type: ignore[arg-type]

        code = ctx.code
        pc = ctx.pc
        if pc == len(code):
            result: StepResult = Halt.success()
        elif pc > len(code):
            result = Halt.faulted(f"pc overrun ({pc} > {len(code)})")
        elif self.steps >= self.step_limit:
            result = Halt.faulted("step limit exceeded")
        else:
            opcode = code[pc]
            self.steps += 1
            ctx.steps += 1
            result = self.dispatcher.apply(opcode, ctx)
            if isinstance(result, (Continue, CallRequest)):
                ctx.pc = pc + opcode_width(opcode)

        if isinstance(result, Jump):
            ctx.pc = result.pc
        elif isinstance(result, Halt):
            ctx.halt(result.outcome, result.return_data, result.reason)
        return result

    def run(self, root: ExecutionContext) -> ExecutionContext:
        """Run `root` and every nested call it makes until `root` halts."""
        self.steps = 0
        frames: List[CallRecord] = []
        ctx = root
        try:
            while True:
                if ctx.halted:
                    if not frames:
                        return root
                    record = frames[-1]
                    self.calls.reconcile(record)
                    frames.pop()
                    ctx = record.parent
                    continue

                result = self.step(ctx)
                if isinstance(result, CallRequest):
                    record = self.calls.enter(ctx, result)
                    if record is not None:
                        frames.append(record)
                        ctx = record.child
        except BaseException:
            self.calls.unwind(frames)
            raise


__all__ = ["Interpreter"]
