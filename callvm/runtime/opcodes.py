"""
callvm.runtime.opcodes — instruction set and the opcode dispatcher.

The dispatcher executes exactly one opcode against a context and reports what
the interpreter should do next as a StepResult (see callvm.types.step). It
never advances the program counter itself and never runs nested calls: CALL
produces a CallRequest that the interpreter hands to the CallManager.

Operand order
-------------
Binary operators pop `b` (top) then `a` and push `a OP b`, so
`PUSH1 5 PUSH1 3 SUB` leaves 2. Memory/copy/return style opcodes take their
first operand from the top of the stack:

    MSTORE          offset, value
    SSTORE          slot, value
    JUMPI           dest, cond
    CALLDATACOPY    mem_offset, data_offset, length       (same for CODECOPY,
                                                           RETURNDATACOPY)
    SHA3            offset, length
    LOGn            offset, length, topic1 .. topicN
    RETURN/REVERT   offset, length
    CALL            address, value, args_offset, args_size, ret_offset, ret_size

Faults raised by handlers (callvm.errors.Fault subclasses) become
`Halt(FAULTED, reason)`; REVERT becomes `Halt(REVERTED, data)`.
"""

from __future__ import annotations

import hashlib
from enum import IntEnum
from typing import Callable, Dict, Optional

from ..errors import Fault, InvalidJump, InvalidOpcode, ReturnDataOutOfBounds, Revert
from ..state.journal import Journal
from ..types.events import LogEvent
from ..types.hexutil import WORD_MASK, to_address, word_to_bytes
from ..types.step import CONTINUE, CallRequest, Halt, Jump, StepResult
from .context import ExecutionContext


class Op(IntEnum):
    # Stop and arithmetic
    STOP = 0x00
    ADD = 0x01
    MUL = 0x02
    SUB = 0x03
    DIV = 0x04
    MOD = 0x06
    EXP = 0x0A

    # Comparison & bitwise
    LT = 0x10
    GT = 0x11
    EQ = 0x14
    ISZERO = 0x15
    AND = 0x16
    OR = 0x17
    XOR = 0x18
    NOT = 0x19

    SHA3 = 0x20

    # Environment
    ADDRESS = 0x30
    ORIGIN = 0x32
    CALLER = 0x33
    CALLVALUE = 0x34
    CALLDATALOAD = 0x35
    CALLDATASIZE = 0x36
    CALLDATACOPY = 0x37
    CODESIZE = 0x38
    CODECOPY = 0x39
    RETURNDATASIZE = 0x3D
    RETURNDATACOPY = 0x3E

    # Stack, memory, storage and flow
    POP = 0x50
    MLOAD = 0x51
    MSTORE = 0x52
    MSTORE8 = 0x53
    SLOAD = 0x54
    SSTORE = 0x55
    JUMP = 0x56
    JUMPI = 0x57
    PC = 0x58
    MSIZE = 0x59
    JUMPDEST = 0x5B

    PUSH1 = 0x60
    PUSH32 = 0x7F
    DUP1 = 0x80
    DUP16 = 0x8F
    SWAP1 = 0x90
    SWAP16 = 0x9F
    LOG0 = 0xA0
    LOG4 = 0xA4

    # System
    CALL = 0xF1
    RETURN = 0xF3
    REVERT = 0xFD
    INVALID = 0xFE


def is_push(opcode: int) -> bool:
    return Op.PUSH1 <= opcode <= Op.PUSH32


def opcode_width(opcode: int) -> int:
    """Encoded size in bytes: 1, plus the immediate for PUSH1..PUSH32."""
    if is_push(opcode):
        return 1 + opcode - Op.PUSH1 + 1
    return 1


def mnemonic(opcode: int) -> str:
    if is_push(opcode):
        return f"PUSH{opcode - Op.PUSH1 + 1}"
    if Op.DUP1 <= opcode <= Op.DUP16:
        return f"DUP{opcode - Op.DUP1 + 1}"
    if Op.SWAP1 <= opcode <= Op.SWAP16:
        return f"SWAP{opcode - Op.SWAP1 + 1}"
    if Op.LOG0 <= opcode <= Op.LOG4:
        return f"LOG{opcode - Op.LOG0}"
    try:
        return Op(opcode).name
    except ValueError:
        return f"0x{opcode:02x}"


Handler = Callable[[ExecutionContext, int], Optional[StepResult]]


def _binary(fn: Callable[[int, int], int]) -> Handler:
    def handler(ctx: ExecutionContext, _op: int) -> None:
        b = ctx.stack.pop()
        a = ctx.stack.pop()
        ctx.stack.push(fn(a, b) & WORD_MASK)

    return handler


def _env_word(getter: Callable[[ExecutionContext], int]) -> Handler:
    def handler(ctx: ExecutionContext, _op: int) -> None:
        ctx.stack.push(getter(ctx))

    return handler


def _addr_word(addr: bytes) -> int:
    return int.from_bytes(addr, "big")


class Dispatcher:
    """
    Applies one opcode to a context.

    The dispatcher holds the storage journal that SLOAD/SSTORE read and write;
    contexts reference it only through here.
    """

    def __init__(self, storage: Journal) -> None:
        self.storage = storage
        self._table: Dict[int, Handler] = self._build_table()

    # ------------------------------------------------------------------ #
    # Entry point
    # ------------------------------------------------------------------ #

    def apply(self, opcode: int, ctx: ExecutionContext) -> StepResult:
        handler = self._table.get(opcode)
        try:
            if handler is None:
                raise InvalidOpcode(f"invalid opcode 0x{opcode:02x} at pc {ctx.pc}")
            result = handler(ctx, opcode)
        except Revert as rv:
            return Halt.reverted(rv.return_data)
        except Fault as f:
            return Halt.faulted(f.reason)
        return CONTINUE if result is None else result

    # ------------------------------------------------------------------ #
    # Table
    # ------------------------------------------------------------------ #

    def _build_table(self) -> Dict[int, Handler]:
        t: Dict[int, Handler] = {
            Op.STOP: self._stop,
            Op.ADD: _binary(lambda a, b: a + b),
            Op.MUL: _binary(lambda a, b: a * b),
            Op.SUB: _binary(lambda a, b: a - b),
            Op.DIV: _binary(lambda a, b: 0 if b == 0 else a // b),
            Op.MOD: _binary(lambda a, b: 0 if b == 0 else a % b),
            Op.EXP: _binary(lambda a, b: pow(a, b, 1 << 256)),
            Op.LT: _binary(lambda a, b: int(a < b)),
            Op.GT: _binary(lambda a, b: int(a > b)),
            Op.EQ: _binary(lambda a, b: int(a == b)),
            Op.AND: _binary(lambda a, b: a & b),
            Op.OR: _binary(lambda a, b: a | b),
            Op.XOR: _binary(lambda a, b: a ^ b),
            Op.ISZERO: self._iszero,
            Op.NOT: self._not,
            Op.SHA3: self._sha3,
            Op.ADDRESS: _env_word(lambda c: _addr_word(c.address)),
            Op.ORIGIN: _env_word(lambda c: _addr_word(c.origin)),
            Op.CALLER: _env_word(lambda c: _addr_word(c.caller)),
            Op.CALLVALUE: _env_word(lambda c: c.value),
            Op.CALLDATASIZE: _env_word(lambda c: c.calldata.size),
            Op.CODESIZE: _env_word(lambda c: len(c.code)),
            Op.RETURNDATASIZE: _env_word(lambda c: len(c.last_return_data)),
            Op.PC: _env_word(lambda c: c.pc),
            Op.MSIZE: _env_word(lambda c: c.memory.size),
            Op.CALLDATALOAD: self._calldataload,
            Op.CALLDATACOPY: self._calldatacopy,
            Op.CODECOPY: self._codecopy,
            Op.RETURNDATACOPY: self._returndatacopy,
            Op.POP: self._pop,
            Op.MLOAD: self._mload,
            Op.MSTORE: self._mstore,
            Op.MSTORE8: self._mstore8,
            Op.SLOAD: self._sload,
            Op.SSTORE: self._sstore,
            Op.JUMP: self._jump,
            Op.JUMPI: self._jumpi,
            Op.JUMPDEST: self._nop,
            Op.CALL: self._call,
            Op.RETURN: self._return,
            Op.REVERT: self._revert,
            Op.INVALID: self._invalid,
        }
        for op in range(Op.PUSH1, Op.PUSH32 + 1):
            t[op] = self._push
        for op in range(Op.DUP1, Op.DUP16 + 1):
            t[op] = self._dup
        for op in range(Op.SWAP1, Op.SWAP16 + 1):
            t[op] = self._swap
        for op in range(Op.LOG0, Op.LOG4 + 1):
            t[op] = self._log
        return t

    # ------------------------------------------------------------------ #
    # Handlers
    # ------------------------------------------------------------------ #

    @staticmethod
    def _stop(ctx: ExecutionContext, _op: int) -> StepResult:
        return Halt.success()

    @staticmethod
    def _nop(ctx: ExecutionContext, _op: int) -> None:
        return None

    @staticmethod
    def _invalid(ctx: ExecutionContext, op: int) -> None:
        raise InvalidOpcode(f"designated invalid instruction at pc {ctx.pc}")

    @staticmethod
    def _iszero(ctx: ExecutionContext, _op: int) -> None:
        ctx.stack.push(int(ctx.stack.pop() == 0))

    @staticmethod
    def _not(ctx: ExecutionContext, _op: int) -> None:
        ctx.stack.push(~ctx.stack.pop() & WORD_MASK)

    @staticmethod
    def _sha3(ctx: ExecutionContext, _op: int) -> None:
        offset, length = ctx.stack.pop_many(2)
        data = ctx.memory.load_range(offset, length)
        ctx.stack.push(int.from_bytes(hashlib.sha3_256(data).digest(), "big"))

    # -- stack ---------------------------------------------------------- #

    @staticmethod
    def _push(ctx: ExecutionContext, op: int) -> None:
        n = op - Op.PUSH1 + 1
        ctx.stack.push(int.from_bytes(ctx.read_code(n), "big"))

    @staticmethod
    def _pop(ctx: ExecutionContext, _op: int) -> None:
        ctx.stack.pop()

    @staticmethod
    def _dup(ctx: ExecutionContext, op: int) -> None:
        ctx.stack.dup(op - Op.DUP1 + 1)

    @staticmethod
    def _swap(ctx: ExecutionContext, op: int) -> None:
        ctx.stack.swap(op - Op.SWAP1 + 1)

    # -- memory --------------------------------------------------------- #

    @staticmethod
    def _mload(ctx: ExecutionContext, _op: int) -> None:
        ctx.stack.push(ctx.memory.load_word(ctx.stack.pop()))

    @staticmethod
    def _mstore(ctx: ExecutionContext, _op: int) -> None:
        offset, value = ctx.stack.pop_many(2)
        ctx.memory.store_word(offset, value)

    @staticmethod
    def _mstore8(ctx: ExecutionContext, _op: int) -> None:
        offset, value = ctx.stack.pop_many(2)
        ctx.memory.store_byte(offset, value)

    # -- call environment ----------------------------------------------- #

    @staticmethod
    def _calldataload(ctx: ExecutionContext, _op: int) -> None:
        ctx.stack.push(ctx.calldata.read_word(ctx.stack.pop()))

    @staticmethod
    def _calldatacopy(ctx: ExecutionContext, _op: int) -> None:
        mem_offset, data_offset, length = ctx.stack.pop_many(3)
        ctx.memory.ensure(mem_offset, length)
        ctx.memory.write(mem_offset, ctx.calldata.read_range(data_offset, length))

    @staticmethod
    def _codecopy(ctx: ExecutionContext, _op: int) -> None:
        mem_offset, code_offset, length = ctx.stack.pop_many(3)
        # The destination window bounds `length` before any padding is built.
        ctx.memory.ensure(mem_offset, length)
        chunk = ctx.code[code_offset:code_offset + length] if code_offset < len(ctx.code) else b""
        ctx.memory.write(mem_offset, chunk.ljust(length, b"\x00"))

    @staticmethod
    def _returndatacopy(ctx: ExecutionContext, _op: int) -> None:
        mem_offset, data_offset, length = ctx.stack.pop_many(3)
        buf = ctx.last_return_data
        if data_offset + length > len(buf):
            raise ReturnDataOutOfBounds(
                f"return data read [{data_offset}, {data_offset}+{length}) past {len(buf)} bytes"
            )
        ctx.memory.write(mem_offset, buf[data_offset:data_offset + length])

    # -- storage -------------------------------------------------------- #

    def _sload(self, ctx: ExecutionContext, _op: int) -> None:
        ctx.stack.push(self.storage.get(ctx.address, ctx.stack.pop()))

    def _sstore(self, ctx: ExecutionContext, _op: int) -> None:
        slot, value = ctx.stack.pop_many(2)
        self.storage.set(ctx.address, slot, value)

    # -- control flow --------------------------------------------------- #

    @staticmethod
    def _check_dest(ctx: ExecutionContext, dest: int) -> int:
        if dest not in ctx.valid_jumpdests:
            raise InvalidJump(f"invalid jump destination {dest}")
        return dest

    def _jump(self, ctx: ExecutionContext, _op: int) -> StepResult:
        return Jump(self._check_dest(ctx, ctx.stack.pop()))

    def _jumpi(self, ctx: ExecutionContext, _op: int) -> Optional[StepResult]:
        dest, cond = ctx.stack.pop_many(2)
        if cond == 0:
            return None
        return Jump(self._check_dest(ctx, dest))

    # -- events --------------------------------------------------------- #

    @staticmethod
    def _log(ctx: ExecutionContext, op: int) -> None:
        n_topics = op - Op.LOG0
        offset, length = ctx.stack.pop_many(2)
        topics = [word_to_bytes(t) for t in ctx.stack.pop_many(n_topics)]
        data = ctx.memory.load_range(offset, length)
        ctx.logs.append(LogEvent(address=ctx.address, topics=topics, data=data))

    # -- system --------------------------------------------------------- #

    @staticmethod
    def _call(ctx: ExecutionContext, _op: int) -> StepResult:
        target, value, args_offset, args_size, ret_offset, ret_size = ctx.stack.pop_many(6)
        calldata = ctx.memory.load_range(args_offset, args_size)
        # An unusable return window faults the caller before any nested context
        # exists.
        ctx.memory.ensure(ret_offset, ret_size)
        return CallRequest(
            target=to_address(target),
            value=value,
            calldata=calldata,
            ret_offset=ret_offset,
            ret_size=ret_size,
        )

    @staticmethod
    def _return(ctx: ExecutionContext, _op: int) -> StepResult:
        offset, length = ctx.stack.pop_many(2)
        return Halt.success(ctx.memory.load_range(offset, length))

    @staticmethod
    def _revert(ctx: ExecutionContext, _op: int) -> None:
        offset, length = ctx.stack.pop_many(2)
        raise Revert(return_data=ctx.memory.load_range(offset, length))


__all__ = ["Op", "Dispatcher", "is_push", "opcode_width", "mnemonic"]
