from __future__ import annotations

import hashlib

import pytest

from callvm.runtime.asm import assemble
from callvm.types.hexutil import WORD_MASK, to_address
from callvm.types.status import Outcome

ALICE = to_address(0xA1)
USER = to_address(0xEE)

# MSTORE the top of the stack at offset 0 and return that word.
RET_TOP = ("PUSH1", 0, "MSTORE", "PUSH1", 32, "PUSH1", 0, "RETURN")


def word(n: int) -> bytes:
    return n.to_bytes(32, "big")


@pytest.mark.parametrize(
    "body,expected",
    [
        (("PUSH1", 5, "PUSH1", 3, "ADD"), 8),
        (("PUSH1", 5, "PUSH1", 3, "SUB"), 2),
        (("PUSH1", 3, "PUSH1", 5, "SUB"), WORD_MASK - 1),
        (("PUSH1", 6, "PUSH1", 7, "MUL"), 42),
        (("PUSH1", 7, "PUSH1", 2, "DIV"), 3),
        (("PUSH1", 7, "PUSH1", 0, "DIV"), 0),
        (("PUSH1", 7, "PUSH1", 4, "MOD"), 3),
        (("PUSH1", 7, "PUSH1", 0, "MOD"), 0),
        (("PUSH1", 2, "PUSH1", 10, "EXP"), 1024),
        (("PUSH1", 2, "PUSH2", 256, "EXP"), 0),
        (("PUSH1", 1, "PUSH1", 2, "LT"), 1),
        (("PUSH1", 1, "PUSH1", 2, "GT"), 0),
        (("PUSH1", 9, "PUSH1", 9, "EQ"), 1),
        (("PUSH1", 0, "ISZERO"), 1),
        (("PUSH1", 0x0F, "PUSH1", 0x3C, "AND"), 0x0C),
        (("PUSH1", 0x0F, "PUSH1", 0x30, "OR"), 0x3F),
        (("PUSH1", 0xFF, "PUSH1", 0x0F, "XOR"), 0xF0),
        (("PUSH1", 0, "NOT"), WORD_MASK),
        (("PUSH1", 1, "PUSH1", 2, "SWAP1", "SUB"), 1),
        (("PUSH1", 4, "PUSH1", 1, "DUP2", "ADD", "ADD"), 9),
        (("PUSH1", 0, "POP", "PC"), 3),
    ],
)
def test_arithmetic_and_stack_ops(run_code, body, expected):
    res = run_code(assemble(*body, *RET_TOP))
    assert res.outcome is Outcome.SUCCESS
    assert res.return_data == word(expected)


def test_empty_code_succeeds_with_no_data(run_code):
    res = run_code(b"")
    assert res.as_pair() == (True, b"")
    assert res.steps == 0


def test_stop_and_falling_off_the_end(run_code):
    assert run_code(assemble("STOP")).as_pair() == (True, b"")
    res = run_code(assemble("PUSH1", 1, "POP"))
    assert res.as_pair() == (True, b"")
    assert res.steps == 2


def test_sha3_of_memory(run_code):
    res = run_code(assemble("PUSH1", 32, "PUSH1", 0, "SHA3", *RET_TOP))
    assert res.return_data == hashlib.sha3_256(b"\x00" * 32).digest()


def test_calldata_ops(run_code):
    cd = word(0x42) + b"\x99"
    assert run_code(assemble("PUSH1", 0, "CALLDATALOAD", *RET_TOP), cd).return_data == word(0x42)
    assert run_code(assemble("CALLDATASIZE", *RET_TOP), cd).return_data == word(33)
    # Reading past the end pads with zeros.
    padded = run_code(assemble("PUSH1", 32, "CALLDATALOAD", *RET_TOP), cd).return_data
    assert padded == b"\x99" + b"\x00" * 31

    copy = assemble(
        "PUSH1", 2, "PUSH1", 0, "PUSH1", 0, "CALLDATACOPY",
        "PUSH1", 2, "PUSH1", 0, "RETURN",
    )
    assert run_code(copy, b"hi!").return_data == b"hi"


def test_code_ops(run_code):
    code = assemble("CODESIZE", *RET_TOP)
    assert run_code(code).return_data == word(len(code))

    copy = assemble("PUSH1", 4, "PUSH1", 0, "PUSH1", 0, "CODECOPY", "PUSH1", 4, "PUSH1", 0, "RETURN")
    assert run_code(copy).return_data == copy[:4]


def test_environment_words(engine_for):
    def env_of(op: str) -> int:
        eng = engine_for({ALICE: assemble(op, *RET_TOP)})
        return int.from_bytes(eng.execute(ALICE, caller=USER, value=5).return_data, "big")

    assert env_of("ADDRESS") == int.from_bytes(ALICE, "big")
    assert env_of("CALLER") == int.from_bytes(USER, "big")
    assert env_of("ORIGIN") == int.from_bytes(USER, "big")
    assert env_of("CALLVALUE") == 5


def test_memory_ops(run_code):
    res = run_code(assemble("PUSH1", 0xAB, "PUSH1", 33, "MSTORE8", "MSIZE", *RET_TOP))
    assert res.return_data == word(64)
    res = run_code(assemble("PUSH1", 0xAB, "PUSH1", 31, "MSTORE8", "PUSH1", 0, "MLOAD", *RET_TOP))
    assert res.return_data == word(0xAB)


def test_jumpi_taken_and_not_taken(run_code):
    # PUSH1 cond(0) PUSH1 6(2) JUMPI(4) STOP(5) JUMPDEST(6) ...
    taken = assemble("PUSH1", 1, "PUSH1", 6, "JUMPI", "INVALID", "JUMPDEST", "PUSH1", 9, *RET_TOP)
    assert run_code(taken).return_data == word(9)
    not_taken = assemble("PUSH1", 0, "PUSH1", 6, "JUMPI", "STOP", "JUMPDEST", "INVALID")
    assert run_code(not_taken).as_pair() == (True, b"")


def test_jump_to_non_jumpdest_faults(run_code):
    res = run_code(assemble("PUSH1", 3, "JUMP", "STOP"))
    assert res.outcome is Outcome.FAULTED
    assert "invalid jump" in res.fault_reason


def test_jump_into_push_data_faults(run_code):
    # Byte 1 is 0x5b but belongs to the PUSH1 immediate.
    res = run_code(assemble("PUSH1", 0x5B, "POP", "PUSH1", 1, "JUMP"))
    assert res.outcome is Outcome.FAULTED


def test_stack_underflow_faults(run_code):
    res = run_code(assemble("ADD"))
    assert res.as_pair() == (False, b"")
    assert res.outcome is Outcome.FAULTED
    assert "underflow" in res.fault_reason


def test_stack_overflow_faults(run_code):
    res = run_code(assemble("PUSH1", 1, "PUSH1", 1, "PUSH1", 1), max_stack_items=2)
    assert res.outcome is Outcome.FAULTED
    assert "overflow" in res.fault_reason


def test_unknown_and_designated_invalid_opcodes(run_code):
    res = run_code(bytes([0x0C]))
    assert res.outcome is Outcome.FAULTED
    assert res.fault_reason == "invalid opcode 0x0c at pc 0"
    assert run_code(assemble("INVALID")).outcome is Outcome.FAULTED


def test_push_running_off_the_end_faults(run_code):
    res = run_code(bytes([0x61, 0x01]))  # PUSH2 with one byte of immediate
    assert res.outcome is Outcome.FAULTED
    assert "pc overrun" in res.fault_reason


def test_memory_limit_faults(run_code):
    res = run_code(assemble("PUSH1", 1, "PUSH1", 64, "MSTORE"), max_memory_bytes=64)
    assert res.outcome is Outcome.FAULTED
    assert "memory" in res.fault_reason


def test_revert_carries_data(run_code):
    res = run_code(assemble("PUSH1", 0xEE, "PUSH1", 0, "MSTORE", "PUSH1", 32, "PUSH1", 0, "REVERT"))
    assert res.as_pair() == (False, word(0xEE))
    assert res.outcome is Outcome.REVERTED
    assert res.fault_reason is None


def test_returndata_at_root_is_empty(run_code):
    assert run_code(assemble("RETURNDATASIZE", *RET_TOP)).return_data == word(0)
    res = run_code(assemble("PUSH1", 1, "PUSH1", 0, "PUSH1", 0, "RETURNDATACOPY"))
    assert res.outcome is Outcome.FAULTED
    assert "return data" in res.fault_reason


def test_log_records_topics_and_data(run_code):
    code = assemble(
        "PUSH1", 0x77, "PUSH1", 0, "MSTORE8",
        "PUSH1", 7, "PUSH1", 1, "PUSH1", 0, "LOG1",
    )
    res = run_code(code)
    assert res.success
    (ev,) = res.logs
    assert ev.address == ALICE
    assert ev.topics == (word(7),)
    assert ev.data == b"\x77"


def test_step_limit_stops_infinite_loop(run_code):
    res = run_code(assemble("JUMPDEST", "PUSH1", 0, "JUMP"), step_limit=100)
    assert res.outcome is Outcome.FAULTED
    assert res.fault_reason == "step limit exceeded"
    assert res.steps == 100


@pytest.mark.parametrize("op", ["CALLDATACOPY", "CODECOPY"])
@pytest.mark.parametrize("length", [1 << 40, 1 << 255])
def test_huge_copy_length_faults(run_code, op, length):
    res = run_code(assemble("PUSH", length, "PUSH", 0, "PUSH", 0, op), b"abc")
    assert res.as_pair() == (False, b"")
    assert res.outcome is Outcome.FAULTED
    assert "memory" in res.fault_reason


def test_huge_call_return_window_faults_caller(run_code):
    # ret_size, ret_offset, args_size, args_offset, value, address
    code = assemble("PUSH", 1 << 255, "PUSH", 0, "PUSH", 0, "PUSH", 0, "PUSH", 0, "PUSH", 0xB2, "CALL")
    res = run_code(code)
    assert res.outcome is Outcome.FAULTED
    assert "memory" in res.fault_reason
