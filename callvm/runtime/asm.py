"""
callvm.runtime.asm — tiny assembler/disassembler for hand-written programs.

    assemble("PUSH1", 5, "PUSH1", 3, "SUB", "STOP")
    assemble("PUSH", 0x1234)          # PUSH2 0x1234 (narrowest width)
    assemble("PUSH4", 1)              # PUSH4 0x00000001
    assemble("PUSH20", addr_bytes)    # immediates may be bytes

An integer or bytes token is only valid right after a PUSH mnemonic.
"""

from __future__ import annotations

from typing import List, Tuple, Union

from .opcodes import Op, is_push, mnemonic, opcode_width

Token = Union[str, int, bytes]


def _opcode_for(name: str) -> int:
    name = name.strip().upper()
    for prefix, base, lo, hi in (
        ("PUSH", Op.PUSH1, 1, 32),
        ("DUP", Op.DUP1, 1, 16),
        ("SWAP", Op.SWAP1, 1, 16),
        ("LOG", Op.LOG0, 0, 4),
    ):
        if name.startswith(prefix) and name[len(prefix):].isdigit():
            n = int(name[len(prefix):])
            if not lo <= n <= hi:
                raise ValueError(f"bad mnemonic {name!r}")
            return base + n - lo
    try:
        return Op[name]
    except KeyError:
        raise ValueError(f"unknown mnemonic {name!r}") from None


def _immediate(value: Union[int, bytes], width: int) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        if len(value) > width:
            raise ValueError(f"immediate of {len(value)} bytes does not fit PUSH{width}")
        return bytes(value).rjust(width, b"\x00")
    if value < 0 or value.bit_length() > 8 * width:
        raise ValueError(f"immediate {value} does not fit PUSH{width}")
    return value.to_bytes(width, "big")


def assemble(*tokens: Token) -> bytes:
    out = bytearray()
    i = 0
    while i < len(tokens):
        tok = tokens[i]
        if not isinstance(tok, str):
            raise ValueError(f"unexpected immediate {tok!r} at token {i}")
        if tok.strip().upper() == "PUSH":
            if i + 1 >= len(tokens):
                raise ValueError("PUSH needs an immediate")
            value = tokens[i + 1]
            if isinstance(value, str):
                raise ValueError("PUSH immediate must be int or bytes")
            if isinstance(value, (bytes, bytearray)):
                width = max(1, len(value))
            else:
                width = max(1, (value.bit_length() + 7) // 8)
            if width > 32:
                raise ValueError("PUSH immediate wider than 32 bytes")
            out.append(Op.PUSH1 + width - 1)
            out += _immediate(value, width)
            i += 2
            continue
        op = _opcode_for(tok)
        out.append(op)
        if is_push(op):
            if i + 1 >= len(tokens) or isinstance(tokens[i + 1], str):
                raise ValueError(f"{tok} needs an immediate")
            out += _immediate(tokens[i + 1], opcode_width(op) - 1)  # type: ignore[arg-type]
            i += 2
        else:
            i += 1
    return bytes(out)


def disassemble(code: bytes) -> List[Tuple[int, str, bytes]]:
    """[(offset, mnemonic, immediate)] for `code`; truncated immediates are zero-padded."""
    out: List[Tuple[int, str, bytes]] = []
    pc = 0
    while pc < len(code):
        op = code[pc]
        width = opcode_width(op)
        imm = code[pc + 1:pc + width].ljust(width - 1, b"\x00")
        out.append((pc, mnemonic(op), imm))
        pc += width
    return out


__all__ = ["assemble", "disassemble"]
