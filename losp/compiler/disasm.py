from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator

from losp.types.function import Function
from losp.types.value import debug_repr

from .chunk import Chunk
from .opcodes import JUMPS, OPERAND_SIZE, OPERANDS, Opcode


@dataclass(frozen=True)
class Instruction:
    offset: int
    opcode: Opcode
    operands: tuple[int, ...]
    size: int

    @property
    def next_offset(self) -> int:
        return self.offset + self.size


def decode_instruction(chunk: Chunk, offset: int) -> Instruction:
    code = chunk.code
    op = Opcode(code[offset])
    i = offset + 1
    operands: list[int] = []
    for kind in OPERANDS.get(op, ()):
        if kind == "u8":
            operands.append(code[i])
        elif kind == "u16":
            operands.append(chunk.read_u16(i))
        else:
            operands.append(chunk.read_s16(i))
        i += OPERAND_SIZE[kind]
    return Instruction(offset, op, tuple(operands), i - offset)


def iter_instructions(chunk: Chunk) -> Iterator[Instruction]:
    offset = 0
    while offset < len(chunk.code):
        ins = decode_instruction(chunk, offset)
        yield ins
        offset = ins.next_offset


def format_instruction(chunk: Chunk, ins: Instruction) -> str:
    line = f"{ins.offset:04d}: {ins.opcode.name}"
    op = ins.opcode
    if op in (Opcode.PUSH_CONST, Opcode.GET_GLOBAL, Opcode.SET_GLOBAL):
        idx = ins.operands[0]
        shown = chunk.constants[idx]
        text = str(shown) if op is not Opcode.PUSH_CONST else debug_repr(shown)
        line += f" {idx} ({text})"
    elif op in JUMPS:
        rel = ins.operands[0]
        line += f" {rel:+d} -> {ins.next_offset + rel}"
    elif op is Opcode.CALL:
        line += f" argc={ins.operands[0]}"
    elif ins.operands:
        line += " " + " ".join(str(v) for v in ins.operands)
    return line


def disassemble_chunk(chunk: Chunk) -> str:
    out = [f"== {chunk.name} =="]
    for ins in iter_instructions(chunk):
        out.append(format_instruction(chunk, ins))
    # Append constants info
    out.append("-- constants --")
    for idx, c in enumerate(chunk.constants):
        if isinstance(c, Function):
            out.append(f"[{idx}] <Function {c.name} arity={c.arity}>")
            out.append(disassemble_chunk(c.chunk))
        else:
            out.append(f"[{idx}] {debug_repr(c)}")
    return "\n".join(out)
