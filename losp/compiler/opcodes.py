from __future__ import annotations

from enum import IntEnum


class Opcode(IntEnum):
    # Stack and constants
    PUSH_CONST = 0x01  # u16 index
    PUSH_NIL = 0x02
    PUSH_TRUE = 0x03
    PUSH_FALSE = 0x04
    POP = 0x05
    DUP = 0x06

    # Locals / globals
    GET_LOCAL = 0x10  # u16 frame-relative slot
    GET_GLOBAL = 0x11  # u16 (name constant index)
    SET_GLOBAL = 0x12  # u16 (name constant index), leaves the value
    TRUNCATE = 0x13  # u16 frame-relative height, keeps the top value

    # Control flow
    JUMP = 0x20  # s16
    JUMP_IF_FALSE = 0x21  # s16, pops the condition
    JUMP_IF_TRUE = 0x22  # s16, pops the condition
    CALL = 0x23  # u8 argc
    RETURN = 0x24

    # Arithmetic / comparison
    ADD = 0x30
    SUB = 0x31
    MUL = 0x32
    DIV = 0x33
    NEGATE = 0x34
    NOT = 0x35
    EQ = 0x36
    LT = 0x37
    GT = 0x38
    LE = 0x39
    GE = 0x3A

    # I/O
    PRINT = 0x40


# Operand layout per opcode; opcodes not listed take no operands.
OPERANDS: dict[Opcode, tuple[str, ...]] = {
    Opcode.PUSH_CONST: ("u16",),
    Opcode.GET_LOCAL: ("u16",),
    Opcode.GET_GLOBAL: ("u16",),
    Opcode.SET_GLOBAL: ("u16",),
    Opcode.TRUNCATE: ("u16",),
    Opcode.JUMP: ("s16",),
    Opcode.JUMP_IF_FALSE: ("s16",),
    Opcode.JUMP_IF_TRUE: ("s16",),
    Opcode.CALL: ("u8",),
}

OPERAND_SIZE = {"u8": 1, "u16": 2, "s16": 2}

JUMPS = frozenset((Opcode.JUMP, Opcode.JUMP_IF_FALSE, Opcode.JUMP_IF_TRUE))
