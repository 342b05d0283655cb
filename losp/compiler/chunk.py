from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from losp.compiler.opcodes import Opcode
from losp.errors import LospCompileError, SourcePos
from losp.types.function import Function
from losp.types.value import Value

U8_MAX = 0xFF
U16_MAX = 0xFFFF
S16_MIN = -0x8000
S16_MAX = 0x7FFF


@dataclass
class Chunk:
    """A chunk of bytecode with a constants table and line info.

    Operands are fixed-size big-endian bytes: u8, u16 or s16.
    """

    name: str = "<main>"
    code: bytearray = field(default_factory=bytearray)
    constants: List[Value] = field(default_factory=list)
    lines: list[tuple[int, int, int]] = field(default_factory=list)  # (ip, line, col)
    _const_index: dict[tuple[str, str], int] = field(default_factory=dict, repr=False)

    def add_const(self, value: Value) -> int:
        # Functions are never shared. Other constants are keyed on type and repr,
        # since 1, 1.0 and True (and 0.0 and -0.0) compare equal in Python.
        if isinstance(value, Function):
            return self._append_const(value)
        key = (type(value).__name__, repr(value))
        idx = self._const_index.get(key)
        if idx is None:
            idx = self._append_const(value)
            self._const_index[key] = idx
        return idx

    def _append_const(self, value: Value) -> int:
        if len(self.constants) > U16_MAX:
            raise LospCompileError(f"Too many constants in {self.name}")
        self.constants.append(value)
        return len(self.constants) - 1

    # --- Emit helpers ---
    def emit_op(self, op: Opcode, pos: SourcePos | None = None) -> int:
        ip = len(self.code)
        if pos is not None and (not self.lines or self.lines[-1][1:] != (pos.line, pos.column)):
            self.lines.append((ip, pos.line, pos.column))
        self.code.append(int(op))
        return ip

    def emit_u8(self, v: int) -> None:
        if not 0 <= v <= U8_MAX:
            raise LospCompileError(f"Operand {v} does not fit in one byte")
        self.code.append(v)

    def emit_u16(self, v: int) -> None:
        if not 0 <= v <= U16_MAX:
            raise LospCompileError(f"Operand {v} does not fit in two bytes")
        self.code.extend(((v >> 8) & 0xFF, v & 0xFF))

    def emit_s16(self, v: int) -> None:
        if not S16_MIN <= v <= S16_MAX:
            raise LospCompileError("Jump offset out of range")
        if v < 0:
            v = (1 << 16) + v
        self.emit_u16(v)

    def emit_jump(self, op: Opcode, pos: SourcePos | None = None) -> int:
        """Emit a jump with a placeholder offset; returns the operand position."""
        self.emit_op(op, pos)
        operand = len(self.code)
        self.emit_s16(0)
        return operand

    def patch_jump(self, operand: int) -> None:
        """Point the jump whose operand starts at ``operand`` to the current end."""
        self.patch_s16_at(operand, len(self.code) - (operand + 2))

    def emit_loop(self, target: int, pos: SourcePos | None = None) -> None:
        """Emit a backward JUMP to ``target``."""
        self.emit_op(Opcode.JUMP, pos)
        self.emit_s16(target - (len(self.code) + 2))

    def patch_s16_at(self, ip: int, rel: int) -> None:
        # ip points to the first byte after the opcode
        if not S16_MIN <= rel <= S16_MAX:
            raise LospCompileError("Jump offset out of range")
        if rel < 0:
            rel = (1 << 16) + rel
        self.code[ip] = (rel >> 8) & 0xFF
        self.code[ip + 1] = rel & 0xFF

    # --- reading ---
    def read_u16(self, ip: int) -> int:
        return (self.code[ip] << 8) | self.code[ip + 1]

    def read_s16(self, ip: int) -> int:
        v = self.read_u16(ip)
        return v - (1 << 16) if v & 0x8000 else v

    def line_for(self, ip: int) -> SourcePos | None:
        found = None
        for start, line, col in self.lines:
            if start > ip:
                break
            found = SourcePos(line, col)
        return found
