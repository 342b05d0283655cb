from __future__ import annotations

# Public surface for the compiler package
from .opcodes import Opcode
from .chunk import Chunk
from .scope import Scope, Local
from .compiler import compile_module, compile_function
from .disasm import Instruction, decode_instruction, iter_instructions, disassemble_chunk
from .vm import VM, Frame, TraceEvent

__all__ = [
    "Opcode",
    "Chunk",
    "Scope",
    "Local",
    "compile_module",
    "compile_function",
    "Instruction",
    "decode_instruction",
    "iter_instructions",
    "disassemble_chunk",
    "VM",
    "Frame",
    "TraceEvent",
]
