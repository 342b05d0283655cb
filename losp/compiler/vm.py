from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, TextIO, Tuple

from losp import config
from losp.errors import LospArityError, LospRuntimeError, LospStackOverflow, LospTypeError
from losp.types.environment import GlobalTable
from losp.types.function import Function
from losp.types.nil import Nil
from losp.types.value import (
    Value, arithmetic, compare, debug_repr, is_truthy, negate, render, type_name, values_equal,
)

from .chunk import Chunk
from .disasm import Instruction, decode_instruction
from .opcodes import Opcode

logger = logging.getLogger(__name__)


@dataclass
class Frame:
    chunk: Chunk
    ip: int
    base: int
    name: str


@dataclass(frozen=True)
class TraceEvent:
    """What the debug tap sees before each instruction executes."""

    function: str
    depth: int
    chunk: Chunk
    instruction: Instruction
    stack: Tuple[Value, ...]


Observer = Callable[[TraceEvent], None]


class VM:
    class RunSignal:
        NORMAL = 0
        RETURN = 1

    def __init__(
        self,
        global_table: Optional[GlobalTable] = None,
        out: Optional[TextIO] = None,
        observer: Optional[Observer] = None,
        max_frames: Optional[int] = None,
    ):
        self.globals = global_table if global_table is not None else GlobalTable()
        self.out = out
        self.observer = observer
        self.max_frames = max_frames if max_frames is not None else config.get_max_frames()
        self.stack: List[Value] = []
        self.frames: List[Frame] = []
        # Opcode dispatch table
        self._dispatch: dict[int, Callable[[Frame], Tuple[int, Any]]] = {}
        self._init_dispatch()

    def _init_dispatch(self) -> None:
        d = self._dispatch
        # Stack and constants
        d[Opcode.PUSH_CONST] = self.op_push_const
        d[Opcode.PUSH_NIL] = self.op_push_nil
        d[Opcode.PUSH_TRUE] = self.op_push_true
        d[Opcode.PUSH_FALSE] = self.op_push_false
        d[Opcode.POP] = self.op_pop
        d[Opcode.DUP] = self.op_dup
        # Locals / globals
        d[Opcode.GET_LOCAL] = self.op_get_local
        d[Opcode.GET_GLOBAL] = self.op_get_global
        d[Opcode.SET_GLOBAL] = self.op_set_global
        d[Opcode.TRUNCATE] = self.op_truncate
        # Control flow
        d[Opcode.JUMP] = self.op_jump
        d[Opcode.JUMP_IF_FALSE] = self.op_jump_if_false
        d[Opcode.JUMP_IF_TRUE] = self.op_jump_if_true
        d[Opcode.CALL] = self.op_call
        d[Opcode.RETURN] = self.op_return
        # Arithmetic / comparison
        d[Opcode.ADD] = lambda frame: self._arith2("+")
        d[Opcode.SUB] = lambda frame: self._arith2("-")
        d[Opcode.MUL] = lambda frame: self._arith2("*")
        d[Opcode.DIV] = lambda frame: self._arith2("/")
        d[Opcode.NEGATE] = self.op_negate
        d[Opcode.NOT] = self.op_not
        d[Opcode.EQ] = self.op_eq
        d[Opcode.LT] = lambda frame: self._compare2("<")
        d[Opcode.GT] = lambda frame: self._compare2(">")
        d[Opcode.LE] = lambda frame: self._compare2("<=")
        d[Opcode.GE] = lambda frame: self._compare2(">=")
        # I/O
        d[Opcode.PRINT] = self.op_print

    # --- Operand helpers ---
    @staticmethod
    def _read_u16(frame: Frame) -> int:
        code = frame.chunk.code
        v = (code[frame.ip] << 8) | code[frame.ip + 1]
        frame.ip += 2
        return v

    @staticmethod
    def _read_rel16(frame: Frame) -> int:
        code = frame.chunk.code
        rel = (code[frame.ip] << 8) | code[frame.ip + 1]
        if rel & 0x8000:
            rel = rel - (1 << 16)
        frame.ip += 2
        return rel

    # --- Stack and constants ---
    def op_push_const(self, frame: Frame) -> Tuple[int, Any]:
        idx = self._read_u16(frame)
        self.push(frame.chunk.constants[idx])
        return VM.RunSignal.NORMAL, None

    def op_push_nil(self, frame: Frame) -> Tuple[int, Any]:
        self.push(Nil)
        return VM.RunSignal.NORMAL, None

    def op_push_true(self, frame: Frame) -> Tuple[int, Any]:
        self.push(True)
        return VM.RunSignal.NORMAL, None

    def op_push_false(self, frame: Frame) -> Tuple[int, Any]:
        self.push(False)
        return VM.RunSignal.NORMAL, None

    def op_pop(self, frame: Frame) -> Tuple[int, Any]:
        self.pop()
        return VM.RunSignal.NORMAL, None

    def op_dup(self, frame: Frame) -> Tuple[int, Any]:
        self.push(self.peek())
        return VM.RunSignal.NORMAL, None

    # --- Locals / globals ---
    def op_get_local(self, frame: Frame) -> Tuple[int, Any]:
        slot = self._read_u16(frame)
        self.push(self.stack[frame.base + slot])
        return VM.RunSignal.NORMAL, None

    def op_get_global(self, frame: Frame) -> Tuple[int, Any]:
        name = frame.chunk.constants[self._read_u16(frame)]
        self.push(self.globals.lookup(name))
        return VM.RunSignal.NORMAL, None

    def op_set_global(self, frame: Frame) -> Tuple[int, Any]:
        name = frame.chunk.constants[self._read_u16(frame)]
        self.globals.define(name, self.peek())
        return VM.RunSignal.NORMAL, None

    def op_truncate(self, frame: Frame) -> Tuple[int, Any]:
        height = self._read_u16(frame)
        top = self.pop()
        del self.stack[frame.base + height:]
        self.push(top)
        return VM.RunSignal.NORMAL, None

    # --- Control flow ---
    def op_jump(self, frame: Frame) -> Tuple[int, Any]:
        rel = self._read_rel16(frame)
        frame.ip += rel
        return VM.RunSignal.NORMAL, None

    def op_jump_if_false(self, frame: Frame) -> Tuple[int, Any]:
        rel = self._read_rel16(frame)
        if not is_truthy(self.pop()):
            frame.ip += rel
        return VM.RunSignal.NORMAL, None

    def op_jump_if_true(self, frame: Frame) -> Tuple[int, Any]:
        rel = self._read_rel16(frame)
        if is_truthy(self.pop()):
            frame.ip += rel
        return VM.RunSignal.NORMAL, None

    def op_call(self, frame: Frame) -> Tuple[int, Any]:
        argc = frame.chunk.code[frame.ip]
        frame.ip += 1
        callee = self.peek(argc)
        if not isinstance(callee, Function):
            raise LospTypeError(f"Cannot call {type_name(callee)} {debug_repr(callee)}")
        if callee.arity != argc:
            raise LospArityError(callee.name, callee.arity, argc)
        if len(self.frames) >= self.max_frames:
            raise LospStackOverflow(f"Stack overflow: more than {self.max_frames} nested calls")
        # Arguments already on the stack become the callee's parameter slots
        self.frames.append(Frame(chunk=callee.chunk, ip=0, base=len(self.stack) - argc, name=callee.name))
        return VM.RunSignal.NORMAL, None

    def op_return(self, frame: Frame) -> Tuple[int, Any]:
        ret = self.pop() if len(self.stack) > frame.base else Nil
        self.frames.pop()
        if not self.frames:
            del self.stack[frame.base:]
            return VM.RunSignal.RETURN, ret
        # Drop the callee itself along with its locals
        del self.stack[frame.base - 1:]
        self.push(ret)
        return VM.RunSignal.NORMAL, None

    # --- Arithmetic / comparison ---
    def _arith2(self, op: str) -> Tuple[int, Any]:
        b = self.pop()
        a = self.pop()
        self.push(arithmetic(op, a, b))
        return VM.RunSignal.NORMAL, None

    def _compare2(self, op: str) -> Tuple[int, Any]:
        b = self.pop()
        a = self.pop()
        self.push(compare(op, a, b))
        return VM.RunSignal.NORMAL, None

    def op_negate(self, frame: Frame) -> Tuple[int, Any]:
        self.push(negate(self.pop()))
        return VM.RunSignal.NORMAL, None

    def op_not(self, frame: Frame) -> Tuple[int, Any]:
        self.push(not is_truthy(self.pop()))
        return VM.RunSignal.NORMAL, None

    def op_eq(self, frame: Frame) -> Tuple[int, Any]:
        b = self.pop()
        a = self.pop()
        self.push(values_equal(a, b))
        return VM.RunSignal.NORMAL, None

    # --- I/O ---
    def op_print(self, frame: Frame) -> Tuple[int, Any]:
        out = self.out if self.out is not None else sys.stdout
        out.write(render(self.pop()) + "\n")
        self.push(Nil)
        return VM.RunSignal.NORMAL, None

    # --- Stack helpers ---
    def push(self, v: Value) -> None:
        self.stack.append(v)

    def pop(self) -> Value:
        return self.stack.pop()

    def peek(self, n: int = 0) -> Value:
        return self.stack[-1 - n]

    # --- Execution ---
    def _trace(self, frame: Frame) -> None:
        self.observer(TraceEvent(
            function=frame.name,
            depth=len(self.frames),
            chunk=frame.chunk,
            instruction=decode_instruction(frame.chunk, frame.ip),
            stack=tuple(self.stack),
        ))

    def run(self, chunk: Chunk) -> Value:
        """Execute a top-level chunk to completion and return its value.

        Globals persist across runs; the operand and frame stacks do not.
        """
        self.stack = []
        self.frames = [Frame(chunk=chunk, ip=0, base=0, name=chunk.name)]
        logger.debug("run %s (%d bytes)", chunk.name, len(chunk.code))

        while True:
            frame = self.frames[-1]
            code = frame.chunk.code
            if frame.ip >= len(code):
                # Implicit RETURN at chunk end for the CURRENT frame
                signal, value = self.op_return(frame)
                if signal == VM.RunSignal.RETURN:
                    return value
                continue
            if self.observer is not None:
                self._trace(frame)
            start = frame.ip
            op = code[start]
            frame.ip += 1

            handler = self._dispatch.get(op)
            if handler is None:
                raise LospRuntimeError(f"Unknown opcode: {op}")
            try:
                signal, value = handler(frame)
            except LospRuntimeError as err:
                self._fail(err, frame, start)
                raise
            if signal == VM.RunSignal.RETURN:
                return value

    def _fail(self, err: LospRuntimeError, frame: Frame, ip: int) -> None:
        if err.pos is None:
            err.pos = frame.chunk.line_for(ip)
            err.function = frame.name
        logger.debug("runtime error in %s: %s", frame.name, err.message)
        self.stack = []
        self.frames = []
