from __future__ import annotations

import logging
from typing import Callable, Sequence

from losp.errors import LospCompileError, SourcePos
from losp.reader.nodes import (
    And, Call, Def, Defn, Do, Expression, If, Let, Literal, Or, SymbolRef, When, While,
)
from losp.types.function import Function
from losp.types.nil import Nil

from .chunk import Chunk
from .opcodes import Opcode
from .scope import Scope

logger = logging.getLogger(__name__)

BINARY_OPS = {
    "+": Opcode.ADD,
    "-": Opcode.SUB,
    "*": Opcode.MUL,
    "/": Opcode.DIV,
}

COMPARISON_OPS = {
    "=": Opcode.EQ,
    "<": Opcode.LT,
    ">": Opcode.GT,
    "<=": Opcode.LE,
    ">=": Opcode.GE,
}

PRIMITIVES = frozenset((*BINARY_OPS, *COMPARISON_OPS, "not", "print"))

# Net stack effect of each opcode that has a fixed one.
STACK_EFFECT = {
    Opcode.PUSH_CONST: 1,
    Opcode.PUSH_NIL: 1,
    Opcode.PUSH_TRUE: 1,
    Opcode.PUSH_FALSE: 1,
    Opcode.POP: -1,
    Opcode.DUP: 1,
    Opcode.GET_LOCAL: 1,
    Opcode.GET_GLOBAL: 1,
    Opcode.SET_GLOBAL: 0,
    Opcode.JUMP: 0,
    Opcode.JUMP_IF_FALSE: -1,
    Opcode.JUMP_IF_TRUE: -1,
    Opcode.RETURN: -1,
    Opcode.ADD: -1,
    Opcode.SUB: -1,
    Opcode.MUL: -1,
    Opcode.DIV: -1,
    Opcode.NEGATE: 0,
    Opcode.NOT: 0,
    Opcode.EQ: -1,
    Opcode.LT: -1,
    Opcode.GT: -1,
    Opcode.LE: -1,
    Opcode.GE: -1,
    Opcode.PRINT: 0,
}


class CompileCtx:
    """State for compiling one function body (or one top-level form).

    ``height`` is the number of values the code emitted so far leaves in the
    frame's stack region. Locals are addressed by the height at which their
    value was pushed, so a ``let`` binding needs no instruction of its own.
    """

    def __init__(self, name: str = "<main>"):
        self.chunk = Chunk(name=name)
        self.scope = Scope()
        self.height = 0
        self._dispatch: dict[type, Callable[[Expression], None]] = {
            Literal: self._literal,
            SymbolRef: self._symbol,
            Def: self._def,
            Let: self._let,
            If: self._if,
            When: self._when,
            Do: self._do,
            Defn: self._defn,
            While: self._while,
            And: self._and,
            Or: self._or,
            Call: self._call,
        }

    # --- Emit helpers ---
    def emit(self, op: Opcode, pos: SourcePos | None) -> None:
        self.chunk.emit_op(op, pos)
        self.height += STACK_EFFECT[op]

    def emit_u16_op(self, op: Opcode, operand: int, pos: SourcePos | None) -> None:
        self.emit(op, pos)
        self.chunk.emit_u16(operand)

    def emit_const(self, value, pos: SourcePos | None) -> None:
        self.emit_u16_op(Opcode.PUSH_CONST, self.chunk.add_const(value), pos)

    def emit_jump(self, op: Opcode, pos: SourcePos | None) -> int:
        self.height += STACK_EFFECT[op]
        return self.chunk.emit_jump(op, pos)

    # --- Entry ---
    def compile(self, expr: Expression) -> None:
        """Emit code leaving exactly one value for ``expr`` on the stack."""
        handler = self._dispatch.get(type(expr))
        if handler is None:
            raise LospCompileError(f"Cannot compile {expr!r}")
        handler(expr)

    def compile_body(self, body: Sequence[Expression], pos: SourcePos) -> None:
        """Implicit ``do``: every value but the last is discarded."""
        if not body:
            self.emit(Opcode.PUSH_NIL, pos)
            return
        for i, sub in enumerate(body):
            if i > 0:
                self.emit(Opcode.POP, sub.pos)
            self.compile(sub)

    def finish(self, pos: SourcePos | None) -> Chunk:
        self.emit(Opcode.RETURN, pos)
        return self.chunk

    # --- Atoms ---
    def _literal(self, expr: Literal) -> None:
        v = expr.value
        if v is Nil:
            self.emit(Opcode.PUSH_NIL, expr.pos)
        elif v is True:
            self.emit(Opcode.PUSH_TRUE, expr.pos)
        elif v is False:
            self.emit(Opcode.PUSH_FALSE, expr.pos)
        else:
            self.emit_const(v, expr.pos)

    def _symbol(self, expr: SymbolRef) -> None:
        slot = self.scope.resolve(expr.name)
        if slot is not None:
            self.emit_u16_op(Opcode.GET_LOCAL, slot, expr.pos)
        else:
            self.emit_u16_op(Opcode.GET_GLOBAL, self.chunk.add_const(expr.name), expr.pos)

    # --- Special forms ---
    def _def(self, expr: Def) -> None:
        name = _symbol_name(expr.target, "def name")
        self.compile(expr.value)
        self.emit_u16_op(Opcode.SET_GLOBAL, self.chunk.add_const(name), expr.pos)

    def _let(self, expr: Let) -> None:
        self.scope.begin()
        base = self.height
        for binding in expr.bindings:
            name = _symbol_name(binding.target, "let binding name")
            self.compile(binding.init)
            self.scope.declare(name, self.height - 1)
        self.compile_body(expr.body, expr.pos)
        if self.scope.end():
            self.chunk.emit_op(Opcode.TRUNCATE, expr.pos)
            self.chunk.emit_u16(base)
            self.height = base + 1

    def _if(self, expr: If) -> None:
        self.compile(expr.cond)
        else_jump = self.emit_jump(Opcode.JUMP_IF_FALSE, expr.pos)
        branch_height = self.height
        self.compile(expr.then)
        end_jump = self.emit_jump(Opcode.JUMP, expr.pos)
        self.chunk.patch_jump(else_jump)
        self.height = branch_height
        self.compile(expr.else_)
        self.chunk.patch_jump(end_jump)

    def _when(self, expr: When) -> None:
        self.compile(expr.cond)
        else_jump = self.emit_jump(Opcode.JUMP_IF_FALSE, expr.pos)
        branch_height = self.height
        self.compile_body(expr.body, expr.pos)
        end_jump = self.emit_jump(Opcode.JUMP, expr.pos)
        self.chunk.patch_jump(else_jump)
        self.height = branch_height
        self.emit(Opcode.PUSH_NIL, expr.pos)
        self.chunk.patch_jump(end_jump)

    def _do(self, expr: Do) -> None:
        self.compile_body(expr.body, expr.pos)

    def _while(self, expr: While) -> None:
        loop_start = len(self.chunk.code)
        self.compile(expr.cond)
        exit_jump = self.emit_jump(Opcode.JUMP_IF_FALSE, expr.pos)
        self.compile_body(expr.body, expr.pos)
        self.emit(Opcode.POP, expr.pos)
        self.chunk.emit_loop(loop_start, expr.pos)
        self.chunk.patch_jump(exit_jump)
        self.emit(Opcode.PUSH_NIL, expr.pos)

    def _and(self, expr: And) -> None:
        self._short_circuit(expr.operands, Opcode.JUMP_IF_FALSE, Opcode.PUSH_TRUE, expr.pos)

    def _or(self, expr: Or) -> None:
        self._short_circuit(expr.operands, Opcode.JUMP_IF_TRUE, Opcode.PUSH_NIL, expr.pos)

    def _short_circuit(self, operands: Sequence[Expression], jump: Opcode, empty: Opcode,
                       pos: SourcePos) -> None:
        # Each operand but the last: keep a copy, test it, and either jump out
        # with the copy as the result or drop it and carry on.
        if not operands:
            self.emit(empty, pos)
            return
        exits: list[int] = []
        for sub in operands[:-1]:
            self.compile(sub)
            self.emit(Opcode.DUP, pos)
            exits.append(self.emit_jump(jump, pos))
            self.emit(Opcode.POP, pos)
        self.compile(operands[-1])
        for operand in exits:
            self.chunk.patch_jump(operand)

    def _defn(self, expr: Defn) -> None:
        name = _symbol_name(expr.name, "defn name")
        params: list[str] = []
        for p in expr.params:
            pname = _symbol_name(p, "defn parameter")
            if pname in params:
                raise LospCompileError(f"Duplicate parameter '{pname}' in defn {name}", p.pos)
            params.append(pname)
        fn = compile_function(name, params, expr.body, expr.pos)
        self.emit_const(fn, expr.pos)
        self.emit_u16_op(Opcode.SET_GLOBAL, self.chunk.add_const(name), expr.pos)

    # --- Application ---
    def _call(self, expr: Call) -> None:
        callee = expr.callee
        if (
            isinstance(callee, SymbolRef)
            and callee.name in PRIMITIVES
            and self.scope.resolve(callee.name) is None
        ):
            self._primitive(callee.name, expr)
            return
        if len(expr.args) > 0xFF:
            raise LospCompileError(f"Too many arguments in call ({len(expr.args)})", expr.pos)
        self.compile(callee)
        for arg in expr.args:
            self.compile(arg)
        self.chunk.emit_op(Opcode.CALL, expr.pos)
        self.chunk.emit_u8(len(expr.args))
        self.height -= len(expr.args)

    def _primitive(self, name: str, expr: Call) -> None:
        args = expr.args
        argc = len(args)
        if name == "-" and argc == 1:
            self.compile(args[0])
            self.emit(Opcode.NEGATE, expr.pos)
        elif name in BINARY_OPS:
            if argc < 2:
                raise LospCompileError(f"'{name}' expects at least 2 arguments, got {argc}", expr.pos)
            self.compile(args[0])
            for arg in args[1:]:
                self.compile(arg)
                self.emit(BINARY_OPS[name], expr.pos)
        elif name in COMPARISON_OPS:
            _expect_args(name, args, 2, expr.pos)
            self.compile(args[0])
            self.compile(args[1])
            self.emit(COMPARISON_OPS[name], expr.pos)
        elif name == "not":
            _expect_args(name, args, 1, expr.pos)
            self.compile(args[0])
            self.emit(Opcode.NOT, expr.pos)
        elif name == "print":
            _expect_args(name, args, 1, expr.pos)
            self.compile(args[0])
            self.emit(Opcode.PRINT, expr.pos)


def _symbol_name(expr: Expression, what: str) -> str:
    if not isinstance(expr, SymbolRef):
        raise LospCompileError(f"{what} must be a symbol", expr.pos)
    return expr.name


def _expect_args(name: str, args: Sequence[Expression], count: int, pos: SourcePos) -> None:
    if len(args) != count:
        raise LospCompileError(f"'{name}' expects {count} argument(s), got {len(args)}", pos)


def compile_function(name: str, params: Sequence[str], body: Sequence[Expression],
                     pos: SourcePos) -> Function:
    """Compile a function body into its own chunk.

    Parameters occupy slots 0..N-1 of the new frame. Nothing from the
    defining scope is visible; free symbols become global lookups.
    """
    ctx = CompileCtx(name)
    for slot, pname in enumerate(params):
        ctx.scope.declare(pname, slot)
    ctx.height = len(params)
    ctx.compile_body(body, pos)
    chunk = ctx.finish(pos)
    logger.debug("compiled %s/%d: %d bytes, %d constants", name, len(params), len(chunk.code),
                 len(chunk.constants))
    return Function(name, len(params), chunk)


def compile_module(expr: Expression) -> Chunk:
    """Compile a single top-level expression into a chunk that returns its value."""
    ctx = CompileCtx()
    try:
        ctx.compile(expr)
    except RecursionError:
        raise LospCompileError("Form nested too deeply", expr.pos) from None
    return ctx.finish(expr.pos)
