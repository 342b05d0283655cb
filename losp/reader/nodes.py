"""Expression tree produced by the parser.

Nodes are immutable; the compiler reads them and never mutates them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from losp.errors import SourcePos
from losp.types.value import Value


@dataclass(frozen=True)
class Literal:
    value: Value
    pos: SourcePos


@dataclass(frozen=True)
class SymbolRef:
    name: str
    pos: SourcePos


@dataclass(frozen=True)
class Def:
    target: Expression
    value: Expression
    pos: SourcePos


@dataclass(frozen=True)
class Binding:
    target: Expression
    init: Expression


@dataclass(frozen=True)
class Let:
    bindings: tuple[Binding, ...]
    body: tuple[Expression, ...]
    pos: SourcePos


@dataclass(frozen=True)
class If:
    cond: Expression
    then: Expression
    else_: Expression
    pos: SourcePos


@dataclass(frozen=True)
class When:
    cond: Expression
    body: tuple[Expression, ...]
    pos: SourcePos


@dataclass(frozen=True)
class Do:
    body: tuple[Expression, ...]
    pos: SourcePos


@dataclass(frozen=True)
class Defn:
    name: Expression
    params: tuple[Expression, ...]
    body: tuple[Expression, ...]
    pos: SourcePos


@dataclass(frozen=True)
class While:
    cond: Expression
    body: tuple[Expression, ...]
    pos: SourcePos


@dataclass(frozen=True)
class And:
    operands: tuple[Expression, ...]
    pos: SourcePos


@dataclass(frozen=True)
class Or:
    operands: tuple[Expression, ...]
    pos: SourcePos


@dataclass(frozen=True)
class Call:
    callee: Expression
    args: tuple[Expression, ...]
    pos: SourcePos


Expression = Union[Literal, SymbolRef, Def, Let, If, When, Do, Defn, While, And, Or, Call]
