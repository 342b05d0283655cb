"""Runtime values and the operations the VM performs on them.

A value is one of a closed set of Python types:

    - nil      -> the ``Nil`` singleton
    - booleans -> bool
    - integers -> int (kept within the signed 64-bit range)
    - floats   -> float
    - strings  -> str
    - functions -> losp.types.function.Function

``bool`` is a subclass of ``int`` in Python, so every check below tests
booleans first and compares exact types rather than using ``==``.
"""

from __future__ import annotations

import math
from decimal import Decimal
from typing import Callable, Union

from losp.errors import LospArithmeticError, LospTypeError
from losp.types.function import Function
from losp.types.nil import Nil, NilType

Value = Union[NilType, bool, int, float, str, Function]

INT64_MIN = -(1 << 63)
INT64_MAX = (1 << 63) - 1


def type_name(v: Value) -> str:
    if v is Nil:
        return "nil"
    if isinstance(v, bool):
        return "bool"
    if isinstance(v, int):
        return "int"
    if isinstance(v, float):
        return "float"
    if isinstance(v, str):
        return "string"
    if isinstance(v, Function):
        return "function"
    raise TypeError(f"not a Losp value: {v!r}")


def render(v: Value) -> str:
    """Textual form used by ``print`` and the REPL."""
    if v is Nil:
        return "nil"
    if isinstance(v, bool):
        return "true" if v else "false"
    if isinstance(v, int):
        return str(v)
    if isinstance(v, float):
        return _render_float(v)
    if isinstance(v, str):
        return v
    if isinstance(v, Function):
        return f"<fn {v.name}>"
    raise TypeError(f"not a Losp value: {v!r}")


def _render_float(v: float) -> str:
    # Shortest round-tripping digits, written out positionally: 1e+16 prints
    # as 10000000000000000.0 and 1e-05 as 0.00001.
    text = repr(v)
    if not math.isfinite(v) or "e" not in text:
        return text
    text = format(Decimal(text), "f")
    return text if "." in text else text + ".0"


def debug_repr(v: Value) -> str:
    """Like render, but strings keep their quotes (used in traces)."""
    if isinstance(v, str):
        return f'"{v}"'
    return render(v)


def is_truthy(v: Value) -> bool:
    if v is Nil:
        return False
    if isinstance(v, bool):
        return v
    if isinstance(v, (int, float, str)):
        return bool(v)
    return True


def values_equal(a: Value, b: Value) -> bool:
    """Structural equality: same variant and same payload, no coercion."""
    if type(a) is not type(b):
        return False
    if isinstance(a, Function):
        return a is b
    return a == b


# --- Arithmetic ---

def _is_number(v: Value) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)


def _check_int(result: int, op: str) -> int:
    if result < INT64_MIN or result > INT64_MAX:
        raise LospArithmeticError(f"Integer overflow in '{op}'")
    return result


def _int_div(a: int, b: int) -> int:
    if b == 0:
        raise LospArithmeticError(f"Division by zero: (/ {a} {b})")
    q = abs(a) // abs(b)
    return -q if (a < 0) != (b < 0) else q


def _float_div(a: float, b: float) -> float:
    if b == 0.0:
        # IEEE semantics rather than Python's ZeroDivisionError
        if a == 0.0 or math.isnan(a):
            return math.nan
        return math.copysign(math.inf, a) * math.copysign(1.0, b)
    return a / b


_INT_OPS: dict[str, Callable[[int, int], int]] = {
    "+": lambda a, b: a + b,
    "-": lambda a, b: a - b,
    "*": lambda a, b: a * b,
    "/": _int_div,
}

_FLOAT_OPS: dict[str, Callable[[float, float], float]] = {
    "+": lambda a, b: a + b,
    "-": lambda a, b: a - b,
    "*": lambda a, b: a * b,
    "/": _float_div,
}


def arithmetic(op: str, a: Value, b: Value) -> Value:
    """Apply a binary arithmetic operator.

    Int op Int stays Int; if either side is a Float both are coerced to
    Float. Anything else is a type error.
    """
    if not (_is_number(a) and _is_number(b)):
        raise LospTypeError(
            f"Cannot apply '{op}' to {type_name(a)} {debug_repr(a)} and {type_name(b)} {debug_repr(b)}"
        )
    if isinstance(a, int) and isinstance(b, int):
        return _check_int(_INT_OPS[op](a, b), op)
    return _FLOAT_OPS[op](float(a), float(b))


def negate(v: Value) -> Value:
    if not _is_number(v):
        raise LospTypeError(f"Cannot negate {type_name(v)} {debug_repr(v)}")
    if isinstance(v, int):
        return _check_int(-v, "-")
    return -v


_COMPARISONS: dict[str, Callable[[float, float], bool]] = {
    "<": lambda a, b: a < b,
    ">": lambda a, b: a > b,
    "<=": lambda a, b: a <= b,
    ">=": lambda a, b: a >= b,
}


def compare(op: str, a: Value, b: Value) -> bool:
    if not (_is_number(a) and _is_number(b)):
        raise LospTypeError(
            f"Cannot compare {type_name(a)} {debug_repr(a)} with {type_name(b)} {debug_repr(b)} using '{op}'"
        )
    if isinstance(a, int) and isinstance(b, int):
        return _COMPARISONS[op](a, b)
    return _COMPARISONS[op](float(a), float(b))
