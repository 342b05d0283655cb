import math

import pytest
from hypothesis import given, strategies as st

from losp.errors import LospArithmeticError, LospTypeError
from losp.interpreter import Interpreter
from losp.types.function import Function
from losp.compiler.chunk import Chunk
from losp.types.nil import Nil
from losp.types.value import (
    INT64_MAX, INT64_MIN, arithmetic, is_truthy, render, type_name, values_equal,
)


@pytest.fixture
def run():
    interp = Interpreter()
    return interp.eval


@pytest.mark.parametrize(
    "source,expected",
    [
        ("(+ 1 2 3)", 6),
        ("(- 10 3 2)", 5),
        ("(* 2 3 4)", 24),
        ("(/ 12 3)", 4),
        ("(/ 7 2)", 3),
        ("(/ -7 2)", -3),
        ("(/ 7 -2)", -3),
        ("(/ -7 -2)", 3),
        ("(- 5)", -5),
        ("(- -2.5)", 2.5),
        ("(+ (* 2 3) (- 10 4))", 12),
        ("(+ 1 .1)", 1.1),
        ("(+ 1 2.5 3)", 6.5),
        ("(* 2 1.5)", 3.0),
        ("(/ 7.0 2)", 3.5),
        ("(/ 1 4.)", 0.25),
        ("(- 1.5 1)", 0.5),
        ("(+ -1 5 -3)", 1),
        ("(+ 9223372036854775806 1)", INT64_MAX),
        ("(- -9223372036854775807 1)", INT64_MIN),
    ]
)
def test_arithmetic(run, source, expected):
    result = run(source)
    assert type(result) is type(expected)
    assert result == expected


@pytest.mark.parametrize(
    "source,expected",
    [
        ("(= 1 1)", True),
        ("(= 1 2)", False),
        ("(= 1 1.0)", False),
        ("(= 1.5 1.5)", True),
        ('(= "a" "a")', True),
        ('(= "a" "b")', False),
        ("(= nil nil)", True),
        ("(= nil false)", False),
        ("(= true 1)", False),
        ("(= false 0)", False),
        ('(= 1 "1")', False),
        ("(< 1 2)", True),
        ("(< 2 1)", False),
        ("(< 1 2.5)", True),
        ("(> 3.5 3)", True),
        ("(<= 2 2)", True),
        ("(>= 2 3)", False),
        ("(>= 2.0 2)", True),
    ]
)
def test_comparisons(run, source, expected):
    assert run(source) is expected


@pytest.mark.parametrize("source", ["(/ 1 0)", "(/ 0 0)", "(/ 10 (- 5 5))"])
def test_integer_division_by_zero(run, source):
    with pytest.raises(LospArithmeticError):
        run(source)


@pytest.mark.parametrize(
    "source",
    [
        "(+ 9223372036854775807 1)",
        "(* 9223372036854775807 2)",
        "(- -9223372036854775808 1)",
        "(- -9223372036854775808)",
    ]
)
def test_integer_overflow(run, source):
    with pytest.raises(LospArithmeticError, match="overflow"):
        run(source)


def test_float_division_follows_ieee(run):
    assert run("(/ 1.0 0)") == math.inf
    assert run("(/ -1 0.0)") == -math.inf
    assert run("(/ 1 -0.0)") == -math.inf
    assert math.isnan(run("(/ 0.0 0)"))
    # NaN is not equal to itself
    assert run("(= (/ 0.0 0) (/ 0.0 0))") is False


@pytest.mark.parametrize(
    "source",
    [
        '(+ 1 "a")',
        "(+ true 1)",
        "(- nil 1)",
        '(* "ab" 2)',
        '(- "a")',
        "(- true)",
        '(< "a" "b")',
        "(> nil 1)",
        "(defn f () 1) (+ f 1)",
    ]
)
def test_type_errors(run, source):
    with pytest.raises(LospTypeError):
        run(source)


# --- Value helpers ---

@pytest.mark.parametrize(
    "value,text",
    [
        (1e16, "10000000000000000.0"),
        (1e-05, "0.00001"),
        (1.5e-10, "0.00000000015"),
        (-2.5e20, "-250000000000000000000.0"),
        (123.25, "123.25"),
        (math.inf, "inf"),
        (-math.inf, "-inf"),
        (math.nan, "nan"),
    ]
)
def test_render_float_is_positional(value, text):
    assert render(value) == text


def test_render():
    fn = Function("f", 0, Chunk(name="f"))
    assert [render(v) for v in (Nil, True, False, 42, -1.5, 1.0, "hi", fn)] == [
        "nil", "true", "false", "42", "-1.5", "1.0", "hi", "<fn f>",
    ]
    assert [type_name(v) for v in (Nil, True, 1, 1.0, "s", fn)] == [
        "nil", "bool", "int", "float", "string", "function",
    ]


@pytest.mark.parametrize("value", [Nil, False, 0, 0.0, ""])
def test_falsy_values(value):
    assert not is_truthy(value)


@pytest.mark.parametrize("value", [True, 1, -1, 0.5, "0", " ", Function("f", 0, Chunk())])
def test_truthy_values(value):
    assert is_truthy(value)


_ints = st.integers(min_value=-2**31, max_value=2**31)
_floats = st.floats(min_value=-1e12, max_value=1e12, allow_nan=False, allow_infinity=False)


@given(_ints, _ints)
def test_integer_addition_in_source(a, b):
    result = Interpreter().eval(f"(+ {a} {b})")
    assert type(result) is int
    assert result == a + b


@given(st.integers(min_value=-2**53, max_value=2**53), _floats)
def test_mixed_arithmetic_coerces_to_float(i, f):
    for op in "+-*":
        assert type(arithmetic(op, i, f)) is float
        assert type(arithmetic(op, f, i)) is float
    assert arithmetic("+", i, f) == float(i) + f


@given(st.integers(min_value=-10**6, max_value=10**6), st.integers(min_value=-1000, max_value=1000).filter(bool))
def test_integer_division_truncates_toward_zero(a, b):
    q = arithmetic("/", a, b)
    assert q == math.trunc(a / b)
    r = a - q * b
    assert abs(r) < abs(b)
    assert r == 0 or (r < 0) == (a < 0)


@given(st.integers(min_value=INT64_MIN, max_value=INT64_MAX))
def test_int_never_equals_float(i):
    assert values_equal(i, i)
    assert not values_equal(i, float(i))
    assert not values_equal(float(i), i)


@given(st.one_of(st.none(), st.booleans(), st.text(), _floats))
def test_equality_is_reflexive_for_non_nan(v):
    v = Nil if v is None else v
    assert values_equal(v, v)
