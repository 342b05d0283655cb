import pytest
from hypothesis import given, strategies as st

from losp.errors import LospLexError, LospParseError, SourcePos
from losp.reader.lexer import Lexer, TokenType, lex
from losp.reader.nodes import Call, Def, Defn, Do, If, Let, Literal, SymbolRef, When, While, And, Or
from losp.reader.parser import TokenStream, parse
from losp.types.nil import Nil


def _types(source):
    return [t.type for t in lex(source)]


def _values(source):
    return [t.value for t in lex(source) if t.type is not TokenType.EOF]


@pytest.mark.parametrize(
    "source,expected",
    [
        ("42", [(TokenType.INT, 42)]),
        ("-7", [(TokenType.INT, -7)]),
        ("1.5", [(TokenType.FLOAT, 1.5)]),
        (".1", [(TokenType.FLOAT, 0.1)]),
        ("5.", [(TokenType.FLOAT, 5.0)]),
        ("-.5", [(TokenType.FLOAT, -0.5)]),
        ('"hello world"', [(TokenType.STRING, "hello world")]),
        ('""', [(TokenType.STRING, "")]),
        ("foo", [(TokenType.SYMBOL, "foo")]),
        ("-", [(TokenType.SYMBOL, "-")]),
        ("->", [(TokenType.SYMBOL, "->")]),
        ("<=", [(TokenType.SYMBOL, "<=")]),
        ("...", [(TokenType.SYMBOL, "...")]),
        ("def", [(TokenType.KEYWORD, "def")]),
        ("defn", [(TokenType.KEYWORD, "defn")]),
        ("nil", [(TokenType.KEYWORD, "nil")]),
        ("true false", [(TokenType.KEYWORD, "true"), (TokenType.KEYWORD, "false")]),
        ("define", [(TokenType.SYMBOL, "define")]),
        ("()", [(TokenType.LPAREN, "("), (TokenType.RPAREN, ")")]),
        (" ; comment\n a b", [(TokenType.SYMBOL, "a"), (TokenType.SYMBOL, "b")]),
        ("a;comment", [(TokenType.SYMBOL, "a")]),
        ('x"s"', [(TokenType.SYMBOL, "x"), (TokenType.STRING, "s")]),
    ]
)
def test_lexer_basic(source, expected):
    tokens = [(t.type, t.value) for t in lex(source)]
    assert tokens[:-1] == expected
    assert tokens[-1][0] is TokenType.EOF


def test_lexer_ends_with_single_eof():
    assert _types("") == [TokenType.EOF]
    assert _types("  ; only a comment") == [TokenType.EOF]
    assert _types("(a)").count(TokenType.EOF) == 1


def test_lexer_positions():
    tokens = list(lex('(def x 1.5) ; c\n  "s"'))
    assert [t.pos for t in tokens[:6]] == [
        SourcePos(1, 1), SourcePos(1, 2), SourcePos(1, 6), SourcePos(1, 8), SourcePos(1, 11), SourcePos(2, 3),
    ]


def test_lexer_multiline_string_advances_lines():
    tokens = list(lex('"a\nb" c'))
    assert tokens[0].value == "a\nb"
    assert tokens[1].pos == SourcePos(2, 4)


def test_lexer_is_restartable():
    lexer = Lexer("(defn f (a) (+ a 1))")
    assert [t.value for t in lexer] == [t.value for t in lexer]


def test_lexer_is_lazy():
    tokens = iter(Lexer("a 1.2.3"))
    assert next(tokens).value == "a"
    with pytest.raises(LospLexError):
        next(tokens)


@pytest.mark.parametrize(
    "source,text",
    [
        ("1.2.3", "1.2.3"),
        ("12abc", "12abc"),
        ("(+ 1 2..)", "2.."),
        ("9223372036854775808", "9223372036854775808"),
    ]
)
def test_lexer_malformed_numbers(source, text):
    with pytest.raises(LospLexError) as info:
        list(lex(source))
    assert info.value.text == text
    assert info.value.pos is not None


def test_lexer_unterminated_string():
    with pytest.raises(LospLexError, match="Unterminated string") as info:
        list(lex('(print "abc)'))
    assert info.value.pos == SourcePos(1, 8)


# --- Parser ---

def _parse_one(source):
    forms = list(parse(source))
    assert len(forms) == 1
    return forms[0]


@pytest.mark.parametrize(
    "source, expected",
    [
        ("nil", Nil),
        ("true", True),
        ("false", False),
        ("123", 123),
        ("3.14", 3.14),
        ('"hello"', "hello"),
    ]
)
def test_parser_literals(source, expected):
    expr = _parse_one(source)
    assert isinstance(expr, Literal)
    assert type(expr.value) is type(expected)
    assert expr.value == expected


def test_parser_symbol():
    expr = _parse_one("pi")
    assert isinstance(expr, SymbolRef)
    assert expr.name == "pi"


def test_parser_application():
    expr = _parse_one("(foo 1 (bar x))")
    assert isinstance(expr, Call)
    assert expr.callee.name == "foo"
    assert expr.args[0].value == 1
    inner = expr.args[1]
    assert isinstance(inner, Call)
    assert inner.callee.name == "bar"
    assert inner.args[0].name == "x"


def test_parser_special_forms():
    assert isinstance(_parse_one("(def x 1)"), Def)
    assert isinstance(_parse_one("(if c 1 2)"), If)
    assert isinstance(_parse_one("(when c 1 2)"), When)
    assert isinstance(_parse_one("(do)"), Do)
    assert isinstance(_parse_one("(while c)"), While)
    assert isinstance(_parse_one("(and a b)"), And)
    assert isinstance(_parse_one("(or)"), Or)

    when = _parse_one("(when c 1 2)")
    assert [e.value for e in when.body] == [1, 2]


def test_parser_defn():
    expr = _parse_one("(defn foo (a b) (+ a b) a)")
    assert isinstance(expr, Defn)
    assert expr.name.name == "foo"
    assert [p.name for p in expr.params] == ["a", "b"]
    assert len(expr.body) == 2

    empty = _parse_one("(defn nothing ())")
    assert empty.params == ()
    assert empty.body == ()


@pytest.mark.parametrize(
    "source, names, inits",
    [
        ("(let ((a 1) (b 2)) (+ a b))", ["a", "b"], [1, 2]),
        ("(let ((a 1) b 1) (= a b))", ["a", "b"], [1, 1]),
        ("(let (a 1 b 2) a)", ["a", "b"], [1, 2]),
        ("(let () 1)", [], []),
    ]
)
def test_parser_let_bindings(source, names, inits):
    expr = _parse_one(source)
    assert isinstance(expr, Let)
    assert [b.target.name for b in expr.bindings] == names
    assert [b.init.value for b in expr.bindings] == inits


def test_parser_let_bare_binding_takes_a_parenthesised_value():
    expr = _parse_one("(let (a (f 2)) a)")
    (binding,) = expr.bindings
    assert binding.target.name == "a"
    assert isinstance(binding.init, Call)


def test_parser_multiple_top_level_forms():
    stream = TokenStream(lex("(def a 1) a (print a)"))
    forms = list(stream.parse_all())
    assert [type(f) for f in forms] == [Def, SymbolRef, Call]
    assert stream.parse_expr() is None


@pytest.mark.parametrize(
    "source",
    [
        "(if 1 2)",
        "(if 1 2 3 4)",
        "(def x)",
        "(def x 1 2)",
        "()",
        ")",
        "(let x 1)",
        "(let (a) a)",
        "(let ((a 1 2)) a)",
        "(defn f x x)",
        "(when)",
        "(while)",
        "def",
    ]
)
def test_parser_errors(source):
    with pytest.raises(LospParseError) as info:
        list(parse(source))
    assert not info.value.at_eof


@pytest.mark.parametrize(
    "source",
    [
        "(a b",
        "(defn f (a",
        "(let ((a 1)",
        "(if 1 2",
        "(let",
    ]
)
def test_parser_incomplete_input(source):
    with pytest.raises(LospParseError) as info:
        list(parse(source))
    assert info.value.at_eof


def test_parser_error_reports_position():
    with pytest.raises(LospParseError) as info:
        list(parse("(def a 1)\n  (if a 1)"))
    assert info.value.pos == SourcePos(2, 3)
    assert "line 2, column 3" in str(info.value)


# Nested applications of symbols and integers, rendered back to source
_atoms = st.one_of(
    st.integers(min_value=-10**6, max_value=10**6),
    st.sampled_from(["a", "b", "foo", "bar-baz", "x1"]),
)
_trees = st.recursive(
    _atoms,
    lambda children: st.lists(children, min_size=1, max_size=4).filter(lambda xs: not isinstance(xs[0], int)),
    max_leaves=12,
)


def _to_source(tree):
    if isinstance(tree, list):
        return f"({' '.join(_to_source(e) for e in tree)})"
    return str(tree)


def _shape(expr):
    if isinstance(expr, Call):
        return [_shape(expr.callee)] + [_shape(a) for a in expr.args]
    if isinstance(expr, SymbolRef):
        return expr.name
    return expr.value


@given(_trees)
def test_parser_preserves_nesting(tree):
    assert _shape(_parse_one(_to_source(tree))) == tree
