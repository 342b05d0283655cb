"""
  Losp Parser

Consumes tokens lazily and builds one expression tree per top-level form.
Purely structural: the shapes of special forms are checked (argument counts,
balanced parentheses) but not what the pieces mean. Whether a ``def`` target
or a ``defn`` parameter is actually a symbol is left to the compiler.

``let`` bindings are read pairwise from a flat list, where each binding is
either a parenthesised ``(name value)`` pair or a bare ``name`` followed by
its value:

    (let ((a 1) (b 2)) ...)   ; a=1 b=2
    (let ((a 1) b 1) ...)     ; a=1 b=1
    (let (a 1 b (f 2)) ...)   ; a=1 b=(f 2)
"""

from __future__ import annotations

from typing import Callable, Iterator, Iterable

from losp.errors import LospParseError
from losp.reader.lexer import Token, TokenType, lex
from losp.reader.nodes import (
    And, Binding, Call, Def, Defn, Do, Expression, If, Let, Literal, Or, SymbolRef, When, While,
)
from losp.types.nil import Nil

LITERAL_KEYWORDS = {"nil": Nil, "true": True, "false": False}


class TokenStream:
    def __init__(self, token_iter: Iterable[Token]):
        self.tokens = iter(token_iter)
        self.buffer: list[Token] = []
        self._forms: dict[str, Callable[[Token], Expression]] = {
            "def": self._parse_def,
            "let": self._parse_let,
            "if": self._parse_if,
            "when": self._parse_when,
            "do": self._parse_do,
            "defn": self._parse_defn,
            "while": self._parse_while,
            "and": self._parse_and,
            "or": self._parse_or,
        }

    def peek(self) -> Token:
        if not self.buffer:
            self.buffer.append(next(self.tokens))
        return self.buffer[0]

    def advance(self) -> Token:
        tok = self.peek()
        # EOF is sticky so the stream can be asked again after it ends
        if tok.type is not TokenType.EOF:
            self.buffer.pop(0)
        return tok

    # --- Entry points ---
    def parse_expr(self) -> Expression | None:
        """Parse the next top-level form, or return None at end of input."""
        start = self.peek()
        if start.type is TokenType.EOF:
            return None
        try:
            return self._parse_form()
        except RecursionError:
            raise LospParseError("Form nested too deeply", start.pos) from None

    def parse_all(self) -> Iterator[Expression]:
        while (expr := self.parse_expr()) is not None:
            yield expr

    # --- Forms ---
    def _parse_form(self) -> Expression:
        tok = self.advance()
        t = tok.type
        if t in (TokenType.INT, TokenType.FLOAT, TokenType.STRING):
            return Literal(tok.value, tok.pos)
        if t is TokenType.SYMBOL:
            return SymbolRef(tok.value, tok.pos)
        if t is TokenType.KEYWORD:
            if tok.value in LITERAL_KEYWORDS:
                return Literal(LITERAL_KEYWORDS[tok.value], tok.pos)
            raise LospParseError(f"Unexpected keyword '{tok.value}' outside a form", tok.pos)
        if t is TokenType.LPAREN:
            return self._parse_list(tok)
        if t is TokenType.RPAREN:
            raise LospParseError("Unexpected ')'", tok.pos)
        raise LospParseError("Unexpected end of input", tok.pos, at_eof=True)

    def _parse_list(self, open_tok: Token) -> Expression:
        head = self.peek()
        if head.type is TokenType.RPAREN:
            raise LospParseError("Empty form '()'", open_tok.pos)
        if head.type is TokenType.KEYWORD and head.value in self._forms:
            self.advance()
            return self._forms[head.value](open_tok)
        callee = self._parse_form_in(open_tok)
        args = self._parse_until_close(open_tok)
        return Call(callee, tuple(args), open_tok.pos)

    def _parse_form_in(self, open_tok: Token) -> Expression:
        """Parse one form inside the list opened by ``open_tok``."""
        tok = self.peek()
        if tok.type is TokenType.EOF:
            raise LospParseError("Expected ')' to close '('", open_tok.pos, at_eof=True)
        if tok.type is TokenType.RPAREN:
            raise LospParseError(f"Expected an expression, found {tok.describe()}", tok.pos)
        return self._parse_form()

    def _parse_until_close(self, open_tok: Token) -> list[Expression]:
        items: list[Expression] = []
        while True:
            tok = self.peek()
            if tok.type is TokenType.RPAREN:
                self.advance()
                return items
            if tok.type is TokenType.EOF:
                raise LospParseError("Expected ')' to close '('", open_tok.pos, at_eof=True)
            items.append(self._parse_form())

    def _expect_open(self, what: str) -> Token:
        tok = self.peek()
        if tok.type is TokenType.LPAREN:
            return self.advance()
        raise LospParseError(
            f"Expected '(' to start {what}, found {tok.describe()}", tok.pos, at_eof=tok.type is TokenType.EOF
        )

    def _exact(self, open_tok: Token, name: str, count: int, shape: str) -> list[Expression]:
        items = self._parse_until_close(open_tok)
        if len(items) != count:
            raise LospParseError(f"'{name}' expects {shape}, got {len(items)} argument(s)", open_tok.pos)
        return items

    # --- Special forms ---
    def _parse_def(self, open_tok: Token) -> Expression:
        target, value = self._exact(open_tok, "def", 2, "a name and a value")
        return Def(target, value, open_tok.pos)

    def _parse_if(self, open_tok: Token) -> Expression:
        cond, then, else_ = self._exact(open_tok, "if", 3, "a condition, a then branch and an else branch")
        return If(cond, then, else_, open_tok.pos)

    def _parse_when(self, open_tok: Token) -> Expression:
        cond = self._parse_form_in(open_tok)
        body = self._parse_until_close(open_tok)
        return When(cond, tuple(body), open_tok.pos)

    def _parse_while(self, open_tok: Token) -> Expression:
        cond = self._parse_form_in(open_tok)
        body = self._parse_until_close(open_tok)
        return While(cond, tuple(body), open_tok.pos)

    def _parse_do(self, open_tok: Token) -> Expression:
        return Do(tuple(self._parse_until_close(open_tok)), open_tok.pos)

    def _parse_and(self, open_tok: Token) -> Expression:
        return And(tuple(self._parse_until_close(open_tok)), open_tok.pos)

    def _parse_or(self, open_tok: Token) -> Expression:
        return Or(tuple(self._parse_until_close(open_tok)), open_tok.pos)

    def _parse_let(self, open_tok: Token) -> Expression:
        bindings_open = self._expect_open("let bindings")
        bindings: list[Binding] = []
        while True:
            tok = self.peek()
            if tok.type is TokenType.RPAREN:
                self.advance()
                break
            if tok.type is TokenType.EOF:
                raise LospParseError("Expected ')' to close let bindings", bindings_open.pos, at_eof=True)
            if tok.type is TokenType.LPAREN:
                pair_open = self.advance()
                pair = self._parse_until_close(pair_open)
                if len(pair) != 2:
                    raise LospParseError(
                        f"let binding must be (name value), got {len(pair)} item(s)", pair_open.pos
                    )
                bindings.append(Binding(pair[0], pair[1]))
            else:
                target = self._parse_form()
                if self.peek().type is TokenType.RPAREN:
                    raise LospParseError("let binding is missing its value", tok.pos)
                bindings.append(Binding(target, self._parse_form_in(bindings_open)))
        body = self._parse_until_close(open_tok)
        return Let(tuple(bindings), tuple(body), open_tok.pos)

    def _parse_defn(self, open_tok: Token) -> Expression:
        name = self._parse_form_in(open_tok)
        params_open = self._expect_open("defn parameter list")
        params = self._parse_until_close(params_open)
        body = self._parse_until_close(open_tok)
        return Defn(name, tuple(params), tuple(body), open_tok.pos)


def parse(source: str) -> Iterator[Expression]:
    """Lazily parse every top-level form in ``source``."""
    return TokenStream(lex(source)).parse_all()
