"""
  Losp Lexer

- Lazy: tokens are produced by a generator as the parser asks for them.
- Restartable: iterating a Lexer again rescans from the start of the source.
- Whitespace and ``;`` comments are skipped and never emitted.
- The sequence always ends with a single EOF token.

Atoms are classified after the maximal run is matched:

    - 42, -7        -> INT
    - 1.5, .1, 2.   -> FLOAT
    - def, nil, ... -> KEYWORD
    - anything else -> SYMBOL

A run that starts like a number but is neither (``1.2.3``, ``12abc``) is a
lex error, as is an unterminated string.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterator

from losp.errors import LospLexError, SourcePos
from losp.types.value import INT64_MAX, INT64_MIN


class TokenType(Enum):
    INT = "int"
    FLOAT = "float"
    STRING = "string"
    SYMBOL = "symbol"
    KEYWORD = "keyword"
    LPAREN = "("
    RPAREN = ")"
    EOF = "end of input"


KEYWORDS = frozenset(
    ("def", "let", "if", "when", "do", "defn", "while", "nil", "true", "false", "and", "or")
)


@dataclass(frozen=True)
class Token:
    type: TokenType
    text: str
    value: Any
    pos: SourcePos
    offset: int

    def describe(self) -> str:
        if self.type is TokenType.EOF:
            return "end of input"
        if self.type in (TokenType.LPAREN, TokenType.RPAREN):
            return f"'{self.text}'"
        return f"{self.type.value} '{self.text}'"


TOKEN_RE = re.compile(
    r"(?P<comment>;[^\n]*)"  # single-line comment
    r"|(?P<lparen>\()"  # (
    r"|(?P<rparen>\))"  # )
    r'|(?P<string>"[^"]*")'  # strings, no escapes
    r'|(?P<unterminated>"[^"]*\Z)'  # string running off the end
    r'|(?P<atom>[^\s()";]+)'  # maximal run: number, keyword or symbol
)

INT_RE = re.compile(r"-?\d+\Z")
FLOAT_RE = re.compile(r"-?(?:\d+\.\d*|\.\d+)\Z")
NUMERIC_START_RE = re.compile(r"-?\.?\d")


def classify_atom(text: str, pos: SourcePos) -> tuple[TokenType, Any]:
    if INT_RE.match(text):
        value = int(text)
        if value < INT64_MIN or value > INT64_MAX:
            raise LospLexError(f"Integer literal out of range: {text}", text, pos)
        return TokenType.INT, value
    if FLOAT_RE.match(text):
        return TokenType.FLOAT, float(text)
    if NUMERIC_START_RE.match(text):
        raise LospLexError(f"Malformed number: {text}", text, pos)
    if text in KEYWORDS:
        return TokenType.KEYWORD, text
    return TokenType.SYMBOL, text


class Lexer:
    """Iterable token source over a fixed piece of text."""

    def __init__(self, source: str):
        self.source = source

    def __iter__(self) -> Iterator[Token]:
        return self._scan()

    def _scan(self) -> Iterator[Token]:
        source = self.source
        n = len(source)
        pos = 0
        line = 1
        line_start = 0

        def here(offset: int) -> SourcePos:
            return SourcePos(line, offset - line_start + 1)

        while True:
            # whitespace
            while pos < n and source[pos].isspace():
                if source[pos] == "\n":
                    line += 1
                    line_start = pos + 1
                pos += 1
            if pos >= n:
                break

            m = TOKEN_RE.match(source, pos)
            if m is None:
                # only reachable for a stray character the atom class excludes
                raise LospLexError(f"Unexpected character {source[pos]!r}", source[pos], here(pos))
            kind = m.lastgroup
            text = m.group()
            start = here(pos)

            if kind == "comment":
                pos = m.end()
                continue
            if kind == "unterminated":
                raise LospLexError("Unterminated string", text, start)
            if kind == "lparen":
                yield Token(TokenType.LPAREN, text, text, start, pos)
            elif kind == "rparen":
                yield Token(TokenType.RPAREN, text, text, start, pos)
            elif kind == "string":
                yield Token(TokenType.STRING, text, text[1:-1], start, pos)
            else:
                tok_type, value = classify_atom(text, start)
                yield Token(tok_type, text, value, start, pos)

            # strings may span lines
            newlines = text.count("\n")
            if newlines:
                line += newlines
                line_start = pos + text.rindex("\n") + 1
            pos = m.end()

        yield Token(TokenType.EOF, "", None, here(pos), pos)


def lex(source: str) -> Iterator[Token]:
    """Token generator over ``source``."""
    return iter(Lexer(source))
