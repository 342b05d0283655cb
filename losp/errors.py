from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class SourcePos:
    line: int
    column: int

    def __str__(self) -> str:
        return f"line {self.line}, column {self.column}"


class LospError(Exception):
    """ Base class for all Losp errors"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class LospSourceError(LospError):
    """ Raised before execution for malformed source text"""

    def __init__(self, message: str, pos: SourcePos | None = None):
        super().__init__(message)
        self.pos = pos

    def __str__(self) -> str:
        if self.pos is None:
            return self.message
        return f"{self.message} at {self.pos}"


class LospLexError(LospSourceError):
    """ Raised when a token cannot be scanned"""

    def __init__(self, message: str, text: str, pos: SourcePos | None = None):
        super().__init__(message, pos)
        self.text = text


class LospParseError(LospSourceError):
    """ Raised when a form is structurally malformed"""

    def __init__(self, message: str, pos: SourcePos | None = None, at_eof: bool = False):
        super().__init__(message, pos)
        self.at_eof = at_eof


class LospCompileError(LospSourceError):
    """ Raised when a special form has an invalid shape"""


class LospRuntimeError(LospError):
    """ Base class for errors raised while the VM is running"""

    def __init__(self, message: str):
        super().__init__(message)
        self.pos: SourcePos | None = None
        self.function: str | None = None

    def __str__(self) -> str:
        where = []
        if self.function is not None:
            where.append(f"in {self.function}")
        if self.pos is not None:
            where.append(f"at {self.pos}")
        if not where:
            return self.message
        return f"{self.message} ({' '.join(where)})"


class LospTypeError(LospRuntimeError):
    """ Raised when an operation receives values of the wrong type"""


class LospArithmeticError(LospRuntimeError):
    """ Raised on integer division by zero or integer overflow"""


class LospArityError(LospRuntimeError):
    """ Raised when the number of arguments passed to a function is incorrect"""

    def __init__(self, name: str, expected: int, given: int):
        super().__init__(f"{name} expects {expected} argument(s), given {given}")
        self.expected = expected
        self.given = given


class LospUnboundSymbol(LospRuntimeError):
    """ Raised when a global is read before it is defined"""

    def __init__(self, name: str):
        super().__init__(f"Unbound symbol '{name}'")
        self.name = name


class LospStackOverflow(LospRuntimeError):
    """ Raised when the call-frame stack is exhausted"""
