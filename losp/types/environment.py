"""Global variable table owned by a single VM instance."""

from __future__ import annotations

from typing import Iterator

from losp.errors import LospUnboundSymbol
from losp.types.value import Value


class GlobalTable:
    """Mapping from symbol names to values. ``def`` inserts or overwrites;
    there is no deletion."""

    __slots__ = ("vars",)

    def __init__(self):
        self.vars: dict[str, Value] = {}

    def define(self, name: str, value: Value) -> None:
        self.vars[name] = value

    def lookup(self, name: str) -> Value:
        try:
            return self.vars[name]
        except KeyError:
            raise LospUnboundSymbol(name) from None

    def __contains__(self, name: str) -> bool:
        return name in self.vars

    def __iter__(self) -> Iterator[str]:
        return iter(self.vars)

    def __len__(self) -> int:
        return len(self.vars)
