"""Compile-time lexical scope for one function being compiled.

Only locals live here. A symbol that does not resolve to a local compiles to
a global lookup by name.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Local:
    name: str
    depth: int
    slot: int


@dataclass
class Scope:
    locals: list[Local] = field(default_factory=list)
    depth: int = 0

    def begin(self) -> None:
        self.depth += 1

    def end(self) -> list[Local]:
        """Close the innermost scope and return the locals it declared."""
        closed: list[Local] = []
        while self.locals and self.locals[-1].depth == self.depth:
            closed.append(self.locals.pop())
        self.depth -= 1
        closed.reverse()
        return closed

    def declare(self, name: str, slot: int) -> Local:
        if self.locals and slot <= self.locals[-1].slot:
            raise ValueError(f"slot {slot} for '{name}' is not above {self.locals[-1].slot}")
        local = Local(name, self.depth, slot)
        self.locals.append(local)
        return local

    def resolve(self, name: str) -> int | None:
        # innermost declaration wins, which gives shadowing
        for local in reversed(self.locals):
            if local.name == name:
                return local.slot
        return None
