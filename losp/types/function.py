from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from losp.compiler.chunk import Chunk


@dataclass(eq=False)
class Function:
    """A compiled function: its name, parameter count and body chunk.

    Functions capture nothing from the scope they are defined in, so two
    functions are only equal when they are the same object.
    """

    name: str
    arity: int
    chunk: Chunk

    def __repr__(self) -> str:
        return f"<fn {self.name}/{self.arity}>"
