from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, TextIO

from losp import config
from losp.compiler.chunk import Chunk
from losp.compiler.compiler import compile_module
from losp.compiler.disasm import disassemble_chunk
from losp.compiler.vm import VM, Observer
from losp.reader.nodes import Expression
from losp.reader.parser import parse
from losp.types.environment import GlobalTable
from losp.types.nil import Nil
from losp.types.value import Value

logger = logging.getLogger(__name__)


class Interpreter:
    """
    Orchestrates lexing, parsing, compiling and running Losp code.
    Owns one VM, so globals persist across calls.
    """

    def __init__(self, out: TextIO | None = None, observer: Observer | None = None):
        self.vm = VM(out=out, observer=observer)

    @property
    def globals(self) -> GlobalTable:
        return self.vm.globals

    def compile(self, expr: Expression) -> Chunk:
        chunk = compile_module(expr)
        logger.debug("compiled top-level form: %d bytes, %d constants", len(chunk.code),
                     len(chunk.constants))
        if config.disasm_enabled():
            logger.debug("disassembly:\n%s", disassemble_chunk(chunk))
        return chunk

    def _run_all(self, chunks: Iterable[Chunk]) -> Value:
        result: Value = Nil
        for chunk in chunks:
            result = self.vm.run(chunk)
        return result

    def eval(self, code: str) -> Value:
        """REPL semantics: compile and run each top-level form in turn.

        An error stops the remaining forms of ``code``; globals defined by the
        forms that already ran are kept.
        """
        return self._run_all(self.compile(expr) for expr in parse(code))

    def run_source(self, code: str) -> Value:
        """File semantics: every form is compiled before any of them runs."""
        chunks = [self.compile(expr) for expr in parse(code)]
        return self._run_all(chunks)

    def run_file(self, path: str | Path) -> Value:
        source = Path(path).read_text(encoding="utf-8")
        return self.run_source(source)
