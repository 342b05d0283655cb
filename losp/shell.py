"""Interactive read-compile-execute-print loop. Uses cmd as backend."""

from __future__ import annotations

import cmd
import sys

from losp.errors import LospError, LospParseError
from losp.interpreter import Interpreter
from losp.reader.parser import parse
from losp.types.value import render


class Shell(cmd.Cmd):
    """Losp interpreter shell."""
    intro = "Losp REPL. Type :quit or press Ctrl-D to exit."
    prompt = "losp> "
    secondary_prompt = "...   "  # used for unfinished forms
    _main_prompt = "losp> "

    def __init__(self, interp: Interpreter, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.interp = interp
        self._pending = ""

    def emptyline(self):
        # cmd.Cmd would repeat the previous line
        if self._pending:
            self._pending += "\n"

    def do_EOF(self, line):
        self.stdout.write("\n")
        return True

    def default(self, line):
        """Evaluates Losp source, asking for more lines while a form is open."""
        if not self._pending and line.strip() == ":quit":
            return True
        source = f"{self._pending}\n{line}" if self._pending else line
        if self._incomplete(source):
            self._pending = source
            self.prompt = self.secondary_prompt
            return False
        self._pending = ""
        self.prompt = self._main_prompt
        self.evaluate(source)
        return False

    def evaluate(self, source: str) -> None:
        try:
            result = self.interp.eval(source)
        except LospError as err:
            print(f"Error: {err}", file=sys.stderr)
            return
        self.stdout.write(render(result) + "\n")

    @staticmethod
    def _incomplete(source: str) -> bool:
        try:
            for _ in parse(source):
                pass
        except LospParseError as err:
            return err.at_eof
        except LospError:
            # reported properly when the input is evaluated
            return False
        return False
