"""Command-line entry point.

    losp repl            interactive, no tracing
    losp debug           interactive, with instruction tracing
    losp run <file>      run a file's forms in order
    losp debug <file>    run a file with instruction tracing
"""

from __future__ import annotations

import argparse
import logging
import sys

from losp import config
from losp.compiler.disasm import format_instruction
from losp.compiler.vm import TraceEvent
from losp.errors import LospError
from losp.interpreter import Interpreter
from losp.shell import Shell
from losp.types.value import debug_repr

USAGE = "losp repl | losp debug [file] | losp run <file>"


def print_trace(event: TraceEvent) -> None:
    stack = " ".join(f"[{debug_repr(v)}]" for v in event.stack)
    print(f"{event.function:>12} | {format_instruction(event.chunk, event.instruction):<32} {stack}",
          file=sys.stderr)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="losp", usage=USAGE, add_help=False)
    parser.add_argument("mode", choices=("repl", "debug", "run"))
    parser.add_argument("file", nargs="?")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.mode == "repl" and args.file is not None:
        parser.error("repl takes no file")
    if args.mode == "run" and args.file is None:
        parser.error("run needs a file")

    logging.basicConfig(level=config.get_log_level(), format="%(levelname)s %(name)s: %(message)s")

    observer = print_trace if args.mode == "debug" else None
    interp = Interpreter(observer=observer)

    if args.file is None:
        Shell(interp).cmdloop()
        return 0

    try:
        interp.run_file(args.file)
    except OSError as err:
        print(f"Error: cannot read {args.file}: {err.strerror}", file=sys.stderr)
        return 1
    except UnicodeDecodeError as err:
        print(f"Error: {args.file} is not valid UTF-8: {err.reason} at byte {err.start}", file=sys.stderr)
        return 1
    except LospError as err:
        print(f"Error: {err}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
