"""assert-introspect command line: dump the instrumented form of every assertion in a C file."""

from __future__ import annotations

import argparse
import logging
import sys

from . import constants
from .api import dump_diagnostics, ir_stats
from .config import InstrumentConfig


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="assert-introspect",
        description="Instrument C assert() conditions with failure diagnostics",
    )
    parser.add_argument("file", help="C source file to instrument")
    parser.add_argument("--function", "-f", default="",
                        help="Only the assertions of this function")
    parser.add_argument("--no-color", action="store_true",
                        help="Do not color subexpression values")
    parser.add_argument("--buffer-size", type=int,
                        default=constants.DIAGNOSTIC_BUFFER_SIZE,
                        help="Diagnostic buffer capacity in bytes "
                             f"(default: {constants.DIAGNOSTIC_BUFFER_SIZE})")
    parser.add_argument("--max-depth", type=int,
                        default=constants.MAX_EXPRESSION_DEPTH,
                        help="Deepest subexpression that is introspected "
                             f"(default: {constants.MAX_EXPRESSION_DEPTH})")
    parser.add_argument("--stats", action="store_true",
                        help="Print opcode counts instead of the programs")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Log every pass decision")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_arg_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    with open(args.file) as f:
        source = f.read()

    config = InstrumentConfig(
        color=not args.no_color,
        buffer_capacity=args.buffer_size,
        max_depth=args.max_depth,
    )

    try:
        if args.stats:
            for opcode, count in sorted(ir_stats(source, args.file, config, args.function).items()):
                print(f"{opcode:10} {count}")
        else:
            print(dump_diagnostics(source, args.file, config, args.function))
    except ValueError as exc:
        print(f"assert-introspect: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
