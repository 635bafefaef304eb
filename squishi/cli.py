"""Command-line entry point for the Squishi compiler."""

from __future__ import annotations

import sys

from .compiler import OUTPUT_TYPES, compile_source
from .errors import SquishiError
from .ir import graph

USAGE: str = """\
squishi [OPTIONS] [INPUT] [-o OUTPUT]

Compile a Squishi program to JavaScript. Reads INPUT, or stdin when omitted.

Options:
  --output-type TYPE  Stop after stage: analyzed, optimized, js (default: js)
  -o, --output FILE   Write output to FILE instead of stdout
  --help              Show this help message
"""


class UsageError(Exception):
    """Bad command line; maps to exit code 2."""


class FileIOError(Exception):
    """Unreadable input or unwritable output; maps to exit code 1."""


def load_source(path: str | None) -> str:
    """Source text of the program at path, or of stdin when path is None."""
    if path is None:
        data = sys.stdin.buffer.read()
    else:
        try:
            with open(path, "rb") as f:
                data = f.read()
        except OSError:
            raise FileIOError("cannot open '" + path + "'") from None
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        raise FileIOError("invalid utf-8 in input") from None


def save_output(text: str, path: str | None) -> None:
    """Print text, or store it newline-terminated at path."""
    if path is None:
        print(text)
        return
    try:
        with open(path, "w", encoding="utf-8") as f:
            f.write(text + "\n")
    except OSError:
        raise FileIOError("cannot write '" + path + "'") from None


def parse_args(args: list[str]) -> tuple[str, str | None, str | None] | None:
    """Parse command-line arguments. Returns (output_type, input_file, output_file), or None after --help."""
    output_type = "js"
    input_file: str | None = None
    output_file: str | None = None
    i = 0
    while i < len(args):
        arg = args[i]
        if arg == "--help" or arg == "-h":
            return None
        elif arg == "--output-type":
            if i + 1 >= len(args):
                raise UsageError("--output-type requires an argument")
            output_type = args[i + 1]
            i += 2
        elif arg == "-o" or arg == "--output":
            if i + 1 >= len(args):
                raise UsageError(arg + " requires an argument")
            output_file = args[i + 1]
            i += 2
        elif arg.startswith("-") and arg != "-":
            raise UsageError("unknown flag '" + arg + "'")
        else:
            if input_file is not None:
                raise UsageError("unexpected argument '" + arg + "'")
            # "-" names stdin
            input_file = None if arg == "-" else arg
            i += 1
    if output_type not in OUTPUT_TYPES:
        raise UsageError("unknown output type '" + output_type + "'")
    return (output_type, input_file, output_file)


def run_pipeline(source: str, output_type: str) -> tuple[int, str]:
    """Run the compiler. Returns (exit_code, output)."""
    try:
        result = compile_source(source, output_type)
    except SquishiError as e:
        print("error: " + str(e), file=sys.stderr)
        return (1, "")
    if isinstance(result, str):
        return (0, result)
    return (0, graph(result))


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    if argv is None:
        argv = sys.argv[1:]
    try:
        parsed = parse_args(argv)
    except UsageError as e:
        print("error: " + str(e), file=sys.stderr)
        return 2
    if parsed is None:
        print(USAGE, end="")
        return 0
    output_type, input_file, output_file = parsed
    try:
        source = load_source(input_file)
        exit_code, output = run_pipeline(source, output_type)
        if exit_code == 0:
            save_output(output, output_file)
    except FileIOError as e:
        print("error: " + str(e), file=sys.stderr)
        return 1
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
