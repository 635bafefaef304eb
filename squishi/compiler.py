"""Pipeline driver: source text through every stage up to a chosen stop stage."""

from __future__ import annotations

from .backend.javascript import generate
from .errors import UnknownOutputKind
from .frontend.analyzer import analyze
from .frontend.parse import parse
from .ir import Program
from .middleend.optimizer import optimize

OUTPUT_TYPES: list[str] = [
    "analyzed",
    "optimized",
    "js",
]


def compile_source(source: str, output_type: str) -> Program | str:
    """Compile Squishi source, stopping after the stage named by output_type.

    "analyzed" returns the typed Program, "optimized" the optimized Program,
    "js" the generated JavaScript text.
    """
    if output_type not in OUTPUT_TYPES:
        raise UnknownOutputKind("Unknown output type: " + output_type)
    program = analyze(parse(source))
    if output_type == "analyzed":
        return program
    program = optimize(program)
    if output_type == "optimized":
        return program
    return generate(program)
