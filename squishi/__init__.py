"""Squishi compiler - public API."""

from __future__ import annotations

from .backend.javascript import generate as generate
from .compiler import OUTPUT_TYPES as OUTPUT_TYPES, compile_source as compile_source
from .errors import SquishiError as SquishiError
from .frontend.analyzer import analyze as analyze_tree
from .frontend.ast import SProgram
from .frontend.parse import parse as parse
from .ir import Program, graph as graph
from .middleend.optimizer import optimize as optimize


def analyze(source: str | SProgram) -> Program:
    """Parse (when given text) and analyze a Squishi program."""
    if isinstance(source, str):
        source = parse(source)
    return analyze_tree(source)
