"""Frontend package - converts Squishi source to typed IR."""

from .analyzer import Analyzer, Context, analyze
from .parse import ParseError, Parser, parse
from .tokens import TokenizeError, tokenize

__all__ = [
    "Analyzer",
    "Context",
    "ParseError",
    "Parser",
    "TokenizeError",
    "analyze",
    "parse",
    "tokenize",
]
