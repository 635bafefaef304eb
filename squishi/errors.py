"""Squishi errors - every failure a user can see.

All of them are fatal: the first one aborts the compilation.
"""

from __future__ import annotations


class SquishiError(Exception):
    """Base error. line and col are 1-indexed; 0 means no position is known."""

    def __init__(self, msg: str, line: int = 0, col: int = 0):
        self.msg: str = msg
        self.line: int = line
        self.col: int = col
        if line > 0:
            super().__init__("Line " + str(line) + ", col " + str(col) + ": " + msg)
        else:
            super().__init__(msg)


# ============================================================
# ANALYSIS ERRORS
# ============================================================


class AnalysisError(SquishiError):
    """Scoping, typing or control-context violation found by the analyzer."""


class AlreadyDeclared(AnalysisError):
    pass


class NotDeclared(AnalysisError):
    pass


class NotAFunction(AnalysisError):
    pass


class ArityMismatch(AnalysisError):
    pass


class TypeMismatch(AnalysisError):
    pass


class ExpectedBoolean(TypeMismatch):
    pass


class ExpectedNumber(TypeMismatch):
    pass


class ExpectedNumberOrString(TypeMismatch):
    pass


class NotInLoop(AnalysisError):
    pass


class NotInFunction(AnalysisError):
    pass


class NotIterable(AnalysisError):
    pass


# ============================================================
# DRIVER ERRORS
# ============================================================


class UnknownOutputKind(SquishiError):
    """The driver was asked to stop at a stage that does not exist."""
