"""Squishi parse tree - parse-time node definitions.

Names are plain strings here; the analyzer resolves them to entities.
"""

from __future__ import annotations

from dataclasses import dataclass


# ============================================================
# POSITION
# ============================================================


@dataclass
class Pos:
    """Source position, 1-indexed."""

    line: int
    col: int


# ============================================================
# PROGRAM AND STATEMENTS
# ============================================================


@dataclass
class SProgram:
    statements: list[SStmt]


@dataclass
class SStmt:
    """Base for all statements."""

    pos: Pos


@dataclass
class SPrintStmt(SStmt):
    """speak expr;"""

    value: SExpr


@dataclass
class SVarDecl(SStmt):
    """pencil name = expr;"""

    name: str
    value: SExpr


@dataclass
class SAssignStmt(SStmt):
    """name = expr;"""

    name: str
    value: SExpr


@dataclass
class SIfStmt(SStmt):
    """if cond: then_body (else else_body)? stop.

    else_body is None, a statement list, or a nested SIfStmt for else-if.
    """

    cond: SExpr
    then_body: list[SStmt]
    else_body: list[SStmt] | SIfStmt | None


@dataclass
class SWhileStmt(SStmt):
    cond: SExpr
    body: list[SStmt]


@dataclass
class SForStmt(SStmt):
    """for pencil v = e; stop cond fastfwd v = e; body stop"""

    init: SVarDecl
    cond: SExpr
    update: SAssignStmt
    body: list[SStmt]


@dataclass
class SLoopStmt(SStmt):
    """collection.loop name: body stop"""

    collection: SExpr
    name: str
    body: list[SStmt]


@dataclass
class SParam:
    pos: Pos
    name: str


@dataclass
class SFnDecl(SStmt):
    """f name p1, p2: body stop"""

    name: str
    params: list[SParam]
    body: list[SStmt]


@dataclass
class SBreakStmt(SStmt):
    pass


@dataclass
class SReturnStmt(SStmt):
    """return expr; or bare return; when value is None."""

    value: SExpr | None


# ============================================================
# EXPRESSIONS
# ============================================================


@dataclass
class SExpr:
    """Base for all expressions."""

    pos: Pos


@dataclass
class SIntLit(SExpr):
    value: int


@dataclass
class SFloatLit(SExpr):
    value: float


@dataclass
class SBoolLit(SExpr):
    value: bool


@dataclass
class SStringLit(SExpr):
    value: str


@dataclass
class SVar(SExpr):
    name: str


@dataclass
class SArrayLit(SExpr):
    elements: list[SExpr]


@dataclass
class SIndex(SExpr):
    """obj[index]"""

    obj: SExpr
    index: SExpr


@dataclass
class SCall(SExpr):
    """name: arg, arg - an expression, or a statement when followed by ';'."""

    name: str
    args: list[SExpr]


@dataclass
class SBinaryOp(SExpr):
    op: str
    left: SExpr
    right: SExpr


@dataclass
class SUnaryOp(SExpr):
    op: str
    operand: SExpr


@dataclass
class STernary(SExpr):
    """consequent if cond otherwise alternate"""

    consequent: SExpr
    cond: SExpr
    alternate: SExpr
