"""Squishi analyzer - resolves names to entities and types every expression.

Turns the parse tree into IR. Scoping and control-context rules are always
enforced; type rules only apply outside function bodies, where parameters
are untyped and ANY would make most checks meaningless.
"""

from __future__ import annotations

from ..errors import (
    AlreadyDeclared,
    ArityMismatch,
    ExpectedBoolean,
    ExpectedNumber,
    ExpectedNumberOrString,
    NotAFunction,
    NotDeclared,
    NotInFunction,
    NotInLoop,
    NotIterable,
    TypeMismatch,
)
from ..ir import (
    ANY,
    BOOLEAN,
    FLOAT,
    INT,
    STRING,
    ArrayCall,
    ArrayExpression,
    ArrayType,
    AssignmentStatement,
    BinaryExpression,
    BreakStatement,
    Call,
    Conditional,
    ForStatement,
    Function,
    FunctionDeclaration,
    IfStatement,
    LoopStatement,
    PrintStatement,
    Program,
    ReturnStatement,
    ShortIfStatement,
    ShortReturnStatement,
    StringLiteral,
    Type,
    Variable,
    VariableDeclaration,
    WhileStatement,
    array_of,
    type_eq,
    type_name,
    type_of,
)
from .ast import (
    Pos,
    SArrayLit,
    SAssignStmt,
    SBinaryOp,
    SBoolLit,
    SBreakStmt,
    SCall,
    SExpr,
    SFloatLit,
    SFnDecl,
    SForStmt,
    SIfStmt,
    SIndex,
    SIntLit,
    SLoopStmt,
    SPrintStmt,
    SProgram,
    SReturnStmt,
    SStmt,
    SStringLit,
    STernary,
    SUnaryOp,
    SVar,
    SVarDecl,
    SWhileStmt,
)

ARITH_OPS: set[str] = {"-", "*", "/", "%", "**"}
COMPARE_OPS: set[str] = {"<", "<=", "==", "!=", ">=", ">"}


class Context:
    """One lexical scope plus the control facts that hold inside it."""

    def __init__(
        self,
        parent: Context | None = None,
        in_loop: bool = False,
        function: Function | None = None,
    ):
        self.parent: Context | None = parent
        self.locals: dict[str, Variable | Function] = {}
        self.in_loop: bool = in_loop
        self.function: Function | None = function

    def child(self, in_loop: bool, function: Function | None = None) -> Context:
        """New nested scope; function is inherited unless a new one is entered."""
        if function is None:
            function = self.function
        return Context(self, in_loop, function)

    @property
    def strict(self) -> bool:
        return self.function is None

    def declare(self, name: str, entity: Variable | Function, pos: Pos) -> None:
        # Shadowing an outer scope is allowed; redeclaring in this one is not
        if name in self.locals:
            raise AlreadyDeclared(
                "Identifier " + name + " already declared", pos.line, pos.col
            )
        self.locals[name] = entity

    def resolve(self, name: str, pos: Pos) -> Variable | Function:
        ctx: Context | None = self
        while ctx is not None:
            if name in ctx.locals:
                return ctx.locals[name]
            ctx = ctx.parent
        raise NotDeclared("Identifier " + name + " not declared", pos.line, pos.col)


def _is_any(t: Type) -> bool:
    return t.kind == "any"


def _is_number(t: Type) -> bool:
    return _is_any(t) or type_eq(t, INT) or type_eq(t, FLOAT)


def _compatible(a: Type, b: Type) -> bool:
    if _is_any(a) or _is_any(b):
        return True
    if isinstance(a, ArrayType) and isinstance(b, ArrayType):
        return _compatible(a.element, b.element)
    return type_eq(a, b)


class Analyzer:
    """Walks the parse tree once, threading a Context through every call."""

    def analyze(self, program: SProgram) -> Program:
        ctx = Context()
        return Program(self.stmts(program.statements, ctx))

    # ── Statements ───────────────────────────────────────────

    def stmts(self, stmts: list[SStmt], ctx: Context) -> list:
        return [self.stmt(s, ctx) for s in stmts]

    def stmt(self, stmt: SStmt, ctx: Context) -> object:
        if isinstance(stmt, SPrintStmt):
            return PrintStatement(self.expr(stmt.value, ctx))
        if isinstance(stmt, SVarDecl):
            return self.var_decl(stmt, ctx)
        if isinstance(stmt, SAssignStmt):
            return self.assign(stmt, ctx)
        if isinstance(stmt, SIfStmt):
            return self.if_stmt(stmt, ctx)
        if isinstance(stmt, SWhileStmt):
            test = self.expr(stmt.cond, ctx)
            self.check_boolean(test, stmt.cond.pos, ctx)
            body = self.stmts(stmt.body, ctx.child(in_loop=True))
            return WhileStatement(test, body)
        if isinstance(stmt, SForStmt):
            return self.for_stmt(stmt, ctx)
        if isinstance(stmt, SLoopStmt):
            return self.loop_stmt(stmt, ctx)
        if isinstance(stmt, SFnDecl):
            return self.fn_decl(stmt, ctx)
        if isinstance(stmt, SBreakStmt):
            if not ctx.in_loop:
                raise NotInLoop(
                    "Break can only appear in a loop", stmt.pos.line, stmt.pos.col
                )
            return BreakStatement()
        if isinstance(stmt, SReturnStmt):
            if ctx.function is None:
                raise NotInFunction(
                    "Return can only appear in a function", stmt.pos.line, stmt.pos.col
                )
            if stmt.value is None:
                return ShortReturnStatement()
            return ReturnStatement(self.expr(stmt.value, ctx))
        if isinstance(stmt, SCall):
            return self.call(stmt, ctx)
        raise TypeError("unknown statement: " + type(stmt).__name__)

    def var_decl(self, stmt: SVarDecl, ctx: Context) -> VariableDeclaration:
        # Initializer first, so `pencil x = x;` sees the outer x
        initializer = self.expr(stmt.value, ctx)
        variable = Variable(stmt.name, type_of(initializer))
        ctx.declare(stmt.name, variable, stmt.pos)
        return VariableDeclaration(variable, initializer)

    def assign(self, stmt: SAssignStmt, ctx: Context) -> AssignmentStatement:
        target = ctx.resolve(stmt.name, stmt.pos)
        if isinstance(target, Function):
            raise TypeMismatch(
                "Cannot assign to function " + stmt.name, stmt.pos.line, stmt.pos.col
            )
        source = self.expr(stmt.value, ctx)
        if ctx.strict and not _compatible(target.type, type_of(source)):
            raise TypeMismatch(
                "Cannot assign a "
                + type_name(type_of(source))
                + " to a "
                + type_name(target.type),
                stmt.pos.line,
                stmt.pos.col,
            )
        return AssignmentStatement(target, source)

    def if_stmt(self, stmt: SIfStmt, ctx: Context) -> object:
        test = self.expr(stmt.cond, ctx)
        self.check_boolean(test, stmt.cond.pos, ctx)
        consequence = self.stmts(stmt.then_body, ctx)
        if stmt.else_body is None:
            return ShortIfStatement(test, consequence)
        if isinstance(stmt.else_body, SIfStmt):
            return IfStatement(test, consequence, self.if_stmt(stmt.else_body, ctx))
        return IfStatement(test, consequence, self.stmts(stmt.else_body, ctx))

    def for_stmt(self, stmt: SForStmt, ctx: Context) -> ForStatement:
        # Header and body share one scope, so the counter is visible in both
        inner = ctx.child(in_loop=True)
        declaration = self.var_decl(stmt.init, inner)
        test = self.expr(stmt.cond, inner)
        self.check_boolean(test, stmt.cond.pos, inner)
        increment = self.assign(stmt.update, inner)
        body = self.stmts(stmt.body, inner)
        return ForStatement(declaration, test, increment, body)

    def loop_stmt(self, stmt: SLoopStmt, ctx: Context) -> LoopStatement:
        collection = self.expr(stmt.collection, ctx)
        t = type_of(collection)
        if isinstance(t, ArrayType):
            element = t.element
        elif type_eq(t, INT) or type_eq(t, STRING) or _is_any(t):
            element = t
        else:
            pos = stmt.collection.pos
            raise NotIterable(
                "Cannot loop over a " + type_name(t), pos.line, pos.col
            )
        inner = ctx.child(in_loop=True)
        iterator = Variable(stmt.name, element)
        inner.declare(stmt.name, iterator, stmt.pos)
        body = self.stmts(stmt.body, inner)
        return LoopStatement(iterator, collection, body)

    def fn_decl(self, stmt: SFnDecl, ctx: Context) -> FunctionDeclaration:
        fun = Function(stmt.name)
        # Declared before the body so the function can call itself
        ctx.declare(stmt.name, fun, stmt.pos)
        inner = ctx.child(in_loop=False, function=fun)
        for p in stmt.params:
            param = Variable(p.name, ANY)
            inner.declare(p.name, param, p.pos)
            fun.params.append(param)
        body = self.stmts(stmt.body, inner)
        return FunctionDeclaration(fun, body)

    # ── Expressions ──────────────────────────────────────────

    def expr(self, expr: SExpr, ctx: Context) -> object:
        if isinstance(expr, SIntLit):
            return expr.value
        if isinstance(expr, SFloatLit):
            return expr.value
        if isinstance(expr, SBoolLit):
            return expr.value
        if isinstance(expr, SStringLit):
            return StringLiteral(expr.value)
        if isinstance(expr, SVar):
            entity = ctx.resolve(expr.name, expr.pos)
            if isinstance(entity, Function):
                raise TypeMismatch(
                    "Function " + expr.name + " cannot be used as a value",
                    expr.pos.line,
                    expr.pos.col,
                )
            return entity
        if isinstance(expr, SArrayLit):
            return self.array_lit(expr, ctx)
        if isinstance(expr, SIndex):
            return self.index(expr, ctx)
        if isinstance(expr, SCall):
            return self.call(expr, ctx)
        if isinstance(expr, SUnaryOp):
            return self.unary(expr, ctx)
        if isinstance(expr, SBinaryOp):
            return self.binary(expr, ctx)
        if isinstance(expr, STernary):
            return self.ternary(expr, ctx)
        raise TypeError("unknown expression: " + type(expr).__name__)

    def array_lit(self, expr: SArrayLit, ctx: Context) -> ArrayExpression:
        elements = [self.expr(e, ctx) for e in expr.elements]
        if not elements:
            return ArrayExpression([], array_of(ANY))
        first = type_of(elements[0])
        if ctx.strict:
            for e, src in zip(elements[1:], expr.elements[1:]):
                if not _compatible(first, type_of(e)):
                    raise TypeMismatch(
                        "Array elements must all be "
                        + type_name(first)
                        + ", found "
                        + type_name(type_of(e)),
                        src.pos.line,
                        src.pos.col,
                    )
        return ArrayExpression(elements, array_of(first))

    def index(self, expr: SIndex, ctx: Context) -> ArrayCall:
        array = self.expr(expr.obj, ctx)
        index = self.expr(expr.index, ctx)
        t = type_of(array)
        if not ctx.strict:
            if isinstance(t, ArrayType):
                return ArrayCall(array, index, t.element)
            return ArrayCall(array, index, ANY)
        if not _compatible(type_of(index), INT):
            pos = expr.index.pos
            raise TypeMismatch(
                "Index must be an int, found " + type_name(type_of(index)),
                pos.line,
                pos.col,
            )
        if isinstance(t, ArrayType):
            return ArrayCall(array, index, t.element)
        if type_eq(t, STRING):
            return ArrayCall(array, index, STRING)
        if _is_any(t):
            return ArrayCall(array, index, ANY)
        pos = expr.obj.pos
        raise TypeMismatch("Cannot index a " + type_name(t), pos.line, pos.col)

    def call(self, expr: SCall, ctx: Context) -> Call:
        callee = ctx.resolve(expr.name, expr.pos)
        if not isinstance(callee, Function):
            raise NotAFunction(
                expr.name + " is not a function", expr.pos.line, expr.pos.col
            )
        args = [self.expr(a, ctx) for a in expr.args]
        if len(args) != len(callee.params):
            raise ArityMismatch(
                "Expected "
                + str(len(callee.params))
                + " argument(s), found "
                + str(len(args)),
                expr.pos.line,
                expr.pos.col,
            )
        return Call(callee, args, ANY)

    def unary(self, expr: SUnaryOp, ctx: Context) -> BinaryExpression:
        operand = self.expr(expr.operand, ctx)
        t = type_of(operand)
        if expr.op == "!":
            if ctx.strict and not _compatible(t, BOOLEAN):
                raise ExpectedBoolean(
                    "Expected a boolean, found " + type_name(t),
                    expr.pos.line,
                    expr.pos.col,
                )
            return BinaryExpression("!", operand, None, BOOLEAN)
        if ctx.strict and not _is_number(t):
            raise ExpectedNumber(
                "Expected a number, found " + type_name(t), expr.pos.line, expr.pos.col
            )
        return BinaryExpression("-", operand, None, t)

    def binary(self, expr: SBinaryOp, ctx: Context) -> BinaryExpression:
        left = self.expr(expr.left, ctx)
        right = self.expr(expr.right, ctx)
        lt = type_of(left)
        rt = type_of(right)
        op = expr.op
        if op == "and" or op == "or":
            if ctx.strict:
                self.check_boolean(left, expr.left.pos, ctx)
                self.check_boolean(right, expr.right.pos, ctx)
            return BinaryExpression(op, left, right, BOOLEAN)
        if op in COMPARE_OPS:
            if ctx.strict:
                self.check_same(lt, rt, expr.right.pos)
            return BinaryExpression(op, left, right, BOOLEAN)
        if ctx.strict:
            if op == "+":
                if not (_is_number(lt) or _compatible(lt, STRING)):
                    raise ExpectedNumberOrString(
                        "Expected a number or string, found " + type_name(lt),
                        expr.left.pos.line,
                        expr.left.pos.col,
                    )
            else:
                for t, src in ((lt, expr.left), (rt, expr.right)):
                    if not _is_number(t):
                        raise ExpectedNumber(
                            "Expected a number, found " + type_name(t),
                            src.pos.line,
                            src.pos.col,
                        )
            self.check_same(lt, rt, expr.right.pos)
        result = rt if _is_any(lt) else lt
        return BinaryExpression(op, left, right, result)

    def ternary(self, expr: STernary, ctx: Context) -> Conditional:
        consequent = self.expr(expr.consequent, ctx)
        test = self.expr(expr.cond, ctx)
        self.check_boolean(test, expr.cond.pos, ctx)
        alternate = self.expr(expr.alternate, ctx)
        return Conditional(consequent, test, alternate, type_of(consequent))

    # ── Checks ───────────────────────────────────────────────

    def check_boolean(self, expr: object, pos: Pos, ctx: Context) -> None:
        t = type_of(expr)
        if ctx.strict and not _compatible(t, BOOLEAN):
            raise ExpectedBoolean(
                "Expected a boolean, found " + type_name(t), pos.line, pos.col
            )

    def check_same(self, a: Type, b: Type, pos: Pos) -> None:
        if not _compatible(a, b):
            raise TypeMismatch(
                "Operands do not have the same type: "
                + type_name(a)
                + " vs "
                + type_name(b),
                pos.line,
                pos.col,
            )


def analyze(program: SProgram) -> Program:
    """Resolve and type-check a parse tree, producing IR."""
    return Analyzer().analyze(program)
