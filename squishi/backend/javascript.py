"""JavaScript backend: optimized Squishi IR -> JavaScript source."""

from __future__ import annotations

from ..ir import (
    ANY,
    INT,
    ArrayCall,
    ArrayExpression,
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
    Variable,
    VariableDeclaration,
    WhileStatement,
    type_eq,
    type_of,
)
from .util import escape_string, number_literal

# Iterates an untyped collection, counting 0..n-1 when it holds a number
ITER_HELPER = [
    "function _iter(c) {",
    'return typeof c === "number" ? Array.from({length: c}, (_, k) => k) : c;',
    "}",
]


class JsBackend:
    """Emits one line per statement or block delimiter, without indentation.

    Declarations directly inside an if branch are emitted with `var`, since
    Squishi branches share the enclosing scope while JavaScript blocks do not.
    """

    def __init__(self) -> None:
        self.lines: list[str] = []
        self._names: dict[Variable | Function, str] = {}
        self._count = 0
        self._in_branch = False
        self._needs_iter = False

    def emit(self, program: Program) -> str:
        """Emit code from an optimized Program."""
        self.lines = []
        self._names = {}
        self._count = 0
        self._in_branch = False
        self._needs_iter = False
        self._emit_stmts(program.statements)
        if self._needs_iter:
            self.lines.extend(ITER_HELPER)
        return "\n".join(self.lines)

    def _line(self, text: str) -> None:
        self.lines.append(text)

    def _fresh(self, base: str) -> str:
        self._count += 1
        return base + "_" + str(self._count)

    def _name(self, entity: Variable | Function) -> str:
        """Emitted name for an entity, unique per entity within one emit."""
        if entity not in self._names:
            self._names[entity] = self._fresh(entity.name)
        return self._names[entity]

    # ── Statements ───────────────────────────────────────────

    def _emit_stmts(self, stmts: list) -> None:
        for stmt in stmts:
            self._emit_stmt(stmt)

    def _emit_block(self, stmts: list, in_branch: bool) -> None:
        saved = self._in_branch
        self._in_branch = in_branch
        self._emit_stmts(stmts)
        self._in_branch = saved

    def _emit_stmt(self, stmt: object) -> None:
        match stmt:
            case PrintStatement(argument=argument):
                self._line(f"console.log({self._expr(argument)});")
            case VariableDeclaration(variable=variable, initializer=initializer):
                init = self._expr(initializer)
                keyword = "var" if self._in_branch else "let"
                self._line(f"{keyword} {self._name(variable)} = {init};")
            case AssignmentStatement(target=target, source=source):
                self._line(f"{self._name(target)} = {self._expr(source)};")
            case ShortIfStatement(test=test, consequence=consequence):
                self._line(f"if ({self._expr(test)}) {{")
                self._emit_block(consequence, True)
                self._line("}")
            case IfStatement():
                self._emit_if(stmt)
            case WhileStatement(test=test, body=body):
                self._line(f"while ({self._expr(test)}) {{")
                self._emit_block(body, False)
                self._line("}")
            case ForStatement():
                self._emit_for(stmt)
            case LoopStatement():
                self._emit_loop(stmt)
            case FunctionDeclaration(fun=fun, body=body):
                name = self._name(fun)
                params = ", ".join(self._name(p) for p in fun.params)
                if self._in_branch:
                    self._line(f"var {name} = function ({params}) {{")
                    self._emit_block(body, False)
                    self._line("};")
                else:
                    self._line(f"function {name}({params}) {{")
                    self._emit_block(body, False)
                    self._line("}")
            case Call():
                self._line(self._expr(stmt) + ";")
            case BreakStatement():
                self._line("break;")
            case ReturnStatement(expression=expression):
                self._line(f"return {self._expr(expression)};")
            case ShortReturnStatement():
                self._line("return;")
            case _:
                raise TypeError("cannot generate " + type(stmt).__name__)

    def _emit_if(self, stmt: IfStatement) -> None:
        self._line(f"if ({self._expr(stmt.test)}) {{")
        self._emit_block(stmt.consequence, True)
        alternate = stmt.alternate
        if isinstance(alternate, (IfStatement, ShortIfStatement)):
            # The nested if supplies the closing brace
            self._line("} else")
            self._emit_stmt(alternate)
        else:
            self._line("} else {")
            self._emit_block(alternate, True)
            self._line("}")

    def _emit_for(self, stmt: ForStatement) -> None:
        self._emit_stmt(stmt.declaration)
        if stmt.unrolled:
            self._emit_stmts(stmt.body)
            return
        self._line(f"while ({self._expr(stmt.test)}) {{")
        self._emit_block(stmt.body, False)
        self._emit_stmt(stmt.increment)
        self._line("}")

    def _emit_loop(self, stmt: LoopStatement) -> None:
        it = self._name(stmt.iterator)
        coll = self._expr(stmt.collection)
        coll_type = type_of(stmt.collection)
        if type_eq(coll_type, INT):
            if isinstance(stmt.collection, int):
                self._line(f"for (let {it} = 0; {it} < {coll}; {it}++) {{")
            else:
                # The bound is read once, before the first iteration
                limit = self._fresh("limit")
                header = f"let {it} = 0, {limit} = {coll}; {it} < {limit}; {it}++"
                self._line(f"for ({header}) {{")
        elif type_eq(coll_type, ANY):
            self._needs_iter = True
            self._line(f"for (const {it} of _iter({coll})) {{")
        else:
            self._line(f"for (const {it} of {coll}) {{")
        self._emit_block(stmt.body, False)
        self._line("}")

    # ── Expressions ──────────────────────────────────────────

    def _expr(self, expr: object) -> str:
        match expr:
            case bool():
                return "true" if expr else "false"
            case int() | float():
                return number_literal(expr)
            case StringLiteral(chars=chars):
                return f'"{escape_string(chars)}"'
            case Variable():
                return self._name(expr)
            case BinaryExpression(op=op, left=left, right=None):
                operand = self._expr(left)
                if operand.startswith("-"):
                    operand = " " + operand
                return f"({op}{operand})"
            case BinaryExpression(op=op, left=left, right=right):
                left_str = self._expr(left)
                # JavaScript rejects a unary operand on the left of **
                if op == "**" and left_str.startswith("-"):
                    left_str = f"({left_str})"
                return f"({left_str} {_binary_op(op)} {self._expr(right)})"
            case Conditional(consequent=consequent, test=test, alternate=alternate):
                t = self._expr(test)
                a = self._expr(consequent)
                b = self._expr(alternate)
                return f"({t} ? {a} : {b})"
            case Call(callee=callee, args=args):
                return f"{self._name(callee)}({','.join(self._expr(a) for a in args)})"
            case ArrayExpression(elements=elements):
                return "[" + ",".join(self._expr(e) for e in elements) + "]"
            case ArrayCall(array=array, index=index):
                return f"{self._expr(array)}[{self._expr(index)}]"
            case _:
                raise TypeError("cannot generate " + type(expr).__name__)


def _binary_op(op: str) -> str:
    match op:
        case "and":
            return "&&"
        case "or":
            return "||"
        case "==":
            return "==="
        case "!=":
            return "!=="
        case _:
            return op


def generate(program: Program) -> str:
    """Generate JavaScript text for an optimized Program."""
    return JsBackend().emit(program)
