"""Optimizer pass for Squishi IR.

Rewrites an analyzed tree bottom-up: children are optimized before their
parent looks at them. Statements may vanish, so every statement optimizes
to either a node or a (possibly empty) list, and statement lists are
flat-mapped.

Rewrites:
- constant folding of numeric binary and unary expressions
- strength reduction (x+0, 0+x, x-0, 0-x, x*1, 1*x, x/1, x*0, 0*x, 0/x, 1**x, x**0)
- `or` with a literal false operand
- dead statements: self-assignment, `while false`, loops over ""
- unrolling of small counted for loops whose bodies declare nothing
"""

from __future__ import annotations

import copy
import math

from ..ir import (
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
)

# Largest trip count a for loop may have and still be unrolled
UNROLL_LIMIT = 64

# Largest integer exponent folded by `**`
MAX_FOLD_EXPONENT = 1024


def optimize(node: object) -> object:
    """Optimize a node, returning its replacement (a list for vanished statements)."""
    if isinstance(node, list):
        return _optimize_stmts(node)
    if isinstance(node, (bool, int, float, Variable, Function, StringLiteral)):
        return node
    if isinstance(node, (BreakStatement, ShortReturnStatement)):
        return node
    if isinstance(node, Program):
        node.statements = _optimize_stmts(node.statements)
        return node
    if isinstance(node, VariableDeclaration):
        node.initializer = optimize(node.initializer)
        return node
    if isinstance(node, AssignmentStatement):
        return _optimize_assignment(node)
    if isinstance(node, PrintStatement):
        node.argument = optimize(node.argument)
        return node
    if isinstance(node, ShortIfStatement):
        node.test = optimize(node.test)
        node.consequence = _optimize_stmts(node.consequence)
        return node
    if isinstance(node, IfStatement):
        node.test = optimize(node.test)
        node.consequence = _optimize_stmts(node.consequence)
        node.alternate = optimize(node.alternate)
        return node
    if isinstance(node, WhileStatement):
        node.test = optimize(node.test)
        if node.test is False:
            return []
        node.body = _optimize_stmts(node.body)
        return node
    if isinstance(node, ForStatement):
        return _optimize_for(node)
    if isinstance(node, LoopStatement):
        node.collection = optimize(node.collection)
        if isinstance(node.collection, StringLiteral) and node.collection.chars == "":
            return []
        node.body = _optimize_stmts(node.body)
        return node
    if isinstance(node, FunctionDeclaration):
        node.body = _optimize_stmts(node.body)
        return node
    if isinstance(node, ReturnStatement):
        node.expression = optimize(node.expression)
        return node
    if isinstance(node, Call):
        node.args = [optimize(a) for a in node.args]
        return node
    if isinstance(node, BinaryExpression):
        return _optimize_binary(node)
    if isinstance(node, Conditional):
        node.consequent = optimize(node.consequent)
        node.test = optimize(node.test)
        node.alternate = optimize(node.alternate)
        return node
    if isinstance(node, ArrayExpression):
        node.elements = [optimize(e) for e in node.elements]
        return node
    if isinstance(node, ArrayCall):
        node.array = optimize(node.array)
        node.index = optimize(node.index)
        return node
    raise TypeError("cannot optimize " + type(node).__name__)


def _optimize_stmts(stmts: list) -> list:
    result: list = []
    for stmt in stmts:
        out = optimize(stmt)
        if isinstance(out, list):
            result.extend(out)
        else:
            result.append(out)
    return result


def _optimize_assignment(node: AssignmentStatement) -> object:
    node.source = optimize(node.source)
    if node.source is node.target:
        return []
    return node


# ============================================================
# EXPRESSIONS
# ============================================================


def _is_number(value: object) -> bool:
    # bool is an int subclass but never a number here
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _js_mod(a: int | float, b: int | float) -> int | float:
    """Remainder with the sign of the dividend."""
    if isinstance(a, int) and isinstance(b, int):
        r = abs(a) % abs(b)
        return -r if a < 0 else r
    return math.fmod(a, b)


def _fold(op: str, a: int | float, b: int | float) -> object:
    """Fold a numeric binary operation, or None when it should stay unfolded."""
    if op == "**" and abs(b) > MAX_FOLD_EXPONENT:
        return None
    try:
        match op:
            case "+":
                result = a + b
            case "-":
                result = a - b
            case "*":
                result = a * b
            case "/":
                result = a / b
            case "%":
                result = _js_mod(a, b)
            case "**":
                result = a**b
            case "<":
                return a < b
            case "<=":
                return a <= b
            case "==":
                return a == b
            case "!=":
                return a != b
            case ">=":
                return a >= b
            case ">":
                return a > b
            case _:
                return None
    except (ZeroDivisionError, OverflowError, ValueError):
        return None
    if isinstance(result, complex):
        return None
    if (
        isinstance(a, int)
        and isinstance(b, int)
        and isinstance(result, float)
        and result.is_integer()
    ):
        return int(result)
    return result


def _optimize_binary(e: BinaryExpression) -> object:
    e.left = optimize(e.left)
    if e.right is None:
        return _optimize_unary(e)
    e.right = optimize(e.right)
    left = e.left
    right = e.right
    if e.op == "or":
        if left is False:
            return right
        if right is False:
            return left
        return e
    if _is_number(left):
        if _is_number(right):
            folded = _fold(e.op, left, right)
            return e if folded is None else folded
        if left == 0 and e.op == "+":
            return right
        if left == 1 and e.op == "*":
            return right
        if left == 0 and e.op == "-":
            return BinaryExpression("-", right, None, e.type)
        if left == 1 and e.op == "**":
            return 1
        if left == 0 and (e.op == "*" or e.op == "/"):
            return 0
    elif _is_number(right):
        if right == 0 and (e.op == "+" or e.op == "-"):
            return left
        if right == 1 and (e.op == "*" or e.op == "/"):
            return left
        if right == 0 and e.op == "*":
            return 0
        if right == 0 and e.op == "**":
            return 1
    return e


def _optimize_unary(e: BinaryExpression) -> object:
    operand = e.left
    if e.op == "-" and _is_number(operand):
        return -operand
    if e.op == "!" and isinstance(operand, bool):
        return not operand
    return e


# ============================================================
# LOOP UNROLLING
# ============================================================


def _optimize_for(s: ForStatement) -> ForStatement:
    if s.unrolled:
        s.body = _optimize_stmts(s.body)
        return s
    s.declaration = optimize(s.declaration)
    s.test = optimize(s.test)
    increment = optimize(s.increment)
    # A vanished increment (v = v) still belongs in the header
    if isinstance(increment, AssignmentStatement):
        s.increment = increment
    s.body = _optimize_stmts(s.body)
    count = _trip_count(s)
    if count is None:
        return s
    variable = s.declaration.variable
    init = s.declaration.initializer
    delta = s.increment.source.right
    unrolled: list = []
    for i in range(count):
        unrolled.append(AssignmentStatement(variable, init + i * delta))
        for stmt in s.body:
            unrolled.extend(_optimize_stmts([copy.deepcopy(stmt)]))
    s.body = unrolled
    s.unrolled = True
    return s


def _is_int_literal(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _trip_count(s: ForStatement) -> int | None:
    """Iteration count when s is a counted loop small enough to unroll."""
    variable = s.declaration.variable
    init = s.declaration.initializer
    test = s.test
    if not _is_int_literal(init):
        return None
    if not (
        isinstance(test, BinaryExpression)
        and test.op == "<"
        and test.left is variable
        and _is_int_literal(test.right)
    ):
        return None
    inc = s.increment.source
    if not (
        s.increment.target is variable
        and isinstance(inc, BinaryExpression)
        and inc.op == "+"
        and inc.left is variable
        and _is_int_literal(inc.right)
        and inc.right > 0
    ):
        return None
    if _breaks_out(s.body) or _assigns(s.body, variable) or _declares(s.body):
        return None
    count = max(-((init - test.right) // inc.right), 0)
    if count > UNROLL_LIMIT:
        return None
    return count


def _children(node: object) -> list:
    """Statement lists and nested statements directly under a statement."""
    if isinstance(node, (ShortIfStatement, IfStatement)):
        out = list(node.consequence)
        if isinstance(node, IfStatement):
            alt = node.alternate
            out.extend(alt if isinstance(alt, list) else [alt])
        return out
    if isinstance(node, (WhileStatement, LoopStatement, FunctionDeclaration)):
        return list(node.body)
    if isinstance(node, ForStatement):
        return [node.increment] + list(node.body)
    return []


def _breaks_out(stmts: list) -> bool:
    """Whether a break in stmts would leave the enclosing loop."""
    for stmt in stmts:
        if isinstance(stmt, BreakStatement):
            return True
        if isinstance(stmt, (ShortIfStatement, IfStatement)):
            if _breaks_out(_children(stmt)):
                return True
    return False


def _assigns(stmts: list, variable: Variable) -> bool:
    for stmt in stmts:
        if isinstance(stmt, AssignmentStatement) and stmt.target is variable:
            return True
        if _assigns(_children(stmt), variable):
            return True
    return False


def _declares(stmts: list) -> bool:
    """Whether stmts declare a name in the block the loop body is emitted into."""
    for stmt in stmts:
        if isinstance(stmt, (VariableDeclaration, FunctionDeclaration, ForStatement)):
            return True
        if isinstance(stmt, (ShortIfStatement, IfStatement)):
            if _declares(_children(stmt)):
                return True
    return False
