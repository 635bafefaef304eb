"""Optimizer tests: folding, strength reduction, dead code and unrolling."""

import pytest

from squishi import analyze, optimize
from squishi.ir import (
    INT,
    AssignmentStatement,
    BinaryExpression,
    BreakStatement,
    ForStatement,
    LoopStatement,
    PrintStatement,
    Program,
    StringLiteral,
    Variable,
    VariableDeclaration,
    WhileStatement,
    graph,
)
from squishi.middleend.optimizer import UNROLL_LIMIT

x = Variable("x", INT)


def neg(operand):
    return BinaryExpression("-", operand, None, INT)


def xpp():
    return BinaryExpression("+", x, 1, INT)


@pytest.mark.parametrize(
    "before,after",
    [
        pytest.param(BinaryExpression("+", x, 0), x, id="x+0"),
        pytest.param(BinaryExpression("-", x, 0), x, id="x-0"),
        pytest.param(BinaryExpression("*", x, 1), x, id="x*1"),
        pytest.param(BinaryExpression("/", x, 1), x, id="x/1"),
        pytest.param(BinaryExpression("*", x, 0), 0, id="x*0"),
        pytest.param(BinaryExpression("**", x, 0), 1, id="x**0"),
        pytest.param(BinaryExpression("*", 0, x), 0, id="0*x"),
        pytest.param(BinaryExpression("/", 0, x), 0, id="0/x"),
        pytest.param(BinaryExpression("+", 0, x), x, id="0+x"),
        pytest.param(BinaryExpression("-", 0, x, INT), neg(x), id="0-x"),
        pytest.param(BinaryExpression("*", 1, x), x, id="1*x"),
        pytest.param(BinaryExpression("**", 1, x), 1, id="1**x"),
        pytest.param(BinaryExpression("or", False, x), x, id="false-or"),
        pytest.param(BinaryExpression("or", x, False), x, id="or-false"),
        pytest.param(neg(5), -5, id="negate-literal"),
        pytest.param(BinaryExpression("!", True), False, id="not-literal"),
        pytest.param(
            BinaryExpression("+", BinaryExpression("*", x, 1), BinaryExpression("+", 2, 3)),
            BinaryExpression("+", x, 5),
            id="nested",
        ),
    ],
)
def test_strength_reduction(before, after):
    assert optimize(before) == after


@pytest.mark.parametrize(
    "op,expected",
    [
        ("+", 13),
        ("-", -3),
        ("*", 40),
        ("/", 0.625),
        ("%", 5),
        ("**", 390625),
        ("<", True),
        ("<=", True),
        ("==", False),
        ("!=", True),
        (">=", False),
        (">", False),
    ],
)
def test_folds_literal_operands(op: str, expected):
    assert optimize(BinaryExpression(op, 5, 8)) == expected


def test_fold_unifies_integral_division():
    result = optimize(BinaryExpression("/", 8, 4))
    assert result == 2 and isinstance(result, int)
    assert isinstance(optimize(BinaryExpression("/", 8.0, 4.0)), float)


def test_fold_remainder_takes_sign_of_dividend():
    assert optimize(BinaryExpression("%", -7, 3)) == -1
    assert optimize(BinaryExpression("%", 7, -3)) == 1


@pytest.mark.parametrize(
    "before",
    [
        BinaryExpression("/", 1, 0),
        BinaryExpression("%", 1, 0),
        BinaryExpression("%", 1.0, 0.0),
        BinaryExpression("**", 2, 5000),
        BinaryExpression("**", -8.0, 0.5),
    ],
)
def test_unfoldable_operations_stay(before):
    assert optimize(before) is before


def test_booleans_are_not_numbers():
    before = BinaryExpression("==", True, 1)
    assert optimize(before) is before
    assert optimize(BinaryExpression("+", True, x)) == BinaryExpression("+", True, x)


def test_self_assignment_vanishes():
    assert optimize(AssignmentStatement(x, x)) == []
    assert optimize([AssignmentStatement(x, x), PrintStatement(x)]) == [PrintStatement(x)]


def test_assignment_of_another_variable_stays():
    y = Variable("x", INT)
    stmt = AssignmentStatement(x, y)
    assert optimize(stmt) is stmt


def test_while_false_vanishes():
    assert optimize([WhileStatement(False, [AssignmentStatement(x, xpp())])]) == []


def test_while_folded_to_false_vanishes():
    assert optimize([WhileStatement(BinaryExpression("<", 2, 1), [BreakStatement()])]) == []


def test_loop_over_empty_string_vanishes():
    it = Variable("c", INT)
    assert optimize([LoopStatement(it, StringLiteral(""), [PrintStatement(it)])]) == []


def test_unrolls_counted_for_loop():
    program = optimize(
        analyze("pencil x = 0; for pencil z = 0; stop z < 3 fastfwd z = z + 1; x = x + 1; stop")
    )
    x_var = program.statements[0].variable
    loop = program.statements[1]
    assert isinstance(loop, ForStatement)
    assert loop.unrolled
    z_var = loop.declaration.variable
    assert len(loop.body) == 6
    assert [s.target for s in loop.body] == [z_var, x_var] * 3
    assert [loop.body[i].source for i in (0, 2, 4)] == [0, 1, 2]
    for i in (1, 3, 5):
        assert loop.body[i].source == BinaryExpression("+", x_var, 1, INT)
    # every iteration owns its body
    assert loop.body[1] is not loop.body[3]
    assert loop.test.op == "<"


def test_unroll_uses_delta():
    program = optimize(
        analyze("for pencil z = 1; stop z < 8 fastfwd z = z + 3; speak z; stop")
    )
    loop = program.statements[0]
    assert [s.source for s in loop.body if isinstance(s, AssignmentStatement)] == [1, 4, 7]


def test_empty_trip_count_unrolls_to_nothing():
    program = optimize(analyze("for pencil z = 5; stop z < 2 fastfwd z = z + 1; speak z; stop"))
    loop = program.statements[0]
    assert loop.unrolled and loop.body == []


@pytest.mark.parametrize(
    "source",
    [
        "for pencil z = 4; stop z > 3 fastfwd z = z - 1; speak z; stop",
        "for pencil z = 0; stop z <= 3 fastfwd z = z + 1; speak z; stop",
        "for pencil z = 0; stop z < 3 fastfwd z = z + 1; break; stop",
        "for pencil z = 0; stop z < 3 fastfwd z = z + 1; if z == 1: break; stop stop",
        "for pencil z = 0; stop z < 3 fastfwd z = z + 1; z = z + 1; stop",
        "for pencil z = 0.5; stop z < 3.5 fastfwd z = z + 1.0; speak z; stop",
        "pencil n = 3; for pencil z = 0; stop z < n fastfwd z = z + 1; speak z; stop",
        f"for pencil z = 0; stop z < {UNROLL_LIMIT + 1} fastfwd z = z + 1; speak z; stop",
        "for pencil z = 0; stop z < 3 fastfwd z = z + 1; pencil y = z * 2; speak y; stop",
        "for pencil z = 0; stop z < 2 fastfwd z = z + 1; f g: return z; stop stop",
        "for pencil z = 0; stop z < 2 fastfwd z = z + 1; if z > 0: pencil y = z; stop stop",
        "for pencil z = 0; stop z < 2 fastfwd z = z + 1;"
        " for pencil w = 0; stop w < 9 fastfwd w = w * 2; speak w; stop stop",
    ],
)
def test_loops_that_stay_rolled(source: str):
    program = optimize(analyze(source))
    loop = program.statements[-1]
    assert isinstance(loop, ForStatement)
    assert not loop.unrolled


def test_break_in_nested_loop_does_not_block_unrolling():
    program = optimize(
        analyze("for pencil z = 0; stop z < 2 fastfwd z = z + 1; while true: break; stop stop")
    )
    assert program.statements[0].unrolled


def test_unroll_at_limit():
    source = f"for pencil z = 0; stop z < {UNROLL_LIMIT} fastfwd z = z + 1; speak z; stop"
    loop = optimize(analyze(source)).statements[0]
    assert loop.unrolled
    assert len(loop.body) == 2 * UNROLL_LIMIT


def test_recurses_into_declarations_and_bodies():
    program = optimize(
        analyze(
            "pencil a = [1 + 1, 2 * 3];"
            "f g p: return p * 1; stop "
            "if 1 < 2: speak 2 ** 3; else speak g: 0 + 4; stop"
        )
    )
    decl, fun, if_stmt = program.statements
    assert decl.initializer.elements == [2, 6]
    assert fun.body[0].expression is fun.fun.params[0]
    assert if_stmt.test is True
    assert if_stmt.consequence[0].argument == 8
    assert if_stmt.alternate[0].argument.args == [4]


def test_idempotent_on_irreducible_input():
    program = optimize(
        analyze("pencil x = 1; while x < 10: x = x * 2; stop speak x if x > 3 otherwise 0;")
    )
    before = graph(program)
    assert graph(optimize(program)) == before


def test_rerunning_does_not_unroll_twice():
    program = optimize(
        analyze("pencil x = 0; for pencil z = 0; stop z < 3 fastfwd z = z + 1; x = x + 1; stop")
    )
    assert len(optimize(program).statements[1].body) == 6


def test_unknown_node_is_a_type_error():
    with pytest.raises(TypeError):
        optimize(object())


def test_program_is_rewritten_in_place():
    program = Program([VariableDeclaration(x, BinaryExpression("*", 3, 7, INT))])
    assert optimize(program) is program
    assert program.statements[0].initializer == 21
