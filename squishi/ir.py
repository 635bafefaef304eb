"""Squishi IR - typed syntax tree shared by the analyzer, optimizer and generator.

Architecture:
    Source -> Frontend (tokens, parse, analyzer) -> [IR] -> Middleend (optimizer) -> Backend -> JavaScript

The analyzer produces fully-typed IR. The optimizer rewrites IR in place. The backend
trusts the type annotations and never re-derives them.

Number and boolean literals are plain host values (int, float, bool); every other
expression is a node carrying a `type`. Use `type_of` to read the type of either.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, is_dataclass


# ============================================================
# TYPES
# ============================================================


@dataclass(unsafe_hash=True)
class Type:
    """Primitive type descriptor: boolean, int, float, string, void, any."""

    kind: str

    def __deepcopy__(self, memo: dict) -> Type:
        return self


@dataclass(unsafe_hash=True)
class ArrayType(Type):
    """[T] - arrays carry their element type."""

    element: Type


BOOLEAN: Type = Type("boolean")
INT: Type = Type("int")
FLOAT: Type = Type("float")
STRING: Type = Type("string")
VOID: Type = Type("void")
ANY: Type = Type("any")


def array_of(element: Type) -> ArrayType:
    return ArrayType("array", element)


def type_eq(a: Type, b: Type) -> bool:
    """Same tag and, for arrays, recursively equal element types."""
    if a is b:
        return True
    if a.kind != b.kind:
        return False
    if isinstance(a, ArrayType) and isinstance(b, ArrayType):
        return type_eq(a.element, b.element)
    return not isinstance(a, ArrayType) and not isinstance(b, ArrayType)


def type_name(t: Type) -> str:
    """Human-readable name for a type, for error messages and graphs."""
    if isinstance(t, ArrayType):
        return "[" + type_name(t.element) + "]"
    return t.kind


def type_of(expr: object) -> Type:
    """Type of an analyzed expression, including bare literal values."""
    # bool before int: True is an int to Python
    if isinstance(expr, bool):
        return BOOLEAN
    if isinstance(expr, int):
        return INT
    if isinstance(expr, float):
        return FLOAT
    return expr.type


# ============================================================
# ENTITIES
#
# Created once at their declaration and shared by reference with every
# use site. Equality and hashing are by identity, and copying a subtree
# never copies the entities it mentions.
# ============================================================


@dataclass(eq=False)
class Variable:
    name: str
    type: Type

    def __deepcopy__(self, memo: dict) -> Variable:
        return self


@dataclass(eq=False)
class Function:
    """Runtime entity for a declared function. Parameters are untyped (ANY)."""

    name: str
    params: list[Variable] = field(default_factory=list)

    def __deepcopy__(self, memo: dict) -> Function:
        return self


# ============================================================
# STATEMENTS
# ============================================================


@dataclass
class Program:
    statements: list


@dataclass
class PrintStatement:
    argument: object


@dataclass
class VariableDeclaration:
    variable: Variable
    initializer: object


@dataclass
class AssignmentStatement:
    target: Variable
    source: object


@dataclass
class ShortIfStatement:
    """if test: consequence stop."""

    test: object
    consequence: list


@dataclass
class IfStatement:
    """if test: consequence else alternate stop.

    alternate is either another if statement (an else-if chain) or a statement list.
    """

    test: object
    consequence: list
    alternate: object


@dataclass
class WhileStatement:
    test: object
    body: list


@dataclass
class ForStatement:
    """for pencil v = init; stop test fastfwd v = v + delta; body stop.

    unrolled is set by the optimizer once body holds the flattened iterations;
    the header fields then stay only for reference.
    """

    declaration: VariableDeclaration
    test: object
    increment: AssignmentStatement
    body: list
    unrolled: bool = False


@dataclass
class LoopStatement:
    """collection.loop iterator: body stop - for-each over an int, string or array."""

    iterator: Variable
    collection: object
    body: list


@dataclass
class FunctionDeclaration:
    fun: Function
    body: list


@dataclass
class BreakStatement:
    pass


@dataclass
class ReturnStatement:
    expression: object


@dataclass
class ShortReturnStatement:
    pass


# ============================================================
# EXPRESSIONS
# ============================================================


@dataclass
class Call:
    """Function call; a statement or an expression depending on where it sits."""

    callee: Function
    args: list
    type: Type = ANY


@dataclass
class BinaryExpression:
    """left op right. Unary "-" and "!" leave right as None."""

    op: str
    left: object
    right: object = None
    type: Type = ANY


@dataclass
class Conditional:
    """consequent if test otherwise alternate; typed as the consequent."""

    consequent: object
    test: object
    alternate: object
    type: Type = ANY


@dataclass
class StringLiteral:
    chars: str
    type: Type = STRING


@dataclass
class ArrayExpression:
    elements: list
    type: Type = field(default_factory=lambda: array_of(ANY))


@dataclass
class ArrayCall:
    """array[index]."""

    array: object
    index: object
    type: Type = ANY


# ============================================================
# GRAPH VIEW
# ============================================================


def graph(root: object) -> str:
    """Numbered listing of every node reachable from root.

    Each node gets an integer tag in first-visit order; shared nodes (the
    entities) are listed once and referenced elsewhere as #tag.
    """
    tags: dict[int, int] = {}
    nodes: list[object] = []

    def tag(node: object) -> None:
        if isinstance(node, list):
            for item in node:
                tag(item)
            return
        if not is_dataclass(node) or isinstance(node, Type) or id(node) in tags:
            return
        tags[id(node)] = len(nodes) + 1
        nodes.append(node)
        for f in fields(node):
            tag(getattr(node, f.name))

    def view(value: object) -> str:
        if isinstance(value, list):
            return "[" + ",".join(view(v) for v in value) + "]"
        if isinstance(value, Type):
            return type_name(value)
        if isinstance(value, bool):
            return "true" if value else "false"
        if id(value) in tags:
            return "#" + str(tags[id(value)])
        return repr(value)

    tag(root)
    lines: list[str] = []
    for node in nodes:
        props = " ".join(f.name + "=" + view(getattr(node, f.name)) for f in fields(node))
        line = str(tags[id(node)]).rjust(4) + " | " + type(node).__name__
        if props:
            line += " " + props
        lines.append(line)
    return "\n".join(lines)
