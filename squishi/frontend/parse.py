"""Squishi parser - recursive descent, one method per grammar production."""

from __future__ import annotations

from ..errors import SquishiError
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
    SParam,
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
from .tokens import (
    TK_EOF,
    TK_FLOAT,
    TK_IDENT,
    TK_INT,
    TK_OP,
    TK_STRING,
    Token,
    tokenize,
)

COMPARE_OPS: set[str] = {"<", "<=", "==", "!=", ">=", ">"}


class ParseError(SquishiError):
    """Error during parsing."""


class Parser:
    """Recursive descent parser for Squishi."""

    def __init__(self, tokens: list[Token]):
        self.tokens: list[Token] = tokens
        self.pos: int = 0
        # In if/while headers and loop collections a trailing ':' belongs to
        # the statement, so `name :` is not a call there.
        self.in_header: bool = False

    # ── Helpers ──────────────────────────────────────────────

    def current(self) -> Token:
        return self.tokens[self.pos]

    def peek(self, offset: int) -> Token:
        idx = self.pos + offset
        if idx >= len(self.tokens):
            return self.tokens[len(self.tokens) - 1]
        return self.tokens[idx]

    def advance(self) -> Token:
        tok = self.tokens[self.pos]
        self.pos += 1
        return tok

    def at(self, value: str) -> bool:
        return _is(self.current(), value)

    def at_type(self, type_: str) -> bool:
        return self.current().type == type_

    def at_ident(self) -> bool:
        return self.current().type == TK_IDENT

    def expect(self, value: str) -> Token:
        tok = self.current()
        if not _is(tok, value):
            raise self.error("expected '" + value + "', got " + _describe(tok))
        return self.advance()

    def expect_ident(self) -> Token:
        tok = self.current()
        if tok.type != TK_IDENT:
            raise self.error("expected identifier, got " + _describe(tok))
        return self.advance()

    def error(self, msg: str) -> ParseError:
        tok = self.current()
        return ParseError(msg, tok.line, tok.col)

    def _pos(self) -> Pos:
        tok = self.current()
        return Pos(tok.line, tok.col)

    # ── Top Level ────────────────────────────────────────────

    def parse_program(self) -> SProgram:
        stmts: list[SStmt] = []
        while not self.at_type(TK_EOF):
            stmts.append(self.parse_stmt())
        return SProgram(stmts)

    def parse_stmts_until(self, *terminators: str) -> list[SStmt]:
        stmts: list[SStmt] = []
        while not any(self.at(t) for t in terminators):
            if self.at_type(TK_EOF):
                raise self.error("expected 'stop', got end of input")
            stmts.append(self.parse_stmt())
        return stmts

    def parse_block(self) -> list[SStmt]:
        """Block = Statement* 'stop'"""
        stmts = self.parse_stmts_until("stop")
        self.expect("stop")
        return stmts

    # ── Statements ───────────────────────────────────────────

    def parse_stmt(self) -> SStmt:
        if self.at("speak"):
            return self.parse_print_stmt()
        if self.at("pencil"):
            return self.parse_var_decl()
        if self.at("if"):
            return self.parse_if_stmt()
        if self.at("while"):
            return self.parse_while_stmt()
        if self.at("for"):
            return self.parse_for_stmt()
        if self.at("f"):
            return self.parse_fn_decl()
        if self.at("break"):
            pos = self._pos()
            self.advance()
            self.expect(";")
            return SBreakStmt(pos)
        if self.at("return"):
            return self.parse_return_stmt()
        if self.at_ident():
            nxt = self.peek(1)
            if _is(nxt, "="):
                return self.parse_assign_stmt()
            if _is(nxt, ":"):
                call = self.parse_call()
                self.expect(";")
                return call
        return self.parse_loop_stmt()

    def parse_print_stmt(self) -> SPrintStmt:
        """PrintStmt = 'speak' Expr ';'"""
        pos = self._pos()
        self.expect("speak")
        value = self.parse_expr()
        self.expect(";")
        return SPrintStmt(pos, value)

    def parse_var_decl(self) -> SVarDecl:
        """VarDecl = 'pencil' Ident '=' Expr ';'"""
        pos = self._pos()
        self.expect("pencil")
        name_tok = self.expect_ident()
        self.expect("=")
        value = self.parse_expr()
        self.expect(";")
        return SVarDecl(pos, name_tok.value, value)

    def parse_assign_stmt(self) -> SAssignStmt:
        """AssignStmt = Ident '=' Expr ';'"""
        pos = self._pos()
        name_tok = self.expect_ident()
        self.expect("=")
        value = self.parse_expr()
        self.expect(";")
        return SAssignStmt(pos, name_tok.value, value)

    def parse_if_stmt(self) -> SIfStmt:
        """IfStmt = 'if' Expr ':' Statement* ( 'stop'? 'else' ( IfStmt | Block ) | 'stop' )"""
        pos = self._pos()
        self.expect("if")
        cond = self.parse_header_expr()
        self.expect(":")
        then_body = self.parse_stmts_until("stop", "else")
        # A statement never starts with 'else', so 'stop else' is the closed-then form
        if self.at("stop") and _is(self.peek(1), "else"):
            self.advance()
        if self.at("else"):
            self.advance()
            if self.at("if"):
                return SIfStmt(pos, cond, then_body, self.parse_if_stmt())
            return SIfStmt(pos, cond, then_body, self.parse_block())
        self.expect("stop")
        return SIfStmt(pos, cond, then_body, None)

    def parse_while_stmt(self) -> SWhileStmt:
        """WhileStmt = 'while' Expr ':' Block"""
        pos = self._pos()
        self.expect("while")
        cond = self.parse_header_expr()
        self.expect(":")
        body = self.parse_block()
        return SWhileStmt(pos, cond, body)

    def parse_for_stmt(self) -> SForStmt:
        """ForStmt = 'for' VarDecl 'stop' Expr 'fastfwd' AssignStmt Block"""
        pos = self._pos()
        self.expect("for")
        init = self.parse_var_decl()
        self.expect("stop")
        cond = self.parse_header_expr()
        self.expect("fastfwd")
        update = self.parse_assign_stmt()
        body = self.parse_block()
        return SForStmt(pos, init, cond, update, body)

    def parse_loop_stmt(self) -> SLoopStmt:
        """LoopStmt = Postfix '.' 'loop' Ident ':' Block"""
        pos = self._pos()
        saved = self.in_header
        self.in_header = True
        collection = self.parse_postfix()
        self.in_header = saved
        self.expect(".")
        self.expect("loop")
        name_tok = self.expect_ident()
        self.expect(":")
        body = self.parse_block()
        return SLoopStmt(pos, collection, name_tok.value, body)

    def parse_fn_decl(self) -> SFnDecl:
        """FnDecl = 'f' Ident ( Ident ( ',' Ident )* )? ':' Block"""
        pos = self._pos()
        self.expect("f")
        name_tok = self.expect_ident()
        params: list[SParam] = []
        if self.at_ident():
            params.append(self.parse_param())
            while self.at(","):
                self.advance()
                params.append(self.parse_param())
        self.expect(":")
        body = self.parse_block()
        return SFnDecl(pos, name_tok.value, params, body)

    def parse_param(self) -> SParam:
        pos = self._pos()
        name_tok = self.expect_ident()
        return SParam(pos, name_tok.value)

    def parse_return_stmt(self) -> SReturnStmt:
        """ReturnStmt = 'return' Expr? ';'"""
        pos = self._pos()
        self.expect("return")
        if self.at(";"):
            self.advance()
            return SReturnStmt(pos, None)
        value = self.parse_expr()
        self.expect(";")
        return SReturnStmt(pos, value)

    def parse_call(self) -> SCall:
        """Call = Ident ':' ArgList"""
        pos = self._pos()
        name_tok = self.expect_ident()
        self.expect(":")
        args: list[SExpr] = []
        if self._at_expr_start():
            args.append(self.parse_expr())
            while self.at(","):
                self.advance()
                args.append(self.parse_expr())
        return SCall(pos, name_tok.value, args)

    def _at_expr_start(self) -> bool:
        """Check if current token can start an expression."""
        tok = self.current()
        if tok.type in (TK_INT, TK_FLOAT, TK_STRING, TK_IDENT):
            return True
        if tok.type == "true" or tok.type == "false":
            return True
        return tok.type == TK_OP and tok.value in ("(", "[", "-", "!")

    # ── Expressions ──────────────────────────────────────────

    def parse_header_expr(self) -> SExpr:
        saved = self.in_header
        self.in_header = True
        expr = self.parse_expr()
        self.in_header = saved
        return expr

    def parse_expr(self) -> SExpr:
        """Expr = Or ( 'if' Or 'otherwise' Expr )?"""
        expr = self.parse_or()
        if self.at("if"):
            self.advance()
            cond = self.parse_or()
            self.expect("otherwise")
            alternate = self.parse_expr()
            return STernary(expr.pos, expr, cond, alternate)
        return expr

    def parse_or(self) -> SExpr:
        """Or = And ( 'or' And )*"""
        left = self.parse_and()
        while self.at("or"):
            self.advance()
            right = self.parse_and()
            left = SBinaryOp(left.pos, "or", left, right)
        return left

    def parse_and(self) -> SExpr:
        """And = Compare ( 'and' Compare )*"""
        left = self.parse_compare()
        while self.at("and"):
            self.advance()
            right = self.parse_compare()
            left = SBinaryOp(left.pos, "and", left, right)
        return left

    def parse_compare(self) -> SExpr:
        """Compare = Sum ( CompOp Sum )?"""
        left = self.parse_sum()
        tok = self.current()
        if tok.type == TK_OP and tok.value in COMPARE_OPS:
            op = self.advance().value
            right = self.parse_sum()
            return SBinaryOp(left.pos, op, left, right)
        return left

    def parse_sum(self) -> SExpr:
        """Sum = Product ( ( '+' | '-' ) Product )*"""
        left = self.parse_product()
        while self.at("+") or self.at("-"):
            op = self.advance().value
            right = self.parse_product()
            left = SBinaryOp(left.pos, op, left, right)
        return left

    def parse_product(self) -> SExpr:
        """Product = Unary ( ( '*' | '/' | '%' ) Unary )*"""
        left = self.parse_unary()
        while self.at("*") or self.at("/") or self.at("%"):
            op = self.advance().value
            right = self.parse_unary()
            left = SBinaryOp(left.pos, op, left, right)
        return left

    def parse_unary(self) -> SExpr:
        """Unary = ( '-' | '!' ) Unary | Power"""
        if self.at("-") or self.at("!"):
            pos = self._pos()
            op = self.advance().value
            operand = self.parse_unary()
            return SUnaryOp(pos, op, operand)
        return self.parse_power()

    def parse_power(self) -> SExpr:
        """Power = Postfix ( '**' Unary )?"""
        base = self.parse_postfix()
        if self.at("**"):
            self.advance()
            exponent = self.parse_unary()
            return SBinaryOp(base.pos, "**", base, exponent)
        return base

    def parse_postfix(self) -> SExpr:
        """Postfix = Primary ( '[' Expr ']' )*"""
        expr = self.parse_primary()
        while self.at("["):
            self.advance()
            index = self.parse_nested_expr()
            self.expect("]")
            expr = SIndex(expr.pos, expr, index)
        return expr

    def parse_nested_expr(self) -> SExpr:
        """An expression inside brackets, where calls are always allowed."""
        saved = self.in_header
        self.in_header = False
        expr = self.parse_expr()
        self.in_header = saved
        return expr

    def parse_primary(self) -> SExpr:
        tok = self.current()
        pos = self._pos()
        if tok.type == TK_INT:
            self.advance()
            return SIntLit(pos, int(tok.value))
        if tok.type == TK_FLOAT:
            self.advance()
            return SFloatLit(pos, float(tok.value))
        if tok.type == TK_STRING:
            self.advance()
            return SStringLit(pos, tok.value)
        if tok.type == "true" or tok.type == "false":
            self.advance()
            return SBoolLit(pos, tok.type == "true")
        if tok.type == TK_IDENT:
            if not self.in_header and _is(self.peek(1), ":"):
                return self.parse_call()
            self.advance()
            return SVar(pos, tok.value)
        if self.at("("):
            self.advance()
            expr = self.parse_nested_expr()
            self.expect(")")
            return expr
        if self.at("["):
            return self.parse_brackets()
        raise self.error("expected expression, got " + _describe(tok))

    def parse_brackets(self) -> SExpr:
        """'[' ']' | '[' Expr ']' (grouping) | '[' Expr ',' ( Expr ( ',' Expr )* )? ']' (array)"""
        pos = self._pos()
        self.expect("[")
        if self.at("]"):
            self.advance()
            return SArrayLit(pos, [])
        first = self.parse_nested_expr()
        if not self.at(","):
            self.expect("]")
            return first
        elements: list[SExpr] = [first]
        while self.at(","):
            self.advance()
            # [e,] is the one-element array
            if self.at("]") and len(elements) == 1:
                break
            elements.append(self.parse_nested_expr())
        self.expect("]")
        return SArrayLit(pos, elements)


def _is(tok: Token, value: str) -> bool:
    """Operator or keyword match; string literals never match."""
    return tok.value == value and (tok.type == TK_OP or tok.type == value)


def _describe(tok: Token) -> str:
    if tok.type == TK_EOF:
        return "end of input"
    if tok.type == TK_STRING:
        return "string literal"
    return "'" + tok.value + "'"


def parse(source: str) -> SProgram:
    """Parse Squishi source code into a parse tree."""
    return Parser(tokenize(source)).parse_program()
