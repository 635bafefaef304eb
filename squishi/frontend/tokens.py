"""Squishi tokenizer - lexes source into a flat token list."""

from __future__ import annotations

from ..errors import SquishiError


# Token type constants; keywords use the keyword itself as their type
TK_INT = "INT"
TK_FLOAT = "FLOAT"
TK_STRING = "STRING"
TK_IDENT = "IDENT"
TK_OP = "OP"
TK_EOF = "EOF"

KEYWORDS: set[str] = {
    "and",
    "break",
    "else",
    "f",
    "false",
    "fastfwd",
    "for",
    "if",
    "loop",
    "or",
    "otherwise",
    "pencil",
    "return",
    "speak",
    "stop",
    "true",
    "while",
}

# Multi-character operators, sorted by length descending for greedy matching
MULTI_OPS: list[str] = [
    "**",
    "<=",
    ">=",
    "==",
    "!=",
]

SINGLE_OPS: set[str] = {
    "+",
    "-",
    "*",
    "/",
    "%",
    "!",
    "<",
    ">",
    "=",
    "(",
    ")",
    "[",
    "]",
    ",",
    ":",
    ";",
    ".",
}

ESCAPE_MAP: dict[str, str] = {
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "\\": "\\",
    '"': '"',
    "'": "'",
}


class TokenizeError(SquishiError):
    """Error during tokenization."""


class Token:
    """A token with type, value, and position."""

    def __init__(self, type_: str, value: str, line: int, col: int):
        self.type: str = type_
        self.value: str = value
        self.line: int = line
        self.col: int = col

    def __repr__(self) -> str:
        return f"Token({self.type}, {self.value!r}, {self.line}, {self.col})"


def _is_digit(c: str) -> bool:
    return c >= "0" and c <= "9"


def _is_alpha(c: str) -> bool:
    # Any Unicode letter may start an identifier
    return c.isalpha() or c == "_"


def _is_alnum(c: str) -> bool:
    return _is_alpha(c) or _is_digit(c)


def tokenize(source: str) -> list[Token]:
    """Tokenize Squishi source into a flat list ending with TK_EOF."""
    tokens: list[Token] = []
    pos = 0
    line = 1
    col = 1
    length = len(source)

    while pos < length:
        c = source[pos]

        # Newlines
        if c == "\n":
            pos += 1
            line += 1
            col = 1
            continue

        # Whitespace
        if c == " " or c == "\t" or c == "\r":
            pos += 1
            col += 1
            continue

        # Line comment: //
        if c == "/" and pos + 1 < length and source[pos + 1] == "/":
            while pos < length and source[pos] != "\n":
                pos += 1
            continue

        start_pos = pos
        start_line = line
        start_col = col

        # Number: int or float
        if _is_digit(c):
            while pos < length and _is_digit(source[pos]):
                pos += 1
                col += 1
            is_float = False
            if pos < length and source[pos] == ".":
                if pos + 1 < length and _is_digit(source[pos + 1]):
                    is_float = True
                    pos += 1
                    col += 1
                    while pos < length and _is_digit(source[pos]):
                        pos += 1
                        col += 1
                elif pos + 1 >= length or not _is_alpha(source[pos + 1]):
                    # "2." is malformed; "10.loop" is a number followed by a member
                    raise TokenizeError("malformed number", line, col + 1)
            if pos < length and (source[pos] == "e" or source[pos] == "E"):
                is_float = True
                pos += 1
                col += 1
                if pos < length and (source[pos] == "+" or source[pos] == "-"):
                    pos += 1
                    col += 1
                if pos >= length or not _is_digit(source[pos]):
                    raise TokenizeError("invalid float exponent", start_line, start_col)
                while pos < length and _is_digit(source[pos]):
                    pos += 1
                    col += 1
            raw = source[start_pos:pos]
            if is_float:
                tokens.append(Token(TK_FLOAT, raw, start_line, start_col))
            else:
                tokens.append(Token(TK_INT, raw, start_line, start_col))
            continue

        # String literal: "..."
        if c == '"':
            pos += 1
            col += 1
            chars: list[str] = []
            while pos < length and source[pos] != '"':
                if source[pos] == "\n":
                    raise TokenizeError("unterminated string literal", start_line, start_col)
                if source[pos] == "\\":
                    if pos + 1 >= length:
                        raise TokenizeError("unexpected end of string in escape", line, col)
                    esc = source[pos + 1]
                    if esc not in ESCAPE_MAP:
                        raise TokenizeError("invalid escape: \\" + esc, line, col)
                    chars.append(ESCAPE_MAP[esc])
                    pos += 2
                    col += 2
                    continue
                chars.append(source[pos])
                pos += 1
                col += 1
            if pos >= length:
                raise TokenizeError("unterminated string literal", start_line, start_col)
            pos += 1  # skip closing "
            col += 1
            tokens.append(Token(TK_STRING, "".join(chars), start_line, start_col))
            continue

        # Identifier or keyword
        if _is_alpha(c):
            while pos < length and _is_alnum(source[pos]):
                pos += 1
                col += 1
            word = source[start_pos:pos]
            if word in KEYWORDS:
                tokens.append(Token(word, word, start_line, start_col))
            else:
                tokens.append(Token(TK_IDENT, word, start_line, start_col))
            continue

        # Multi-character operators
        matched = False
        for op in MULTI_OPS:
            op_len = len(op)
            if source[pos : pos + op_len] == op:
                tokens.append(Token(TK_OP, op, start_line, start_col))
                pos += op_len
                col += op_len
                matched = True
                break
        if matched:
            continue

        # Single-character operators
        if c in SINGLE_OPS:
            tokens.append(Token(TK_OP, c, start_line, start_col))
            pos += 1
            col += 1
            continue

        raise TokenizeError("unexpected character: " + repr(c), line, col)

    tokens.append(Token(TK_EOF, "", line, col))
    return tokens
