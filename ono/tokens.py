from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Union


class TokenKind(Enum):
    LEFT_PAREN = "("
    RIGHT_PAREN = ")"
    LEFT_BRACE = "{"
    RIGHT_BRACE = "}"
    COMMA = ","
    COLON = ":"
    SEMICOLON = ";"
    DOT_DOT = ".."

    MINUS = "-"
    PLUS = "+"
    SLASH = "/"
    STAR = "*"

    BANG = "!"
    BANG_EQUAL = "!="
    EQUAL = "="
    EQUAL_EQUAL = "=="
    GREATER = ">"
    GREATER_EQUAL = ">="
    LESS = "<"
    LESS_EQUAL = "<="

    NUMBER = "number literal"
    STRING = "string literal"
    IDENTIFIER = "identifier"

    AND = "and"
    OR = "or"
    TRUE = "true"
    FALSE = "false"
    LET = "let"
    FUN = "fun"
    RETURN = "return"
    IF = "if"
    ELSE = "else"
    WHILE = "while"
    FOR = "for"
    IN = "in"
    NUMBER_TYPE = "number"
    TEXT_TYPE = "text"
    BOOL_TYPE = "bool"

    EOF = "end of file"
    UNKNOWN = "unknown"

    def __str__(self) -> str:
        return self.value


KEYWORDS: Dict[str, TokenKind] = {
    kind.value: kind
    for kind in (
        TokenKind.AND,
        TokenKind.OR,
        TokenKind.TRUE,
        TokenKind.FALSE,
        TokenKind.LET,
        TokenKind.FUN,
        TokenKind.RETURN,
        TokenKind.IF,
        TokenKind.ELSE,
        TokenKind.WHILE,
        TokenKind.FOR,
        TokenKind.IN,
        TokenKind.NUMBER_TYPE,
        TokenKind.TEXT_TYPE,
        TokenKind.BOOL_TYPE,
    )
}

# Tokens that begin a statement; the parser resynchronizes on them.
STATEMENT_STARTS = frozenset(
    {
        TokenKind.LET,
        TokenKind.FUN,
        TokenKind.IF,
        TokenKind.WHILE,
        TokenKind.FOR,
        TokenKind.RETURN,
        TokenKind.LEFT_BRACE,
        TokenKind.RIGHT_BRACE,
    }
)


@dataclass(frozen=True)
class Position:
    line: int
    column: int

    def __str__(self) -> str:
        return f"{self.line + 1}:{self.column + 1}"


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    lexeme: str
    position: Position
    literal: Optional[Union[float, str]] = None

    @classmethod
    def at(cls, kind: TokenKind, line: int, column: int, lexeme: str, literal=None) -> "Token":
        return cls(kind=kind, lexeme=lexeme, position=Position(line, column), literal=literal)

    def __str__(self) -> str:
        return self.lexeme
