from __future__ import annotations

import logging
from typing import List, Optional

import regex

from .diagnostics import Diagnostic, OnoError, syntax_error
from .tokens import KEYWORDS, Token, TokenKind

logger = logging.getLogger(__name__)

_GRAPHEME = regex.compile(r"\X")

_SINGLE = {
    "(": TokenKind.LEFT_PAREN,
    ")": TokenKind.RIGHT_PAREN,
    "{": TokenKind.LEFT_BRACE,
    "}": TokenKind.RIGHT_BRACE,
    ",": TokenKind.COMMA,
    ":": TokenKind.COLON,
    ";": TokenKind.SEMICOLON,
    "-": TokenKind.MINUS,
    "+": TokenKind.PLUS,
    "/": TokenKind.SLASH,
    "*": TokenKind.STAR,
}

# first grapheme -> (kind alone, kind when followed by '=')
_WITH_EQUAL = {
    "!": (TokenKind.BANG, TokenKind.BANG_EQUAL),
    "=": (TokenKind.EQUAL, TokenKind.EQUAL_EQUAL),
    "<": (TokenKind.LESS, TokenKind.LESS_EQUAL),
    ">": (TokenKind.GREATER, TokenKind.GREATER_EQUAL),
}

_NEWLINES = frozenset({"\n", "\r\n"})
_WHITESPACE = frozenset({" ", "\t", "\r"})
_END = "\0"


def _is_digit(c: str) -> bool:
    return len(c) == 1 and "0" <= c <= "9"


def _is_alpha(c: str) -> bool:
    return len(c) == 1 and (("a" <= c <= "z") or ("A" <= c <= "Z") or c == "_")


def _is_alnum(c: str) -> bool:
    return _is_alpha(c) or _is_digit(c)


class Lexer:
    """Single-pass scanner over grapheme clusters.

    Columns count graphemes, so a composed character such as an emoji with a
    skin-tone modifier advances the column by one.
    """

    def __init__(self, source: str) -> None:
        self.graphemes: List[str] = _GRAPHEME.findall(source)
        self.tokens: List[Token] = []
        self.errors: List[Diagnostic] = []
        self.start = 0
        self.current = 0
        self.line = 0
        self.column = 0
        self.start_line = 0
        self.start_column = 0

    def tokenize(self) -> List[Token]:
        while not self._is_at_end():
            self.start = self.current
            self.start_line = self.line
            self.start_column = self.column
            self._scan_token()
        self.tokens.append(Token.at(TokenKind.EOF, self.line, self.column, ""))
        logger.debug("lexed %d tokens with %d errors", len(self.tokens), len(self.errors))
        if self.errors:
            raise OnoError("lex", self.errors)
        return self.tokens

    def _is_at_end(self) -> bool:
        return self.current >= len(self.graphemes)

    def _peek(self, offset: int = 0) -> str:
        index = self.current + offset
        if index >= len(self.graphemes):
            return _END
        return self.graphemes[index]

    def _advance(self) -> str:
        grapheme = self._peek()
        self.current += 1
        if grapheme in _NEWLINES:
            self.line += 1
            self.column = 0
        else:
            self.column += 1
        return grapheme

    def _match(self, expected: str) -> bool:
        if self._peek() != expected:
            return False
        self._advance()
        return True

    def _lexeme(self) -> str:
        return "".join(self.graphemes[self.start : self.current])

    def _add_token(self, kind: TokenKind, literal: Optional[object] = None) -> None:
        self.tokens.append(Token.at(kind, self.start_line, self.start_column, self._lexeme(), literal))

    def _error(self, code: str, lexeme: str) -> None:
        token = Token.at(TokenKind.UNKNOWN, self.start_line, self.start_column, lexeme)
        self.errors.append(syntax_error(code, token))

    def _scan_token(self) -> None:
        c = self._advance()
        if c in _WHITESPACE or c in _NEWLINES:
            return
        if c in _SINGLE:
            self._add_token(_SINGLE[c])
            return
        if c in _WITH_EQUAL:
            alone, with_equal = _WITH_EQUAL[c]
            self._add_token(with_equal if self._match("=") else alone)
            return
        if c == "." and self._match("."):
            self._add_token(TokenKind.DOT_DOT)
            return
        if c == "#":
            while not self._is_at_end() and self._peek() not in _NEWLINES:
                self._advance()
            return
        if c == '"':
            self._string()
            return
        if _is_digit(c):
            self._number()
            return
        if _is_alpha(c):
            self._identifier()
            return
        self._error("S001", c)

    def _string(self) -> None:
        while not self._is_at_end() and self._peek() != '"':
            self._advance()
        if self._is_at_end():
            self._error("S002", '"')
            return
        self._advance()  # closing quote
        value = "".join(self.graphemes[self.start + 1 : self.current - 1])
        self._add_token(TokenKind.STRING, value)

    def _number(self) -> None:
        while _is_digit(self._peek()):
            self._advance()
        if self._peek() == "." and _is_digit(self._peek(1)):
            self._advance()
            while _is_digit(self._peek()):
                self._advance()
        self._add_token(TokenKind.NUMBER, float(self._lexeme()))

    def _identifier(self) -> None:
        while _is_alnum(self._peek()):
            self._advance()
        kind = KEYWORDS.get(self._lexeme(), TokenKind.IDENTIFIER)
        self._add_token(kind)


def tokenize(source: str) -> List[Token]:
    """Split `source` into tokens, ending with EOF; raises OnoError with every lexical error."""
    return Lexer(source).tokenize()
