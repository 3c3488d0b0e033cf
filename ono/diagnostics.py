"""
Diagnostic model shared by every phase.

A Diagnostic records *what* went wrong (kind, code, offending token and the
operand types/values involved). Presentation data (file name, source line)
is attached afterwards by the caller; `__str__` is the only place that
formats anything.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, Iterable, List, Optional

import regex

from .tokens import Token


class ErrorKind(Enum):
    SYNTAX = "error"
    TYPE = "type error"
    RUNTIME = "runtime error"


_MESSAGES: Dict[str, str] = {
    # syntax
    "S001": "encountered unexpected symbol '{lexeme}'",
    "S002": "unterminated string starting here",
    "S003": "unterminated parenthesis starting here",
    "S004": "expected expression after '{lexeme}'",
    "S005": "expected '{expected}' after '{lexeme}'",
    "S006": "expected type after '{lexeme}'",
    "S007": "expected identifier after '{lexeme}'",
    "S008": "'{lexeme}' must be initialized",
    "S009": "cannot assign to left hand side",
    "S010": "unterminated block starting here",
    # type
    "T001": "cannot '{left} {lexeme} {right}'",
    "T002": "cannot '{lexeme}{operand}'",
    "T003": "'{lexeme}' declared as {declared} but initialized as {found}",
    "T004": "'{lexeme}' is undefined here",
    "T005": "cannot assign {found} to {declared}",
    "T006": "'{callee}' expects {expected} argument(s) but got {found}",
    "T007": "cannot call a value of type {found}",
    "T008": "condition must be bool, found {found}",
    "T009": "range bounds must be number, found {found}",
    "T010": "cannot return outside of a function",
    "T011": "'{callee}' returns both {expected} and {found}",
    "T012": "cannot infer the return type of recursive call to '{callee}'",
    "T013": "'{callee}' expects {expected} but got {found}",
    # runtime
    "R001": "division by zero here",
    "R002": "invalid range from {start} to {end} with step {step}",
    "R003": "builtin '{callee}' failed: {reason}",
}

_KINDS = {"S": ErrorKind.SYNTAX, "T": ErrorKind.TYPE, "R": ErrorKind.RUNTIME}


@dataclass
class Diagnostic:
    """One error, anchored at the token that caused it."""

    code: str
    token: Token
    details: Dict[str, object] = field(default_factory=dict)
    file: Optional[str] = None
    line_src: Optional[str] = None

    @property
    def kind(self) -> ErrorKind:
        return _KINDS[self.code[0]]

    @property
    def message(self) -> str:
        return _MESSAGES[self.code].format(lexeme=self.token.lexeme, **self.details)

    def with_filename(self, filename: str) -> "Diagnostic":
        self.file = filename
        return self

    def with_src_line(self, line_src: str) -> "Diagnostic":
        self.line_src = line_src
        return self

    def key(self) -> tuple:
        position = self.token.position
        return (self.code, position.line, position.column, self.message)

    def _format_filename(self) -> Optional[str]:
        if self.file is None:
            return None
        return f"-> {self.file} {self.token.position}"

    def _format_line_src(self) -> Optional[str]:
        if self.line_src is None:
            return None
        row_str = f"{self.token.position.line + 1} | "
        width = max(grapheme_len(self.token.lexeme), 1)
        carets = " " * (len(row_str) + self.token.position.column) + "^" * width
        return f"{row_str}{self.line_src}\n{carets}"

    def __str__(self) -> str:
        lines = [f"{self.kind.value}: {self.message}"]
        for extra in (self._format_filename(), self._format_line_src()):
            if extra is not None:
                lines.append(extra)
        return "\n".join(lines)


def grapheme_len(text: str) -> int:
    return len(regex.findall(r"\X", text))


def syntax_error(code: str, token: Token, **details: object) -> Diagnostic:
    if not code.startswith("S"):
        raise InternalError(f"{code} is not a syntax error code")
    return Diagnostic(code=code, token=token, details=details)


def type_error(code: str, token: Token, **details: object) -> Diagnostic:
    if not code.startswith("T"):
        raise InternalError(f"{code} is not a type error code")
    return Diagnostic(code=code, token=token, details=details)


def runtime_error(code: str, token: Token, **details: object) -> Diagnostic:
    if not code.startswith("R"):
        raise InternalError(f"{code} is not a runtime error code")
    return Diagnostic(code=code, token=token, details=details)


def annotate(errors: Iterable[Diagnostic], source: str, filename: Optional[str] = None) -> List[Diagnostic]:
    """Return copies of `errors` carrying their 0-indexed source line (and filename)."""
    lines = source.split("\n")
    annotated: List[Diagnostic] = []
    for error in errors:
        line = error.token.position.line
        copy = replace(error, details=dict(error.details))
        if 0 <= line < len(lines):
            copy.with_src_line(lines[line].rstrip("\r"))
        if filename is not None:
            copy.with_filename(filename)
        annotated.append(copy)
    return annotated


def render(errors: Iterable[Diagnostic]) -> str:
    return "\n".join(str(error) for error in errors)


class OnoError(Exception):
    """Raised by a phase entry point when that phase produced one or more errors."""

    def __init__(self, phase: str, errors: List[Diagnostic]) -> None:
        self.phase = phase
        self.errors = errors
        super().__init__(render(errors))

    def annotated(self, source: str, filename: Optional[str] = None) -> "OnoError":
        return OnoError(self.phase, annotate(self.errors, source, filename))


class InternalError(Exception):
    """A state the type checker should have ruled out; a bug in ono itself."""

    def __init__(self, message: str) -> None:
        super().__init__(f"[ONO LANGUAGE ERROR] {message}")
