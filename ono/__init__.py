"""ono: a small statically type-checked scripting language."""

from __future__ import annotations

import logging
from typing import Optional

from .checker import CheckedProgram, Checker, check
from .diagnostics import Diagnostic, ErrorKind, InternalError, OnoError, annotate, render
from .interp import Interpreter, interpret
from .lexer import Lexer, tokenize
from .parser import Parser, parse
from .runtime import display

logger = logging.getLogger(__name__)

__all__ = [
    "CheckedProgram",
    "Checker",
    "Diagnostic",
    "ErrorKind",
    "InternalError",
    "Interpreter",
    "Lexer",
    "OnoError",
    "Parser",
    "annotate",
    "check",
    "display",
    "interpret",
    "parse",
    "render",
    "run",
    "tokenize",
]


def run(source: str, *, filename: Optional[str] = None, stdout=None) -> object:
    """Tokenize, parse, check and evaluate `source`.

    Errors from any phase are raised as OnoError with each diagnostic already
    carrying its source line (and `filename`, when given).
    """
    try:
        tokens = tokenize(source)
        statements = parse(tokens)
        checked = check(statements)
        return interpret(checked, stdout=stdout)
    except OnoError as err:
        logger.debug("%s phase failed with %d errors", err.phase, len(err.errors))
        raise err.annotated(source, filename) from None
