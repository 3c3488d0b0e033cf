"""Tokenizer: maximal munch, grapheme columns, error collection."""

from __future__ import annotations

import pytest

from ono.diagnostics import OnoError
from ono.lexer import tokenize
from ono.tokens import TokenKind as K


def kinds(source: str):
    return [token.kind for token in tokenize(source)]


def test_arithmetic_statement() -> None:
    tokens = tokenize("1 + 2;")
    assert [t.kind for t in tokens] == [K.NUMBER, K.PLUS, K.NUMBER, K.SEMICOLON, K.EOF]
    assert tokens[0].literal == 1.0
    assert tokens[2].position.column == 4
    assert tokens[-1].lexeme == ""
    assert tokens[-1].position.column == 6


def test_empty_source_is_just_eof() -> None:
    assert kinds("") == [K.EOF]


def test_two_character_operators_take_precedence() -> None:
    assert kinds("!= == <= >= ! = < >") == [
        K.BANG_EQUAL,
        K.EQUAL_EQUAL,
        K.LESS_EQUAL,
        K.GREATER_EQUAL,
        K.BANG,
        K.EQUAL,
        K.LESS,
        K.GREATER,
        K.EOF,
    ]


def test_range_between_numbers() -> None:
    tokens = tokenize("1..5")
    assert [t.kind for t in tokens] == [K.NUMBER, K.DOT_DOT, K.NUMBER, K.EOF]
    assert (tokens[0].literal, tokens[2].literal) == (1.0, 5.0)


def test_decimal_number() -> None:
    assert tokenize("1.5")[0].literal == 1.5


def test_keywords_and_identifiers() -> None:
    assert kinds("let fun x text number bool in") == [
        K.LET,
        K.FUN,
        K.IDENTIFIER,
        K.TEXT_TYPE,
        K.NUMBER_TYPE,
        K.BOOL_TYPE,
        K.IN,
        K.EOF,
    ]


def test_comment_runs_to_end_of_line() -> None:
    tokens = tokenize("# hi\n1;")
    assert [t.kind for t in tokens] == [K.NUMBER, K.SEMICOLON, K.EOF]
    assert (tokens[0].position.line, tokens[0].position.column) == (1, 0)


def test_crlf_counts_as_one_newline() -> None:
    tokens = tokenize("1;\r\n2;")
    assert (tokens[2].position.line, tokens[2].position.column) == (1, 0)


def test_string_literal_keeps_raw_contents() -> None:
    token = tokenize('"héllo\nwörld"')[0]
    assert token.kind is K.STRING
    assert token.literal == "héllo\nwörld"
    assert token.lexeme == '"héllo\nwörld"'


def test_columns_count_grapheme_clusters() -> None:
    tokens = tokenize('"e\u0301" x')
    assert tokens[0].literal == "e\u0301"
    assert tokens[1].position.column == 4


def test_unterminated_string_reports_opening_quote() -> None:
    with pytest.raises(OnoError) as info:
        tokenize('let s = "abc')
    assert info.value.phase == "lex"
    [error] = info.value.errors
    assert error.code == "S002"
    assert error.token.position.column == 8


def test_every_unknown_symbol_is_reported() -> None:
    with pytest.raises(OnoError) as info:
        tokenize("1 @ 2; $ .")
    assert [(e.code, e.token.lexeme) for e in info.value.errors] == [
        ("S001", "@"),
        ("S001", "$"),
        ("S001", "."),
    ]
    assert info.value.errors[0].message == "encountered unexpected symbol '@'"


@pytest.mark.parametrize(
    "source",
    [
        'let x: (number, text) = (1, "a");',
        "fun f(a, b) { return a >= b and !false; }",
        "for i in 10..-2..0 { print(i); }",
    ],
)
def test_relexing_joined_lexemes_is_stable(source: str) -> None:
    tokens = tokenize(source)
    again = tokenize(" ".join(t.lexeme for t in tokens))
    assert [(t.kind, t.lexeme) for t in again] == [(t.kind, t.lexeme) for t in tokens]
