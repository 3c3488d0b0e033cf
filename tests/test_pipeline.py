"""End-to-end scenarios through tokenize -> parse -> check -> interpret."""

from __future__ import annotations

import io

import pytest

from ono import OnoError, check, interpret, parse, run, tokenize
from ono import ast
from ono.tokens import TokenKind as K
from ono.types import NUMBER


def test_each_phase_on_a_sum() -> None:
    tokens = tokenize("1 + 2;")
    assert [t.kind for t in tokens] == [K.NUMBER, K.PLUS, K.NUMBER, K.SEMICOLON, K.EOF]
    statements = parse(tokens)
    assert ast.dump(statements[0]) == "(+ 1 2);"
    program = check(statements)
    assert program.result_type == NUMBER
    assert interpret(program) == 3.0


def test_phases_stop_at_the_first_failing_one() -> None:
    with pytest.raises(OnoError) as info:
        run('"a" + 1; @')
    assert info.value.phase == "lex"


@pytest.mark.parametrize(
    "source",
    [
        "1 / 0;",
        "let z = 0; 10 / z;",
        "for i in 0..0..3 { }",
        "fun half(a) { return a / 0; } half(4);",
    ],
)
def test_checked_programs_fail_only_with_runtime_codes(source: str) -> None:
    program = check(parse(tokenize(source)))
    with pytest.raises(OnoError) as info:
        interpret(program, stdout=io.StringIO())
    assert [e.code[0] for e in info.value.errors] == ["R"]


def test_program_with_everything() -> None:
    source = """
    # sum of squares of the even numbers below ten
    fun square(n) { n * n }
    fun is_even(n) {
        let half = n / 2;
        let rounded = 0;
        while rounded + 1 <= half { rounded = rounded + 1; }
        return rounded == half;
    }
    let total: number = 0;
    for i in 0..10 {
        if is_even(i) { total = total + square(i); }
    }
    let label: (text, number) = ("total", total);
    print(label);
    total
    ;
    """
    out = io.StringIO()
    assert run(source, stdout=out) == 120.0
    assert out.getvalue() == "(total, 120)\n"
