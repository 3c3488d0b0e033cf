"""Evaluation through the full pipeline, plus interpreter configuration."""

from __future__ import annotations

import io

import pytest

from ono import run
from ono.checker import check
from ono.diagnostics import InternalError, OnoError
from ono.interp import Interpreter
from ono.lexer import tokenize
from ono.parser import parse
from ono.runtime import BUILTINS, BuiltinFunction, Function, builtin_signatures, display
from ono.types import UNIT, FunctionSignature


def evaluate(source: str):
    out = io.StringIO()
    value = run(source, stdout=out)
    return value, out.getvalue()


def runtime_error(source: str):
    out = io.StringIO()
    with pytest.raises(OnoError) as info:
        run(source, stdout=out)
    assert info.value.phase == "runtime"
    [error] = info.value.errors
    return error, out.getvalue()


def test_arithmetic_and_text() -> None:
    assert evaluate("1 + 2;")[0] == 3.0
    assert evaluate("7 - 2 * 3 / 2;")[0] == 4.0
    assert evaluate('"a" + "b";')[0] == "ab"
    assert evaluate("-(2 + 3);")[0] == -5.0


def test_comparison_and_equality() -> None:
    assert evaluate("1 <= 1;")[0] is True
    assert evaluate('"a" != "b";')[0] is True
    assert evaluate('(1, "a") == (1, "a");')[0] is True
    assert evaluate("!(2 > 3);")[0] is True


def test_print_writes_display_forms() -> None:
    source = 'print(1); print(2.5); print("hi"); print(true); print((1, "a")); print(());'
    value, out = evaluate(source)
    assert value == ()
    assert out == "1\n2.5\nhi\ntrue\n(1, a)\n()\n"


def test_logical_operators_short_circuit() -> None:
    prelude = 'fun boom() { print("boom"); return true; } '
    assert evaluate(prelude + "false and boom();") == (False, "")
    assert evaluate(prelude + "true or boom();") == (True, "")
    assert evaluate(prelude + "true and boom();") == (True, "boom\n")


def test_nested_calls() -> None:
    assert evaluate("fun f(a) { return a + 1; } f(f(2));")[0] == 4.0


def test_while_loop() -> None:
    source = "let i = 0; let s = 0; while i < 5 { s = s + i; i = i + 1; } s;"
    assert evaluate(source)[0] == 10.0


def test_for_loops() -> None:
    assert evaluate("let s = 0; for i in 0..5 { s = s + i; } s;")[0] == 10.0
    assert evaluate("for i in 3..0 { print(i); }")[1] == "3\n2\n1\n"
    assert evaluate("for i in 0..2..7 { print(i); }")[1] == "0\n2\n4\n6\n"
    assert evaluate("for i in 2..2 { print(i); }")[1] == ""


def test_fractional_step_stays_half_open() -> None:
    source = """
    let n = 0;
    let last = 0;
    for i in 0..0.1..1 { n = n + 1; last = i; }
    print(n);
    last;
    """
    value, out = evaluate(source)
    assert out == "10\n"
    assert value < 0.95
    assert evaluate("let n = 0; for i in 1..-0.1..0 { n = n + 1; } n;")[0] == 10.0


def test_loop_variable_is_fresh_each_iteration() -> None:
    source = """
    let last = 0;
    for i in 0..3 { let doubled = i * 2; last = doubled; }
    last;
    """
    assert evaluate(source)[0] == 4.0


@pytest.mark.parametrize(
    "source, message",
    [
        ("for i in 0..-1..5 { }", "invalid range from 0 to 5 with step -1"),
        ("for i in 0..0..5 { }", "invalid range from 0 to 5 with step 0"),
        ("for i in 5..1..0 { }", "invalid range from 5 to 0 with step 1"),
    ],
)
def test_invalid_ranges(source: str, message: str) -> None:
    error, _ = runtime_error(source)
    assert error.code == "R002"
    assert error.message == message
    assert error.token.lexeme == ".."


def test_division_by_zero_stops_the_program() -> None:
    error, out = runtime_error("print(1); 1 / 0; print(2);")
    assert error.code == "R001"
    assert error.token.position.column == 12
    assert out == "1\n"


def test_type_errors_prevent_execution() -> None:
    out = io.StringIO()
    with pytest.raises(OnoError) as info:
        run('print("x"); "a" + 1;', stdout=out)
    assert info.value.phase == "check"
    assert out.getvalue() == ""


def test_recursion() -> None:
    source = "fun fib(n) { if n < 2 { return n; } return fib(n - 1) + fib(n - 2); } fib(10);"
    assert evaluate(source)[0] == 55.0


def test_counters_keep_their_own_frames() -> None:
    source = """
    fun make() {
        let c = 0;
        fun inc() { c = c + 1; return c; }
        return inc;
    }
    let c1 = make();
    c1();
    c1();
    let c2 = make();
    c2();
    c1();
    """
    assert evaluate(source)[0] == 3.0


def test_closure_sees_later_assignment() -> None:
    assert evaluate("let x = 1; fun get() { return x; } x = 2; get();")[0] == 2.0


def test_shadowing_in_block() -> None:
    value, out = evaluate('let x = 1; { let x = "s"; print(x); } x;')
    assert (value, out) == (1.0, "s\n")


def test_block_and_function_tail_values() -> None:
    assert evaluate("{ let a = 2; a * 3 }")[0] == 6.0
    assert evaluate("fun sq(a) { a * a } sq(4);")[0] == 16.0
    assert evaluate("fun noop() {} noop();")[0] == ()


def test_if_else_chain() -> None:
    source = "let r = 0; let x = 5; if x < 3 { r = 1; } else if x < 10 { r = 2; } else { r = 3; } r;"
    assert evaluate(source)[0] == 2.0


def test_non_expression_statement_yields_unit() -> None:
    assert evaluate("let x = 1;")[0] == ()


def test_function_values_display() -> None:
    value, _ = evaluate("fun f() {} f;")
    assert isinstance(value, Function)
    assert display(value) == "<fun f>"
    assert display(evaluate("print;")[0]) == "<builtin print>"


def test_clock_is_monotonic() -> None:
    assert evaluate("let t = clock(); clock() - t >= 0;")[0] is True


def test_failing_builtin_is_a_runtime_error() -> None:
    def explode(ctx, args):
        raise ValueError("kaboom")

    builtins = dict(BUILTINS)
    builtins["explode"] = BuiltinFunction(FunctionSignature("explode", (), UNIT), explode)
    program = check(parse(tokenize("explode();")), builtins=builtin_signatures(builtins))
    with pytest.raises(OnoError) as info:
        Interpreter(builtins=builtins).interpret(program.statements)
    [error] = info.value.errors
    assert error.code == "R003"
    assert error.message == "builtin 'explode' failed: kaboom"


def test_unchecked_program_hits_internal_error() -> None:
    with pytest.raises(InternalError, match=r"\[ONO LANGUAGE ERROR\]"):
        Interpreter().interpret(parse(tokenize('"a" - 1;')))
