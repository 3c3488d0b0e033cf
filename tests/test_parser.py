"""Parser: precedence, paren arity, blocks, statements, error recovery."""

from __future__ import annotations

import pytest

from ono import ast
from ono.ast import dump
from ono.diagnostics import OnoError
from ono.lexer import tokenize
from ono.parser import parse


def dumped(source: str):
    return [dump(stmt) for stmt in parse(tokenize(source))]


def parse_errors(source: str):
    with pytest.raises(OnoError) as info:
        parse(tokenize(source))
    assert info.value.phase == "parse"
    return info.value.errors


def test_binary_literal_statement() -> None:
    [stmt] = parse(tokenize("1 + 2;"))
    assert isinstance(stmt, ast.Expression)
    assert isinstance(stmt.expr, ast.Binary)
    assert stmt.expr.operator.lexeme == "+"
    assert isinstance(stmt.expr.left, ast.Literal)
    assert stmt.expr.left.value.literal == 1.0


@pytest.mark.parametrize(
    "source, expected",
    [
        ("1 + 2 * 3;", "(+ 1 (* 2 3));"),
        ("1 - 2 - 3;", "(- (- 1 2) 3);"),
        ("8 / 4 / 2;", "(/ (/ 8 4) 2);"),
        ("a = b = 1;", "(= a (= b 1));"),
        ("!-x;", "(! (- x));"),
        ("a or b and c;", "(or a (and b c));"),
        ("1 < 2 == true;", "(== (< 1 2) true);"),
        ("-(1 + 2) * 3;", "(* (- (group (+ 1 2))) 3);"),
    ],
)
def test_precedence_and_associativity(source: str, expected: str) -> None:
    assert dumped(source) == [expected]


def test_parenthesis_arity() -> None:
    assert dumped("(); (1); (1, 2);") == ["(tuple);", "(group 1);", "(tuple 1 2);"]


def test_calls_chain_left_to_right() -> None:
    assert dumped("f(1)(2, 3); g();") == ["(call (call f 1) 2 3);", "(call g);"]


def test_let_with_types() -> None:
    assert dumped('let x: number = 1; let p: (number, text) = (1, "a"); let u: () = ();') == [
        "(let x: number 1)",
        '(let p: (number, text) (tuple 1 "a"))',
        "(let u: () (tuple))",
    ]


def test_block_with_tail_expression() -> None:
    [block] = parse(tokenize("{ let x = 1; x }"))
    assert isinstance(block, ast.Block)
    assert isinstance(block.tail, ast.Variable)
    assert dump(block) == "{(let x 1) x}"


def test_if_else_chain() -> None:
    assert dumped("if a { 1 } else if b { 2 } else { 3 }") == ["(if a {1} else (if b {2} else {3}))"]


def test_while_loop() -> None:
    assert dumped("while x < 3 { x = x + 1; }") == ["(while (< x 3) {(= x (+ x 1));})"]


def test_for_ranges() -> None:
    assert dumped("for i in 0..10 { print(i); } for j in 10..-2..0 {}") == [
        "(for i (.. 0 10) {(call print i);})",
        "(for j (.. 10 (- 2) 0) {})",
    ]


def test_function_declaration() -> None:
    [fun] = parse(tokenize("fun add(a, b) { return a + b; }"))
    assert isinstance(fun, ast.Function)
    assert [p.lexeme for p in fun.params] == ["a", "b"]
    assert dump(fun) == "(fun add (a b) {(return (+ a b))})"


def test_bare_return() -> None:
    assert dumped("fun f() { return; }") == ["(fun f () {(return)})"]


def test_missing_operand() -> None:
    [error] = parse_errors("1 +;")
    assert error.code == "S004"
    assert error.message == "expected expression after '+'"


def test_every_syntax_error_is_reported() -> None:
    errors = parse_errors("let = 1; let y 2; 3 +; let ok = 4;")
    assert [e.code for e in errors] == ["S007", "S008", "S004"]
    assert errors[1].message == "'y' must be initialized"


def test_invalid_assignment_target_does_not_abort() -> None:
    [error] = parse_errors("1 = 2;")
    assert error.code == "S009"
    assert error.token.position.column == 2


def test_unclosed_parenthesis_points_at_opening() -> None:
    [error] = parse_errors("(1, 2;")
    assert error.code == "S003"
    assert error.token.position.column == 0


def test_unterminated_block_points_at_brace() -> None:
    [error] = parse_errors("let a = 0;\n{ let x = 1;")
    assert error.code == "S010"
    assert (error.token.position.line, error.token.position.column) == (1, 0)


def test_missing_semicolon() -> None:
    [error] = parse_errors("let x = 1")
    assert error.message == "expected ';' after '1'"


def test_missing_type() -> None:
    [error] = parse_errors("let x: = 1;")
    assert error.message == "expected type after ':'"


def test_recovery_inside_block_keeps_the_block() -> None:
    errors = parse_errors("{ 1 +; let y = 2; y } let z = ;")
    assert [e.code for e in errors] == ["S004", "S004"]


def test_stray_closing_brace_terminates() -> None:
    errors = parse_errors("}; 1;")
    assert errors
    assert all(e.code == "S004" for e in errors)
