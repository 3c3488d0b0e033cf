from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from .tokens import Token
from .types import Type


class Expr:
    pass


class Stmt:
    pass


@dataclass(frozen=True, eq=False)
class Literal(Expr):
    value: Token


@dataclass(frozen=True, eq=False)
class Variable(Expr):
    name: Token


@dataclass(frozen=True, eq=False)
class Assign(Expr):
    name: Token
    value: Expr


@dataclass(frozen=True, eq=False)
class Unary(Expr):
    operator: Token
    operand: Expr


@dataclass(frozen=True, eq=False)
class Binary(Expr):
    operator: Token
    left: Expr
    right: Expr


@dataclass(frozen=True, eq=False)
class Logical(Expr):
    operator: Token
    left: Expr
    right: Expr


@dataclass(frozen=True, eq=False)
class Group(Expr):
    expr: Expr


@dataclass(frozen=True, eq=False)
class TupleLiteral(Expr):
    items: Tuple[Expr, ...]


@dataclass(frozen=True, eq=False)
class Range(Expr):
    operator: Token  # the first '..'
    start: Expr
    end: Expr
    step: Optional[Expr] = None


@dataclass(frozen=True, eq=False)
class Call(Expr):
    callee: Expr
    paren: Token  # the closing ')'
    arguments: Tuple[Expr, ...]


@dataclass(frozen=True, eq=False)
class Expression(Stmt):
    expr: Expr


@dataclass(frozen=True, eq=False)
class Let(Stmt):
    name: Token
    declared_type: Optional[Type]
    initializer: Expr


@dataclass(frozen=True, eq=False)
class Block(Stmt):
    brace: Token
    statements: Tuple[Stmt, ...]
    tail: Optional[Expr] = None


@dataclass(frozen=True, eq=False)
class If(Stmt):
    keyword: Token
    condition: Expr
    then_branch: Block
    else_branch: Optional[Stmt] = None  # a Block or a chained If


@dataclass(frozen=True, eq=False)
class While(Stmt):
    keyword: Token
    condition: Expr
    body: Block


@dataclass(frozen=True, eq=False)
class For(Stmt):
    name: Token
    range: Range
    body: Block


@dataclass(frozen=True, eq=False)
class Function(Stmt):
    name: Token
    params: Tuple[Token, ...]
    body: Block


@dataclass(frozen=True, eq=False)
class Return(Stmt):
    keyword: Token
    value: Optional[Expr] = None


def dump(node: object) -> str:
    """Render an AST node as a compact s-expression; used by tests and debug logging."""
    if isinstance(node, Literal):
        return node.value.lexeme
    if isinstance(node, Variable):
        return node.name.lexeme
    if isinstance(node, Assign):
        return f"(= {node.name.lexeme} {dump(node.value)})"
    if isinstance(node, Unary):
        return f"({node.operator.lexeme} {dump(node.operand)})"
    if isinstance(node, (Binary, Logical)):
        return f"({node.operator.lexeme} {dump(node.left)} {dump(node.right)})"
    if isinstance(node, Group):
        return f"(group {dump(node.expr)})"
    if isinstance(node, TupleLiteral):
        return "(tuple" + "".join(" " + dump(item) for item in node.items) + ")"
    if isinstance(node, Range):
        step = f" {dump(node.step)}" if node.step is not None else ""
        return f"(.. {dump(node.start)}{step} {dump(node.end)})"
    if isinstance(node, Call):
        return "(call " + dump(node.callee) + "".join(" " + dump(arg) for arg in node.arguments) + ")"
    if isinstance(node, Expression):
        return f"{dump(node.expr)};"
    if isinstance(node, Let):
        annotation = f": {node.declared_type}" if node.declared_type is not None else ""
        return f"(let {node.name.lexeme}{annotation} {dump(node.initializer)})"
    if isinstance(node, Block):
        parts = [dump(stmt) for stmt in node.statements]
        if node.tail is not None:
            parts.append(dump(node.tail))
        return "{" + " ".join(parts) + "}"
    if isinstance(node, If):
        otherwise = f" else {dump(node.else_branch)}" if node.else_branch is not None else ""
        return f"(if {dump(node.condition)} {dump(node.then_branch)}{otherwise})"
    if isinstance(node, While):
        return f"(while {dump(node.condition)} {dump(node.body)})"
    if isinstance(node, For):
        return f"(for {node.name.lexeme} {dump(node.range)} {dump(node.body)})"
    if isinstance(node, Function):
        params = " ".join(p.lexeme for p in node.params)
        return f"(fun {node.name.lexeme} ({params}) {dump(node.body)})"
    if isinstance(node, Return):
        return "(return)" if node.value is None else f"(return {dump(node.value)})"
    raise TypeError(f"cannot dump {node!r}")
