from __future__ import annotations

import logging
import sys
from typing import List, Mapping, Optional, Sequence, Union

from . import ast
from .checker import CheckedProgram
from .diagnostics import Diagnostic, InternalError, OnoError, runtime_error
from .environment import Environment, UndefinedName
from .runtime import BUILTINS, BuiltinFunction, Function, RangeValue, RuntimeContext, display
from .tokens import Token, TokenKind

logger = logging.getLogger(__name__)

Value = object


class ReturnSignal(Exception):
    def __init__(self, value: Value) -> None:
        self.value = value


class RuntimeFailure(Exception):
    def __init__(self, diagnostic: Diagnostic) -> None:
        super().__init__(diagnostic.message)
        self.diagnostic = diagnostic


def _numbers(operator: Token, left: Value, right: Value) -> None:
    if not isinstance(left, float) or not isinstance(right, float):
        raise InternalError(f"'{operator.lexeme}' applied to {left!r} and {right!r}")


def _boolean(operator: Token, value: Value) -> bool:
    if not isinstance(value, bool):
        raise InternalError(f"'{operator.lexeme}' applied to {value!r}")
    return value


class Interpreter:
    def __init__(
        self,
        builtins: Optional[Mapping[str, BuiltinFunction]] = None,
        stdout=None,
    ) -> None:
        self.builtins = BUILTINS if builtins is None else builtins
        self.stdout = stdout or sys.stdout
        self.runtime_ctx = RuntimeContext(self.stdout)
        self.global_env: Environment[Value] = Environment()
        for name, builtin in self.builtins.items():
            self.global_env.define(name, builtin)

    def interpret(self, statements: Sequence[ast.Stmt]) -> Value:
        """Run `statements` in the global scope; returns the last statement's value."""
        logger.debug("interpreting %d statements", len(statements))
        result: Value = ()
        try:
            for stmt in statements:
                result = self._exec_stmt(stmt, self.global_env)
        except RuntimeFailure as failure:
            raise OnoError("runtime", [failure.diagnostic]) from None
        except ReturnSignal:
            raise InternalError("return escaped every function call")
        return result

    # statements -----------------------------------------------------------

    def _exec_stmt(self, stmt: ast.Stmt, env: Environment[Value]) -> Value:
        if isinstance(stmt, ast.Expression):
            return self._eval_expr(stmt.expr, env)
        if isinstance(stmt, ast.Let):
            env.define(stmt.name.lexeme, self._eval_expr(stmt.initializer, env))
            return ()
        if isinstance(stmt, ast.Block):
            return self._exec_block(stmt, env)
        if isinstance(stmt, ast.If):
            if _boolean(stmt.keyword, self._eval_expr(stmt.condition, env)):
                self._exec_block(stmt.then_branch, env)
            elif stmt.else_branch is not None:
                self._exec_stmt(stmt.else_branch, env)
            return ()
        if isinstance(stmt, ast.While):
            while _boolean(stmt.keyword, self._eval_expr(stmt.condition, env)):
                self._exec_block(stmt.body, env)
            return ()
        if isinstance(stmt, ast.For):
            for value in self._eval_range(stmt.range, env):
                loop_env = env.nest()
                loop_env.define(stmt.name.lexeme, value)
                self._exec_block(stmt.body, loop_env)
            return ()
        if isinstance(stmt, ast.Function):
            closure = env.nest()
            params = tuple(param.lexeme for param in stmt.params)
            env.define(stmt.name.lexeme, Function(stmt.name.lexeme, params, stmt.body, closure))
            return ()
        if isinstance(stmt, ast.Return):
            value = () if stmt.value is None else self._eval_expr(stmt.value, env)
            raise ReturnSignal(value)
        raise InternalError(f"unsupported statement {type(stmt).__name__}")

    def _exec_block(self, block: ast.Block, env: Environment[Value]) -> Value:
        return self._exec_body(block, env.nest())

    def _exec_body(self, block: ast.Block, env: Environment[Value]) -> Value:
        for stmt in block.statements:
            self._exec_stmt(stmt, env)
        if block.tail is None:
            return ()
        return self._eval_expr(block.tail, env)

    def _eval_range(self, range_: ast.Range, env: Environment[Value]) -> RangeValue:
        start = self._eval_expr(range_.start, env)
        step = None if range_.step is None else self._eval_expr(range_.step, env)
        end = self._eval_expr(range_.end, env)
        _numbers(range_.operator, start, end)
        if step is None:
            value = RangeValue.between(start, end)
        else:
            _numbers(range_.operator, start, step)
            value = RangeValue(start=start, end=end, step=step)
        if not value.is_valid():
            raise RuntimeFailure(
                runtime_error(
                    "R002",
                    range_.operator,
                    start=display(value.start),
                    end=display(value.end),
                    step=display(value.step),
                )
            )
        return value

    # expressions ----------------------------------------------------------

    def _eval_expr(self, expr: ast.Expr, env: Environment[Value]) -> Value:
        if isinstance(expr, ast.Literal):
            return self._literal(expr.value)
        if isinstance(expr, ast.Variable):
            value = env.get(expr.name.lexeme)
            if value is None:
                raise InternalError(f"'{expr.name.lexeme}' is unbound at run time")
            return value
        if isinstance(expr, ast.Assign):
            value = self._eval_expr(expr.value, env)
            try:
                env.assign(expr.name.lexeme, value)
            except UndefinedName as exc:
                raise InternalError(str(exc)) from exc
            return value
        if isinstance(expr, ast.Group):
            return self._eval_expr(expr.expr, env)
        if isinstance(expr, ast.TupleLiteral):
            return tuple(self._eval_expr(item, env) for item in expr.items)
        if isinstance(expr, ast.Unary):
            operand = self._eval_expr(expr.operand, env)
            if expr.operator.kind is TokenKind.BANG:
                return not _boolean(expr.operator, operand)
            if not isinstance(operand, float):
                raise InternalError(f"'-' applied to {operand!r}")
            return -operand
        if isinstance(expr, ast.Logical):
            left = _boolean(expr.operator, self._eval_expr(expr.left, env))
            if expr.operator.kind is TokenKind.OR:
                return left if left else _boolean(expr.operator, self._eval_expr(expr.right, env))
            return _boolean(expr.operator, self._eval_expr(expr.right, env)) if left else left
        if isinstance(expr, ast.Binary):
            left = self._eval_expr(expr.left, env)
            right = self._eval_expr(expr.right, env)
            return self._eval_binary(expr.operator, left, right)
        if isinstance(expr, ast.Call):
            callee = self._eval_expr(expr.callee, env)
            args = [self._eval_expr(arg, env) for arg in expr.arguments]
            return self._invoke(callee, args, expr.paren)
        raise InternalError(f"unsupported expression {type(expr).__name__}")

    def _literal(self, token: Token) -> Value:
        if token.kind is TokenKind.TRUE:
            return True
        if token.kind is TokenKind.FALSE:
            return False
        return token.literal

    def _eval_binary(self, operator: Token, left: Value, right: Value) -> Value:
        kind = operator.kind
        if kind is TokenKind.EQUAL_EQUAL:
            return left == right
        if kind is TokenKind.BANG_EQUAL:
            return left != right
        if kind is TokenKind.PLUS and isinstance(left, str) and isinstance(right, str):
            return left + right
        _numbers(operator, left, right)
        if kind is TokenKind.PLUS:
            return left + right
        if kind is TokenKind.MINUS:
            return left - right
        if kind is TokenKind.STAR:
            return left * right
        if kind is TokenKind.SLASH:
            if right == 0:
                raise RuntimeFailure(runtime_error("R001", operator))
            return left / right
        if kind is TokenKind.GREATER:
            return left > right
        if kind is TokenKind.GREATER_EQUAL:
            return left >= right
        if kind is TokenKind.LESS:
            return left < right
        if kind is TokenKind.LESS_EQUAL:
            return left <= right
        raise InternalError(f"unsupported operator {operator.lexeme}")

    def _invoke(self, callee: Value, args: List[Value], paren: Token) -> Value:
        if isinstance(callee, BuiltinFunction):
            if callee.arity != len(args):
                raise InternalError(f"{callee.name} expects {callee.arity} args, got {len(args)}")
            try:
                return callee.impl(self.runtime_ctx, args)
            except (OSError, ValueError, ArithmeticError) as exc:
                raise RuntimeFailure(runtime_error("R003", paren, callee=callee.name, reason=exc)) from exc
        if isinstance(callee, Function):
            if callee.arity != len(args):
                raise InternalError(f"{callee.name} expects {callee.arity} args, got {len(args)}")
            logger.debug("calling %s with %d args", callee.name, len(args))
            env = callee.closure.nest()
            for param, value in zip(callee.params, args):
                env.define(param, value)
            try:
                return self._exec_body(callee.body, env)
            except ReturnSignal as signal:
                return signal.value
        raise InternalError(f"cannot call {callee!r}")


def interpret(
    program: Union[CheckedProgram, Sequence[ast.Stmt]],
    builtins: Optional[Mapping[str, BuiltinFunction]] = None,
    stdout=None,
) -> Value:
    """Evaluate a checked program; raises OnoError holding the first runtime error."""
    statements = program.statements if isinstance(program, CheckedProgram) else program
    return Interpreter(builtins=builtins, stdout=stdout).interpret(statements)
