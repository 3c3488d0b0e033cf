from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Set, Tuple

from . import ast
from .diagnostics import Diagnostic, InternalError, OnoError, type_error
from .environment import Environment
from .runtime import builtin_signatures
from .tokens import Token, TokenKind
from .types import (
    BOOL,
    NUMBER,
    TEXT,
    UNIT,
    UNKNOWN,
    BuiltinType,
    FunctionSignature,
    FunctionType,
    Type,
    accepts,
    builtin_type,
    compatible,
    function_type,
    has_unknown,
    tuple_of,
)

logger = logging.getLogger(__name__)

_ARITHMETIC = {(NUMBER, NUMBER): NUMBER}
_COMPARISON = {(NUMBER, NUMBER): BOOL}

# operator -> (left, right) -> result
_BINARY: Dict[TokenKind, Dict[Tuple[Type, Type], Type]] = {
    TokenKind.PLUS: {(NUMBER, NUMBER): NUMBER, (TEXT, TEXT): TEXT},
    TokenKind.MINUS: _ARITHMETIC,
    TokenKind.STAR: _ARITHMETIC,
    TokenKind.SLASH: _ARITHMETIC,
    TokenKind.GREATER: _COMPARISON,
    TokenKind.GREATER_EQUAL: _COMPARISON,
    TokenKind.LESS: _COMPARISON,
    TokenKind.LESS_EQUAL: _COMPARISON,
}

_UNARY: Dict[TokenKind, Dict[Type, Type]] = {
    TokenKind.MINUS: {NUMBER: NUMBER},
    TokenKind.BANG: {BOOL: BOOL},
}

_LITERALS = {
    TokenKind.NUMBER: NUMBER,
    TokenKind.STRING: TEXT,
    TokenKind.TRUE: BOOL,
    TokenKind.FALSE: BOOL,
}

# Nested instantiations of one function before its return type is given up on.
MAX_INSTANTIATION_DEPTH = 16


class CheckError(Exception):
    """Unwinds to the nearest statement. `diagnostic` is None when already reported."""

    def __init__(self, diagnostic: Optional[Diagnostic]) -> None:
        super().__init__(diagnostic.message if diagnostic is not None else "already reported")
        self.diagnostic = diagnostic


@dataclass
class CheckedProgram:
    statements: List[ast.Stmt]
    expr_types: Dict[ast.Expr, Type]
    result_type: Type


@dataclass
class FunctionContext:
    """One function body being checked against one argument signature."""

    function: FunctionType
    arg_types: Tuple[Type, ...]
    returns: List[Tuple[Type, Token]] = field(default_factory=list)


def _operator_result(table: Mapping[Tuple[Type, Type], Type], left: Type, right: Type) -> Optional[Type]:
    results = {
        result
        for (expected_left, expected_right), result in table.items()
        if compatible(expected_left, left) and compatible(expected_right, right)
    }
    if not results:
        return None
    if len(results) == 1:
        return results.pop()
    return UNKNOWN


class Checker:
    def __init__(self, builtins: Optional[Mapping[str, FunctionSignature]] = None) -> None:
        self.builtins = builtin_signatures() if builtins is None else dict(builtins)
        self.errors: List[Diagnostic] = []
        self.expr_types: Dict[ast.Expr, Type] = {}
        self._seen: Set[tuple] = set()
        self._functions: List[FunctionContext] = []
        self._declared: List[FunctionType] = []
        # Bumped whenever a binding hides or replaces a visible name; instances
        # checked before that may have resolved the name differently.
        self._generation = 0

    def check(self, statements: Sequence[ast.Stmt]) -> CheckedProgram:
        globals_env: Environment[Type] = Environment()
        for name, signature in self.builtins.items():
            globals_env.define(name, builtin_type(signature))

        result_type = UNIT
        for stmt in statements:
            try:
                result_type = self._check_stmt(stmt, globals_env)
            except CheckError as err:
                self._report(err.diagnostic)
                result_type = UNIT
        self._check_uncalled()
        logger.debug("checked %d statements with %d errors", len(statements), len(self.errors))
        if self.errors:
            raise OnoError("check", self.errors)
        return CheckedProgram(statements=list(statements), expr_types=self.expr_types, result_type=result_type)

    def _check_uncalled(self) -> None:
        """Check every function no call reached, with its parameters typed UNKNOWN."""
        index = 0
        while index < len(self._declared):
            function = self._declared[index]
            index += 1
            if function.instances or function.decl is None:
                continue
            try:
                self._instantiate(function, (UNKNOWN,) * function.arity, function.decl.name)
            except CheckError as err:
                self._report(err.diagnostic)

    def _report(self, diagnostic: Optional[Diagnostic]) -> None:
        if diagnostic is None:
            return
        key = diagnostic.key()
        if key in self._seen:
            return
        self._seen.add(key)
        self.errors.append(diagnostic)

    def _check_statements(self, statements: Sequence[ast.Stmt], env: Environment[Type]) -> None:
        for stmt in statements:
            try:
                self._check_stmt(stmt, env)
            except CheckError as err:
                self._report(err.diagnostic)

    def _define(self, env: Environment[Type], name: str, ty: Type) -> None:
        if env.get(name) is not None:
            self._generation += 1
        env.define(name, ty)

    # statements -----------------------------------------------------------

    def _check_stmt(self, stmt: ast.Stmt, env: Environment[Type]) -> Type:
        if isinstance(stmt, ast.Expression):
            return self._check_expr(stmt.expr, env)
        if isinstance(stmt, ast.Let):
            self._check_let(stmt, env)
            return UNIT
        if isinstance(stmt, ast.Block):
            return self._check_block(stmt, env)
        if isinstance(stmt, ast.If):
            self._check_condition(stmt.keyword, stmt.condition, env)
            self._check_block(stmt.then_branch, env)
            if stmt.else_branch is not None:
                self._check_stmt(stmt.else_branch, env)
            return UNIT
        if isinstance(stmt, ast.While):
            self._check_condition(stmt.keyword, stmt.condition, env)
            self._check_block(stmt.body, env)
            return UNIT
        if isinstance(stmt, ast.For):
            self._check_range(stmt.range, env)
            loop_env = env.nest()
            loop_env.define(stmt.name.lexeme, NUMBER)
            self._check_block(stmt.body, loop_env)
            return UNIT
        if isinstance(stmt, ast.Function):
            declared = function_type(stmt, env.nest())
            self._declared.append(declared)
            self._define(env, stmt.name.lexeme, declared)
            return UNIT
        if isinstance(stmt, ast.Return):
            if not self._functions:
                raise CheckError(type_error("T010", stmt.keyword))
            value_type = UNIT if stmt.value is None else self._check_expr(stmt.value, env)
            self._functions[-1].returns.append((value_type, stmt.keyword))
            return UNIT
        raise InternalError(f"unsupported statement {type(stmt).__name__}")

    def _check_let(self, stmt: ast.Let, env: Environment[Type]) -> None:
        name = stmt.name.lexeme
        try:
            found = self._check_expr(stmt.initializer, env)
        except CheckError:
            if stmt.declared_type is not None:
                self._define(env, name, stmt.declared_type)
            raise
        if stmt.declared_type is None:
            self._define(env, name, found)
            return
        self._define(env, name, stmt.declared_type)
        if not compatible(stmt.declared_type, found):
            raise CheckError(
                type_error("T003", stmt.name, declared=stmt.declared_type, found=found)
            )

    def _check_block(self, block: ast.Block, env: Environment[Type]) -> Type:
        inner = env.nest()
        self._check_statements(block.statements, inner)
        if block.tail is None:
            return UNIT
        try:
            return self._check_expr(block.tail, inner)
        except CheckError as err:
            self._report(err.diagnostic)
            raise CheckError(None)

    def _check_condition(self, keyword: Token, condition: ast.Expr, env: Environment[Type]) -> None:
        try:
            found = self._check_expr(condition, env)
        except CheckError as err:
            self._report(err.diagnostic)
            return
        if not compatible(BOOL, found):
            self._report(type_error("T008", keyword, found=found))

    def _check_range(self, range_: ast.Range, env: Environment[Type]) -> None:
        bounds = [range_.start] + ([range_.step] if range_.step is not None else []) + [range_.end]
        for bound in bounds:
            found = self._check_expr(bound, env)
            if not compatible(NUMBER, found):
                raise CheckError(type_error("T009", range_.operator, found=found))

    # expressions ----------------------------------------------------------

    def _check_expr(self, expr: ast.Expr, env: Environment[Type]) -> Type:
        ty = self._infer(expr, env)
        self.expr_types[expr] = ty
        return ty

    def _infer(self, expr: ast.Expr, env: Environment[Type]) -> Type:
        if isinstance(expr, ast.Literal):
            return _LITERALS[expr.value.kind]
        if isinstance(expr, ast.Variable):
            found = env.get(expr.name.lexeme)
            if found is None:
                raise CheckError(type_error("T004", expr.name))
            return found
        if isinstance(expr, ast.Assign):
            found = self._check_expr(expr.value, env)
            declared = env.get(expr.name.lexeme)
            if declared is None:
                raise CheckError(type_error("T004", expr.name))
            if not compatible(declared, found):
                raise CheckError(type_error("T005", expr.name, declared=declared, found=found))
            return declared
        if isinstance(expr, ast.Group):
            return self._check_expr(expr.expr, env)
        if isinstance(expr, ast.TupleLiteral):
            return tuple_of(self._check_expr(item, env) for item in expr.items)
        if isinstance(expr, ast.Unary):
            operand = self._check_expr(expr.operand, env)
            for expected, result in _UNARY[expr.operator.kind].items():
                if compatible(expected, operand):
                    return result
            raise CheckError(type_error("T002", expr.operator, operand=operand))
        if isinstance(expr, ast.Binary):
            return self._check_binary(expr, env)
        if isinstance(expr, ast.Logical):
            left = self._check_expr(expr.left, env)
            right = self._check_expr(expr.right, env)
            if not compatible(BOOL, left) or not compatible(BOOL, right):
                raise CheckError(type_error("T001", expr.operator, left=left, right=right))
            return BOOL
        if isinstance(expr, ast.Call):
            return self._check_call(expr, env)
        raise InternalError(f"unsupported expression {type(expr).__name__}")

    def _check_binary(self, expr: ast.Binary, env: Environment[Type]) -> Type:
        left = self._check_expr(expr.left, env)
        right = self._check_expr(expr.right, env)
        kind = expr.operator.kind
        if kind in (TokenKind.EQUAL_EQUAL, TokenKind.BANG_EQUAL):
            result: Optional[Type] = BOOL if compatible(left, right) else None
        else:
            result = _operator_result(_BINARY[kind], left, right)
        if result is None:
            raise CheckError(type_error("T001", expr.operator, left=left, right=right))
        return result

    def _check_call(self, expr: ast.Call, env: Environment[Type]) -> Type:
        callee = self._check_expr(expr.callee, env)
        arg_types = tuple(self._check_expr(arg, env) for arg in expr.arguments)
        if isinstance(callee, BuiltinType):
            return self._check_builtin_call(callee, arg_types, expr)
        if isinstance(callee, FunctionType):
            if callee.arity != len(arg_types):
                raise CheckError(
                    type_error("T006", expr.paren, callee=callee.name, expected=callee.arity, found=len(arg_types))
                )
            return self._instantiate(callee, arg_types, expr.paren)
        if callee == UNKNOWN:
            return UNKNOWN
        raise CheckError(type_error("T007", expr.paren, found=callee))

    def _check_builtin_call(self, callee: BuiltinType, arg_types: Tuple[Type, ...], expr: ast.Call) -> Type:
        signature = callee.signature
        if signature is None:
            raise InternalError(f"builtin {callee.name} has no signature")
        if len(signature.params) != len(arg_types):
            raise CheckError(
                type_error(
                    "T006", expr.paren, callee=signature.name, expected=len(signature.params), found=len(arg_types)
                )
            )
        for expected, found in zip(signature.params, arg_types):
            if not accepts(expected, found):
                raise CheckError(type_error("T013", expr.paren, callee=signature.name, expected=expected, found=found))
        return signature.return_type

    # functions ------------------------------------------------------------

    def _instantiate(self, function: FunctionType, arg_types: Tuple[Type, ...], anchor: Token) -> Type:
        key = (arg_types, self._generation)
        cached = function.instances.get(key)
        if isinstance(cached, Type):
            return cached

        for active in reversed(self._functions):
            if active.function is function and active.arg_types == arg_types:
                # Recursive call: fall back to whatever the body returned so far.
                if active.returns:
                    return active.returns[0][0]
                if any(has_unknown(t) for t in arg_types):
                    return UNKNOWN
                raise CheckError(type_error("T012", anchor, callee=function.name))
        depth = sum(1 for active in self._functions if active.function is function)
        if depth >= MAX_INSTANTIATION_DEPTH:
            raise CheckError(type_error("T012", anchor, callee=function.name))

        decl = function.decl
        if decl is None or function.closure is None:
            raise InternalError(f"function type {function.name} has no declaration")
        logger.debug("checking %s(%s)", function.name, ", ".join(str(t) for t in arg_types))
        context = FunctionContext(function=function, arg_types=arg_types)
        body_env = function.closure.nest()
        for param, arg_type in zip(decl.params, arg_types):
            body_env.define(param.lexeme, arg_type)

        self._functions.append(context)
        try:
            self._check_statements(decl.body.statements, body_env)
            fall_through: Optional[Type] = UNIT
            if decl.body.tail is not None:
                try:
                    fall_through = self._check_expr(decl.body.tail, body_env)
                except CheckError as err:
                    self._report(err.diagnostic)
                    fall_through = None
        finally:
            self._functions.pop()

        results = list(context.returns)
        if fall_through is not None and not _definitely_returns(decl.body):
            results.append((fall_through, decl.name))
        known = [ty for ty, _ in results if not has_unknown(ty)]
        if known:
            result = known[0]
        else:
            result = results[0][0] if results else UNIT
        for found, token in results:
            if not compatible(result, found):
                self._report(type_error("T011", token, callee=function.name, expected=result, found=found))
        function.instances[key] = result
        return result


def _definitely_returns(stmt: ast.Stmt) -> bool:
    if isinstance(stmt, ast.Return):
        return True
    if isinstance(stmt, ast.Block):
        return any(_definitely_returns(inner) for inner in stmt.statements)
    if isinstance(stmt, ast.If):
        return (
            stmt.else_branch is not None
            and _definitely_returns(stmt.then_branch)
            and _definitely_returns(stmt.else_branch)
        )
    return False


def check(statements: Sequence[ast.Stmt], builtins: Optional[Mapping[str, FunctionSignature]] = None) -> CheckedProgram:
    """Type-check a whole program; raises OnoError with every type error."""
    return Checker(builtins=builtins).check(statements)
