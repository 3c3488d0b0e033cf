"""
Recursive-descent parser for ono.

    program     -> declaration* EOF
    declaration -> letDecl | funDecl | statement
    letDecl     -> "let" IDENTIFIER (":" type)? "=" expression ";"
    funDecl     -> "fun" IDENTIFIER "(" (IDENTIFIER ("," IDENTIFIER)*)? ")" block
    statement   -> block | ifStmt | whileStmt | forStmt | returnStmt | exprStmt
    block       -> "{" declaration* expression? "}"
    ifStmt      -> "if" expression block ("else" (ifStmt | block))?
    whileStmt   -> "while" expression block
    forStmt     -> "for" IDENTIFIER "in" range block
    range       -> expression ".." expression (".." expression)?
    returnStmt  -> "return" expression? ";"
    exprStmt    -> expression ";"

    expression  -> assignment
    assignment  -> IDENTIFIER "=" assignment | logic_or
    logic_or    -> logic_and ("or" logic_and)*
    logic_and   -> equality ("and" equality)*
    equality    -> comparison (("!=" | "==") comparison)*
    comparison  -> term ((">" | ">=" | "<" | "<=") term)*
    term        -> factor (("-" | "+") factor)*
    factor      -> unary (("/" | "*") unary)*
    unary       -> ("!" | "-") unary | call
    call        -> primary ("(" (expression ("," expression)*)? ")")*
    primary     -> NUMBER | STRING | "true" | "false" | IDENTIFIER | tuple
    tuple       -> "(" ")" | "(" expression ("," expression)* ")"

    type        -> "number" | "text" | "bool" | "(" ")" | "(" type ("," type)* ")"
"""

from __future__ import annotations

import logging
from typing import List, Optional, Union

from . import ast
from .diagnostics import Diagnostic, InternalError, OnoError, syntax_error
from .tokens import STATEMENT_STARTS, Token, TokenKind
from .types import BOOL, NUMBER, TEXT, Type, tuple_of

logger = logging.getLogger(__name__)

_EQUALITY = (TokenKind.BANG_EQUAL, TokenKind.EQUAL_EQUAL)
_COMPARISON = (TokenKind.GREATER, TokenKind.GREATER_EQUAL, TokenKind.LESS, TokenKind.LESS_EQUAL)
_TERM = (TokenKind.MINUS, TokenKind.PLUS)
_FACTOR = (TokenKind.SLASH, TokenKind.STAR)
_UNARY = (TokenKind.BANG, TokenKind.MINUS)
_LITERALS = (TokenKind.NUMBER, TokenKind.STRING, TokenKind.TRUE, TokenKind.FALSE)
_SIMPLE_TYPES = {
    TokenKind.NUMBER_TYPE: NUMBER,
    TokenKind.TEXT_TYPE: TEXT,
    TokenKind.BOOL_TYPE: BOOL,
}


class ParseError(Exception):
    def __init__(self, diagnostic: Diagnostic) -> None:
        super().__init__(diagnostic.message)
        self.diagnostic = diagnostic


class _Tail:
    """An expression ending a block without a semicolon: the block's value."""

    def __init__(self, expr: ast.Expr) -> None:
        self.expr = expr


class Parser:
    def __init__(self, tokens: List[Token]) -> None:
        if not tokens or tokens[-1].kind is not TokenKind.EOF:
            raise ValueError("token stream must end with EOF")
        self.tokens = tokens
        self.current = 0
        self.errors: List[Diagnostic] = []
        self.block_depth = 0

    def parse(self) -> List[ast.Stmt]:
        statements: List[ast.Stmt] = []
        while not self._is_at_end():
            before = self.current
            try:
                stmt = self._declaration()
                if not isinstance(stmt, ast.Stmt):
                    raise InternalError("block tail outside of a block")
                statements.append(stmt)
            except ParseError as err:
                self.errors.append(err.diagnostic)
                self._synchronize()
                if self.current == before:
                    self._advance()
        logger.debug("parsed %d statements with %d errors", len(statements), len(self.errors))
        if self.errors:
            raise OnoError("parse", self.errors)
        return statements

    # declarations ---------------------------------------------------------

    def _declaration(self) -> Union[ast.Stmt, _Tail]:
        if self._match(TokenKind.LET):
            return self._let_declaration()
        if self._match(TokenKind.FUN):
            return self._function_declaration()
        return self._statement()

    def _let_declaration(self) -> ast.Stmt:
        name = self._consume_identifier()
        declared_type: Optional[Type] = None
        if self._match(TokenKind.COLON):
            declared_type = self._type()
        if not self._match(TokenKind.EQUAL):
            raise ParseError(syntax_error("S008", name))
        initializer = self._expression()
        self._consume(TokenKind.SEMICOLON)
        return ast.Let(name=name, declared_type=declared_type, initializer=initializer)

    def _function_declaration(self) -> ast.Stmt:
        name = self._consume_identifier()
        self._consume(TokenKind.LEFT_PAREN)
        params: List[Token] = []
        if not self._check(TokenKind.RIGHT_PAREN):
            params.append(self._consume_identifier())
            while self._match(TokenKind.COMMA):
                params.append(self._consume_identifier())
        self._consume(TokenKind.RIGHT_PAREN)
        body = self._block_after(self._consume(TokenKind.LEFT_BRACE))
        return ast.Function(name=name, params=tuple(params), body=body)

    # statements -----------------------------------------------------------

    def _statement(self) -> Union[ast.Stmt, _Tail]:
        if self._match(TokenKind.LEFT_BRACE):
            return self._block_after(self._previous())
        if self._match(TokenKind.IF):
            return self._if_statement()
        if self._match(TokenKind.WHILE):
            keyword = self._previous()
            condition = self._expression()
            return ast.While(keyword=keyword, condition=condition, body=self._block())
        if self._match(TokenKind.FOR):
            return self._for_statement()
        if self._match(TokenKind.RETURN):
            keyword = self._previous()
            value = None if self._check(TokenKind.SEMICOLON) else self._expression()
            self._consume(TokenKind.SEMICOLON)
            return ast.Return(keyword=keyword, value=value)
        return self._expression_statement()

    def _expression_statement(self) -> Union[ast.Stmt, _Tail]:
        expr = self._expression()
        if self.block_depth > 0 and self._check(TokenKind.RIGHT_BRACE):
            return _Tail(expr)
        self._consume(TokenKind.SEMICOLON)
        return ast.Expression(expr=expr)

    def _if_statement(self) -> ast.Stmt:
        keyword = self._previous()
        condition = self._expression()
        then_branch = self._block()
        else_branch: Optional[ast.Stmt] = None
        if self._match(TokenKind.ELSE):
            if self._match(TokenKind.IF):
                else_branch = self._if_statement()
            else:
                else_branch = self._block()
        return ast.If(keyword=keyword, condition=condition, then_branch=then_branch, else_branch=else_branch)

    def _for_statement(self) -> ast.Stmt:
        name = self._consume_identifier()
        self._consume(TokenKind.IN)
        start = self._expression()
        operator = self._consume(TokenKind.DOT_DOT)
        end = self._expression()
        step: Optional[ast.Expr] = None
        if self._match(TokenKind.DOT_DOT):
            step, end = end, self._expression()
        range_ = ast.Range(operator=operator, start=start, end=end, step=step)
        return ast.For(name=name, range=range_, body=self._block())

    def _block(self) -> ast.Block:
        return self._block_after(self._consume(TokenKind.LEFT_BRACE))

    def _block_after(self, brace: Token) -> ast.Block:
        statements: List[ast.Stmt] = []
        tail: Optional[ast.Expr] = None
        self.block_depth += 1
        try:
            while not self._check(TokenKind.RIGHT_BRACE) and not self._is_at_end():
                before = self.current
                try:
                    stmt = self._declaration()
                except ParseError as err:
                    self.errors.append(err.diagnostic)
                    self._synchronize()
                    if self.current == before:
                        self._advance()
                    continue
                if isinstance(stmt, _Tail):
                    tail = stmt.expr
                    break
                statements.append(stmt)
        finally:
            self.block_depth -= 1
        if not self._match(TokenKind.RIGHT_BRACE):
            raise ParseError(syntax_error("S010", brace))
        return ast.Block(brace=brace, statements=tuple(statements), tail=tail)

    # expressions ----------------------------------------------------------

    def _expression(self) -> ast.Expr:
        return self._assignment()

    def _assignment(self) -> ast.Expr:
        expr = self._logic_or()
        if self._match(TokenKind.EQUAL):
            equals = self._previous()
            value = self._assignment()
            if isinstance(expr, ast.Variable):
                return ast.Assign(name=expr.name, value=value)
            # Reported without unwinding: the rest of the statement still parses.
            self.errors.append(syntax_error("S009", equals))
        return expr

    def _logic_or(self) -> ast.Expr:
        expr = self._logic_and()
        while self._match(TokenKind.OR):
            operator = self._previous()
            expr = ast.Logical(operator=operator, left=expr, right=self._logic_and())
        return expr

    def _logic_and(self) -> ast.Expr:
        expr = self._equality()
        while self._match(TokenKind.AND):
            operator = self._previous()
            expr = ast.Logical(operator=operator, left=expr, right=self._equality())
        return expr

    def _equality(self) -> ast.Expr:
        return self._binary_tier(self._comparison, _EQUALITY)

    def _comparison(self) -> ast.Expr:
        return self._binary_tier(self._term, _COMPARISON)

    def _term(self) -> ast.Expr:
        return self._binary_tier(self._factor, _TERM)

    def _factor(self) -> ast.Expr:
        return self._binary_tier(self._unary, _FACTOR)

    def _binary_tier(self, operand, kinds) -> ast.Expr:
        expr = operand()
        while self._match(*kinds):
            operator = self._previous()
            expr = ast.Binary(operator=operator, left=expr, right=operand())
        return expr

    def _unary(self) -> ast.Expr:
        if self._match(*_UNARY):
            operator = self._previous()
            return ast.Unary(operator=operator, operand=self._unary())
        return self._call()

    def _call(self) -> ast.Expr:
        expr = self._primary()
        while self._match(TokenKind.LEFT_PAREN):
            opening = self._previous()
            arguments: List[ast.Expr] = []
            if not self._check(TokenKind.RIGHT_PAREN):
                arguments.append(self._expression())
                while self._match(TokenKind.COMMA):
                    arguments.append(self._expression())
            if not self._match(TokenKind.RIGHT_PAREN):
                raise ParseError(syntax_error("S003", opening))
            expr = ast.Call(callee=expr, paren=self._previous(), arguments=tuple(arguments))
        return expr

    def _primary(self) -> ast.Expr:
        if self._match(*_LITERALS):
            return ast.Literal(value=self._previous())
        if self._match(TokenKind.IDENTIFIER):
            return ast.Variable(name=self._previous())
        if self._match(TokenKind.LEFT_PAREN):
            return self._tuple()
        raise ParseError(syntax_error("S004", self._previous()))

    def _tuple(self) -> ast.Expr:
        opening = self._previous()
        if self._match(TokenKind.RIGHT_PAREN):
            return ast.TupleLiteral(items=())
        items = [self._expression()]
        while self._match(TokenKind.COMMA):
            items.append(self._expression())
        if not self._match(TokenKind.RIGHT_PAREN):
            raise ParseError(syntax_error("S003", opening))
        if len(items) == 1:
            return ast.Group(expr=items[0])
        return ast.TupleLiteral(items=tuple(items))

    # types ----------------------------------------------------------------

    def _type(self) -> Type:
        for kind, ty in _SIMPLE_TYPES.items():
            if self._match(kind):
                return ty
        if not self._match(TokenKind.LEFT_PAREN):
            raise ParseError(syntax_error("S006", self._previous()))
        opening = self._previous()
        if self._match(TokenKind.RIGHT_PAREN):
            return tuple_of(())
        items = [self._type()]
        while self._match(TokenKind.COMMA):
            items.append(self._type())
        if not self._match(TokenKind.RIGHT_PAREN):
            raise ParseError(syntax_error("S003", opening))
        if len(items) == 1:
            return items[0]
        return tuple_of(items)

    # token helpers --------------------------------------------------------

    def _previous(self) -> Token:
        return self.tokens[max(self.current, 1) - 1]

    def _peek(self) -> Token:
        return self.tokens[self.current]

    def _is_at_end(self) -> bool:
        return self._peek().kind is TokenKind.EOF

    def _advance(self) -> Token:
        if not self._is_at_end():
            self.current += 1
        return self._previous()

    def _check(self, kind: TokenKind) -> bool:
        return self._peek().kind is kind

    def _match(self, *kinds: TokenKind) -> bool:
        for kind in kinds:
            if self._check(kind):
                self._advance()
                return True
        return False

    def _consume(self, kind: TokenKind) -> Token:
        if self._check(kind):
            return self._advance()
        raise ParseError(syntax_error("S005", self._previous(), expected=kind.value))

    def _consume_identifier(self) -> Token:
        if self._check(TokenKind.IDENTIFIER):
            return self._advance()
        raise ParseError(syntax_error("S007", self._previous()))

    def _synchronize(self) -> None:
        """Skip to the next statement boundary: past a ';' or up to a statement keyword."""
        while not self._is_at_end():
            kind = self._peek().kind
            if kind is TokenKind.SEMICOLON:
                self._advance()
                return
            if kind in STATEMENT_STARTS:
                return
            self._advance()


def parse(tokens: List[Token]) -> List[ast.Stmt]:
    """Parse a token stream into statements; raises OnoError with every syntax error."""
    return Parser(tokens).parse()
