"""
Operator-precedence parser for the spells language.

Builds an ``Ast`` arena from a token list using two explicit stacks: one
of operators (with ``Operator.SENTINEL`` as a floor marker) and one of
operand node indices. Call arguments, list items and the parts of an
``if`` are each parsed against a fresh pair of stacks so that nothing
leaks between the inner and the enclosing expression.

Grammar sketch:
    expr   := term (BINARY_OP term)*
    term   := PREFIX_OP term
            | (literal | name | call | list | '(' expr ')' | if) POSTFIX_OP*
    call   := IDENTIFIER '(' [expr (',' expr)*] ')'
    list   := '[' [expr (',' expr)*] ']'
    if     := 'if' expr 'then' expr ['else' expr]
"""

from contextlib import contextmanager
from typing import List, Optional, Sequence, Union

from .ast import (
    Ast,
    BinaryOp,
    FunctionCall,
    Identifier,
    IfExpr,
    ListLiteral,
    Literal,
    Node,
    UnaryOp,
)
from .errors import (
    ParserError,
    error_keyword_without_if,
    error_unconsumed_input,
    error_unexpected_end,
    error_unexpected_token,
    error_unmatched_delimiter,
)
from .lexer import tokenise
from .operators import Operator
from .tokens import Token, TokenType
from .values import bool_val, decimal_val, natural_val, roll_val, string_val

_CLOSERS = {
    TokenType.PAREN_OPEN: (TokenType.PAREN_CLOSE, ")"),
    TokenType.BRACKET_OPEN: (TokenType.BRACKET_CLOSE, "]"),
}


class Parser:
    """
    Two-stack precedence parser.

    Usage:
        ast = Parser(tokens, source).parse()
    """

    def __init__(self, tokens: Sequence[Token], source: Optional[str] = None):
        self.tokens = list(tokens)
        self.pos = 0
        self.ast = Ast()
        self.operators: List[Operator] = [Operator.SENTINEL]
        self.operands: List[int] = []
        self._lines = source.splitlines() if source is not None else None

    # --- Token helpers ---

    def _current(self) -> Optional[Token]:
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return None

    def _peek(self, offset: int = 1) -> Optional[Token]:
        idx = self.pos + offset
        if idx < len(self.tokens):
            return self.tokens[idx]
        return None

    def _is_at_end(self) -> bool:
        return self.pos >= len(self.tokens)

    def _check(self, token_type: TokenType) -> bool:
        token = self._current()
        return token is not None and token.type == token_type

    def _check_keyword(self, keyword: str) -> bool:
        token = self._current()
        return (token is not None and token.type == TokenType.IDENTIFIER
                and token.value == keyword)

    def _advance(self) -> Token:
        token = self.tokens[self.pos]
        self.pos += 1
        return token

    def _source_line(self, token: Optional[Token]) -> Optional[str]:
        if token is None or self._lines is None:
            return None
        line = token.span.start.line
        if 1 <= line <= len(self._lines):
            return self._lines[line - 1]
        return None

    def _unexpected(self, expected: Optional[str] = None) -> ParserError:
        """Error for the current token, or for running out of tokens."""
        token = self._current()
        if token is None:
            last = self.tokens[-1] if self.tokens else None
            span = last.span if last is not None else None
            return error_unexpected_end(expected or "an expression", span, self._source_line(last))
        return error_unexpected_token(
            f"'{token.lexeme}'", token.span, self._source_line(token), expected
        )

    # --- Stack helpers ---

    def _push_operand(self, node: Node) -> int:
        index = self.ast.add(node)
        self.operands.append(index)
        return index

    def _pop_operator(self) -> None:
        """Pop one operator and reduce it with its operands."""
        op = self.operators.pop()
        if op.is_binary:
            rhs = self.operands.pop()
            lhs = self.operands.pop()
            self._push_operand(BinaryOp(lhs, op, rhs))
        else:
            operand = self.operands.pop()
            self._push_operand(UnaryOp(operand, op))

    def _push_operator(self, op: Operator) -> None:
        while self.operators[-1].greater(op):
            self._pop_operator()
        if op.is_unary_postfix:
            # The operand is already complete, so apply it right away
            operand = self.operands.pop()
            self._push_operand(UnaryOp(operand, op))
        else:
            self.operators.append(op)

    def _drain(self) -> None:
        while self.operators[-1] is not Operator.SENTINEL:
            self._pop_operator()

    @contextmanager
    def _nested_scope(self):
        """Swap in fresh operator/operand stacks for an inner expression."""
        saved = (self.operators, self.operands)
        self.operators, self.operands = [Operator.SENTINEL], []
        try:
            yield
        finally:
            self.operators, self.operands = saved

    def _nested_expr(self) -> int:
        """Parse a self-contained expression and return its root index."""
        with self._nested_scope():
            self._expr()
            return self.operands[-1]

    # --- Grammar ---

    def _expr(self) -> None:
        self._term()
        while True:
            token = self._current()
            if token is None or token.type != TokenType.OPERATOR or not token.value.is_binary:
                break
            self._advance()
            self._push_operator(token.value)
            self._term()
        self._drain()

    def _term(self) -> None:
        token = self._current()
        if token is None:
            raise self._unexpected()

        if token.type == TokenType.OPERATOR:
            op = Operator.NEG if token.value is Operator.SUB else token.value
            if not op.is_unary_prefix:
                raise self._unexpected("an expression")
            self._advance()
            self.operators.append(op)
            self._term()
            return

        if token.type == TokenType.NATURAL:
            self._advance()
            self._push_operand(Literal(natural_val(token.value)))
        elif token.type == TokenType.DECIMAL:
            self._advance()
            self._push_operand(Literal(decimal_val(token.value)))
        elif token.type == TokenType.ROLL:
            self._advance()
            quantity, die = token.value
            self._push_operand(Literal(roll_val(quantity, die)))
        elif token.type == TokenType.STRING:
            self._advance()
            self._push_operand(Literal(string_val(token.value)))
        elif token.type == TokenType.IDENTIFIER:
            self._identifier()
        elif token.type == TokenType.PAREN_OPEN:
            self._advance()
            self.operators.append(Operator.SENTINEL)
            self._expr()
            self._close(token)
            self.operators.pop()
        elif token.type == TokenType.BRACKET_OPEN:
            self._advance()
            items = self._arguments(token)
            self._push_operand(ListLiteral(tuple(items)))
        else:
            raise self._unexpected("an expression")

        self._postfix()

    def _postfix(self) -> None:
        while True:
            token = self._current()
            if token is None or token.type != TokenType.OPERATOR or not token.value.is_unary_postfix:
                return
            self._advance()
            self._push_operator(token.value)

    def _identifier(self) -> None:
        token = self._current()
        name = token.value

        if name == "if":
            self._if_expr()
        elif name in ("then", "else"):
            raise error_keyword_without_if(name, token.span, self._source_line(token))
        elif name in ("true", "false"):
            self._advance()
            self._push_operand(Literal(bool_val(name == "true")))
        elif self._peek() is not None and self._peek().type == TokenType.PAREN_OPEN:
            self._advance()
            open_token = self._advance()
            args = self._arguments(open_token)
            self._push_operand(FunctionCall(name, tuple(args)))
        else:
            self._advance()
            self._push_operand(Identifier(name))

    def _close(self, open_token: Token) -> None:
        close_type, close_char = _CLOSERS[open_token.type]
        if self._check(close_type):
            self._advance()
            return
        if self._is_at_end():
            raise error_unmatched_delimiter(
                open_token.lexeme, open_token.span, self._source_line(open_token)
            )
        raise self._unexpected(f"'{close_char}'")

    def _arguments(self, open_token: Token) -> List[int]:
        """Parse a comma-separated list up to the matching closer."""
        close_type, close_char = _CLOSERS[open_token.type]
        items: List[int] = []
        if self._check(close_type):
            self._advance()
            return items

        while True:
            items.append(self._nested_expr())
            if self._check(TokenType.COMMA):
                self._advance()
                continue
            if self._check(close_type):
                self._advance()
                return items
            if self._is_at_end():
                raise error_unmatched_delimiter(
                    open_token.lexeme, open_token.span, self._source_line(open_token)
                )
            raise self._unexpected(f"',' or '{close_char}'")

    def _if_expr(self) -> None:
        self._advance()  # consume 'if'
        condition = self._nested_expr()

        if not self._check_keyword("then"):
            raise self._unexpected("'then'")
        self._advance()
        then_branch = self._nested_expr()

        else_branch = None
        if self._check_keyword("else"):
            self._advance()
            else_branch = self._nested_expr()

        self._push_operand(IfExpr(condition, then_branch, else_branch))

    # --- Entry points ---

    def parse_statement(self) -> Ast:
        """Parse one expression, leaving any remaining tokens unconsumed."""
        self._expr()
        return self.ast

    def _leftover(self, token: Token) -> ParserError:
        """Error for a token that cannot continue a complete expression."""
        line = self._source_line(token)
        if token.type in (TokenType.PAREN_CLOSE, TokenType.BRACKET_CLOSE):
            return error_unmatched_delimiter(token.lexeme, token.span, line)
        if token.type == TokenType.IDENTIFIER and token.value in ("then", "else"):
            return error_keyword_without_if(token.value, token.span, line)
        return error_unconsumed_input(f"'{token.lexeme}'", token.span, line)

    def parse(self) -> Ast:
        """Parse one expression that must use every token."""
        self.parse_statement()
        token = self._current()
        if token is not None:
            raise self._leftover(token)
        return self.ast


def parse(tokens: Sequence[Token], source: Optional[str] = None) -> Ast:
    """
    Parse a token list into an AST.

    Args:
        tokens: Tokens from ``tokenise``
        source: Original text, used to quote the offending line in errors

    Raises:
        ParserError: On a syntax error or leftover input
    """
    return Parser(tokens, source).parse()


def parse_source(source: str, filename: Optional[str] = None) -> Ast:
    """Tokenise and parse a single expression."""
    return parse(tokenise(source, filename), source)


def parse_tome(source: Union[str, Sequence[Token]]) -> List[Ast]:
    """
    Split a multi-statement text into independently evaluable ASTs.

    Statements are parsed one after another: each parse stops where the
    expression can no longer continue, and the rest of the tokens are
    parsed again from scratch.
    """
    if isinstance(source, str):
        text = source
        tokens = tokenise(source)
    else:
        text = None
        tokens = list(source)

    statements = []
    while tokens:
        parser = Parser(tokens, text)
        if tokens[0].type in (TokenType.PAREN_CLOSE, TokenType.BRACKET_CLOSE):
            raise parser._leftover(tokens[0])
        statements.append(parser.parse_statement())
        tokens = tokens[parser.pos:]
    return statements
