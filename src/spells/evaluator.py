"""
Tree-walking evaluator.

Evaluates an ``Ast`` against a ``Context`` and a scope index, producing an
``Outcome``. Children are evaluated left to right and their roll logs are
merged in the same order, so the log of a result lists every die rolled
while computing it.
"""

import logging
from typing import List, Optional

from .ast import (
    Ast,
    BinaryOp,
    FunctionCall,
    Identifier,
    IfExpr,
    ListLiteral,
    Literal,
    UnaryOp,
)
from .context import ROOT_SCOPE, Context
from .errors import (
    error_invalid_assignment_target,
    error_invalid_parameter,
    error_recursion_limit,
    error_undefined_variable,
)
from .lexer import tokenise
from .operators import Operator
from .outcome import Outcome
from .parser import parse, parse_tome
from .values import EMPTY, list_val

log = logging.getLogger(__name__)

# Outcome combinator for each operator
_BINARY_METHODS = {
    Operator.ADD: "add",
    Operator.SUB: "sub",
    Operator.MUL: "mul",
    Operator.DIV: "div",
    Operator.EXP: "exp",
    Operator.AND: "and_",
    Operator.OR: "or_",
    Operator.EQUAL: "equal",
    Operator.GREATER_THAN: "greater_than",
    Operator.LESS_THAN: "less_than",
    Operator.GREATER_EQUAL: "greater_equal",
    Operator.LESS_EQUAL: "less_equal",
    Operator.KEEP: "keep",
}

_UNARY_METHODS = {
    Operator.NEG: "neg",
    Operator.NOT: "not_",
    Operator.ADV: "adv",
    Operator.DISADV: "disadv",
    Operator.SORT: "sort",
}


def _merged(value, *outcomes: Outcome) -> Outcome:
    rolls = []
    for outcome in outcomes:
        rolls.extend(outcome.rolls)
    return Outcome(value, rolls)


class Evaluator:
    """
    Evaluates the nodes of one arena within one scope.

    Usage:
        outcome = Evaluator(ast, context, scope).evaluate()
    """

    def __init__(self, ast: Ast, context: Context, scope: int = ROOT_SCOPE):
        self.ast = ast
        self.context = context
        self.scope = scope

    @property
    def rng(self):
        return self.context.rng

    def evaluate(self, index: Optional[int] = None) -> Outcome:
        if index is None:
            index = self.ast.start()
        return self._evaluate(index)

    def _evaluate(self, index: int) -> Outcome:
        node = self.ast[index]

        if isinstance(node, Literal):
            return Outcome(node.value)
        if isinstance(node, Identifier):
            return self._eval_identifier(node)
        if isinstance(node, ListLiteral):
            return self._eval_list(node)
        if isinstance(node, FunctionCall):
            return self._eval_call(node)
        if isinstance(node, BinaryOp):
            return self._eval_binary(node)
        if isinstance(node, UnaryOp):
            return self._eval_unary(node)
        if isinstance(node, IfExpr):
            return self._eval_if(node)

        raise ValueError(f"unknown node type: {type(node).__name__}")

    def _eval_identifier(self, node: Identifier) -> Outcome:
        value = self.context.get_variable(self.scope, node.name)
        if value is not None:
            return Outcome(value)
        # A bare name may refer to a function taking no arguments
        if self.context.has_callable(self.scope, node.name):
            return self.context.call(self.scope, node.name, [])
        raise error_undefined_variable(node.name)

    def _eval_list(self, node: ListLiteral) -> Outcome:
        items = [self._evaluate(i) for i in node.items]
        return _merged(list_val(item.value for item in items), *items)

    def _eval_call(self, node: FunctionCall) -> Outcome:
        args = [self._evaluate(i) for i in node.args]
        result = self.context.call(self.scope, node.name, [arg.value for arg in args])
        return _merged(result.value, *args, result)

    def _eval_binary(self, node: BinaryOp) -> Outcome:
        if node.operator is Operator.ASSIGN:
            return self._eval_assign(node)

        lhs = self._evaluate(node.lhs)
        rhs = self._evaluate(node.rhs)
        if node.operator is Operator.DISCARD:
            return _merged(rhs.value, lhs, rhs)

        method = getattr(lhs, _BINARY_METHODS[node.operator])
        return method(rhs, self.rng)

    def _eval_assign(self, node: BinaryOp) -> Outcome:
        target = self.ast[node.lhs]

        if isinstance(target, Identifier):
            outcome = self._evaluate(node.rhs)
            self.context.set_variable(self.scope, target.name, outcome.value)
            return outcome

        if isinstance(target, FunctionCall):
            parameters: List[str] = []
            for arg in target.args:
                param = self.ast[arg]
                if not isinstance(param, Identifier):
                    raise error_invalid_parameter(target.name, self.ast.render(arg))
                parameters.append(param.name)
            body = self.ast.subtree(node.rhs)
            self.context.define_function(self.scope, target.name, body, parameters)
            return Outcome(EMPTY)

        raise error_invalid_assignment_target(self.ast.render(node.lhs))

    def _eval_unary(self, node: UnaryOp) -> Outcome:
        operand = self._evaluate(node.operand)
        method = getattr(operand, _UNARY_METHODS[node.operator])
        return method(self.rng)

    def _eval_if(self, node: IfExpr) -> Outcome:
        condition = self._evaluate(node.condition)
        if condition.as_bool(self.rng):
            branch = self._evaluate(node.then_branch)
        elif node.else_branch is not None:
            branch = self._evaluate(node.else_branch)
        else:
            return _merged(EMPTY, condition)
        return _merged(branch.value, condition, branch)


def evaluate(ast: Ast, context: Context, scope: int = ROOT_SCOPE) -> Outcome:
    """
    Evaluate an AST from its root.

    An empty AST evaluates to Empty. Rolls are left unresolved unless an
    operator needed their value; see ``eval_source`` for a rolled result.

    Raises:
        SpellsError: On any name, type or range error during evaluation
    """
    if ast.is_empty():
        return Outcome(EMPTY)
    try:
        return Evaluator(ast, context, scope).evaluate()
    except RecursionError:
        raise error_recursion_limit() from None


def eval_source(source: str, context: Context, scope: int = ROOT_SCOPE) -> Outcome:
    """Parse and evaluate one statement, rolling a top-level roll."""
    tokens = tokenise(source)
    if not tokens:
        return Outcome(EMPTY)
    outcome = evaluate(parse(tokens, source), context, scope)
    return outcome.resolved(context.rng)


def eval_tome(source: str, context: Context) -> List[Outcome]:
    """Evaluate every statement of a multi-statement text in order."""
    outcomes = []
    for statement in parse_tome(source):
        outcomes.append(evaluate(statement, context))
    log.debug("evaluated %d statements", len(outcomes))
    return outcomes
