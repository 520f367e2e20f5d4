"""
spells - an interpreter for dice expressions.

The language mixes dice rolls with arithmetic, variables, user-defined
functions, conditionals, lists and strings:

    4d6k3 + STR() + 2
    d20a >= 15
    sword(mod) = 2d6 + mod
    if LEVEL >= 5 then 2d8 else d8

Text flows through ``tokenise`` -> ``parse`` -> ``evaluate``. Evaluation
runs against a ``Context`` holding variables and functions, and returns an
``Outcome``: the value plus a log of every die rolled to produce it.

Quick start:
    from spells import create_context, eval_source

    context = create_context()
    outcome = eval_source("4d6k3", context)
    print(outcome)
"""

from .ast import Ast
from .context import ROOT_SCOPE, Context, Function, create_context
from .errors import (
    Diagnostic,
    LexerError,
    NameError,
    ParserError,
    RangeError,
    SpellsError,
    TypeError,
)
from .evaluator import eval_source, eval_tome, evaluate
from .lexer import tokenise
from .operators import Operator
from .outcome import Outcome
from .parser import parse, parse_source, parse_tome
from .tokens import Token, TokenType
from .values import Roll, RollOutcome, Value, ValueKind

__version__ = "0.1.0"

__all__ = [
    "Ast",
    "Context",
    "Diagnostic",
    "Function",
    "LexerError",
    "NameError",
    "Operator",
    "Outcome",
    "ParserError",
    "ROOT_SCOPE",
    "RangeError",
    "Roll",
    "RollOutcome",
    "SpellsError",
    "Token",
    "TokenType",
    "TypeError",
    "Value",
    "ValueKind",
    "create_context",
    "eval_source",
    "eval_tome",
    "evaluate",
    "parse",
    "parse_source",
    "parse_tome",
    "tokenise",
]
