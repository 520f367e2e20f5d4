"""
Operator table for the spells language.

Every operator carries its source symbol, a precedence rank (higher binds
tighter), an associativity flag and its fixity. The parser consults the
table when deciding whether to reduce, and the lexer uses it to recognise
operator literals and the postfix roll suffixes.
"""

from enum import Enum, auto
from typing import Dict, List, Tuple


class Operator(Enum):
    """Every operator kind, plus the stack-bottom sentinel."""

    SENTINEL = auto()
    DISCARD = auto()            # ;
    ASSIGN = auto()             # =
    AND = auto()                # &
    OR = auto()                 # |
    NOT = auto()                # !x
    EQUAL = auto()              # ==
    GREATER_THAN = auto()       # >
    LESS_THAN = auto()          # <
    GREATER_EQUAL = auto()      # >=
    LESS_EQUAL = auto()         # <=
    ADD = auto()                # +
    SUB = auto()                # -
    MUL = auto()                # *
    DIV = auto()                # /
    EXP = auto()                # ^
    NEG = auto()                # -x
    KEEP = auto()               # 4d6k3
    ADV = auto()                # d20a
    DISADV = auto()             # d20d
    SORT = auto()               # 4d6s

    @property
    def symbol(self) -> str:
        return _SYMBOLS[self]

    @property
    def precedence(self) -> int:
        return _PRECEDENCE[self]

    @property
    def left_associative(self) -> bool:
        return self not in _RIGHT_ASSOCIATIVE and not self.is_unary

    @property
    def is_binary(self) -> bool:
        return self in _BINARY

    @property
    def is_unary_prefix(self) -> bool:
        return self in (Operator.NOT, Operator.NEG)

    @property
    def is_unary_postfix(self) -> bool:
        return self in (Operator.ADV, Operator.DISADV, Operator.SORT)

    @property
    def is_unary(self) -> bool:
        return self.is_unary_prefix or self.is_unary_postfix

    def greater(self, other: "Operator") -> bool:
        """
        Return True when ``self``, sitting on the operator stack, must be
        reduced before ``other`` is pushed.

        Binary against binary: strictly higher precedence, or equal
        precedence with ``self`` left-associative. A unary operator against a
        binary one, or anything against a postfix operator: precedence
        greater or equal. The sentinel never reduces.
        """
        if self.is_binary and other.is_binary:
            if self.precedence == other.precedence:
                return self.left_associative
            return self.precedence > other.precedence
        if (self.is_unary and other.is_binary) or other.is_unary_postfix:
            if self is Operator.SENTINEL:
                return False
            return self.precedence >= other.precedence
        return False

    def __str__(self) -> str:
        return self.symbol


_SYMBOLS: Dict[Operator, str] = {
    Operator.SENTINEL: "@",
    Operator.DISCARD: ";",
    Operator.ASSIGN: "=",
    Operator.AND: "&",
    Operator.OR: "|",
    Operator.NOT: "!",
    Operator.EQUAL: "==",
    Operator.GREATER_THAN: ">",
    Operator.LESS_THAN: "<",
    Operator.GREATER_EQUAL: ">=",
    Operator.LESS_EQUAL: "<=",
    Operator.ADD: "+",
    Operator.SUB: "-",
    Operator.MUL: "*",
    Operator.DIV: "/",
    Operator.EXP: "^",
    Operator.NEG: "-",
    Operator.KEEP: "k",
    Operator.ADV: "a",
    Operator.DISADV: "d",
    Operator.SORT: "s",
}

_PRECEDENCE: Dict[Operator, int] = {
    Operator.SENTINEL: 0,
    Operator.DISCARD: 1,
    Operator.ASSIGN: 2,
    Operator.AND: 3,
    Operator.OR: 3,
    Operator.EQUAL: 4,
    Operator.GREATER_THAN: 4,
    Operator.LESS_THAN: 4,
    Operator.GREATER_EQUAL: 4,
    Operator.LESS_EQUAL: 4,
    Operator.ADD: 5,
    Operator.SUB: 5,
    Operator.MUL: 6,
    Operator.DIV: 6,
    Operator.NOT: 7,
    Operator.NEG: 7,
    Operator.ADV: 7,
    Operator.DISADV: 7,
    Operator.SORT: 7,
    Operator.EXP: 8,
    Operator.KEEP: 9,
}

_RIGHT_ASSOCIATIVE = frozenset({Operator.ASSIGN, Operator.EXP, Operator.SENTINEL})

_BINARY = frozenset({
    Operator.DISCARD, Operator.ASSIGN, Operator.AND, Operator.OR,
    Operator.EQUAL, Operator.GREATER_THAN, Operator.LESS_THAN,
    Operator.GREATER_EQUAL, Operator.LESS_EQUAL,
    Operator.ADD, Operator.SUB, Operator.MUL, Operator.DIV, Operator.EXP,
    Operator.KEEP,
})


# Operator literals the lexer matches anywhere, longest first so that
# ">=" wins over ">" and "==" over "=".
OPERATOR_LITERALS: List[Tuple[str, Operator]] = sorted(
    (
        (op.symbol, op) for op in Operator
        if op not in (Operator.SENTINEL, Operator.NEG, Operator.KEEP,
                      Operator.ADV, Operator.DISADV, Operator.SORT)
    ),
    key=lambda item: len(item[0]),
    reverse=True,
)

# Letters that act as operators directly after a roll literal
ROLL_SUFFIXES: Dict[str, Operator] = {
    "a": Operator.ADV,
    "d": Operator.DISADV,
    "k": Operator.KEEP,
    "s": Operator.SORT,
}
