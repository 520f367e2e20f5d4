"""
Token types for the spells dice-expression lexer.

The token set is deliberately small: literals, identifiers, operators
and the four delimiters. Keywords (``if``, ``then``, ``else``, ``true``,
``false``) are lexed as identifiers and given meaning by the parser.
"""

from enum import Enum, auto
from dataclasses import dataclass
from typing import Any, Optional


class TokenType(Enum):
    """All token types recognized by the lexer."""

    # --- Literals ---
    NATURAL = auto()            # 42
    DECIMAL = auto()            # 3.14, .5
    ROLL = auto()               # 4d6, d20
    STRING = auto()             # "hello"

    # --- Identifiers ---
    IDENTIFIER = auto()         # STR, modifier, if, then

    # --- Operators (value is an Operator member) ---
    OPERATOR = auto()

    # --- Delimiters ---
    PAREN_OPEN = auto()         # (
    PAREN_CLOSE = auto()        # )
    BRACKET_OPEN = auto()       # [
    BRACKET_CLOSE = auto()      # ]
    COMMA = auto()              # ,


@dataclass(frozen=True)
class SourceLocation:
    """Represents a position in source code."""
    line: int           # 1-indexed line number
    column: int         # 1-indexed column number
    offset: int         # 0-indexed character offset from start
    filename: Optional[str] = None

    def __str__(self) -> str:
        if self.filename:
            return f"{self.filename}:{self.line}:{self.column}"
        return f"{self.line}:{self.column}"


@dataclass(frozen=True)
class SourceSpan:
    """Represents a range in source code."""
    start: SourceLocation
    end: SourceLocation

    @property
    def length(self) -> int:
        return self.end.offset - self.start.offset

    def __str__(self) -> str:
        if self.start.filename:
            return f"{self.start.filename}:{self.start.line}:{self.start.column}-{self.end.line}:{self.end.column}"
        return f"{self.start.line}:{self.start.column}-{self.end.line}:{self.end.column}"


@dataclass(frozen=True)
class Token:
    """A single token from the lexer.

    ``value`` depends on the type: an ``int`` for naturals, a ``float`` for
    decimals, a ``(quantity, die)`` tuple for rolls, the decoded text for
    strings and identifiers, and an ``Operator`` for operators.
    """
    type: TokenType
    value: Any
    lexeme: str             # The original source text
    span: SourceSpan        # Location in source

    def same_as(self, other: "Token") -> bool:
        """Compare two tokens ignoring position metadata."""
        return self.type == other.type and self.value == other.value

    def __str__(self) -> str:
        if self.type == TokenType.OPERATOR:
            return f"OPERATOR({self.value.symbol!r})"
        if self.type in (TokenType.NATURAL, TokenType.DECIMAL, TokenType.ROLL,
                         TokenType.STRING, TokenType.IDENTIFIER):
            return f"{self.type.name}({self.value!r})"
        return self.type.name


# Identifiers the parser treats specially
KEYWORDS = frozenset({"if", "then", "else", "true", "false"})
