"""
Runtime value types for the spells interpreter.

A ``Value`` is a closed tagged union over ``ValueKind``. A ``Roll`` is an
unresolved dice specification; resolving it draws the faces and yields a
``RollOutcome``. Values are immutable: resolution produces new values,
and the ``Outcome`` wrapper (see ``outcome.py``) swaps them in place and
records the draw.
"""

import math
import random
from dataclasses import dataclass
from decimal import Decimal as _Decimal
from enum import Enum, auto
from typing import Any, Tuple

from .errors import (
    error_invalid_die,
    error_not_coercible,
    error_too_many_dice,
)

# Upper bound on dice drawn by a single roll
MAX_DICE = 100_000

# Shared random source used when no other is supplied
default_random = random.Random()


@dataclass(frozen=True)
class Roll:
    """An unresolved dice specification such as 4d6 or d20a."""
    quantity: int
    die: int
    advantage: bool = False
    disadvantage: bool = False

    @property
    def has_advantage(self) -> bool:
        return self.advantage and not self.disadvantage

    @property
    def has_disadvantage(self) -> bool:
        return self.disadvantage and not self.advantage

    def resolve(self, rng=None) -> "RollOutcome":
        """
        Draw the dice.

        With exactly one of advantage/disadvantage set, at least two dice are
        drawn and the result is their maximum/minimum. Otherwise the result
        is the sum of every face.

        Args:
            rng: Any object with ``randint(a, b)``; defaults to a shared
                ``random.Random``.
        """
        if self.die < 1:
            raise error_invalid_die(self.die)

        quantity = self.quantity
        if self.has_advantage or self.has_disadvantage:
            quantity = max(quantity, 2)
        if quantity > MAX_DICE:
            raise error_too_many_dice(quantity, MAX_DICE)

        rng = rng if rng is not None else default_random
        rolls = tuple(rng.randint(1, self.die) for _ in range(quantity))

        if self.has_advantage:
            result = max(rolls)
        elif self.has_disadvantage:
            result = min(rolls)
        else:
            result = sum(rolls)
        return RollOutcome(self, rolls, result)

    def __str__(self) -> str:
        quantity = "" if self.quantity == 1 else str(self.quantity)
        suffix = ""
        if self.has_advantage:
            suffix = "a"
        elif self.has_disadvantage:
            suffix = "d"
        return f"{quantity}d{self.die}{suffix}"


@dataclass(frozen=True)
class RollOutcome:
    """A resolved roll: the faces actually drawn and the declared result."""
    roll: Roll
    rolls: Tuple[int, ...]
    result: int

    def __str__(self) -> str:
        faces = ", ".join(str(face) for face in self.rolls)
        return f"{self.roll}\tRolls: \t{faces}\tTotal: {self.result}"


class ValueKind(Enum):
    """Runtime value kinds."""
    BOOL = auto()
    DECIMAL = auto()
    NATURAL = auto()
    ROLL = auto()
    OUTCOME = auto()
    ROLLS = auto()
    LIST = auto()
    STRING = auto()
    EMPTY = auto()

    @property
    def label(self) -> str:
        return self.name.lower()


_STRING_ESCAPES = {
    '\\': '\\\\',
    '"': '\\"',
    '\n': '\\n',
    '\t': '\\t',
}


def _render_decimal(value: float) -> str:
    # Positional notation only; the lexer has no exponent syntax
    text = format(_Decimal(repr(value)), 'f')
    if '.' not in text:
        text += '.0'
    return text


def _display_decimal(value: float) -> str:
    rounded = round(value, 2)
    if rounded.is_integer():
        return str(int(rounded))
    return repr(rounded)


@dataclass(frozen=True)
class Value:
    """
    A runtime value.

    ``data`` holds: ``bool`` for BOOL, ``float`` for DECIMAL, ``int`` for
    NATURAL, ``Roll`` for ROLL, ``RollOutcome`` for OUTCOME, a tuple of
    ``int`` for ROLLS, a tuple of ``Value`` for LIST, ``str`` for STRING and
    ``None`` for EMPTY.
    """
    kind: ValueKind
    data: Any = None

    # --- Kind tests ---

    @property
    def is_roll(self) -> bool:
        return self.kind == ValueKind.ROLL

    @property
    def is_empty(self) -> bool:
        return self.kind == ValueKind.EMPTY

    def has_unresolved_rolls(self) -> bool:
        """True if this value or any list item is still an unresolved Roll."""
        if self.kind == ValueKind.ROLL:
            return True
        if self.kind == ValueKind.LIST:
            return any(item.has_unresolved_rolls() for item in self.data)
        return False

    # --- Coercions (the caller resolves rolls first) ---

    def as_decimal(self) -> float:
        if self.kind == ValueKind.DECIMAL:
            return self.data
        if self.kind == ValueKind.NATURAL:
            return float(self.data)
        if self.kind == ValueKind.OUTCOME:
            return float(self.data.result)
        if self.kind == ValueKind.ROLLS:
            return float(sum(self.data))
        if self.kind == ValueKind.LIST:
            return sum(item.as_decimal() for item in self.data)
        raise error_not_coercible(self.kind.label, "decimal")

    def as_natural(self) -> int:
        if self.kind == ValueKind.NATURAL:
            return self.data
        if self.kind == ValueKind.DECIMAL:
            if not math.isfinite(self.data):
                raise error_not_coercible("non-finite decimal", "natural")
            return int(self.data)
        if self.kind == ValueKind.OUTCOME:
            return self.data.result
        if self.kind == ValueKind.ROLLS:
            return sum(self.data)
        if self.kind == ValueKind.LIST:
            return sum(item.as_natural() for item in self.data)
        raise error_not_coercible(self.kind.label, "natural")

    def as_bool(self) -> bool:
        if self.kind == ValueKind.BOOL:
            return self.data
        if self.kind in (ValueKind.NATURAL, ValueKind.DECIMAL):
            return self.data != 0
        if self.kind == ValueKind.OUTCOME:
            return self.data.result != 0
        if self.kind in (ValueKind.LIST, ValueKind.ROLLS, ValueKind.STRING):
            return len(self.data) > 0
        if self.kind == ValueKind.EMPTY:
            return False
        raise error_not_coercible(self.kind.label, "bool")

    def as_rolls(self) -> Tuple[int, ...]:
        if self.kind == ValueKind.ROLLS:
            return self.data
        if self.kind == ValueKind.OUTCOME:
            return self.data.rolls
        raise error_not_coercible(self.kind.label, "rolls")

    def as_list(self) -> Tuple["Value", ...]:
        if self.kind == ValueKind.LIST:
            return self.data
        if self.kind == ValueKind.ROLLS:
            return tuple(natural_val(face) for face in self.data)
        if self.kind == ValueKind.OUTCOME:
            return tuple(natural_val(face) for face in self.data.rolls)
        raise error_not_coercible(self.kind.label, "list")

    def as_string(self) -> str:
        """Text of a string, or the display form of anything else."""
        if self.kind == ValueKind.STRING:
            return self.data
        return str(self)

    def equals(self, other: "Value") -> bool:
        """Structural equality, with naturals and decimals compared numerically."""
        numeric = (ValueKind.NATURAL, ValueKind.DECIMAL)
        if self.kind in numeric and other.kind in numeric:
            return float(self.data) == float(other.data)
        if self.kind == ValueKind.LIST and other.kind == ValueKind.LIST:
            return len(self.data) == len(other.data) and all(
                a.equals(b) for a, b in zip(self.data, other.data)
            )
        return self == other

    # --- Text forms ---

    def render(self) -> str:
        """Source text that evaluates back to an equal value."""
        if self.kind == ValueKind.BOOL:
            return "true" if self.data else "false"
        if self.kind == ValueKind.DECIMAL:
            return _render_decimal(self.data)
        if self.kind == ValueKind.NATURAL:
            return str(self.data)
        if self.kind == ValueKind.ROLL:
            return str(self.data)
        if self.kind == ValueKind.OUTCOME:
            return str(self.data.result)
        if self.kind == ValueKind.ROLLS:
            return "[" + ", ".join(str(face) for face in self.data) + "]"
        if self.kind == ValueKind.LIST:
            return "[" + ", ".join(item.render() for item in self.data) + "]"
        if self.kind == ValueKind.STRING:
            escaped = "".join(_STRING_ESCAPES.get(ch, ch) for ch in self.data)
            return f'"{escaped}"'
        return "()"

    def __str__(self) -> str:
        if self.kind == ValueKind.DECIMAL:
            return _display_decimal(self.data)
        if self.kind == ValueKind.LIST:
            return "[" + ", ".join(str(item) for item in self.data) + "]"
        return self.render()


# --- Constructors ---

def bool_val(value: bool) -> Value:
    return Value(ValueKind.BOOL, bool(value))


def decimal_val(value: float) -> Value:
    return Value(ValueKind.DECIMAL, float(value))


def natural_val(value: int) -> Value:
    return Value(ValueKind.NATURAL, int(value))


def roll_val(quantity: int, die: int, advantage: bool = False,
             disadvantage: bool = False) -> Value:
    return Value(ValueKind.ROLL, Roll(quantity, die, advantage, disadvantage))


def outcome_val(outcome: RollOutcome) -> Value:
    return Value(ValueKind.OUTCOME, outcome)


def rolls_val(rolls) -> Value:
    return Value(ValueKind.ROLLS, tuple(int(face) for face in rolls))


def list_val(items) -> Value:
    return Value(ValueKind.LIST, tuple(items))


def string_val(value: str) -> Value:
    return Value(ValueKind.STRING, value)


EMPTY = Value(ValueKind.EMPTY)
