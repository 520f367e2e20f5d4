"""
Evaluation outcomes: a value plus the log of every roll behind it.

Coercions resolve an unresolved ``Roll`` at most once. The resolved value
replaces the roll inside the ``Outcome`` and the draw is appended to the
log, so later coercions of the same outcome reuse the same faces.
Combinators return a new ``Outcome`` whose log is the left operand's log
followed by the right operand's.
"""

import dataclasses
import math
from dataclasses import dataclass, field
from typing import Callable, List, Tuple

from .errors import error_division_by_zero, error_expected_roll, error_math_domain
from .values import (
    EMPTY,
    RollOutcome,
    Value,
    ValueKind,
    bool_val,
    decimal_val,
    list_val,
    outcome_val,
    rolls_val,
    string_val,
)


def keep_highest(rolls: Tuple[int, ...], count: int) -> Tuple[int, ...]:
    """Drop the smallest faces until ``count`` remain, preserving order.

    Ties drop the earliest occurrence first.
    """
    kept = list(rolls)
    for _ in range(len(kept) - max(count, 0)):
        smallest = min(range(len(kept)), key=lambda i: kept[i])
        del kept[smallest]
    return tuple(kept)


def _divide(a: float, b: float) -> float:
    if b == 0:
        raise error_division_by_zero()
    return a / b


@dataclass
class Outcome:
    """The result of evaluating an expression."""
    value: Value = EMPTY
    rolls: List[RollOutcome] = field(default_factory=list)

    # --- Resolution ---

    def _resolve_value(self, value: Value, rng, deep: bool) -> Value:
        if value.kind == ValueKind.ROLL:
            rolled = value.data.resolve(rng)
            self.rolls.append(rolled)
            return outcome_val(rolled)
        if deep and value.kind == ValueKind.LIST and value.has_unresolved_rolls():
            return list_val([self._resolve_value(item, rng, deep) for item in value.data])
        return value

    def resolve(self, rng=None, deep: bool = False) -> Value:
        """Resolve an unresolved roll in place and return the new value.

        With ``deep``, rolls nested inside lists are resolved as well.
        """
        self.value = self._resolve_value(self.value, rng, deep)
        return self.value

    def resolved(self, rng=None) -> "Outcome":
        """Resolve a top-level roll and return self."""
        self.resolve(rng)
        return self

    # --- Coercions ---

    def as_decimal(self, rng=None) -> float:
        return self.resolve(rng, deep=True).as_decimal()

    def as_natural(self, rng=None) -> int:
        return self.resolve(rng, deep=True).as_natural()

    def as_bool(self, rng=None) -> bool:
        return self.resolve(rng).as_bool()

    def as_string(self, rng=None) -> str:
        return self.resolve(rng).as_string()

    def faces(self, rng=None) -> Tuple[int, ...]:
        return self.resolve(rng).as_rolls()

    # --- Combinators ---

    def _merge(self, other: "Outcome", value: Value) -> "Outcome":
        return Outcome(value, self.rolls + other.rolls)

    def _carry(self, value: Value) -> "Outcome":
        return Outcome(value, list(self.rolls))

    def _arithmetic(self, other: "Outcome", rng, name: str,
                    fn: Callable[[float, float], float]) -> "Outcome":
        lhs = self.as_decimal(rng)
        rhs = other.as_decimal(rng)
        try:
            result = fn(lhs, rhs)
        except (OverflowError, ValueError):
            raise error_math_domain(f"{lhs!r} {name} {rhs!r}") from None
        if not math.isfinite(result):
            raise error_math_domain(f"{lhs!r} {name} {rhs!r}")
        return self._merge(other, decimal_val(result))

    def add(self, other: "Outcome", rng=None) -> "Outcome":
        if ValueKind.STRING in (self.value.kind, other.value.kind):
            text = self.as_string(rng) + other.as_string(rng)
            return self._merge(other, string_val(text))
        return self._arithmetic(other, rng, "+", lambda a, b: a + b)

    def sub(self, other: "Outcome", rng=None) -> "Outcome":
        return self._arithmetic(other, rng, "-", lambda a, b: a - b)

    def mul(self, other: "Outcome", rng=None) -> "Outcome":
        return self._arithmetic(other, rng, "*", lambda a, b: a * b)

    def div(self, other: "Outcome", rng=None) -> "Outcome":
        return self._arithmetic(other, rng, "/", _divide)

    def exp(self, other: "Outcome", rng=None) -> "Outcome":
        return self._arithmetic(other, rng, "^", math.pow)

    def neg(self, rng=None) -> "Outcome":
        return self._carry(decimal_val(-self.as_decimal(rng)))

    def not_(self, rng=None) -> "Outcome":
        return self._carry(bool_val(not self.as_bool(rng)))

    def and_(self, other: "Outcome", rng=None) -> "Outcome":
        lhs = self.as_bool(rng)
        rhs = other.as_bool(rng)
        return self._merge(other, bool_val(lhs and rhs))

    def or_(self, other: "Outcome", rng=None) -> "Outcome":
        lhs = self.as_bool(rng)
        rhs = other.as_bool(rng)
        return self._merge(other, bool_val(lhs or rhs))

    def equal(self, other: "Outcome", rng=None) -> "Outcome":
        # Compares values as they stand; unresolved rolls stay unresolved
        return self._merge(other, bool_val(self.value.equals(other.value)))

    def _compare(self, other: "Outcome", rng, fn: Callable[[float, float], bool]) -> "Outcome":
        lhs = self.as_decimal(rng)
        rhs = other.as_decimal(rng)
        return self._merge(other, bool_val(fn(lhs, rhs)))

    def greater_than(self, other: "Outcome", rng=None) -> "Outcome":
        return self._compare(other, rng, lambda a, b: a > b)

    def less_than(self, other: "Outcome", rng=None) -> "Outcome":
        return self._compare(other, rng, lambda a, b: a < b)

    def greater_equal(self, other: "Outcome", rng=None) -> "Outcome":
        return self._compare(other, rng, lambda a, b: a >= b)

    def less_equal(self, other: "Outcome", rng=None) -> "Outcome":
        return self._compare(other, rng, lambda a, b: a <= b)

    def keep(self, other: "Outcome", rng=None) -> "Outcome":
        faces = self.faces(rng)
        count = other.as_natural(rng)
        return self._merge(other, rolls_val(keep_highest(faces, count)))

    def sort(self, rng=None) -> "Outcome":
        return self._carry(rolls_val(sorted(self.faces(rng))))

    def _with_flag(self, **flag) -> "Outcome":
        if self.value.kind != ValueKind.ROLL:
            raise error_expected_roll(self.value.kind.label)
        roll = dataclasses.replace(self.value.data, **flag)
        return self._carry(Value(ValueKind.ROLL, roll))

    def adv(self, rng=None) -> "Outcome":
        return self._with_flag(advantage=True)

    def disadv(self, rng=None) -> "Outcome":
        return self._with_flag(disadvantage=True)

    def __str__(self) -> str:
        lines = [str(roll) for roll in self.rolls]
        if not self.value.is_empty:
            lines.append(str(self.value))
        return "\n".join(lines)
