"""
Built-in function registry.

Builtins are reached only when no user-defined function of the same name
is visible. Each implementation receives its arguments as ``Outcome``s
(in call-site order) so it can resolve rolls; the rolls it resolves are
kept in the log of the returned ``Outcome``.
"""

import math
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence

from .errors import (
    error_argument_count,
    error_expected_roll,
    error_index_out_of_range,
    error_not_coercible,
    error_undefined_function,
)
from .outcome import Outcome
from .values import (
    EMPTY,
    Roll,
    Value,
    ValueKind,
    decimal_val,
    list_val,
    natural_val,
)


@dataclass
class BuiltinFunction:
    """
    A built-in function and its arity.

    ``arity`` is the exact argument count, or None for variadic functions
    taking at least ``min_args``.
    """
    name: str
    arity: Optional[int]
    implementation: Callable[..., Value]
    doc: str = ""
    min_args: int = 0

    def check_arity(self, count: int) -> None:
        if self.arity is not None and count != self.arity:
            raise error_argument_count(self.name, self.arity, count)
        if self.arity is None and count < self.min_args:
            raise error_argument_count(self.name, self.min_args, count)


def _round_half_away(x: float) -> int:
    return int(math.copysign(math.floor(abs(x) + 0.5), x))


def _roll_of(arg: Outcome) -> Roll:
    if arg.value.kind == ValueKind.ROLL:
        return arg.value.data
    if arg.value.kind == ValueKind.OUTCOME:
        return arg.value.data.roll
    raise error_expected_roll(arg.value.kind.label)


def _index_of(index: int, length: int) -> int:
    if not 0 <= index < length:
        raise error_index_out_of_range(index, length)
    return index


class BuiltinRegistry:
    """
    Registry of all built-in functions.

    Functions are registered by name and can be looked up for execution.
    """

    def __init__(self):
        self._functions: Dict[str, BuiltinFunction] = {}
        self._register_all()

    def get_function(self, name: str) -> Optional[BuiltinFunction]:
        """Look up a function by name."""
        return self._functions.get(name)

    def names(self) -> List[str]:
        return sorted(self._functions)

    def register(self, func: BuiltinFunction) -> None:
        """Register a function."""
        self._functions[func.name] = func

    def _register_all(self) -> None:
        self._register_math_functions()
        self._register_dice_functions()
        self._register_list_functions()
        self._register_utility_functions()

    # --- Math Functions ---

    def _register_math_functions(self) -> None:

        def _ceil(x: Outcome, rng=None) -> Value:
            return natural_val(math.ceil(x.as_decimal(rng)))

        def _floor(x: Outcome, rng=None) -> Value:
            return natural_val(math.floor(x.as_decimal(rng)))

        def _round(x: Outcome, rng=None) -> Value:
            return natural_val(_round_half_away(x.as_decimal(rng)))

        def _abs(x: Outcome, rng=None) -> Value:
            if x.value.kind == ValueKind.NATURAL:
                return natural_val(abs(x.value.data))
            return decimal_val(abs(x.as_decimal(rng)))

        def _min(*args: Outcome, rng=None) -> Value:
            values = [arg.as_decimal(rng) for arg in _spread(args, rng)]
            return decimal_val(min(values))

        def _max(*args: Outcome, rng=None) -> Value:
            values = [arg.as_decimal(rng) for arg in _spread(args, rng)]
            return decimal_val(max(values))

        self.register(BuiltinFunction("ceil", 1, _ceil, "Round up to a natural"))
        self.register(BuiltinFunction("floor", 1, _floor, "Round down to a natural"))
        self.register(BuiltinFunction("round", 1, _round, "Round half away from zero"))
        self.register(BuiltinFunction("abs", 1, _abs, "Absolute value"))
        self.register(BuiltinFunction("min", None, _min, "Smallest argument or list item", min_args=1))
        self.register(BuiltinFunction("max", None, _max, "Largest argument or list item", min_args=1))

    # --- Dice Functions ---

    def _register_dice_functions(self) -> None:

        def _quantity(roll: Outcome, rng=None) -> Value:
            return natural_val(_roll_of(roll).quantity)

        def _dice(roll: Outcome, rng=None) -> Value:
            return natural_val(_roll_of(roll).die)

        self.register(BuiltinFunction("quantity", 1, _quantity, "Number of dice in a roll"))
        self.register(BuiltinFunction("dice", 1, _dice, "Faces per die in a roll"))

    # --- List Functions ---

    def _register_list_functions(self) -> None:

        def _len(x: Outcome, rng=None) -> Value:
            value = x.resolve(rng)
            if value.kind == ValueKind.STRING:
                return natural_val(len(value.data))
            return natural_val(len(value.as_list()))

        def _get(items: Outcome, index: Outcome, rng=None) -> Value:
            values = items.resolve(rng).as_list()
            return values[_index_of(index.as_natural(rng), len(values))]

        def _set(items: Outcome, index: Outcome, value: Outcome, rng=None) -> Value:
            values = list(items.resolve(rng).as_list())
            values[_index_of(index.as_natural(rng), len(values))] = value.value
            return list_val(values)

        self.register(BuiltinFunction("len", 1, _len, "Length of a list or string"))
        self.register(BuiltinFunction("get", 2, _get, "List item at a zero-based index"))
        self.register(BuiltinFunction("set", 3, _set, "Copy of a list with one item replaced"))

    # --- Utility Functions ---

    def _register_utility_functions(self) -> None:

        def _print(*args: Outcome, rng=None) -> Value:
            print(" ".join(arg.as_string(rng) for arg in args))
            return EMPTY

        self.register(BuiltinFunction("print", None, _print, "Write values to standard output"))


def _spread(args: Sequence[Outcome], rng=None) -> List[Outcome]:
    """A single list argument stands for its items."""
    if len(args) == 1:
        value = args[0].resolve(rng, deep=True)
        if value.kind in (ValueKind.LIST, ValueKind.ROLLS):
            items = [Outcome(item) for item in value.as_list()]
            if not items:
                raise error_not_coercible("empty list", "decimal")
            return items
    return list(args)


# Global registry instance
_registry: Optional[BuiltinRegistry] = None


def get_builtin_registry() -> BuiltinRegistry:
    """Get the global built-in function registry."""
    global _registry
    if _registry is None:
        _registry = BuiltinRegistry()
    return _registry


def has_builtin(name: str) -> bool:
    return get_builtin_registry().get_function(name) is not None


def call(name: str, args: Sequence[Value], rng=None) -> Outcome:
    """
    Call a built-in function by name.

    Raises:
        NameError: If no builtin has that name, or the argument count is wrong
    """
    func = get_builtin_registry().get_function(name)
    if func is None:
        raise error_undefined_function(name)
    func.check_arity(len(args))

    wrapped = [Outcome(value) for value in args]
    result = func.implementation(*wrapped, rng=rng)

    rolls = []
    for arg in wrapped:
        rolls.extend(arg.rolls)
    return Outcome(result, rolls)
