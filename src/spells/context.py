"""
Scopes, user-defined functions and the evaluation context.

A ``Context`` owns an arena of ``Scope``s addressed by index. Scope 0 is the
root and lives as long as the context; every other scope is pushed when a
function body starts and popped when it finishes, strictly in stack order.
Assignment walks the parent chain and overwrites the nearest existing
binding, declaring a new one in the current scope only when none exists.
"""

import itertools
import logging
import sys
from contextlib import contextmanager
from dataclasses import dataclass, field
from importlib import resources
from typing import Dict, Iterator, List, Optional, Sequence, Tuple, Union

from . import builtins
from .ast import Ast, BinaryOp
from .errors import error_argument_count, error_recursion_limit
from .operators import Operator
from .outcome import Outcome
from .values import Value

log = logging.getLogger(__name__)

ROOT_SCOPE = 0

# Upper bound on interpreter frames one level of user function call uses
# for an ordinary body; the call depth limit scales with the recursion limit
FRAMES_PER_CALL = 10

_declaration_ids = itertools.count(1)


def max_call_depth() -> int:
    """Deepest chain of user function calls evaluation allows."""
    return sys.getrecursionlimit() // FRAMES_PER_CALL


@dataclass
class Function:
    """
    A user-defined function.

    ``body`` is an independent arena holding only the function's own nodes.
    ``scope`` is the index of the scope the function was defined in; calls
    evaluate the body in a child of that scope. ``declaration_id`` orders
    functions when a context is written out.
    """
    name: str
    body: Ast
    parameters: Tuple[str, ...]
    scope: int = ROOT_SCOPE
    declaration_id: int = field(default_factory=lambda: next(_declaration_ids))

    def render(self) -> str:
        body = self.body.render()
        root = self.body[self.body.start()]
        if isinstance(root, BinaryOp) and root.operator is Operator.DISCARD:
            body = f"({body})"
        return f"{self.name}({', '.join(self.parameters)}) = {body}"

    def __str__(self) -> str:
        return self.render()


@dataclass(frozen=True)
class ChildScope:
    """Reference from a scope to a nested scope it currently owns."""
    index: int


ScopeObject = Union[Value, Function, ChildScope]


@dataclass
class Scope:
    """
    A single scope containing name bindings.

    Scopes form a chain via the ``parent`` index for lexical lookup.
    """
    parent: Optional[int] = None
    objects: Dict[str, ScopeObject] = field(default_factory=dict)
    name: str = "root"  # For debugging


class Context:
    """
    Persistent interpreter state: the scope arena and the random source.

    Usage:
        context = create_context()
        outcome = eval_source("d20 + STR()", context)
    """

    def __init__(self, rng=None):
        self.scopes: List[Scope] = [Scope()]
        self.rng = rng

    # --- Scope management ---

    def scope(self, index: int) -> Scope:
        return self.scopes[index]

    def push_scope(self, parent: int, name: str = "anonymous") -> int:
        """Create a child of ``parent`` and return its index."""
        index = len(self.scopes)
        self.scopes.append(Scope(parent=parent, name=name))
        self.scopes[parent].objects[f"<{name}:{index}>"] = ChildScope(index)
        log.debug("push scope %d (%s) under %d", index, name, parent)
        return index

    def pop_scope(self, index: int) -> None:
        """Discard the most recently pushed scope."""
        if index == ROOT_SCOPE:
            raise ValueError("the root scope cannot be popped")
        if index != len(self.scopes) - 1:
            raise ValueError(f"scope {index} is not the innermost scope")
        scope = self.scopes.pop()
        self.scopes[scope.parent].objects.pop(f"<{scope.name}:{index}>", None)
        log.debug("pop scope %d (%s)", index, scope.name)

    @contextmanager
    def child_scope(self, parent: int, name: str = "anonymous") -> Iterator[int]:
        """Push a scope for the duration of a block, popping it even on error."""
        index = self.push_scope(parent, name)
        try:
            yield index
        finally:
            self._unwind(index)

    def _unwind(self, index: int) -> None:
        """Pop scope ``index`` along with any scope left above it."""
        # An error deep in a call chain may leave inner scopes behind
        while len(self.scopes) > index:
            self.pop_scope(len(self.scopes) - 1)

    def _chain(self, scope: int) -> Iterator[int]:
        current: Optional[int] = scope
        while current is not None:
            yield current
            current = self.scopes[current].parent

    def _lookup(self, scope: int, name: str) -> Tuple[Optional[int], Optional[ScopeObject]]:
        """Find the nearest binding of ``name``, returning (scope index, object)."""
        for index in self._chain(scope):
            objects = self.scopes[index].objects
            if name in objects:
                return index, objects[name]
        return None, None

    # --- Variables ---

    def get_variable(self, scope: int, name: str) -> Optional[Value]:
        _, obj = self._lookup(scope, name)
        return obj if isinstance(obj, Value) else None

    def set_variable(self, scope: int, name: str, value: Value) -> None:
        """Overwrite the nearest existing binding, or declare in ``scope``."""
        owner, _ = self._lookup(scope, name)
        if owner is None:
            owner = scope
        self.scopes[owner].objects[name] = value

    def variables(self, scope: int = ROOT_SCOPE) -> Dict[str, Value]:
        """Values bound directly in one scope."""
        return {k: v for k, v in self.scopes[scope].objects.items() if isinstance(v, Value)}

    # --- Functions ---

    def get_function(self, scope: int, name: str) -> Optional[Function]:
        _, obj = self._lookup(scope, name)
        return obj if isinstance(obj, Function) else None

    def define_function(self, scope: int, name: str, body: Ast,
                        parameters: Sequence[str]) -> Function:
        """Bind a function in ``scope`` itself, never in an ancestor."""
        function = Function(name, body, tuple(parameters), scope)
        self.scopes[scope].objects[name] = function
        log.debug("defined %s in scope %d", function.render(), scope)
        return function

    def functions(self, scope: int = ROOT_SCOPE) -> List[Function]:
        """Functions bound directly in one scope, in declaration order."""
        found = [v for v in self.scopes[scope].objects.values() if isinstance(v, Function)]
        return sorted(found, key=lambda f: f.declaration_id)

    def has_callable(self, scope: int, name: str) -> bool:
        return self.get_function(scope, name) is not None or builtins.has_builtin(name)

    def call(self, scope: int, name: str, args: Sequence[Value]) -> Outcome:
        """
        Call a user function visible from ``scope``, else a builtin.

        The body runs in a fresh child of the scope the function was defined
        in, with each parameter bound to its argument.

        Raises:
            NameError: On an unknown name or a wrong argument count
            RangeError: When calls nest deeper than ``max_call_depth()``
        """
        function = self.get_function(scope, name)
        if function is None:
            return builtins.call(name, args, self.rng)

        if len(args) != len(function.parameters):
            raise error_argument_count(name, len(function.parameters), len(args))
        # Only calls push scopes, so the arena size is the call depth plus one
        if len(self.scopes) > max_call_depth():
            raise error_recursion_limit(name)

        # evaluator imports this module
        from .evaluator import evaluate

        log.debug("call %s(%s)", name, ", ".join(str(arg) for arg in args))
        with self.child_scope(function.scope, name) as child:
            objects = self.scopes[child].objects
            for parameter, value in zip(function.parameters, args):
                objects[parameter] = value
            return evaluate(function.body, self, child)

    # --- Persistence ---

    def dump_to_string(self) -> str:
        """
        Render root-scope functions (in declaration order) and variables as
        source text that rebuilds them when evaluated.
        """
        lines = [function.render() for function in self.functions(ROOT_SCOPE)]
        for name, value in self.variables(ROOT_SCOPE).items():
            if value.is_empty:
                log.debug("skipping empty variable %s", name)
                continue
            lines.append(f"{name} = {value.render()}")
        return "\n".join(lines) + ("\n" if lines else "")


def default_tome() -> str:
    """Source of the definitions every new context starts with."""
    return resources.files(__package__).joinpath("tomes/default.tome").read_text(encoding="utf-8")


def create_context(defaults: bool = True, rng=None) -> Context:
    """Create a context, optionally preloaded with the default tome."""
    context = Context(rng)
    if defaults:
        from .evaluator import eval_tome

        eval_tome(default_tome(), context)
    return context
