"""
AST node definitions and the node arena.

Nodes reference their children by index into the ``Ast`` that owns them,
so an index is meaningless outside its arena. Parsing appends children
before parents, which makes the last node the root. ``Ast.subtree`` copies
everything reachable from one node into a fresh, compact arena; function
bodies are captured that way so they never point into the statement that
defined them.
"""

from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple, Union

from .operators import Operator
from .values import Value


@dataclass(frozen=True)
class Literal:
    """Literal value: 42, 2.5, 4d6, "text", true."""
    value: Value


@dataclass(frozen=True)
class Identifier:
    """Variable reference (or a bare call of a nullary function)."""
    name: str


@dataclass(frozen=True)
class ListLiteral:
    """List literal: [a, b, c]."""
    items: Tuple[int, ...]


@dataclass(frozen=True)
class FunctionCall:
    """Function call: name(args)."""
    name: str
    args: Tuple[int, ...]


@dataclass(frozen=True)
class BinaryOp:
    """Binary operation: lhs op rhs."""
    lhs: int
    operator: Operator
    rhs: int


@dataclass(frozen=True)
class UnaryOp:
    """Unary operation, prefix (-x, !x) or postfix (d20a, 4d6s)."""
    operand: int
    operator: Operator


@dataclass(frozen=True)
class IfExpr:
    """Conditional: if c then a [else b]."""
    condition: int
    then_branch: int
    else_branch: Optional[int] = None


Node = Union[Literal, Identifier, ListLiteral, FunctionCall, BinaryOp, UnaryOp, IfExpr]

# Binding strength used when rendering; atoms never need parentheses
_ATOM = 100
_IF = -1


@dataclass
class Ast:
    """Append-only arena of nodes addressed by index."""
    nodes: List[Node] = field(default_factory=list)

    def add(self, node: Node) -> int:
        """Append a node and return its index."""
        self.nodes.append(node)
        return len(self.nodes) - 1

    def get(self, index: int) -> Node:
        return self.nodes[index]

    def __getitem__(self, index: int) -> Node:
        return self.nodes[index]

    def __len__(self) -> int:
        return len(self.nodes)

    def __iter__(self) -> Iterator[Node]:
        return iter(self.nodes)

    def is_empty(self) -> bool:
        return not self.nodes

    def start(self) -> int:
        """Index of the root node (the last one appended)."""
        return max(len(self.nodes) - 1, 0)

    # --- Subtree extraction ---

    def subtree(self, root: int) -> "Ast":
        """Deep-copy everything reachable from ``root`` into a new arena."""
        dest = Ast()
        self._copy_into(dest, root)
        return dest

    def _copy_into(self, dest: "Ast", index: int) -> int:
        node = self.nodes[index]

        if isinstance(node, (Literal, Identifier)):
            return dest.add(node)

        if isinstance(node, ListLiteral):
            items = tuple(self._copy_into(dest, i) for i in node.items)
            return dest.add(ListLiteral(items))

        if isinstance(node, FunctionCall):
            args = tuple(self._copy_into(dest, i) for i in node.args)
            return dest.add(FunctionCall(node.name, args))

        if isinstance(node, BinaryOp):
            lhs = self._copy_into(dest, node.lhs)
            rhs = self._copy_into(dest, node.rhs)
            return dest.add(BinaryOp(lhs, node.operator, rhs))

        if isinstance(node, UnaryOp):
            operand = self._copy_into(dest, node.operand)
            return dest.add(UnaryOp(operand, node.operator))

        if isinstance(node, IfExpr):
            condition = self._copy_into(dest, node.condition)
            then_branch = self._copy_into(dest, node.then_branch)
            else_branch = None
            if node.else_branch is not None:
                else_branch = self._copy_into(dest, node.else_branch)
            return dest.add(IfExpr(condition, then_branch, else_branch))

        raise ValueError(f"unknown node type: {type(node).__name__}")

    # --- Rendering ---

    def render(self, index: Optional[int] = None) -> str:
        """Render the tree rooted at ``index`` (default: the root) as source text."""
        if self.is_empty():
            return ""
        if index is None:
            index = self.start()
        return self._render(index)

    def __str__(self) -> str:
        return self.render()

    def _strength(self, index: int) -> int:
        node = self.nodes[index]
        if isinstance(node, (BinaryOp, UnaryOp)):
            return node.operator.precedence
        if isinstance(node, IfExpr):
            return _IF
        if isinstance(node, Literal) and node.value.render().startswith('-'):
            return Operator.NEG.precedence
        return _ATOM

    def _is_postfix(self, index: int) -> bool:
        node = self.nodes[index]
        return isinstance(node, UnaryOp) and node.operator.is_unary_postfix

    def _wrapped(self, index: int, wrap: bool) -> str:
        text = self._render(index)
        return f"({text})" if wrap else text

    def _render(self, index: int) -> str:
        node = self.nodes[index]

        if isinstance(node, Literal):
            return node.value.render()

        if isinstance(node, Identifier):
            return node.name

        if isinstance(node, ListLiteral):
            return "[" + ", ".join(self._render(i) for i in node.items) + "]"

        if isinstance(node, FunctionCall):
            return f"{node.name}(" + ", ".join(self._render(i) for i in node.args) + ")"

        if isinstance(node, BinaryOp):
            return self._render_binary(node)

        if isinstance(node, UnaryOp):
            return self._render_unary(node)

        if isinstance(node, IfExpr):
            condition = self._wrapped(node.condition, self._strength(node.condition) == _IF)
            then_node = self.nodes[node.then_branch]
            dangling = isinstance(then_node, IfExpr) and then_node.else_branch is None
            then_text = self._wrapped(node.then_branch, dangling and node.else_branch is not None)
            text = f"if {condition} then {then_text}"
            if node.else_branch is not None:
                text += f" else {self._render(node.else_branch)}"
            return text

        raise ValueError(f"unknown node type: {type(node).__name__}")

    def _render_binary(self, node: BinaryOp) -> str:
        op = node.operator
        prec = op.precedence
        lhs_strength = self._strength(node.lhs)
        rhs_strength = self._strength(node.rhs)

        if op is Operator.KEEP:
            # Keep only lexes directly after a roll, so its left side stays bare
            bare = (lhs_strength == _ATOM or self._is_postfix(node.lhs)
                    or lhs_strength >= prec)
            left = self._wrapped(node.lhs, not bare)
            rhs_node = self.nodes[node.rhs]
            numeric = isinstance(rhs_node, Literal) and rhs_node.value.render()[:1].isdigit()
            right = self._wrapped(node.rhs, not numeric)
            return f"{left}k{right}"

        wrap_left = lhs_strength < prec or (lhs_strength == prec and not op.left_associative)
        wrap_right = rhs_strength < prec or (rhs_strength == prec and op.left_associative)
        left = self._wrapped(node.lhs, wrap_left)
        right = self._wrapped(node.rhs, wrap_right)

        if op is Operator.DISCARD:
            return f"{left}; {right}"
        return f"{left} {op.symbol} {right}"

    def _render_unary(self, node: UnaryOp) -> str:
        op = node.operator
        strength = self._strength(node.operand)

        if op.is_unary_postfix:
            operand = self._wrapped(node.operand, strength < op.precedence)
            return f"{operand}{op.symbol}"

        wrap = strength < op.precedence or (
            strength == op.precedence and self._is_postfix(node.operand)
        )
        return f"{op.symbol}{self._wrapped(node.operand, wrap)}"
