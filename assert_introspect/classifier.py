"""Expression classifier — which nodes are operators the pass knows how to render."""

from __future__ import annotations

from enum import Enum

from .expr import Arithmetic, Comparison, Expr, LogicalAnd, LogicalOr


class OperatorKind(str, Enum):
    EQ = "=="
    NE = "!="
    LT = "<"
    LE = "<="
    GT = ">"
    GE = ">="
    AND = "&&"
    OR = "||"
    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"
    MOD = "%"

    @property
    def is_logical(self) -> bool:
        return self in (OperatorKind.AND, OperatorKind.OR)


COMPARISON_OPS: frozenset[str] = frozenset({"==", "!=", "<", "<=", ">", ">="})
ARITHMETIC_OPS: frozenset[str] = frozenset({"+", "-", "*", "/", "%"})

# C precedence, higher binds tighter.
PRECEDENCE: dict[OperatorKind, int] = {
    OperatorKind.OR: 1,
    OperatorKind.AND: 2,
    OperatorKind.EQ: 3,
    OperatorKind.NE: 3,
    OperatorKind.LT: 4,
    OperatorKind.LE: 4,
    OperatorKind.GT: 4,
    OperatorKind.GE: 4,
    OperatorKind.ADD: 5,
    OperatorKind.SUB: 5,
    OperatorKind.MUL: 6,
    OperatorKind.DIV: 6,
    OperatorKind.MOD: 6,
}


def classify(node: Expr) -> OperatorKind | None:
    """Map a binary node to its operator; ``None`` for leaves and unknown shapes."""
    if isinstance(node, LogicalAnd):
        return OperatorKind.AND
    if isinstance(node, LogicalOr):
        return OperatorKind.OR
    if isinstance(node, Comparison) and node.op in COMPARISON_OPS:
        return OperatorKind(node.op)
    if isinstance(node, Arithmetic) and node.op in ARITHMETIC_OPS:
        return OperatorKind(node.op)
    return None


def needs_parens(parent: OperatorKind, child: Expr, is_right: bool) -> bool:
    """Whether *child* must be parenthesized to keep its meaning under *parent*.

    Only meaningful for comparison/arithmetic parents; logical nodes place
    their own parentheses.
    """
    kind = classify(child)
    if kind is None:
        return False
    if PRECEDENCE[kind] != PRECEDENCE[parent]:
        return PRECEDENCE[kind] < PRECEDENCE[parent]
    # left-associative: a - (b - c) keeps its parentheses, (a - b) - c does not
    return is_right
