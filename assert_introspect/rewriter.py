"""Single-evaluation rewriter — every leaf is computed once, referenced many times.

The rewriter walks the condition and wraps each leaf in a ``Materialized``
node backed by a slot of a small arena.  The host evaluates a slot the first
time execution reaches it and reuses the stored value for every later
reference, so diagnostic code can mention a leaf as often as it likes
without re-running its side effects.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from . import constants
from .classifier import classify
from .errors import InvariantViolation
from .expr import (
    AddressOf,
    BinaryOp,
    Call,
    Expr,
    Literal,
    LogicalAnd,
    LogicalOr,
    Materialized,
    Opaque,
    StringLiteral,
    leaf_type,
)
from .formatter import INT_SPEC, FormatSpec, format_spec_for

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Slot:
    """One materialized leaf: its rewritten expression and its format specifier."""

    id: int
    expr: Expr
    spec: FormatSpec


class SlotArena:
    """Arena of materialized slots, indexed by small integer ids."""

    def __init__(self):
        self._slots: list[Slot] = []

    def allocate(self, expr: Expr) -> Slot:
        # opaque units are rendered as a placeholder, never formatted
        spec = INT_SPEC if isinstance(expr, Opaque) else format_spec_for(leaf_type(expr))
        slot = Slot(id=len(self._slots), expr=expr, spec=spec)
        self._slots.append(slot)
        return slot

    def __getitem__(self, slot_id: int) -> Slot:
        return self._slots[slot_id]

    def __len__(self) -> int:
        return len(self._slots)

    def __iter__(self):
        return iter(self._slots)


def is_side_effect_free(node: Expr) -> bool:
    """Conservative purity test; anything not listed here is materialized."""
    return isinstance(node, (Literal, StringLiteral, AddressOf))


class SingleEvaluationRewriter:
    """Rewrites a condition so that each leaf is evaluated at most once."""

    def __init__(self, max_depth: int = constants.MAX_EXPRESSION_DEPTH):
        self._max_depth = max_depth
        self.arena = SlotArena()

    def materialize(self, node: Expr) -> Expr:
        return self._rewrite(node, 0)

    def _rewrite(self, node: Expr, depth: int) -> Expr:
        if isinstance(node, Materialized):
            return node
        if classify(node) is None:
            return self._rewrite_leaf(node, depth)
        if depth >= self._max_depth:
            logger.warning(
                "Expression nested deeper than %d levels; introspection stops here",
                self._max_depth,
            )
            return self._wrap(
                Opaque(kind="too_deep", text=str(node), operator="group", operands=(node,))
            )

        if isinstance(node, LogicalAnd):
            return LogicalAnd(
                self._rewrite(node.left, depth + 1),
                self._rewrite(node.right, depth + 1),
                node.short_circuit,
            )
        if isinstance(node, LogicalOr):
            return LogicalOr(
                self._rewrite(node.left, depth + 1),
                self._rewrite(node.right, depth + 1),
                node.short_circuit,
            )
        if not isinstance(node, BinaryOp):
            raise InvariantViolation(
                f"classified node {type(node).__name__} is not a binary operator"
            )
        return type(node)(
            node.op,
            self._rewrite(node.left, depth + 1),
            self._rewrite(node.right, depth + 1),
        )

    def _rewrite_leaf(self, node: Expr, depth: int) -> Expr:
        if is_side_effect_free(node):
            return node
        if isinstance(node, Call):
            args = tuple(self._rewrite(arg, depth + 1) for arg in node.args)
            return self._wrap(Call(node.callee, args, node.return_type))
        return self._wrap(node)

    def _wrap(self, node: Expr) -> Materialized:
        slot = self.arena.allocate(node)
        logger.debug("Materialized %s as $%d (%s)", node, slot.id, slot.spec.conversion)
        return Materialized(slot=slot.id, inner=node)
