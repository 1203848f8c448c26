"""Short-circuit tree lowerer — rewritten condition → diagnostic Buffer Program.

The program only runs after the condition was found false.  For every
logical node it branches on the already-materialized value of the left
operand, so the reconstructed text covers exactly the operands the original
evaluation reached and never touches a leaf that was skipped by
short-circuiting.
"""

from __future__ import annotations

import logging
from typing import Any

from . import constants
from .classifier import OperatorKind, classify, needs_parens
from .errors import InvariantViolation, UnsupportedConstructError
from .expr import (
    LEAF_TYPES,
    BinaryOp,
    Expr,
    LogicalAnd,
    LogicalOr,
    Materialized,
    Opaque,
)
from .formatter import escape_format_text, is_constant_leaf, render_constant
from .ir import NO_SOURCE_LOCATION, DiagInstruction, Opcode, SourceLocation
from .registry import ColorRegistry, identity_of
from .rewriter import SlotArena

logger = logging.getLogger(__name__)


class ProgramBuilder:
    """Accumulates Buffer Program instructions; adjacent appends are merged."""

    def __init__(self, source_location: SourceLocation = NO_SOURCE_LOCATION):
        self._instructions: list[DiagInstruction] = []
        self._label_counter = 0
        self._source_location = source_location

    @property
    def instructions(self) -> list[DiagInstruction]:
        return self._instructions

    def fresh_label(self, prefix: str = "L") -> str:
        lbl = f"{prefix}_{self._label_counter}"
        self._label_counter += 1
        return lbl

    def emit(
        self, opcode: Opcode, *, operands: list[Any] | None = None, label: str = ""
    ) -> DiagInstruction:
        inst = DiagInstruction(
            opcode=opcode,
            operands=list(operands or []),
            label=label or None,
            source_location=self._source_location,
        )
        self._instructions.append(inst)
        return inst

    def append(self, fmt: str, *args: Expr):
        """Bounded-append *fmt* (already escaped) with *args* to the buffer."""
        last = self._instructions[-1] if self._instructions else None
        if last is not None and last.opcode == Opcode.APPEND:
            last.operands[0] += fmt
            last.operands.extend(args)
            return
        self.emit(Opcode.APPEND, operands=[fmt, *args])

    def text(self, text: str):
        self.append(escape_format_text(text))

    def branch_if(self, condition: Expr, true_label: str, false_label: str):
        self.emit(Opcode.BRANCH_IF, operands=[condition], label=f"{true_label},{false_label}")

    def branch(self, label: str):
        self.emit(Opcode.BRANCH, label=label)

    def label(self, label: str):
        self.emit(Opcode.LABEL, label=label)


class ShortCircuitLowerer:
    """Emits the evaluated repr of a rewritten condition into a ProgramBuilder."""

    def __init__(
        self,
        arena: SlotArena,
        colors: ColorRegistry,
        builder: ProgramBuilder,
        max_depth: int = constants.MAX_EXPRESSION_DEPTH,
    ):
        self._arena = arena
        self._colors = colors
        self._builder = builder
        self._max_depth = max_depth

    def lower(self, node: Expr, depth: int = 0):
        kind = classify(node)
        if kind is None:
            try:
                self.lower_leaf(node)
            except UnsupportedConstructError as exc:
                logger.warning("Rendering placeholder: %s", exc)
                self._builder.text(constants.PLACEHOLDER)
        elif depth >= self._max_depth:
            self._builder.text(constants.PLACEHOLDER)
        elif kind == OperatorKind.AND:
            self._lower_and(node, depth)
        elif kind == OperatorKind.OR:
            self._lower_or(node, depth)
        else:
            self._lower_binary(kind, node, depth)

    # ── logical connectives ──────────────────────────────────────

    def _lower_and(self, node: LogicalAnd, depth: int):
        b = self._builder
        true_label = b.fresh_label(constants.LABEL_AND_TRUE)
        false_label = b.fresh_label(constants.LABEL_AND_FALSE)
        end_label = b.fresh_label(constants.LABEL_AND_END)

        b.branch_if(node.left, true_label, false_label)

        # left held: the right operand is what failed
        b.label(true_label)
        b.text(f"({constants.PLACEHOLDER}) && (")
        self.lower(node.right, depth + 1)
        b.text(")")
        b.branch(end_label)

        # left failed: the right operand was never evaluated
        b.label(false_label)
        self.lower(node.left, depth + 1)
        b.branch(end_label)

        b.label(end_label)

    def _lower_or(self, node: LogicalOr, depth: int):
        b = self._builder
        if not node.short_circuit:
            self._lower_or_operands(node, depth)
            return

        true_label = b.fresh_label(constants.LABEL_OR_TRUE)
        false_label = b.fresh_label(constants.LABEL_OR_FALSE)
        end_label = b.fresh_label(constants.LABEL_OR_END)

        b.branch_if(node.left, true_label, false_label)

        # only reachable under a comparison; the right operand was skipped
        b.label(true_label)
        self._lower_logical_operand(OperatorKind.OR, node.left, depth)
        b.text(f" || ({constants.PLACEHOLDER})")
        b.branch(end_label)

        b.label(false_label)
        self._lower_or_operands(node, depth)
        b.branch(end_label)

        b.label(end_label)

    def _lower_or_operands(self, node: LogicalOr, depth: int):
        self._lower_logical_operand(OperatorKind.OR, node.left, depth)
        self._builder.text(" || ")
        self._lower_logical_operand(OperatorKind.OR, node.right, depth)

    def _lower_logical_operand(self, parent: OperatorKind, child: Expr, depth: int):
        if classify(child) == parent:
            self.lower(child, depth + 1)
            return
        self._builder.text("(")
        self.lower(child, depth + 1)
        self._builder.text(")")

    # ── comparison / arithmetic ──────────────────────────────────

    def _lower_binary(self, kind: OperatorKind, node: BinaryOp, depth: int):
        self._lower_operand(kind, node.left, False, depth)
        self._builder.text(f" {kind.value} ")
        self._lower_operand(kind, node.right, True, depth)

    def _lower_operand(self, parent: OperatorKind, child: Expr, is_right: bool, depth: int):
        if needs_parens(parent, child, is_right):
            self._builder.text("(")
            self.lower(child, depth + 1)
            self._builder.text(")")
        else:
            self.lower(child, depth + 1)

    # ── leaves ───────────────────────────────────────────────────

    def lower_leaf(self, node: Expr):
        """Append the repr of one leaf: constant text, placeholder or a formatted value."""
        if is_constant_leaf(node):
            self._builder.text(render_constant(node))
            return
        if not isinstance(node, Materialized):
            if isinstance(node, LEAF_TYPES):
                raise InvariantViolation(
                    f"leaf {node} reached lowering without being materialized"
                )
            raise UnsupportedConstructError(f"unsupported node {type(node).__name__}")
        if isinstance(node.inner, Opaque):
            logger.debug("Opaque %s rendered as placeholder", node.inner.kind)
            self._builder.text(constants.PLACEHOLDER)
            return
        self._builder.append(self.value_format(node), node)

    def value_format(self, node: Materialized) -> str:
        """Format text for one materialized value, colored by its identity."""
        spec = self._arena[node.slot].spec
        return self._colors.paint(spec.text, identity_of(node))
