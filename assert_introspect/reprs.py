"""Call/declaration repr builder — the "subexpressions" section of a failure report.

Each variable gets one ``name = value`` line and each call one
``callee(args) = value`` line, preceded by the lines of its arguments.
Lines are emitted under the same short-circuit branches as the condition,
so a call that was never evaluated is never listed.

Deduplication is per execution path.  After a short-circuit join an
identity may have been listed on one branch only; it is then tracked with
a guard expression (built from already-materialized values) that is true
exactly when the listing happened, and a later occurrence branches on it.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Optional

from . import constants
from .classifier import OperatorKind, classify
from .expr import (
    BinaryOp,
    Call,
    Comparison,
    Expr,
    Literal,
    LogicalAnd,
    LogicalOr,
    Materialized,
    Variable,
)
from .formatter import escape_format_text
from .ir import Opcode
from .lowering import ProgramBuilder, ShortCircuitLowerer
from .registry import ColorRegistry, Identity, identity_of

logger = logging.getLogger(__name__)

# identity -> None when listed on every path, else the guard under which it was listed
Listed = Dict[Identity, Optional[Expr]]


def listable_identities(node: Expr) -> list[Identity]:
    """Identities (in evaluation order) that would get a subexpression line."""
    found: list[Identity] = []
    _collect_identities(node, found)
    return found


def _collect_identities(node: Expr, found: list[Identity]):
    if isinstance(node, (LogicalAnd, LogicalOr, BinaryOp)):
        _collect_identities(node.left, found)
        _collect_identities(node.right, found)
        return
    if not isinstance(node, Materialized):
        return
    inner = node.inner
    if isinstance(inner, Call):
        for arg in inner.args:
            _collect_identities(arg, found)
        found.append(identity_of(node))
    elif isinstance(inner, Variable):
        found.append(identity_of(node))


def _always_listed(listed: Listed, identity: Identity) -> bool:
    return identity in listed and listed[identity] is None


class SubexpressionBuilder:
    """Emits one buffered line per evaluated variable/call, deduplicated by identity."""

    def __init__(
        self,
        lowerer: ShortCircuitLowerer,
        colors: ColorRegistry,
        builder: ProgramBuilder,
    ):
        self._lowerer = lowerer
        self._colors = colors
        self._builder = builder

    def build(self, condition: Expr) -> bool:
        """Emit the whole section; returns False (emitting nothing) when there is nothing to list."""
        if not listable_identities(condition):
            return False
        self._builder.emit(Opcode.PRINT, operands=[constants.SUBEXPRESSIONS_HEADER])
        self.collect(condition, {})
        return True

    def collect(self, node: Expr, listed: Listed) -> Listed:
        """Emit lines for *node*; returns what is listed after it. *listed* is not modified."""
        kind = classify(node)
        if kind in (OperatorKind.AND, OperatorKind.OR):
            return self._collect_logical(kind, node, listed)
        if kind is not None:
            return self.collect(node.right, self.collect(node.left, listed))
        if not isinstance(node, Materialized):
            return listed
        inner = node.inner
        if isinstance(inner, Call):
            for arg in inner.args:
                listed = self.collect(arg, listed)
            return self._entry(node, listed, self._emit_call_line)
        if isinstance(inner, Variable):
            return self._entry(node, listed, self._emit_variable_line)
        return listed

    def _collect_logical(self, kind: OperatorKind, node: Expr, listed: Listed) -> Listed:
        listed = self.collect(node.left, listed)
        pending = [
            i for i in listable_identities(node.right) if not _always_listed(listed, i)
        ]
        if not pending:
            return listed
        if not node.short_circuit:
            return self.collect(node.right, listed)

        b = self._builder
        right_label = b.fresh_label(constants.LABEL_SUB_RIGHT)
        end_label = b.fresh_label(constants.LABEL_SUB_END)
        # && evaluates its right operand when the left held, || when it failed
        if kind == OperatorKind.AND:
            b.branch_if(node.left, right_label, end_label)
            reached: Expr = node.left
        else:
            b.branch_if(node.left, end_label, right_label)
            reached = Comparison("==", node.left, Literal(0))
        b.label(right_label)
        in_branch = self.collect(node.right, listed)
        b.branch(end_label)
        b.label(end_label)
        return self._join(listed, in_branch, reached)

    def _join(self, before: Listed, in_branch: Listed, reached: Expr) -> Listed:
        joined = dict(before)
        for identity, guard in in_branch.items():
            unchanged = identity in before and before[identity] is guard
            if _always_listed(before, identity) or unchanged:
                continue
            branch_guard = reached if guard is None else LogicalAnd(reached, guard)
            if identity in before:
                branch_guard = LogicalOr(before[identity], branch_guard)
            joined[identity] = branch_guard
        return joined

    def _entry(
        self,
        node: Materialized,
        listed: Listed,
        emit_line: Callable[[Materialized, Identity], None],
    ) -> Listed:
        identity = identity_of(node)
        if _always_listed(listed, identity):
            logger.debug("Skipping duplicate subexpression %s", node.inner)
            return listed
        b = self._builder
        skip_label = ""
        if identity in listed:
            skip_label = b.fresh_label(constants.LABEL_SUB_SKIP)
            entry_label = b.fresh_label(constants.LABEL_SUB_ENTRY)
            b.branch_if(listed[identity], skip_label, entry_label)
            b.label(entry_label)
        b.emit(Opcode.RESET)
        b.text(constants.SUBEXPRESSION_INDENT)
        emit_line(node, identity)
        b.emit(Opcode.FLUSH)
        if skip_label:
            b.label(skip_label)
        return {**listed, identity: None}

    def _emit_variable_line(self, node: Materialized, identity: Identity):
        name = escape_format_text(node.inner.name)
        self._builder.append(
            self._colors.paint(name, identity) + " = " + self._lowerer.value_format(node),
            node,
        )

    def _emit_call_line(self, node: Materialized, identity: Identity):
        call: Call = node.inner
        b = self._builder
        b.append(self._colors.paint(escape_format_text(call.callee), identity) + "(")
        for i, arg in enumerate(call.args):
            if i:
                b.text(", ")
            self._lowerer.lower(arg)
        b.append(") = " + self._lowerer.value_format(node), node)
