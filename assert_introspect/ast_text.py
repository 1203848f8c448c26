"""Static AST text — the condition as the pass understood it, with placeholders."""

from __future__ import annotations

from . import constants
from .classifier import OperatorKind, classify, needs_parens
from .expr import Call, Expr, Materialized, Opaque
from .formatter import is_constant_leaf, render_constant


def render_ast(node: Expr) -> str:
    """Render *node* (original or rewritten) back to C-like text.

    Unsupported shapes appear as ``...`` so the reader can see which parts
    were not introspected.
    """
    if isinstance(node, Materialized):
        return render_ast(node.inner)
    kind = classify(node)
    if kind is not None and kind.is_logical:
        return (
            _logical_operand(kind, node.left)
            + f" {kind.value} "
            + _logical_operand(kind, node.right)
        )
    if kind is not None:
        return (
            _binary_operand(kind, node.left, False)
            + f" {kind.value} "
            + _binary_operand(kind, node.right, True)
        )
    if is_constant_leaf(node):
        return render_constant(node)
    if isinstance(node, Call):
        return f"{node.callee}({', '.join(render_ast(a) for a in node.args)})"
    if isinstance(node, Opaque):
        return constants.PLACEHOLDER
    name = getattr(node, "name", None)
    return name if name is not None else constants.PLACEHOLDER


def _logical_operand(parent: OperatorKind, child: Expr) -> str:
    text = render_ast(child)
    kind = classify(child.inner if isinstance(child, Materialized) else child)
    if kind is None or kind == parent:
        return text
    return f"({text})"


def _binary_operand(parent: OperatorKind, child: Expr, is_right: bool) -> str:
    text = render_ast(child)
    if needs_parens(parent, child, is_right):
        return f"({text})"
    return text
