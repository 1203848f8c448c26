"""Tests for the expression classifier and precedence-driven parenthesization."""

from assert_introspect.classifier import OperatorKind, classify, needs_parens
from assert_introspect.ctype import INT
from assert_introspect.expr import (
    Arithmetic,
    Call,
    Comparison,
    Declaration,
    Literal,
    LogicalAnd,
    LogicalOr,
    Opaque,
    Variable,
)

X = Variable(Declaration(0, "x", INT))
Y = Variable(Declaration(1, "y", INT))


class TestClassify:
    def test_comparisons(self):
        for op in ("==", "!=", "<", "<=", ">", ">="):
            assert classify(Comparison(op, X, Y)) == OperatorKind(op)

    def test_arithmetic(self):
        for op in ("+", "-", "*", "/", "%"):
            assert classify(Arithmetic(op, X, Y)) == OperatorKind(op)

    def test_logical(self):
        assert classify(LogicalAnd(X, Y)) == OperatorKind.AND
        assert classify(LogicalOr(X, Y)) == OperatorKind.OR
        assert OperatorKind.AND.is_logical
        assert not OperatorKind.EQ.is_logical

    def test_leaves_are_not_operators(self):
        assert classify(X) is None
        assert classify(Literal(3)) is None
        assert classify(Call("f", (X,))) is None

    def test_unknown_shapes_are_not_operators(self):
        assert classify(Opaque(kind="unary_expression", operator="!", operands=(X,))) is None
        assert classify(Comparison("<<", X, Y)) is None


class TestNeedsParens:
    def test_lower_precedence_child_is_parenthesized(self):
        child = Arithmetic("+", X, Y)
        assert needs_parens(OperatorKind.MUL, child, is_right=False)

    def test_higher_precedence_child_is_bare(self):
        child = Arithmetic("*", X, Y)
        assert not needs_parens(OperatorKind.ADD, child, is_right=True)

    def test_equal_precedence_on_the_right_is_parenthesized(self):
        child = Arithmetic("-", X, Y)
        assert needs_parens(OperatorKind.SUB, child, is_right=True)
        assert not needs_parens(OperatorKind.SUB, child, is_right=False)

    def test_arithmetic_under_comparison_is_bare(self):
        assert not needs_parens(OperatorKind.EQ, Arithmetic("+", X, Y), is_right=False)

    def test_logical_under_comparison_is_parenthesized(self):
        assert needs_parens(OperatorKind.EQ, LogicalOr(X, Y), is_right=False)

    def test_leaf_never_needs_parens(self):
        assert not needs_parens(OperatorKind.MUL, X, is_right=True)
