"""Tests for the reference executor's expression evaluator and builtins."""

import pytest

from assert_introspect.ctype import CHAR, CHAR_POINTER, INT, VOID_POINTER
from assert_introspect.errors import InvariantViolation
from assert_introspect.expr import (
    AddressOf,
    Arithmetic,
    Call,
    Comparison,
    Declaration,
    Literal,
    LogicalAnd,
    LogicalOr,
    Materialized,
    Opaque,
    StringLiteral,
    Variable,
)
from assert_introspect.runtime import Environment, ExpressionEvaluator, Pointer
from assert_introspect.runtime.builtins import Builtins
from assert_introspect.runtime.vm import c_truth
from assert_introspect.runtime.vm_types import DiagnosticBuffer, UnsupportedEvaluation

N = Variable(Declaration(0, "n", INT))
S = Variable(Declaration(1, "s", CHAR_POINTER))


def _evaluator(variables=None, functions=None) -> ExpressionEvaluator:
    return ExpressionEvaluator(
        Environment(variables=dict(variables or {}), functions=dict(functions or {}))
    )


def _eval(node, variables=None, functions=None):
    return _evaluator(variables, functions).evaluate(node)


class TestCTruth:
    def test_zero_and_null_are_false(self):
        assert not c_truth(0)
        assert not c_truth(None)

    def test_strings_and_pointers_are_true(self):
        assert c_truth("")
        assert c_truth(Pointer("n", 0x1000))


class TestArithmetic:
    def test_division_truncates_toward_zero(self):
        assert _eval(Arithmetic("/", Literal(-7), Literal(2))) == -3

    def test_modulo_sign_follows_dividend(self):
        assert _eval(Arithmetic("%", Literal(-7), Literal(2))) == -1

    def test_division_by_zero(self):
        with pytest.raises(UnsupportedEvaluation):
            _eval(Arithmetic("/", N, Literal(0)), {"n": 1})

    def test_comparison_yields_int(self):
        assert _eval(Comparison("<", Literal(1), Literal(2))) == 1
        assert _eval(Comparison("==", Literal(1), Literal(2))) == 0


class TestLogical:
    def test_and_short_circuits(self):
        evaluator = _evaluator(functions={"f": lambda: 1})
        assert evaluator.evaluate(LogicalAnd(Literal(0), Call("f"))) == 0
        assert evaluator.call_count == 0

    def test_or_short_circuits(self):
        evaluator = _evaluator(functions={"f": lambda: 0})
        assert evaluator.evaluate(LogicalOr(Literal(5), Call("f"))) == 1
        assert evaluator.call_count == 0

    def test_strict_and_evaluates_both(self):
        evaluator = _evaluator(functions={"f": lambda: 1})
        assert evaluator.evaluate(LogicalAnd(Literal(0), Call("f"), short_circuit=False)) == 0
        assert evaluator.call_count == 1


class TestSlots:
    def test_materialized_call_runs_once(self):
        calls = []
        evaluator = _evaluator(functions={"f": lambda: calls.append(1) or 7})
        slot = Materialized(0, Call("f"))
        assert evaluator.evaluate(Arithmetic("+", slot, slot)) == 14
        assert calls == [1]
        assert evaluator.is_computed(0)

    def test_replay_reads_cache(self):
        evaluator = _evaluator({"n": 4})
        slot = Materialized(0, N)
        evaluator.evaluate(slot)
        assert evaluator.replay(Comparison("==", slot, Literal(4))) == 1

    def test_replay_of_uncomputed_slot_is_a_bug(self):
        evaluator = _evaluator({"n": 4})
        with pytest.raises(InvariantViolation):
            evaluator.replay(Materialized(3, N))

    def test_replay_of_bare_leaf_is_a_bug(self):
        with pytest.raises(InvariantViolation):
            _evaluator({"n": 4}).replay(N)


class TestLeaves:
    def test_variable(self):
        assert _eval(N, {"n": 9}) == 9

    def test_unbound_variable(self):
        with pytest.raises(UnsupportedEvaluation):
            _eval(N)

    def test_null_literal_is_none(self):
        assert _eval(Literal(0, VOID_POINTER, "NULL")) is None

    def test_string_literal(self):
        assert _eval(StringLiteral("hi")) == "hi"

    def test_address_of_is_stable(self):
        evaluator = _evaluator({"n": 1})
        first = evaluator.evaluate(AddressOf(N))
        assert first == Pointer("n", 0x1000)
        assert evaluator.evaluate(AddressOf(N)) == first

    def test_unknown_function(self):
        with pytest.raises(UnsupportedEvaluation):
            _eval(Call("nope"))

    def test_user_function_overrides_builtin(self):
        assert _eval(Call("abs", (Literal(-3),)), functions={"abs": lambda x: 99}) == 99


class TestOpaque:
    def test_logical_not(self):
        node = Opaque("unary_expression", "!n", operator="!", operands=(N,))
        assert _eval(node, {"n": 0}) == 1

    def test_cast_truncates(self):
        node = Opaque("cast_expression", "(char)n", type=CHAR, operator="cast", operands=(N,))
        assert _eval(node, {"n": 300}) == 44

    def test_conditional(self):
        node = Opaque("conditional_expression", "n ? 1 : 2", operator="?:",
                      operands=(N, Literal(1), Literal(2)))
        assert _eval(node, {"n": 0}) == 2

    def test_pre_increment_updates_variable(self):
        env = Environment(variables={"n": 1})
        node = Opaque("update_expression", "++n", operator="pre++", operands=(N,))
        assert ExpressionEvaluator(env).evaluate(node) == 2
        assert env.variables["n"] == 2

    def test_post_decrement_returns_old_value(self):
        env = Environment(variables={"n": 1})
        node = Opaque("update_expression", "n--", operator="post--", operands=(N,))
        assert ExpressionEvaluator(env).evaluate(node) == 1
        assert env.variables["n"] == 0

    def test_subscript_on_string(self):
        node = Opaque("subscript_expression", "s[1]", operator="[]", operands=(S, Literal(1)))
        assert _eval(node, {"s": "ab"}) == ord("b")

    def test_dereference_pointer(self):
        node = Opaque("pointer_expression", "*&n", operator="*", operands=(AddressOf(N),))
        assert _eval(node, {"n": 5}) == 5

    def test_field_access(self):
        p = Variable(Declaration(2, "p", INT))
        node = Opaque("field_expression", "p.x", operator=".x", operands=(p,))
        assert _eval(node, {"p": {"x": 3}}) == 3


class TestBuiltins:
    def _call(self, name, *args):
        return Builtins.TABLE[name](list(args), Environment())

    def test_strtol_auto_base(self):
        assert self._call("strtol", "0x1f", None, 0) == 31
        assert self._call("strtol", "017", None, 0) == 15
        assert self._call("strtol", "42", None, 0) == 42

    def test_strtol_stops_at_invalid_digit(self):
        assert self._call("strtol", "  -42abc", None, 10) == -42

    def test_strtol_without_digits(self):
        assert self._call("strtol", "xyz", None, 10) == 0

    def test_atoi(self):
        assert self._call("atoi", "12") == 12

    def test_strstr(self):
        assert self._call("strstr", "hello world", "world") == "world"
        assert self._call("strstr", "hello", "xyz") is None

    def test_strchr(self):
        assert self._call("strchr", "abc", ord("b")) == "bc"

    def test_strcmp_sign(self):
        assert self._call("strcmp", "a", "b") == -1
        assert self._call("strcmp", "b", "b") == 0

    def test_strncmp_prefix(self):
        assert self._call("strncmp", "abcd", "abxx", 2) == 0

    def test_string_builtin_rejects_null(self):
        with pytest.raises(UnsupportedEvaluation):
            self._call("strlen", None)


class TestDiagnosticBuffer:
    def test_reserves_terminator(self):
        buffer = DiagnosticBuffer(capacity=4)
        buffer.append("abcdef")
        assert buffer.data == "abc"
        assert buffer.truncated

    def test_reset_keeps_truncation_flag(self):
        buffer = DiagnosticBuffer(capacity=4)
        buffer.append("abcdef")
        buffer.reset()
        buffer.append("xy")
        assert buffer.data == "xy"
        assert buffer.truncated
