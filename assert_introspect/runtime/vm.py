"""Reference executor — evaluates expression trees with C semantics.

Materialized slots are cached per execution: the first evaluation of a
``Materialized`` node stores its value and every later reference reads the
cache.  Diagnostic programs only *replay* references; replaying a slot that
was never computed means the pass emitted a reference to a leaf that the
original evaluation skipped, which is reported as an ``InvariantViolation``.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from ..ctype import TypeKind
from ..errors import InvariantViolation
from ..expr import (
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
    Variable,
)
from .builtins import Builtins
from .cformat import wrap_integer
from .vm_types import Environment, Pointer, UnsupportedEvaluation

logger = logging.getLogger(__name__)


def c_truth(value: Any) -> bool:
    """C truthiness: ``NULL``/zero is false, any other scalar or pointer is true."""
    if value is None:
        return False
    if isinstance(value, (str, Pointer)):
        return True
    return value != 0


def _c_div(a: Any, b: Any) -> Any:
    if b == 0:
        raise UnsupportedEvaluation("division by zero")
    if isinstance(a, float) or isinstance(b, float):
        return a / b
    quotient = abs(a) // abs(b)
    return quotient if (a < 0) == (b < 0) else -quotient


def _c_mod(a: Any, b: Any) -> Any:
    if b == 0:
        raise UnsupportedEvaluation("modulo by zero")
    return a - _c_div(a, b) * b


class Operators:
    """Binary and unary operator evaluation with C results (comparisons yield 1/0)."""

    BINOP_TABLE: dict[str, Callable[[Any, Any], Any]] = {
        "+": lambda a, b: a + b,
        "-": lambda a, b: a - b,
        "*": lambda a, b: a * b,
        "/": _c_div,
        "%": _c_mod,
        "==": lambda a, b: int(a == b),
        "!=": lambda a, b: int(a != b),
        "<": lambda a, b: int(a < b),
        ">": lambda a, b: int(a > b),
        "<=": lambda a, b: int(a <= b),
        ">=": lambda a, b: int(a >= b),
        "&": lambda a, b: a & b,
        "|": lambda a, b: a | b,
        "^": lambda a, b: a ^ b,
        "<<": lambda a, b: a << b,
        ">>": lambda a, b: a >> b,
    }

    UNOP_TABLE: dict[str, Callable[[Any], Any]] = {
        "-": lambda a: -a,
        "+": lambda a: +a,
        "~": lambda a: ~a,
        "!": lambda a: int(not c_truth(a)),
    }

    @classmethod
    def eval_binop(cls, op: str, lhs: Any, rhs: Any) -> Any:
        fn = cls.BINOP_TABLE.get(op)
        if fn is None:
            raise UnsupportedEvaluation(f"no semantics for binary operator '{op}'")
        try:
            return fn(lhs, rhs)
        except TypeError as exc:
            raise UnsupportedEvaluation(f"{lhs!r} {op} {rhs!r}: {exc}") from exc

    @classmethod
    def eval_unop(cls, op: str, operand: Any) -> Any:
        fn = cls.UNOP_TABLE.get(op)
        if fn is None:
            raise UnsupportedEvaluation(f"no semantics for unary operator '{op}'")
        try:
            return fn(operand)
        except TypeError as exc:
            raise UnsupportedEvaluation(f"{op}{operand!r}: {exc}") from exc


class ExpressionEvaluator:
    """Evaluates one assertion's (rewritten) condition against an environment."""

    def __init__(self, env: Environment):
        self._env = env
        self._slots: dict[int, Any] = {}
        self._replaying = False
        self.call_count = 0

    def evaluate(self, node: Expr) -> Any:
        """Evaluate *node*, computing and caching materialized slots as they are reached."""
        return self._eval(node)

    def replay(self, node: Expr) -> Any:
        """Re-read *node* from already-computed slots; never calls a function or touches a variable."""
        self._replaying = True
        try:
            return self._eval(node)
        finally:
            self._replaying = False

    def is_computed(self, slot: int) -> bool:
        return slot in self._slots

    # ── dispatch ─────────────────────────────────────────────────

    def _eval(self, node: Expr) -> Any:
        if isinstance(node, Materialized):
            return self._eval_materialized(node)
        if isinstance(node, LogicalAnd):
            return self._eval_logical(node, stop_on=False)
        if isinstance(node, LogicalOr):
            return self._eval_logical(node, stop_on=True)
        if isinstance(node, BinaryOp):
            lhs = self._eval(node.left)
            rhs = self._eval(node.right)
            return Operators.eval_binop(node.op, lhs, rhs)
        if isinstance(node, Literal):
            return None if node.is_null_pointer else node.value
        if isinstance(node, StringLiteral):
            return node.value
        if isinstance(node, AddressOf):
            return self._env.address_of(node.target.name)
        if self._replaying:
            raise InvariantViolation(f"diagnostic reference to unmaterialized leaf {node}")
        if isinstance(node, Variable):
            return self._load(node.name)
        if isinstance(node, Call):
            return self._call(node)
        if isinstance(node, Opaque):
            return self._eval_opaque(node)
        raise UnsupportedEvaluation(f"no semantics for {type(node).__name__}")

    def _eval_materialized(self, node: Materialized) -> Any:
        if node.slot in self._slots:
            return self._slots[node.slot]
        if self._replaying:
            raise InvariantViolation(
                f"${node.slot} ({node.inner}) referenced but never evaluated"
            )
        value = self._eval(node.inner)
        self._slots[node.slot] = value
        logger.debug("$%d = %r", node.slot, value)
        return value

    def _eval_logical(self, node: LogicalAnd | LogicalOr, stop_on: bool) -> int:
        left = c_truth(self._eval(node.left))
        if left == stop_on and node.short_circuit:
            return int(stop_on)
        right = c_truth(self._eval(node.right))
        return int(left or right) if stop_on else int(left and right)

    # ── leaves ───────────────────────────────────────────────────

    def _load(self, name: str) -> Any:
        if name not in self._env.variables:
            raise UnsupportedEvaluation(f"variable '{name}' has no value")
        return self._env.variables[name]

    def _store(self, target: Expr, value: Any) -> Any:
        if not isinstance(target, Variable):
            raise UnsupportedEvaluation(f"cannot assign to {target}")
        self._env.variables[target.name] = value
        return value

    def _call(self, node: Call) -> Any:
        args = [self._eval(arg) for arg in node.args]
        self.call_count += 1
        if node.callee in self._env.functions:
            return self._env.functions[node.callee](*args)
        builtin = Builtins.TABLE.get(node.callee)
        if builtin is None:
            raise UnsupportedEvaluation(f"function '{node.callee}' has no implementation")
        return builtin(args, self._env)

    # ── constructs the pass does not introspect ──────────────────

    def _eval_opaque(self, node: Opaque) -> Any:
        op, operands = node.operator, node.operands
        if op == "group":
            return self._eval(operands[0])
        if op == "cast":
            return self._cast(node, self._eval(operands[0]))
        if op in ("pre++", "pre--", "post++", "post--"):
            return self._update(op, operands[0])
        if op == "=":
            return self._store(operands[0], self._eval(operands[1]))
        if op == ",":
            value = None
            for operand in operands:
                value = self._eval(operand)
            return value
        if op == "?:":
            cond = c_truth(self._eval(operands[0]))
            return self._eval(operands[1] if cond else operands[2])
        if op == "*":
            return self._deref(self._eval(operands[0]))
        if op == "[]":
            return self._subscript(self._eval(operands[0]), self._eval(operands[1]))
        if op.startswith((".", "->")):
            return self._field(self._eval(operands[0]), op.lstrip(".->"))
        if len(operands) == 1:
            return Operators.eval_unop(op, self._eval(operands[0]))
        if len(operands) == 2:
            return Operators.eval_binop(op, self._eval(operands[0]), self._eval(operands[1]))
        raise UnsupportedEvaluation(f"no semantics for {node.kind} '{node.text}'")

    def _cast(self, node: Opaque, value: Any) -> Any:
        ctype = node.type
        if ctype.kind == TypeKind.FLOAT:
            return float(value)
        if ctype.kind == TypeKind.BOOL:
            return int(c_truth(value))
        if ctype.is_integral and isinstance(value, (int, float)):
            return wrap_integer(int(value), ctype.size * 8, ctype.signed)
        return value

    def _update(self, op: str, target: Expr) -> Any:
        if not isinstance(target, Variable):
            raise UnsupportedEvaluation(f"cannot update {target}")
        old = self._load(target.name)
        new = old + 1 if op.endswith("++") else old - 1
        self._store(target, new)
        return new if op.startswith("pre") else old

    def _deref(self, value: Any) -> Any:
        if isinstance(value, Pointer):
            return self._load(value.target)
        if isinstance(value, str):
            return ord(value[0]) if value else 0
        raise UnsupportedEvaluation(f"cannot dereference {value!r}")

    def _subscript(self, base: Any, index: Any) -> Any:
        if isinstance(base, str):
            return ord(base[index]) if index < len(base) else 0
        if isinstance(base, (list, tuple)):
            return base[index]
        raise UnsupportedEvaluation(f"cannot subscript {base!r}")

    def _field(self, base: Any, name: str) -> Any:
        if isinstance(base, Pointer):
            base = self._load(base.target)
        if isinstance(base, dict) and name in base:
            return base[name]
        raise UnsupportedEvaluation(f"no field '{name}' in {base!r}")
