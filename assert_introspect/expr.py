"""Expression tree — the immutable input and output of the instrumentation pass.

Nodes are frozen dataclasses.  The pass never mutates a tree: the rewriter
builds a new tree in which every evaluated leaf sits inside a
``Materialized`` node pointing at a slot of the rewriter's arena.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from . import constants
from .ctype import CHAR_POINTER, INT, CType, pointer_to


@dataclass(frozen=True)
class Declaration:
    """A variable declaration; its id is the identity of every reference to it."""

    id: int
    name: str
    type: CType


class Expr:
    """Base class of all expression nodes."""


@dataclass(frozen=True)
class BinaryOp(Expr):
    op: str
    left: Expr
    right: Expr

    def __str__(self) -> str:
        return f"({self.left} {self.op} {self.right})"


@dataclass(frozen=True)
class Comparison(BinaryOp):
    pass


@dataclass(frozen=True)
class Arithmetic(BinaryOp):
    pass


@dataclass(frozen=True)
class LogicalAnd(Expr):
    left: Expr
    right: Expr
    short_circuit: bool = True

    def __str__(self) -> str:
        return f"({self.left} && {self.right})"


@dataclass(frozen=True)
class LogicalOr(Expr):
    left: Expr
    right: Expr
    short_circuit: bool = True

    def __str__(self) -> str:
        return f"({self.left} || {self.right})"


@dataclass(frozen=True)
class Variable(Expr):
    decl: Declaration

    @property
    def name(self) -> str:
        return self.decl.name

    @property
    def type(self) -> CType:
        return self.decl.type

    def __str__(self) -> str:
        return self.decl.name


@dataclass(frozen=True)
class Literal(Expr):
    value: Any
    type: CType = INT
    text: str = ""

    @property
    def is_null_pointer(self) -> bool:
        return self.type.is_pointer and not self.value

    def __str__(self) -> str:
        if self.is_null_pointer:
            return constants.NULL_TOKEN
        return self.text or str(self.value)


@dataclass(frozen=True)
class StringLiteral(Expr):
    value: str
    text: str = ""
    type: CType = CHAR_POINTER

    def __str__(self) -> str:
        return self.text or '"' + self.value + '"'


@dataclass(frozen=True)
class AddressOf(Expr):
    target: Variable

    @property
    def type(self) -> CType:
        return pointer_to(self.target.type)

    def __str__(self) -> str:
        return f"&{self.target.name}"


@dataclass(frozen=True)
class Call(Expr):
    callee: str
    args: tuple[Expr, ...] = ()
    return_type: CType = INT

    @property
    def type(self) -> CType:
        return self.return_type

    def __str__(self) -> str:
        return f"{self.callee}({', '.join(str(a) for a in self.args)})"


@dataclass(frozen=True)
class Opaque(Expr):
    """A construct the pass does not introspect (unary, bitwise, member access...).

    ``operator`` and ``operands`` keep enough structure for an evaluator to
    run it; the pass itself only renders the placeholder.
    """

    kind: str
    text: str = ""
    type: CType = INT
    operator: str = ""
    operands: tuple[Expr, ...] = ()

    def __str__(self) -> str:
        return constants.PLACEHOLDER


@dataclass(frozen=True)
class Materialized(Expr):
    """A leaf evaluated once; every later reference reuses slot ``slot``."""

    slot: int
    inner: Expr

    @property
    def type(self) -> CType:
        return leaf_type(self.inner)

    def __str__(self) -> str:
        return f"${self.slot}"


LEAF_TYPES = (Variable, Literal, StringLiteral, AddressOf, Call, Opaque)


def leaf_type(node: Expr) -> CType:
    """Static type of a leaf node; binary nodes are ``int`` (C comparison result)."""
    if isinstance(node, Materialized):
        return leaf_type(node.inner)
    if isinstance(node, LEAF_TYPES):
        return node.type
    return INT


def unwrap(node: Expr) -> Expr:
    """Strip a ``Materialized`` wrapper, if any."""
    while isinstance(node, Materialized):
        node = node.inner
    return node


@dataclass(frozen=True)
class SourceInfo:
    file: str = "<source>"
    line: int = 0
    function: str = ""


@dataclass(frozen=True)
class Assertion:
    """An ``assert(condition)`` site as handed over by the front-end."""

    condition: Expr
    source_text: str
    info: SourceInfo = field(default_factory=SourceInfo)

    def __str__(self) -> str:
        return f"assert({self.source_text})"
