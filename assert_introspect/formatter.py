"""Value formatter — printf specifiers from static types, direct rendering of constants."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from . import constants
from .ctype import CType, TypeKind
from .expr import AddressOf, Expr, Literal, StringLiteral

logger = logging.getLogger(__name__)

_LENGTH_BY_SIZE: dict[int, str] = {1: "hh", 2: "h", 4: "", 8: "l"}


@dataclass(frozen=True)
class FormatSpec:
    conversion: str
    quoted: bool = False

    @property
    def text(self) -> str:
        """The specifier as it appears in a format string."""
        if self.quoted:
            return f'"{self.conversion}"'
        return self.conversion


INT_SPEC = FormatSpec("%d")
POINTER_SPEC = FormatSpec("%p")
STRING_SPEC = FormatSpec("%s", quoted=True)
FLOAT_SPEC = FormatSpec("%g")


def format_spec_for(ctype: CType) -> FormatSpec:
    """Pick the printf specifier used to render a value of *ctype*."""
    if ctype.kind == TypeKind.BOOL:
        return INT_SPEC
    if ctype.kind == TypeKind.POINTER:
        return STRING_SPEC if ctype.is_string else POINTER_SPEC
    if ctype.kind == TypeKind.FLOAT:
        return FLOAT_SPEC
    if ctype.kind in (TypeKind.CHAR, TypeKind.INTEGER):
        return _integer_spec(ctype)
    logger.warning("No format specifier for type '%s'; rendering as int", ctype)
    return INT_SPEC


def _integer_spec(ctype: CType) -> FormatSpec:
    if "long long" in ctype.name:
        length = "ll"
    elif ctype.size in _LENGTH_BY_SIZE:
        length = _LENGTH_BY_SIZE[ctype.size]
    else:
        logger.warning(
            "Unknown width %d for integral type '%s'; rendering as int",
            ctype.size,
            ctype,
        )
        length = ""
    return FormatSpec(f"%{length}{'d' if ctype.signed else 'u'}")


def escape_format_text(text: str) -> str:
    """Escape literal text so a printf-family routine prints it verbatim."""
    return text.replace("%", "%%")


def is_constant_leaf(node: Expr) -> bool:
    """Leaves whose repr is known at build time and needs no runtime formatting."""
    return isinstance(node, (Literal, StringLiteral, AddressOf))


def render_constant(node: Expr) -> str:
    """Source-level text of a constant leaf (unescaped)."""
    if isinstance(node, Literal):
        if node.is_null_pointer:
            return constants.NULL_TOKEN
        return node.text or str(node.value)
    if isinstance(node, StringLiteral):
        return node.text or '"' + node.value + '"'
    if isinstance(node, AddressOf):
        return f"&{node.target.name}"
    raise TypeError(f"not a constant leaf: {type(node).__name__}")
