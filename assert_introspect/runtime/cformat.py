"""printf-family formatting with C conversion semantics (just the directives the pass emits, and a few more)."""

from __future__ import annotations

import logging
import re
from typing import Any, Sequence

from .vm_types import Pointer

logger = logging.getLogger(__name__)

_DIRECTIVE = re.compile(
    r"%(?P<flags>[-+ #0]*)(?P<width>\d+)?(?:\.(?P<precision>\d+))?"
    r"(?P<length>hh|h|ll|l|z|j|t|L)?(?P<conversion>[diuoxXcspfeEgG%])"
)

# Argument width in bits for each length modifier (LP64).
_LENGTH_BITS: dict[str, int] = {
    "hh": 8,
    "h": 16,
    "": 32,
    "l": 64,
    "ll": 64,
    "z": 64,
    "j": 64,
    "t": 64,
}

NIL_POINTER_TEXT = "(nil)"
NULL_STRING_TEXT = "(null)"


def wrap_integer(value: int, bits: int, signed: bool) -> int:
    """Reduce *value* to a *bits*-wide two's complement integer."""
    mask = (1 << bits) - 1
    value &= mask
    if signed and value >> (bits - 1):
        value -= 1 << bits
    return value


def c_format(fmt: str, args: Sequence[Any]) -> str:
    """Render *fmt* the way C's ``printf`` would render it with *args*."""
    remaining = list(args)

    def next_arg() -> Any:
        if not remaining:
            raise ValueError(f"not enough arguments for format {fmt!r}")
        return remaining.pop(0)

    def replace(match: re.Match) -> str:
        conversion = match.group("conversion")
        if conversion == "%":
            return "%"
        text = _convert(match, next_arg())
        return _pad(text, match.group("flags") or "", match.group("width"))

    rendered = _DIRECTIVE.sub(replace, fmt)
    if remaining:
        logger.debug("%d unused arguments for format %r", len(remaining), fmt)
    return rendered


def _convert(match: re.Match, value: Any) -> str:
    conversion = match.group("conversion")
    length = match.group("length") or ""
    flags = match.group("flags") or ""
    precision = match.group("precision")
    bits = _LENGTH_BITS.get(length, 64)

    if conversion in "di":
        number = wrap_integer(_as_int(value), bits, signed=True)
        sign = "+" if "+" in flags and number >= 0 else ""
        return f"{sign}{number}"
    if conversion in "uoxX":
        number = wrap_integer(_as_int(value), bits, signed=False)
        base = {"u": "d", "o": "o", "x": "x", "X": "X"}[conversion]
        return format(number, base)
    if conversion == "c":
        return chr(_as_int(value) & 0xFF)
    if conversion == "s":
        if value is None:
            return NULL_STRING_TEXT
        text = str(value)
        return text[: int(precision)] if precision is not None else text
    if conversion == "p":
        return _pointer_text(value)
    # floating point
    number = float(value)
    digits = 6 if precision is None else int(precision)
    return format(number, f".{digits}{conversion}")


def _as_int(value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, Pointer):
        return value.address
    if isinstance(value, str):
        return ord(value[0]) if len(value) == 1 else id(value)
    return int(value)


def _pointer_text(value: Any) -> str:
    if value is None or value == 0:
        return NIL_POINTER_TEXT
    return hex(_as_int(value))


def _pad(text: str, flags: str, width: str | None) -> str:
    if width is None:
        return text
    size = int(width)
    if "-" in flags:
        return text.ljust(size)
    if "0" in flags and text.lstrip("+-").isdigit():
        sign = text[0] if text[0] in "+-" else ""
        return sign + text[len(sign):].rjust(size - len(sign), "0")
    return text.rjust(size)
