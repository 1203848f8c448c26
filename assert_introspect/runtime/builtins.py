"""C standard library functions the reference executor can call without a user implementation."""

from __future__ import annotations

import re
from typing import Any

from .vm_types import Environment, UnsupportedEvaluation

_STRTOL_PREFIX = re.compile(r"\s*([+-]?)(0[xX])?")


def _require_string(name: str, value: Any) -> str:
    if not isinstance(value, str):
        raise UnsupportedEvaluation(f"{name}: expected a C string, got {value!r}")
    return value


def _strtol_value(text: str, base: int) -> int:
    match = _STRTOL_PREFIX.match(text)
    sign, hex_prefix = match.group(1), match.group(2)
    rest = text[match.end():]
    if base == 0:
        if hex_prefix:
            base = 16
        elif rest.startswith("0"):
            base = 8
        else:
            base = 10
    elif hex_prefix and base != 16:
        rest = text[match.start(2) + 1:]

    digits = ""
    for ch in rest:
        if not (ch.isascii() and ch.isalnum()) or int(ch, 36) >= base:
            break
        digits += ch
    value = int(digits, base) if digits else 0
    return -value if sign == "-" else value


def _builtin_strtol(args: list[Any], env: Environment) -> Any:
    text = _require_string("strtol", args[0])
    base = int(args[2]) if len(args) > 2 else 10
    return _strtol_value(text, base)


def _builtin_atoi(args: list[Any], env: Environment) -> Any:
    return _strtol_value(_require_string("atoi", args[0]), 10)


def _builtin_strstr(args: list[Any], env: Environment) -> Any:
    haystack = _require_string("strstr", args[0])
    needle = _require_string("strstr", args[1])
    index = haystack.find(needle)
    return None if index < 0 else haystack[index:]


def _builtin_strchr(args: list[Any], env: Environment) -> Any:
    haystack = _require_string("strchr", args[0])
    ch = chr(int(args[1]) & 0xFF) if not isinstance(args[1], str) else args[1]
    index = haystack.find(ch)
    return None if index < 0 else haystack[index:]


def _builtin_strlen(args: list[Any], env: Environment) -> Any:
    return len(_require_string("strlen", args[0]))


def _compare(a: str, b: str) -> int:
    return (a > b) - (a < b)


def _builtin_strcmp(args: list[Any], env: Environment) -> Any:
    return _compare(_require_string("strcmp", args[0]), _require_string("strcmp", args[1]))


def _builtin_strncmp(args: list[Any], env: Environment) -> Any:
    n = int(args[2])
    return _compare(
        _require_string("strncmp", args[0])[:n], _require_string("strncmp", args[1])[:n]
    )


def _builtin_abs(args: list[Any], env: Environment) -> Any:
    return abs(int(args[0]))


class Builtins:
    """Table of built-in function implementations."""

    TABLE: dict[str, Any] = {
        "strtol": _builtin_strtol,
        "strtoul": _builtin_strtol,
        "strtoll": _builtin_strtol,
        "atoi": _builtin_atoi,
        "atol": _builtin_atoi,
        "strstr": _builtin_strstr,
        "strchr": _builtin_strchr,
        "strlen": _builtin_strlen,
        "strcmp": _builtin_strcmp,
        "strncmp": _builtin_strncmp,
        "abs": _builtin_abs,
        "labs": _builtin_abs,
    }
