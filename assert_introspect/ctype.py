"""Static C types — just enough of the C type system to pick a printf specifier."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)


class TypeKind(str, Enum):
    VOID = "void"
    BOOL = "bool"
    CHAR = "char"
    INTEGER = "integer"
    FLOAT = "float"
    POINTER = "pointer"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class CType:
    name: str
    kind: TypeKind
    size: int = 0
    signed: bool = True
    pointee: CType | None = None

    @property
    def is_pointer(self) -> bool:
        return self.kind == TypeKind.POINTER

    @property
    def is_string(self) -> bool:
        """A pointer to (possibly qualified) char is rendered as a C string."""
        return (
            self.kind == TypeKind.POINTER
            and self.pointee is not None
            and self.pointee.kind == TypeKind.CHAR
        )

    @property
    def is_integral(self) -> bool:
        return self.kind in (TypeKind.BOOL, TypeKind.CHAR, TypeKind.INTEGER)

    def __str__(self) -> str:
        return self.name


def pointer_to(target: CType) -> CType:
    return CType(name=f"{target.name} *", kind=TypeKind.POINTER, size=8, pointee=target)


VOID = CType("void", TypeKind.VOID)
BOOL = CType("_Bool", TypeKind.BOOL, size=1, signed=False)
CHAR = CType("char", TypeKind.CHAR, size=1)
INT = CType("int", TypeKind.INTEGER, size=4)
UNSIGNED_INT = CType("unsigned int", TypeKind.INTEGER, size=4, signed=False)
LONG = CType("long", TypeKind.INTEGER, size=8)
UNSIGNED_LONG = CType("unsigned long", TypeKind.INTEGER, size=8, signed=False)
DOUBLE = CType("double", TypeKind.FLOAT, size=8)
VOID_POINTER = pointer_to(VOID)
CHAR_POINTER = pointer_to(CHAR)
UNKNOWN = CType("<unknown>", TypeKind.UNKNOWN)

_BUILTIN_TYPES: dict[str, CType] = {
    "void": VOID,
    "_Bool": BOOL,
    "bool": CType("bool", TypeKind.BOOL, size=1, signed=False),
    "char": CHAR,
    "signed char": CType("signed char", TypeKind.CHAR, size=1),
    "unsigned char": CType("unsigned char", TypeKind.CHAR, size=1, signed=False),
    "short": CType("short", TypeKind.INTEGER, size=2),
    "unsigned short": CType("unsigned short", TypeKind.INTEGER, size=2, signed=False),
    "int": INT,
    "unsigned int": UNSIGNED_INT,
    "long": LONG,
    "unsigned long": UNSIGNED_LONG,
    "long long": CType("long long", TypeKind.INTEGER, size=8),
    "unsigned long long": CType(
        "unsigned long long", TypeKind.INTEGER, size=8, signed=False
    ),
    "float": CType("float", TypeKind.FLOAT, size=4),
    "double": DOUBLE,
    "long double": CType("long double", TypeKind.FLOAT, size=16),
}

# Spellings that name the same type as a canonical entry above.
_SYNONYMS: dict[str, str] = {
    "signed": "int",
    "signed int": "int",
    "unsigned": "unsigned int",
    "short int": "short",
    "signed short": "short",
    "signed short int": "short",
    "short signed int": "short",
    "unsigned short int": "unsigned short",
    "short unsigned int": "unsigned short",
    "long int": "long",
    "signed long": "long",
    "signed long int": "long",
    "long signed int": "long",
    "unsigned long int": "unsigned long",
    "long unsigned int": "unsigned long",
    "long long int": "long long",
    "signed long long": "long long",
    "signed long long int": "long long",
    "unsigned long long int": "unsigned long long",
    "long long unsigned int": "unsigned long long",
    "char signed": "signed char",
    "char unsigned": "unsigned char",
}

# <stddef.h>, <stdint.h>, <sys/types.h> aliases on an LP64 target.
_STANDARD_TYPEDEFS: dict[str, str] = {
    "size_t": "unsigned long",
    "ssize_t": "long",
    "ptrdiff_t": "long",
    "intptr_t": "long",
    "uintptr_t": "unsigned long",
    "intmax_t": "long",
    "uintmax_t": "unsigned long",
    "off_t": "long",
    "pid_t": "int",
    "uid_t": "unsigned int",
    "gid_t": "unsigned int",
    "int8_t": "signed char",
    "uint8_t": "unsigned char",
    "int16_t": "short",
    "uint16_t": "unsigned short",
    "int32_t": "int",
    "uint32_t": "unsigned int",
    "int64_t": "long",
    "uint64_t": "unsigned long",
}

_QUALIFIERS = frozenset({"const", "volatile", "restrict", "static", "extern", "register"})


def normalize_type_name(name: str) -> str:
    """Collapse whitespace and drop qualifiers: ``const  unsigned int`` -> ``unsigned int``."""
    words = [w for w in name.split() if w not in _QUALIFIERS]
    return " ".join(words)


class TypeTable:
    """Resolves C type spellings, including typedefs seen in the translation unit."""

    def __init__(self):
        self._typedefs: dict[str, CType] = {}

    def add_typedef(self, alias: str, target: CType):
        self._typedefs[alias] = target

    def resolve(self, name: str, pointer_depth: int = 0) -> CType:
        base = self._resolve_base(normalize_type_name(name))
        for _ in range(pointer_depth):
            base = pointer_to(base)
        return base

    def _resolve_base(self, name: str) -> CType:
        if name in self._typedefs:
            return self._typedefs[name]
        canonical = _SYNONYMS.get(name, name)
        if canonical in _BUILTIN_TYPES:
            return _BUILTIN_TYPES[canonical]
        if name in _STANDARD_TYPEDEFS:
            target = _BUILTIN_TYPES[_STANDARD_TYPEDEFS[name]]
            return CType(name, target.kind, size=target.size, signed=target.signed)
        if name.startswith(("struct ", "union ", "enum ")):
            if name.startswith("enum "):
                return CType(name, TypeKind.INTEGER, size=4)
            return CType(name, TypeKind.UNKNOWN)
        logger.debug("Unresolved type name '%s'", name)
        return CType(name, TypeKind.UNKNOWN)
