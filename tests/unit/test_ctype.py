"""Tests for C type resolution."""

from assert_introspect.ctype import (
    CHAR,
    INT,
    TypeKind,
    TypeTable,
    normalize_type_name,
    pointer_to,
)


class TestNormalizeTypeName:
    def test_qualifiers_dropped(self):
        assert normalize_type_name("const  unsigned   int") == "unsigned int"
        assert normalize_type_name("volatile char") == "char"


class TestTypeTable:
    def test_builtin(self):
        assert TypeTable().resolve("int") == INT

    def test_synonyms(self):
        table = TypeTable()
        assert table.resolve("unsigned").name == "unsigned int"
        assert table.resolve("long int").name == "long"
        assert table.resolve("long unsigned int").name == "unsigned long"

    def test_standard_typedefs(self):
        size_t = TypeTable().resolve("size_t")
        assert size_t.kind == TypeKind.INTEGER
        assert size_t.size == 8
        assert not size_t.signed

    def test_pointer_depth(self):
        ctype = TypeTable().resolve("char", 2)
        assert ctype.is_pointer
        assert not ctype.is_string
        assert ctype.pointee.is_string

    def test_string_pointer(self):
        assert pointer_to(CHAR).is_string
        assert not pointer_to(INT).is_string

    def test_user_typedef(self):
        table = TypeTable()
        table.add_typedef("my_int", table.resolve("unsigned short"))
        resolved = table.resolve("my_int")
        assert resolved.size == 2
        assert not resolved.signed

    def test_enum_is_int_sized(self):
        ctype = TypeTable().resolve("enum color")
        assert ctype.kind == TypeKind.INTEGER
        assert ctype.size == 4

    def test_struct_and_unknown_names(self):
        table = TypeTable()
        assert table.resolve("struct point").kind == TypeKind.UNKNOWN
        assert table.resolve("mystery_t").kind == TypeKind.UNKNOWN
