"""Tests for c_format — printf conversion semantics used by the reference executor."""

import pytest

from assert_introspect.runtime.cformat import c_format, wrap_integer
from assert_introspect.runtime.vm_types import Pointer


class TestWrapInteger:
    def test_signed_overflow_wraps_negative(self):
        assert wrap_integer(2**31, 32, signed=True) == -(2**31)

    def test_unsigned_minus_one(self):
        assert wrap_integer(-1, 8, signed=False) == 255

    def test_in_range_value_unchanged(self):
        assert wrap_integer(42, 32, signed=True) == 42


class TestIntegerConversions:
    def test_plain_decimal(self):
        assert c_format("%d == %d", [3, 5]) == "3 == 5"

    def test_int_argument_is_32_bit(self):
        assert c_format("%d", [2**32 + 1]) == "1"

    def test_long_argument_keeps_64_bits(self):
        assert c_format("%ld", [2**40]) == "1099511627776"

    def test_char_length_modifier(self):
        assert c_format("%hhd", [255]) == "-1"

    def test_unsigned(self):
        assert c_format("%u", [-1]) == "4294967295"

    def test_hex_and_octal(self):
        assert c_format("%x %X %o", [255, 255, 8]) == "ff FF 10"

    def test_plus_flag(self):
        assert c_format("%+d", [7]) == "+7"

    def test_character(self):
        assert c_format("%c", [65]) == "A"


class TestWidth:
    def test_right_aligned(self):
        assert c_format("%5d", [42]) == "   42"

    def test_left_aligned(self):
        assert c_format("%-5d|", [42]) == "42   |"

    def test_zero_padded_negative(self):
        assert c_format("%05d", [-42]) == "-0042"


class TestStringsAndPointers:
    def test_string(self):
        assert c_format('"%s"', ["world"]) == '"world"'

    def test_string_precision(self):
        assert c_format("%.3s", ["abcdef"]) == "abc"

    def test_null_string(self):
        assert c_format("%s", [None]) == "(null)"

    def test_null_pointer(self):
        assert c_format("%p", [None]) == "(nil)"

    def test_pointer_address(self):
        assert c_format("%p", [Pointer("x", 0x1000)]) == "0x1000"


class TestMisc:
    def test_percent_literal(self):
        assert c_format("100%%", []) == "100%"

    def test_float_default_precision(self):
        assert c_format("%f", [1.5]) == "1.500000"

    def test_float_precision(self):
        assert c_format("%.2f", [2.0]) == "2.00"

    def test_missing_argument_raises(self):
        with pytest.raises(ValueError):
            c_format("%d %d", [1])

    def test_text_without_directives_passes_through(self):
        assert c_format("  assert(", []) == "  assert("
