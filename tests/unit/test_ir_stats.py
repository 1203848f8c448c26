"""Tests for Buffer Program statistics: count_opcodes / count_branch_points (pure) and ir_stats."""

from assert_introspect.api import ir_stats
from assert_introspect.expr import Literal
from assert_introspect.ir import DiagInstruction, Opcode
from assert_introspect.ir_stats import count_branch_points, count_opcodes

SOURCE = """\
#include <assert.h>
#include <stdio.h>
#include <stdlib.h>
void f(int n, int m) {
    assert(n == 1 && m == 2);
}
"""


class TestCountOpcodes:
    def test_empty_list_returns_empty_dict(self):
        assert count_opcodes([]) == {}

    def test_repeated_opcodes_are_summed(self):
        instructions = [
            DiagInstruction(opcode=Opcode.RESET),
            DiagInstruction(opcode=Opcode.APPEND, operands=["x"]),
            DiagInstruction(opcode=Opcode.FLUSH),
            DiagInstruction(opcode=Opcode.RESET),
        ]
        assert count_opcodes(instructions) == {"RESET": 2, "APPEND": 1, "FLUSH": 1}


class TestCountBranchPoints:
    def test_only_conditional_branches_count(self):
        instructions = [
            DiagInstruction(opcode=Opcode.BRANCH_IF, operands=[Literal(1)], label="a,b"),
            DiagInstruction(opcode=Opcode.BRANCH, label="c"),
            DiagInstruction(opcode=Opcode.LABEL, label="a"),
        ]
        assert count_branch_points(instructions) == 1


class TestIrStatsApi:
    def test_counts_program_of_source(self):
        stats = ir_stats(SOURCE, "t.c")
        assert stats["ABORT"] == 1
        assert stats["PRINT"] == 4
        assert stats["BRANCH_IF"] >= 2

    def test_restricted_to_function(self):
        assert ir_stats(SOURCE, "t.c", function_name="f") == ir_stats(SOURCE, "t.c")
