"""Pure functions for computing statistics over Buffer Program instruction lists."""

from __future__ import annotations

from collections import Counter
from typing import Iterable

from assert_introspect.ir import DiagInstruction, Opcode


def count_opcodes(instructions: Iterable[DiagInstruction]) -> dict[str, int]:
    """Return a frequency map of opcode names in the given instruction list.

    Args:
        instructions: Buffer Program instructions.

    Returns:
        A dict mapping opcode name strings to their occurrence counts.
        Empty dict for an empty input.
    """
    return dict(Counter(inst.opcode.value for inst in instructions))


def count_branch_points(instructions: Iterable[DiagInstruction]) -> int:
    """Number of conditional branches, i.e. short-circuit decisions replayed at runtime."""
    return sum(1 for inst in instructions if inst.opcode == Opcode.BRANCH_IF)
