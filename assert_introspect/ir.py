"""Buffer Program IR — the flat diagnostic program emitted by lowering.

Text and value appends go into one fixed-capacity buffer; branch points
mirror the short-circuit structure of the instrumented condition.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel


class Opcode(str, Enum):
    # Output
    PRINT = "PRINT"  # output routine: operands=[fmt, *args]
    RESET = "RESET"  # empty the buffer
    APPEND = "APPEND"  # bounded format routine into the buffer: operands=[fmt, *args]
    FLUSH = "FLUSH"  # output routine: the buffer followed by a newline
    # Control flow
    BRANCH_IF = "BRANCH_IF"  # operands=[condition], label="true_label,false_label"
    BRANCH = "BRANCH"
    ABORT = "ABORT"
    # Labels (pseudo-instruction)
    LABEL = "LABEL"


class SourceLocation(BaseModel):
    """File/line/function of the assertion a program was generated for."""

    file: str = "<source>"
    line: int = 0
    function: str = ""

    def is_unknown(self) -> bool:
        return self.line == 0

    def __str__(self) -> str:
        if self.is_unknown():
            return "<unknown>"
        return f"{self.file}:{self.line}"


NO_SOURCE_LOCATION = SourceLocation()


class DiagInstruction(BaseModel):
    opcode: Opcode
    operands: list[Any] = []
    label: str | None = None  # for LABEL / branch targets
    source_location: SourceLocation = NO_SOURCE_LOCATION

    @property
    def branch_targets(self) -> list[str]:
        if self.opcode in (Opcode.BRANCH, Opcode.BRANCH_IF) and self.label:
            return self.label.split(",")
        return []

    def __str__(self) -> str:
        if self.label and self.opcode == Opcode.LABEL:
            return f"{self.label}:"
        parts: list[str] = [self.opcode.value.lower()]
        for op in self.operands:
            parts.append(repr(op) if isinstance(op, str) else str(op))
        if self.label:
            parts.append(self.label)
        return " ".join(parts)
