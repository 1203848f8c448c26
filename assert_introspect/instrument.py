"""Instrumentation entry point — Assertion in, replacement tree out.

``instrument_assertion`` runs the whole pass for one assertion:

1. check the three runtime routines are declared (fail-open otherwise),
2. rewrite the condition so every leaf is evaluated once,
3. lower the rewritten condition into a Buffer Program that prints the
   header lines, the evaluated repr and the subexpression section, then
   calls the abort routine.

The program is only reached when the rewritten condition is false; when it
holds, the replacement does nothing, exactly like the original check.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from . import constants
from .ast_text import render_ast
from .config import InstrumentConfig
from .errors import RoutineUnavailableError
from .expr import Assertion, Expr
from .ir import DiagInstruction, Opcode, SourceLocation
from .lowering import ProgramBuilder, ShortCircuitLowerer
from .registry import ColorRegistry
from .reprs import SubexpressionBuilder
from .rewriter import SingleEvaluationRewriter, SlotArena

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoutineHandle:
    """A runtime routine the replacement tree calls, by its declared name."""

    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class RoutineTable:
    """The output, bounded-format and abort routines; ``None`` when undeclared."""

    output: RoutineHandle | None = None
    bounded_format: RoutineHandle | None = None
    abort: RoutineHandle | None = None

    @classmethod
    def from_declarations(cls, names) -> RoutineTable:
        """Resolve the three handles from the set of declared function names."""
        declared = set(names)

        def handle(name: str) -> RoutineHandle | None:
            return RoutineHandle(name) if name in declared else None

        return cls(
            output=handle(constants.OUTPUT_ROUTINE),
            bounded_format=handle(constants.BOUNDED_FORMAT_ROUTINE),
            abort=handle(constants.ABORT_ROUTINE),
        )

    def require(self):
        """Raise ``RoutineUnavailableError`` for the first missing routine."""
        roles = (
            ("output", self.output, constants.OUTPUT_ROUTINE),
            ("bounded format", self.bounded_format, constants.BOUNDED_FORMAT_ROUTINE),
            ("abort", self.abort, constants.ABORT_ROUTINE),
        )
        for role, handle, name in roles:
            if handle is None:
                raise RoutineUnavailableError(role, name)


@dataclass(frozen=True)
class InstrumentedAssertion:
    """Replacement tree: ``if (!condition) { program }``."""

    original: Assertion
    condition: Expr
    arena: SlotArena
    program: tuple[DiagInstruction, ...]
    buffer_capacity: int
    routines: RoutineTable

    def __str__(self) -> str:
        lines = [f"if (!({self.condition})) {{  // {self.original}"]
        lines.extend(f"  {slot.id} = {slot.expr}" for slot in self.arena)
        lines.extend(f"  {inst}" for inst in self.program)
        lines.append("}")
        return "\n".join(lines)


def instrument_assertion(
    assertion: Assertion,
    routines: RoutineTable,
    config: InstrumentConfig = InstrumentConfig(),
) -> Assertion | InstrumentedAssertion:
    """Build the replacement tree for *assertion*.

    Returns *assertion* itself when a required routine is not declared.
    """
    try:
        routines.require()
    except RoutineUnavailableError as exc:
        logger.warning(
            "%s:%d: not instrumenting assert(%s): %s",
            assertion.info.file,
            assertion.info.line,
            assertion.source_text,
            exc,
        )
        return assertion

    rewriter = SingleEvaluationRewriter(config.max_depth)
    condition = rewriter.materialize(assertion.condition)
    program = _build_program(assertion, condition, rewriter.arena, config)
    logger.info(
        "%s:%d: instrumented assert(%s): %d slots, %d instructions",
        assertion.info.file,
        assertion.info.line,
        assertion.source_text,
        len(rewriter.arena),
        len(program),
    )
    return InstrumentedAssertion(
        original=assertion,
        condition=condition,
        arena=rewriter.arena,
        program=tuple(program),
        buffer_capacity=config.buffer_capacity,
        routines=routines,
    )


def _build_program(
    assertion: Assertion,
    condition: Expr,
    arena: SlotArena,
    config: InstrumentConfig,
) -> list[DiagInstruction]:
    info = assertion.info
    builder = ProgramBuilder(
        SourceLocation(file=info.file, line=info.line, function=info.function)
    )
    colors = ColorRegistry(enabled=config.color)
    lowerer = ShortCircuitLowerer(arena, colors, builder, config.max_depth)

    builder.emit(
        Opcode.PRINT,
        operands=[constants.HEADER_TEMPLATE, info.file, info.line, info.function],
    )
    builder.emit(
        Opcode.PRINT, operands=[constants.SOURCE_LINE_TEMPLATE, assertion.source_text]
    )
    builder.emit(
        Opcode.PRINT, operands=[constants.AST_LINE_TEMPLATE, render_ast(condition)]
    )

    builder.emit(Opcode.RESET)
    builder.text(constants.REPR_PREFIX)
    lowerer.lower(condition)
    builder.text(constants.REPR_SUFFIX)
    builder.emit(Opcode.FLUSH)

    SubexpressionBuilder(lowerer, colors, builder).build(condition)

    builder.emit(Opcode.ABORT)
    return builder.instructions
