"""Reference executor — runs original and instrumented assertions.

``execute_assertion`` stands in for the compiled code: it evaluates the
condition and, when it is false, either prints the classic glibc message
(original assertion) or runs the diagnostic Buffer Program (instrumented
assertion) until the abort routine is called.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from .. import constants
from ..config import RunConfig
from ..errors import InvariantViolation
from ..expr import Assertion, Expr
from ..instrument import InstrumentedAssertion, RoutineHandle
from ..ir import DiagInstruction, Opcode
from .cformat import c_format
from .vm import ExpressionEvaluator, c_truth
from .vm_types import (
    AbortSignal,
    AssertionOutcome,
    DiagnosticBuffer,
    Environment,
    UnsupportedEvaluation,
)

logger = logging.getLogger(__name__)


class _ProgramState:
    """Output and buffer of one diagnostic program execution."""

    def __init__(self, evaluator: ExpressionEvaluator, capacity: int):
        self.evaluator = evaluator
        self.buffer = DiagnosticBuffer(capacity=capacity)
        self.output: list[str] = []

    def resolve(self, operand: Any) -> Any:
        if isinstance(operand, Expr):
            return self.evaluator.replay(operand)
        return operand

    def format(self, operands: list[Any]) -> str:
        fmt, *args = operands
        return c_format(fmt, [self.resolve(a) for a in args])


def _routine_printf(state: _ProgramState, text: str):
    state.output.append(text)


def _routine_snprintf(state: _ProgramState, text: str):
    state.buffer.append(text)


def _routine_abort(state: _ProgramState, text: str):
    raise AbortSignal(state.output)


_ROUTINES: dict[str, Callable[[_ProgramState, str], None]] = {
    constants.OUTPUT_ROUTINE: _routine_printf,
    constants.BOUNDED_FORMAT_ROUTINE: _routine_snprintf,
    constants.ABORT_ROUTINE: _routine_abort,
}


def _call_routine(handle: RoutineHandle | None, state: _ProgramState, text: str = ""):
    if handle is None or handle.name not in _ROUTINES:
        raise UnsupportedEvaluation(f"no runtime routine '{handle}'")
    _ROUTINES[handle.name](state, text)


def _label_map(program: tuple[DiagInstruction, ...]) -> dict[str, int]:
    return {
        inst.label: idx
        for idx, inst in enumerate(program)
        if inst.opcode == Opcode.LABEL and inst.label
    }


def run_program(
    instrumented: InstrumentedAssertion,
    evaluator: ExpressionEvaluator,
    config: RunConfig = RunConfig(),
) -> AssertionOutcome:
    """Execute the diagnostic program of *instrumented* after its condition failed.

    Args:
        instrumented: The replacement tree whose condition was found false.
        evaluator: The evaluator that computed the condition; its slot
            cache holds every value the program may reference.
        config: Execution configuration (max_steps, verbose).

    Returns:
        The printed output; ``passed`` is False once abort was reached.
    """
    program = instrumented.program
    routines = instrumented.routines
    labels = _label_map(program)
    state = _ProgramState(evaluator, instrumented.buffer_capacity)
    ip = 0
    step = 0

    for step in range(config.max_steps):
        if ip >= len(program):
            logger.warning("Diagnostic program ended without calling abort")
            break
        inst = program[ip]
        if config.verbose:
            logger.info("[step %d] %d  %s", step, ip, inst)
        ip += 1

        if inst.opcode == Opcode.LABEL:
            continue
        if inst.opcode == Opcode.PRINT:
            _call_routine(routines.output, state, state.format(inst.operands))
        elif inst.opcode == Opcode.RESET:
            state.buffer.reset()
        elif inst.opcode == Opcode.APPEND:
            _call_routine(routines.bounded_format, state, state.format(inst.operands))
        elif inst.opcode == Opcode.FLUSH:
            _call_routine(routines.output, state, c_format("%s\n", [state.buffer.data]))
        elif inst.opcode == Opcode.BRANCH_IF:
            true_label, false_label = inst.branch_targets
            taken = c_truth(state.resolve(inst.operands[0]))
            ip = labels[true_label if taken else false_label]
        elif inst.opcode == Opcode.BRANCH:
            ip = labels[inst.label]
        elif inst.opcode == Opcode.ABORT:
            try:
                _call_routine(routines.abort, state)
            except AbortSignal as signal:
                return AssertionOutcome(
                    passed=False,
                    output=signal.output,
                    steps=step + 1,
                    truncated=state.buffer.truncated,
                )
        else:
            raise InvariantViolation(f"unknown opcode {inst.opcode}")
    else:
        logger.warning("Diagnostic program exceeded %d steps", config.max_steps)

    return AssertionOutcome(
        passed=False,
        output=state.output,
        steps=step + 1,
        truncated=state.buffer.truncated,
    )


def execute_assertion(
    node: Assertion | InstrumentedAssertion,
    env: Environment,
    config: RunConfig = RunConfig(),
) -> AssertionOutcome:
    """Run one dynamic execution of an original or instrumented assertion."""
    evaluator = ExpressionEvaluator(env)

    if isinstance(node, InstrumentedAssertion):
        if c_truth(evaluator.evaluate(node.condition)):
            return AssertionOutcome(passed=True)
        return run_program(node, evaluator, config)

    if c_truth(evaluator.evaluate(node.condition)):
        return AssertionOutcome(passed=True)
    info = node.info
    message = c_format(
        constants.ASSERT_FAIL_TEMPLATE,
        [info.file, info.line, info.function, node.source_text],
    )
    return AssertionOutcome(passed=False, output=[message], steps=1)
