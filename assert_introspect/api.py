"""Composable API functions for the assertion introspection pipeline.

Each function corresponds to a CLI workflow (dump, --stats) or to the
test harness, but is callable programmatically without argparse.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from . import constants
from .config import InstrumentConfig, RunConfig
from .expr import Assertion
from .frontend import TranslationUnit, get_frontend, parse_source
from .instrument import InstrumentedAssertion, instrument_assertion
from .ir_stats import count_opcodes
from .runtime import AssertionOutcome, Environment, execute_assertion

logger = logging.getLogger(__name__)


def extract_assertions(
    source: str,
    filename: str = constants.DEFAULT_FILENAME,
    assert_names: tuple[str, ...] = constants.DEFAULT_ASSERT_NAMES,
) -> TranslationUnit:
    """Parse C source and collect its assertions and runtime routines.

    Args:
        source: The C source text.
        filename: File name reported in diagnostics.
        assert_names: Macro names treated as assertions.

    Returns:
        A TranslationUnit with assertions in source order.
    """
    logger.info("Extracting assertions from %s", filename)
    tree = parse_source(source, constants.DEFAULT_LANGUAGE)
    frontend = get_frontend(constants.DEFAULT_LANGUAGE, assert_names)
    return frontend.extract(tree, source.encode("utf-8"), filename)


def instrument_source(
    source: str,
    filename: str = constants.DEFAULT_FILENAME,
    config: InstrumentConfig = InstrumentConfig(),
    function_name: str = "",
) -> list[Assertion | InstrumentedAssertion]:
    """Instrument every assertion in *source*.

    Args:
        source: The C source text.
        filename: File name reported in diagnostics.
        config: Instrumentation configuration.
        function_name: If non-empty, only this function's assertions.

    Returns:
        One entry per assertion: the replacement tree, or the original
        assertion where instrumentation was not possible.

    Raises:
        ValueError: If *function_name* is not defined in *source*.
    """
    unit = extract_assertions(source, filename, config.assert_names)
    assertions = _select(unit, function_name)
    return [instrument_assertion(a, unit.routines, config) for a in assertions]


def dump_diagnostics(
    source: str,
    filename: str = constants.DEFAULT_FILENAME,
    config: InstrumentConfig = InstrumentConfig(),
    function_name: str = "",
) -> str:
    """Instrument *source* and return a human-readable dump of every replacement tree."""
    results = instrument_source(source, filename, config, function_name)
    blocks = [
        str(r) if isinstance(r, InstrumentedAssertion) else f"{r}  // not instrumented"
        for r in results
    ]
    return "\n\n".join(blocks)


def ir_stats(
    source: str,
    filename: str = constants.DEFAULT_FILENAME,
    config: InstrumentConfig = InstrumentConfig(),
    function_name: str = "",
) -> dict[str, int]:
    """Instrument *source* and return opcode frequency counts over all diagnostic programs."""
    instructions = [
        inst
        for r in instrument_source(source, filename, config, function_name)
        if isinstance(r, InstrumentedAssertion)
        for inst in r.program
    ]
    return count_opcodes(instructions)


def run_function_assertions(
    source: str,
    function_name: str,
    variables: dict[str, Any],
    functions: dict[str, Callable[..., Any]] | None = None,
    instrumented: bool = True,
    config: InstrumentConfig = InstrumentConfig(color=False),
    run_config: RunConfig = RunConfig(),
    filename: str = constants.DEFAULT_FILENAME,
) -> list[AssertionOutcome]:
    """Execute the assertions of one function, in order, until one aborts.

    Args:
        source: The C source text.
        function_name: The function whose assertions run.
        variables: Values of the variables the assertions reference.
        functions: Python implementations of called C functions.
        instrumented: Run the replacement trees (True) or the originals.
        config: Instrumentation configuration.
        run_config: Reference executor configuration.
        filename: File name reported in diagnostics.

    Returns:
        One outcome per executed assertion; the last one aborted if any did.

    Raises:
        ValueError: If *function_name* is not defined in *source*.
    """
    unit = extract_assertions(source, filename, config.assert_names)
    assertions = _select(unit, function_name)
    env = Environment(variables=dict(variables), functions=dict(functions or {}))
    outcomes: list[AssertionOutcome] = []
    for assertion in assertions:
        node = (
            instrument_assertion(assertion, unit.routines, config)
            if instrumented
            else assertion
        )
        outcome = execute_assertion(node, env, run_config)
        outcomes.append(outcome)
        if outcome.aborted:
            logger.info("%s aborted at line %d", function_name, assertion.info.line)
            break
    return outcomes


def _select(unit: TranslationUnit, function_name: str) -> list[Assertion]:
    if not function_name:
        return unit.assertions
    if function_name not in unit.functions:
        raise ValueError(f"Function '{function_name}' not found in source")
    return unit.in_function(function_name)
