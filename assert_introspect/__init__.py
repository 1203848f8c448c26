"""Assertion introspection: rewrite C assert() conditions to explain their own failures."""

from .api import (  # noqa: F401
    dump_diagnostics,
    extract_assertions,
    instrument_source,
    ir_stats,
    run_function_assertions,
)
from .instrument import (  # noqa: F401
    InstrumentedAssertion,
    RoutineHandle,
    RoutineTable,
    instrument_assertion,
)
