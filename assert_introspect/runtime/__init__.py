"""Reference executor for original and instrumented assertions."""

from .run import execute_assertion, run_program  # noqa: F401
from .vm import ExpressionEvaluator  # noqa: F401
from .vm_types import (  # noqa: F401
    AbortSignal,
    AssertionOutcome,
    DiagnosticBuffer,
    Environment,
    Pointer,
    UnsupportedEvaluation,
)
