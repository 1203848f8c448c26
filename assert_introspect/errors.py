"""Error taxonomy of the instrumentation pass."""

from __future__ import annotations


class IntrospectionError(Exception):
    """Base class for conditions the pass reports instead of crashing."""

    pass


class RoutineUnavailableError(IntrospectionError):
    """A required runtime routine (output, bounded format, abort) was not declared.

    Structural: instrumentation of the whole assertion is abandoned and the
    original check is kept.
    """

    def __init__(self, role: str, name: str):
        super().__init__(f"required {role} routine '{name}' is not declared")
        self.role = role
        self.name = name


class UnsupportedConstructError(IntrospectionError):
    """A node the lowerer cannot render; only that node degrades to the placeholder."""

    pass


class InvariantViolation(RuntimeError):
    """The pass itself is buggy (e.g. a leaf reached lowering without being materialized)."""

    pass
