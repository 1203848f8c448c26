"""Configuration data types (pure data, no business logic)."""

from __future__ import annotations

from dataclasses import dataclass

from . import constants


@dataclass(frozen=True)
class InstrumentConfig:
    """Groups instrumentation pass configuration."""

    color: bool = True
    buffer_capacity: int = constants.DIAGNOSTIC_BUFFER_SIZE
    max_depth: int = constants.MAX_EXPRESSION_DEPTH
    assert_names: tuple[str, ...] = constants.DEFAULT_ASSERT_NAMES


@dataclass(frozen=True)
class RunConfig:
    """Groups reference-executor configuration."""

    max_steps: int = constants.MAX_DIAGNOSTIC_STEPS
    verbose: bool = False
