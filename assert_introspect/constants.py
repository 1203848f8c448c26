"""Named constants — eliminates magic strings across the codebase."""

from __future__ import annotations

PLACEHOLDER = "..."
NULL_TOKEN = "NULL"

DIAGNOSTIC_BUFFER_SIZE = 1024
MAX_EXPRESSION_DEPTH = 64
MAX_DIAGNOSTIC_STEPS = 10_000

DEFAULT_ASSERT_NAMES: tuple[str, ...] = ("assert",)
DEFAULT_LANGUAGE = "c"
DEFAULT_FILENAME = "<source>"
ANON_FUNCTION = "__anon"

# Routine names looked up among the translation unit's declarations.
OUTPUT_ROUTINE = "printf"
BOUNDED_FORMAT_ROUTINE = "snprintf"
ABORT_ROUTINE = "abort"
ASSERT_FAIL_ROUTINE = "__assert_fail"

HEADER_TEMPLATE = "%s:%d: %s: Assertion failed\n"
SOURCE_LINE_TEMPLATE = "> assert(%s)\n"
AST_LINE_TEMPLATE = "> ast: %s\n"
REPR_PREFIX = "  assert("
REPR_SUFFIX = ")"
SUBEXPRESSIONS_HEADER = "> subexpressions:\n"
SUBEXPRESSION_INDENT = "  "
ASSERT_FAIL_TEMPLATE = "%s:%d: %s: Assertion `%s' failed.\n"

ANSI_RESET = "\x1b[0m"
COLOR_PALETTE: tuple[str, ...] = (
    "\x1b[31m",
    "\x1b[32m",
    "\x1b[33m",
    "\x1b[34m",
    "\x1b[35m",
    "\x1b[36m",
    "\x1b[91m",
    "\x1b[92m",
)

LABEL_AND_TRUE = "and_true"
LABEL_AND_FALSE = "and_false"
LABEL_AND_END = "and_end"
LABEL_OR_TRUE = "or_true"
LABEL_OR_FALSE = "or_false"
LABEL_OR_END = "or_end"
LABEL_SUB_RIGHT = "sub_right"
LABEL_SUB_END = "sub_end"
LABEL_SUB_SKIP = "sub_skip"
LABEL_SUB_ENTRY = "sub_entry"
