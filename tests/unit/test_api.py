"""End-to-end tests: C source in, dynamic execution of the instrumented assertions out."""

import pytest

from assert_introspect.api import (
    dump_diagnostics,
    extract_assertions,
    instrument_source,
    ir_stats,
    run_function_assertions,
)
from assert_introspect.config import InstrumentConfig
from assert_introspect.expr import Assertion
from assert_introspect.instrument import InstrumentedAssertion

HEADERS = "#include <assert.h>\n#include <stdio.h>\n#include <stdlib.h>\n#include <string.h>\n"

SOURCE = HEADERS + """\
int func2(int x);

void check(int n) {
    assert(1 != n && n != 6);
}

void parse(const char *s) {
    assert(strtol(s, NULL, 0) == 5);
}

void counter(int n) {
    assert(func2(n) == n);
}

void any(int a, int b, int c) {
    assert(a || b || c);
}

void twice(int n) {
    assert(n > 0);
    assert(n > 10);
}
"""

NO_STDIO_SOURCE = """\
#include <assert.h>
#include <stdlib.h>
void check(int n) {
    assert(n == 5);
}
"""


def _run(function_name, variables, functions=None, **kwargs):
    return run_function_assertions(
        SOURCE, function_name, variables, functions, filename="t.c", **kwargs
    )


class TestExtractAssertions:
    def test_collects_all_assertions(self):
        unit = extract_assertions(SOURCE, "t.c")
        assert len(unit.assertions) == 6
        assert "func2" not in unit.functions
        assert "check" in unit.functions


class TestFailureReports:
    def test_and_with_failing_right_side(self):
        (outcome,) = _run("check", {"n": 6})
        assert outcome.aborted
        assert outcome.lines[0] == "t.c:8: check: Assertion failed"
        assert outcome.lines[1:] == [
            "> assert(1 != n && n != 6)",
            "> ast: (1 != n) && (n != 6)",
            "  assert((...) && (6 != 6))",
            "> subexpressions:",
            "  n = 6",
        ]

    def test_strtol_call_listed_with_arguments(self):
        (outcome,) = _run("parse", {"s": "42"})
        assert outcome.lines[3:] == [
            "  assert(42 == 5)",
            "> subexpressions:",
            '  s = "42"',
            '  strtol("42", NULL, 0) = 42',
        ]

    def test_function_called_once(self):
        calls = []

        def func2(x):
            calls.append(x)
            return x + 1

        (outcome,) = _run("counter", {"n": 3}, {"func2": func2})
        assert calls == [3]
        assert outcome.lines[3:] == [
            "  assert(4 == 3)",
            "> subexpressions:",
            "  n = 3",
            "  func2(3) = 4",
        ]

    def test_chained_or(self):
        (outcome,) = _run("any", {"a": 0, "b": 0, "c": 0})
        assert outcome.lines[2:] == [
            "> ast: a || b || c",
            "  assert((0) || (0) || (0))",
            "> subexpressions:",
            "  a = 0",
            "  b = 0",
            "  c = 0",
        ]

    def test_colors_enabled(self):
        (outcome,) = _run("check", {"n": 6}, config=InstrumentConfig(color=True))
        assert "\x1b[" in outcome.text


class TestPassingAndOrdering:
    def test_true_assertion_prints_nothing(self):
        (outcome,) = _run("check", {"n": 5})
        assert outcome.passed
        assert outcome.output == []

    def test_stops_at_first_abort(self):
        outcomes = _run("twice", {"n": 5})
        assert [o.passed for o in outcomes] == [True, False]
        assert outcomes[1].lines[1] == "> assert(n > 10)"

    def test_original_assertion_message(self):
        (outcome,) = _run("check", {"n": 6}, instrumented=False)
        assert outcome.lines == ["t.c:8: check: Assertion `1 != n && n != 6' failed."]

    def test_unknown_function_raises(self):
        with pytest.raises(ValueError, match="not found"):
            _run("missing", {})


class TestFailOpen:
    def test_missing_output_routine_keeps_original(self):
        (result,) = instrument_source(NO_STDIO_SOURCE, "t.c")
        assert isinstance(result, Assertion)

    def test_original_check_still_aborts(self):
        (outcome,) = run_function_assertions(NO_STDIO_SOURCE, "check", {"n": 4}, filename="t.c")
        assert outcome.lines == ["t.c:4: check: Assertion `n == 5' failed."]

    def test_dump_marks_uninstrumented(self):
        assert "not instrumented" in dump_diagnostics(NO_STDIO_SOURCE, "t.c")


class TestDumpAndStats:
    def test_instrument_source_filters_by_function(self):
        results = instrument_source(SOURCE, "t.c", function_name="twice")
        assert len(results) == 2
        assert all(isinstance(r, InstrumentedAssertion) for r in results)

    def test_dump_shows_every_program(self):
        dump = dump_diagnostics(SOURCE, "t.c", function_name="check")
        assert dump.startswith("if (!(")
        assert dump.rstrip().endswith("}")
        assert "abort" in dump

    def test_stats_count_one_abort_per_assertion(self):
        stats = ir_stats(SOURCE, "t.c")
        assert stats["ABORT"] == 6
        assert stats["PRINT"] >= 18
