"""Reference executor — data types (pure data, no business logic)."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable

# ── Values ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class Pointer:
    """A non-string pointer value, e.g. the result of ``&x``.

    ``char *`` values are plain Python ``str`` and ``NULL`` is ``None``.
    """

    target: str
    address: int

    def __str__(self) -> str:
        return f"&{self.target}"


# ── Signals ──────────────────────────────────────────────────────


class AbortSignal(Exception):
    """The abort routine was called."""

    def __init__(self, output: list[str]):
        super().__init__("abort() called")
        self.output = output


class UnsupportedEvaluation(Exception):
    """The executor has no semantics for a node or routine."""

    pass


# ── State ────────────────────────────────────────────────────────


@dataclass
class Environment:
    """Variable values and callable functions visible to an assertion."""

    variables: dict[str, Any] = field(default_factory=dict)
    functions: dict[str, Callable[..., Any]] = field(default_factory=dict)
    addresses: dict[str, int] = field(default_factory=dict)

    def address_of(self, name: str) -> Pointer:
        if name not in self.addresses:
            self.addresses[name] = 0x1000 + 0x10 * len(self.addresses)
        return Pointer(target=name, address=self.addresses[name])


@dataclass
class DiagnosticBuffer:
    """Fixed-capacity character buffer filled with ``snprintf`` semantics.

    One byte is reserved for the terminator; an append that does not fit
    is cut at the remaining room and the ``truncated`` flag stays set.
    """

    capacity: int
    data: str = ""
    truncated: bool = False

    @property
    def remaining(self) -> int:
        return max(self.capacity - 1 - len(self.data), 0)

    def reset(self):
        self.data = ""

    def append(self, text: str):
        room = self.remaining
        if len(text) > room:
            self.truncated = True
        self.data += text[:room]


@dataclass
class AssertionOutcome:
    """What one dynamic execution of an assertion did."""

    passed: bool
    output: list[str] = field(default_factory=list)
    steps: int = 0
    truncated: bool = False

    @property
    def aborted(self) -> bool:
        return not self.passed

    @property
    def text(self) -> str:
        return "".join(self.output)

    @property
    def lines(self) -> list[str]:
        return self.text.splitlines()
