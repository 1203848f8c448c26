"""Identity & color registry — which leaf occurrences denote the same value, and how to paint them."""

from __future__ import annotations

import logging

from . import constants
from .errors import InvariantViolation
from .expr import AddressOf, Expr, Materialized, Variable

logger = logging.getLogger(__name__)

Identity = tuple[str, int]


def identity_of(node: Expr) -> Identity:
    """Equivalence key of a leaf occurrence.

    Occurrences of one declaration share an identity even though each
    occurrence has its own slot; any other materialized computation is
    identified by its slot.
    """
    if isinstance(node, Materialized):
        inner = node.inner
        if isinstance(inner, Variable):
            return ("decl", inner.decl.id)
        return ("slot", node.slot)
    if isinstance(node, Variable):
        return ("decl", node.decl.id)
    if isinstance(node, AddressOf):
        return ("decl", node.target.decl.id)
    raise InvariantViolation(f"no identity for non-leaf node {type(node).__name__}")


class ColorRegistry:
    """First-come allocation of display colors from a fixed palette.

    Once the palette is exhausted further identities get no color; colors
    are never recycled within one assertion.
    """

    def __init__(
        self, enabled: bool = True, palette: tuple[str, ...] = constants.COLOR_PALETTE
    ):
        self._enabled = enabled
        self._palette = palette
        self._colors: dict[Identity, str | None] = {}
        self._next = 0

    def color_for(self, identity: Identity) -> str | None:
        if not self._enabled:
            return None
        if identity in self._colors:
            return self._colors[identity]
        color: str | None = None
        if self._next < len(self._palette):
            color = self._palette[self._next]
            self._next += 1
        else:
            logger.debug("Palette exhausted; %s rendered without color", identity)
        self._colors[identity] = color
        return color

    def paint(self, text: str, identity: Identity) -> str:
        """Wrap format *text* in the identity's color escape, if it has one."""
        color = self.color_for(identity)
        if color is None:
            return text
        return f"{color}{text}{constants.ANSI_RESET}"

    @property
    def allocated(self) -> int:
        return self._next
