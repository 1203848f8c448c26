"""Frontend / AST-to-Assertion extraction."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from functools import lru_cache

from . import constants
from .expr import Assertion
from .instrument import RoutineTable


@dataclass
class TranslationUnit:
    """Everything the pass needs from one source file."""

    assertions: list[Assertion] = field(default_factory=list)
    routines: RoutineTable = field(default_factory=RoutineTable)
    functions: list[str] = field(default_factory=list)

    def in_function(self, name: str) -> list[Assertion]:
        return [a for a in self.assertions if a.info.function == name]


class Frontend(ABC):
    @abstractmethod
    def extract(
        self, tree, source: bytes, filename: str = constants.DEFAULT_FILENAME
    ) -> TranslationUnit: ...


def get_frontend(
    language: str = constants.DEFAULT_LANGUAGE,
    assert_names: tuple[str, ...] = constants.DEFAULT_ASSERT_NAMES,
) -> Frontend:
    """Instantiate the assertion frontend for *language*.

    Raises ``ValueError`` if *language* has no registered frontend.
    """
    from .frontends import get_assert_frontend

    return get_assert_frontend(language, assert_names)


@lru_cache(maxsize=None)
def _grammar_parser(language: str):
    import tree_sitter_language_pack as tslp

    return tslp.get_parser(language)


def parse_source(source: str, language: str = constants.DEFAULT_LANGUAGE):
    """Tree-sitter tree of *source*; one parser is built per language and reused."""
    return _grammar_parser(language).parse(source.encode("utf-8"))
