"""Tree-sitter frontends that find assertions and build their expression trees."""

from __future__ import annotations

import importlib

from ..frontend import Frontend

# Lazy imports to avoid loading every frontend at startup
_FRONTEND_CLASSES: dict[str, str] = {
    "c": "c.CAssertFrontend",
}


def get_assert_frontend(language: str, assert_names: tuple[str, ...]) -> Frontend:
    spec = _FRONTEND_CLASSES.get(language)
    if spec is None:
        raise ValueError(f"Unsupported language for assertion frontend: {language}")
    module_name, class_name = spec.split(".")
    mod = importlib.import_module(f".{module_name}", package=__package__)
    cls = getattr(mod, class_name)
    return cls(assert_names=assert_names)


SUPPORTED_LANGUAGES: tuple[str, ...] = tuple(_FRONTEND_CLASSES.keys())

__all__ = ["get_assert_frontend", "SUPPORTED_LANGUAGES"]
