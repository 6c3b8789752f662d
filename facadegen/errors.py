# File: facadegen/errors.py
"""
facadegen - Error Taxonomy
===========================
Every failure the generator raises on purpose derives from ``FacadeGenError``.

    FacadeGenError
    ├── TemplateDefectError      — master template markers missing / duplicated
    ├── IllegalNameError         — table / column / relationship name unusable
    └── CallerDefectError        — programming error in the calling layer
        └── UnboundPlaceholderError

I/O failures are not wrapped: ``OSError`` propagates to the caller untouched.
"""

from __future__ import annotations

from typing import List, Optional


class FacadeGenError(Exception):
    """Base class for all facadegen errors."""


class TemplateDefectError(FacadeGenError):
    """The master template is malformed (fatal at load time)."""

    def __init__(self, message: str, key: Optional[str] = None) -> None:
        super().__init__(message)
        self.key: Optional[str] = key


class IllegalNameError(FacadeGenError):
    """A schema name cannot be used as an identifier in generated code."""

    def __init__(self, name: str, role: str = "table") -> None:
        super().__init__(f"Illegal {role} name: {name!r}")
        self.name: str = name
        self.role: str = role


class CallerDefectError(FacadeGenError):
    """A precondition of a public operation was violated by the caller."""


class UnboundPlaceholderError(CallerDefectError):
    """A template references a placeholder the argument map does not bind."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Placeholder [[{name}]] has no bound argument.")
        self.name: str = name


__all__: List[str] = [
    "FacadeGenError",
    "TemplateDefectError",
    "IllegalNameError",
    "CallerDefectError",
    "UnboundPlaceholderError",
]
