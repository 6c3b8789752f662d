# File: facadegen/formatter.py
"""
facadegen - Substitution Engine & Formatting Hook
==================================================
``format_template`` splices bound values into ``[[NAME]]`` placeholders;
``erase`` keeps or drops the single optional ``#--?--#`` span of a template.

Both walk the same token stream as the template store, so a marker that
reads one way during extraction reads the same way here.

The formatting hook (``CodeFormatter``) is a capability interface with one
method per fragment kind.  ``DefaultCodeFormatter`` implements each one as
plain substitution; custom hooks wrap a default instance and delegate the
kinds they do not care about.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Mapping, Optional, Protocol, runtime_checkable

from facadegen.errors import TemplateDefectError, UnboundPlaceholderError
from facadegen.templates import TokenKind, tokenize

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("facadegen.formatter")

ArgumentMap = Mapping[str, Optional[str]]


# ---------------------------------------------------------------------------
# Substitution
# ---------------------------------------------------------------------------


def format_template(template: str, args: ArgumentMap, *, strict: bool = True) -> str:
    """
    Replace every ``[[NAME]]`` in *template* with ``args[NAME]``.

    A ``None`` value splices in nothing.  Substituted values are never
    re-scanned, and text outside placeholders passes through unchanged.

    Args:
        template: Template text (already converted, no decoration).
        args: Placeholder bindings.
        strict: When True an unbound placeholder raises; otherwise it
            renders empty and a warning is logged.

    Raises:
        UnboundPlaceholderError: On an unbound placeholder in strict mode.
    """
    parts: List[str] = []
    for token in tokenize(template):
        if token.kind is not TokenKind.PLACEHOLDER:
            parts.append(token.text)
            continue

        if token.value not in args:
            if strict:
                raise UnboundPlaceholderError(token.value)
            logger.warning("Placeholder [[%s]] is unbound; rendered empty.", token.value)
            continue

        value: Optional[str] = args[token.value]
        if value is not None:
            parts.append(value)
    return "".join(parts)


def erase(source: str, keep: bool) -> str:
    """
    Resolve the ``#--?--#`` optional span(s) of *source*.

    With *keep* True only the markers are removed; with *keep* False the
    markers and everything between them go.

    Raises:
        TemplateDefectError: If the markers do not pair up.
    """
    parts: List[str] = []
    inside: bool = False
    for token in tokenize(source):
        if token.kind is TokenKind.ERASE:
            inside = not inside
            continue
        if inside and not keep:
            continue
        parts.append(token.text)

    if inside:
        raise TemplateDefectError("Unterminated '#--?--#' span.")
    return "".join(parts)


# ---------------------------------------------------------------------------
# Formatting hook
# ---------------------------------------------------------------------------


@runtime_checkable
class CodeFormatter(Protocol):
    """One rewrite method per fragment kind, plus one for the root."""

    def format(self, template: str, args: ArgumentMap) -> str: ...

    def format_column_names_part(self, template: str, args: ArgumentMap) -> str: ...

    def format_primary_key_part(self, template: str, args: ArgumentMap) -> str: ...

    def format_foreign_keys_part(self, template: str, args: ArgumentMap) -> str: ...

    def format_row_property_accessor_part(self, template: str, args: ArgumentMap) -> str: ...

    def format_row_relationship_part(self, template: str, args: ArgumentMap) -> str: ...

    def format_relationship_column_part1(self, template: str, args: ArgumentMap) -> str: ...

    def format_relationship_column_part2(self, template: str, args: ArgumentMap) -> str: ...

    def format_table_relationship_part(self, template: str, args: ArgumentMap) -> str: ...


class DefaultCodeFormatter:
    """Identity hook: every fragment kind is plain substitution."""

    __slots__ = ("strict",)

    def __init__(self, strict: bool = True) -> None:
        self.strict: bool = strict

    def format(self, template: str, args: ArgumentMap) -> str:
        return format_template(template, args, strict=self.strict)

    def format_column_names_part(self, template: str, args: ArgumentMap) -> str:
        return self.format(template, args)

    def format_primary_key_part(self, template: str, args: ArgumentMap) -> str:
        return self.format(template, args)

    def format_foreign_keys_part(self, template: str, args: ArgumentMap) -> str:
        return self.format(template, args)

    def format_row_property_accessor_part(self, template: str, args: ArgumentMap) -> str:
        return self.format(template, args)

    def format_row_relationship_part(self, template: str, args: ArgumentMap) -> str:
        return self.format(template, args)

    def format_relationship_column_part1(self, template: str, args: ArgumentMap) -> str:
        return self.format(template, args)

    def format_relationship_column_part2(self, template: str, args: ArgumentMap) -> str:
        return self.format(template, args)

    def format_table_relationship_part(self, template: str, args: ArgumentMap) -> str:
        return self.format(template, args)

    def __repr__(self) -> str:
        return f"<DefaultCodeFormatter strict={self.strict}>"


# ---------------------------------------------------------------------------
# Whole-unit source formatters
# ---------------------------------------------------------------------------

SourceFormatter = Callable[[str], str]


def black_source_formatter(line_length: int = 88) -> SourceFormatter:
    """
    Return a callable that runs generated source through ``black``.

    ``black`` is an optional dependency (``pip install facadegen[format]``);
    it is imported when this factory is called, not at module load.
    """
    import black

    mode = black.Mode(line_length=line_length)

    def _format(source: str) -> str:
        return black.format_str(source, mode=mode)

    return _format


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "ArgumentMap",
    "format_template",
    "erase",
    "CodeFormatter",
    "DefaultCodeFormatter",
    "SourceFormatter",
    "black_source_formatter",
]

logger.debug("facadegen.formatter loaded.")
