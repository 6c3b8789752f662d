# File: facadegen/utils.py
"""
facadegen - Utility Functions & Helpers
========================================
Identifier checks, literal escaping, comment decoration, import-block
assembly and file I/O helpers shared by the generation pipeline.

- Identifier helpers are cached with ``@lru_cache(maxsize=None)``: the same
  table and column names are checked once per relationship tree.
- File writes go through a temporary file and an atomic rename so a crash
  never leaves a half-written unit behind.
"""

from __future__ import annotations

import functools
import hashlib
import keyword
import logging
import os
import re
import tempfile
import time
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Set, Tuple

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("facadegen.utils")

# ---------------------------------------------------------------------------
# Pre-compiled regex patterns
# ---------------------------------------------------------------------------

_NON_IDENTIFIER_RE: re.Pattern[str] = re.compile(r"[^A-Za-z0-9_]")
_LINE_BREAK_RE: re.Pattern[str] = re.compile(r"\r\n|\r|\n")

_LITERAL_ESCAPES: Dict[str, str] = {
    "\t": "\\t",
    "\b": "\\b",
    "\n": "\\n",
    "\r": "\\r",
    "\f": "\\f",
    '"': '\\"',
    "\\": "\\\\",
}


# ---------------------------------------------------------------------------
# Identifier helpers
# ---------------------------------------------------------------------------


@functools.lru_cache(maxsize=None)
def is_legal_identifier(name: str) -> bool:
    """
    True when *name* can be used verbatim as a Python identifier.

    Examples:
        >>> is_legal_identifier("ORDERS")
        True
        >>> is_legal_identifier("class")
        False
        >>> is_legal_identifier("2nd_table")
        False
    """
    return bool(name) and name.isidentifier() and not keyword.iskeyword(name)


@functools.lru_cache(maxsize=None)
def safe_name(name: str) -> str:
    """
    Return *name* unchanged when legal, otherwise prefixed with ``_``.

    The prefix is the only repair made; a name that is still illegal
    afterwards (``"my col"`` → ``"_my col"``) is left for the caller's
    legality check to reject.
    """
    if is_legal_identifier(name):
        return name
    return f"_{name}"


@functools.lru_cache(maxsize=None)
def safe_identifier(name: str) -> str:
    """
    Squash any text into a legal identifier fragment.

    Non-identifier characters become ``_``; a leading digit gains a ``_``
    prefix.  Used for names that are never written by hand (key names
    folded into relationship names and constant names).
    """
    result: str = _NON_IDENTIFIER_RE.sub("_", name)
    if not result:
        return "_"
    if result[0].isdigit():
        result = f"_{result}"
    return result


@functools.lru_cache(maxsize=None)
def package_segment(schema_name: str) -> str:
    """
    Package segment generated units of *schema_name* are placed in.

    Lower-cased and squashed to an identifier; keywords gain a ``_`` suffix.
    An empty schema yields ``""`` (units go straight under the root package).

    Examples:
        >>> package_segment("Public")
        'public'
        >>> package_segment("sales-2024")
        'sales_2024'
        >>> package_segment("import")
        'import_'
    """
    if not schema_name:
        return ""
    segment: str = safe_identifier(schema_name.lower())
    if keyword.iskeyword(segment):
        segment = f"{segment}_"
    return segment


# ---------------------------------------------------------------------------
# Literal & comment helpers
# ---------------------------------------------------------------------------


def escape_literal(value: Optional[str]) -> str:
    """
    Escape *value* for use inside a double-quoted Python string literal.

    Tab, backspace, newline, carriage return, form feed, double quote and
    backslash are escaped.  ``None`` and ``""`` both yield ``""``.
    """
    if not value:
        return ""
    return "".join(_LITERAL_ESCAPES.get(ch, ch) for ch in value)


def escape_docstring(value: str) -> str:
    """Make *value* safe inside a triple-quoted docstring (one line)."""
    return value.replace("\\", "\\\\").replace('"', '\\"')


def split_lines(text: Optional[str]) -> List[str]:
    """Split on any line-break convention; ``None`` yields no lines."""
    if text is None:
        return []
    return _LINE_BREAK_RE.split(text.strip())


def decorate(base: str, prefix: str) -> str:
    """
    Prefix every line of *base* with *prefix*, trimming trailing blanks.

    Used to turn a plain multi-line description into an indented comment
    or docstring block.
    """
    return "\n".join(
        (prefix + line).rstrip() for line in _LINE_BREAK_RE.split(base)
    )


def quote_join(names: Sequence[str]) -> str:
    """Render *names* as comma-separated escaped string literals."""
    return ", ".join(f'"{escape_literal(name)}"' for name in names)


# ---------------------------------------------------------------------------
# File I/O helpers
# ---------------------------------------------------------------------------


def ensure_directory(path: Path) -> None:
    """Create directory (and parents) if it doesn't exist."""
    path.mkdir(parents=True, exist_ok=True)
    logger.debug("Ensured directory exists: %s", path)


def write_file(path: Path, content: str, encoding: str = "utf-8") -> int:
    """
    Atomically write *content* to *path*.

    Writes to a temporary sibling first then renames over the target, so
    readers see either the old file or the new one, never a partial write.

    Returns the number of bytes written.
    """
    ensure_directory(path.parent)

    encoded: bytes = content.encode(encoding)
    fd, tmp_path = tempfile.mkstemp(
        dir=str(path.parent),
        prefix=f".{path.name}.",
        suffix=".tmp",
    )
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(encoded)
        os.replace(tmp_path, str(path))
    except BaseException:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise

    logger.debug("Wrote %d bytes to %s", len(encoded), path)
    return len(encoded)


def read_file(path: Path, encoding: str = "utf-8") -> Optional[str]:
    """
    Return the text at *path*, or ``None`` when there is no such file.

    Line endings are returned untranslated so a CRLF file never compares
    equal to its LF rendering.
    """
    if not path.is_file():
        return None
    with path.open("r", encoding=encoding, newline="") as fh:
        return fh.read()


# ---------------------------------------------------------------------------
# Checksum & metrics
# ---------------------------------------------------------------------------


def sha256_hex(content: str) -> str:
    """Return SHA-256 hex digest of a string."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def count_lines(content: str) -> int:
    """Count the number of lines in a string."""
    if not content:
        return 0
    return content.count("\n") + (1 if not content.endswith("\n") else 0)


# ---------------------------------------------------------------------------
# Timer context manager
# ---------------------------------------------------------------------------


class Timer:
    """
    Simple context-manager timer for profiling build steps.

    Usage:
        with Timer("build public.ORDERS") as t:
            ...
        print(t.elapsed)
    """

    __slots__ = ("label", "start_time", "end_time", "elapsed")

    def __init__(self, label: str = "operation") -> None:
        self.label: str = label
        self.start_time: float = 0.0
        self.end_time: float = 0.0
        self.elapsed: float = 0.0

    def __enter__(self) -> "Timer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Optional[object],
    ) -> None:
        self.end_time = time.perf_counter()
        self.elapsed = self.end_time - self.start_time
        logger.debug("Timer [%s]: %.4f seconds", self.label, self.elapsed)

    def __repr__(self) -> str:
        return f"<Timer {self.label}: {self.elapsed:.4f}s>"


# ---------------------------------------------------------------------------
# Import statement builder
# ---------------------------------------------------------------------------


def class_path_import(dotted: str) -> Tuple[str, str]:
    """
    Split ``"package.module.ClassName"`` into ``("package.module", "ClassName")``.
    """
    module, _, name = dotted.rpartition(".")
    return module, name


def add_import(imports: Dict[str, Set[str]], module: Optional[str], name: str) -> None:
    """Record ``from module import name``; builtins (no module) are ignored."""
    if not module:
        return
    imports.setdefault(module, set()).add(name)


def build_import_block(imports: Dict[str, Set[str]]) -> str:
    """
    Build a sorted, de-duplicated import block from a mapping of
    module → set of names.

    Example:
        >>> build_import_block({"uuid": {"UUID"}, "decimal": {"Decimal"}})
        'from decimal import Decimal\\nfrom uuid import UUID'
    """
    lines: List[str] = []
    for module in sorted(imports.keys()):
        names: List[str] = sorted(imports[module])
        if names:
            lines.append(f"from {module} import {', '.join(names)}")
        else:
            lines.append(f"import {module}")
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "is_legal_identifier",
    "safe_name",
    "safe_identifier",
    "package_segment",
    "escape_literal",
    "escape_docstring",
    "split_lines",
    "decorate",
    "quote_join",
    "ensure_directory",
    "write_file",
    "read_file",
    "sha256_hex",
    "count_lines",
    "Timer",
    "class_path_import",
    "add_import",
    "build_import_block",
]

logger.debug("facadegen.utils loaded — %d public symbols.", len(__all__))
