# File: facadegen/templates.py
"""
facadegen - Template Store
===========================
Loads the master template once, slices it into named fragments and strips
its decoration, yielding a root template plus a fragment mapping.

The master template uses a tiny marker notation, read by one left-to-right
scanner (``tokenize``) so nested or adjacent markers always resolve the same
way:

    #==Name==# ... #==Name==#   named fragment, pulled out by ``extract``
    #--# ... #--#               real-code-only span, deleted on conversion
    #++ ... ++#                 generated-code-only span, markers dropped
    #--?--# ... #--?--#         optional span, handled by ``formatter.erase``
    [[NAME]]                    placeholder, handled by ``formatter.format_template``

Only fragment markers and decoration spans are consumed here; optional-span
markers and placeholders pass through to the substitution engine.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from facadegen.errors import CallerDefectError, TemplateDefectError

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("facadegen.templates")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEFAULT_TEMPLATE_PATH: Path = (
    Path(__file__).resolve().parent / "resources" / "table_facade.py.tmpl"
)

# Extraction order matters: later keys are pulled from what earlier ones left.
FRAGMENT_KEYS: Tuple[str, ...] = (
    "ColumnNamesPart",
    "PrimaryKeyPart",
    "ForeignKeysPart",
    "RowPropertyAccessorPart",
    "RowRelationshipPart",
    "ColumnPart1",
    "ColumnPart2",
    "TableRelationshipPart",
)

# Alternatives are tried in order at each position.
_TOKEN_RE: re.Pattern[str] = re.compile(
    r"(?P<fragment>#==(?P<name>[A-Za-z_][A-Za-z0-9_]*)==#)"
    r"|(?P<erase>#--\?--#)"
    r"|(?P<real>#--#)"
    r"|(?P<gen_open>#\+\+)"
    r"|(?P<gen_close>\+\+#)"
    r"|(?P<placeholder>\[\[(?P<key>[A-Za-z_][A-Za-z0-9_]*)\]\])"
)


# ---------------------------------------------------------------------------
# Scanner
# ---------------------------------------------------------------------------


class TokenKind(str, Enum):
    TEXT = "text"
    FRAGMENT = "fragment"
    ERASE = "erase"
    REAL_ONLY = "real"
    GEN_OPEN = "gen_open"
    GEN_CLOSE = "gen_close"
    PLACEHOLDER = "placeholder"


@dataclass(frozen=True, slots=True)
class Token:
    """One lexical unit of template text with its source offsets."""

    kind: TokenKind
    text: str
    start: int
    end: int
    value: str = ""


def tokenize(source: str) -> Iterator[Token]:
    """
    Scan *source* once, left to right, yielding marker, placeholder and
    plain-text tokens.  Concatenating every token's ``text`` reproduces
    *source* exactly.
    """
    position: int = 0
    for match in _TOKEN_RE.finditer(source):
        if match.start() > position:
            yield Token(TokenKind.TEXT, source[position:match.start()], position, match.start())

        group: Optional[str] = match.lastgroup
        if group == "fragment":
            value: str = match.group("name")
        elif group == "placeholder":
            value = match.group("key")
        else:
            value = ""
        yield Token(TokenKind(group), match.group(0), match.start(), match.end(), value)
        position = match.end()

    if position < len(source):
        yield Token(TokenKind.TEXT, source[position:], position, len(source))


# ---------------------------------------------------------------------------
# Extraction & conversion
# ---------------------------------------------------------------------------


def extract(source: str, key: str) -> Tuple[str, str]:
    """
    Pull the fragment named *key* out of *source*.

    Returns ``(fragment, remainder)``: the text strictly between the two
    ``#==key==#`` markers, and *source* with both markers and the enclosed
    text removed.

    Raises:
        TemplateDefectError: If the marker pair is missing or duplicated.
    """
    markers: List[Token] = [
        token
        for token in tokenize(source)
        if token.kind is TokenKind.FRAGMENT and token.value == key
    ]
    if len(markers) != 2:
        problem: str = "missing" if len(markers) < 2 else "duplicated"
        raise TemplateDefectError(
            f"Fragment '{key}' marker pair is {problem} "
            f"({len(markers)} marker(s) found).",
            key=key,
        )

    first, second = markers
    fragment: str = source[first.end:second.start]
    remainder: str = source[:first.start] + source[second.end:]
    return fragment, remainder


def convert_to_template(source: str) -> str:
    """
    Strip decoration from *source*.

    Real-code-only spans are deleted with their markers; generated-code-only
    spans lose their markers but keep their text.  Optional-span markers and
    placeholders are left for the substitution engine.

    Raises:
        TemplateDefectError: On unbalanced decoration or a fragment marker
            that was never extracted.
    """
    parts: List[str] = []
    in_real_only: bool = False
    generated_depth: int = 0

    for token in tokenize(source):
        if token.kind is TokenKind.REAL_ONLY:
            in_real_only = not in_real_only
            continue
        if in_real_only:
            continue

        if token.kind is TokenKind.GEN_OPEN:
            generated_depth += 1
        elif token.kind is TokenKind.GEN_CLOSE:
            if generated_depth == 0:
                raise TemplateDefectError(
                    f"Unmatched '++#' at offset {token.start}."
                )
            generated_depth -= 1
        elif token.kind is TokenKind.FRAGMENT:
            raise TemplateDefectError(
                f"Fragment marker '{token.text}' left in template at offset "
                f"{token.start}.",
                key=token.value,
            )
        else:
            parts.append(token.text)

    if in_real_only:
        raise TemplateDefectError("Unterminated '#--#' span.")
    if generated_depth:
        raise TemplateDefectError("Unterminated '#++' span.")

    return "".join(parts)


# ---------------------------------------------------------------------------
# TemplateStore
# ---------------------------------------------------------------------------


class TemplateStore:
    """
    Root template plus named fragments, prepared once and read-only after.

    Usage::

        store = TemplateStore.load()
        root = store.root
        column_part = store.fragment("ColumnNamesPart")
    """

    __slots__ = ("_root", "_fragments", "_source_path")

    def __init__(
        self,
        root: str,
        fragments: Dict[str, str],
        source_path: Optional[Path] = None,
    ) -> None:
        self._root: str = root
        self._fragments: Dict[str, str] = dict(fragments)
        self._source_path: Optional[Path] = source_path

    @classmethod
    def from_source(
        cls,
        source: str,
        keys: Sequence[str] = FRAGMENT_KEYS,
        source_path: Optional[Path] = None,
    ) -> "TemplateStore":
        """Slice a decorated master template into root + fragments."""
        fragments: Dict[str, str] = {}
        for key in keys:
            fragment, source = extract(source, key)
            fragments[key] = convert_to_template(fragment)
        root: str = convert_to_template(source)

        logger.debug(
            "Template prepared: %d fragment(s), root %d chars.",
            len(fragments),
            len(root),
        )
        return cls(root, fragments, source_path)

    @classmethod
    def load(
        cls,
        path: Optional[Path] = None,
        charset: str = "utf-8",
    ) -> "TemplateStore":
        """Read and prepare the master template at *path* (default: packaged)."""
        template_path: Path = path if path is not None else DEFAULT_TEMPLATE_PATH
        source: str = template_path.read_text(encoding=charset)
        logger.info("Loaded master template: %s", template_path)
        return cls.from_source(source, source_path=template_path)

    @classmethod
    def default(cls) -> "TemplateStore":
        """A fresh store prepared from the packaged master template."""
        return cls.load(DEFAULT_TEMPLATE_PATH)

    @property
    def root(self) -> str:
        return self._root

    @property
    def source_path(self) -> Optional[Path]:
        return self._source_path

    def fragment(self, name: str) -> str:
        try:
            return self._fragments[name]
        except KeyError:
            raise CallerDefectError(f"Unknown template fragment: {name!r}") from None

    def __repr__(self) -> str:
        return f"<TemplateStore {len(self._fragments)} fragments>"


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "DEFAULT_TEMPLATE_PATH",
    "FRAGMENT_KEYS",
    "TokenKind",
    "Token",
    "tokenize",
    "extract",
    "convert_to_template",
    "TemplateStore",
]

logger.debug("facadegen.templates loaded.")
