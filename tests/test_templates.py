"""
tests/test_templates.py
Unit tests for facadegen.templates (scanner, extraction, TemplateStore).

Tests cover:
- Token scanning (lossless, marker precedence)
- Fragment extraction (success, missing / duplicated markers)
- Decoration stripping (real-only and generated-only spans, defects)
- The packaged master template and the TemplateStore API
"""

from __future__ import annotations

import re
from typing import List, Tuple

import pytest

from facadegen.errors import CallerDefectError, TemplateDefectError
from facadegen.templates import (
    DEFAULT_TEMPLATE_PATH,
    FRAGMENT_KEYS,
    TemplateStore,
    TokenKind,
    convert_to_template,
    extract,
    tokenize,
)


_FRAGMENT_MARKER_RE = re.compile(r"#==\w+==#")


def _kinds(source: str) -> List[TokenKind]:
    return [token.kind for token in tokenize(source)]


# ===========================================================================
# Scanner
# ===========================================================================


class TestTokenize:
    """Tests for the single left-to-right marker scanner."""

    def test_concatenated_tokens_reproduce_source(self) -> None:
        source = 'class #++[[TABLE]]++##--#Demo#--#:\n    x = "[[X]]"#--?--#y#--?--#\n'
        assert "".join(token.text for token in tokenize(source)) == source

    def test_offsets_match_text(self) -> None:
        source = "a[[B]]c#==Part==#d"
        for token in tokenize(source):
            assert source[token.start:token.end] == token.text

    def test_recognises_every_marker_kind(self) -> None:
        kinds = _kinds("#==P==##--?--##--##++++#[[K]]text")
        assert kinds == [
            TokenKind.FRAGMENT,
            TokenKind.ERASE,
            TokenKind.REAL_ONLY,
            TokenKind.GEN_OPEN,
            TokenKind.GEN_CLOSE,
            TokenKind.PLACEHOLDER,
            TokenKind.TEXT,
        ]

    def test_erase_marker_is_not_read_as_real_only(self) -> None:
        assert _kinds("#--?--#") == [TokenKind.ERASE]

    def test_marker_values(self) -> None:
        tokens = list(tokenize("#==ColumnPart1==#[[COLUMN]]"))
        assert tokens[0].value == "ColumnPart1"
        assert tokens[1].value == "COLUMN"

    def test_plain_text_is_one_token(self) -> None:
        tokens = list(tokenize("no markers here [not one]"))
        assert len(tokens) == 1
        assert tokens[0].kind is TokenKind.TEXT

    def test_empty_source_yields_nothing(self) -> None:
        assert list(tokenize("")) == []


# ===========================================================================
# Extraction
# ===========================================================================


class TestExtract:
    """Tests for pulling one named fragment out of a template."""

    def test_returns_fragment_and_remainder(self) -> None:
        fragment, remainder = extract("head#==P==#body#==P==#tail", "P")
        assert fragment == "body"
        assert remainder == "headtail"

    def test_other_fragments_survive(self) -> None:
        _, remainder = extract("#==A==#a#==A==##==B==#b#==B==#", "A")
        assert remainder == "#==B==#b#==B==#"

    def test_missing_marker_pair(self) -> None:
        with pytest.raises(TemplateDefectError) as info:
            extract("no fragments", "ColumnPart1")
        assert info.value.key == "ColumnPart1"
        assert "missing" in str(info.value)

    def test_single_marker_is_missing_pair(self) -> None:
        with pytest.raises(TemplateDefectError):
            extract("#==P==# half", "P")

    def test_duplicated_marker(self) -> None:
        with pytest.raises(TemplateDefectError) as info:
            extract("#==P==#a#==P==#b#==P==#", "P")
        assert "duplicated" in str(info.value)


# ===========================================================================
# Conversion
# ===========================================================================


class TestConvertToTemplate:
    """Tests for stripping decoration from a template."""

    def test_real_only_deleted_generated_unwrapped(self) -> None:
        source = "class #++[[TABLE]]++##--#Demo#--#(Base):"
        assert convert_to_template(source) == "class [[TABLE]](Base):"

    def test_erase_markers_and_placeholders_pass_through(self) -> None:
        source = "a#--?--#b#--?--#[[C]]"
        assert convert_to_template(source) == source

    def test_real_only_span_may_hold_other_markers(self) -> None:
        assert convert_to_template("x#--#[[GONE]]#++y++##--#z") == "xz"

    def test_unmatched_generated_close(self) -> None:
        with pytest.raises(TemplateDefectError):
            convert_to_template("text++#")

    def test_unterminated_generated_span(self) -> None:
        with pytest.raises(TemplateDefectError):
            convert_to_template("#++text")

    def test_unterminated_real_only_span(self) -> None:
        with pytest.raises(TemplateDefectError):
            convert_to_template("#--#text")

    def test_leftover_fragment_marker(self) -> None:
        with pytest.raises(TemplateDefectError) as info:
            convert_to_template("a#==Orphan==#b")
        assert info.value.key == "Orphan"


# ===========================================================================
# TemplateStore
# ===========================================================================


class TestTemplateStore:
    """Tests for the packaged master template and the store API."""

    @pytest.fixture(scope="class")
    def store(self) -> TemplateStore:
        return TemplateStore.default()

    def test_every_fragment_key_extracted(self, store: TemplateStore) -> None:
        for key in FRAGMENT_KEYS:
            assert store.fragment(key).strip()

    def test_fragments_reinsert_at_their_markers(self) -> None:
        source = DEFAULT_TEMPLATE_PATH.read_text(encoding="utf-8")
        current = source
        cuts: List[Tuple[int, str]] = []
        for key in FRAGMENT_KEYS:
            head = current[: current.index(f"#=={key}==#")]
            fragment, current = extract(current, key)
            cuts.append((len(_FRAGMENT_MARKER_RE.sub("", head)), fragment))

        rebuilt = current
        for offset, fragment in reversed(cuts):
            rebuilt = rebuilt[:offset] + fragment + rebuilt[offset:]
        assert rebuilt == _FRAGMENT_MARKER_RE.sub("", source)

    def test_root_has_no_decoration_left(self, store: TemplateStore) -> None:
        for marker in ("#==", "#--#", "#++", "++#"):
            assert marker not in store.root

    def test_root_keeps_the_optional_span(self, store: TemplateStore) -> None:
        assert store.root.count("#--?--#") == 2
        assert "self._builder = builder" in store.root

    def test_root_placeholders(self, store: TemplateStore) -> None:
        for key in (
            "IMPORTS",
            "TABLE",
            "PARENT",
            "COLUMN_NAMES_PART",
            "PRIMARY_KEY_PART",
            "FOREIGN_KEYS_PART",
            "ROW_PROPERTY_ACCESSOR_PART",
            "ROW_RELATIONSHIP_PART",
            "COLUMN_PART1",
            "COLUMN_PART2",
            "TABLE_RELATIONSHIP_PART",
        ):
            assert f"[[{key}]]" in store.root, key

    def test_root_header_comes_from_real_only_trick(self, store: TemplateStore) -> None:
        assert store.root.startswith("# Generated by facadegen from [[PATH]].")
        assert "Master template" not in store.root

    def test_column_fragment(self, store: TemplateStore) -> None:
        fragment = store.fragment("ColumnNamesPart")
        assert "[[COLUMN]] = Column(" in fragment
        assert fragment.startswith("\n")

    def test_primary_key_fragment_drops_sample_columns(self, store: TemplateStore) -> None:
        fragment = store.fragment("PrimaryKeyPart")
        assert '"id"' not in fragment
        assert "columns=([[PK_COLUMNS]],)" in fragment

    def test_unknown_fragment(self, store: TemplateStore) -> None:
        with pytest.raises(CallerDefectError):
            store.fragment("NoSuchPart")

    def test_source_path_recorded(self, store: TemplateStore) -> None:
        assert store.source_path is not None
        assert store.source_path.name == "table_facade.py.tmpl"

    def test_from_source_with_custom_keys(self) -> None:
        store = TemplateStore.from_source(
            "root [[A]]#==Item==#\n- #++[[X]]++##--#sample#--##==Item==#",
            keys=("Item",),
        )
        assert store.root == "root [[A]]"
        assert store.fragment("Item") == "\n- [[X]]"
        assert store.source_path is None

    def test_load_from_path(self, tmp_path, store: TemplateStore) -> None:
        assert store.source_path is not None
        path = tmp_path / "copy.tmpl"
        path.write_text(store.source_path.read_text(encoding="utf-8"), encoding="utf-8")

        loaded = TemplateStore.load(path)
        assert loaded.source_path == path
        assert loaded.root == store.root
        assert loaded.fragment("ForeignKeysPart") == store.fragment("ForeignKeysPart")

    def test_default_template_missing_fragment_is_defect(self) -> None:
        with pytest.raises(TemplateDefectError):
            TemplateStore.from_source("no markers at all")
