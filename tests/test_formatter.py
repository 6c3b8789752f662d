"""
tests/test_formatter.py
Unit tests for facadegen.formatter (substitution, optional spans, hooks).
"""

from __future__ import annotations

import logging

import pytest

from facadegen.errors import TemplateDefectError, UnboundPlaceholderError
from facadegen.formatter import (
    CodeFormatter,
    DefaultCodeFormatter,
    black_source_formatter,
    erase,
    format_template,
)
from facadegen.generator import TableFacadeGenerator
from facadegen.models import TablePath


def shop_path(table_name: str) -> TablePath:
    return TablePath(schema_name="shop", table_name=table_name)


# ===========================================================================
# format_template
# ===========================================================================


class TestFormatTemplate:
    def test_substitutes_every_occurrence(self) -> None:
        assert format_template("[[A]]-[[B]]-[[A]]", {"A": "x", "B": "y"}) == "x-y-x"

    def test_none_value_renders_nothing(self) -> None:
        assert format_template("a[[X]]b", {"X": None}) == "ab"

    def test_substituted_values_are_not_rescanned(self) -> None:
        assert format_template("[[A]]", {"A": "[[B]]", "B": "no"}) == "[[B]]"

    def test_text_outside_placeholders_untouched(self) -> None:
        text = "x = [y]  # [[ not a placeholder ]] #--?--#"
        assert format_template(text, {}) == text

    def test_unused_arguments_are_ignored(self) -> None:
        assert format_template("plain", {"UNUSED": "v"}) == "plain"

    def test_unbound_placeholder_raises_in_strict_mode(self) -> None:
        with pytest.raises(UnboundPlaceholderError) as info:
            format_template("a[[MISSING]]b", {})
        assert info.value.name == "MISSING"

    def test_unbound_placeholder_renders_empty_when_lenient(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.WARNING, logger="facadegen.formatter"):
            result = format_template("a[[MISSING]]b", {}, strict=False)
        assert result == "ab"
        assert "MISSING" in caplog.text


# ===========================================================================
# erase
# ===========================================================================


class TestErase:
    SOURCE = "head\n#--?--#kept when asked\n#--?--#tail"

    def test_keep_removes_only_markers(self) -> None:
        assert erase(self.SOURCE, keep=True) == "head\nkept when asked\ntail"

    def test_drop_removes_span(self) -> None:
        assert erase(self.SOURCE, keep=False) == "head\ntail"

    def test_drop_is_idempotent(self) -> None:
        once = erase(self.SOURCE, keep=False)
        assert erase(once, keep=False) == once

    def test_keep_leaves_inner_text_unchanged(self) -> None:
        source = "a#--?--# x = [[X]]  # note\n#--?--#b"
        assert erase(source, keep=True) == "a x = [[X]]  # note\nb"

    def test_no_span_is_identity(self) -> None:
        assert erase("nothing here", keep=False) == "nothing here"

    def test_unterminated_span(self) -> None:
        with pytest.raises(TemplateDefectError):
            erase("a#--?--#b", keep=True)


# ===========================================================================
# Formatting hooks
# ===========================================================================


class _TaggedColumnsFormatter:
    """Hook that rewrites only the column-constant fragments; the rest is delegated."""

    def __init__(self) -> None:
        self._inner = DefaultCodeFormatter()

    def format(self, template, args):
        return self._inner.format(template, args)

    def format_column_names_part(self, template, args):
        return self._inner.format_column_names_part(template, args).replace(
            "= Column(", "= Column(  # hooked"
        )

    def format_primary_key_part(self, template, args):
        return self._inner.format_primary_key_part(template, args)

    def format_foreign_keys_part(self, template, args):
        return self._inner.format_foreign_keys_part(template, args)

    def format_row_property_accessor_part(self, template, args):
        return self._inner.format_row_property_accessor_part(template, args)

    def format_row_relationship_part(self, template, args):
        return self._inner.format_row_relationship_part(template, args)

    def format_relationship_column_part1(self, template, args):
        return self._inner.format_relationship_column_part1(template, args)

    def format_relationship_column_part2(self, template, args):
        return self._inner.format_relationship_column_part2(template, args)

    def format_table_relationship_part(self, template, args):
        return self._inner.format_table_relationship_part(template, args)


class TestCodeFormatterHook:
    def test_default_formatter_satisfies_protocol(self) -> None:
        assert isinstance(DefaultCodeFormatter(), CodeFormatter)

    def test_delegating_hook_satisfies_protocol(self) -> None:
        assert isinstance(_TaggedColumnsFormatter(), CodeFormatter)

    def test_custom_hook_sees_only_its_fragment_kind(self, metadata, factory, config) -> None:
        generator = TableFacadeGenerator(
            metadata, config, code_formatter=_TaggedColumnsFormatter()
        )
        text = generator.generate(factory.resolve(shop_path("CUSTOMERS")))
        assert text.count("# hooked") == 3
        assert "# hooked" not in text.split("class Row(")[1]

    def test_lenient_formatter(self) -> None:
        assert DefaultCodeFormatter(strict=False).format("[[X]]!", {}) == "!"


# ===========================================================================
# black
# ===========================================================================


class TestBlackSourceFormatter:
    def test_reformats_generated_unit(self, generator, factory) -> None:
        pytest.importorskip("black")
        text = generator.generate(factory.resolve(shop_path("ORDERS")))
        formatted = black_source_formatter()(text)

        compile(formatted, "ORDERS.py", "exec")
        assert "class ORDERS(TableFacade):" in formatted
        assert black_source_formatter()(formatted) == formatted
