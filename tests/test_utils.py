"""
tests/test_utils.py
Unit tests for facadegen.utils.
"""

from __future__ import annotations

import pathlib

import pytest

from facadegen.utils import (
    Timer,
    add_import,
    build_import_block,
    class_path_import,
    count_lines,
    decorate,
    escape_docstring,
    escape_literal,
    is_legal_identifier,
    package_segment,
    quote_join,
    read_file,
    safe_identifier,
    safe_name,
    split_lines,
    write_file,
)


class TestIdentifiers:
    @pytest.mark.parametrize("name", ["ORDERS", "_x", "customer_id", "Name2"])
    def test_legal(self, name: str) -> None:
        assert is_legal_identifier(name)

    @pytest.mark.parametrize("name", ["", "class", "2nd", "my col", "a-b"])
    def test_illegal(self, name: str) -> None:
        assert not is_legal_identifier(name)

    def test_safe_name(self) -> None:
        assert safe_name("ORDERS") == "ORDERS"
        assert safe_name("class") == "_class"
        assert safe_name("2nd") == "_2nd"
        assert safe_name("my col") == "_my col"

    def test_safe_identifier(self) -> None:
        assert safe_identifier("FK ORDERS-1") == "FK_ORDERS_1"
        assert safe_identifier("1st") == "_1st"
        assert safe_identifier("") == "_"

    def test_package_segment(self) -> None:
        assert package_segment("") == ""
        assert package_segment("Public") == "public"
        assert package_segment("sales-2024") == "sales_2024"
        assert package_segment("import") == "import_"


class TestLiterals:
    def test_escape_literal(self) -> None:
        assert escape_literal('say "hi"\n\tC:\\') == 'say \\"hi\\"\\n\\tC:\\\\'
        assert escape_literal(None) == ""
        assert escape_literal("") == ""

    def test_escape_docstring(self) -> None:
        assert escape_docstring('a "b" \\') == 'a \\"b\\" \\\\'

    def test_split_lines(self) -> None:
        assert split_lines("a\r\nb\rc\n") == ["a", "b", "c"]
        assert split_lines(None) == []

    def test_decorate(self) -> None:
        assert decorate("one\n\ntwo", "    # ") == "    # one\n    #\n    # two"

    def test_quote_join(self) -> None:
        assert quote_join(["id", 'we"ird']) == '"id", "we\\"ird"'
        assert quote_join([]) == ""


class TestImports:
    def test_class_path_import(self) -> None:
        assert class_path_import("app.base.Facade") == ("app.base", "Facade")

    def test_block_is_sorted_and_deduplicated(self) -> None:
        imports = {}
        add_import(imports, "typing", "Optional")
        add_import(imports, "decimal", "Decimal")
        add_import(imports, "typing", "Any")
        add_import(imports, "typing", "Optional")
        add_import(imports, None, "int")
        assert build_import_block(imports) == (
            "from decimal import Decimal\nfrom typing import Any, Optional"
        )

    def test_bare_module_import(self) -> None:
        assert build_import_block({"numbers": set()}) == "import numbers"


class TestFiles:
    def test_write_and_read(self, tmp_path: pathlib.Path) -> None:
        target = tmp_path / "deep" / "dir" / "unit.py"
        assert write_file(target, "x = 'é'\n") == len("x = 'é'\n".encode("utf-8"))
        assert read_file(target) == "x = 'é'\n"
        assert [p.name for p in target.parent.iterdir()] == ["unit.py"]

    def test_read_keeps_line_endings(self, tmp_path: pathlib.Path) -> None:
        target = tmp_path / "unit.py"
        target.write_bytes(b"a = 1\r\nb = 2\r\n")
        assert read_file(target) == "a = 1\r\nb = 2\r\n"

    def test_read_missing(self, tmp_path: pathlib.Path) -> None:
        assert read_file(tmp_path / "missing.py") is None

    def test_failed_write_keeps_old_file(self, tmp_path: pathlib.Path) -> None:
        target = tmp_path / "unit.py"
        write_file(target, "old\n")
        with pytest.raises(UnicodeEncodeError):
            write_file(target, "naïve\n", encoding="ascii")
        assert target.read_text(encoding="utf-8") == "old\n"

    def test_count_lines(self) -> None:
        assert count_lines("") == 0
        assert count_lines("a") == 1
        assert count_lines("a\nb\n") == 2


class TestTimer:
    def test_measures(self) -> None:
        with Timer("noop") as timer:
            pass
        assert timer.elapsed >= 0.0
        assert "noop" in repr(timer)
