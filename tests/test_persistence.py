"""
tests/test_persistence.py
Unit tests for facadegen.persistence (FilePersistence, DatabaseInfo).
"""

from __future__ import annotations

import json
import pathlib

import pytest

from facadegen.models import TablePath
from facadegen.persistence import DATABASE_INFO_FILE, DatabaseInfo, FilePersistence
from facadegen.utils import sha256_hex


def _path(schema_name: str, table_name: str) -> TablePath:
    return TablePath(schema_name=schema_name, table_name=table_name)


class TestLayout:
    def test_unit_path(self, persistence: FilePersistence, output_dir: pathlib.Path) -> None:
        unit = persistence.unit_path(_path("shop", "ORDERS"))
        assert unit == output_dir.resolve() / "facades_test" / "shop" / "ORDERS.py"

    def test_dotted_root_package(self, output_dir: pathlib.Path) -> None:
        persistence = FilePersistence(output_dir, "app.facades")
        assert persistence.package_name("Sales-2024") == "app.facades.sales_2024"
        assert persistence.unit_path(_path("Sales-2024", "T")).parts[-4:] == (
            "app", "facades", "sales_2024", "T.py",
        )

    def test_empty_schema_uses_root_package(self, persistence: FilePersistence) -> None:
        assert persistence.package_name("") == "facades_test"
        assert persistence.unit_path(_path("", "ORDERS")).parent.name == "facades_test"


class TestUnitIO:
    def test_write_creates_packages(
        self, persistence: FilePersistence, output_dir: pathlib.Path
    ) -> None:
        persistence.write_text(_path("shop", "ORDERS"), "x = 1\n")
        assert (output_dir / "facades_test" / "__init__.py").is_file()
        assert (output_dir / "facades_test" / "shop" / "__init__.py").is_file()

    def test_existing_init_is_kept(
        self, persistence: FilePersistence, output_dir: pathlib.Path
    ) -> None:
        init_file = output_dir / "facades_test" / "__init__.py"
        init_file.parent.mkdir(parents=True)
        init_file.write_text("CUSTOM = True\n", encoding="utf-8")
        persistence.write_text(_path("shop", "ORDERS"), "x = 1\n")
        assert init_file.read_text(encoding="utf-8") == "CUSTOM = True\n"

    def test_round_trip_and_record(self, persistence: FilePersistence) -> None:
        path = _path("shop", "ORDERS")
        assert not persistence.exists(path)

        record = persistence.write_text(path, "a = 1\nb = 2\n")
        assert persistence.exists(path)
        assert persistence.load_text(path) == "a = 1\nb = 2\n"
        assert record.relative_path == "facades_test/shop/ORDERS.py"
        assert record.line_count == 2
        assert record.size_bytes == 12
        assert record.sha256 == sha256_hex("a = 1\nb = 2\n")
        assert persistence.records == [record]

    def test_overwrite(self, persistence: FilePersistence) -> None:
        path = _path("shop", "ORDERS")
        persistence.write_text(path, "old\n")
        persistence.write_text(path, "new\n")
        assert persistence.load_text(path) == "new\n"
        assert len(persistence.records) == 2

    def test_crlf_unit_differs_from_lf_text(self, persistence: FilePersistence) -> None:
        path = _path("shop", "ORDERS")
        persistence.write_text(path, "a = 1\r\nb = 2\r\n")
        assert persistence.load_text(path) == "a = 1\r\nb = 2\r\n"
        assert persistence.load_text(path) != "a = 1\nb = 2\n"

    def test_load_missing_unit(self, persistence: FilePersistence) -> None:
        with pytest.raises(FileNotFoundError):
            persistence.load_text(_path("shop", "NOPE"))

    def test_charset(self, output_dir: pathlib.Path) -> None:
        persistence = FilePersistence(output_dir, "facades_test", charset="latin-1")
        path = _path("", "T")
        record = persistence.write_text(path, "# café\n")
        assert record.size_bytes == 7
        assert persistence.unit_path(path).read_bytes() == "# café\n".encode("latin-1")
        assert persistence.load_text(path) == "# café\n"


class TestDatabaseInfo:
    def test_write(self, persistence: FilePersistence, output_dir: pathlib.Path) -> None:
        info = DatabaseInfo(
            stored_identifier="UPPER",
            root_package="facades_test",
            generator_version="1.0.0",
            schemas=["shop"],
        )
        target = persistence.write_database_info(info)

        assert target == output_dir.resolve() / "facades_test" / DATABASE_INFO_FILE
        assert json.loads(target.read_text(encoding="utf-8")) == info.to_dict()
        assert target.read_text(encoding="utf-8").endswith("}\n")

    def test_identical_info_writes_identical_bytes(self) -> None:
        assert DatabaseInfo(schemas=["a"]).to_json() == DatabaseInfo(schemas=["a"]).to_json()
