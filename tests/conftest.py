"""
tests/conftest.py
Shared fixtures for the facadegen test suite.

All fixtures are session-scoped or function-scoped as appropriate.
No external mocking libraries are used; real file I/O is performed
inside temporary directories managed by pytest's tmp_path fixtures.
"""

from __future__ import annotations

import copy
import importlib
import pathlib
import sys
from typing import Any, Callable, Dict, Iterator

import pytest
import sqlalchemy
import yaml

from facadegen.generator import TableFacadeGenerator
from facadegen.metadata import RelationshipFactory, SchemaFileMetadata
from facadegen.models import GeneratorConfig, SchemaDefinition
from facadegen.persistence import FilePersistence


# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------

ROOT_DIR: pathlib.Path = pathlib.Path(__file__).resolve().parent.parent
SCHEMA_EXAMPLE_PATH: pathlib.Path = ROOT_DIR / "schema_example.yaml"

ROOT_PACKAGE: str = "facades_test"


# ---------------------------------------------------------------------------
# Raw schema data fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def raw_schema_dict() -> Dict[str, Any]:
    """Load the reference schema_example.yaml once per session and return as dict."""
    assert SCHEMA_EXAMPLE_PATH.exists(), (
        f"Reference schema not found at {SCHEMA_EXAMPLE_PATH}. "
        "Make sure schema_example.yaml is in the project root."
    )
    with open(SCHEMA_EXAMPLE_PATH, "r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    assert isinstance(data, dict), "Top-level YAML must be a mapping."
    return data


@pytest.fixture()
def schema_dict(raw_schema_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Return a deep copy so each test can mutate freely."""
    return copy.deepcopy(raw_schema_dict)


@pytest.fixture()
def schema_yaml_path(schema_dict: Dict[str, Any], tmp_path: pathlib.Path) -> pathlib.Path:
    """Write the schema dict to a temporary YAML file and return its path."""
    path = tmp_path / "schema.yaml"
    with open(path, "w", encoding="utf-8") as fh:
        yaml.dump(schema_dict, fh, default_flow_style=False, allow_unicode=True)
    return path


# ---------------------------------------------------------------------------
# Metadata & generator fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def metadata(schema_dict: Dict[str, Any]) -> SchemaFileMetadata:
    return SchemaFileMetadata(SchemaDefinition.model_validate(schema_dict))


@pytest.fixture()
def factory(metadata: SchemaFileMetadata) -> RelationshipFactory:
    return RelationshipFactory(metadata)


@pytest.fixture()
def config() -> GeneratorConfig:
    return GeneratorConfig(root_package=ROOT_PACKAGE)


@pytest.fixture()
def generator(metadata: SchemaFileMetadata, config: GeneratorConfig) -> TableFacadeGenerator:
    return TableFacadeGenerator(metadata, config)


@pytest.fixture()
def guarded_generator(metadata: SchemaFileMetadata) -> TableFacadeGenerator:
    return TableFacadeGenerator(
        metadata, GeneratorConfig(root_package=ROOT_PACKAGE, use_null_guard=True)
    )


@pytest.fixture()
def output_dir(tmp_path: pathlib.Path) -> pathlib.Path:
    return tmp_path / "out"


@pytest.fixture()
def persistence(output_dir: pathlib.Path) -> FilePersistence:
    return FilePersistence(output_dir, ROOT_PACKAGE)


# ---------------------------------------------------------------------------
# Importing generated units
# ---------------------------------------------------------------------------


@pytest.fixture()
def import_unit(
    output_dir: pathlib.Path, monkeypatch: pytest.MonkeyPatch
) -> Iterator[Callable[[str], Any]]:
    """Import generated modules from ``output_dir``; unloads them afterwards."""
    monkeypatch.syspath_prepend(str(output_dir))

    def _import(dotted: str) -> Any:
        importlib.invalidate_caches()
        return importlib.import_module(dotted)

    yield _import

    for name in list(sys.modules):
        if name == ROOT_PACKAGE or name.startswith(f"{ROOT_PACKAGE}."):
            del sys.modules[name]


# ---------------------------------------------------------------------------
# Live database fixture
# ---------------------------------------------------------------------------

SQLITE_DDL = (
    """
    CREATE TABLE CUSTOMERS (
        id INTEGER NOT NULL PRIMARY KEY,
        name VARCHAR(80) NOT NULL,
        email VARCHAR(120)
    )
    """,
    """
    CREATE TABLE ORDERS (
        id INTEGER NOT NULL PRIMARY KEY,
        customer_id INTEGER NOT NULL REFERENCES CUSTOMERS (id),
        total NUMERIC(10, 2) NOT NULL,
        note TEXT
    )
    """,
)


@pytest.fixture()
def sqlite_url(tmp_path: pathlib.Path) -> str:
    """A file-backed SQLite database with unnamed primary and foreign keys."""
    url = f"sqlite:///{tmp_path / 'shop.db'}"
    engine = sqlalchemy.create_engine(url)
    with engine.begin() as connection:
        for statement in SQLITE_DDL:
            connection.execute(sqlalchemy.text(statement))
    engine.dispose()
    return url


@pytest.fixture()
def sqlite_twin_dict() -> Dict[str, Any]:
    """The schema document describing exactly what ``sqlite_url`` holds."""
    return {
        "tables": [
            {
                "name": "CUSTOMERS",
                "columns": [
                    {"name": "id", "type": "INTEGER", "not_null": True},
                    {"name": "name", "type": "VARCHAR", "size": 80, "not_null": True},
                    {"name": "email", "type": "VARCHAR", "size": 120},
                ],
                "primary_key": {"columns": ["id"]},
            },
            {
                "name": "ORDERS",
                "columns": [
                    {"name": "id", "type": "INTEGER", "not_null": True},
                    {"name": "customer_id", "type": "INTEGER", "not_null": True},
                    {
                        "name": "total",
                        "type": "NUMERIC",
                        "size": 10,
                        "decimal_digits": 2,
                        "not_null": True,
                    },
                    {"name": "note", "type": "TEXT"},
                ],
                "primary_key": {"columns": ["id"]},
                "foreign_keys": [
                    {
                        "name": "FK_ORDERS_customer_id",
                        "columns": ["customer_id"],
                        "references": "CUSTOMERS",
                        "ref_columns": ["id"],
                    }
                ],
            },
        ]
    }
