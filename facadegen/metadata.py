# File: facadegen/metadata.py
"""
facadegen - Schema Metadata
============================
Where table descriptions come from, and how they are assembled into the
relationship trees the unit generator consumes.

Providers (all satisfy ``MetadataProvider``):

* ``SchemaFileMetadata`` — a YAML / JSON schema document.
* ``SQLAlchemyMetadata`` — a live database reflected through
  ``sqlalchemy.inspect``.
* ``CachedMetadata`` — wraps another provider and memoises per-table
  lookups for the lifetime of a run.

``RelationshipFactory`` builds one ``RelationshipNode`` per table: the table
itself plus one child per outgoing foreign key.  Its cache is cleared by the
build orchestrator between iterations.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Set, Tuple, Union, runtime_checkable

import sqlalchemy
from sqlalchemy import types as sqltypes
from sqlalchemy.engine import Engine

from facadegen.errors import CallerDefectError
from facadegen.models import (
    STANDARD_TYPES,
    ColumnDescriptor,
    ColumnSpec,
    CrossReferenceDescriptor,
    PrimaryKeyDescriptor,
    RelationshipNode,
    SchemaDefinition,
    TableDescriptor,
    TablePath,
    TableSpec,
    TypeDescriptor,
    load_document,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("facadegen.metadata")

# ---------------------------------------------------------------------------
# SQL type table
# ---------------------------------------------------------------------------

# SQL type name → (JDBC-style type code, STANDARD_TYPES key)
SQL_TYPES: Dict[str, Tuple[int, str]] = {
    "INTEGER": (4, "int"),
    "INT": (4, "int"),
    "BIGINT": (-5, "int"),
    "SMALLINT": (5, "int"),
    "TINYINT": (-6, "int"),
    "DECIMAL": (3, "decimal"),
    "NUMERIC": (2, "decimal"),
    "REAL": (7, "float"),
    "FLOAT": (6, "float"),
    "DOUBLE": (8, "float"),
    "DOUBLE PRECISION": (8, "float"),
    "BOOLEAN": (16, "bool"),
    "BIT": (-7, "bool"),
    "CHAR": (1, "str"),
    "NCHAR": (-15, "str"),
    "VARCHAR": (12, "str"),
    "NVARCHAR": (-9, "str"),
    "LONGVARCHAR": (-1, "str"),
    "TEXT": (-1, "str"),
    "CLOB": (2005, "str"),
    "DATE": (91, "date"),
    "TIME": (92, "time"),
    "TIMESTAMP": (93, "datetime"),
    "DATETIME": (93, "datetime"),
    "INTERVAL": (1111, "timedelta"),
    "UUID": (1111, "uuid"),
    "BINARY": (-2, "bytes"),
    "VARBINARY": (-3, "bytes"),
    "BLOB": (2004, "bytes"),
    "OTHER": (1111, "object"),
}

ARRAY_TYPE_CODE: int = 2003
OTHER_TYPE_CODE: int = 1111

_TYPE_ARGS_RE: re.Pattern[str] = re.compile(r"\s*\(.*\)\s*$")

# Identifier storage conventions per SQLAlchemy dialect name.
_STORED_IDENTIFIERS: Dict[str, str] = {
    "postgresql": "LOWER",
    "oracle": "UPPER",
    "db2": "UPPER",
    "snowflake": "UPPER",
}


def resolve_sql_type(type_name: str, array: bool = False) -> Tuple[int, TypeDescriptor]:
    """
    Map a SQL type name (``"VARCHAR(40)"`` is fine) to its type code and
    Python value type.  Unknown names map to ``OTHER`` / ``Any``.
    """
    base: str = _TYPE_ARGS_RE.sub("", type_name).strip().upper()
    code, key = SQL_TYPES.get(base, (OTHER_TYPE_CODE, "object"))
    value_type: TypeDescriptor = STANDARD_TYPES[key]
    if array:
        return ARRAY_TYPE_CODE, value_type.as_array()
    return code, value_type


def primary_key_name(table_name: str) -> str:
    """Name given to a primary key the schema leaves unnamed."""
    return f"PK_{table_name}"


def foreign_key_name(table_name: str, columns: List[str]) -> str:
    """Name given to a foreign key the schema leaves unnamed."""
    return f"FK_{table_name}_{'_'.join(columns)}"


# ---------------------------------------------------------------------------
# Provider protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class MetadataProvider(Protocol):
    """Read-only view of a schema.  Deterministic within one run."""

    def list_tables(self, schema_name: str) -> List[TablePath]: ...

    def table_info(self, path: TablePath) -> TableDescriptor: ...

    def primary_key(self, path: TablePath) -> PrimaryKeyDescriptor: ...

    def columns(self, path: TablePath) -> List[ColumnDescriptor]: ...

    def cross_references(self, path: TablePath) -> List[CrossReferenceDescriptor]: ...

    def stored_identifier(self) -> str: ...


# ---------------------------------------------------------------------------
# Schema document provider
# ---------------------------------------------------------------------------


class SchemaFileMetadata:
    """
    Metadata read from a ``SchemaDefinition`` document.

    Usage::

        metadata = SchemaFileMetadata.from_file(Path("schema.yaml"))
        metadata.list_tables("public")
    """

    def __init__(self, definition: SchemaDefinition) -> None:
        self._definition: SchemaDefinition = definition

    @classmethod
    def from_file(cls, path: Path) -> "SchemaFileMetadata":
        """
        Raises:
            FileNotFoundError: If the document does not exist.
            ValueError: If it cannot be parsed or fails validation.
        """
        data: Dict[str, Any] = load_document(path)
        definition: SchemaDefinition = SchemaDefinition.model_validate(data)
        logger.info(
            "Loaded schema document %s: %d table(s).", path, len(definition.tables)
        )
        return cls(definition)

    @property
    def definition(self) -> SchemaDefinition:
        return self._definition

    def _table(self, path: TablePath) -> TableSpec:
        table: Optional[TableSpec] = self._definition.get_table(path)
        if table is None:
            raise CallerDefectError(f"Unknown table: {path}")
        return table

    def list_tables(self, schema_name: str) -> List[TablePath]:
        return [t.path for t in self._definition.tables if t.schema_name == schema_name]

    def table_info(self, path: TablePath) -> TableDescriptor:
        table: TableSpec = self._table(path)
        return TableDescriptor(path=path, name=table.name, kind=table.kind, remarks=table.remarks)

    def primary_key(self, path: TablePath) -> PrimaryKeyDescriptor:
        table: TableSpec = self._table(path)
        if table.primary_key is None or not table.primary_key.columns:
            return PrimaryKeyDescriptor()
        return PrimaryKeyDescriptor(
            name=table.primary_key.name or primary_key_name(table.name),
            column_names=list(table.primary_key.columns),
            pseudo=table.primary_key.pseudo,
        )

    def columns(self, path: TablePath) -> List[ColumnDescriptor]:
        table: TableSpec = self._table(path)
        key_columns: Set[str] = set(table.primary_key.columns) if table.primary_key else set()
        return [
            self._column(spec, position, spec.name in key_columns)
            for position, spec in enumerate(table.columns, start=1)
        ]

    @staticmethod
    def _column(spec: ColumnSpec, position: int, primary_key: bool) -> ColumnDescriptor:
        code, value_type = resolve_sql_type(spec.type, spec.array)
        return ColumnDescriptor(
            name=spec.name,
            value_type=value_type,
            db_type=spec.db_type if spec.db_type is not None else code,
            type_name=_TYPE_ARGS_RE.sub("", spec.type).strip().upper(),
            size=spec.size,
            has_decimal_digits=spec.decimal_digits is not None,
            decimal_digits=spec.decimal_digits or 0,
            not_null=spec.not_null,
            default_value=spec.default,
            remarks=spec.remarks,
            ordinal_position=position,
            primary_key=primary_key,
        )

    def cross_references(self, path: TablePath) -> List[CrossReferenceDescriptor]:
        table: TableSpec = self._table(path)
        return [
            CrossReferenceDescriptor(
                foreign_key_name=fk.name,
                foreign_key_columns=list(fk.columns),
                primary_key_columns=list(fk.ref_columns),
                pseudo=fk.pseudo,
                referenced=TablePath.parse(fk.references, table.schema_name),
            )
            for fk in table.foreign_keys
        ]

    def stored_identifier(self) -> str:
        return self._definition.stored_identifier


# ---------------------------------------------------------------------------
# Live database provider
# ---------------------------------------------------------------------------


class SQLAlchemyMetadata:
    """
    Metadata reflected from a live database through the SQLAlchemy
    Inspector.

    The empty schema name stands for the connection's default schema.
    Unnamed primary and foreign keys receive synthesised names.
    """

    def __init__(self, engine: Union[Engine, str]) -> None:
        if isinstance(engine, str):
            engine = sqlalchemy.create_engine(engine)
        self._engine: Engine = engine
        self._inspector: Any = sqlalchemy.inspect(engine)

    @property
    def engine(self) -> Engine:
        return self._engine

    @staticmethod
    def _schema(path_schema: str) -> Optional[str]:
        return path_schema or None

    def list_tables(self, schema_name: str) -> List[TablePath]:
        schema: Optional[str] = self._schema(schema_name)
        names: List[str] = list(self._inspector.get_table_names(schema=schema))
        names.extend(self._inspector.get_view_names(schema=schema))
        return [TablePath(schema_name=schema_name, table_name=name) for name in sorted(names)]

    def table_info(self, path: TablePath) -> TableDescriptor:
        schema: Optional[str] = self._schema(path.schema_name)
        views: List[str] = self._inspector.get_view_names(schema=schema)
        kind: str = "VIEW" if path.table_name in views else "TABLE"
        try:
            comment: Dict[str, Any] = self._inspector.get_table_comment(path.table_name, schema=schema)
        except NotImplementedError:
            comment = {}
        return TableDescriptor(
            path=path, name=path.table_name, kind=kind, remarks=comment.get("text")
        )

    def primary_key(self, path: TablePath) -> PrimaryKeyDescriptor:
        constraint: Dict[str, Any] = self._inspector.get_pk_constraint(
            path.table_name, schema=self._schema(path.schema_name)
        ) or {}
        columns: List[str] = list(constraint.get("constrained_columns") or [])
        if not columns:
            return PrimaryKeyDescriptor()
        return PrimaryKeyDescriptor(
            name=constraint.get("name") or primary_key_name(path.table_name),
            column_names=columns,
        )

    def columns(self, path: TablePath) -> List[ColumnDescriptor]:
        key_columns: Set[str] = set(self.primary_key(path).column_names)
        reflected: List[Dict[str, Any]] = self._inspector.get_columns(
            path.table_name, schema=self._schema(path.schema_name)
        )
        return [
            self._column(column, position, column["name"] in key_columns)
            for position, column in enumerate(reflected, start=1)
        ]

    @staticmethod
    def _column(column: Dict[str, Any], position: int, primary_key: bool) -> ColumnDescriptor:
        sa_type: Any = column["type"]
        array: bool = isinstance(sa_type, sqltypes.ARRAY)
        element: Any = sa_type.item_type if array else sa_type

        type_name: str = type(element).__name__.upper()
        if type_name not in SQL_TYPES:
            type_name = _generic_type_name(element)
        code, value_type = resolve_sql_type(type_name, array)

        size: int = 0
        decimal_digits: Optional[int] = None
        if isinstance(element, sqltypes.Numeric) and not isinstance(element, sqltypes.Float):
            size = element.precision or 0
            decimal_digits = element.scale
        else:
            size = getattr(element, "length", None) or 0

        default: Any = column.get("default")
        return ColumnDescriptor(
            name=column["name"],
            value_type=value_type,
            db_type=code,
            type_name=type_name,
            size=size,
            has_decimal_digits=decimal_digits is not None,
            decimal_digits=decimal_digits or 0,
            not_null=not column.get("nullable", True),
            default_value=None if default is None else str(default),
            remarks=column.get("comment"),
            ordinal_position=position,
            primary_key=primary_key,
        )

    def cross_references(self, path: TablePath) -> List[CrossReferenceDescriptor]:
        reflected: List[Dict[str, Any]] = self._inspector.get_foreign_keys(
            path.table_name, schema=self._schema(path.schema_name)
        ) or []
        references: List[CrossReferenceDescriptor] = []
        for fk in reflected:
            columns: List[str] = list(fk["constrained_columns"])
            referred_schema: str = fk.get("referred_schema") or path.schema_name
            references.append(
                CrossReferenceDescriptor(
                    foreign_key_name=fk.get("name") or foreign_key_name(path.table_name, columns),
                    foreign_key_columns=columns,
                    primary_key_columns=list(fk["referred_columns"]),
                    referenced=TablePath(
                        schema_name=referred_schema, table_name=fk["referred_table"]
                    ),
                )
            )
        return references

    def stored_identifier(self) -> str:
        return _STORED_IDENTIFIERS.get(self._engine.dialect.name, "AS_IS")


def _generic_type_name(sa_type: Any) -> str:
    """Fallback for dialect-specific types: classify by generic type family."""
    if isinstance(sa_type, sqltypes.Boolean):
        return "BOOLEAN"
    if isinstance(sa_type, sqltypes.BigInteger):
        return "BIGINT"
    if isinstance(sa_type, sqltypes.SmallInteger):
        return "SMALLINT"
    if isinstance(sa_type, sqltypes.Integer):
        return "INTEGER"
    if isinstance(sa_type, sqltypes.Float):
        return "FLOAT"
    if isinstance(sa_type, sqltypes.Numeric):
        return "NUMERIC"
    if isinstance(sa_type, sqltypes.Text):
        return "TEXT"
    if isinstance(sa_type, sqltypes.String):
        return "VARCHAR"
    if isinstance(sa_type, sqltypes.DateTime):
        return "TIMESTAMP"
    if isinstance(sa_type, sqltypes.Date):
        return "DATE"
    if isinstance(sa_type, sqltypes.Time):
        return "TIME"
    if isinstance(sa_type, sqltypes.Interval):
        return "INTERVAL"
    if isinstance(sa_type, sqltypes.Uuid):
        return "UUID"
    if isinstance(sa_type, sqltypes.LargeBinary):
        return "BLOB"
    return "OTHER"


# ---------------------------------------------------------------------------
# Metadata cache
# ---------------------------------------------------------------------------


class CachedMetadata:
    """
    Memoises another provider's per-table lookups.

    Owned by whoever drives a run (the CLI builds one per invocation) and
    shared by reference with the relationship factory and the generator.
    """

    def __init__(self, provider: MetadataProvider) -> None:
        self._provider: MetadataProvider = provider
        self._tables: Dict[str, List[TablePath]] = {}
        self._info: Dict[TablePath, TableDescriptor] = {}
        self._keys: Dict[TablePath, PrimaryKeyDescriptor] = {}
        self._columns: Dict[TablePath, List[ColumnDescriptor]] = {}
        self._references: Dict[TablePath, List[CrossReferenceDescriptor]] = {}

    def list_tables(self, schema_name: str) -> List[TablePath]:
        if schema_name not in self._tables:
            self._tables[schema_name] = self._provider.list_tables(schema_name)
        return list(self._tables[schema_name])

    def table_info(self, path: TablePath) -> TableDescriptor:
        if path not in self._info:
            self._info[path] = self._provider.table_info(path)
        return self._info[path]

    def primary_key(self, path: TablePath) -> PrimaryKeyDescriptor:
        if path not in self._keys:
            self._keys[path] = self._provider.primary_key(path)
        return self._keys[path]

    def columns(self, path: TablePath) -> List[ColumnDescriptor]:
        if path not in self._columns:
            self._columns[path] = self._provider.columns(path)
        return list(self._columns[path])

    def cross_references(self, path: TablePath) -> List[CrossReferenceDescriptor]:
        if path not in self._references:
            self._references[path] = self._provider.cross_references(path)
        return list(self._references[path])

    def stored_identifier(self) -> str:
        return self._provider.stored_identifier()

    def clear(self) -> None:
        for cache in (self._tables, self._info, self._keys, self._columns, self._references):
            cache.clear()

    def __len__(self) -> int:
        return len(self._columns)


# ---------------------------------------------------------------------------
# Relationship factory
# ---------------------------------------------------------------------------


class RelationshipFactory:
    """
    Builds ``RelationshipNode`` trees: the table plus one child per
    outgoing foreign key, in the provider's foreign-key order.
    """

    def __init__(self, metadata: MetadataProvider) -> None:
        self._metadata: MetadataProvider = metadata
        self._cache: Dict[TablePath, RelationshipNode] = {}

    @property
    def metadata(self) -> MetadataProvider:
        return self._metadata

    def resolve(self, path: TablePath) -> RelationshipNode:
        cached: Optional[RelationshipNode] = self._cache.get(path)
        if cached is not None:
            return cached

        children: List[RelationshipNode] = [
            RelationshipNode(
                path=reference.referenced,
                columns=self._metadata.columns(reference.referenced),
                primary_key=self._metadata.primary_key(reference.referenced),
                cross_reference=reference,
            )
            for reference in self._metadata.cross_references(path)
        ]
        node: RelationshipNode = RelationshipNode(
            path=path,
            columns=self._metadata.columns(path),
            primary_key=self._metadata.primary_key(path),
            children=children,
        )
        self._cache[path] = node
        logger.debug("Resolved %r", node)
        return node

    def clear_cache(self) -> None:
        if self._cache:
            logger.debug("Relationship cache cleared (%d tree(s)).", len(self._cache))
        self._cache.clear()


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "SQL_TYPES",
    "ARRAY_TYPE_CODE",
    "OTHER_TYPE_CODE",
    "resolve_sql_type",
    "primary_key_name",
    "foreign_key_name",
    "MetadataProvider",
    "SchemaFileMetadata",
    "SQLAlchemyMetadata",
    "CachedMetadata",
    "RelationshipFactory",
]

logger.debug("facadegen.metadata loaded — %d public symbols.", len(__all__))
