# File: facadegen/models.py
"""
facadegen - Core Data Models
=============================
Pydantic V2 models describing schema metadata (tables, columns, keys and the
relationship trees built from them) together with the generator
configuration.

Two families live here:

* **Descriptors** (``TablePath``, ``ColumnDescriptor``, ...) — the read-only
  view the unit generator consumes.  Metadata providers produce them.
* **Specs** (``TableSpec``, ``SchemaDefinition``, ...) — the on-disk YAML /
  JSON schema document understood by ``SchemaFileMetadata``.
"""

from __future__ import annotations

import json
import logging
import re
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("facadegen.models")

# ---------------------------------------------------------------------------
# Shared model configuration
# ---------------------------------------------------------------------------

_SHARED_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    validate_assignment=True,
    use_enum_values=True,
    frozen=False,
    extra="forbid",
)

_FROZEN_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    use_enum_values=True,
    frozen=True,
    extra="forbid",
)

_DOTTED_IDENTIFIER_RE: re.Pattern[str] = re.compile(
    r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)*$"
)


# ---------------------------------------------------------------------------
# Value types
# ---------------------------------------------------------------------------


class TypeKind(str, Enum):
    """Shape of a column's value type."""

    PRIMITIVE = "primitive"
    ARRAY = "array"
    OBJECT = "object"


class TypeDescriptor(BaseModel):
    """
    Explicit description of the Python type a column's values take.

    ``name`` is the canonical type name as written in generated code; for
    ``ARRAY`` kinds it is the element type name.  ``module`` is the module
    that must be imported for ``name`` (``None`` for builtins).
    """

    model_config = _FROZEN_CONFIG

    kind: TypeKind = Field(default=TypeKind.PRIMITIVE, description="Value shape.")
    name: str = Field(..., min_length=1, description="Canonical type name.")
    numeric: bool = Field(default=False, description="Is this a number type?")
    module: Optional[str] = Field(
        default=None, description="Module to import ``name`` from."
    )

    def as_array(self) -> "TypeDescriptor":
        """Return the array-of-``self`` descriptor."""
        return TypeDescriptor(
            kind=TypeKind.ARRAY,
            name=self.name,
            numeric=self.numeric,
            module=self.module,
        )


# Canonical descriptors shared by every metadata provider.
STANDARD_TYPES: Dict[str, TypeDescriptor] = {
    "int": TypeDescriptor(name="int", numeric=True),
    "float": TypeDescriptor(name="float", numeric=True),
    "decimal": TypeDescriptor(name="Decimal", numeric=True, module="decimal"),
    "bool": TypeDescriptor(name="bool"),
    "str": TypeDescriptor(name="str"),
    "bytes": TypeDescriptor(name="bytes"),
    "date": TypeDescriptor(name="date", module="datetime"),
    "datetime": TypeDescriptor(name="datetime", module="datetime"),
    "time": TypeDescriptor(name="time", module="datetime"),
    "timedelta": TypeDescriptor(name="timedelta", module="datetime"),
    "uuid": TypeDescriptor(name="UUID", module="uuid"),
    "object": TypeDescriptor(kind=TypeKind.OBJECT, name="Any", module="typing"),
}


# ---------------------------------------------------------------------------
# Descriptors
# ---------------------------------------------------------------------------


class TablePath(BaseModel):
    """Identifies a table by schema and name.  Immutable and hashable."""

    model_config = _FROZEN_CONFIG

    schema_name: str = Field(..., description="Schema the table lives in.")
    table_name: str = Field(..., min_length=1, description="Table name.")

    @classmethod
    def parse(cls, text: str, default_schema: str = "") -> "TablePath":
        """Parse ``"schema.table"`` (or a bare ``"table"``)."""
        if "." in text:
            schema_name, table_name = text.split(".", 1)
        else:
            schema_name, table_name = default_schema, text
        return cls(schema_name=schema_name, table_name=table_name)

    def __str__(self) -> str:
        if not self.schema_name:
            return self.table_name
        return f"{self.schema_name}.{self.table_name}"


class ColumnDescriptor(BaseModel):
    """One column of a table as seen by the generator."""

    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1)
    value_type: TypeDescriptor = Field(..., description="Python value type.")
    db_type: int = Field(default=1111, description="Database type code.")
    type_name: str = Field(default="", description="Database type name.")
    size: int = Field(default=0, ge=0)
    has_decimal_digits: bool = Field(default=False)
    decimal_digits: int = Field(default=0, ge=0)
    not_null: bool = Field(default=False)
    default_value: Optional[str] = Field(default=None)
    remarks: Optional[str] = Field(default=None)
    ordinal_position: int = Field(default=0, ge=0)
    primary_key: bool = Field(default=False, description="Member of the PK?")

    def __repr__(self) -> str:
        return f"<Column {self.name} {self.type_name}({self.size})>"


class PrimaryKeyDescriptor(BaseModel):
    """Primary key of a table.  No member columns means "no key"."""

    model_config = _SHARED_CONFIG

    name: str = Field(default="")
    column_names: List[str] = Field(default_factory=list)
    pseudo: bool = Field(default=False, description="Inferred, not declared.")

    @computed_field  # type: ignore[misc]
    @property
    def exists(self) -> bool:
        return len(self.column_names) > 0


class CrossReferenceDescriptor(BaseModel):
    """A foreign key from the child (local) table to its referenced table."""

    model_config = _SHARED_CONFIG

    foreign_key_name: str = Field(..., min_length=1)
    foreign_key_columns: List[str] = Field(..., min_length=1)
    primary_key_columns: List[str] = Field(..., min_length=1)
    pseudo: bool = Field(default=False)
    referenced: TablePath = Field(..., description="Table the key points at.")

    @model_validator(mode="after")
    def _columns_pair_up(self) -> "CrossReferenceDescriptor":
        if len(self.foreign_key_columns) != len(self.primary_key_columns):
            raise ValueError(
                f"Foreign key '{self.foreign_key_name}' pairs "
                f"{len(self.foreign_key_columns)} local column(s) with "
                f"{len(self.primary_key_columns)} referenced column(s)."
            )
        return self

    def __repr__(self) -> str:
        return f"<FK {self.foreign_key_name} → {self.referenced}>"


class TableDescriptor(BaseModel):
    """Table-level metadata: name, kind (TABLE / VIEW ...) and remarks."""

    model_config = _SHARED_CONFIG

    path: TablePath
    name: str = Field(..., min_length=1)
    kind: str = Field(default="TABLE")
    remarks: Optional[str] = Field(default=None)


class RelationshipNode(BaseModel):
    """
    A table together with its columns, primary key and outgoing
    relationships.

    The root node is the table being generated; each child is reached through
    the ``cross_reference`` stored on it.  Visit-once semantics across trees
    are the orchestrator's job, not the tree's.
    """

    model_config = _SHARED_CONFIG

    path: TablePath
    columns: List[ColumnDescriptor] = Field(default_factory=list)
    primary_key: PrimaryKeyDescriptor = Field(default_factory=PrimaryKeyDescriptor)
    cross_reference: Optional[CrossReferenceDescriptor] = Field(default=None)
    children: List["RelationshipNode"] = Field(default_factory=list)

    @computed_field  # type: ignore[misc]
    @property
    def is_root(self) -> bool:
        return self.cross_reference is None

    def find(self, foreign_key_name: str) -> Optional["RelationshipNode"]:
        """Return the child reached through *foreign_key_name*, if any."""
        for child in self.children:
            if (
                child.cross_reference is not None
                and child.cross_reference.foreign_key_name == foreign_key_name
            ):
                return child
        return None

    def __repr__(self) -> str:
        return (
            f"<Relationship {self.path} "
            f"({len(self.columns)} cols, {len(self.children)} children)>"
        )


RelationshipNode.model_rebuild()


# ---------------------------------------------------------------------------
# Generator configuration
# ---------------------------------------------------------------------------


class GeneratorConfig(BaseModel):
    """
    Settings that control one generator instance.

    Superclass settings are dotted ``module.Name`` paths; the generator turns
    each into an import line plus the bare class name.
    """

    model_config = _SHARED_CONFIG

    root_package: str = Field(
        default="facades",
        min_length=1,
        description="Package every generated schema package lives under.",
    )
    facade_superclass: str = Field(default="facadegen.runtime.TableFacade")
    row_superclass: str = Field(default="facadegen.runtime.Row")
    assist_superclass: str = Field(default="facadegen.runtime.Assist")
    use_number_class: bool = Field(
        default=False,
        description="Render every numeric column type as numbers.Number.",
    )
    use_null_guard: bool = Field(
        default=False,
        description="Optional[] returns for nullable columns, checks for the rest.",
    )
    strict_placeholders: bool = Field(
        default=True,
        description="Raise on placeholders without a bound argument.",
    )
    charset: str = Field(default="utf-8", description="Encoding of written units.")

    @field_validator("root_package")
    @classmethod
    def _valid_root_package(cls, v: str) -> str:
        if not _DOTTED_IDENTIFIER_RE.match(v):
            raise ValueError(f"root_package '{v}' is not a dotted identifier.")
        return v

    @field_validator("facade_superclass", "row_superclass", "assist_superclass")
    @classmethod
    def _valid_class_path(cls, v: str) -> str:
        if not _DOTTED_IDENTIFIER_RE.match(v) or "." not in v:
            raise ValueError(f"'{v}' must be a dotted 'module.ClassName' path.")
        return v

    @classmethod
    def from_file(cls, path: Path) -> "GeneratorConfig":
        """Load settings from a YAML or JSON document."""
        data: Dict[str, Any] = load_document(path)
        section: Any = data.get("generator", data)
        return cls.model_validate(section)


# ---------------------------------------------------------------------------
# Schema document (YAML / JSON)
# ---------------------------------------------------------------------------


class ColumnSpec(BaseModel):
    """A column as written in a schema document."""

    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1, description="SQL type name, e.g. VARCHAR.")
    array: bool = Field(default=False, description="Array of ``type``.")
    db_type: Optional[int] = Field(default=None, description="Override type code.")
    size: int = Field(default=0, ge=0)
    decimal_digits: Optional[int] = Field(default=None, ge=0)
    not_null: bool = Field(default=False)
    default: Optional[str] = Field(default=None)
    remarks: Optional[str] = Field(default=None)


class PrimaryKeySpec(BaseModel):
    model_config = _SHARED_CONFIG

    name: str = Field(default="")
    columns: List[str] = Field(default_factory=list)
    pseudo: bool = Field(default=False)


class ForeignKeySpec(BaseModel):
    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1)
    columns: List[str] = Field(..., min_length=1)
    references: str = Field(..., min_length=1, description="'schema.table'.")
    ref_columns: List[str] = Field(..., min_length=1)
    pseudo: bool = Field(default=False)


class TableSpec(BaseModel):
    """A table as written in a schema document."""

    model_config = _SHARED_CONFIG

    schema_name: str = Field(default="", alias="schema")
    name: str = Field(..., min_length=1)
    kind: str = Field(default="TABLE")
    remarks: Optional[str] = Field(default=None)
    columns: List[ColumnSpec] = Field(..., min_length=1)
    primary_key: Optional[PrimaryKeySpec] = Field(default=None)
    foreign_keys: List[ForeignKeySpec] = Field(default_factory=list)

    @computed_field  # type: ignore[misc]
    @property
    def path(self) -> TablePath:
        return TablePath(schema_name=self.schema_name, table_name=self.name)

    @model_validator(mode="after")
    def _key_columns_exist(self) -> "TableSpec":
        col_set: Set[str] = {c.name for c in self.columns}
        key_columns: List[str] = list(self.primary_key.columns) if self.primary_key else []
        for fk in self.foreign_keys:
            key_columns.extend(fk.columns)
        missing: List[str] = [c for c in key_columns if c not in col_set]
        if missing:
            raise ValueError(
                f"Table '{self.name}' keys reference unknown columns: {missing}"
            )
        return self


class SchemaDefinition(BaseModel):
    """
    The root of a schema document.

    Invariant: every foreign key references a table defined in the document.
    """

    model_config = _SHARED_CONFIG

    stored_identifier: str = Field(
        default="AS_IS", description="How the database stores identifiers."
    )
    tables: List[TableSpec] = Field(..., min_length=1)

    @model_validator(mode="after")
    def _validate_unique_tables(self) -> "SchemaDefinition":
        paths: List[str] = [str(t.path) for t in self.tables]
        if len(paths) != len(set(paths)):
            dupes: List[str] = sorted({p for p in paths if paths.count(p) > 1})
            raise ValueError(f"Duplicate tables: {dupes}")
        return self

    @model_validator(mode="after")
    def _validate_fk_targets_exist(self) -> "SchemaDefinition":
        known: Set[str] = {str(t.path) for t in self.tables}
        for table in self.tables:
            for fk in table.foreign_keys:
                target: str = str(TablePath.parse(fk.references, table.schema_name))
                if target not in known:
                    raise ValueError(
                        f"Table '{table.path}' has FK '{fk.name}' to '{target}' "
                        f"which is not defined in the schema."
                    )
        return self

    def get_table(self, path: TablePath) -> Optional[TableSpec]:
        for table in self.tables:
            if table.path == path:
                return table
        return None

    @computed_field  # type: ignore[misc]
    @property
    def schema_names(self) -> List[str]:
        seen: Dict[str, None] = {}
        for table in self.tables:
            seen.setdefault(table.schema_name, None)
        return list(seen)


# ---------------------------------------------------------------------------
# Document loading
# ---------------------------------------------------------------------------


def load_document(path: Path) -> Dict[str, Any]:
    """
    Load a YAML or JSON mapping from *path*.

    Dispatches on the file extension; anything that is not ``.json`` is
    parsed as YAML (a superset of JSON).

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If the file can't be parsed or is not a mapping.
    """
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    text: str = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() == ".json":
            data: Any = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ValueError(f"Cannot parse {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ValueError(
            f"Expected a mapping at top level of {path}, got {type(data).__name__}."
        )
    return data


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "TypeKind",
    "TypeDescriptor",
    "STANDARD_TYPES",
    "TablePath",
    "ColumnDescriptor",
    "PrimaryKeyDescriptor",
    "CrossReferenceDescriptor",
    "TableDescriptor",
    "RelationshipNode",
    "GeneratorConfig",
    "ColumnSpec",
    "PrimaryKeySpec",
    "ForeignKeySpec",
    "TableSpec",
    "SchemaDefinition",
    "load_document",
]

logger.debug("facadegen.models loaded — %d public symbols.", len(__all__))
