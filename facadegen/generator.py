# File: facadegen/generator.py
"""
facadegen - Unit Generator
===========================

Turns one root ``RelationshipNode`` into the text of one generated table
facade module, and drives the schema-wide batch build.

Per table::

    1. Check the table name and derive the package.
    2. Render four fragments per column (ordinal order).
    3. Render the primary-key fragment when the key has members.
    4. Render three fragments per outgoing foreign key.
    5. Join each fragment list, erase the relationship-only span when the
       table has no foreign keys, and substitute the root template.

Every fragment passes through the configured ``CodeFormatter`` hook just
before it is joined.

Error handling strategy:
    - Illegal table / column / relationship names are logged as a warning
      naming the offender, then raised as ``IllegalNameError``.
    - A non-root relationship is a ``CallerDefectError``.
    - The batch ``build`` abandons the rest of a schema on the first
      illegal name and reports where it stopped.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, FrozenSet, List, Optional, Set

from facadegen.errors import CallerDefectError, IllegalNameError
from facadegen.formatter import ArgumentMap, CodeFormatter, DefaultCodeFormatter, erase
from facadegen.metadata import MetadataProvider, RelationshipFactory
from facadegen.models import (
    ColumnDescriptor,
    GeneratorConfig,
    PrimaryKeyDescriptor,
    RelationshipNode,
    TableDescriptor,
    TablePath,
    TypeDescriptor,
    TypeKind,
)
from facadegen.persistence import DatabaseInfo, FilePersistence
from facadegen.runtime import RESERVED_NAMES
from facadegen.templates import TemplateStore
from facadegen.utils import (
    Timer,
    add_import,
    build_import_block,
    class_path_import,
    decorate,
    escape_docstring,
    escape_literal,
    is_legal_identifier,
    package_segment,
    quote_join,
    safe_identifier,
    safe_name,
    split_lines,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("facadegen.generator")

RUNTIME_MODULE: str = "facadegen.runtime"

_COMMENT_1_PREFIX: str = "    #: "
_COMMENT_2_PREFIX: str = " " * 12
_NULL_CHECK_INDENT: str = " " * 12

# Builtins the generated class bodies evaluate while the class is being built.
_CLASS_BODY_BUILTINS: FrozenSet[str] = frozenset({"property"})


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class NameProblem:
    """A schema name that cannot become an identifier in generated code."""

    path: str
    role: str
    name: str

    def __str__(self) -> str:
        return f"{self.path}: illegal {self.role} name {self.name!r}"


@dataclass(frozen=False, slots=True)
class BuildSummary:
    """Outcome of ``TableFacadeGenerator.build`` for one schema."""

    schema_name: str = ""
    output_root: str = ""
    written: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    aborted_at: Optional[str] = None
    error: Optional[str] = None
    bytes_written: int = 0
    elapsed_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return self.aborted_at is None

    def summary(self) -> str:
        """Return a human-readable summary string."""
        status: str = "SUCCESS" if self.success else "ABORTED"
        lines: List[str] = [
            f"{'=' * 60}",
            "  facadegen — Batch Build",
            f"{'=' * 60}",
            f"  Status:     {status}",
            f"  Schema:     {self.schema_name or '(default)'}",
            f"  Output:     {self.output_root}",
            f"  Written:    {len(self.written)}",
            f"  Unchanged:  {len(self.skipped)}",
            f"  Bytes:      {self.bytes_written}",
            f"  Total time: {self.elapsed_seconds:.3f}s",
        ]
        if not self.success:
            lines.append(f"{'─' * 60}")
            lines.append(f"  Stopped at {self.aborted_at}: {self.error}")
        lines.append(f"{'=' * 60}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# TableFacadeGenerator
# ---------------------------------------------------------------------------


class TableFacadeGenerator:
    """
    Generates table facade modules.

    Usage::

        generator = TableFacadeGenerator(metadata, GeneratorConfig())
        text = generator.generate(factory.resolve(path))

        # or the whole schema at once
        summary = generator.build("public", Path("./out"))

    One instance holds its template store and formatting hook for its whole
    lifetime; it keeps no per-table state between calls.
    """

    def __init__(
        self,
        metadata: MetadataProvider,
        config: Optional[GeneratorConfig] = None,
        *,
        code_formatter: Optional[CodeFormatter] = None,
        template_store: Optional[TemplateStore] = None,
    ) -> None:
        self._metadata: MetadataProvider = metadata
        self._config: GeneratorConfig = config or GeneratorConfig()
        self._formatter: CodeFormatter = code_formatter or DefaultCodeFormatter(
            strict=self._config.strict_placeholders
        )
        self._store: TemplateStore = template_store or TemplateStore.default()

        # Names evaluated inside the generated class bodies must stay unshadowed.
        self._reserved: FrozenSet[str] = RESERVED_NAMES | {
            "Column",
            "PrimaryKey",
            "ForeignKey",
            class_path_import(self._config.row_superclass)[1],
            class_path_import(self._config.assist_superclass)[1],
        } | _CLASS_BODY_BUILTINS

        logger.debug(
            "TableFacadeGenerator initialised: root_package=%s, number_class=%s, null_guard=%s.",
            self._config.root_package,
            self._config.use_number_class,
            self._config.use_null_guard,
        )

    @property
    def config(self) -> GeneratorConfig:
        return self._config

    @property
    def metadata(self) -> MetadataProvider:
        return self._metadata

    # -----------------------------------------------------------------
    # Naming
    # -----------------------------------------------------------------

    @staticmethod
    def is_generatable_table_name(name: str) -> bool:
        return is_legal_identifier(name)

    def unit_file_name(self, table_name: str) -> str:
        if not self.is_generatable_table_name(table_name):
            raise IllegalNameError(table_name, "table")
        return f"{table_name}.py"

    def package_name(self, schema_name: str) -> str:
        segment: str = package_segment(schema_name)
        if not segment:
            return self._config.root_package
        return f"{self._config.root_package}.{segment}"

    # -----------------------------------------------------------------
    # Public: generate one unit
    # -----------------------------------------------------------------

    def generate(self, relationship: RelationshipNode) -> str:
        """
        Render the facade module for the root table of *relationship*.

        Raises:
            CallerDefectError: If *relationship* is not a root node.
            IllegalNameError: If a table, column or relationship name
                cannot be used in generated code.
        """
        if not relationship.is_root:
            raise CallerDefectError(
                f"generate() needs a root relationship, got one reached "
                f"through {relationship.cross_reference!r}."
            )

        path: TablePath = relationship.path
        table: str = path.table_name
        if not self.is_generatable_table_name(table):
            logger.warning("Invalid table name: %s", path)
            raise IllegalNameError(table, "table")

        with Timer(f"generate {path}"):
            package: str = self.package_name(path.schema_name)
            info: TableDescriptor = self._metadata.table_info(path)
            imports: Dict[str, Set[str]] = self._base_imports()

            column_names_part: List[str] = []
            row_property_accessor_part: List[str] = []
            column_part1: List[str] = []
            column_part2: List[str] = []
            accessors: Set[str] = set()

            for column in sorted(relationship.columns, key=lambda c: c.ordinal_position):
                accessor: str = self._column_accessor(path, column, accessors)
                accessors.add(accessor)
                args: Dict[str, Optional[str]] = self._column_args(
                    package, table, accessor, column, imports
                )
                column_names_part.append(
                    self._formatter.format_column_names_part(self._store.fragment("ColumnNamesPart"), args)
                )
                row_property_accessor_part.append(
                    self._formatter.format_row_property_accessor_part(
                        self._store.fragment("RowPropertyAccessorPart"), args
                    )
                )
                column_part1.append(
                    self._formatter.format_relationship_column_part1(self._store.fragment("ColumnPart1"), args)
                )
                column_part2.append(
                    self._formatter.format_relationship_column_part2(self._store.fragment("ColumnPart2"), args)
                )

            primary_key_part: str = self._primary_key_part(relationship.primary_key, imports)

            foreign_keys_part: List[str] = []
            row_relationship_part: List[str] = []
            table_relationship_part: List[str] = []
            members: Set[str] = set(accessors)

            duplicates: Dict[str, bool] = {
                name: count > 1
                for name, count in Counter(c.path.table_name for c in relationship.children).items()
            }
            for child in relationship.children:
                args = self._relationship_args(package, path, child, duplicates, members)
                foreign_keys_part.append(
                    self._formatter.format_foreign_keys_part(self._store.fragment("ForeignKeysPart"), args)
                )
                row_relationship_part.append(
                    self._formatter.format_row_relationship_part(self._store.fragment("RowRelationshipPart"), args)
                )
                table_relationship_part.append(
                    self._formatter.format_table_relationship_part(
                        self._store.fragment("TableRelationshipPart"), args
                    )
                )
            if relationship.children:
                add_import(imports, RUNTIME_MODULE, "ForeignKey")

            parent: str = self._superclass(self._config.facade_superclass, imports)
            row_parent: str = self._superclass(self._config.row_superclass, imports)
            assist_parent: str = self._superclass(self._config.assist_superclass, imports)

            root_args: Dict[str, Optional[str]] = {
                "PACKAGE": package,
                "SCHEMA": escape_literal(path.schema_name),
                "TABLE": table,
                "PATH": escape_literal(str(path)),
                "IMPORTS": build_import_block(imports),
                "PARENT": parent,
                "ROW_PARENT": row_parent,
                "ASSIST_PARENT": assist_parent,
                "TABLE_COMMENT": decorate(self._table_comment(path, info), ""),
                "TYPE": escape_literal(info.kind),
                "REMARKS": escape_literal(info.remarks),
                "COLUMN_NAMES_PART": "".join(column_names_part),
                "PRIMARY_KEY_PART": primary_key_part,
                "FOREIGN_KEYS_PART": "".join(foreign_keys_part),
                "ROW_PROPERTY_ACCESSOR_PART": "".join(row_property_accessor_part),
                "ROW_RELATIONSHIP_PART": "".join(row_relationship_part),
                "COLUMN_PART1": "".join(column_part1),
                "COLUMN_PART2": "".join(column_part2),
                "TABLE_RELATIONSHIP_PART": "".join(table_relationship_part),
            }

            root: str = erase(self._store.root, bool(relationship.children))
            text: str = self._formatter.format(root, root_args)

        logger.info(
            "Generated %s: %d column(s), %d relationship(s).",
            path,
            len(relationship.columns),
            len(relationship.children),
        )
        return text

    # -----------------------------------------------------------------
    # Internal: columns
    # -----------------------------------------------------------------

    def _is_usable_accessor(self, accessor: str) -> bool:
        """
        Legal, not a base-class member, and not private: a leading ``__``
        would be name-mangled inside the nested ``Row`` and ``Assist`` classes.
        """
        return (
            is_legal_identifier(accessor)
            and not accessor.startswith("__")
            and accessor not in self._reserved
        )

    def _column_accessor(self, path: TablePath, column: ColumnDescriptor, taken: Set[str]) -> str:
        accessor: str = safe_name(column.name)
        if not self._is_usable_accessor(accessor) or accessor in taken:
            logger.warning("Invalid column name: %s.%s", path, column.name)
            raise IllegalNameError(column.name, "column")
        return accessor

    def _type_name(self, value_type: TypeDescriptor, imports: Dict[str, Set[str]]) -> str:
        if self._config.use_number_class and value_type.numeric:
            add_import(imports, "numbers", "Number")
            name: str = "Number"
        else:
            add_import(imports, value_type.module, value_type.name)
            name = value_type.name
        if value_type.kind == TypeKind.ARRAY:
            return f"List[{name}]"
        return name

    def _column_args(
        self,
        package: str,
        table: str,
        accessor: str,
        column: ColumnDescriptor,
        imports: Dict[str, Set[str]],
    ) -> Dict[str, Optional[str]]:
        type_name: str = self._type_name(column.value_type, imports)

        guarded: bool = self._config.use_null_guard
        required: bool = column.not_null or column.primary_key
        optional: bool = guarded and not required
        return_type: str = f"Optional[{type_name}]" if optional else type_name

        null_check: str = ""
        if guarded and required:
            null_check = f'require_not_none(value, "{escape_literal(column.name)}")\n{_NULL_CHECK_INDENT}'

        cast_open: str = ""
        cast_close: str = ""
        if return_type != "Any":
            cast_open = f'cast("{return_type}", '
            cast_close = ")"

        comment: str = self._column_comment(column)
        return {
            "PACKAGE": package,
            "TABLE": table,
            "METHOD": accessor,
            "COLUMN": accessor,
            "NAME": escape_literal(column.name),
            "TYPE": type_name,
            "RETURN_TYPE": return_type,
            "OPTIONAL": str(optional),
            "CAST": cast_open,
            "CAST_END": cast_close,
            "COMMENT_1": decorate(comment, _COMMENT_1_PREFIX),
            "COMMENT_2": decorate(escape_docstring(comment), _COMMENT_2_PREFIX),
            "NULL_CHECK": null_check,
            "DB_TYPE": str(column.db_type),
            "TYPE_NAME": escape_literal(column.type_name),
            "SIZE": str(column.size),
            "HAS_DECIMAL_DIGITS": str(column.has_decimal_digits),
            "DECIMAL_DIGITS": str(column.decimal_digits),
            "REMARKS": escape_literal(column.remarks),
            "DEFAULT": escape_literal(column.default_value),
            "ORDINAL_POSITION": str(column.ordinal_position),
            "NOT_NULL": str(column.not_null),
        }

    @staticmethod
    def _column_comment(column: ColumnDescriptor) -> str:
        type_text: str = column.type_name
        if column.size > 0:
            if column.has_decimal_digits:
                type_text += f"({column.size}, {column.decimal_digits})"
            else:
                type_text += f"({column.size})"

        lines: List[str] = [f"name: {column.name}"]
        lines.extend(f"remarks: {line}" for line in split_lines(column.remarks) if line)
        lines.append(f"type: {type_text}")
        lines.append(f"not null: {str(column.not_null).lower()}")
        return "\n".join(lines)

    @staticmethod
    def _table_comment(path: TablePath, info: TableDescriptor) -> str:
        lines: List[str] = [
            f"schema: {path.schema_name}",
            f"name: {info.name}",
            f"type: {info.kind}",
        ]
        lines.extend(f"remarks: {line}" for line in split_lines(info.remarks) if line)
        return escape_docstring("\n".join(lines))

    # -----------------------------------------------------------------
    # Internal: keys & relationships
    # -----------------------------------------------------------------

    def _primary_key_part(self, key: PrimaryKeyDescriptor, imports: Dict[str, Set[str]]) -> str:
        if not key.exists:
            return ""
        add_import(imports, RUNTIME_MODULE, "PrimaryKey")
        args: Dict[str, Optional[str]] = {
            "PK": escape_literal(key.name),
            "PK_COLUMNS": quote_join(key.column_names),
            "PSEUDO": ", pseudo=True" if key.pseudo else "",
        }
        return self._formatter.format_primary_key_part(self._store.fragment("PrimaryKeyPart"), args)

    def _relationship_args(
        self,
        package: str,
        path: TablePath,
        child: RelationshipNode,
        duplicates: Dict[str, bool],
        members: Set[str],
    ) -> ArgumentMap:
        reference = child.cross_reference
        if reference is None:
            raise CallerDefectError(f"Child {child.path} of {path} carries no foreign key.")

        target: str = child.path.table_name
        if not is_legal_identifier(target):
            logger.warning("Invalid table name: %s (referenced from %s)", child.path, path)
            raise IllegalNameError(target, "table")

        name: str = target
        if duplicates.get(target, False):
            name = f"{target}__{safe_identifier(reference.foreign_key_name)}"

        method: str = f"ref_{name}"
        reference_field: str = f"fk_{name}"
        for member in (method, reference_field):
            if member in members or member in self._reserved:
                logger.warning("Relationship name clash in %s: %s", path, member)
                raise IllegalNameError(member, "relationship")
            members.add(member)

        return {
            "PACKAGE": package,
            "TABLE": path.table_name,
            "REFERENCE_PACKAGE": self.package_name(child.path.schema_name),
            "REFERENCE": target,
            "REFERENCE_PATH": escape_literal(str(child.path)),
            "REFERENCE_FIELD": reference_field,
            "FK": escape_literal(reference.foreign_key_name),
            "FK_COLUMNS": escape_docstring(", ".join(reference.foreign_key_columns)),
            "ANNOTATION_FK_COLUMNS": quote_join(reference.foreign_key_columns),
            "REF_COLUMNS": quote_join(reference.primary_key_columns),
            "PSEUDO": ", pseudo=True" if reference.pseudo else "",
            "METHOD": method,
            "RELATIONSHIP": method,
        }

    # -----------------------------------------------------------------
    # Internal: imports
    # -----------------------------------------------------------------

    @staticmethod
    def _base_imports() -> Dict[str, Set[str]]:
        return {
            "typing": {"Any", "List", "Optional", "cast"},
            RUNTIME_MODULE: {"Column", "require_not_none"},
        }

    @staticmethod
    def _superclass(dotted: str, imports: Dict[str, Set[str]]) -> str:
        module, name = class_path_import(dotted)
        add_import(imports, module, name)
        return name

    # -----------------------------------------------------------------
    # Public: checks
    # -----------------------------------------------------------------

    def check(self, schema_name: str) -> List[NameProblem]:
        """List every table and column name of *schema_name* that cannot be generated."""
        problems: List[NameProblem] = []
        for path in self._metadata.list_tables(schema_name):
            if not self.is_generatable_table_name(path.table_name):
                problems.append(NameProblem(str(path), "table", path.table_name))
                continue
            seen: Set[str] = set()
            for column in self._metadata.columns(path):
                accessor: str = safe_name(column.name)
                if not self._is_usable_accessor(accessor) or accessor in seen:
                    problems.append(NameProblem(str(path), "column", column.name))
                seen.add(accessor)
        return problems

    # -----------------------------------------------------------------
    # Public: batch build
    # -----------------------------------------------------------------

    def build(
        self,
        schema_name: str,
        output_root: Path,
        charset: Optional[str] = None,
    ) -> BuildSummary:
        """
        Generate every table of *schema_name* independently.

        Units whose text is unchanged on disk are not rewritten.  The first
        illegal name abandons the remaining tables; the summary records
        where the batch stopped.
        """
        persistence: FilePersistence = FilePersistence(
            output_root, self._config.root_package, charset or self._config.charset
        )
        factory: RelationshipFactory = RelationshipFactory(self._metadata)
        summary: BuildSummary = BuildSummary(
            schema_name=schema_name, output_root=str(persistence.output_root)
        )

        with Timer(f"build {schema_name or '(default)'}") as timer:
            for path in self._metadata.list_tables(schema_name):
                if not self.is_generatable_table_name(path.table_name):
                    logger.warning(
                        "Invalid table name %s; abandoning the remaining tables of this schema.",
                        path,
                    )
                    summary.aborted_at = str(path)
                    summary.error = str(IllegalNameError(path.table_name, "table"))
                    break
                try:
                    text: str = self.generate(factory.resolve(path))
                except IllegalNameError as exc:
                    summary.aborted_at = str(path)
                    summary.error = str(exc)
                    break
                finally:
                    factory.clear_cache()

                if persistence.exists(path) and persistence.load_text(path) == text:
                    logger.info("Unchanged, skipped: %s", path)
                    summary.skipped.append(str(path))
                else:
                    persistence.write_text(path, text)
                    summary.written.append(str(path))

            summary.bytes_written = sum(r.size_bytes for r in persistence.records)
            if summary.success:
                self.write_database_info(persistence, [schema_name])

        summary.elapsed_seconds = timer.elapsed
        return summary

    def write_database_info(self, persistence: FilePersistence, schemas: List[str]) -> Path:
        """Persist the run-wide database-info record under the root package."""
        import facadegen

        info: DatabaseInfo = DatabaseInfo(
            stored_identifier=self._metadata.stored_identifier(),
            root_package=self._config.root_package,
            generator_version=facadegen.__version__,
            schemas=sorted(set(schemas)),
        )
        return persistence.write_database_info(info)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "RUNTIME_MODULE",
    "NameProblem",
    "BuildSummary",
    "TableFacadeGenerator",
]

logger.debug("facadegen.generator loaded.")
