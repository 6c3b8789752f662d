# File: facadegen/__init__.py
"""
facadegen — Typed Table Facade Generator
=========================================

Reads table metadata (from a YAML/JSON schema document or a live database
through SQLAlchemy) and writes one Python module per table: a facade class
with column constants, key descriptors, a typed ``Row`` accessor class and
an ``Assist`` class for column handles and foreign-key navigation.

Architecture overview::

    ┌──────────────┐     ┌──────────────────┐     ┌──────────────────────┐
    │  CLI / Entry │────▶│ BuildOrchestrator │────▶│ TableFacadeGenerator │
    │   (cli.py)   │     │ (orchestrator.py) │     │    (generator.py)    │
    └──────────────┘     └─────────┬────────┘     └──────────┬───────────┘
                                   │                          │
                    ┌──────────────┼──────────────┐  ┌───────┴────────┐
                    ▼              ▼              ▼  ▼                ▼
             ┌───────────┐ ┌─────────────┐ ┌───────────┐ ┌──────────────┐
             │ metadata  │ │ persistence │ │ templates │ │  formatter   │
             │   (.py)   │ │    (.py)    │ │   (.py)   │ │    (.py)     │
             └───────────┘ └─────────────┘ └───────────┘ └──────────────┘

Usage::

    # As a library
    from facadegen import (
        GeneratorConfig, RelationshipFactory, SchemaFileMetadata,
        TableFacadeGenerator, TablePath,
    )
    metadata = SchemaFileMetadata.from_file(Path("schema.yaml"))
    generator = TableFacadeGenerator(metadata, GeneratorConfig())
    text = generator.generate(RelationshipFactory(metadata).resolve(
        TablePath(schema_name="public", table_name="ORDERS")))

    # From the command line
    python -m facadegen generate --schema schema.yaml --output ./out -v

Public API:
    - TableFacadeGenerator — Renders one unit; batch-builds a schema
    - BuildOrchestrator    — Incremental build over the foreign-key graph
    - TemplateStore        — Master template and its named fragments
    - DefaultCodeFormatter — Placeholder substitution hook
    - SchemaFileMetadata   — Metadata from a schema document
    - SQLAlchemyMetadata   — Metadata reflected from a database
"""

from __future__ import annotations

__version__: str = "1.0.0"
__license__: str = "MIT"

from facadegen.errors import (
    CallerDefectError,
    FacadeGenError,
    IllegalNameError,
    TemplateDefectError,
    UnboundPlaceholderError,
)
from facadegen.models import (
    ColumnDescriptor,
    CrossReferenceDescriptor,
    GeneratorConfig,
    PrimaryKeyDescriptor,
    RelationshipNode,
    SchemaDefinition,
    TableDescriptor,
    TablePath,
    TypeDescriptor,
    TypeKind,
)
from facadegen.templates import TemplateStore, convert_to_template, extract, tokenize
from facadegen.formatter import (
    CodeFormatter,
    DefaultCodeFormatter,
    black_source_formatter,
    erase,
    format_template,
)
from facadegen.metadata import (
    CachedMetadata,
    MetadataProvider,
    RelationshipFactory,
    SchemaFileMetadata,
    SQLAlchemyMetadata,
)
from facadegen.persistence import DatabaseInfo, FilePersistence
from facadegen.generator import BuildSummary, NameProblem, TableFacadeGenerator
from facadegen.orchestrator import BuildOrchestrator, BuildReport, BuildState

# ---------------------------------------------------------------------------
# Public API surface
# ---------------------------------------------------------------------------

__all__: list[str] = [
    # Version info
    "__version__",
    "__license__",
    # Errors
    "FacadeGenError",
    "TemplateDefectError",
    "IllegalNameError",
    "CallerDefectError",
    "UnboundPlaceholderError",
    # Models
    "ColumnDescriptor",
    "CrossReferenceDescriptor",
    "GeneratorConfig",
    "PrimaryKeyDescriptor",
    "RelationshipNode",
    "SchemaDefinition",
    "TableDescriptor",
    "TablePath",
    "TypeDescriptor",
    "TypeKind",
    # Templates
    "TemplateStore",
    "convert_to_template",
    "extract",
    "tokenize",
    # Formatting
    "CodeFormatter",
    "DefaultCodeFormatter",
    "black_source_formatter",
    "erase",
    "format_template",
    # Metadata
    "CachedMetadata",
    "MetadataProvider",
    "RelationshipFactory",
    "SchemaFileMetadata",
    "SQLAlchemyMetadata",
    # Output
    "DatabaseInfo",
    "FilePersistence",
    "BuildSummary",
    "NameProblem",
    "TableFacadeGenerator",
    "BuildOrchestrator",
    "BuildReport",
    "BuildState",
]
