# File: facadegen/persistence.py
"""
facadegen - Unit Persistence (File-System Manager)
===================================================

Responsible for:
    1. Mapping a ``TablePath`` to its unit file under the output root.
    2. Loading the previously persisted text of a unit for comparison.
    3. Writing units atomically (write-to-temp then rename).
    4. Creating the package ``__init__.py`` files generated units live in.
    5. Writing the run-wide database-info record.

Unit layout::

    <output_root>/<root/package/path>/<schema segment>/<TABLE>.py

I/O errors are not caught here; they propagate to the build as fatal.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from facadegen.models import TablePath
from facadegen.utils import (
    count_lines,
    package_segment,
    read_file,
    sha256_hex,
    write_file,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("facadegen.persistence")

DATABASE_INFO_FILE: str = "database_info.json"

_INIT_CONTENT: str = '"""Generated by facadegen."""\n'


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FileRecord:
    """Immutable record of a single written unit."""

    relative_path: str
    size_bytes: int
    line_count: int
    sha256: str


@dataclass(frozen=False, slots=True)
class DatabaseInfo:
    """
    Schema-wide marker of a generation run, written once when a build
    drains.  Carries no timestamp so unchanged runs write identical bytes.
    """

    stored_identifier: str = "AS_IS"
    root_package: str = ""
    generator_version: str = ""
    schemas: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stored_identifier": self.stored_identifier,
            "root_package": self.root_package,
            "generator_version": self.generator_version,
            "schemas": list(self.schemas),
        }

    def to_json(self, indent_size: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent_size, ensure_ascii=False) + "\n"


# ---------------------------------------------------------------------------
# FilePersistence
# ---------------------------------------------------------------------------


class FilePersistence:
    """
    Reads and writes generated units under one output root.

    Usage::

        persistence = FilePersistence(Path("./out"), "facades")
        if persistence.exists(path):
            old = persistence.load_text(path)
        persistence.write_text(path, new)

    Thread-safety: NOT thread-safe.  Use one instance per output root.
    """

    def __init__(
        self,
        output_root: Path,
        root_package: str,
        charset: str = "utf-8",
    ) -> None:
        self._output_root: Path = output_root.resolve()
        self._root_package: str = root_package
        self._charset: str = charset
        self._records: List[FileRecord] = []

        logger.debug(
            "FilePersistence initialised: output_root=%s, root_package=%s.",
            self._output_root,
            self._root_package,
        )

    @property
    def output_root(self) -> Path:
        return self._output_root

    @property
    def charset(self) -> str:
        return self._charset

    @property
    def records(self) -> List[FileRecord]:
        """Units written through this instance, in write order."""
        return list(self._records)

    # -----------------------------------------------------------------
    # Paths
    # -----------------------------------------------------------------

    def package_name(self, schema_name: str) -> str:
        """Dotted package generated units of *schema_name* belong to."""
        segment: str = package_segment(schema_name)
        if not segment:
            return self._root_package
        return f"{self._root_package}.{segment}"

    def package_dir(self, schema_name: str) -> Path:
        return self._output_root.joinpath(*self.package_name(schema_name).split("."))

    def unit_path(self, path: TablePath) -> Path:
        return self.package_dir(path.schema_name) / f"{path.table_name}.py"

    # -----------------------------------------------------------------
    # Unit I/O
    # -----------------------------------------------------------------

    def exists(self, path: TablePath) -> bool:
        return self.unit_path(path).is_file()

    def load_text(self, path: TablePath) -> str:
        """
        Raises:
            FileNotFoundError: If no unit has been persisted for *path*.
        """
        unit: Path = self.unit_path(path)
        text: Optional[str] = read_file(unit, self._charset)
        if text is None:
            raise FileNotFoundError(f"No persisted unit: {unit}")
        return text

    def write_text(self, path: TablePath, text: str) -> FileRecord:
        """Atomically (over)write the unit for *path*."""
        self._ensure_packages(path.schema_name)
        unit: Path = self.unit_path(path)
        size_bytes: int = write_file(unit, text, self._charset)

        record: FileRecord = FileRecord(
            relative_path=unit.relative_to(self._output_root).as_posix(),
            size_bytes=size_bytes,
            line_count=count_lines(text),
            sha256=sha256_hex(text),
        )
        self._records.append(record)
        logger.debug(
            "Wrote unit: %s (%d bytes, %d lines).",
            record.relative_path,
            record.size_bytes,
            record.line_count,
        )
        return record

    def _ensure_packages(self, schema_name: str) -> None:
        """Create every missing ``__init__.py`` from the root package down."""
        directory: Path = self._output_root
        for part in self.package_name(schema_name).split("."):
            directory = directory / part
            init_file: Path = directory / "__init__.py"
            if not init_file.exists():
                write_file(init_file, _INIT_CONTENT, self._charset)
                logger.debug("Created package marker: %s", init_file)

    # -----------------------------------------------------------------
    # Database info
    # -----------------------------------------------------------------

    def database_info_path(self) -> Path:
        return self._output_root.joinpath(*self._root_package.split(".")) / DATABASE_INFO_FILE

    def write_database_info(self, info: DatabaseInfo) -> Path:
        target: Path = self.database_info_path()
        write_file(target, info.to_json(), self._charset)
        logger.info("Wrote database info: %s", target)
        return target


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "DATABASE_INFO_FILE",
    "FileRecord",
    "DatabaseInfo",
    "FilePersistence",
]

logger.debug("facadegen.persistence loaded.")
