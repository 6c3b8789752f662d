# File: facadegen/orchestrator.py
"""
facadegen - Build Orchestrator
===============================

Incremental build over the foreign-key graph of a schema.

The caller seeds a set of tables; the orchestrator generates each one, then
follows its foreign keys to the tables they reference, generating every
reachable table exactly once per run::

    PENDING ──execute()──▶ RUNNING ──pending empty──▶ DRAINED
                              │
                              └──any exception──▶ ABORTED (re-raised)

Per iteration:
    1. Pop the first pending table and mark it processed.
    2. Generate its unit (optionally reformatted by a source formatter).
    3. Skip the write when the persisted unit is byte-identical,
       otherwise write it.
    4. Enqueue referenced tables that are not pending, not processed in
       this run and not persisted by an earlier run.
    5. Clear the relationship cache.

When the run drains, the database-info record is written exactly once.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from facadegen.errors import CallerDefectError
from facadegen.formatter import SourceFormatter
from facadegen.generator import TableFacadeGenerator
from facadegen.metadata import RelationshipFactory
from facadegen.models import RelationshipNode, TablePath
from facadegen.persistence import FilePersistence
from facadegen.utils import Timer

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("facadegen.orchestrator")


# ---------------------------------------------------------------------------
# State & report
# ---------------------------------------------------------------------------


class BuildState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    DRAINED = "drained"
    ABORTED = "aborted"


@dataclass(frozen=False, slots=True)
class BuildReport:
    """
    Outcome of one orchestrated run.

    ``written`` and ``skipped`` partition ``processed``: a skipped unit was
    generated and found identical on disk.
    """

    processed: List[str] = field(default_factory=list)
    written: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    discovered: List[str] = field(default_factory=list)
    database_info: Optional[str] = None
    bytes_written: int = 0
    elapsed_seconds: float = 0.0

    def summary(self) -> str:
        """Return a human-readable summary string."""
        lines: List[str] = [
            f"{'=' * 60}",
            "  facadegen — Incremental Build",
            f"{'=' * 60}",
            f"  Processed:  {len(self.processed)}",
            f"  Written:    {len(self.written)}",
            f"  Unchanged:  {len(self.skipped)}",
            f"  Discovered: {len(self.discovered)}",
            f"  Bytes:      {self.bytes_written}",
            f"  Total time: {self.elapsed_seconds:.3f}s",
        ]
        if self.written:
            lines.append(f"{'─' * 60}")
            lines.extend(f"    ✓ {path}" for path in self.written)
        if self.skipped:
            lines.append(f"{'─' * 60}")
            lines.extend(f"    ⊘ {path}" for path in self.skipped)
        lines.append(f"{'=' * 60}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# BuildOrchestrator
# ---------------------------------------------------------------------------


class BuildOrchestrator:
    """
    Drives one incremental build run.

    Usage::

        orchestrator = BuildOrchestrator(generator, factory, persistence)
        orchestrator.add(TablePath(schema_name="public", table_name="ORDERS"))
        report = orchestrator.execute()

    One instance is one run: seed it, execute it once.
    """

    def __init__(
        self,
        generator: TableFacadeGenerator,
        factory: RelationshipFactory,
        persistence: FilePersistence,
        *,
        source_formatter: Optional[SourceFormatter] = None,
    ) -> None:
        self._generator: TableFacadeGenerator = generator
        self._factory: RelationshipFactory = factory
        self._persistence: FilePersistence = persistence
        self._source_formatter: Optional[SourceFormatter] = source_formatter

        # dict keys: insertion-ordered sets
        self._pending: Dict[TablePath, None] = {}
        self._processed: Dict[TablePath, None] = {}
        self._state: BuildState = BuildState.PENDING

    @property
    def state(self) -> BuildState:
        return self._state

    @property
    def pending(self) -> List[TablePath]:
        return list(self._pending)

    @property
    def processed(self) -> List[TablePath]:
        return list(self._processed)

    def add(self, path: TablePath) -> bool:
        """Seed *path*; returns False when it is already pending or processed."""
        if self._state is not BuildState.PENDING:
            raise CallerDefectError(f"Cannot seed a build in state {self._state.value}.")
        return self._enqueue(path)

    def add_schema(self, schema_name: str) -> int:
        """Seed every table of *schema_name*; returns how many were new."""
        return sum(1 for path in self._generator.metadata.list_tables(schema_name) if self.add(path))

    def _enqueue(self, path: TablePath) -> bool:
        if path in self._pending or path in self._processed:
            return False
        self._pending[path] = None
        return True

    # -----------------------------------------------------------------
    # Run
    # -----------------------------------------------------------------

    def execute(self) -> BuildReport:
        """
        Drain the pending set.

        Raises:
            CallerDefectError: If this orchestrator already ran.
            IllegalNameError: On the first unusable name (run aborted).
            OSError: On any read / write failure (run aborted).
        """
        if self._state is not BuildState.PENDING:
            raise CallerDefectError(f"Build already {self._state.value}.")

        report: BuildReport = BuildReport()
        # Persistence may outlive this run; count only the records it adds.
        first_record: int = len(self._persistence.records)
        self._state = BuildState.RUNNING
        logger.info("Build started with %d seed table(s).", len(self._pending))

        try:
            with Timer("incremental build") as timer:
                while self._pending:
                    path: TablePath = next(iter(self._pending))
                    del self._pending[path]
                    self._processed[path] = None
                    self._step(path, report)

                report.bytes_written = sum(
                    r.size_bytes for r in self._persistence.records[first_record:]
                )
                schemas: List[str] = list(dict.fromkeys(p.schema_name for p in self._processed))
                report.database_info = str(
                    self._generator.write_database_info(self._persistence, schemas)
                )
        except Exception:
            self._state = BuildState.ABORTED
            logger.error(
                "Build aborted after %d table(s); %d still pending.",
                len(self._processed),
                len(self._pending),
            )
            raise

        self._state = BuildState.DRAINED
        report.elapsed_seconds = timer.elapsed
        logger.info(
            "Build drained: %d written, %d unchanged.", len(report.written), len(report.skipped)
        )
        return report

    def _step(self, path: TablePath, report: BuildReport) -> None:
        report.processed.append(str(path))
        node: RelationshipNode = self._factory.resolve(path)

        text: str = self._generator.generate(node)
        if self._source_formatter is not None:
            text = self._source_formatter(text)

        if self._persistence.exists(path) and self._persistence.load_text(path) == text:
            logger.info("Unchanged, skipped: %s", path)
            report.skipped.append(str(path))
        else:
            self._persistence.write_text(path, text)
            logger.info("Written: %s", path)
            report.written.append(str(path))

        for child in node.children:
            if self._persistence.exists(child.path):
                continue
            if self._enqueue(child.path):
                logger.debug("Discovered %s via %s", child.path, path)
                report.discovered.append(str(child.path))

        self._factory.clear_cache()


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "BuildState",
    "BuildReport",
    "BuildOrchestrator",
]

logger.debug("facadegen.orchestrator loaded.")
