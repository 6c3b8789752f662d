# File: facadegen/cli.py
"""
facadegen - Command-Line Interface
===================================

CLI built on the standard-library ``argparse`` module.

Usage examples::

    # Incremental build from two seed tables, following foreign keys
    python -m facadegen generate -s schema.yaml -o ./out \\
        --schema-name public --table ORDERS --table INVOICES

    # Every table of one schema, read from a live database
    python -m facadegen build --database-url sqlite:///shop.db -o ./out

    # Report names that cannot be generated
    python -m facadegen check -s schema.yaml --schema-name public

Exit codes:
    0 — success
    1 — illegal name (build stopped, or check found problems)
    2 — generation error (template or caller defect)
    3 — write error
    4 — input/argument error
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List, NoReturn, Optional, Sequence

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from facadegen.errors import FacadeGenError, IllegalNameError
from facadegen.formatter import SourceFormatter, black_source_formatter
from facadegen.generator import BuildSummary, NameProblem, TableFacadeGenerator
from facadegen.metadata import (
    CachedMetadata,
    MetadataProvider,
    RelationshipFactory,
    SchemaFileMetadata,
    SQLAlchemyMetadata,
)
from facadegen.models import GeneratorConfig, TablePath
from facadegen.orchestrator import BuildOrchestrator, BuildReport
from facadegen.persistence import FilePersistence

# ---------------------------------------------------------------------------
# Logger (configured in _setup_logging)
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("facadegen")


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------

EXIT_SUCCESS: int = 0
EXIT_NAME_ERROR: int = 1
EXIT_GENERATION_ERROR: int = 2
EXIT_WRITE_ERROR: int = 3
EXIT_INPUT_ERROR: int = 4


class _InputError(Exception):
    """Bad arguments or unreadable input documents."""


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(verbosity: int) -> None:
    """
    Configure the root facadegen logger based on verbosity level.

    Args:
        verbosity: 0 = WARNING, 1 = INFO, 2+ = DEBUG.
    """
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity >= 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    handler: logging.StreamHandler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    fmt: str = "%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s"
    datefmt: str = "%H:%M:%S"
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    root_logger: logging.Logger = logging.getLogger("facadegen")
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.propagate = False


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _add_source_arguments(parser: argparse.ArgumentParser) -> None:
    source_group = parser.add_argument_group("metadata source (one required)")
    source = source_group.add_mutually_exclusive_group(required=True)
    source.add_argument(
        "-s", "--schema",
        type=str,
        default=None,
        metavar="PATH",
        help="Schema document (YAML or JSON).",
    )
    source.add_argument(
        "--database-url",
        type=str,
        default=None,
        metavar="URL",
        help="SQLAlchemy URL of a database to reflect.",
    )
    parser.add_argument(
        "--schema-name",
        type=str,
        default="",
        metavar="NAME",
        help="Database schema to work on (default: the unnamed schema).",
    )
    parser.add_argument(
        "-c", "--config",
        type=str,
        default=None,
        metavar="PATH",
        help="Generator settings document (YAML or JSON).",
    )


def _add_output_arguments(parser: argparse.ArgumentParser) -> None:
    output_group = parser.add_argument_group("output")
    output_group.add_argument(
        "-o", "--output",
        type=str,
        required=True,
        metavar="DIR",
        help="Directory the root package is written under.",
    )
    output_group.add_argument(
        "--root-package",
        type=str,
        default=None,
        metavar="PKG",
        help="Override the dotted root package (e.g. 'myapp.facades').",
    )
    output_group.add_argument(
        "--charset",
        type=str,
        default=None,
        metavar="ENC",
        help="Override the encoding of written units.",
    )

    behaviour_group = parser.add_argument_group("code shape")
    behaviour_group.add_argument(
        "--number-class",
        action="store_true",
        default=None,
        help="Render numeric column types as numbers.Number.",
    )
    behaviour_group.add_argument(
        "--null-guard",
        action="store_true",
        default=None,
        help="Optional[] for nullable columns, not-null checks for the rest.",
    )
    behaviour_group.add_argument(
        "--lenient-placeholders",
        action="store_true",
        default=False,
        help="Render unbound placeholders as empty text instead of failing.",
    )


def _add_verbosity_arguments(parser: argparse.ArgumentParser) -> None:
    verbosity_group = parser.add_argument_group("verbosity")
    verbosity_group.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v for INFO, -vv for DEBUG).",
    )
    verbosity_group.add_argument(
        "-q", "--quiet",
        action="store_true",
        default=False,
        help="Suppress all output except errors.",
    )


def _build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    from facadegen import __version__

    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="facadegen",
        description=(
            "facadegen — typed table facade generator.\n\n"
            "Reads table metadata from a schema document or a live database "
            "and writes one Python facade module per table."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  %(prog)s generate -s schema.yaml -o ./out --table public.ORDERS\n"
            "  %(prog)s build --database-url sqlite:///shop.db -o ./out\n"
            "  %(prog)s check -s schema.yaml --schema-name public\n"
        ),
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"facadegen v{__version__}",
    )

    commands = parser.add_subparsers(dest="command", metavar="COMMAND")
    commands.required = True

    generate = commands.add_parser(
        "generate",
        help="Incremental build: seed tables plus every table they reference.",
    )
    _add_source_arguments(generate)
    _add_output_arguments(generate)
    generate.add_argument(
        "-t", "--table",
        action="append",
        default=[],
        metavar="[SCHEMA.]TABLE",
        help="Seed table (repeatable). Default: every table of --schema-name.",
    )
    generate.add_argument(
        "--black",
        action="store_true",
        default=False,
        help="Reformat units with black before comparing and writing.",
    )
    _add_verbosity_arguments(generate)

    build = commands.add_parser("build", help="Generate every table of one schema.")
    _add_source_arguments(build)
    _add_output_arguments(build)
    _add_verbosity_arguments(build)

    check = commands.add_parser("check", help="Report names that cannot be generated.")
    _add_source_arguments(check)
    _add_verbosity_arguments(check)

    return parser


# ---------------------------------------------------------------------------
# Building blocks
# ---------------------------------------------------------------------------


def _load_config(args: argparse.Namespace) -> GeneratorConfig:
    """Settings document first, then command-line overrides on top."""
    try:
        config: GeneratorConfig = (
            GeneratorConfig.from_file(Path(args.config).resolve())
            if args.config
            else GeneratorConfig()
        )
        overrides: Dict[str, object] = {}
        if getattr(args, "root_package", None) is not None:
            overrides["root_package"] = args.root_package
        if getattr(args, "charset", None) is not None:
            overrides["charset"] = args.charset
        if getattr(args, "number_class", None):
            overrides["use_number_class"] = True
        if getattr(args, "null_guard", None):
            overrides["use_null_guard"] = True
        if getattr(args, "lenient_placeholders", False):
            overrides["strict_placeholders"] = False
        if overrides:
            config = GeneratorConfig.model_validate({**config.model_dump(), **overrides})
    except (FileNotFoundError, ValueError) as exc:
        raise _InputError(f"Invalid generator settings: {exc}") from exc
    return config


def _load_metadata(args: argparse.Namespace) -> MetadataProvider:
    """Open the metadata source, wrapped in a per-run cache."""
    provider: MetadataProvider
    if args.schema:
        try:
            provider = SchemaFileMetadata.from_file(Path(args.schema).resolve())
        except (FileNotFoundError, ValueError) as exc:
            raise _InputError(f"Failed to load schema document: {exc}") from exc
    else:
        provider = SQLAlchemyMetadata(args.database_url)
    return CachedMetadata(provider)


def _seed_paths(args: argparse.Namespace, metadata: MetadataProvider) -> List[TablePath]:
    if not args.table:
        return metadata.list_tables(args.schema_name)
    seeds: List[TablePath] = [TablePath.parse(text, args.schema_name) for text in args.table]
    for path in seeds:
        if path not in metadata.list_tables(path.schema_name):
            raise _InputError(f"Unknown table: {path}")
    return seeds


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def _run_generate(args: argparse.Namespace) -> int:
    config: GeneratorConfig = _load_config(args)
    metadata: MetadataProvider = _load_metadata(args)

    generator: TableFacadeGenerator = TableFacadeGenerator(metadata, config)
    persistence: FilePersistence = FilePersistence(
        Path(args.output), config.root_package, config.charset
    )
    source_formatter: Optional[SourceFormatter] = black_source_formatter() if args.black else None
    orchestrator: BuildOrchestrator = BuildOrchestrator(
        generator,
        RelationshipFactory(metadata),
        persistence,
        source_formatter=source_formatter,
    )

    seeds: List[TablePath] = _seed_paths(args, metadata)
    if not seeds:
        raise _InputError(f"No tables found in schema {args.schema_name!r}.")
    for path in seeds:
        orchestrator.add(path)

    report: BuildReport = orchestrator.execute()
    print(report.summary())
    return EXIT_SUCCESS


def _run_build(args: argparse.Namespace) -> int:
    config: GeneratorConfig = _load_config(args)
    metadata: MetadataProvider = _load_metadata(args)

    generator: TableFacadeGenerator = TableFacadeGenerator(metadata, config)
    summary: BuildSummary = generator.build(args.schema_name, Path(args.output))
    print(summary.summary())
    return EXIT_SUCCESS if summary.success else EXIT_NAME_ERROR


def _run_check(args: argparse.Namespace) -> int:
    config: GeneratorConfig = _load_config(args)
    metadata: MetadataProvider = _load_metadata(args)

    generator: TableFacadeGenerator = TableFacadeGenerator(metadata, config)
    problems: List[NameProblem] = generator.check(args.schema_name)
    tables: int = len(metadata.list_tables(args.schema_name))

    print(f"\n{'=' * 50}")
    print("  Name Check Report")
    print(f"{'=' * 50}")
    print(f"  Schema:   {args.schema_name or '(default)'}")
    print(f"  Tables:   {tables}")
    print(f"  Valid:    {'No' if problems else 'Yes'}")
    if problems:
        print(f"\n  Problems ({len(problems)}):")
        for problem in problems:
            print(f"    ✗ {problem}")
    else:
        print("\n  ✅ Every name can be generated!")
    print(f"{'=' * 50}\n")

    return EXIT_NAME_ERROR if problems else EXIT_SUCCESS


_COMMANDS = {
    "generate": _run_generate,
    "build": _run_build,
    "check": _run_check,
}


def _dispatch(args: argparse.Namespace) -> int:
    """Run the selected command and map failures onto exit codes."""
    try:
        return _COMMANDS[args.command](args)
    except _InputError as exc:
        logger.error("%s", exc)
        return EXIT_INPUT_ERROR
    except ValidationError as exc:
        logger.error("Invalid input: %s", exc)
        return EXIT_INPUT_ERROR
    except SQLAlchemyError as exc:
        logger.error("Database error: %s", exc)
        return EXIT_INPUT_ERROR
    except IllegalNameError as exc:
        logger.error("Build stopped: %s", exc)
        return EXIT_NAME_ERROR
    except FacadeGenError as exc:
        logger.error("Generation failed: %s", exc)
        return EXIT_GENERATION_ERROR
    except OSError as exc:
        logger.error("Write failed: %s", exc)
        return EXIT_WRITE_ERROR


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def cli_main(argv: Optional[Sequence[str]] = None) -> NoReturn:
    """
    Main CLI entry point.

    Can be called from ``__main__.py`` or directly for testing.

    Args:
        argv: Optional argument list (defaults to sys.argv[1:]).
    """
    parser: argparse.ArgumentParser = _build_parser()
    args: argparse.Namespace = parser.parse_args(argv)

    if args.quiet:
        verbosity: int = -1
        logging.disable(logging.CRITICAL)
    else:
        verbosity = args.verbose
    _setup_logging(verbosity)

    if args.schema and not Path(args.schema).is_file():
        logger.error("Schema document not found: %s", args.schema)
        sys.exit(EXIT_INPUT_ERROR)

    logger.info("Command: %s", args.command)
    logger.info("Source:  %s", args.schema or args.database_url)
    if getattr(args, "output", None):
        logger.info("Output:  %s", Path(args.output).resolve())

    exit_code: int = _dispatch(args)

    if exit_code == EXIT_SUCCESS:
        logger.info("%s completed successfully.", args.command)
    else:
        logger.error("%s failed with exit code %d.", args.command, exit_code)

    sys.exit(exit_code)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "cli_main",
    "EXIT_SUCCESS",
    "EXIT_NAME_ERROR",
    "EXIT_GENERATION_ERROR",
    "EXIT_WRITE_ERROR",
    "EXIT_INPUT_ERROR",
]

logger.debug("facadegen.cli loaded.")
