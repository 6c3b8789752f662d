# File: facadegen/__main__.py
"""
facadegen — Module entry point.

Allows running the generator directly via::

    python -m facadegen generate --schema schema.yaml --output ./out

This module simply delegates to the CLI entry point defined in ``facadegen.cli``.
"""

from __future__ import annotations


def main() -> None:
    """Delegate to the CLI main function."""
    from facadegen.cli import cli_main
    cli_main()


if __name__ == "__main__":
    main()
