"""CLI for Serac services."""

from serac.cli.main import cli

__all__ = ["cli"]
