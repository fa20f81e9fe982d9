"""CLI commands for configset.

This package contains all subcommand implementations.
"""

from configset.cli.commands import apply, delete, describe, listing

__all__ = ["apply", "delete", "describe", "listing"]
