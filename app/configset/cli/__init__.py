"""CLI package for configset.

This package contains the Typer application and all subcommands.
"""

from configset.cli.main import app

__all__ = ["app"]
