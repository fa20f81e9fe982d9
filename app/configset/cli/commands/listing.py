"""List command implementation.

Shows every config set recorded in the state store.
"""

import json
from typing import Annotated

import typer

from configset.cli.display import create_sets_table
from configset.cli.types import get_settings, require_store
from configset.store.base import StateStoreError
from configset.utils.formatting import console, print_error, print_info


def list_sets(
    ctx: typer.Context,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output as JSON.",
        ),
    ] = False,
) -> None:
    """List config sets.

    Examples:
        configset list            # Table of sets
        configset list --json     # JSON output for scripting
    """
    settings = get_settings(ctx)
    store = require_store(ctx, settings)

    try:
        infos = store.list()
    except StateStoreError as e:
        print_error(f"State store error: {e}")
        raise typer.Exit(code=1) from e

    if json_output:
        typer.echo(json.dumps([info.to_dict() for info in infos], indent=2))
        return

    if not infos:
        print_info("No config sets found.")
        return

    console.print(create_sets_table(infos))
