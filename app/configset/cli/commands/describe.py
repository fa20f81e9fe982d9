"""Describe command implementation.

Shows the resources tracked by one config set.
"""

import json
from typing import Annotated

import typer

from configset.cli.display import create_resources_table
from configset.cli.types import get_settings, require_store
from configset.store.base import StateStoreError
from configset.utils.formatting import console, print_error


def describe_set(
    ctx: typer.Context,
    name: Annotated[
        str,
        typer.Argument(help="Name of the config set."),
    ],
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output as JSON.",
        ),
    ] = False,
) -> None:
    """Show the resources tracked by a config set, in apply order."""
    settings = get_settings(ctx)
    store = require_store(ctx, settings)

    try:
        info = store.get(name)
    except StateStoreError as e:
        print_error(f"State store error: {e}")
        raise typer.Exit(code=1) from e

    if info is None:
        print_error(f"Config set '{name}' not found.")
        raise typer.Exit(code=1)

    if json_output:
        typer.echo(json.dumps(info.to_dict(), indent=2))
        return

    console.print(create_resources_table(info))
    console.print(
        f"[muted]{len(info.resources)} resource(s), updated {info.updated_at or '-'}[/muted]"
    )
