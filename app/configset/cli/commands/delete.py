"""Delete command implementation.

Deletes every resource tracked by a config set, then the set's record.
"""

from typing import Annotated

import typer

from configset.cli.commands.apply import run_diff
from configset.cli.display import print_run_summary, stream_results
from configset.cli.types import get_settings, require_engine
from configset.core.diff import DiffError
from configset.core.engine import PartialFailureError, RunOptions
from configset.store.base import StateStoreError
from configset.utils.formatting import print_error, print_info


def delete_set(
    ctx: typer.Context,
    name: Annotated[
        str,
        typer.Argument(help="Name of the config set."),
    ],
    dry_run: Annotated[
        bool,
        typer.Option(
            "--dry-run",
            help="Show what would be deleted without making changes.",
        ),
    ] = False,
    diff: Annotated[
        bool,
        typer.Option(
            "--diff",
            help="Show a diff of the deletions (implies --dry-run).",
        ),
    ] = False,
    strip_managed_fields: Annotated[
        bool,
        typer.Option(
            "--strip-managed-fields",
            help="Hide metadata.managedFields in the diff.",
        ),
    ] = False,
) -> None:
    """Delete a config set and all of its resources.

    Resources are deleted in reverse order of the last apply. If any
    deletion fails the set is kept, so the command can be retried.
    """
    quiet = bool(ctx.obj and ctx.obj.get("quiet"))
    settings = get_settings(ctx)
    if diff:
        dry_run = True

    engine = require_engine(ctx, settings)

    try:
        outcome = stream_results(engine.iter_delete(name, RunOptions(dry_run=dry_run)), quiet=quiet)
    except PartialFailureError as e:
        print_run_summary(e.outcome, dry_run=dry_run)
        print_error(str(e))
        raise typer.Exit(code=1) from e
    except StateStoreError as e:
        print_error(f"State store error: {e}")
        raise typer.Exit(code=1) from e
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    if not outcome.results:
        print_info(f"Nothing to delete for config set '{name}'.")
        return

    if not quiet:
        print_run_summary(outcome, dry_run=dry_run)
    if dry_run and not diff and not quiet:
        print_info("Dry run: no changes were made.")

    if diff:
        try:
            code = run_diff(outcome, settings.diff.program, strip_managed_fields)
        except DiffError as e:
            print_error(str(e))
            raise typer.Exit(code=1) from e
        if code != 0:
            raise typer.Exit(code=code)
