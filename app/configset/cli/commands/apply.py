"""Apply command implementation.

Applies the objects of one or more manifests as a config set, pruning
objects that were part of the set's previous apply but are no longer
desired.
"""

from typing import Annotated

import typer

from configset.cli.display import print_run_summary, stream_results
from configset.cli.types import get_settings, require_engine
from configset.core.diff import (
    DiffError,
    DiffOptions,
    Differ,
    add_results_to_differ,
    resolve_diff_program,
)
from configset.core.engine import PartialFailureError, RunOptions
from configset.core.manifests import ManifestError, load_objects
from configset.models.result import RunOutcome
from configset.store.base import StateStoreError
from configset.utils.formatting import print_error, print_info, print_warning


def run_diff(
    outcome: RunOutcome,
    program: str | None,
    strip_managed_fields: bool,
) -> int:
    """Export a run's snapshots and compare them with the diff program.

    Args:
        outcome: Results of a dry run.
        program: Configured diff command line, if any.
        strip_managed_fields: Drop metadata.managedFields from the snapshots.

    Returns:
        Exit code of the diff program.

    Raises:
        DiffError: If the files cannot be written or the program cannot run.
    """
    options = DiffOptions(strip_managed_fields=strip_managed_fields, strip_generation=True)
    with Differ() as differ:
        add_results_to_differ(outcome.results, differ, options)
        return differ.run(resolve_diff_program(program))


def apply_set(
    ctx: typer.Context,
    name: Annotated[
        str,
        typer.Argument(help="Name of the config set."),
    ],
    filenames: Annotated[
        list[str],
        typer.Option(
            "--filename",
            "-f",
            help="Manifest file or directory ('-' for stdin). Can be repeated.",
        ),
    ],
    recursive: Annotated[
        bool,
        typer.Option(
            "--recursive",
            "-R",
            help="Process directories recursively.",
        ),
    ] = False,
    dry_run: Annotated[
        bool,
        typer.Option(
            "--dry-run",
            help="Show what would be applied and pruned without making changes.",
        ),
    ] = False,
    force_conflicts: Annotated[
        bool,
        typer.Option(
            "--force-conflicts",
            help="Take ownership of fields managed by other writers.",
        ),
    ] = False,
    diff: Annotated[
        bool,
        typer.Option(
            "--diff",
            help="Show a diff of the changes (implies --dry-run).",
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
    """Apply manifests as a config set.

    Every object is applied in file order. Objects tracked by the previous
    apply of NAME that are not in the manifests any more are deleted, unless
    some object failed, in which case nothing is deleted and the failed
    objects are kept in the set for the next run.
    """
    quiet = bool(ctx.obj and ctx.obj.get("quiet"))
    settings = get_settings(ctx)
    if diff:
        dry_run = True

    try:
        objects = load_objects(
            filenames,
            recursive=recursive,
            default_namespace=settings.cluster.effective_namespace,
        )
    except ManifestError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    if not objects:
        print_warning("No objects found; every resource tracked by this set will be pruned.")

    engine = require_engine(ctx, settings)
    options = RunOptions(dry_run=dry_run, force_conflicts=force_conflicts)

    try:
        outcome = stream_results(engine.iter_apply(name, objects, options), quiet=quiet)
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
