"""Shared Rich display functions for run results and set records.

Provides the per-object result lines streamed during apply and delete,
the run summary, and the tables used by list and describe.
"""

from collections.abc import Iterator

from rich.markup import escape
from rich.table import Table

from configset.models.result import ObjectAction, ObjectResult, RunOutcome
from configset.models.set_info import SetInfo
from configset.utils.formatting import console, create_table, err_console


def format_result(result: ObjectResult) -> str:
    """Format one object result as a single markup line.

    The line reads "<action>: ns=<ns> name=<name> apiVersion=<v> kind=<k>: <status>",
    where status is "ok" or the error message.

    Args:
        result: Object result to format.

    Returns:
        Rich markup string.
    """
    api_version, kind, namespace, name = result.coordinates
    style = "added" if result.action == ObjectAction.UPDATE else "removed"
    if result.succeeded:
        status = "[success]ok[/success]"
    else:
        status = f"[error]{escape(str(result.error))}[/error]"
    return (
        f"[{style}]{result.action.value}[/{style}]: "
        f"ns={namespace} name=[resource.name]{escape(name)}[/resource.name] "
        f"apiVersion={api_version} kind={kind}: {status}"
    )


def print_result(result: ObjectResult, quiet: bool = False) -> None:
    """Print one object result as it is produced.

    Failures go to stderr. Successful results are suppressed in quiet mode.

    Args:
        result: Object result to print.
        quiet: Only print failures.
    """
    if result.failed:
        err_console.print(format_result(result), highlight=False)
    elif not quiet:
        console.print(format_result(result), highlight=False)


def print_run_summary(outcome: RunOutcome, dry_run: bool = False) -> None:
    """Print a summary of a run.

    Args:
        outcome: Results of the run.
        dry_run: Whether the run was a dry run.
    """
    parts = [
        f"[added]{len(outcome.updated)} applied[/added]",
        f"[removed]{len(outcome.deleted)} deleted[/removed]",
    ]
    if outcome.had_errors:
        parts.append(f"[error]{len(outcome.failed)} failed[/error]")
    suffix = " [muted](dry run)[/muted]" if dry_run else ""
    console.print(f"Summary: {', '.join(parts)}{suffix}")


def create_sets_table(infos: list[SetInfo]) -> Table:
    """Create a table listing config sets.

    Args:
        infos: Set records to display.

    Returns:
        Rich Table with Name, Resources, and Updated columns.
    """
    table = create_table(title="Config Sets")
    table.add_column("Name", style="resource.name", no_wrap=True)
    table.add_column("Resources", justify="right")
    table.add_column("Updated", style="muted")

    for info in infos:
        table.add_row(info.name, str(len(info.resources)), info.updated_at or "-")

    return table


def create_resources_table(info: SetInfo) -> Table:
    """Create a table listing the resources tracked by a set.

    Args:
        info: Set record to display.

    Returns:
        Rich Table with one row per tracked resource, in tracked order.
    """
    table = create_table(title=f"Config Set: {info.name}")
    table.add_column("Namespace", style="muted")
    table.add_column("Name", style="resource.name", no_wrap=True)
    table.add_column("Kind")
    table.add_column("API Version")
    table.add_column("UID", style="muted", no_wrap=True)

    for ref in info.resources:
        table.add_row(ref.namespace or "-", ref.name, ref.kind, ref.api_version, ref.uid or "-")

    return table


def stream_results(results: Iterator[ObjectResult], quiet: bool = False) -> RunOutcome:
    """Print results as the engine produces them and collect them.

    Exceptions raised by the underlying generator propagate unchanged.

    Args:
        results: Result stream from the engine.
        quiet: Only print failures.

    Returns:
        RunOutcome with every result printed.
    """
    collected: list[ObjectResult] = []
    for result in results:
        print_result(result, quiet=quiet)
        collected.append(result)
    return RunOutcome(tuple(collected))
