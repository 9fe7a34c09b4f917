"""bzt run command - run test targets."""

import asyncio
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from baztest.cli.utils import console_notifier, fail, find_workspace_root
from baztest.core.errors import BazTestError
from baztest.explorer import TestExplorer
from baztest.testing.coverage.state import format_short
from baztest.testing.models import NodeStatus
from baztest.testing.orchestrator import RunOutcome

_STATUS_STYLE = {
    NodeStatus.PASSED: "[green]PASSED[/green]",
    NodeStatus.FAILED: "[red]FAILED[/red]",
}


class ConsoleOutputSink:
    """Streams tool output, prefixed with the target when several run at once."""

    def __init__(self, console: Console, *, prefix: bool, quiet: bool) -> None:
        self._console = console
        self._prefix = prefix
        self._quiet = quiet

    def write_line(self, label: str, line: str) -> None:
        if self._quiet:
            return
        if self._prefix:
            self._console.print(f"[dim]{escape(label)}[/dim] {escape(line)}", highlight=False)
        else:
            self._console.print(line, markup=False, highlight=False)


def _results_table(outcome: RunOutcome) -> Table:
    table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
    table.add_column("Target")
    table.add_column("Status")
    table.add_column("Cases", justify="right")
    table.add_column("Detail")
    for o in outcome.outcomes:
        cases = ""
        if o.report is not None and o.report.summary.total:
            s = o.report.summary
            cases = f"{s.passed}/{s.total}"
        detail = o.message or ""
        if o.coverage is not None:
            detail = f"{detail} {format_short(o.coverage)}".strip()
        status = _STATUS_STYLE.get(o.status, o.status.value)
        table.add_row(escape(o.label), status, cases, escape(detail))
    for label in outcome.cancelled:
        table.add_row(escape(label), "[yellow]CANCELLED[/yellow]", "", "")
    return table


def _print_failure_locations(console: Console, outcome: RunOutcome) -> None:
    for o in outcome.outcomes:
        for loc in o.failure_locations:
            console.print(
                f"[red]{escape(o.label)}[/red] {escape(loc.file)}:{loc.line}", highlight=False
            )


@click.command()
@click.argument("labels", nargs=-1, required=True)
@click.option(
    "-w",
    "--workspace",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Workspace root (default: search upward from the current directory)",
)
@click.option("--coverage", is_flag=True, help="Run under bazel coverage")
@click.option("--filter", "test_filter", default=None, help="Only run test cases matching NAME")
@click.option("--flag", "flags", multiple=True, help="Extra bazel flag (repeatable)")
@click.option("-q", "--quiet", is_flag=True, help="Don't stream bazel output")
def run_command(
    labels: tuple[str, ...],
    workspace: Path | None,
    coverage: bool,
    test_filter: str | None,
    flags: tuple[str, ...],
    quiet: bool,
) -> None:
    """Run LABELS (target labels or package paths like //pkg)."""
    root = find_workspace_root(workspace)
    console = Console()
    sink = ConsoleOutputSink(console, prefix=len(labels) > 1, quiet=quiet)
    try:
        explorer = TestExplorer.create(
            root, notify=console_notifier(Console(stderr=True)), output=sink
        )
    except BazTestError as e:
        raise fail(e) from e

    async def _go() -> RunOutcome | None:
        await explorer.refresh()
        if not explorer.discovery.loaded:
            return None
        return await explorer.run(
            labels, overrides=flags, test_filter=test_filter, coverage=coverage
        )

    with explorer:
        outcome = asyncio.run(_go())
    if outcome is None:
        raise click.ClickException("Test discovery failed")
    if not outcome.outcomes and not outcome.cancelled:
        raise click.ClickException(f"No test targets matched: {' '.join(labels)}")

    console.print(_results_table(outcome))
    _print_failure_locations(console, outcome)
    if not outcome.ok:
        raise SystemExit(1)
