"""bzt coverage command - summarize an LCOV report."""

from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from baztest.cli.utils import fail
from baztest.core.errors import ParseError
from baztest.testing.coverage.lcov import LcovParser
from baztest.testing.coverage.models import CoverageSummary
from baztest.testing.coverage.state import format_short


@click.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--base",
    type=click.Path(file_okay=False, path_type=Path),
    default=".",
    help="Directory relative SF paths resolve against",
)
@click.option(
    "--fallback",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Secondary root tried when a path doesn't exist under --base",
)
@click.option("--branches", is_flag=True, help="Summarize branch instead of line coverage")
def coverage_command(path: Path, base: Path, fallback: Path | None, branches: bool) -> None:
    """Parse an LCOV tracefile (e.g. bazel's coverage.dat) at PATH."""
    try:
        files = LcovParser().parse_file(path, base.resolve(), fallback)
    except ParseError as e:
        raise fail(e) from e

    summary = CoverageSummary.from_files(
        files, kind="branch" if branches else "line", artifacts=[str(path)]
    )
    table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
    table.add_column("File")
    table.add_column("Covered", justify="right")
    table.add_column("Total", justify="right")
    table.add_column("%", justify="right")
    for f in summary.files:
        table.add_row(escape(f.path), str(f.covered), str(f.total), f"{f.percent:.1f}")

    console = Console()
    console.print(table)
    console.print(f"{summary.kind}: {summary.covered}/{summary.total} {format_short(summary)}")
