"""bzt parse-xml command - summarize a test.xml report."""

import json
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from baztest.cli.utils import fail
from baztest.core.errors import ParseError
from baztest.testing.models import CaseStatus
from baztest.testing.xml_report import read_test_xml

_STATUS_STYLE = {
    CaseStatus.PASS: "green",
    CaseStatus.FAIL: "red",
    CaseStatus.TIMEOUT: "magenta",
    CaseStatus.SKIP: "yellow",
    CaseStatus.ERROR: "red bold",
}


@click.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--label", default="//:report", help="Target label the report belongs to")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def parse_xml_command(path: Path, label: str, as_json: bool) -> None:
    """Parse a Bazel test.xml report at PATH."""
    try:
        report = read_test_xml(path, label)
    except ParseError as e:
        raise fail(e) from e

    s = report.summary
    if as_json:
        click.echo(
            json.dumps(
                {
                    "target": report.target_label,
                    "summary": {
                        "total": s.total,
                        "passed": s.passed,
                        "failed": s.failed,
                        "skipped": s.skipped,
                        "timed_out": s.timed_out,
                        "errors": s.errors,
                        "source": s.source,
                    },
                    "cases": [
                        {
                            "name": c.name,
                            "status": c.status.value,
                            "suite": c.suite,
                            "message": c.error_message,
                            "file": c.file,
                            "line": c.line,
                        }
                        for c in report.test_cases
                    ],
                },
                indent=2,
            )
        )
        return

    console = Console()
    table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
    table.add_column("Case")
    table.add_column("Status")
    table.add_column("Location")
    for c in report.test_cases:
        name = f"{c.suite}.{c.name}" if c.suite else c.name
        loc = f"{c.file}:{c.line}" if c.file and c.line else (c.file or "")
        style = _STATUS_STYLE[c.status]
        table.add_row(escape(name), f"[{style}]{c.status.value}[/{style}]", escape(loc))
    console.print(table)
    console.print(
        f"{s.total} total, {s.passed} passed, {s.failed} failed, "
        f"{s.skipped} skipped, {s.timed_out} timed out"
    )
