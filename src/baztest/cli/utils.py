"""CLI utilities."""

from collections.abc import Callable
from pathlib import Path

import click
from rich.console import Console

from baztest.core.errors import BazTestError

WORKSPACE_MARKERS = ("MODULE.bazel", "WORKSPACE.bazel", "WORKSPACE")


def find_workspace_root(start_path: Path | None = None) -> Path:
    """Find the Bazel workspace root from the given path.

    Walks up the directory tree looking for MODULE.bazel or WORKSPACE.

    Raises:
        click.ClickException: If not inside a Bazel workspace
    """
    if start_path is None:
        start_path = Path.cwd()

    current = start_path.resolve()
    for candidate in (current, *current.parents):
        if any((candidate / marker).exists() for marker in WORKSPACE_MARKERS):
            return candidate

    raise click.ClickException(
        f"Not inside a Bazel workspace: {start_path}\n"
        "Expected MODULE.bazel or WORKSPACE in this directory or a parent."
    )


def console_notifier(console: Console) -> Callable[[str], None]:
    """Notice callback printing to the given console."""

    def notify(message: str) -> None:
        console.print(f"[yellow]![/yellow] {message}")

    return notify


def fail(error: BazTestError) -> click.ClickException:
    return click.ClickException(error.message)
