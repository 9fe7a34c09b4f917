"""bzt discover command - list test targets as a tree."""

import asyncio
import json
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.tree import Tree

from baztest.cli.utils import console_notifier, fail, find_workspace_root
from baztest.core.errors import BazTestError
from baztest.explorer import TestExplorer


@click.command()
@click.option(
    "-w",
    "--workspace",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Workspace root (default: search upward from the current directory)",
)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def discover_command(workspace: Path | None, as_json: bool) -> None:
    """Query the workspace for test targets."""
    root = find_workspace_root(workspace)
    err_console = Console(stderr=True)
    try:
        explorer = TestExplorer.create(root, notify=console_notifier(err_console))
    except BazTestError as e:
        raise fail(e) from e

    with explorer:
        asyncio.run(explorer.refresh())
        if not explorer.discovery.loaded:
            raise click.ClickException("Test discovery failed")

        if as_json:
            click.echo(
                json.dumps(
                    [
                        {
                            "label": t.label,
                            "kind": t.kind,
                            "tags": sorted(t.tags),
                            "shard_count": t.shard_count,
                            "size": t.size,
                        }
                        for t in explorer.discovery.targets
                    ],
                    indent=2,
                )
            )
            return

        tree = Tree(f"[bold]{escape(str(root))}[/bold]")
        for group in explorer.store.roots():
            branch = tree.add(f"[cyan]{escape(group.label)}[/cyan]")
            for leaf in group.children.values():
                branch.add(f"{escape(leaf.label)} [dim]{escape(leaf.description)}[/dim]")
        Console().print(tree)
        click.echo(f"{len(explorer.discovery.targets)} targets")
