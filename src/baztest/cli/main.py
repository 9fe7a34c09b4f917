"""baztest CLI - bzt command."""

import click

from baztest import __version__
from baztest.cli.coverage import coverage_command
from baztest.cli.discover import discover_command
from baztest.cli.parse import parse_xml_command
from baztest.cli.run import run_command
from baztest.core.logging import configure_logging


@click.group()
@click.version_option(version=__version__, prog_name="bzt")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """baztest - discover, run and inspect Bazel tests."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    configure_logging(level="DEBUG" if verbose else "WARNING")


cli.add_command(discover_command, name="discover")
cli.add_command(run_command, name="run")
cli.add_command(parse_xml_command, name="parse-xml")
cli.add_command(coverage_command, name="coverage")


if __name__ == "__main__":
    cli()
