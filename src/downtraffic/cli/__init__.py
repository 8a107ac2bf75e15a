"""CLI entry point — Click group with global options."""

from __future__ import annotations

import logging

import click
from rich.logging import RichHandler

from downtraffic import __version__
from downtraffic.cli.display import console


@click.group()
@click.version_option(version=__version__, prog_name="downtraffic")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    help="Path to a YAML config file.",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.pass_context
def main(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """DownTraffic — consume download bandwidth by fetching and discarding public files."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose

    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(name)s: %(message)s",
        datefmt="%H:%M:%S",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def _register_commands() -> None:
    from downtraffic.cli.gap import gap  # noqa: F811
    from downtraffic.cli.interfaces import interfaces  # noqa: F811
    from downtraffic.cli.run import run  # noqa: F811

    main.add_command(run)
    main.add_command(gap)
    main.add_command(interfaces)


_register_commands()
