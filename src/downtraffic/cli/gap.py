"""CLI command: downtraffic gap — show the current upload/download gap."""

from __future__ import annotations

import click

from downtraffic.cli.display import console, render_gap
from downtraffic.cli.run import load_config
from downtraffic.errors import ConfigParseError, InterfaceUnavailable
from downtraffic.netstats import detect_interface, get_reader
from downtraffic.units import parse_size


@click.command()
@click.option("--interface", "-i", default=None, help="Interface name (default: auto-detect).")
@click.option("--offset", default=None, help="Extra upload volume to balance against, e.g. 1300G.")
@click.pass_context
def gap(ctx: click.Context, interface: str | None, offset: str | None) -> None:
    """Show how much must be downloaded to balance the interface."""
    config = load_config(ctx)
    try:
        offset_bytes = parse_size(offset) if offset is not None else config.offset
    except ConfigParseError as exc:
        raise click.BadParameter(str(exc), param_hint="'--offset'") from exc

    reader = get_reader()
    if not reader.available:
        raise click.ClickException("Interface statistics are not available on this system")

    name = interface or config.interface or detect_interface(reader)
    try:
        sample = reader.read(name)
    except InterfaceUnavailable as exc:
        raise click.ClickException(str(exc)) from exc

    console.print(render_gap(sample, offset_bytes))
