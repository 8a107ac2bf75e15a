"""CLI command: downtraffic interfaces — list interfaces and their byte counters."""

from __future__ import annotations

import click
from rich.table import Table

from downtraffic.cli.display import console
from downtraffic.errors import InterfaceUnavailable
from downtraffic.netstats import detect_interface, get_reader, host_interfaces
from downtraffic.units import format_bytes


@click.command()
def interfaces() -> None:
    """List network interfaces with received/transmitted totals."""
    reader = get_reader()
    if not reader.available:
        raise click.ClickException("Interface statistics are not available on this system")

    names = host_interfaces(reader)
    detected = detect_interface(reader, present=names)

    table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
    table.add_column("Interface")
    table.add_column("Received", justify="right")
    table.add_column("Transmitted", justify="right")
    table.add_column("")

    for name in names:
        try:
            sample = reader.read(name)
        except InterfaceUnavailable:
            table.add_row(name, "-", "-", "[dim]unreadable[/dim]")
            continue
        marker = "[cyan]auto-detected[/cyan]" if name == detected else ""
        table.add_row(
            name,
            format_bytes(sample.received_bytes),
            format_bytes(sample.transmitted_bytes),
            marker,
        )

    console.print(table)
