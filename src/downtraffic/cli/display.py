"""Operator-facing output — builds Rich renderables for banner, progress and summary."""

from __future__ import annotations

from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from downtraffic import __version__
from downtraffic.engine.models import (
    ByteCap,
    Parity,
    RateSample,
    RunSummary,
    StopCondition,
    StopReason,
)
from downtraffic.netstats.base import InterfaceSample
from downtraffic.units import format_bytes, format_elapsed, format_speed

console = Console(stderr=True)

_REASON_TEXT = {
    StopReason.INTERRUPTED: "interrupted",
    StopReason.LIMIT_REACHED: "download limit reached",
    StopReason.BALANCED: "upload/download balanced",
    StopReason.DEADLINE: "duration elapsed",
    StopReason.ALREADY_BALANCED: "already balanced",
}


def _kv_table() -> Table:
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="dim")
    table.add_column()
    return table


def render_banner(
    condition: StopCondition,
    workers: int,
    duration: float,
    url_count: int,
    urls_file: str | None,
) -> Panel:
    """Startup banner echoing the resolved configuration."""
    table = _kv_table()

    if isinstance(condition, Parity):
        table.add_row("Mode", "[cyan]parity[/cyan] (download until rx catches up with tx)")
        table.add_row("Interface", condition.interface)
        if condition.offset:
            table.add_row("Offset", format_bytes(condition.offset))
        table.add_row("Current gap", f"{format_bytes(condition.initial_gap)} to download")
    table.add_row("Workers", str(workers))
    if not isinstance(condition, Parity):
        table.add_row(
            "Duration",
            format_elapsed(duration) if duration > 0 else "unlimited (Ctrl+C to stop)",
        )
        table.add_row(
            "Limit",
            format_bytes(condition.limit) if isinstance(condition, ByteCap) else "unlimited",
        )
    table.add_row("Sources", f"{url_count} URL(s)")
    table.add_row("URL file", urls_file or "[dim]built-in list[/dim]")

    return Panel(
        table,
        title=f"[bold]DownTraffic v{__version__}[/bold]",
        subtitle="[dim]Ctrl+C stops gracefully[/dim]",
        border_style="cyan",
        expand=False,
    )


def render_progress(sample: RateSample) -> Text:
    """The single, continuously overwritten progress line."""
    line = (
        f"Rate: {format_speed(sample.rate):<12} | "
        f"Total: {format_bytes(sample.total):<10} | "
        f"Elapsed: {format_elapsed(sample.elapsed)}"
    )
    if sample.gap is not None:
        line += " | Balanced" if sample.gap <= 0 else f" | Gap: {format_bytes(sample.gap)}"
    elif sample.percent is not None:
        line += f" | Progress: {sample.percent:.1f}%"
    return Text(line, style="bold")


def render_summary(summary: RunSummary) -> Panel:
    """Boxed final totals."""
    table = _kv_table()
    table.add_row("Stopped", _REASON_TEXT[summary.reason])
    table.add_row("Downloaded", format_bytes(summary.total_bytes))
    table.add_row("Elapsed", format_elapsed(summary.elapsed))
    table.add_row("Average rate", format_speed(summary.average_rate))
    table.add_row("Peak rate", format_speed(summary.peak_rate))
    table.add_row("Workers", str(summary.workers))
    if summary.final_gap is not None:
        if summary.final_gap <= 0:
            table.add_row("Parity", "[green]balanced[/green]")
        else:
            table.add_row("Remaining gap", format_bytes(summary.final_gap))
    return Panel(table, title="[bold]Download Summary[/bold]", border_style="green", expand=False)


def render_gap(sample: InterfaceSample, offset: int) -> Table:
    """Interface counters and the current parity gap."""
    gap = sample.gap(offset)
    table = _kv_table()
    table.add_row("Interface", sample.interface)
    table.add_row("Upload", format_bytes(sample.transmitted_bytes + offset))
    table.add_row("Download", format_bytes(sample.received_bytes))
    if gap > 0:
        table.add_row("Gap", f"[yellow]{format_bytes(gap)}[/yellow] to download")
    else:
        table.add_row("Gap", "[green]balanced[/green] (download >= upload)")
    return table


class ProgressLine:
    """Renders RateSamples into one Live line; used as the reporter callback."""

    def __init__(self, console: Console, enabled: bool = True) -> None:
        self._console = console
        self._enabled = enabled
        self._live: Live | None = None

    def __enter__(self) -> ProgressLine:
        if self._enabled:
            self._live = Live(
                Text("Starting downloads...", style="dim"),
                console=self._console,
                auto_refresh=False,
                transient=False,
            )
            self._live.start()
        return self

    def __exit__(self, *exc: object) -> None:
        if self._live is not None:
            self._live.stop()
            self._live = None

    def __call__(self, sample: RateSample) -> None:
        if self._live is not None:
            self._live.update(render_progress(sample), refresh=True)
