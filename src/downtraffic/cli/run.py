"""CLI command: downtraffic run — download and discard until a stop condition fires."""

from __future__ import annotations

import contextlib
import signal
import threading
from collections.abc import Iterator

import click

from downtraffic.cli.display import (
    ProgressLine,
    console,
    render_banner,
    render_gap,
    render_summary,
)
from downtraffic.config import DownTrafficConfig
from downtraffic.engine.manager import TrafficManager, resolve_stop_condition
from downtraffic.engine.models import Parity, RunSummary
from downtraffic.engine.sources import DEFAULT_URLS, load_urls
from downtraffic.errors import ConfigParseError, InterfaceUnavailable
from downtraffic.netstats import get_reader


@contextlib.contextmanager
def _sigterm_as_interrupt() -> Iterator[None]:
    """Deliver SIGTERM as KeyboardInterrupt until the engine installs its own handlers."""
    if threading.current_thread() is not threading.main_thread():
        yield
        return
    previous = signal.signal(signal.SIGTERM, signal.default_int_handler)
    try:
        yield
    finally:
        if previous is not None:
            signal.signal(signal.SIGTERM, previous)


def load_config(ctx: click.Context) -> DownTrafficConfig:
    """Load the config named by the group's --config option (or the default)."""
    try:
        return DownTrafficConfig.load(ctx.obj.get("config_path"))
    except ConfigParseError as exc:
        raise click.ClickException(str(exc)) from exc


@click.command()
@click.option(
    "--threads",
    "-t",
    type=click.IntRange(min=1),
    default=None,
    help="Concurrent download workers (default: 4).",
)
@click.option("--duration", "-d", default=None, help="Run time, e.g. 30s, 5m, 2h, 1d (0 = unlimited).")
@click.option("--limit", "-l", default=None, help="Total download cap, e.g. 500M, 100G, 1T (0 = unlimited).")
@click.option(
    "--urls-file",
    "-f",
    type=click.Path(dir_okay=False),
    default=None,
    help="File with one URL per line (# starts a comment).",
)
@click.option(
    "--balance",
    "-b",
    is_flag=True,
    help="Parity mode: download until received traffic matches transmitted traffic.",
)
@click.option("--interface", "-i", default=None, help="Interface for parity mode (default: auto-detect).")
@click.option("--offset", default=None, help="Extra upload volume to balance against, e.g. 1300G.")
@click.option("--no-progress", is_flag=True, help="Disable the live progress line.")
@click.pass_context
def run(
    ctx: click.Context,
    threads: int | None,
    duration: str | None,
    limit: str | None,
    urls_file: str | None,
    balance: bool,
    interface: str | None,
    offset: str | None,
    no_progress: bool,
) -> None:
    """Consume download bandwidth by fetching public files and discarding them."""
    with _sigterm_as_interrupt():
        try:
            summary = _start(
                ctx, threads, duration, limit, urls_file, balance, interface, offset, no_progress
            )
        except KeyboardInterrupt:
            # engine handlers take over once the workers start
            console.print("[yellow]Interrupted before downloads started[/yellow]")
            return
    if summary is not None:
        console.print(render_summary(summary))


def _start(
    ctx: click.Context,
    threads: int | None,
    duration: str | None,
    limit: str | None,
    urls_file: str | None,
    balance: bool,
    interface: str | None,
    offset: str | None,
    no_progress: bool,
) -> RunSummary | None:
    config = load_config(ctx)
    try:
        config.apply(
            {
                "workers": threads,
                "duration": duration,
                "limit": limit,
                "urls_file": urls_file,
                "interface": interface,
                "offset": offset,
            }
        )
    except ConfigParseError as exc:
        raise click.BadParameter(str(exc)) from exc
    if config.workers < 1:
        raise click.BadParameter("must be >= 1", param_hint="'--threads'")

    reader = get_reader()
    try:
        condition = resolve_stop_condition(
            reader,
            limit=config.limit,
            balance=balance,
            interface=config.interface,
            offset=config.offset,
        )
    except InterfaceUnavailable as exc:
        raise click.ClickException(str(exc)) from exc

    if isinstance(condition, Parity) and condition.initial_gap <= 0:
        console.print("[green]✓ Upload and download are already balanced, nothing to download[/green]")
        console.print(render_gap(condition.baseline, condition.offset))
        return None

    urls = load_urls(config.urls_file)
    progress = ProgressLine(console, enabled=not no_progress and console.is_terminal)
    manager = TrafficManager(
        condition,
        urls,
        workers=config.workers,
        duration=config.duration,
        reader=reader,
        poll_interval=config.poll_interval,
        report_interval=config.report_interval,
        backoff=config.backoff,
        chunk_size=config.chunk_size,
        response_timeout=config.response_timeout,
        on_sample=progress,
    )

    console.print(
        render_banner(
            condition,
            workers=config.workers,
            duration=config.duration,
            url_count=len(urls),
            urls_file=None if urls is DEFAULT_URLS else str(config.urls_file),
        )
    )

    with progress:
        return manager.run(install_signal_handlers=True)
