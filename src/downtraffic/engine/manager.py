"""Traffic manager — orchestrates workers, the stop-condition monitor and the reporter."""

from __future__ import annotations

import logging
import random
import signal
import threading
import time
from collections.abc import Callable, Sequence

import requests

from downtraffic.engine.cancel import CancellationSignal
from downtraffic.engine.counter import ByteSink, TrafficCounter
from downtraffic.engine.models import (
    ByteCap,
    Parity,
    RateSample,
    RunSummary,
    StopCondition,
    StopReason,
    Unbounded,
)
from downtraffic.engine.monitor import DEFAULT_POLL_INTERVAL, StopConditionMonitor
from downtraffic.engine.reporter import DEFAULT_REPORT_INTERVAL, RateReporter
from downtraffic.engine.sources import SourceSelector
from downtraffic.engine.worker import (
    DEFAULT_BACKOFF,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_RESPONSE_TIMEOUT,
    DownloadWorker,
)
from downtraffic.errors import InterfaceUnavailable
from downtraffic.netstats import detect_interface
from downtraffic.netstats.base import InterfaceStatsReader

logger = logging.getLogger(__name__)

# Main-thread wake-up period while waiting for cancellation
_WAIT_SLICE = 0.5
# Grace period for the observer threads after cancellation
_OBSERVER_JOIN_TIMEOUT = 2.0
# Lower bound on how long workers get to stop after cancellation
_MIN_WORKER_JOIN_TIMEOUT = 1.0


def resolve_stop_condition(
    reader: InterfaceStatsReader,
    limit: int = 0,
    balance: bool = False,
    interface: str | None = None,
    offset: int = 0,
) -> StopCondition:
    """Pick the single stop condition for this run.

    Parity takes precedence over an explicit cap; its baseline sample is
    read once here. Raises InterfaceUnavailable when parity is requested
    but no interface can be read.
    """
    if balance:
        if not reader.available:
            raise InterfaceUnavailable(
                "Parity mode needs live interface statistics (Linux /proc/net/dev)"
            )
        name = interface or detect_interface(reader)
        try:
            baseline = reader.read(name)
        except InterfaceUnavailable as exc:
            raise InterfaceUnavailable(f"Cannot read interface {name}: {exc}") from exc
        return Parity(interface=name, offset=offset, baseline=baseline)
    if limit > 0:
        return ByteCap(limit)
    return Unbounded()


class TrafficManager:
    """Runs one traffic-consumption session from start to final summary."""

    def __init__(
        self,
        condition: StopCondition,
        urls: Sequence[str],
        workers: int = 4,
        duration: float = 0.0,
        reader: InterfaceStatsReader | None = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        report_interval: float = DEFAULT_REPORT_INTERVAL,
        backoff: float = DEFAULT_BACKOFF,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        response_timeout: float = DEFAULT_RESPONSE_TIMEOUT,
        on_sample: Callable[[RateSample], None] | None = None,
        session_factory: Callable[[], requests.Session] | None = None,
        rng: random.Random | None = None,
    ) -> None:
        if workers < 1:
            raise ValueError("workers must be >= 1")
        self._condition = condition
        self._worker_count = workers
        self._duration = duration
        self._reader = reader
        self._poll_interval = poll_interval
        self._report_interval = report_interval
        self._backoff = backoff
        self._chunk_size = chunk_size
        self._response_timeout = response_timeout
        self._on_sample = on_sample
        self._session_factory = session_factory

        self._counter = TrafficCounter()
        self._cancel = CancellationSignal()
        self._selector = SourceSelector(urls, rng=rng)
        self._workers: list[DownloadWorker] = []

    @property
    def condition(self) -> StopCondition:
        return self._condition

    @property
    def counter(self) -> TrafficCounter:
        return self._counter

    @property
    def cancel_signal(self) -> CancellationSignal:
        return self._cancel

    @property
    def workers(self) -> list[DownloadWorker]:
        return list(self._workers)

    def stop(self, reason: StopReason = StopReason.INTERRUPTED) -> None:
        """Raise the shared cancellation signal (first reason wins)."""
        self._cancel.cancel(reason)

    def run(self, install_signal_handlers: bool = False) -> RunSummary:
        """Blocking run: start everything, wait for cancellation, drain, summarize."""
        condition = self._condition
        if isinstance(condition, Parity) and condition.initial_gap <= 0:
            logger.info(
                "Interface %s already balanced (gap %d), nothing to download",
                condition.interface,
                condition.initial_gap,
            )
            return RunSummary(
                reason=StopReason.ALREADY_BALANCED,
                total_bytes=0,
                elapsed=0.0,
                workers=0,
                final_gap=condition.initial_gap,
            )

        restore = self._install_signal_handlers() if install_signal_handlers else None
        start = time.monotonic()
        reporter = RateReporter(
            self._counter,
            self._cancel,
            condition,
            reader=self._reader,
            interval=self._report_interval,
            on_sample=self._on_sample,
            start_time=start,
        )
        monitor = StopConditionMonitor(
            condition,
            self._counter,
            self._cancel,
            reader=self._reader,
            poll_interval=self._poll_interval,
        )

        observers = [threading.Thread(target=reporter.run, name="reporter", daemon=True)]
        if monitor.is_needed:
            observers.append(
                threading.Thread(target=monitor.run, name="monitor", daemon=True)
            )
        for thread in observers:
            thread.start()

        sessions: list[requests.Session] = []
        worker_threads: list[threading.Thread] = []
        sink = ByteSink(self._counter)
        for worker_id in range(1, self._worker_count + 1):
            session = self._session_factory() if self._session_factory else None
            if session is not None:
                sessions.append(session)
            worker = DownloadWorker(
                worker_id,
                self._selector,
                sink,
                self._cancel,
                session=session,
                backoff=self._backoff,
                chunk_size=self._chunk_size,
                response_timeout=self._response_timeout,
            )
            self._workers.append(worker)
            thread = threading.Thread(
                target=worker.run, name=f"worker-{worker_id}", daemon=True
            )
            worker_threads.append(thread)
            thread.start()

        self._cancel.set_deadline(self._duration)
        logger.info("Started %d worker(s)", self._worker_count)

        try:
            while not self._cancel.wait(_WAIT_SLICE):
                pass
        finally:
            if restore is not None:
                restore()

        self._join_workers(worker_threads)
        for thread in observers:
            thread.join(timeout=_OBSERVER_JOIN_TIMEOUT)
        for session in sessions:
            session.close()

        elapsed = time.monotonic() - start
        final_gap = monitor.live_gap() if isinstance(condition, Parity) else None
        reason = self._cancel.reason or StopReason.INTERRUPTED
        logger.info("Run finished: %s", reason.value)
        return RunSummary(
            reason=reason,
            total_bytes=self._counter.value,
            elapsed=elapsed,
            workers=self._worker_count,
            peak_rate=reporter.peak_rate,
            final_gap=final_gap,
        )

    def _join_workers(self, threads: list[threading.Thread]) -> None:
        """Wait up to one backoff interval for every worker to stop.

        A worker still blocked on connect or on response headers is left
        behind; it is a daemon thread and gives up on its own once its
        response timeout expires.
        """
        deadline = time.monotonic() + max(self._backoff, _MIN_WORKER_JOIN_TIMEOUT)
        for thread in threads:
            thread.join(timeout=max(0.0, deadline - time.monotonic()))
            if thread.is_alive():
                logger.warning("%s did not stop in time, leaving it behind", thread.name)

    def _install_signal_handlers(self) -> Callable[[], None] | None:
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not on the main thread — signal handlers not installed")
            return None

        original_sigint = signal.getsignal(signal.SIGINT)
        original_sigterm = signal.getsignal(signal.SIGTERM)

        def _signal_handler(signum: int, frame: object) -> None:
            logger.info("Received %s, stopping", signal.Signals(signum).name)
            self.stop(StopReason.INTERRUPTED)

        signal.signal(signal.SIGINT, _signal_handler)
        signal.signal(signal.SIGTERM, _signal_handler)

        def _restore() -> None:
            signal.signal(signal.SIGINT, original_sigint)
            signal.signal(signal.SIGTERM, original_sigterm)

        return _restore
