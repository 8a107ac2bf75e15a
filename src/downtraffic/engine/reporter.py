"""Rate reporter — samples the shared counter once per interval."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from downtraffic.engine.cancel import CancellationSignal
from downtraffic.engine.counter import TrafficCounter
from downtraffic.engine.models import ByteCap, Parity, RateSample, StopCondition
from downtraffic.errors import InterfaceUnavailable
from downtraffic.netstats.base import InterfaceStatsReader

logger = logging.getLogger(__name__)

DEFAULT_REPORT_INTERVAL = 1.0


class RateReporter:
    """Derives instantaneous throughput from counter deltas.

    Purely observational: it never raises cancellation, and a failed
    interface read only drops the gap field from that sample.
    """

    def __init__(
        self,
        counter: TrafficCounter,
        cancel: CancellationSignal,
        condition: StopCondition,
        reader: InterfaceStatsReader | None = None,
        interval: float = DEFAULT_REPORT_INTERVAL,
        on_sample: Callable[[RateSample], None] | None = None,
        start_time: float | None = None,
    ) -> None:
        self._counter = counter
        self._cancel = cancel
        self._condition = condition
        self._reader = reader
        self._interval = interval
        self._on_sample = on_sample
        self._start_time = start_time if start_time is not None else time.monotonic()
        self._last_total = 0
        self.peak_rate = 0
        self.last_sample: RateSample | None = None

    def run(self) -> None:
        """Blocking sampling loop until cancellation."""
        while not self._cancel.wait(self._interval):
            self.sample()

    def sample(self, now: float | None = None) -> RateSample:
        """Take one sample and publish it."""
        now = now if now is not None else time.monotonic()
        total = self._counter.value
        elapsed = max(0.0, now - self._start_time)
        # one interval per tick, so the delta is already bytes/second
        rate = int((total - self._last_total) / self._interval)
        self._last_total = total
        self.peak_rate = max(self.peak_rate, rate)

        sample = RateSample(
            rate=rate,
            total=total,
            elapsed=elapsed,
            percent=self._percent(total),
            gap=self._gap(),
        )
        self.last_sample = sample

        if self._on_sample is not None:
            try:
                self._on_sample(sample)
            except Exception:
                logger.exception("Progress callback failed")
        return sample

    def _percent(self, total: int) -> float | None:
        if isinstance(self._condition, ByteCap) and self._condition.limit > 0:
            return total / self._condition.limit * 100
        return None

    def _gap(self) -> int | None:
        if not isinstance(self._condition, Parity) or self._reader is None:
            return None
        try:
            sample = self._reader.read(self._condition.interface)
        except InterfaceUnavailable as exc:
            logger.debug("Gap unavailable for progress line: %s", exc)
            return None
        return sample.gap(self._condition.offset)
