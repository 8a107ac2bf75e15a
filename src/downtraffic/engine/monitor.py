"""Stop-condition monitor — byte cap and live upstream/downstream parity."""

from __future__ import annotations

import logging

from downtraffic.engine.cancel import CancellationSignal
from downtraffic.engine.counter import TrafficCounter
from downtraffic.engine.models import ByteCap, Parity, StopCondition, StopReason
from downtraffic.errors import InterfaceUnavailable
from downtraffic.netstats.base import InterfaceStatsReader
from downtraffic.units import format_bytes

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 0.5


class StopConditionMonitor:
    """Watches the active stop condition and raises cancellation when it is met."""

    def __init__(
        self,
        condition: StopCondition,
        counter: TrafficCounter,
        cancel: CancellationSignal,
        reader: InterfaceStatsReader | None = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        if isinstance(condition, Parity) and reader is None:
            raise ValueError("Parity monitoring needs an interface stats reader")
        self._condition = condition
        self._counter = counter
        self._cancel = cancel
        self._reader = reader
        self._poll_interval = poll_interval
        self.last_gap: int | None = None

    @property
    def is_needed(self) -> bool:
        """False for Unbounded runs (and zero caps), which need no monitor."""
        if isinstance(self._condition, Parity):
            return True
        return isinstance(self._condition, ByteCap) and self._condition.limit > 0

    def run(self) -> None:
        """Blocking loop until the condition fires or cancellation is raised."""
        if isinstance(self._condition, ByteCap):
            self._watch_cap(self._condition.limit)
        elif isinstance(self._condition, Parity):
            self._watch_parity(self._condition)

    def check(self) -> bool:
        """Evaluate the condition once; True when the run should stop."""
        if isinstance(self._condition, ByteCap):
            return self._counter.value >= self._condition.limit
        if isinstance(self._condition, Parity):
            gap = self.live_gap()
            return gap is not None and gap <= 0
        return False

    def live_gap(self) -> int | None:
        """Fresh tx + offset - rx for the parity interface, None if unreadable."""
        if not isinstance(self._condition, Parity) or self._reader is None:
            return None
        try:
            sample = self._reader.read(self._condition.interface)
        except InterfaceUnavailable as exc:
            logger.debug("Parity poll failed: %s", exc)
            return None
        self.last_gap = sample.gap(self._condition.offset)
        return self.last_gap

    def _watch_cap(self, limit: int) -> None:
        if limit <= 0:
            return
        while not self._cancel.is_set():
            if self._counter.wait_for(limit, timeout=self._poll_interval):
                logger.info("Download limit %s reached", format_bytes(limit))
                self._cancel.cancel(StopReason.LIMIT_REACHED)
                return

    def _watch_parity(self, condition: Parity) -> None:
        while not self._cancel.wait(self._poll_interval):
            gap = self.live_gap()
            if gap is not None and gap <= 0:
                logger.info("Interface %s is balanced", condition.interface)
                self._cancel.cancel(StopReason.BALANCED)
                return
