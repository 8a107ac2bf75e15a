"""InterfaceStatsReader protocol — every stats source must satisfy this."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from downtraffic.errors import StatsUnavailable


@dataclass(frozen=True)
class InterfaceSample:
    """Cumulative byte counters of one interface at one point in time."""

    interface: str
    received_bytes: int
    transmitted_bytes: int
    timestamp: float = field(default_factory=time.monotonic, compare=False)

    def gap(self, offset: int = 0) -> int:
        """Bytes still to download before rx catches up with tx + offset."""
        return self.transmitted_bytes + offset - self.received_bytes

    def delta(self, earlier: InterfaceSample) -> tuple[int, int]:
        """Return (rx, tx) growth since an earlier sample."""
        return (
            self.received_bytes - earlier.received_bytes,
            self.transmitted_bytes - earlier.transmitted_bytes,
        )


@runtime_checkable
class InterfaceStatsReader(Protocol):
    """Protocol for interface statistics sources."""

    def read(self, interface: str) -> InterfaceSample:
        """Return the current counters for ``interface``.

        Raises InterfaceNotFound or StatsUnavailable.
        """
        ...

    def interfaces(self) -> list[str]:
        """Names of every interface the source knows about."""
        ...

    @property
    def available(self) -> bool:
        """Whether this source can produce samples at all."""
        ...


class UnavailableReader:
    """Stand-in used on platforms without a kernel statistics table."""

    def __init__(self, reason: str = "interface statistics unavailable") -> None:
        self._reason = reason

    def read(self, interface: str) -> InterfaceSample:
        raise StatsUnavailable(self._reason)

    def interfaces(self) -> list[str]:
        return []

    @property
    def available(self) -> bool:
        return False
