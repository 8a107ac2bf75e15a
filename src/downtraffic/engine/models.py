"""Engine data models — stop conditions, worker states, samples and summaries."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Union

from downtraffic.netstats.base import InterfaceSample


class StopReason(enum.Enum):
    """Why a run ended."""

    INTERRUPTED = "interrupted"
    LIMIT_REACHED = "limit_reached"
    BALANCED = "balanced"
    DEADLINE = "deadline"
    ALREADY_BALANCED = "already_balanced"


class WorkerState(enum.Enum):
    """Lifecycle state of a download worker."""

    FETCHING = "fetching"
    STREAMING = "streaming"
    BACKOFF = "backoff"
    STOPPED = "stopped"


@dataclass(frozen=True)
class Unbounded:
    """No byte or parity condition; runs until interrupt or deadline."""

    @property
    def effective_cap(self) -> int:
        return 0


@dataclass(frozen=True)
class ByteCap:
    """Stop once the shared counter reaches ``limit`` bytes."""

    limit: int

    @property
    def effective_cap(self) -> int:
        return self.limit


@dataclass(frozen=True)
class Parity:
    """Stop once received traffic catches up with transmitted + offset.

    ``baseline`` is the sample taken at startup; ``initial_gap`` sizes the
    progress display, the live gap decides when to stop.
    """

    interface: str
    offset: int
    baseline: InterfaceSample

    @property
    def initial_gap(self) -> int:
        return self.baseline.gap(self.offset)

    @property
    def effective_cap(self) -> int:
        return max(0, self.initial_gap)


StopCondition = Union[Unbounded, ByteCap, Parity]


@dataclass(frozen=True)
class RateSample:
    """One reporter tick."""

    rate: int
    total: int
    elapsed: float
    percent: float | None = None
    gap: int | None = None


@dataclass(frozen=True)
class RunSummary:
    """Final totals of a run."""

    reason: StopReason
    total_bytes: int
    elapsed: float
    workers: int
    peak_rate: int = 0
    final_gap: int | None = None

    @property
    def average_rate(self) -> int:
        if self.elapsed <= 0:
            return 0
        return int(self.total_bytes / self.elapsed)
