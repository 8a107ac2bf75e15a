"""Concurrent traffic-consumption engine."""

from downtraffic.engine.cancel import CancellationSignal
from downtraffic.engine.counter import ByteSink, TrafficCounter
from downtraffic.engine.manager import TrafficManager, resolve_stop_condition
from downtraffic.engine.models import (
    ByteCap,
    Parity,
    RateSample,
    RunSummary,
    StopCondition,
    StopReason,
    Unbounded,
    WorkerState,
)

__all__ = [
    "ByteCap",
    "ByteSink",
    "CancellationSignal",
    "Parity",
    "RateSample",
    "RunSummary",
    "StopCondition",
    "StopReason",
    "TrafficCounter",
    "TrafficManager",
    "Unbounded",
    "WorkerState",
    "resolve_stop_condition",
]
