"""Shared traffic counter and the discarding byte sink."""

from __future__ import annotations

import threading
from collections.abc import Iterable


class TrafficCounter:
    """Process-wide monotonic byte accumulator.

    Every increment happens under one lock, so concurrent adds are never
    lost. Threshold waiters are woken by the add that crosses their
    threshold.
    """

    def __init__(self) -> None:
        self._value = 0
        self._cond = threading.Condition(threading.Lock())

    @property
    def value(self) -> int:
        with self._cond:
            return self._value

    def add(self, n: int) -> int:
        """Add ``n`` bytes and return the new total."""
        if n < 0:
            raise ValueError("TrafficCounter only accepts non-negative increments")
        with self._cond:
            self._value += n
            self._cond.notify_all()
            return self._value

    def wait_for(self, threshold: int, timeout: float | None = None) -> bool:
        """Block until the total reaches ``threshold`` or ``timeout`` elapses."""
        with self._cond:
            return self._cond.wait_for(lambda: self._value >= threshold, timeout)


class ByteSink:
    """Discards everything written to it, counting each chunk first."""

    def __init__(self, counter: TrafficCounter) -> None:
        self._counter = counter

    @property
    def counter(self) -> TrafficCounter:
        return self._counter

    def write(self, chunk: bytes) -> int:
        n = len(chunk)
        if n:
            self._counter.add(n)
        return n

    def drain(self, chunks: Iterable[bytes]) -> int:
        """Consume an iterable of chunks; returns the bytes consumed."""
        total = 0
        for chunk in chunks:
            total += self.write(chunk)
        return total
