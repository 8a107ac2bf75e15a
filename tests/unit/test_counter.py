"""Tests for the shared traffic counter and the byte sink."""

from __future__ import annotations

import random
import threading

import pytest

from downtraffic.engine.counter import ByteSink, TrafficCounter


def test_counter_concurrent_adds_are_exact():
    counter = TrafficCounter()
    rng = random.Random(42)
    amounts = [[rng.randint(1, 65536) for _ in range(2000)] for _ in range(8)]

    def _work(values: list[int]) -> None:
        for n in values:
            counter.add(n)

    threads = [threading.Thread(target=_work, args=(values,)) for values in amounts]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert counter.value == sum(sum(values) for values in amounts)


def test_counter_rejects_negative():
    counter = TrafficCounter()
    counter.add(10)
    with pytest.raises(ValueError):
        counter.add(-1)
    assert counter.value == 10


def test_counter_add_returns_total():
    counter = TrafficCounter()
    assert counter.add(5) == 5
    assert counter.add(7) == 12


def test_wait_for_times_out():
    counter = TrafficCounter()
    counter.add(10)
    assert counter.wait_for(100, timeout=0.01) is False


def test_wait_for_wakes_on_crossing_add():
    counter = TrafficCounter()
    done = threading.Event()
    result: list[bool] = []

    def _waiter() -> None:
        result.append(counter.wait_for(1000, timeout=5))
        done.set()

    t = threading.Thread(target=_waiter)
    t.start()
    counter.add(400)
    counter.add(600)
    assert done.wait(timeout=2)
    t.join()
    assert result == [True]


def test_sink_counts_every_chunk():
    counter = TrafficCounter()
    sink = ByteSink(counter)
    assert sink.write(b"abc") == 3
    assert sink.write(b"") == 0
    assert sink.drain([b"x" * 10, b"y" * 5]) == 15
    assert counter.value == 18
    assert sink.counter is counter
