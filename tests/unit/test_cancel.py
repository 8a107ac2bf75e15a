"""Tests for the broadcast cancellation signal."""

from __future__ import annotations

import threading

from downtraffic.engine.cancel import CancellationSignal
from downtraffic.engine.models import StopReason


def test_first_reason_wins():
    signal = CancellationSignal()
    assert signal.cancel(StopReason.LIMIT_REACHED) is True
    assert signal.cancel(StopReason.INTERRUPTED) is False
    assert signal.reason is StopReason.LIMIT_REACHED
    assert signal.is_set()


def test_broadcast_wakes_all_waiters():
    signal = CancellationSignal()
    woke: list[int] = []
    lock = threading.Lock()

    def _wait(i: int) -> None:
        if signal.wait(timeout=5):
            with lock:
                woke.append(i)

    threads = [threading.Thread(target=_wait, args=(i,)) for i in range(5)]
    for t in threads:
        t.start()
    signal.cancel(StopReason.INTERRUPTED)
    for t in threads:
        t.join(timeout=2)
    assert sorted(woke) == [0, 1, 2, 3, 4]


def test_callbacks_run_once():
    signal = CancellationSignal()
    calls: list[str] = []
    signal.add_callback(lambda: calls.append("a"))
    signal.cancel(StopReason.INTERRUPTED)
    signal.cancel(StopReason.INTERRUPTED)
    assert calls == ["a"]


def test_callback_added_after_cancel_runs_immediately():
    signal = CancellationSignal()
    signal.cancel(StopReason.INTERRUPTED)
    calls: list[str] = []
    signal.add_callback(lambda: calls.append("late"))
    assert calls == ["late"]


def test_removed_callback_does_not_run():
    signal = CancellationSignal()
    calls: list[str] = []

    def _cb() -> None:
        calls.append("x")

    signal.add_callback(_cb)
    signal.remove_callback(_cb)
    signal.remove_callback(_cb)
    signal.cancel(StopReason.INTERRUPTED)
    assert calls == []


def test_failing_callback_does_not_block_others():
    signal = CancellationSignal()
    calls: list[str] = []

    def _boom() -> None:
        raise RuntimeError("boom")

    signal.add_callback(_boom)
    signal.add_callback(lambda: calls.append("ok"))
    assert signal.cancel(StopReason.INTERRUPTED)
    assert calls == ["ok"]


def test_deadline_cancels_with_deadline_reason():
    signal = CancellationSignal()
    signal.set_deadline(0.05)
    assert signal.wait(timeout=2)
    assert signal.reason is StopReason.DEADLINE


def test_zero_deadline_is_ignored():
    signal = CancellationSignal()
    signal.set_deadline(0)
    assert signal.wait(timeout=0.05) is False


def test_explicit_cancel_beats_deadline():
    signal = CancellationSignal()
    signal.set_deadline(0.2)
    signal.cancel(StopReason.BALANCED)
    assert signal.wait(timeout=0.5)
    assert signal.reason is StopReason.BALANCED
