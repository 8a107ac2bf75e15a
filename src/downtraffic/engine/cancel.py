"""Broadcast cancellation signal shared by the manager, monitor, reporter and workers."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from downtraffic.engine.models import StopReason

logger = logging.getLogger(__name__)


class CancellationSignal:
    """A single cancellation event observed by every concurrent activity.

    The first ``cancel()`` wins: its reason is recorded and every registered
    callback runs exactly once. Later calls are no-ops. An optional deadline
    cancels the signal with ``StopReason.DEADLINE`` when it expires.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._reason: StopReason | None = None
        self._callbacks: list[Callable[[], None]] = []
        self._timer: threading.Timer | None = None

    @property
    def reason(self) -> StopReason | None:
        return self._reason

    def is_set(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until cancelled or ``timeout`` elapses. Returns is_set()."""
        return self._event.wait(timeout)

    def cancel(self, reason: StopReason) -> bool:
        """Raise the signal. Returns True only for the call that raised it."""
        with self._lock:
            if self._event.is_set():
                return False
            self._reason = reason
            self._event.set()
            callbacks = list(self._callbacks)
            self._callbacks.clear()
            timer = self._timer

        if timer is not None:
            timer.cancel()
        logger.info("Cancellation raised: %s", reason.value)
        for callback in callbacks:
            try:
                callback()
            except Exception:
                logger.exception("Cancellation callback failed")
        return True

    def add_callback(self, callback: Callable[[], None]) -> None:
        """Run ``callback`` on cancellation (immediately if already cancelled)."""
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return
        callback()

    def remove_callback(self, callback: Callable[[], None]) -> None:
        with self._lock:
            try:
                self._callbacks.remove(callback)
            except ValueError:
                pass

    def set_deadline(self, seconds: float) -> None:
        """Cancel with DEADLINE after ``seconds`` (ignored when <= 0)."""
        if seconds <= 0:
            return
        timer = threading.Timer(seconds, self.cancel, args=(StopReason.DEADLINE,))
        timer.daemon = True
        with self._lock:
            if self._event.is_set():
                return
            if self._timer is not None:
                self._timer.cancel()
            self._timer = timer
        timer.start()
