"""Download worker — fetch, stream into the sink, back off, repeat until cancelled."""

from __future__ import annotations

import contextlib
import functools
import logging

import requests
import urllib3

from downtraffic.engine.cancel import CancellationSignal
from downtraffic.engine.counter import ByteSink
from downtraffic.engine.models import WorkerState
from downtraffic.engine.sources import SourceSelector
from downtraffic.errors import (
    CancellationInducedError,
    DownloadError,
    SourceError,
    TransportError,
)

logger = logging.getLogger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

# identity: count the bytes that actually cross the wire
REQUEST_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept-Encoding": "identity",
}

DEFAULT_BACKOFF = 2.0
DEFAULT_CHUNK_SIZE = 32 * 1024
# Bounds connect and the wait for response headers; body reads stay unbounded
DEFAULT_RESPONSE_TIMEOUT = 10.0

_URL_DISPLAY_LEN = 60


def truncate_url(url: str, max_len: int = _URL_DISPLAY_LEN) -> str:
    if len(url) <= max_len:
        return url
    return url[: max_len - 3] + "..."


def _abort_response(response: requests.Response) -> None:
    """Unblock a read in progress on another thread.

    urllib3 raises ValueError or RuntimeError when the connection is already
    gone or back in the pool; either way there is nothing left to unblock.
    """
    with contextlib.suppress(OSError, ValueError, RuntimeError):
        response.raw.shutdown()


def _clear_read_timeout(response: requests.Response) -> None:
    """Let body reads block indefinitely once the headers are in."""
    connection = getattr(response.raw, "connection", None)
    sock = getattr(connection, "sock", None)
    if sock is not None:
        sock.settimeout(None)


class DownloadWorker:
    """One download loop, driven by an explicit state machine.

    FETCHING -> STREAMING -> (BACKOFF | FETCHING); STOPPED is reached only
    through the cancellation signal. Limits are never checked here.
    """

    def __init__(
        self,
        worker_id: int,
        selector: SourceSelector,
        sink: ByteSink,
        cancel: CancellationSignal,
        session: requests.Session | None = None,
        backoff: float = DEFAULT_BACKOFF,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        response_timeout: float = DEFAULT_RESPONSE_TIMEOUT,
    ) -> None:
        self.worker_id = worker_id
        self._selector = selector
        self._sink = sink
        self._cancel = cancel
        self._session = session
        self._backoff = backoff
        self._chunk_size = chunk_size
        self._response_timeout = response_timeout
        self._state = WorkerState.FETCHING
        self.requests_started = 0
        self.failures = 0

    @property
    def state(self) -> WorkerState:
        return self._state

    def run(self) -> None:
        """Blocking worker loop; returns once the worker is STOPPED."""
        owns_session = self._session is None
        session = self._session or requests.Session()
        try:
            while True:
                self._state = WorkerState.FETCHING
                if self._cancel.is_set():
                    break

                url = self._selector.next_for(self.worker_id)
                try:
                    self.fetch(session, url)
                except DownloadError as exc:
                    if self._cancel.is_set() or isinstance(exc, CancellationInducedError):
                        logger.debug("[W%d] stopped during transfer: %s", self.worker_id, exc)
                        break
                    self.failures += 1
                    logger.warning(
                        "[W%d] download failed: %s (%s), retrying in %.0fs",
                        self.worker_id,
                        truncate_url(url),
                        exc,
                        self._backoff,
                    )
                    self._state = WorkerState.BACKOFF
                    if self._cancel.wait(self._backoff):
                        break
        finally:
            self._state = WorkerState.STOPPED
            if owns_session:
                session.close()
        logger.debug("[W%d] stopped", self.worker_id)

    def fetch(self, session: requests.Session, url: str) -> None:
        """Issue one streaming GET and drain the body into the sink."""
        self.requests_started += 1
        logger.info("[W%d] downloading %s", self.worker_id, truncate_url(url))

        try:
            response = session.get(
                url,
                headers=REQUEST_HEADERS,
                stream=True,
                timeout=(self._response_timeout, self._response_timeout),
            )
        except requests.RequestException as exc:
            raise self._classify(url, exc) from exc

        abort = functools.partial(_abort_response, response)
        self._cancel.add_callback(abort)
        try:
            if not 200 <= response.status_code < 300:
                raise SourceError(url, response.status_code)
            _clear_read_timeout(response)
            self._state = WorkerState.STREAMING
            self._stream(url, response)
        finally:
            self._cancel.remove_callback(abort)
            response.close()

    def _stream(self, url: str, response: requests.Response) -> None:
        try:
            for chunk in response.raw.stream(self._chunk_size, decode_content=False):
                self._sink.write(chunk)
                if self._cancel.is_set():
                    return
        except (urllib3.exceptions.HTTPError, requests.RequestException, OSError) as exc:
            raise self._classify(url, exc) from exc

    def _classify(self, url: str, exc: Exception) -> DownloadError:
        if self._cancel.is_set():
            return CancellationInducedError(url, str(exc))
        return TransportError(url, str(exc))
