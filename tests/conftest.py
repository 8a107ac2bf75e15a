"""Shared test fixtures — fake interface readers and fake HTTP sessions."""

from __future__ import annotations

import http.server
import threading
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest
import requests
import urllib3

from downtraffic.engine.counter import TrafficCounter
from downtraffic.errors import InterfaceNotFound
from downtraffic.netstats.base import InterfaceSample


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep the developer's real config and env out of every test."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    for key in ("WORKERS", "DURATION", "LIMIT", "URLS_FILE", "INTERFACE", "OFFSET"):
        monkeypatch.delenv(f"DOWNTRAFFIC_{key}", raising=False)


@pytest.fixture
def fixtures_dir() -> Path:
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def net_dev_path(fixtures_dir: Path) -> Path:
    return fixtures_dir / "net_dev.txt"


@pytest.fixture
def urls_path(fixtures_dir: Path) -> Path:
    return fixtures_dir / "urls.txt"


# ---------------------------------------------------------------------------
# Interface stats fakes
# ---------------------------------------------------------------------------


class FakeReader:
    """Replays a fixed sequence of (rx, tx) samples per interface.

    The last sample repeats once the sequence is exhausted. Names listed in
    ``failing`` raise InterfaceNotFound.
    """

    def __init__(
        self,
        samples: dict[str, list[tuple[int, int]]],
        failing: set[str] | None = None,
    ) -> None:
        self._samples = {name: list(seq) for name, seq in samples.items()}
        self._failing = failing or set()
        self.reads: list[str] = []

    @property
    def available(self) -> bool:
        return True

    def interfaces(self) -> list[str]:
        return list(self._samples)

    def read(self, interface: str) -> InterfaceSample:
        self.reads.append(interface)
        if interface in self._failing or interface not in self._samples:
            raise InterfaceNotFound(interface)
        seq = self._samples[interface]
        rx, tx = seq.pop(0) if len(seq) > 1 else seq[0]
        return InterfaceSample(interface, received_bytes=rx, transmitted_bytes=tx)


class CounterLinkedReader:
    """Simulated interface whose rx grows with the shared counter plus extra growth."""

    def __init__(
        self,
        counter: TrafficCounter,
        interface: str = "eth0",
        received: int = 500,
        transmitted: int = 2000,
    ) -> None:
        self.counter = counter
        self.interface = interface
        self.received = received
        self.transmitted = transmitted
        self.extra_rx = 0

    @property
    def available(self) -> bool:
        return True

    def interfaces(self) -> list[str]:
        return [self.interface]

    def read(self, interface: str) -> InterfaceSample:
        if interface != self.interface:
            raise InterfaceNotFound(interface)
        return InterfaceSample(
            interface,
            received_bytes=self.received + self.counter.value + self.extra_rx,
            transmitted_bytes=self.transmitted,
        )


@pytest.fixture
def fake_reader_cls() -> type[FakeReader]:
    return FakeReader


@pytest.fixture
def linked_reader_cls() -> type[CounterLinkedReader]:
    return CounterLinkedReader


# ---------------------------------------------------------------------------
# HTTP fakes
# ---------------------------------------------------------------------------


class FakeRaw:
    """Stand-in for urllib3.HTTPResponse exposing stream() and shutdown()."""

    def __init__(
        self,
        chunks: list[bytes] | None = None,
        endless: bytes | None = None,
        stall: bool = False,
        error: Exception | None = None,
        on_exhausted: Callable[[], None] | None = None,
        shutdown_error: Exception | None = None,
    ) -> None:
        self._chunks = chunks or []
        self._endless = endless
        self._stall = stall
        self._error = error
        self._on_exhausted = on_exhausted
        self._shutdown_error = shutdown_error
        self.shutdown_called = threading.Event()
        self.decode_content: bool | None = None

    def shutdown(self) -> None:
        self.shutdown_called.set()
        if self._shutdown_error is not None:
            raise self._shutdown_error

    def stream(self, amt: int, decode_content: bool | None = None) -> Iterator[bytes]:
        self.decode_content = decode_content
        yield from self._chunks
        if self._on_exhausted is not None:
            self._on_exhausted()
        if self._error is not None:
            raise self._error
        if self._stall:
            self.shutdown_called.wait(timeout=5)
            raise urllib3.exceptions.ProtocolError("Connection broken: shutdown")
        while self._endless is not None and not self.shutdown_called.is_set():
            yield self._endless


class FakeResponse:
    def __init__(self, status_code: int = 200, raw: FakeRaw | None = None) -> None:
        self.status_code = status_code
        self.raw = raw or FakeRaw()
        self.closed = False

    def close(self) -> None:
        self.closed = True


class FakeSession:
    """Returns scripted responses (or raises scripted errors) in call order.

    Once the script is exhausted the ``default`` factory is used.
    """

    def __init__(
        self,
        script: list[FakeResponse | Exception] | None = None,
        default: Callable[[], FakeResponse] | None = None,
    ) -> None:
        self._script = list(script or [])
        self._default = default
        self._lock = threading.Lock()
        self.calls: list[tuple[str, dict]] = []
        self.timeouts: list[object] = []
        self.closed = False

    def get(
        self,
        url: str,
        headers: dict | None = None,
        stream: bool = False,
        timeout: object = None,
    ) -> FakeResponse:
        with self._lock:
            self.calls.append((url, dict(headers or {})))
            self.timeouts.append(timeout)
            item = self._script.pop(0) if self._script else None
        if item is None:
            if self._default is None:
                raise requests.ConnectionError("no scripted response")
            item = self._default()
        if isinstance(item, Exception):
            raise item
        return item

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_raw_cls() -> type[FakeRaw]:
    return FakeRaw


@pytest.fixture
def fake_response_cls() -> type[FakeResponse]:
    return FakeResponse


@pytest.fixture
def fake_session_cls() -> type[FakeSession]:
    return FakeSession


# ---------------------------------------------------------------------------
# Loopback HTTP source
# ---------------------------------------------------------------------------


class _SourceHandler(http.server.BaseHTTPRequestHandler):
    """Serves ``/endless`` (body until disconnect), ``/silent`` (never
    answers) and ``/<status>`` (empty response with that status)."""

    def do_GET(self) -> None:
        mode = self.path.strip("/")
        stop = self.server.stop_event
        if mode == "silent":
            stop.wait(30)
            return
        if mode == "endless":
            self.send_response(200)
            self.send_header("Content-Type", "application/octet-stream")
            self.end_headers()
            chunk = b"\0" * 16384
            try:
                while not stop.is_set():
                    self.wfile.write(chunk)
            except OSError:
                return
            return
        self.send_response(int(mode) if mode.isdigit() else 404)
        self.send_header("Content-Length", "0")
        self.end_headers()

    def log_message(self, format: str, *args: object) -> None:
        pass


@pytest.fixture
def source_server() -> Iterator[str]:
    """Base URL of a local HTTP server, e.g. ``http://127.0.0.1:PORT``."""
    server = http.server.ThreadingHTTPServer(("127.0.0.1", 0), _SourceHandler)
    server.stop_event = threading.Event()
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    host, port = server.server_address[:2]
    yield f"http://{host}:{port}"
    server.stop_event.set()
    server.shutdown()
    server.server_close()


def _direct_session() -> requests.Session:
    session = requests.Session()
    # keep proxy settings from the environment away from loopback requests
    session.trust_env = False
    return session


@pytest.fixture
def real_session_factory() -> Callable[[], requests.Session]:
    return _direct_session
