"""Exception hierarchy shared by the engine, the stats readers and the CLI."""

from __future__ import annotations


class DownTrafficError(Exception):
    """Base class for all DownTraffic errors."""


class ConfigParseError(DownTrafficError, ValueError):
    """A size, duration or config value could not be parsed."""

    def __init__(self, kind: str, token: str) -> None:
        self.kind = kind
        self.token = token
        super().__init__(f"Invalid {kind}: {token!r}")


ParseError = ConfigParseError


class InterfaceUnavailable(DownTrafficError):
    """Interface statistics cannot be obtained."""


class InterfaceNotFound(InterfaceUnavailable):
    """The named interface has no row in the kernel statistics table."""

    def __init__(self, interface: str) -> None:
        self.interface = interface
        super().__init__(f"Interface not found: {interface}")


class StatsUnavailable(InterfaceUnavailable):
    """The kernel statistics table is missing, unreadable or malformed."""


class DownloadError(DownTrafficError):
    """A single download attempt failed; the worker backs off and retries."""

    def __init__(self, url: str, message: str) -> None:
        self.url = url
        super().__init__(message)


class SourceError(DownloadError):
    """The source answered with a non-2xx HTTP status."""

    def __init__(self, url: str, status: int) -> None:
        self.status = status
        super().__init__(url, f"HTTP {status}")


class TransportError(DownloadError):
    """Connection, TLS or body read failure."""


class CancellationInducedError(DownloadError):
    """A download error observed after cancellation was signaled.

    Workers treat this as a clean stop, never as a failure.
    """
