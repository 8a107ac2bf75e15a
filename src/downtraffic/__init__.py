"""DownTraffic — consume downstream bandwidth by downloading and discarding."""

__version__ = "1.1.0"
