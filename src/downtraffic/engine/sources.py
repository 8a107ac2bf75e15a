"""Download sources — URL list loading and per-worker rotation."""

from __future__ import annotations

import logging
import random
import threading
from collections.abc import Sequence
from pathlib import Path

logger = logging.getLogger(__name__)

# Public speed-test files. Plain HTTP avoids TLS trouble on minimal hosts.
DEFAULT_URLS: tuple[str, ...] = (
    # Tele2
    "http://speedtest.tele2.net/100MB.zip",
    "http://speedtest.tele2.net/1GB.zip",
    "http://speedtest.tele2.net/10GB.zip",
    # OVH
    "http://proof.ovh.net/files/100Mb.dat",
    "http://proof.ovh.net/files/1Gb.dat",
    "http://proof.ovh.net/files/10Gb.dat",
    # Hetzner (US Ashburn)
    "http://ash-speed.hetzner.com/100MB.bin",
    "http://ash-speed.hetzner.com/1GB.bin",
    "http://ash-speed.hetzner.com/10GB.bin",
    # ThinkBroadband (UK)
    "http://ipv4.download.thinkbroadband.com/100MB.zip",
    "http://ipv4.download.thinkbroadband.com/1GB.zip",
    # Hetzner (DE)
    "http://speed.hetzner.de/100MB.bin",
    "http://speed.hetzner.de/1GB.bin",
    "http://speed.hetzner.de/10GB.bin",
)


def parse_url_list(text: str) -> list[str]:
    """One URL per line; blank lines and ``#`` comments are ignored."""
    urls: list[str] = []
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        urls.append(line)
    return urls


def load_urls(path: str | Path | None) -> tuple[str, ...]:
    """Load the URL list, falling back to DEFAULT_URLS. Never raises."""
    if not path:
        return DEFAULT_URLS

    try:
        text = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("Cannot read URL file %s, using built-in list: %s", path, exc)
        return DEFAULT_URLS

    urls = parse_url_list(text)
    if not urls:
        logger.warning("URL file %s is empty, using built-in list", path)
        return DEFAULT_URLS

    logger.info("Loaded %d URL(s) from %s", len(urls), path)
    return tuple(urls)


class SourceSelector:
    """Hands out URLs round-robin, each worker from its own random offset."""

    def __init__(self, urls: Sequence[str], rng: random.Random | None = None) -> None:
        if not urls:
            raise ValueError("SourceSelector needs at least one URL")
        self._urls = tuple(urls)
        self._rng = rng or random.Random()
        self._cursors: dict[int, int] = {}
        self._lock = threading.Lock()

    @property
    def urls(self) -> tuple[str, ...]:
        return self._urls

    def __len__(self) -> int:
        return len(self._urls)

    def cursor_for(self, worker_id: int) -> int:
        """Current rotation position of ``worker_id`` (assigned on first use)."""
        with self._lock:
            return self._cursor(worker_id)

    def next_for(self, worker_id: int) -> str:
        """Return the next URL for ``worker_id`` and advance its cursor."""
        with self._lock:
            cursor = self._cursor(worker_id)
            self._cursors[worker_id] = (cursor + 1) % len(self._urls)
        return self._urls[cursor]

    def _cursor(self, worker_id: int) -> int:
        if worker_id not in self._cursors:
            self._cursors[worker_id] = self._rng.randrange(len(self._urls))
        return self._cursors[worker_id]
