"""Linux interface counters from /proc/net/dev."""

from __future__ import annotations

import logging
from pathlib import Path

from downtraffic.errors import InterfaceNotFound, StatsUnavailable
from downtraffic.netstats.base import InterfaceSample

logger = logging.getLogger(__name__)

PROC_NET_DEV = Path("/proc/net/dev")

# rx_bytes is the 1st field after the name, tx_bytes the 9th
_RX_FIELD = 0
_TX_FIELD = 8
_MIN_FIELDS = 10


def parse_net_dev(content: str) -> dict[str, tuple[int, int]]:
    """Parse /proc/net/dev text into ``{name: (rx_bytes, tx_bytes)}``.

    Header lines and rows with fewer than ten counters are skipped.
    """
    table: dict[str, tuple[int, int]] = {}
    for line in content.splitlines():
        if ":" not in line:
            continue
        name, _, rest = line.partition(":")
        name = name.strip()
        parts = rest.split()
        if not name or len(parts) < _MIN_FIELDS:
            continue
        try:
            table[name] = (int(parts[_RX_FIELD]), int(parts[_TX_FIELD]))
        except ValueError:
            logger.debug("Skipping malformed /proc/net/dev row: %r", line)
    return table


class ProcNetDevReader:
    """Reads live rx/tx byte counters from the kernel's /proc/net/dev."""

    def __init__(self, path: str | Path = PROC_NET_DEV) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def available(self) -> bool:
        try:
            self._load()
        except StatsUnavailable:
            return False
        return True

    def read(self, interface: str) -> InterfaceSample:
        table = self._load()
        try:
            rx, tx = table[interface]
        except KeyError:
            raise InterfaceNotFound(interface) from None
        return InterfaceSample(
            interface=interface, received_bytes=rx, transmitted_bytes=tx
        )

    def interfaces(self) -> list[str]:
        try:
            return list(self._load())
        except StatsUnavailable:
            return []

    def _load(self) -> dict[str, tuple[int, int]]:
        try:
            content = self._path.read_text(encoding="utf-8")
        except OSError as exc:
            raise StatsUnavailable(f"Cannot read {self._path}: {exc}") from exc
        return parse_net_dev(content)
