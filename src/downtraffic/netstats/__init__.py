"""Interface statistics — live readers, platform selection and auto-detection."""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterable

import psutil

from downtraffic.errors import InterfaceUnavailable
from downtraffic.netstats.base import (
    InterfaceSample,
    InterfaceStatsReader,
    UnavailableReader,
)
from downtraffic.netstats.linux import ProcNetDevReader

logger = logging.getLogger(__name__)

DEFAULT_INTERFACE = "eth0"

# Common primary interface names, most likely first
PREFERRED_INTERFACES = (
    "eth0",
    "ens3",
    "ens18",
    "ens192",
    "enp0s3",
    "enp1s0",
    "venet0",
)

_EXCLUDED_PREFIXES = ("docker", "br-", "veth", "virbr")

__all__ = [
    "DEFAULT_INTERFACE",
    "InterfaceSample",
    "InterfaceStatsReader",
    "ProcNetDevReader",
    "UnavailableReader",
    "detect_interface",
    "get_reader",
    "host_interfaces",
]


def get_reader() -> InterfaceStatsReader:
    """Return the live reader for this platform, or an UnavailableReader."""
    if not sys.platform.startswith("linux"):
        return UnavailableReader(f"interface statistics not supported on {sys.platform}")

    reader = ProcNetDevReader()
    if not reader.available:
        logger.debug("%s unreadable — parity mode disabled", reader.path)
        return UnavailableReader(f"{reader.path} is not readable")
    return reader


def host_interfaces(reader: InterfaceStatsReader) -> list[str]:
    """Names of the interfaces actually present on this host."""
    try:
        names = list(psutil.net_if_stats())
    except (OSError, RuntimeError) as exc:
        logger.debug("psutil.net_if_stats() failed: %s", exc)
        names = []
    return sorted(names) if names else reader.interfaces()


def _is_excluded(name: str) -> bool:
    return name == "lo" or name.startswith(_EXCLUDED_PREFIXES)


def detect_interface(
    reader: InterfaceStatsReader,
    present: Iterable[str] | None = None,
) -> str:
    """Best-effort choice of the primary interface. Never raises.

    Tries the preferred names first, then every non-loopback, non-container
    interface present on the host, and returns the first one ``reader`` can
    read. Falls back to ``eth0``.
    """
    candidates = list(PREFERRED_INTERFACES)
    if present is None:
        present = host_interfaces(reader)
    for name in present:
        if _is_excluded(name) or name in candidates:
            continue
        candidates.append(name)

    for name in candidates:
        try:
            reader.read(name)
        except InterfaceUnavailable:
            continue
        logger.debug("Auto-detected interface %s", name)
        return name

    logger.debug("No readable interface found, falling back to %s", DEFAULT_INTERFACE)
    return DEFAULT_INTERFACE
