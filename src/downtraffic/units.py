"""Human-readable sizes and durations — parsing and formatting."""

from __future__ import annotations

import re

from downtraffic.errors import ConfigParseError

KB = 1024
MB = 1024 * KB
GB = 1024 * MB
TB = 1024 * GB

_SIZE_MULTIPLIERS = {"": 1, "K": KB, "M": MB, "G": GB, "T": TB}

_SIZE_RE = re.compile(r"^(\d+(?:\.\d*)?|\.\d+)\s*([KMGT]?)B?$", re.IGNORECASE)

_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,  # U+00B5 micro sign
    "μs": 1e-6,  # U+03BC greek mu
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
    "d": 86400.0,
}

_DURATION_TOKEN_RE = re.compile(r"(\d+(?:\.\d*)?|\.\d+)([a-zµμ]+)")
_DURATION_RE = re.compile(r"^(?:(?:\d+(?:\.\d*)?|\.\d+)[a-zµμ]+)+$")


def _is_unbounded(text: str) -> bool:
    return text == "" or text == "0"


def parse_size(text: str) -> int:
    """Parse a size like ``100G``, ``1.5g`` or ``512000`` into bytes.

    ``""`` and ``"0"`` mean "no limit" and return 0. Suffixes K/M/G/T are
    powers of 1024; a trailing ``B`` is tolerated so that ``format_bytes``
    output parses back.
    """
    text = text.strip()
    if _is_unbounded(text):
        return 0

    match = _SIZE_RE.match(text)
    if match is None:
        raise ConfigParseError("size", text)

    mantissa, suffix = match.groups()
    return int(float(mantissa) * _SIZE_MULTIPLIERS[suffix.upper()])


def parse_duration(text: str) -> float:
    """Parse a duration like ``30s``, ``1h30m`` or ``1d`` into seconds.

    ``""`` and ``"0"`` mean "run forever" and return 0. A bare number other
    than ``0`` is rejected because its unit would be ambiguous.
    """
    text = text.strip().lower()
    if _is_unbounded(text):
        return 0.0

    if not _DURATION_RE.match(text):
        raise ConfigParseError("duration", text)

    seconds = 0.0
    for mantissa, unit in _DURATION_TOKEN_RE.findall(text):
        factor = _DURATION_UNITS.get(unit)
        if factor is None:
            raise ConfigParseError("duration unit", f"{mantissa}{unit}")
        seconds += float(mantissa) * factor
    return seconds


def format_bytes(n: float) -> str:
    """Format a byte count as ``1.50 GB`` / ``512 B``."""
    if n >= TB:
        return f"{n / TB:.2f} TB"
    if n >= GB:
        return f"{n / GB:.2f} GB"
    if n >= MB:
        return f"{n / MB:.2f} MB"
    if n >= KB:
        return f"{n / KB:.2f} KB"
    return f"{int(n)} B"


def format_speed(bytes_per_sec: float) -> str:
    return format_bytes(bytes_per_sec) + "/s"


def format_elapsed(seconds: float) -> str:
    """Format seconds as ``HH:MM:SS`` (hours are not wrapped at 24)."""
    total = int(seconds)
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"
