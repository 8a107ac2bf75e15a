"""Global configuration — XDG paths, YAML config file, env vars, defaults."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from downtraffic.errors import ConfigParseError
from downtraffic.units import parse_duration, parse_size

logger = logging.getLogger(__name__)

_ENV_PREFIX = "DOWNTRAFFIC_"


def _default_config_dir() -> Path:
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "downtraffic"
    return Path.home() / ".config" / "downtraffic"


def _to_int(key: str, value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigParseError(key, str(value)) from None


def _to_float(key: str, value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ConfigParseError(key, str(value)) from None


@dataclass
class DownTrafficConfig:
    """Application-wide configuration.

    Precedence, lowest first: defaults, YAML config file, environment
    variables, then whatever the CLI sets on the loaded object.
    """

    config_dir: Path = field(default_factory=_default_config_dir)
    workers: int = 4
    duration: float = 0.0  # seconds, 0 = unbounded
    limit: int = 0  # bytes, 0 = unbounded
    urls_file: Path | None = None
    interface: str | None = None
    offset: int = 0
    poll_interval: float = 0.5
    report_interval: float = 1.0
    backoff: float = 2.0
    chunk_size: int = 32 * 1024
    response_timeout: float = 10.0

    @classmethod
    def load(cls, path: str | Path | None = None) -> DownTrafficConfig:
        """Load config from an optional YAML file and environment variables."""
        config = cls()

        config_file = Path(path) if path else config.config_dir / "config.yaml"
        if path or config_file.is_file():
            config.apply(config._read_file(config_file))

        config.apply(
            {
                key.lower(): os.environ[_ENV_PREFIX + key]
                for key in ("WORKERS", "DURATION", "LIMIT", "URLS_FILE", "INTERFACE", "OFFSET")
                if os.environ.get(_ENV_PREFIX + key)
            }
        )

        # A urls.txt next to the config file is picked up automatically
        if config.urls_file is None:
            default_urls = config.config_dir / "urls.txt"
            if default_urls.is_file():
                config.urls_file = default_urls

        return config

    def apply(self, values: dict[str, Any]) -> None:
        """Set fields from raw (string or YAML-typed) values, parsing units."""
        for key, value in values.items():
            if value is None:
                continue
            if key == "workers":
                self.workers = _to_int(key, value)
            elif key == "duration":
                self.duration = parse_duration(str(value))
            elif key == "limit":
                self.limit = parse_size(str(value))
            elif key == "offset":
                self.offset = parse_size(str(value))
            elif key == "chunk_size":
                self.chunk_size = parse_size(str(value))
            elif key == "urls_file":
                self.urls_file = Path(str(value)).expanduser() if value else None
            elif key == "interface":
                self.interface = str(value) or None
            elif key in ("poll_interval", "report_interval", "backoff", "response_timeout"):
                setattr(self, key, _to_float(key, value))
            else:
                logger.warning("Ignoring unknown config key: %s", key)

    @staticmethod
    def _read_file(path: Path) -> dict[str, Any]:
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigParseError("config file", f"{path} ({exc.strerror})") from exc
        try:
            data = yaml.safe_load(text) or {}
        except yaml.YAMLError as exc:
            raise ConfigParseError("config file", f"{path} ({exc})") from exc
        if not isinstance(data, dict):
            raise ConfigParseError("config file", str(path))
        logger.debug("Loaded config from %s", path)
        return data
