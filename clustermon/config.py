"""Application configuration helpers.

Environment-driven settings for the dashboard, loaded into a frozen
`AppConfig` dataclass.  A ``.env`` file next to the project is read first.
"""

from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from dotenv import load_dotenv

from .services.http import HttpSettings

SOURCE_NAMES = ("nodes", "replication", "tasks", "config", "media")

DEFAULT_PATHS: Dict[str, str] = {
    "nodes": "/.cbfs/nodes/",
    "replication": "/.cbfs/viewproxy/cbfs/_design/cbfs/_view/repcounts?group_level=1",
    "tasks": "/.cbfs/tasks/",
    "config": "/.cbfs/config/",
    "media": "/.cbfs/viewproxy/cbfs/_design/media/_view/media?group_level=3",
}

DEFAULT_INTERVALS: Dict[str, float] = {
    "nodes": 2.0,
    "replication": 5.0,
    "tasks": 1.0,
    "config": 30.0,
    "media": 60.0,
}

LIST_PATH = "/.cbfs/list"

LOGGER = logging.getLogger("clustermon.config")


def _getenv_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return str(raw).strip().lower() in {"1", "true", "yes", "on"}


def _getenv_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, "") or default)
    except ValueError:
        return default


def _getenv_interval(name: str, default: float, *, allow_zero: bool = False) -> float:
    value = _getenv_float(name, default)
    if not math.isfinite(value) or not (value > 0 or (allow_zero and value == 0)):
        LOGGER.warning("%s=%s is not a usable delay, falling back to %ss", name, value, default)
        return default
    return value


def _getenv_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, "") or default)
    except ValueError:
        return default


def _load_dotenv(base_dir: Path) -> None:
    env_path = base_dir / ".env"
    if env_path.exists():
        load_dotenv(env_path)


def join_url(base_url: str, path: str) -> str:
    return base_url.rstrip("/") + "/" + path.lstrip("/")


@dataclass(frozen=True)
class SourceConfig:
    name: str
    url: str
    interval: float


@dataclass(frozen=True)
class AppConfig:
    """Strongly typed dashboard configuration."""

    base_dir: Path
    base_url: str
    paths: Dict[str, str]
    intervals: Dict[str, float]
    retry_delay: float
    stale_heartbeat_ms: float
    browse_sections: List[str]
    task_workers: int
    http_timeout: float
    http_connect_timeout: float
    http_retries: int
    http_backoff_factor: float
    host: str
    port: int
    debug: bool
    log_level: str
    logs_dir: Path = field(init=False)
    log_file_path: Path = field(init=False)

    def __post_init__(self) -> None:
        logs_dir = self.base_dir / "logs"
        object.__setattr__(self, "logs_dir", logs_dir)
        object.__setattr__(self, "log_file_path", logs_dir / "clustermon.log")

    @classmethod
    def load(cls, base_dir: Optional[Path] = None, **overrides) -> "AppConfig":
        base_dir = base_dir or Path(os.getenv("CLUSTERMON_HOME", Path.cwd()))
        _load_dotenv(base_dir)

        paths = {
            name: os.getenv(f"CLUSTERMON_{name.upper()}_PATH", DEFAULT_PATHS[name])
            for name in SOURCE_NAMES
        }
        intervals = {
            name: _getenv_interval(f"CLUSTERMON_{name.upper()}_INTERVAL", DEFAULT_INTERVALS[name])
            for name in SOURCE_NAMES
        }
        sections = os.getenv("CLUSTERMON_BROWSE_SECTIONS", "Music,Picture")
        values = dict(
            base_dir=base_dir,
            base_url=os.getenv("CLUSTERMON_BASE_URL", "http://localhost:8484"),
            paths=paths,
            intervals=intervals,
            retry_delay=_getenv_interval("CLUSTERMON_RETRY_DELAY", 1.0, allow_zero=True),
            stale_heartbeat_ms=_getenv_float("CLUSTERMON_STALE_HEARTBEAT_MS", 180_000),
            browse_sections=[part.strip() for part in sections.split(",") if part.strip()],
            task_workers=max(1, _getenv_int("CLUSTERMON_TASK_WORKERS", 4)),
            http_timeout=_getenv_float("CLUSTERMON_HTTP_TIMEOUT", 30.0),
            http_connect_timeout=_getenv_float("CLUSTERMON_HTTP_CONNECT_TIMEOUT", 5.0),
            http_retries=max(0, _getenv_int("CLUSTERMON_HTTP_RETRIES", 0)),
            http_backoff_factor=_getenv_float("CLUSTERMON_HTTP_BACKOFF", 0.5),
            host=os.getenv("CLUSTERMON_HOST", "0.0.0.0"),
            port=_getenv_int("CLUSTERMON_PORT", 8485),
            debug=_getenv_bool("CLUSTERMON_DEBUG", False),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)

    def url_for(self, source: str) -> str:
        return join_url(self.base_url, self.paths[source])

    def listing_url(self, path: str) -> str:
        return join_url(self.base_url, LIST_PATH + "/" + path.lstrip("/"))

    def sources(self) -> List[SourceConfig]:
        return [
            SourceConfig(name=name, url=self.url_for(name), interval=self.intervals[name])
            for name in SOURCE_NAMES
        ]

    def http_settings(self) -> HttpSettings:
        return HttpSettings(
            timeout=self.http_timeout,
            connect_timeout=self.http_connect_timeout,
            retries=self.http_retries,
            backoff_factor=self.http_backoff_factor,
        )

    def to_flask_config(self) -> Dict[str, object]:
        return {
            "LOG_LEVEL": self.log_level,
            "DEBUG": self.debug,
            "CLUSTERMON_BASE_URL": self.base_url,
        }


def load_app_config(base_dir: Optional[Path] = None, **overrides) -> AppConfig:
    return AppConfig.load(base_dir=base_dir, **overrides)


__all__ = [
    "DEFAULT_INTERVALS",
    "DEFAULT_PATHS",
    "SOURCE_NAMES",
    "AppConfig",
    "SourceConfig",
    "join_url",
    "load_app_config",
]
