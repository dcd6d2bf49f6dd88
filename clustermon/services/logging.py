"""Logging helpers for clustermon."""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterable, Optional

from flask import Flask

DEFAULT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


class SensitiveDataFilter(logging.Filter):
    """Masks credentials that may appear in fetched URLs or error messages."""

    _PATTERNS: Iterable[tuple[re.Pattern[str], str]] = (
        (re.compile(r"(authorization=)([^\s]+)", re.I), r"\1***"),
        (re.compile(r"(password=)([^&\s]+)", re.I), r"\1***"),
        (re.compile(r"(token=)([^&\s]+)", re.I), r"\1***"),
        (re.compile(r"(https?://[^:/\s]+:)([^@\s]+)(@)"), r"\1***\3"),
        (re.compile(r"Bearer\s+[A-Za-z0-9._-]+"), "Bearer ***"),
    )

    def __init__(self) -> None:
        super().__init__(name="SensitiveDataFilter")

    @staticmethod
    def _sanitize_value(value: object) -> object:
        if isinstance(value, str):
            sanitized = value
            for pattern, repl in SensitiveDataFilter._PATTERNS:
                sanitized = pattern.sub(repl, sanitized)
            return sanitized
        if isinstance(value, (list, tuple)):
            return type(value)(SensitiveDataFilter._sanitize_value(v) for v in value)
        if isinstance(value, dict):
            return {k: SensitiveDataFilter._sanitize_value(v) for k, v in value.items()}
        return value

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = self._sanitize_value(record.msg)
        if record.args:
            record.args = self._sanitize_value(record.args)
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        data = {
            "timestamp": datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "line": record.lineno,
            "thread": record.threadName,
        }
        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)
        return json.dumps(data, ensure_ascii=False, default=str)


def resolve_level(level: str | int | None) -> int:
    resolved = logging.getLevelName(str(level or "INFO").upper())
    if isinstance(resolved, str):  # unknown name returns string
        return logging.INFO
    return resolved


def configure_cli_logging(level: str | int | None = None, fmt: str = DEFAULT_FORMAT) -> logging.Logger:
    """Plain stderr logging for command-line runs."""
    logging.basicConfig(level=resolve_level(level), format=fmt)
    logger = logging.getLogger("clustermon")
    logger.setLevel(resolve_level(level))
    return logger


def configure_logging(
    app: Flask,
    log_file_path: Path,
    *,
    level: str | int | None = None,
) -> RotatingFileHandler:
    """Attach a rotating JSON file handler to the app and package loggers."""

    resolved_level = resolve_level(level or app.config.get("LOG_LEVEL"))
    app.logger.setLevel(resolved_level)
    package_logger = logging.getLogger("clustermon")
    package_logger.setLevel(resolved_level)

    handler = get_rotating_log_handler(app, log_file_path)
    if handler is None:
        log_file_path.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            log_file_path,
            maxBytes=20 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        app.logger.addHandler(handler)
        package_logger.addHandler(handler)

    handler.setLevel(resolved_level)
    if not any(isinstance(f, SensitiveDataFilter) for f in handler.filters):
        handler.addFilter(SensitiveDataFilter())
    handler.setFormatter(JsonFormatter())
    return handler


def get_rotating_log_handler(app: Flask, log_file_path: Path) -> Optional[RotatingFileHandler]:
    """Return the configured rotating handler for the app logger, if any."""
    for handler in app.logger.handlers:
        if isinstance(handler, RotatingFileHandler):
            base_filename = getattr(handler, "baseFilename", "")
            if Path(base_filename).resolve() == log_file_path.resolve():
                return handler
    return None


__all__ = [
    "DEFAULT_FORMAT",
    "JsonFormatter",
    "SensitiveDataFilter",
    "configure_cli_logging",
    "configure_logging",
    "get_rotating_log_handler",
    "resolve_level",
]
