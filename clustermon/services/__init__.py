"""Service layer helpers for clustermon."""

from .http import (
    HttpSettings,
    HttpTransport,
    Transport,
    configure_http,
    fetch_json,
    get_http_session,
    http_request,
)
from .logging import (
    JsonFormatter,
    SensitiveDataFilter,
    configure_cli_logging,
    configure_logging,
    get_rotating_log_handler,
)
from .loop import EventLoop
from .workers import FetchPool

__all__ = [
    "configure_cli_logging",
    "configure_logging",
    "get_rotating_log_handler",
    "JsonFormatter",
    "SensitiveDataFilter",
    "configure_http",
    "fetch_json",
    "get_http_session",
    "http_request",
    "HttpSettings",
    "HttpTransport",
    "Transport",
    "EventLoop",
    "FetchPool",
]
