"""HTTP layer: shared retry-aware session and the poller transport."""

from __future__ import annotations

import functools
import logging
import os
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional, Protocol

import requests
from requests import Response, Session
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..errors import FetchFailure
from .workers import FetchPool


@dataclass(frozen=True)
class HttpSettings:
    """Runtime configuration for HTTP requests."""

    timeout: float  # read timeout, seconds
    connect_timeout: float  # connect timeout, seconds
    retries: int
    backoff_factor: float
    status_forcelist: Iterable[int] = (502, 503, 504)


_LOGGER = logging.getLogger("clustermon.http")
_SETTINGS = HttpSettings(
    timeout=float(os.getenv("CLUSTERMON_HTTP_TIMEOUT", "30") or 30),
    connect_timeout=float(os.getenv("CLUSTERMON_HTTP_CONNECT_TIMEOUT", "5") or 5),
    retries=int(os.getenv("CLUSTERMON_HTTP_RETRIES", "0") or 0),
    backoff_factor=float(os.getenv("CLUSTERMON_HTTP_BACKOFF", "0.5") or 0.5),
)
_SESSION: Session | None = None
_ALLOWED_METHODS = frozenset({"GET", "HEAD"})


def _build_retry(settings: HttpSettings) -> Retry:
    return Retry(
        total=max(0, settings.retries),
        connect=max(0, settings.retries),
        read=max(0, settings.retries),
        backoff_factor=max(0.0, settings.backoff_factor),
        status_forcelist=tuple(settings.status_forcelist),
        allowed_methods=_ALLOWED_METHODS,
        raise_on_status=False,
    )


def _create_session(settings: HttpSettings) -> Session:
    session = requests.Session()
    adapter = HTTPAdapter(max_retries=_build_retry(settings))
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    session.headers.update({"Accept": "application/json"})
    return session


def configure_http(settings: HttpSettings) -> None:
    """Update HTTP defaults and rebuild the shared session."""
    global _SETTINGS, _SESSION
    _SETTINGS = settings
    _SESSION = _create_session(settings)
    _LOGGER.info(
        "HTTP client configured: timeout=%ss connect=%ss retries=%s backoff=%s",
        settings.timeout,
        settings.connect_timeout,
        settings.retries,
        settings.backoff_factor,
    )


def get_http_session() -> Session:
    """Return a lazily initialised shared requests session."""
    global _SESSION
    if _SESSION is None:
        _SESSION = _create_session(_SETTINGS)
    return _SESSION


def get_http_settings() -> HttpSettings:
    return _SETTINGS


def _default_timeout() -> tuple[float, float]:
    connect = max(0.1, float(_SETTINGS.connect_timeout))
    read = max(connect + 1.0, float(_SETTINGS.timeout))
    return connect, read


def http_request(
    method: str,
    url: str,
    *,
    timeout: Any | None = None,
    session: Session | None = None,
    logger: Optional[logging.Logger] = None,
    raise_for_status: bool = False,
    **kwargs: Any,
) -> Response:
    """Perform an HTTP request with the shared session, logging failures.

    ``timeout`` may be a number or a ``(connect, read)`` tuple; the configured
    defaults apply when omitted.  Request errors are logged and re-raised.
    """
    sess = session or get_http_session()
    timer = timeout if timeout is not None else _default_timeout()
    log = logger or _LOGGER
    verb = method.upper()
    try:
        response = sess.request(verb, url, timeout=timer, **kwargs)
        if raise_for_status:
            response.raise_for_status()
        return response
    except requests.RequestException as exc:
        log.warning("HTTP %s %s failed: %s", verb, url, exc)
        raise


def fetch_json(url: str, *, session: Session | None = None, logger: Optional[logging.Logger] = None) -> Any:
    """GET ``url`` and return its decoded JSON body.

    Raises :class:`FetchFailure` for transport errors, error statuses,
    non-JSON bodies and empty payloads alike.
    """
    try:
        response = http_request("GET", url, session=session, logger=logger)
    except requests.RequestException as exc:
        raise FetchFailure(url, str(exc)) from exc
    if response.status_code >= 400:
        raise FetchFailure(url, f"HTTP {response.status_code}")
    try:
        payload = response.json()
    except ValueError as exc:
        raise FetchFailure(url, "response is not valid JSON") from exc
    if not payload:
        raise FetchFailure(url, "empty payload")
    return payload


FetchCallback = Callable[[Any], None]


class Transport(Protocol):
    def fetch(self, endpoint: str, callback: FetchCallback) -> None:
        """Start fetching ``endpoint``; ``callback`` later receives the payload or a FetchFailure."""


class Loop(Protocol):
    def call_soon_threadsafe(self, callback: Callable[..., Any], *args: Any) -> None: ...


class HttpTransport:
    """Runs fetches on a :class:`FetchPool` and reports back on the loop thread."""

    def __init__(self, pool: FetchPool, loop: Loop, *, session: Session | None = None) -> None:
        self.pool = pool
        self.loop = loop
        self.session = session

    def fetch(self, endpoint: str, callback: FetchCallback) -> None:
        self.pool.submit(endpoint, self._get, functools.partial(self.loop.call_soon_threadsafe, callback))

    def _get(self, endpoint: str) -> Any:
        return fetch_json(endpoint, session=self.session)


__all__ = [
    "FetchCallback",
    "HttpSettings",
    "HttpTransport",
    "Transport",
    "configure_http",
    "fetch_json",
    "get_http_session",
    "get_http_settings",
    "http_request",
]
