"""Snapshot polling for one dashboard data source.

A :class:`SnapshotPoller` owns one endpoint and one refresh interval.  Until
the first usable snapshot arrives it retries the initial fetch every
``retry_delay`` seconds, forever; afterwards it refetches every ``interval``
seconds and skips failed refreshes, leaving subscribers on their last good
data.  All callbacks run on the loop thread and a poller never has more than
one request in flight.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Iterable, Optional, Protocol, Union

from .errors import FetchFailure
from .services.http import Transport

DEFAULT_RETRY_DELAY = 1.0

LOGGER = logging.getLogger("clustermon.poller")


class Loop(Protocol):
    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> None: ...


class Subscriber(ABC):
    """Receives every successful snapshot of one source."""

    @abstractmethod
    def on_snapshot(self, data: Any) -> None:
        raise NotImplementedError


class CallbackSubscriber(Subscriber):
    def __init__(self, func: Callable[[Any], Any]) -> None:
        self.func = func

    def on_snapshot(self, data: Any) -> None:
        self.func(data)

    def __repr__(self) -> str:
        return f"CallbackSubscriber({getattr(self.func, '__name__', self.func)!r})"


class ReplacingCallback(Subscriber):
    """Plain-function subscriber whose callable return value replaces it.

    The first call typically builds per-chart state and returns a closure
    that updates it; that closure then handles every later snapshot.  A
    ``None`` (or any non-callable) return keeps the current handler.
    """

    def __init__(self, func: Callable[[Any], Any]) -> None:
        self.handler = func

    def on_snapshot(self, data: Any) -> None:
        result = self.handler(data)
        if callable(result):
            self.handler = result


SubscriberLike = Union[Subscriber, Callable[[Any], Any]]


def as_subscriber(candidate: SubscriberLike) -> Subscriber:
    if isinstance(candidate, Subscriber):
        return candidate
    on_snapshot = getattr(candidate, "on_snapshot", None)
    if callable(on_snapshot):
        return CallbackSubscriber(on_snapshot)
    if callable(candidate):
        return CallbackSubscriber(candidate)
    raise TypeError(f"not a subscriber: {candidate!r}")


class SnapshotPoller:
    def __init__(
        self,
        endpoint: str,
        interval: float,
        subscribers: Iterable[SubscriberLike] = (),
        *,
        transport: Transport,
        loop: Loop,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        name: Optional[str] = None,
        clock: Callable[[], float] = time.time,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval!r}")
        if retry_delay < 0:
            raise ValueError(f"retry_delay must not be negative, got {retry_delay!r}")
        self.endpoint = endpoint
        self.interval = float(interval)
        self.retry_delay = float(retry_delay)
        self.name = name or endpoint
        self.transport = transport
        self.loop = loop
        self._clock = clock
        self._logger = logger or LOGGER
        self._subscribers: list[Subscriber] = [as_subscriber(s) for s in subscribers]

        self.started = False
        self.initialized = False
        self.in_flight = False
        self.attempts = 0
        self.failures = 0
        self.deliveries = 0
        self.sequence = 0
        self.last_success: Optional[float] = None
        self.last_error: Optional[str] = None

    @property
    def subscribers(self) -> list[Subscriber]:
        return list(self._subscribers)

    def subscribe(self, subscriber: SubscriberLike) -> Subscriber:
        wrapped = as_subscriber(subscriber)
        self._subscribers.append(wrapped)
        return wrapped

    def start(self) -> None:
        if self.started:
            return
        self.started = True
        self._logger.info("Polling %s (%s) every %ss", self.name, self.endpoint, self.interval)
        self._fetch(self._on_initial)

    def stats(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "endpoint": self.endpoint,
            "interval": self.interval,
            "retry_delay": self.retry_delay,
            "started": self.started,
            "initialized": self.initialized,
            "in_flight": self.in_flight,
            "attempts": self.attempts,
            "failures": self.failures,
            "deliveries": self.deliveries,
            "sequence": self.sequence,
            "last_success": self.last_success,
            "last_error": self.last_error,
            "subscribers": len(self._subscribers),
        }

    def _fetch(self, completion: Callable[[Any], None]) -> None:
        self.attempts += 1
        self.in_flight = True
        try:
            self.transport.fetch(self.endpoint, completion)
        except Exception as exc:  # noqa: BLE001
            self._logger.exception("Transport refused %s", self.endpoint)
            completion(FetchFailure(self.endpoint, f"transport error: {exc}"))

    def _failure_reason(self, result: Any) -> Optional[str]:
        if isinstance(result, FetchFailure):
            return result.reason
        if isinstance(result, BaseException):
            return str(result) or type(result).__name__
        if not result:
            return "empty payload"
        return None

    def _on_initial(self, result: Any) -> None:
        self.in_flight = False
        reason = self._failure_reason(result)
        if reason is not None:
            self.failures += 1
            self.last_error = reason
            self._logger.warning(
                "Initial fetch of %s failed (%s), retrying in %ss",
                self.name,
                reason,
                self.retry_delay,
            )
            self.loop.call_later(self.retry_delay, self._fetch, self._on_initial)
            return
        self.initialized = True
        self._deliver(result)
        self.loop.call_later(self.interval, self._tick)

    def _tick(self) -> None:
        self._fetch(self._on_refresh)

    def _on_refresh(self, result: Any) -> None:
        self.in_flight = False
        reason = self._failure_reason(result)
        if reason is None:
            self._deliver(result)
        else:
            self.failures += 1
            self.last_error = reason
            self._logger.warning("Refresh of %s skipped: %s", self.name, reason)
        self.loop.call_later(self.interval, self._tick)

    def _deliver(self, payload: Any) -> None:
        self.sequence += 1
        self.deliveries += 1
        self.last_success = self._clock()
        self.last_error = None
        for subscriber in list(self._subscribers):
            try:
                subscriber.on_snapshot(payload)
            except Exception:  # noqa: BLE001
                self._logger.exception("Subscriber %r failed on %s snapshot %s", subscriber, self.name, self.sequence)


__all__ = [
    "DEFAULT_RETRY_DELAY",
    "CallbackSubscriber",
    "ReplacingCallback",
    "SnapshotPoller",
    "Subscriber",
    "as_subscriber",
]
