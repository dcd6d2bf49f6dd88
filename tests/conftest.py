"""Shared pytest fixtures for clustermon tests.

Provides a manual-clock loop and a scripted transport so poller and view
tests run deterministically without threads or network access.
"""

from __future__ import annotations

import heapq
import itertools
import sys
from collections import deque
from pathlib import Path
from typing import Any, Callable

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from clustermon.config import AppConfig


class ManualLoop:
    """Loop whose clock only moves when the test calls :meth:`advance`."""

    def __init__(self) -> None:
        self.now = 0.0
        self.delays: list[float] = []
        self._timers: list[tuple[float, int, Callable[..., Any], tuple]] = []
        self._seq = itertools.count()

    def time(self) -> float:
        return self.now

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> None:
        self.delays.append(delay)
        heapq.heappush(self._timers, (self.now + delay, next(self._seq), callback, args))

    def call_soon_threadsafe(self, callback: Callable[..., Any], *args: Any) -> None:
        self.call_later(0.0, callback, *args)

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while self._timers and self._timers[0][0] <= target:
            due, _seq, callback, args = heapq.heappop(self._timers)
            self.now = due
            callback(*args)
        self.now = target

    def pending(self) -> int:
        return len(self._timers)


class ScriptedTransport:
    """Answers fetches synchronously from a per-endpoint script.

    Script items are payloads, ``None`` (empty answer), exceptions (delivered
    as the failure object) or callables taking the endpoint.  An exhausted
    script answers ``None``.
    """

    def __init__(self, script: Any = (), clock: Callable[[], float] | None = None) -> None:
        if isinstance(script, dict):
            self._scripts = {endpoint: deque(items) for endpoint, items in script.items()}
            self._default: deque = deque()
        else:
            self._scripts = {}
            self._default = deque(script)
        self._clock = clock
        self.calls: list[tuple[str, float | None]] = []

    def push(self, endpoint: str, *items: Any) -> None:
        self._scripts.setdefault(endpoint, deque()).extend(items)

    def fetch(self, endpoint: str, callback: Callable[[Any], None]) -> None:
        self.calls.append((endpoint, self._clock() if self._clock else None))
        queue = self._scripts.get(endpoint, self._default)
        result = queue.popleft() if queue else None
        if callable(result):
            result = result(endpoint)
        callback(result)

    def times(self, endpoint: str | None = None) -> list[float | None]:
        return [at for called, at in self.calls if endpoint is None or called == endpoint]


class Recorder:
    def __init__(self) -> None:
        self.snapshots: list[Any] = []

    def on_snapshot(self, data: Any) -> None:
        self.snapshots.append(data)


@pytest.fixture
def loop() -> ManualLoop:
    return ManualLoop()


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
def app_config(tmp_path, monkeypatch) -> AppConfig:
    for name in ("CLUSTERMON_BASE_URL", "CLUSTERMON_BROWSE_SECTIONS", "CLUSTERMON_RETRY_DELAY"):
        monkeypatch.delenv(name, raising=False)
    return AppConfig.load(base_dir=tmp_path, base_url="http://cluster.test:8484")


MEDIA_ROWS = {
    "rows": [
        {"key": ["Music", "Beatles", "Abbey Road"], "value": {"count": 17}},
        {"key": ["Music", "Beatles", "Help!"], "value": {"count": 14}},
        {"key": ["Music", "Queen", "Jazz"], "value": {"count": 13}},
        {"key": ["Picture", "canon", "eos 5d"], "value": {"count": 120}},
        {"key": ["Picture", "canon", "powershot g9"], "value": {"count": 40}},
        {"key": ["Picture", "NIKON CORPORATION", "NIKON D90"], "value": {"count": 7}},
    ]
}

NODE_MAP = {
    "node-a": {
        "hbage_ms": 1500,
        "hbage_str": "1.5s",
        "uptime_str": "72h0m0s",
        "used": 600,
        "free": 400,
        "size": 2048,
        "addr": "10.0.0.1:8484",
    },
    "node-b": {
        "hbage_ms": 240000,
        "hbage_str": "4m0s",
        "uptime_str": "1h0m0s",
        "used": 100,
        "free": 900,
        "size": 5,
    },
}


@pytest.fixture
def media_payload() -> dict:
    return {"rows": [dict(row) for row in MEDIA_ROWS["rows"]]}


@pytest.fixture
def node_map() -> dict:
    return {name: dict(record) for name, record in NODE_MAP.items()}
