"""Fetch workers.

Blocking endpoint fetches run here so the event loop never waits on the
network.  Every job ends in exactly one completion call carrying either the
payload or a :class:`~clustermon.errors.FetchFailure`.
"""

from __future__ import annotations

import atexit
import logging
import queue
import threading
import time
from collections import Counter
from dataclasses import dataclass
from typing import Any, Callable, Optional

from ..errors import FetchFailure

FetchFunc = Callable[[str], Any]
Completion = Callable[[Any], None]


@dataclass(slots=True)
class FetchJob:
    endpoint: str
    fetch: FetchFunc
    on_done: Completion
    queued_at: float


class FetchPool:
    """Fixed set of daemon threads draining a queue of :class:`FetchJob`.

    ``on_done`` runs on the worker thread; callers that need another thread
    hand the result over themselves (see ``HttpTransport``).
    """

    def __init__(
        self,
        name: str = "fetch",
        workers: int = 4,
        *,
        clock: Callable[[], float] = time.monotonic,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.name = name
        self.workers = max(1, int(workers))
        self._clock = clock
        self._logger = logger or logging.getLogger(f"clustermon.workers.{name}")
        self._jobs: queue.Queue[Optional[FetchJob]] = queue.Queue()
        self._threads: list[threading.Thread] = []
        self._lock = threading.Lock()
        self._closed = threading.Event()
        self._in_flight: Counter[str] = Counter()
        self._succeeded = 0
        self._failed = 0
        self._max_wait = 0.0

    def start(self) -> None:
        with self._lock:
            if self._threads or self._closed.is_set():
                return
            for idx in range(self.workers):
                thread = threading.Thread(target=self._drain, name=f"{self.name}-{idx + 1}", daemon=True)
                self._threads.append(thread)
                thread.start()
        atexit.register(self.shutdown)
        self._logger.info("Fetch pool '%s' running %s workers", self.name, self.workers)

    def submit(self, endpoint: str, fetch: FetchFunc, on_done: Completion) -> None:
        if self._closed.is_set():
            raise RuntimeError(f"fetch pool '{self.name}' is shut down")
        self.start()
        with self._lock:
            self._in_flight[endpoint] += 1
        self._jobs.put(FetchJob(endpoint, fetch, on_done, self._clock()))

    def shutdown(self) -> None:
        if self._closed.is_set():
            return
        self._closed.set()
        for _ in self._threads:
            self._jobs.put(None)
        for thread in self._threads:
            thread.join(timeout=2)
        self._logger.info("Fetch pool '%s' stopped", self.name)

    def stats(self) -> dict[str, Any]:
        with self._lock:
            return {
                "name": self.name,
                "workers": self.workers,
                "queued": self._jobs.qsize(),
                "in_flight": sorted(self._in_flight),
                "succeeded": self._succeeded,
                "failed": self._failed,
                "max_wait": round(self._max_wait, 3),
                "closed": self._closed.is_set(),
            }

    def _drain(self) -> None:
        while True:
            job = self._jobs.get()
            if job is None:
                return
            self._run(job)

    def _run(self, job: FetchJob) -> None:
        waited = self._clock() - job.queued_at
        try:
            result = job.fetch(job.endpoint)
        except FetchFailure as exc:
            result = exc
        except Exception as exc:  # noqa: BLE001
            self._logger.exception("Unexpected error fetching %s", job.endpoint)
            result = FetchFailure(job.endpoint, f"unexpected error: {exc}")

        with self._lock:
            self._in_flight[job.endpoint] -= 1
            if self._in_flight[job.endpoint] <= 0:
                del self._in_flight[job.endpoint]
            if isinstance(result, FetchFailure):
                self._failed += 1
            else:
                self._succeeded += 1
            self._max_wait = max(self._max_wait, waited)

        try:
            job.on_done(result)
        except Exception:  # noqa: BLE001
            self._logger.exception("Completion for %s failed", job.endpoint)


__all__ = ["FetchJob", "FetchPool"]
