"""Single-threaded timer loop.

Every poller timer and every fetch completion runs on this loop's thread, one
callback at a time, so dashboard state never needs locking.  Other threads
hand work over with :meth:`EventLoop.call_soon_threadsafe`.
"""

from __future__ import annotations

import atexit
import heapq
import itertools
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional


@dataclass(order=True)
class _Timer:
    due: float
    seq: int
    callback: Callable[..., Any] = field(compare=False)
    args: tuple[Any, ...] = field(compare=False, default=())


class EventLoop:
    def __init__(
        self,
        name: str = "clustermon-loop",
        *,
        clock: Callable[[], float] = time.monotonic,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.name = name
        self._clock = clock
        self._timers: list[_Timer] = []
        self._seq = itertools.count()
        self._cond = threading.Condition()
        self._stopped = False
        self._thread: threading.Thread | None = None
        self._logger = logger or logging.getLogger("clustermon.loop")

    def time(self) -> float:
        return self._clock()

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> None:
        timer = _Timer(self._clock() + max(0.0, float(delay)), next(self._seq), callback, args)
        with self._cond:
            heapq.heappush(self._timers, timer)
            self._cond.notify()

    def call_soon_threadsafe(self, callback: Callable[..., Any], *args: Any) -> None:
        self.call_later(0.0, callback, *args)

    def start(self) -> None:
        with self._cond:
            if self._thread is not None:
                return
            self._stopped = False
            self._thread = threading.Thread(target=self.run_forever, name=self.name, daemon=True)
        self._thread.start()
        atexit.register(self.stop)
        self._logger.info("Event loop '%s' started", self.name)

    def stop(self) -> None:
        with self._cond:
            if self._stopped:
                return
            self._stopped = True
            self._cond.notify_all()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=2)
        self._thread = None
        self._logger.info("Event loop '%s' stopped", self.name)

    def run_forever(self) -> None:
        while True:
            timer = self._next_due()
            if timer is None:
                return
            self._invoke(timer)

    def pending(self) -> int:
        with self._cond:
            return len(self._timers)

    def _next_due(self) -> Optional[_Timer]:
        with self._cond:
            while not self._stopped:
                if not self._timers:
                    self._cond.wait()
                    continue
                wait = self._timers[0].due - self._clock()
                if wait <= 0:
                    return heapq.heappop(self._timers)
                self._cond.wait(wait)
            return None

    def _invoke(self, timer: _Timer) -> None:
        try:
            timer.callback(*timer.args)
        except Exception:  # noqa: BLE001
            self._logger.exception("Loop callback %r failed", timer.callback)


__all__ = ["EventLoop"]
