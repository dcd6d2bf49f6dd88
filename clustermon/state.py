"""Process-wide cluster configuration snapshot.

One instance is created at bootstrap, subscribed to the config poller and
handed to every view that needs a cluster option.  It is empty until the
first successful config fetch and replaced wholesale by each later one.
"""

from __future__ import annotations

import time
from typing import Any, Callable, Mapping, Optional

from .errors import PayloadError
from .poller import Subscriber

MIN_REPLICATION_KEYS = ("minrepl", "minReplication")


class ClusterConfigState(Subscriber):
    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._values: dict[str, Any] = {}
        self._clock = clock
        self.version = 0
        self.updated_at: Optional[float] = None

    @property
    def initialized(self) -> bool:
        return self.version > 0

    def on_snapshot(self, data: Any) -> None:
        if not isinstance(data, Mapping):
            raise PayloadError(f"config payload must be an object, got {type(data).__name__}")
        self._values = dict(data)
        self.version += 1
        self.updated_at = self._clock()

    def get(self, option: str, default: Any = None) -> Any:
        return self._values.get(option, default)

    @property
    def min_replication(self) -> Optional[int]:
        for option in MIN_REPLICATION_KEYS:
            value = self._values.get(option)
            if value is None:
                continue
            try:
                return int(value)
            except (TypeError, ValueError):
                return None
        return None

    def as_dict(self) -> dict[str, Any]:
        return {
            "initialized": self.initialized,
            "version": self.version,
            "updated_at": self.updated_at,
            "values": dict(self._values),
        }


__all__ = ["ClusterConfigState", "MIN_REPLICATION_KEYS"]
