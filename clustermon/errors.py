"""Exception taxonomy for clustermon."""

from __future__ import annotations

from typing import Any, Optional


class ClusterMonError(Exception):
    """Base class for all clustermon errors."""


class InvalidRowError(ClusterMonError, ValueError):
    """A grouped-view row is malformed or out of key order."""

    def __init__(self, message: str, *, index: Optional[int] = None, row: Any = None) -> None:
        if index is not None:
            message = f"row {index}: {message}"
        super().__init__(message)
        self.index = index
        self.row = row


class PayloadError(ClusterMonError, ValueError):
    """A snapshot payload does not have the expected shape."""


class FetchFailure(ClusterMonError):
    """Transport error or empty payload for one endpoint."""

    def __init__(self, endpoint: str, reason: str) -> None:
        super().__init__(f"{endpoint}: {reason}")
        self.endpoint = endpoint
        self.reason = reason


__all__ = ["ClusterMonError", "InvalidRowError", "PayloadError", "FetchFailure"]
