"""Typed views of the cluster's non-grouped JSON payloads."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Mapping, Optional

from .aggregation import decode
from .errors import PayloadError

SIZE_SUFFIXES = ("B", "KB", "MB", "GB", "TB", "PB", "EB")

# Heartbeat age at which a node is drawn fully "hot".
DEFAULT_STALE_HEARTBEAT_MS = 180_000

_COOL_RGB = (0xBB, 0xBB, 0xFF)
_HOT_RGB = (0xFF, 0x66, 0x66)


def pretty_size(size: float) -> str:
    """Human readable byte count with binary units (``1536 -> '1.50KB'``)."""
    if size < 10:
        return f"{size}B"
    value = float(size)
    exponent = 0
    while value >= 1024 and exponent < len(SIZE_SUFFIXES) - 1:
        value /= 1024
        exponent += 1
    return f"{value:.2f}{SIZE_SUFFIXES[exponent]}"


def heartbeat_heat(age_ms: Optional[float], stale_ms: float = DEFAULT_STALE_HEARTBEAT_MS) -> float:
    """Fraction in ``[0, 1]`` of how close a heartbeat age is to stale."""
    if age_ms is None or stale_ms <= 0:
        return 1.0
    return max(0.0, min(1.0, float(age_ms) / float(stale_ms)))


def heat_color(heat: float) -> str:
    channels = (
        round(cool + (hot - cool) * heat) for cool, hot in zip(_COOL_RGB, _HOT_RGB)
    )
    return "#" + "".join(f"{channel:02x}" for channel in channels)


def _first(record: Mapping[str, Any], *names: str, default: Any = None) -> Any:
    for name in names:
        if name in record and record[name] is not None:
            return record[name]
    return default


def _number_field(
    record: Mapping[str, Any], owner: str, *names: str, cast: Callable[[Any], Any] = int, default: Any = 0
) -> Any:
    value = _first(record, *names, default=default)
    if value is None:
        return None
    try:
        return cast(value)
    except (TypeError, ValueError) as exc:
        raise PayloadError(f"{owner}: {names[0]} is not a number: {value!r}") from exc


def _require_mapping(payload: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(payload, Mapping):
        raise PayloadError(f"{what} payload must be an object, got {type(payload).__name__}")
    return payload


@dataclass(frozen=True)
class NodeStatus:
    name: str
    hb_age_ms: Optional[float]
    hb_age_text: str
    uptime_text: str
    used: int
    free: int
    size: int
    address: str = ""
    version: str = ""

    @property
    def capacity(self) -> int:
        return self.used + self.free

    @property
    def utilization(self) -> float:
        return self.used / self.capacity if self.capacity else 0.0

    def to_dict(self) -> dict:
        data = asdict(self)
        data["capacity"] = self.capacity
        data["utilization"] = self.utilization
        return data


def parse_nodes(payload: Any) -> list[NodeStatus]:
    """Node liveness/capacity map -> :class:`NodeStatus` list sorted by name."""
    nodes: list[NodeStatus] = []
    for name, record in _require_mapping(payload, "nodes").items():
        if not isinstance(record, Mapping):
            raise PayloadError(f"node {name!r} record must be an object")
        nodes.append(
            NodeStatus(
                name=str(name),
                hb_age_ms=_number_field(
                    record, f"node {name!r}", "hbage_ms", "hbAgeMillis", cast=float, default=None
                ),
                hb_age_text=str(_first(record, "hbage_str", "hbAgeText", default="")),
                uptime_text=str(_first(record, "uptime_str", "uptimeText", default="")),
                used=_number_field(record, f"node {name!r}", "used", "usedBytes"),
                free=_number_field(record, f"node {name!r}", "free", "freeBytes"),
                size=_number_field(record, f"node {name!r}", "size"),
                address=str(_first(record, "addr", default="")),
                version=str(_first(record, "version", default="")),
            )
        )
    nodes.sort(key=lambda node: node.name)
    return nodes


@dataclass(frozen=True)
class TaskEntry:
    group: str
    name: str
    state: str
    timestamp: Any = None

    def to_dict(self) -> dict:
        return asdict(self)


def parse_tasks(payload: Any) -> list[TaskEntry]:
    """Nested ``{group: {task: {state, ts}}}`` registry -> flat task list."""
    tasks: list[TaskEntry] = []
    for group, entries in _require_mapping(payload, "tasks").items():
        if not isinstance(entries, Mapping):
            raise PayloadError(f"task group {group!r} must be an object")
        for name, record in entries.items():
            if isinstance(record, Mapping):
                state = _first(record, "state", default="")
                timestamp = _first(record, "ts", "timestamp")
            else:
                state, timestamp = record, None
            tasks.append(TaskEntry(group=str(group), name=str(name), state=str(state), timestamp=timestamp))
    tasks.sort(key=lambda task: (task.group, task.name))
    return tasks


@dataclass(frozen=True)
class ReplicationCount:
    level: Any
    count: float

    def to_dict(self) -> dict:
        return asdict(self)


def parse_replication(payload: Any) -> list[ReplicationCount]:
    """``repcounts`` view rows (key = replica count) -> ordered counts."""
    return [ReplicationCount(level=row.key[0], count=row.amount) for row in decode(payload)]


def path_join(base: str, name: str) -> str:
    return base.rstrip("/") + "/" + name.lstrip("/")


@dataclass(frozen=True)
class DirectoryEntry:
    name: str
    path: str
    size: int
    descendants: int

    def to_dict(self) -> dict:
        data = asdict(self)
        data["pretty_size"] = pretty_size(self.size)
        return data


@dataclass
class DirectoryListing:
    path: str
    entries: list[DirectoryEntry] = field(default_factory=list)

    @property
    def total_size(self) -> int:
        return sum(entry.size for entry in self.entries)

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "size": self.total_size,
            "entries": [entry.to_dict() for entry in self.entries],
        }


def parse_directory_listing(payload: Any) -> DirectoryListing:
    data = _require_mapping(payload, "listing")
    base = str(data.get("path") or "/")
    dirs = data.get("dirs") or {}
    if not isinstance(dirs, Mapping):
        raise PayloadError("listing 'dirs' must be an object")
    listing = DirectoryListing(path=base)
    for name, info in sorted(dirs.items()):
        info = info if isinstance(info, Mapping) else {}
        listing.entries.append(
            DirectoryEntry(
                name=str(name),
                path=path_join(base, str(name)),
                size=_number_field(info, f"entry {name!r}", "size"),
                descendants=_number_field(info, f"entry {name!r}", "descendants"),
            )
        )
    return listing


__all__ = [
    "DEFAULT_STALE_HEARTBEAT_MS",
    "DirectoryEntry",
    "DirectoryListing",
    "NodeStatus",
    "ReplicationCount",
    "TaskEntry",
    "heartbeat_heat",
    "heat_color",
    "parse_directory_listing",
    "parse_nodes",
    "parse_replication",
    "parse_tasks",
    "path_join",
    "pretty_size",
]
