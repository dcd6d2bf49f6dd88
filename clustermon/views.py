"""Headless dashboard sections.

Each view subscribes to one poller, turns every snapshot into a complete
render-ready model and diffs it against the previous one, so an external
renderer can animate entering, updating and exiting elements.  A view that
has not seen a snapshot yet has no model; a rejected snapshot leaves the
last good model in place.
"""

from __future__ import annotations

import logging
from abc import abstractmethod
from typing import Any, Mapping, Optional, Sequence

from .aggregation import LevelTransforms, build_graph, decode, lower, rollup_tree, title_case
from .errors import InvalidRowError, PayloadError
from .poller import Subscriber
from .reconcile import KeyedReconciler
from .sources import (
    DEFAULT_STALE_HEARTBEAT_MS,
    heartbeat_heat,
    heat_color,
    parse_nodes,
    parse_replication,
    parse_tasks,
    pretty_size,
)
from .state import ClusterConfigState

LOGGER = logging.getLogger("clustermon.views")

# Camera makes and models in the media index are free-form; title-case them.
MEDIA_SECTION_TRANSFORMS: dict[Any, LevelTransforms] = {
    "Picture": (None, title_case, title_case),
}


class SectionView(Subscriber):
    section = "section"

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._logger = logger or LOGGER
        self._model: Optional[dict] = None
        self.rejected = 0
        self.last_error: Optional[str] = None

    @property
    def ready(self) -> bool:
        return self._model is not None

    @property
    def model(self) -> Optional[dict]:
        return self._model

    def on_snapshot(self, data: Any) -> None:
        try:
            model = self.build(data)
        except (InvalidRowError, PayloadError) as exc:
            self.rejected += 1
            self.last_error = str(exc)
            self._logger.warning("%s snapshot rejected: %s", self.section, exc)
            return
        self._model = model

    @abstractmethod
    def build(self, data: Any) -> dict:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.section}>"


class NodeCapacityView(SectionView):
    section = "nodes"

    def __init__(self, stale_ms: float = DEFAULT_STALE_HEARTBEAT_MS, logger: Optional[logging.Logger] = None) -> None:
        super().__init__(logger)
        self.stale_ms = stale_ms
        self._reconciler = KeyedReconciler(key=lambda node: node.name)

    def build(self, data: Any) -> dict:
        nodes = parse_nodes(data)
        diff = self._reconciler.step(nodes)
        items = []
        for node in nodes:
            heat = heartbeat_heat(node.hb_age_ms, self.stale_ms)
            item = node.to_dict()
            item.update(
                {
                    "pretty_size": pretty_size(node.size),
                    "heat": heat,
                    "fill": heat_color(heat),
                    "title": f"Last heartbeat from {node.name} {node.hb_age_text} ago",
                }
            )
            items.append(item)
        return {
            "nodes": items,
            "total_used": sum(node.used for node in nodes),
            "total_free": sum(node.free for node in nodes),
            **diff.summary(key=lambda node: node.name),
        }


class ReplicationView(SectionView):
    section = "replication"

    def __init__(self, config: ClusterConfigState, logger: Optional[logging.Logger] = None) -> None:
        super().__init__(logger)
        self.config = config
        self._reconciler = KeyedReconciler(key=lambda count: count.level)

    def _under_replicated(self, level: Any, minimum: Optional[int]) -> bool:
        if minimum is None or isinstance(level, bool) or not isinstance(level, (int, float)):
            return False
        return level < minimum

    def build(self, data: Any) -> dict:
        counts = parse_replication(data)
        diff = self._reconciler.step(counts)
        minimum = self.config.min_replication
        bars = []
        for count in counts:
            bar = count.to_dict()
            bar["under_replicated"] = self._under_replicated(count.level, minimum)
            bars.append(bar)
        return {
            "bars": bars,
            "min_replication": minimum,
            "total": sum(count.count for count in counts),
            "under_replicated": sum(bar["count"] for bar in bars if bar["under_replicated"]),
            **diff.summary(key=lambda count: count.level),
        }


class TaskListView(SectionView):
    section = "tasks"

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        super().__init__(logger)
        self._reconciler = KeyedReconciler(key=lambda task: (task.group, task.name))

    def build(self, data: Any) -> dict:
        tasks = parse_tasks(data)
        diff = self._reconciler.step(tasks)
        return {
            "tasks": [task.to_dict() for task in tasks],
            "groups": sorted({task.group for task in tasks}),
            **diff.summary(key=lambda task: [task.group, task.name]),
        }


class MediaGraphView(SectionView):
    """Section -> make -> model relationship graph of the media index."""

    section = "media"

    def __init__(
        self,
        section_transforms: Optional[Mapping[Any, LevelTransforms]] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        super().__init__(logger)
        self.section_transforms = MEDIA_SECTION_TRANSFORMS if section_transforms is None else section_transforms
        self._reconciler = KeyedReconciler(key=lambda pair: pair[0])

    def build(self, data: Any) -> dict:
        graph = build_graph(decode(data, section_transforms=self.section_transforms))
        keyed = [(graph.arena.natural_key(node.id), node) for node in graph.arena]
        diff = self._reconciler.step(keyed)
        model = graph.to_dict()
        model["keys"] = [list(key) for key, _node in keyed]
        model.update(diff.summary(key=lambda pair: list(pair[0])))
        return model


class BrowseListView(SectionView):
    """Nested ``group -> (label, count)`` listing of one media section."""

    def __init__(
        self,
        section: str,
        level_transforms: Optional[LevelTransforms] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        super().__init__(logger)
        self.section = section
        self.level_transforms = level_transforms

    def _section_rows(self, data: Any) -> list[dict]:
        rows = data.get("rows") if isinstance(data, Mapping) else data
        if not isinstance(rows, Sequence) or isinstance(rows, (str, bytes)):
            raise InvalidRowError("browse payload has no rows list")
        selected = []
        for row in rows:
            key = row.get("key") if isinstance(row, Mapping) else None
            if isinstance(key, (list, tuple)) and len(key) > 1 and key[0] == self.section:
                selected.append({"key": list(key[1:]), "value": row.get("value")})
        return selected

    def build(self, data: Any) -> dict:
        decoded = decode(self._section_rows(data), self.level_transforms)
        tree = rollup_tree(decoded, label=self.section)
        return tree.to_dict()


def browse_views(sections: Sequence[str]) -> dict[str, BrowseListView]:
    """Browse views for ``sections``; picture makes are folded to lower case."""
    views = {}
    for section in sections:
        transforms = (lower, lower) if section == "Picture" else None
        views[section] = BrowseListView(section, transforms)
    return views


__all__ = [
    "MEDIA_SECTION_TRANSFORMS",
    "BrowseListView",
    "MediaGraphView",
    "NodeCapacityView",
    "ReplicationView",
    "SectionView",
    "TaskListView",
    "browse_views",
]
