"""Hierarchy aggregation over decoded grouped rows.

Two shapes are produced from the same sorted rows:

* a rollup tree (root -> groups -> leaves) used by the nested browse lists,
* a node/link graph used by the relationship visualization.

Both walk the rows in order and discover children from runs of equal labels;
neither re-sorts nor indexes the rows ahead of time.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, Optional, Sequence

from ..errors import InvalidRowError
from .rows import DecodedRow

ROOT = "root"
GROUP = "group"
LEAF = "leaf"

# Display size of section roots in the graph; they carry no count of their own.
ROOT_NODE_SIZE = 10

_UNSET = object()


@dataclass
class HierarchyNode:
    label: Any
    depth: int
    kind: str
    aggregate_size: float = 0
    children: list["HierarchyNode"] = field(default_factory=list)

    def to_dict(self) -> dict:
        data: dict[str, Any] = {
            "label": self.label,
            "depth": self.depth,
            "kind": self.kind,
            "size": self.aggregate_size,
        }
        if self.kind != LEAF:
            data["children"] = [child.to_dict() for child in self.children]
        return data


def _require_levels(index: int, row: DecodedRow, levels: int = 2) -> None:
    if row.depth < levels:
        raise InvalidRowError(
            f"expected at least {levels} key levels, got {row.depth}",
            index=index,
            row=row.key,
        )


def iter_rollup_groups(rows: Iterable[DecodedRow]) -> Iterator[HierarchyNode]:
    """Yield one group per run of equal top-level labels.

    Each group holds ``(level-1 label, amount)`` leaves in row order.  A group
    is yielded as soon as the next one opens, so only the open group's leaves
    are held in memory.
    """
    current: Optional[HierarchyNode] = None
    for index, row in enumerate(rows):
        _require_levels(index, row)
        label = row.labels[0]
        if current is None or label != current.label:
            if current is not None:
                yield current
            current = HierarchyNode(label=label, depth=1, kind=GROUP)
        amount = row.amount
        current.children.append(
            HierarchyNode(label=row.labels[1], depth=2, kind=LEAF, aggregate_size=amount)
        )
        current.aggregate_size += amount
    if current is not None:
        yield current


def rollup_tree(rows: Iterable[DecodedRow], label: Any = None) -> HierarchyNode:
    """Collect :func:`iter_rollup_groups` under a single root node."""
    root = HierarchyNode(label=label, depth=0, kind=ROOT)
    for group in iter_rollup_groups(rows):
        root.children.append(group)
        root.aggregate_size += group.aggregate_size
    return root


@dataclass(frozen=True)
class GraphNode:
    id: int
    name: Any
    size: float
    type: str


@dataclass(frozen=True)
class GraphEdge:
    source_id: int
    target_id: int
    weight: int = 1


class NodeArena:
    """Append-only node storage addressed by integer index.

    Ids are positions in emission order and are only meaningful within one
    aggregation pass.  ``natural_key`` records the label path of each node so
    consumers animating across snapshots can match nodes by name instead.
    """

    def __init__(self) -> None:
        self._nodes: list[GraphNode] = []
        self._natural_keys: list[Optional[tuple]] = []
        self._by_natural_key: dict[tuple, int] = {}

    def add(self, name: Any, size: float, node_type: str, natural_key: Optional[tuple] = None) -> GraphNode:
        node = GraphNode(id=len(self._nodes), name=name, size=size, type=node_type)
        self._nodes.append(node)
        self._natural_keys.append(natural_key)
        if natural_key is not None:
            self._by_natural_key.setdefault(natural_key, node.id)
        return node

    def __getitem__(self, node_id: int) -> GraphNode:
        return self._nodes[node_id]

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[GraphNode]:
        return iter(self._nodes)

    def natural_key(self, node_id: int) -> Optional[tuple]:
        return self._natural_keys[node_id]

    def find(self, natural_key: tuple) -> Optional[GraphNode]:
        node_id = self._by_natural_key.get(natural_key)
        return None if node_id is None else self._nodes[node_id]


@dataclass
class HierarchyGraph:
    arena: NodeArena
    edges: list[GraphEdge]

    @property
    def nodes(self) -> list[GraphNode]:
        return list(self.arena)

    @property
    def roots(self) -> list[GraphNode]:
        return [node for node in self.arena if node.type == ROOT]

    def parent_of(self, node_id: int) -> Optional[GraphNode]:
        for edge in self.edges:
            if edge.target_id == node_id:
                return self.arena[edge.source_id]
        return None

    def to_dict(self) -> dict:
        """Node/link shape expected by force-layout renderers."""
        return {
            "nodes": [
                {"name": node.name, "size": node.size, "type": node.type} for node in self.arena
            ],
            "links": [
                {"source": edge.source_id, "target": edge.target_id, "value": edge.weight}
                for edge in self.edges
            ],
        }


def _rollup_by_group_label(rows: Sequence[DecodedRow]) -> dict[Any, float]:
    sizes: dict[Any, float] = {}
    for index, row in enumerate(rows):
        _require_levels(index, row)
        for label in (row.labels[0], row.labels[1], row.labels[-1]):
            try:
                hash(label)
            except TypeError as exc:
                raise InvalidRowError(f"unhashable label {label!r}", index=index, row=row.key) from exc
        label = row.labels[1]
        sizes[label] = sizes.get(label, 0) + row.amount
    return sizes


def build_graph(rows: Iterable[DecodedRow]) -> HierarchyGraph:
    """Build the section -> group -> leaf graph.

    Group node sizes come from the cross-section rollup of their label, so
    equally named groups in different sections share one size; leaves carry
    their own row amount.  Edges point from parent to child.
    """
    rows = list(rows)
    sizes = _rollup_by_group_label(rows)

    arena = NodeArena()
    edges: list[GraphEdge] = []
    roots: dict[Any, int] = {}
    section: Any = _UNSET
    group: Any = _UNSET
    root_id = group_id = -1

    for row in rows:
        top, middle, leaf = row.labels[0], row.labels[1], row.labels[-1]
        if section is _UNSET or top != section:
            section = top
            group = _UNSET
            if top in roots:
                root_id = roots[top]
            else:
                root_id = arena.add(top, ROOT_NODE_SIZE, ROOT, natural_key=(top,)).id
                roots[top] = root_id
        if group is _UNSET or middle != group:
            group = middle
            group_id = arena.add(middle, sizes[middle], GROUP, natural_key=(top, middle)).id
            edges.append(GraphEdge(root_id, group_id))
        leaf_node = arena.add(leaf, row.amount, LEAF, natural_key=(top, middle, leaf))
        edges.append(GraphEdge(group_id, leaf_node.id))

    return HierarchyGraph(arena=arena, edges=edges)


__all__ = [
    "GROUP",
    "LEAF",
    "ROOT",
    "ROOT_NODE_SIZE",
    "GraphEdge",
    "GraphNode",
    "HierarchyGraph",
    "HierarchyNode",
    "NodeArena",
    "build_graph",
    "iter_rollup_groups",
    "rollup_tree",
]
