"""Grouped-row decoding and hierarchy aggregation."""

from .hierarchy import (
    GROUP,
    LEAF,
    ROOT,
    ROOT_NODE_SIZE,
    GraphEdge,
    GraphNode,
    HierarchyGraph,
    HierarchyNode,
    NodeArena,
    build_graph,
    iter_rollup_groups,
    rollup_tree,
)
from .rows import DecodedRow, LabelTransform, LevelTransforms, collation_key, decode, identity, lower, title_case

__all__ = [
    "GROUP",
    "LEAF",
    "ROOT",
    "ROOT_NODE_SIZE",
    "DecodedRow",
    "GraphEdge",
    "GraphNode",
    "HierarchyGraph",
    "HierarchyNode",
    "LabelTransform",
    "LevelTransforms",
    "NodeArena",
    "build_graph",
    "collation_key",
    "decode",
    "identity",
    "iter_rollup_groups",
    "lower",
    "rollup_tree",
    "title_case",
]
