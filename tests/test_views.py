from __future__ import annotations

from clustermon.state import ClusterConfigState
from clustermon.views import (
    BrowseListView,
    MediaGraphView,
    NodeCapacityView,
    ReplicationView,
    TaskListView,
    browse_views,
)


def test_node_view_builds_items_and_partition(node_map):
    view = NodeCapacityView()
    assert not view.ready

    view.on_snapshot(node_map)
    model = view.model

    assert view.ready
    assert [item["name"] for item in model["nodes"]] == ["node-a", "node-b"]
    first = model["nodes"][0]
    assert first["pretty_size"] == "2.00KB"
    assert first["title"] == "Last heartbeat from node-a 1.5s ago"
    assert first["fill"].startswith("#")
    assert model["nodes"][1]["heat"] == 1.0
    assert model["nodes"][1]["pretty_size"] == "5B"
    assert model["total_used"] == 700
    assert model["total_free"] == 1300
    assert model["entered"] == ["node-a", "node-b"]

    del node_map["node-b"]
    node_map["node-c"] = {"hbage_ms": 0, "used": 1, "free": 1, "size": 1}
    view.on_snapshot(node_map)
    assert view.model["entered"] == ["node-c"]
    assert view.model["updated"] == ["node-a"]
    assert view.model["exited"] == ["node-b"]


def test_rejected_snapshot_keeps_last_good_model(node_map):
    view = NodeCapacityView()
    view.on_snapshot(node_map)
    good = view.model

    view.on_snapshot(["not", "a", "map"])

    assert view.model is good
    assert view.rejected == 1
    assert "nodes payload" in view.last_error


def test_replication_view_flags_under_replicated_levels():
    config = ClusterConfigState()
    view = ReplicationView(config)
    payload = {
        "rows": [
            {"key": [1], "value": 4},
            {"key": [2], "value": 10},
            {"key": [3], "value": 80},
        ]
    }

    view.on_snapshot(payload)
    assert view.model["min_replication"] is None
    assert view.model["under_replicated"] == 0

    config.on_snapshot({"minrepl": 2})
    view.on_snapshot(payload)
    model = view.model

    assert [bar["under_replicated"] for bar in model["bars"]] == [True, False, False]
    assert model["under_replicated"] == 4
    assert model["total"] == 94
    assert model["updated"] == [1, 2, 3]


def test_replication_view_rejects_unsorted_rows():
    view = ReplicationView(ClusterConfigState())
    view.on_snapshot({"rows": [{"key": [3], "value": 1}, {"key": [1], "value": 1}]})
    assert not view.ready
    assert "out of order" in view.last_error


def test_task_view_partitions_by_group_and_name():
    view = TaskListView()
    view.on_snapshot({"blob": {"verify": {"state": "running"}}})
    view.on_snapshot({"blob": {"verify": {"state": "done"}}, "gc": {"sweep": {"state": "running"}}})

    model = view.model
    assert model["groups"] == ["blob", "gc"]
    assert model["entered"] == [["gc", "sweep"]]
    assert model["updated"] == [["blob", "verify"]]
    assert model["tasks"][0]["state"] == "done"


def test_media_graph_view(media_payload):
    view = MediaGraphView()
    view.on_snapshot(media_payload)
    model = view.model

    assert len(model["nodes"]) == len(model["keys"])
    assert len(model["links"]) == len(model["nodes"]) - 2
    assert ["Picture", "Nikon Corporation"] in model["keys"]
    assert len(model["entered"]) == len(model["nodes"])

    view.on_snapshot({"rows": media_payload["rows"][:3]})
    assert ["Picture"] in view.model["exited"]
    assert view.model["entered"] == []


def test_browse_view_rolls_up_one_section(media_payload):
    view = BrowseListView("Music")
    view.on_snapshot(media_payload)
    model = view.model

    assert model["label"] == "Music"
    assert model["size"] == 44
    assert [(g["label"], g["size"]) for g in model["children"]] == [("Beatles", 31), ("Queen", 13)]
    assert model["children"][0]["children"][1] == {"label": "Help!", "depth": 2, "kind": "leaf", "size": 14}


def test_browse_views_fold_picture_labels(media_payload):
    views = browse_views(["Music", "Picture"])
    picture = views["Picture"]
    picture.on_snapshot(media_payload)

    groups = picture.model["children"]
    assert [g["label"] for g in groups] == ["canon", "nikon corporation"]
    assert groups[0]["size"] == 160
    assert groups[1]["children"][0]["label"] == "nikon d90"


def test_browse_view_of_missing_section_is_empty(media_payload):
    view = BrowseListView("Video")
    view.on_snapshot(media_payload)
    assert view.model["children"] == []
    assert view.model["size"] == 0


def test_node_view_rejects_non_numeric_capacity(node_map):
    view = NodeCapacityView()
    node_map["node-a"]["used"] = "lots"

    view.on_snapshot(node_map)

    assert not view.ready
    assert view.rejected == 1
    assert "used is not a number" in view.last_error


def test_media_graph_view_rejects_unhashable_labels(media_payload):
    view = MediaGraphView()
    view.on_snapshot({"rows": [{"key": ["Music", "x", {"k": 1}], "value": 1}]})

    assert not view.ready
    assert view.rejected == 1
    assert "unhashable" in view.last_error

    view.on_snapshot(media_payload)
    assert view.ready
