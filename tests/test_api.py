from __future__ import annotations

import pytest

from conftest import MEDIA_ROWS, NODE_MAP, ManualLoop, ScriptedTransport

import clustermon.routes.dashboard as dashboard_module
from clustermon.app_factory import create_app
from clustermon.bootstrap import build_context
from clustermon.errors import FetchFailure


@pytest.fixture
def dashboard(app_config):
    loop = ManualLoop()
    transport = ScriptedTransport({}, clock=loop.time)
    context = build_context(app_config, loop=loop, transport=transport)
    app = create_app(app_config, context=context, log_to_file=False)
    app.config["TESTING"] = True
    return app, context, loop, transport


def _script_all(app_config, transport):
    transport.push(app_config.url_for("nodes"), NODE_MAP)
    transport.push(app_config.url_for("config"), {"minrepl": 2})
    transport.push(app_config.url_for("replication"), {"rows": [{"key": [1], "value": 3}, {"key": [2], "value": 9}]})
    transport.push(app_config.url_for("tasks"), {"blob": {"verify": {"state": "running"}}})
    transport.push(app_config.url_for("media"), MEDIA_ROWS)


def test_sections_are_not_ready_before_first_snapshot(dashboard):
    app, _context, _loop, _transport = dashboard
    client = app.test_client()

    for path in ("/api/nodes", "/api/replication", "/api/tasks", "/api/media/graph", "/api/config"):
        response = client.get(path)
        assert response.status_code == 503, path
        assert "no snapshot" in response.get_json()["error"]

    assert client.get("/api/health").get_json() == {"status": "ok"}


def test_sections_serve_models_after_polling(dashboard, app_config):
    app, context, loop, transport = dashboard
    _script_all(app_config, transport)
    context.start()
    loop.advance(0)
    client = app.test_client()

    nodes = client.get("/api/nodes").get_json()
    assert [node["name"] for node in nodes["nodes"]] == ["node-a", "node-b"]

    replication = client.get("/api/replication").get_json()
    assert replication["total"] == 12
    assert replication["bars"][0]["level"] == 1

    assert client.get("/api/tasks").get_json()["groups"] == ["blob"]
    assert client.get("/api/config").get_json()["values"] == {"minrepl": 2}

    graph = client.get("/api/media/graph").get_json()
    assert len(graph["nodes"]) == 12

    music = client.get("/api/browse/Music").get_json()
    assert music["size"] == 44
    assert client.get("/api/browse/Video").status_code == 404


def test_failed_initial_fetch_keeps_section_unavailable(dashboard, app_config):
    app, context, loop, transport = dashboard
    transport.push(app_config.url_for("nodes"), None, NODE_MAP)
    context.start()
    loop.advance(0)
    client = app.test_client()

    assert client.get("/api/nodes").status_code == 503
    loop.advance(app_config.retry_delay)
    assert client.get("/api/nodes").status_code == 200

    body = client.get("/api/pollers").get_json()
    stats = {item["name"]: item for item in body["pollers"]}
    assert body["fetch_pool"] is None
    assert stats["nodes"]["attempts"] == 2
    assert stats["nodes"]["initialized"] is True
    assert stats["media"]["initialized"] is False


def test_cors_headers(dashboard):
    app, *_ = dashboard
    client = app.test_client()

    assert client.get("/api/health").headers["Access-Control-Allow-Origin"] == "*"
    response = client.get("/api/health", headers={"Origin": "http://ui.local"})
    assert response.headers["Access-Control-Allow-Origin"] == "http://ui.local"
    assert "Origin" in response.headers["Vary"]


def test_directory_listing_proxy(dashboard, monkeypatch):
    app, *_ = dashboard
    requested = []

    def fake_fetch(url):
        requested.append(url)
        return {"path": "/music", "dirs": {"queen": {"size": 10, "descendants": 1}}}

    monkeypatch.setattr(dashboard_module, "fetch_json", fake_fetch)
    response = app.test_client().get("/api/list/music")

    assert response.status_code == 200
    assert response.get_json()["entries"][0]["path"] == "/music/queen"
    assert requested == ["http://cluster.test:8484/.cbfs/list/music"]


def test_directory_listing_upstream_failure(dashboard, monkeypatch):
    app, *_ = dashboard

    def failing(url):
        raise FetchFailure(url, "HTTP 404")

    monkeypatch.setattr(dashboard_module, "fetch_json", failing)
    response = app.test_client().get("/api/list/missing")

    assert response.status_code == 502
    assert response.get_json() == {"error": "HTTP 404", "path": "/missing"}
