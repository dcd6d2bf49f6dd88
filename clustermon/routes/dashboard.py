"""JSON endpoints exposing the dashboard view models."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify

from ..errors import FetchFailure, PayloadError
from ..middleware.errors import add_cors_headers, json_error, not_ready
from ..services.http import fetch_json
from ..sources import parse_directory_listing
from ..views import SectionView

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api")
dashboard_bp.after_request(add_cors_headers)


def _context():
    return current_app.extensions["clustermon"]


def _section_response(view: SectionView):
    model = view.model
    if model is None:
        return not_ready(view.section, view.last_error)
    return jsonify(model)


@dashboard_bp.get("/health")
def health():
    return jsonify({"status": "ok"})


@dashboard_bp.get("/nodes")
def nodes():
    return _section_response(_context().nodes)


@dashboard_bp.get("/replication")
def replication():
    return _section_response(_context().replication)


@dashboard_bp.get("/tasks")
def tasks():
    return _section_response(_context().tasks)


@dashboard_bp.get("/media/graph")
def media_graph():
    return _section_response(_context().media)


@dashboard_bp.get("/browse/<section>")
def browse(section: str):
    view = _context().browse.get(section)
    if view is None:
        return json_error(f"unknown browse section '{section}'", 404)
    return _section_response(view)


@dashboard_bp.get("/config")
def cluster_config():
    state = _context().cluster_config
    if not state.initialized:
        return not_ready("config")
    return jsonify(state.as_dict())


@dashboard_bp.get("/pollers")
def pollers():
    context = _context()
    pool = context.fetch_pool.stats() if context.fetch_pool is not None else None
    return jsonify({"pollers": context.poller_stats(), "fetch_pool": pool})


@dashboard_bp.get("/list/", defaults={"path": ""})
@dashboard_bp.get("/list/<path:path>")
def directory_listing(path: str):
    url = _context().config.listing_url(path)
    try:
        listing = parse_directory_listing(fetch_json(url))
    except FetchFailure as exc:
        return json_error(exc.reason, 502, path="/" + path)
    except PayloadError as exc:
        return json_error(str(exc), 502, path="/" + path)
    return jsonify(listing.to_dict())
