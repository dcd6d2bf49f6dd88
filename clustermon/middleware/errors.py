"""Error and response helpers shared by the API blueprints."""

from __future__ import annotations

from typing import Any

from flask import Response, jsonify, request


def json_error(message: str, status: int = 400, **extra: Any):
    """Return a JSON error tuple suitable as a Flask view return value."""
    payload = {"error": str(message)}
    payload.update(extra)
    return jsonify(payload), int(status)


def not_ready(section: str, last_error: str | None = None):
    """503 for a dashboard section that has not received its first snapshot."""
    return json_error(f"no snapshot for '{section}' yet", 503, section=section, last_error=last_error)


def add_cors_headers(response: Response) -> Response:
    """Let renderers served from another origin read the API."""
    origin = request.headers.get("Origin")
    if origin:
        response.headers["Access-Control-Allow-Origin"] = origin
        vary = response.headers.get("Vary")
        response.headers["Vary"] = f"{vary}, Origin" if vary else "Origin"
    else:
        response.headers.setdefault("Access-Control-Allow-Origin", "*")
    response.headers.setdefault("Access-Control-Allow-Methods", "GET, OPTIONS")
    return response
