"""Flask Blueprint registry."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from flask import Flask


def register_blueprints(app: Flask) -> None:
    """Register every API blueprint that is not registered yet."""
    from .dashboard import dashboard_bp

    if dashboard_bp.name not in app.blueprints:
        app.register_blueprint(dashboard_bp)
