"""Flask application factory for clustermon."""

from __future__ import annotations

from typing import Optional

from flask import Flask

from .bootstrap import DashboardContext, build_context
from .config import AppConfig, load_app_config
from .routes import register_blueprints
from .services.logging import configure_logging


def create_app(
    config: AppConfig | None = None,
    *,
    context: Optional[DashboardContext] = None,
    log_to_file: bool = True,
) -> Flask:
    """Instantiate the API application around a dashboard context.

    Polling is not started here; the caller runs ``context.start()``.
    """
    cfg = config or (context.config if context is not None else load_app_config())
    ctx = context or build_context(cfg)

    app = Flask(__name__)
    app.config.update(cfg.to_flask_config())
    app.extensions["clustermon"] = ctx
    if log_to_file:
        configure_logging(app, cfg.log_file_path, level=cfg.log_level)
    register_blueprints(app)
    return app


__all__ = ["create_app"]
