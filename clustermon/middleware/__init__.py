"""Middleware utilities for the clustermon Flask application."""

from .errors import add_cors_headers, json_error, not_ready

__all__ = ["add_cors_headers", "json_error", "not_ready"]
