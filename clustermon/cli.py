"""Command line entry point for clustermon."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from .config import SOURCE_NAMES, load_app_config
from .errors import ClusterMonError
from .services.http import configure_http, fetch_json
from .services.logging import configure_cli_logging
from .state import ClusterConfigState
from .views import MediaGraphView, NodeCapacityView, ReplicationView, TaskListView

LOGGER = logging.getLogger("clustermon.cli")


def _print(data) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False, default=str))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="clustermon", description="Storage cluster dashboard")
    parser.add_argument("--base-dir", help="directory holding .env and logs/")
    parser.add_argument("--base-url", help="cluster base URL (overrides CLUSTERMON_BASE_URL)")
    parser.add_argument("--log-level")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Poll the cluster and serve the JSON API")
    serve.add_argument("--host")
    serve.add_argument("--port", type=int)

    snapshot = sub.add_parser("snapshot", help="Fetch one source once and print its model")
    snapshot.add_argument("source", choices=SOURCE_NAMES)

    return parser


def _snapshot_model(source: str, payload):
    if source == "config":
        state = ClusterConfigState()
        state.on_snapshot(payload)
        return state.as_dict()
    views = {
        "nodes": NodeCapacityView,
        "tasks": TaskListView,
        "media": MediaGraphView,
    }
    if source == "replication":
        return ReplicationView(ClusterConfigState()).build(payload)
    return views[source]().build(payload)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    cfg = load_app_config(
        Path(args.base_dir) if args.base_dir else None,
        base_url=args.base_url,
        log_level=args.log_level,
        host=getattr(args, "host", None),
        port=getattr(args, "port", None),
    )
    configure_cli_logging(cfg.log_level)

    if args.command == "snapshot":
        configure_http(cfg.http_settings())
        try:
            _print(_snapshot_model(args.source, fetch_json(cfg.url_for(args.source))))
        except ClusterMonError as exc:
            LOGGER.error("Snapshot of %s failed: %s", args.source, exc)
            return 1
        return 0

    from .app_factory import create_app
    from .bootstrap import build_context

    context = build_context(cfg)
    app = create_app(cfg, context=context)
    context.start()
    try:
        app.run(host=cfg.host, port=cfg.port, debug=cfg.debug, use_reloader=False)
    finally:
        context.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
