"""Wiring of pollers, views and transport for one dashboard process."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Protocol

from .config import AppConfig, load_app_config
from .poller import SnapshotPoller, Subscriber
from .services.http import HttpTransport, Transport, configure_http
from .services.loop import EventLoop
from .services.workers import FetchPool
from .state import ClusterConfigState
from .views import (
    BrowseListView,
    MediaGraphView,
    NodeCapacityView,
    ReplicationView,
    TaskListView,
    browse_views,
)

LOGGER = logging.getLogger("clustermon.bootstrap")


class Loop(Protocol):
    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> None: ...

    def call_soon_threadsafe(self, callback: Callable[..., Any], *args: Any) -> None: ...


@dataclass
class DashboardContext:
    config: AppConfig
    loop: Loop
    transport: Transport
    cluster_config: ClusterConfigState
    nodes: NodeCapacityView
    replication: ReplicationView
    tasks: TaskListView
    media: MediaGraphView
    browse: dict[str, BrowseListView]
    pollers: dict[str, SnapshotPoller] = field(default_factory=dict)
    fetch_pool: Optional[FetchPool] = None

    def subscribers_for(self, source: str) -> list[Subscriber]:
        if source == "nodes":
            return [self.nodes]
        if source == "replication":
            return [self.replication]
        if source == "tasks":
            return [self.tasks]
        if source == "config":
            return [self.cluster_config]
        if source == "media":
            return [self.media, *self.browse.values()]
        raise KeyError(source)

    def start(self) -> None:
        """Start the loop thread (if it has one) and every poller on it."""
        start_loop = getattr(self.loop, "start", None)
        if callable(start_loop):
            start_loop()
        for poller in self.pollers.values():
            self.loop.call_soon_threadsafe(poller.start)
        LOGGER.info("Dashboard started with %s pollers", len(self.pollers))

    def stop(self) -> None:
        stop_loop = getattr(self.loop, "stop", None)
        if callable(stop_loop):
            stop_loop()
        if self.fetch_pool is not None:
            self.fetch_pool.shutdown()

    def poller_stats(self) -> list[dict]:
        return [poller.stats() for poller in self.pollers.values()]


def build_context(
    config: Optional[AppConfig] = None,
    *,
    loop: Optional[Loop] = None,
    transport: Optional[Transport] = None,
) -> DashboardContext:
    cfg = config or load_app_config()
    loop = loop or EventLoop()
    fetch_pool = None
    if transport is None:
        configure_http(cfg.http_settings())
        fetch_pool = FetchPool("fetch", workers=cfg.task_workers)
        transport = HttpTransport(fetch_pool, loop)

    cluster_config = ClusterConfigState()
    context = DashboardContext(
        config=cfg,
        loop=loop,
        transport=transport,
        cluster_config=cluster_config,
        nodes=NodeCapacityView(stale_ms=cfg.stale_heartbeat_ms),
        replication=ReplicationView(cluster_config),
        tasks=TaskListView(),
        media=MediaGraphView(),
        browse=browse_views(cfg.browse_sections),
        fetch_pool=fetch_pool,
    )
    for source in cfg.sources():
        context.pollers[source.name] = SnapshotPoller(
            source.url,
            source.interval,
            context.subscribers_for(source.name),
            transport=transport,
            loop=loop,
            retry_delay=cfg.retry_delay,
            name=source.name,
        )
    return context


__all__ = ["DashboardContext", "build_context"]
