"""Runtime dependency construction (session relay + admission control)."""

from __future__ import annotations

import logging
from functools import partial

from voice_relay.state import RuntimeDeps
from voice_relay.state.settings import AppSettings
from voice_relay.handlers.connections import ConnectionManager
from voice_relay.upstream.link import ConnectFn, UpstreamConnector
from voice_relay.sessions import IdleReaper, RelayGateway, SessionMachine, SessionRegistry

from .settings import load_settings

logger = logging.getLogger(__name__)


async def build_runtime_deps(
    settings: AppSettings | None = None,
    *,
    connect_fn: ConnectFn | None = None,
    start_reaper: bool = True,
) -> RuntimeDeps:
    settings = settings or load_settings()

    if not settings.upstream.api_key:
        logger.warning("OPENAI_API_KEY is not set; every connect-session will fail")

    registry = SessionRegistry(outbox_max=settings.sessions.outbox_max)
    machine = SessionMachine(UpstreamConnector(settings.upstream, connect_fn=connect_fn))
    gateway = RelayGateway(registry, machine, settings.sessions)
    reaper = IdleReaper(
        registry,
        partial(gateway.teardown, reason="idle_timeout"),
        idle_timeout_s=settings.sessions.idle_timeout_s,
        interval_s=settings.sessions.reap_interval_s,
        grace_period_s=settings.sessions.grace_period_s,
    )
    if start_reaper:
        reaper.start()

    connections = ConnectionManager(max_connections=settings.limits.max_concurrent_connections)
    logger.info(
        "runtime: model=%s max_connections=%s idle_timeout=%.0fs",
        settings.upstream.model,
        connections.max_connections,
        settings.sessions.idle_timeout_s,
    )

    return RuntimeDeps(
        connections=connections,
        gateway=gateway,
        reaper=reaper,
        settings=settings,
    )


__all__ = ["RuntimeDeps", "build_runtime_deps"]
