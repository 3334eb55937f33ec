"""Client WebSocket connection orchestration."""

from __future__ import annotations

import uuid
import logging
import contextlib
from functools import partial

from fastapi import WebSocket

from voice_relay.state.runtime import RuntimeDeps
from voice_relay.handlers.limits import SlidingWindowRateLimiter
from voice_relay.config.websocket import (
    WS_CLOSE_BUSY_CODE,
    WS_CLOSE_ORIGIN_CODE,
    EVENT_SOCKET_CONNECTED,
    WS_ERROR_SERVER_AT_CAPACITY,
    WS_ERROR_ORIGIN_NOT_ALLOWED,
)

from .client import WebSocketClient
from .errors import reject_connection
from .auth import get_origin, authorize_websocket
from .lifecycle import WebSocketLifecycle
from .message_loop import run_message_loop

logger = logging.getLogger(__name__)


def _create_rate_limiters(runtime_deps: RuntimeDeps) -> tuple[SlidingWindowRateLimiter, SlidingWindowRateLimiter]:
    limits = runtime_deps.settings.limits
    message_limiter = SlidingWindowRateLimiter(
        limit=limits.ws_max_messages_per_window,
        window_seconds=limits.ws_message_window_seconds,
    )
    connect_limiter = SlidingWindowRateLimiter(
        limit=limits.ws_max_connects_per_window,
        window_seconds=limits.ws_connect_window_seconds,
    )
    return message_limiter, connect_limiter


async def _prepare_connection(ws: WebSocket, runtime_deps: RuntimeDeps) -> bool:
    if not await authorize_websocket(ws, allowed_origins=runtime_deps.settings.websocket.allowed_origins):
        logger.warning("rejecting client socket from origin %s", get_origin(ws))
        await reject_connection(
            ws,
            error_code=WS_ERROR_ORIGIN_NOT_ALLOWED,
            message="Origin not allowed.",
            close_code=WS_CLOSE_ORIGIN_CODE,
        )
        return False

    if not await runtime_deps.connections.connect(ws):
        await reject_connection(
            ws,
            error_code=WS_ERROR_SERVER_AT_CAPACITY,
            message="Server cannot accept new connections. Please try again later.",
            close_code=WS_CLOSE_BUSY_CODE,
        )
        return False

    try:
        await ws.accept()
    except Exception:
        with contextlib.suppress(Exception):
            await runtime_deps.connections.disconnect(ws)
        raise
    return True


async def handle_websocket_connection(ws: WebSocket, runtime_deps: RuntimeDeps) -> None:
    lifecycle: WebSocketLifecycle | None = None
    client: WebSocketClient | None = None
    admitted = False
    try:
        if not await _prepare_connection(ws, runtime_deps):
            return
        admitted = True

        client_id = uuid.uuid4().hex
        lifecycle = WebSocketLifecycle(
            ws,
            is_busy_fn=partial(runtime_deps.gateway.has_active_response, client_id),
            idle_timeout_s=runtime_deps.settings.websocket.idle_timeout_s,
            watchdog_tick_s=runtime_deps.settings.websocket.watchdog_tick_s,
        )
        client = WebSocketClient(ws, client_id=client_id, on_send=lifecycle.touch)
        lifecycle.start()

        message_limiter, connect_limiter = _create_rate_limiters(runtime_deps)

        logger.info(
            "client connected client_id=%s. Active: %s",
            client_id,
            runtime_deps.connections.get_connection_count(),
        )
        await client.send(EVENT_SOCKET_CONNECTED, {"clientId": client_id})
        await run_message_loop(ws, client, lifecycle, message_limiter, connect_limiter, runtime_deps)
    finally:
        if lifecycle is not None:
            with contextlib.suppress(Exception):
                await lifecycle.stop()

        if client is not None:
            runtime_deps.gateway.detach_client(client)

        if admitted:
            with contextlib.suppress(Exception):
                await runtime_deps.connections.disconnect(ws)
            logger.info(
                "client disconnected client_id=%s. Active: %s",
                client.client_id if client is not None else None,
                runtime_deps.connections.get_connection_count(),
            )


__all__ = ["handle_websocket_connection"]
