"""Client WebSocket receive loop."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import WebSocket, WebSocketDisconnect

from voice_relay.state.runtime import RuntimeDeps
from voice_relay.handlers.limits import SlidingWindowRateLimiter
from voice_relay.config.websocket import (
    WS_KEY_TYPE,
    WS_KEY_PAYLOAD,
    WS_KEY_REQUEST_ID,
    WS_KEY_SESSION_ID,
    WS_ERROR_INVALID_MESSAGE,
)

from .client import WebSocketClient
from .dispatch import dispatch_message
from .parser import parse_client_message
from .lifecycle import WebSocketLifecycle
from .limits import consume_limiter, select_rate_limiter

logger = logging.getLogger(__name__)


async def _recv_text_with_watchdog(ws: WebSocket, lifecycle: WebSocketLifecycle) -> tuple[str | None, bool]:
    try:
        message = await asyncio.wait_for(ws.receive_text(), timeout=lifecycle.watchdog_tick_s * 2)
        return message, False
    except TimeoutError:
        return None, lifecycle.should_close()


async def _parse_or_send_error(client: WebSocketClient, raw: str) -> dict[str, Any] | None:
    try:
        return parse_client_message(raw)
    except ValueError as exc:
        await client.send_error(
            session_id=None,
            request_id=None,
            error_code=WS_ERROR_INVALID_MESSAGE,
            message=str(exc),
            reason_code="invalid_message",
        )
        return None


async def run_message_loop(
    ws: WebSocket,
    client: WebSocketClient,
    lifecycle: WebSocketLifecycle,
    message_limiter: SlidingWindowRateLimiter,
    connect_limiter: SlidingWindowRateLimiter,
    runtime_deps: RuntimeDeps,
) -> None:
    # Messages are handled one at a time, so audio from one client reaches the
    # upstream link in the order it was sent.
    try:
        while True:
            raw, should_exit = await _recv_text_with_watchdog(ws, lifecycle)
            if should_exit:
                return
            if raw is None:
                continue

            lifecycle.touch()

            msg = await _parse_or_send_error(client, raw)
            if msg is None:
                continue

            msg_type = msg[WS_KEY_TYPE]
            session_id = msg[WS_KEY_SESSION_ID]
            request_id = msg[WS_KEY_REQUEST_ID]
            payload = msg[WS_KEY_PAYLOAD]

            limiter, label = select_rate_limiter(msg_type, message_limiter, connect_limiter)
            if limiter is not None:
                ok = await consume_limiter(client, limiter, label, session_id=session_id, request_id=request_id)
                if not ok:
                    continue

            if msg_type == "ping":
                await client.send("pong", {}, session_id=session_id, request_id=request_id)
                continue

            await dispatch_message(
                client,
                runtime_deps,
                msg_type,
                session_id=session_id,
                request_id=request_id,
                payload=payload,
            )
    except WebSocketDisconnect:
        return


__all__ = ["run_message_loop"]
