"""Dispatch of client requests to gateway operations."""

from __future__ import annotations

import logging
from typing import Any
from collections.abc import Callable, Awaitable

from voice_relay.errors import RelayError
from voice_relay.state.runtime import RuntimeDeps
from voice_relay.config.websocket import EVENT_REALTIME, WS_ERROR_INTERNAL, WS_ERROR_INVALID_MESSAGE

from .client import WebSocketClient

logger = logging.getLogger(__name__)

HandlerFn = Callable[
    [WebSocketClient, RuntimeDeps, "str | None", dict[str, Any]],
    Awaitable["dict[str, Any] | None"],
]


async def _handle_start_session(
    client: WebSocketClient,
    runtime_deps: RuntimeDeps,
    session_id: str | None,
    payload: dict[str, Any],
) -> dict[str, Any] | None:
    return await runtime_deps.gateway.create_session(client, session_id, payload)


async def _handle_connect_session(
    client: WebSocketClient,
    runtime_deps: RuntimeDeps,
    session_id: str | None,
    payload: dict[str, Any],
) -> dict[str, Any] | None:
    return await runtime_deps.gateway.connect_session(client, session_id, payload)


async def _handle_audio_data(
    client: WebSocketClient,
    runtime_deps: RuntimeDeps,
    session_id: str | None,
    payload: dict[str, Any],
) -> dict[str, Any] | None:
    await runtime_deps.gateway.relay_audio(client, session_id, payload)
    return None


async def _handle_end_session(
    client: WebSocketClient,
    runtime_deps: RuntimeDeps,
    session_id: str | None,
    _payload: dict[str, Any],
) -> dict[str, Any] | None:
    return await runtime_deps.gateway.end_session(client, session_id)


async def _handle_commit_buffer(
    client: WebSocketClient,
    runtime_deps: RuntimeDeps,
    session_id: str | None,
    _payload: dict[str, Any],
) -> dict[str, Any] | None:
    return await runtime_deps.gateway.commit_buffer(client, session_id)


async def _handle_create_response(
    client: WebSocketClient,
    runtime_deps: RuntimeDeps,
    session_id: str | None,
    _payload: dict[str, Any],
) -> dict[str, Any] | None:
    return await runtime_deps.gateway.create_response(client, session_id)


async def _handle_clear_buffer(
    client: WebSocketClient,
    runtime_deps: RuntimeDeps,
    session_id: str | None,
    _payload: dict[str, Any],
) -> dict[str, Any] | None:
    return await runtime_deps.gateway.clear_buffer(client, session_id)


async def _handle_get_session_status(
    client: WebSocketClient,
    runtime_deps: RuntimeDeps,
    session_id: str | None,
    _payload: dict[str, Any],
) -> dict[str, Any] | None:
    return runtime_deps.gateway.get_session_status(client, session_id)


async def _handle_health_check(
    _client: WebSocketClient,
    runtime_deps: RuntimeDeps,
    _session_id: str | None,
    _payload: dict[str, Any],
) -> dict[str, Any] | None:
    return runtime_deps.gateway.health()


HANDLERS: dict[str, HandlerFn] = {
    "start-session": _handle_start_session,
    "connect-session": _handle_connect_session,
    "audio-data": _handle_audio_data,
    "end-session": _handle_end_session,
    "commit-buffer": _handle_commit_buffer,
    "create-response": _handle_create_response,
    "clear-buffer": _handle_clear_buffer,
    "get-session-status": _handle_get_session_status,
    "health-check": _handle_health_check,
}

REPLY_TYPES: dict[str, str] = {
    "start-session": "session-started",
    "connect-session": "session-connected",
    "end-session": "session-ended",
    "commit-buffer": "buffer-committed",
    "create-response": "response-requested",
    "clear-buffer": "buffer-cleared",
    "get-session-status": "session-status",
    "health-check": "health-status",
}


async def _send_failure(
    client: WebSocketClient,
    msg_type: str,
    exc: RelayError,
    *,
    session_id: str | None,
    request_id: str | None,
) -> None:
    reply_type = REPLY_TYPES.get(msg_type)
    if reply_type is None:
        # Fire-and-forget requests (audio) report failures in the realtime event stream.
        await client.send(
            EVENT_REALTIME,
            {"type": "error", "error": {"code": exc.code, "message": exc.message}},
            session_id=session_id,
            request_id=request_id,
        )
        return
    await client.send(reply_type, exc.to_reply(), session_id=session_id, request_id=request_id)


async def dispatch_message(
    client: WebSocketClient,
    runtime_deps: RuntimeDeps,
    msg_type: str,
    *,
    session_id: str | None,
    request_id: str | None,
    payload: dict[str, Any],
) -> None:
    handler = HANDLERS.get(msg_type)
    if handler is None:
        await client.send_error(
            session_id=session_id,
            request_id=request_id,
            error_code=WS_ERROR_INVALID_MESSAGE,
            message=f"message type '{msg_type}' is not supported",
            reason_code="unknown_message_type",
        )
        return

    try:
        reply = await handler(client, runtime_deps, session_id, payload)
    except RelayError as exc:
        logger.info("%s failed session_id=%s code=%s: %s", msg_type, session_id, exc.code, exc.message)
        await _send_failure(client, msg_type, exc, session_id=session_id, request_id=request_id)
        return
    except Exception:
        logger.exception("%s handler crashed session_id=%s", msg_type, session_id)
        await client.send_error(
            session_id=session_id,
            request_id=request_id,
            error_code=WS_ERROR_INTERNAL,
            message="internal server error",
            reason_code="handler_failed",
        )
        return

    if reply is None:
        return
    reply_session_id = reply.get("sessionId") if isinstance(reply.get("sessionId"), str) else session_id
    await client.send(REPLY_TYPES[msg_type], reply, session_id=reply_session_id, request_id=request_id)


__all__ = ["HANDLERS", "REPLY_TYPES", "dispatch_message"]
