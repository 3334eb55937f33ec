"""Outbound framing for the relay's client socket.

Every server-to-client frame, replies and pushed session events alike, is a
``{type, session_id, request_id, payload}`` object. Transport failures are
reported as ``False`` so a vanished browser never takes a session down.
"""

from __future__ import annotations

import logging
from typing import Any

import orjson
from fastapi import WebSocket, WebSocketDisconnect

from voice_relay.config.websocket import WS_KEY_TYPE, WS_KEY_PAYLOAD, WS_KEY_REQUEST_ID, WS_KEY_SESSION_ID

logger = logging.getLogger(__name__)

ERROR_EVENT = "error"


def build_error_payload(
    code: str,
    message: str,
    *,
    details: dict[str, Any] | None = None,
    reason_code: str | None = None,
) -> dict[str, Any]:
    extra = dict(details or {})
    if reason_code:
        extra.setdefault("reason_code", reason_code)
    return {"code": code, "message": message, "details": extra}


def build_envelope(
    msg_type: str,
    session_id: str | None,
    request_id: str | None,
    payload: dict[str, Any] | None = None,
) -> dict[str, Any]:
    # Pushed session events carry no request id; connection-level errors carry no session id.
    return {
        WS_KEY_TYPE: msg_type,
        WS_KEY_SESSION_ID: session_id,
        WS_KEY_REQUEST_ID: request_id,
        WS_KEY_PAYLOAD: payload or {},
    }


async def safe_send_text(ws: WebSocket, text: str) -> bool:
    try:
        await ws.send_text(text)
    except WebSocketDisconnect:
        return False
    except Exception:
        logger.debug("client frame dropped", exc_info=True)
        return False
    return True


async def safe_send_envelope(
    ws: WebSocket,
    *,
    msg_type: str,
    session_id: str | None = None,
    request_id: str | None = None,
    payload: dict[str, Any] | None = None,
) -> bool:
    frame = orjson.dumps(build_envelope(msg_type, session_id, request_id, payload))
    return await safe_send_text(ws, frame.decode("utf-8"))


async def reject_connection(ws: WebSocket, *, error_code: str, message: str, close_code: int) -> None:
    """Refuse a client socket (bad origin, relay at capacity) with a readable reason."""
    try:
        await ws.accept()
    except Exception:
        logger.debug("reject before accept failed code=%s", error_code, exc_info=True)
        return
    await safe_send_envelope(
        ws,
        msg_type=ERROR_EVENT,
        payload=build_error_payload(error_code, message, reason_code=error_code),
    )
    try:
        await ws.close(code=close_code, reason=message)
    except Exception:
        logger.debug("close after reject failed code=%s", error_code, exc_info=True)


__all__ = [
    "ERROR_EVENT",
    "build_envelope",
    "build_error_payload",
    "reject_connection",
    "safe_send_envelope",
    "safe_send_text",
]
