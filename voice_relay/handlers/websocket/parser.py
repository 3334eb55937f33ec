"""Client envelope parsing and validation."""

from __future__ import annotations

from typing import Any

import orjson

from voice_relay.config.websocket import WS_KEY_TYPE, WS_KEY_PAYLOAD, WS_KEY_REQUEST_ID, WS_KEY_SESSION_ID


def _optional_id(msg: dict[str, Any], key: str) -> str | None:
    value = msg.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"message '{key}' must be a string")
    return value.strip() or None


def parse_client_message(raw: str | bytes) -> dict[str, Any]:
    try:
        msg = orjson.loads(raw)
    except Exception as exc:
        raise ValueError(f"invalid JSON: {exc}") from exc

    if not isinstance(msg, dict):
        raise ValueError("message must be a JSON object")

    msg_type = msg.get(WS_KEY_TYPE)
    if not isinstance(msg_type, str) or not msg_type.strip():
        raise ValueError("message missing non-empty 'type'")

    payload = msg.get(WS_KEY_PAYLOAD, {})
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValueError("message 'payload' must be an object")

    session_id = _optional_id(msg, WS_KEY_SESSION_ID)
    if session_id is None:
        # Browser clients often carry the id inside the payload.
        session_id = _optional_id(payload, "sessionId")

    return {
        WS_KEY_TYPE: msg_type.strip(),
        WS_KEY_SESSION_ID: session_id,
        WS_KEY_REQUEST_ID: _optional_id(msg, WS_KEY_REQUEST_ID),
        WS_KEY_PAYLOAD: payload,
    }


__all__ = ["parse_client_message"]
