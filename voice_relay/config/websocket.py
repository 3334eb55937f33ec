"""Client WebSocket protocol configuration and constants."""

from __future__ import annotations

import os

WS_ENDPOINT_PATH = "/ws"

# Envelope keys
WS_KEY_TYPE = "type"
WS_KEY_SESSION_ID = "session_id"
WS_KEY_REQUEST_ID = "request_id"
WS_KEY_PAYLOAD = "payload"

# Close codes
WS_CLOSE_CLIENT_REQUEST_CODE = 1000
WS_CLOSE_IDLE_CODE = 4000
WS_CLOSE_BUSY_CODE = 4002
WS_CLOSE_ORIGIN_CODE = 4003

WS_CLOSE_IDLE_REASON = "idle timeout"

# Idle watchdog
_WS_IDLE_TIMEOUT_S_RAW = (os.getenv("WS_IDLE_TIMEOUT_S") or "").strip()
try:
    WS_IDLE_TIMEOUT_S: float = float(_WS_IDLE_TIMEOUT_S_RAW) if _WS_IDLE_TIMEOUT_S_RAW else 900.0
except Exception:
    WS_IDLE_TIMEOUT_S = 900.0

_WS_WATCHDOG_TICK_S_RAW = (os.getenv("WS_WATCHDOG_TICK_S") or "").strip()
try:
    WS_WATCHDOG_TICK_S: float = float(_WS_WATCHDOG_TICK_S_RAW) if _WS_WATCHDOG_TICK_S_RAW else 5.0
except Exception:
    WS_WATCHDOG_TICK_S = 5.0
if WS_WATCHDOG_TICK_S <= 0:
    WS_WATCHDOG_TICK_S = 5.0

# Browser origins allowed to open the client socket ("*" allows any).
ALLOWED_ORIGINS: tuple[str, ...] = tuple(
    origin.strip().rstrip("/")
    for origin in (os.getenv("ALLOWED_ORIGINS") or os.getenv("CLIENT_URL") or "http://localhost:5173").split(",")
    if origin.strip()
)

# Errors (payload.code values) raised by the transport itself.
WS_ERROR_ORIGIN_NOT_ALLOWED = "origin_not_allowed"
WS_ERROR_SERVER_AT_CAPACITY = "server_at_capacity"
WS_ERROR_INVALID_MESSAGE = "invalid_message"
WS_ERROR_RATE_LIMITED = "rate_limited"
WS_ERROR_INTERNAL = "internal_error"

# Server-to-client event types
EVENT_SOCKET_CONNECTED = "socket-connected"
EVENT_REALTIME = "realtime-event"
EVENT_AUDIO_STREAM = "audio-stream"
EVENT_SESSION_DISCONNECTED = "session-disconnected"
EVENT_SESSION_CLOSED = "session-closed"

__all__ = [
    "ALLOWED_ORIGINS",
    "EVENT_AUDIO_STREAM",
    "EVENT_REALTIME",
    "EVENT_SESSION_CLOSED",
    "EVENT_SESSION_DISCONNECTED",
    "EVENT_SOCKET_CONNECTED",
    "WS_CLOSE_BUSY_CODE",
    "WS_CLOSE_CLIENT_REQUEST_CODE",
    "WS_CLOSE_IDLE_CODE",
    "WS_CLOSE_IDLE_REASON",
    "WS_CLOSE_ORIGIN_CODE",
    "WS_ENDPOINT_PATH",
    "WS_ERROR_INTERNAL",
    "WS_ERROR_INVALID_MESSAGE",
    "WS_ERROR_ORIGIN_NOT_ALLOWED",
    "WS_ERROR_RATE_LIMITED",
    "WS_ERROR_SERVER_AT_CAPACITY",
    "WS_IDLE_TIMEOUT_S",
    "WS_KEY_PAYLOAD",
    "WS_KEY_REQUEST_ID",
    "WS_KEY_SESSION_ID",
    "WS_KEY_TYPE",
    "WS_WATCHDOG_TICK_S",
]
