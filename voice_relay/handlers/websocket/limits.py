"""Rate limiting for client WebSocket messages."""

from __future__ import annotations

import math
from typing import Any

from voice_relay.errors import RateLimitError
from voice_relay.config.websocket import WS_ERROR_RATE_LIMITED
from voice_relay.handlers.limits import SlidingWindowRateLimiter

from .client import WebSocketClient

_UNLIMITED_TYPES = frozenset({"ping", "health-check"})
_CONNECT_TYPES = frozenset({"start-session", "connect-session"})


def select_rate_limiter(
    msg_type: str,
    message_limiter: SlidingWindowRateLimiter,
    connect_limiter: SlidingWindowRateLimiter,
) -> tuple[SlidingWindowRateLimiter | None, str]:
    if msg_type in _UNLIMITED_TYPES:
        return None, ""
    if msg_type in _CONNECT_TYPES:
        return connect_limiter, "connect"
    return message_limiter, "message"


async def consume_limiter(
    client: WebSocketClient,
    limiter: SlidingWindowRateLimiter,
    label: str,
    *,
    session_id: str | None,
    request_id: str | None,
) -> bool:
    try:
        limiter.consume()
    except RateLimitError as exc:
        retry_in_s = int(max(1, math.ceil(float(exc.retry_in)))) if exc.retry_in else 1
        details: dict[str, Any] = {
            "retry_in": retry_in_s,
            "limit": limiter.limit,
            "window_seconds": int(limiter.window_seconds),
            "kind": label,
        }
        await client.send_error(
            session_id=session_id,
            request_id=request_id,
            error_code=WS_ERROR_RATE_LIMITED,
            message=(
                f"{label} rate limit: at most {limiter.limit} per {int(limiter.window_seconds)} seconds; "
                f"retry in {retry_in_s} seconds"
            ),
            reason_code=f"{label}_rate_limited",
            details=details,
        )
        return False
    return True


__all__ = ["consume_limiter", "select_rate_limiter"]
