"""Browser origin checks for the client WebSocket."""

from __future__ import annotations

from collections.abc import Iterable

from fastapi import WebSocket


def get_origin(ws: WebSocket) -> str:
    return (ws.headers.get("origin") or "").strip().rstrip("/")


def validate_origin(origin: str, allowed_origins: Iterable[str]) -> bool:
    # Non-browser clients send no Origin header.
    if not origin:
        return True
    allowed = set(allowed_origins)
    if "*" in allowed:
        return True
    return origin in allowed


async def authorize_websocket(ws: WebSocket, *, allowed_origins: Iterable[str]) -> bool:
    return validate_origin(get_origin(ws), allowed_origins)


__all__ = ["authorize_websocket", "get_origin", "validate_origin"]
