"""Client handle backed by one accepted FastAPI WebSocket."""

from __future__ import annotations

import uuid
import asyncio
from typing import Any
from collections.abc import Callable

from fastapi import WebSocket

from .errors import ERROR_EVENT, safe_send_envelope, build_error_payload


class WebSocketClient:
    """Serializes outbound frames from the message loop and session pumps."""

    def __init__(
        self,
        ws: WebSocket,
        *,
        client_id: str | None = None,
        on_send: Callable[[], None] | None = None,
    ) -> None:
        self.client_id = client_id or uuid.uuid4().hex
        self._ws = ws
        self._on_send = on_send
        self._send_lock = asyncio.Lock()

    async def send(
        self,
        msg_type: str,
        payload: dict[str, Any],
        *,
        session_id: str | None = None,
        request_id: str | None = None,
    ) -> bool:
        async with self._send_lock:
            ok = await safe_send_envelope(
                self._ws,
                msg_type=msg_type,
                session_id=session_id,
                request_id=request_id,
                payload=payload,
            )
        if ok and self._on_send is not None:
            self._on_send()
        return ok

    async def send_error(
        self,
        *,
        session_id: str | None,
        request_id: str | None,
        error_code: str,
        message: str,
        reason_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> bool:
        return await self.send(
            ERROR_EVENT,
            build_error_payload(error_code, message, details=details, reason_code=reason_code),
            session_id=session_id,
            request_id=request_id,
        )


__all__ = ["WebSocketClient"]
