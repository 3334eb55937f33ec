"""Outbound socket to the realtime provider, exclusively owned by one session."""

from __future__ import annotations

import asyncio
import logging
import contextlib
from typing import Any
from collections.abc import Callable, Awaitable

import orjson
import websockets
from websockets.protocol import State
from websockets.exceptions import ConnectionClosed

from voice_relay.errors import ConnectFailedError
from voice_relay.state.session import SessionConfig
from voice_relay.state.settings import UpstreamSettings

from .protocol import build_audio_append, build_session_update, build_upstream_url, build_upstream_headers

logger = logging.getLogger(__name__)

EventHandler = Callable[["UpstreamLink", dict[str, Any]], Awaitable[None]]
CloseHandler = Callable[["UpstreamLink", "int | None", str], Awaitable[None]]
ConnectFn = Callable[..., Awaitable[Any]]


class UpstreamLink:
    """One provider socket plus its reader task.

    The reader is started before the first outbound frame so early provider
    events (``session.created``) are never dropped. A locally requested close
    is silent; a remote close or socket failure is reported once through
    ``on_close``.
    """

    def __init__(
        self,
        ws: Any,
        *,
        session_id: str,
        on_event: EventHandler,
        on_close: CloseHandler,
        debug: bool = False,
    ) -> None:
        self._ws = ws
        self.session_id = session_id
        self._on_event = on_event
        self._on_close = on_close
        self._debug = debug
        self._send_lock = asyncio.Lock()
        self._reader: asyncio.Task | None = None
        self._closed = False

    @property
    def is_open(self) -> bool:
        return not self._closed and getattr(self._ws, "state", None) is State.OPEN

    def start(self) -> asyncio.Task:
        if self._reader is None:
            self._reader = asyncio.create_task(self._read_loop())
        return self._reader

    async def send(self, event: dict[str, Any]) -> bool:
        event_type = event.get("type")
        if not self.is_open:
            logger.debug("upstream send skipped session_id=%s type=%s: link not open", self.session_id, event_type)
            return False
        data = orjson.dumps(event).decode("utf-8")
        try:
            # Frames from concurrent callers must not interleave mid-sequence.
            async with self._send_lock:
                await self._ws.send(data)
        except ConnectionClosed:
            logger.info("upstream send on closed socket session_id=%s type=%s", self.session_id, event_type)
            return False
        except Exception:
            logger.warning("upstream send failed session_id=%s type=%s", self.session_id, event_type, exc_info=True)
            return False
        if self._debug and event_type != "input_audio_buffer.append":
            logger.debug("upstream <- %s session_id=%s", event_type, self.session_id)
        return True

    async def send_audio_frame(self, chunk: bytes) -> bool:
        if not chunk:
            return False
        return await self.send(build_audio_append(chunk))

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        with contextlib.suppress(Exception):
            await self._ws.close()
        reader = self._reader
        if reader is not None and reader is not asyncio.current_task() and not reader.done():
            reader.cancel()
            # A reader cancelled before its first step raises CancelledError when awaited.
            await asyncio.gather(reader, return_exceptions=True)

    def _decode(self, raw: str | bytes) -> dict[str, Any] | None:
        try:
            event = orjson.loads(raw)
        except Exception:
            logger.warning("discarding non-JSON upstream frame session_id=%s", self.session_id)
            return None
        if not isinstance(event, dict) or not isinstance(event.get("type"), str):
            logger.warning("discarding malformed upstream event session_id=%s", self.session_id)
            return None
        return event

    async def _read_loop(self) -> None:
        try:
            async for raw in self._ws:
                event = self._decode(raw)
                if event is None:
                    continue
                if self._debug and event["type"] != "response.audio.delta":
                    logger.debug("upstream -> %s session_id=%s", event["type"], self.session_id)
                try:
                    await self._on_event(self, event)
                except Exception:
                    logger.exception("upstream event handler failed session_id=%s", self.session_id)
        except asyncio.CancelledError:
            return
        except ConnectionClosed:
            pass
        except Exception:
            logger.warning("upstream reader failed session_id=%s", self.session_id, exc_info=True)

        if self._closed:
            return
        self._closed = True
        code = getattr(self._ws, "close_code", None)
        reason = getattr(self._ws, "close_reason", None) or ""
        logger.info("upstream closed session_id=%s code=%s reason=%s", self.session_id, code, reason)
        with contextlib.suppress(Exception):
            await self._ws.close()
        try:
            await self._on_close(self, code, reason)
        except Exception:
            logger.exception("upstream close handler failed session_id=%s", self.session_id)


class UpstreamConnector:
    """Opens provider sockets configured for one session."""

    def __init__(self, settings: UpstreamSettings, *, connect_fn: ConnectFn | None = None) -> None:
        self._settings = settings
        self._connect_fn = connect_fn or websockets.connect

    @property
    def configured(self) -> bool:
        return bool(self._settings.api_key)

    async def connect(
        self,
        session_id: str,
        config: SessionConfig,
        instructions: str,
        *,
        on_event: EventHandler,
        on_close: CloseHandler,
    ) -> UpstreamLink:
        if not self.configured:
            raise ConnectFailedError("upstream API key is not configured")

        url = build_upstream_url(self._settings.url, self._settings.model)
        timeout_s = self._settings.connect_timeout_s
        logger.info("upstream connecting session_id=%s model=%s", session_id, self._settings.model)
        try:
            ws = await asyncio.wait_for(
                self._connect_fn(
                    url,
                    additional_headers=build_upstream_headers(self._settings.api_key, self._settings.beta_header),
                    max_size=self._settings.max_message_bytes,
                    open_timeout=None,
                ),
                timeout=timeout_s,
            )
        except TimeoutError:
            logger.warning("upstream connect timed out session_id=%s after %.1fs", session_id, timeout_s)
            raise ConnectFailedError(f"upstream connect timed out after {timeout_s:g}s") from None
        except Exception as exc:
            logger.warning("upstream connect failed session_id=%s: %s", session_id, exc)
            raise ConnectFailedError(f"upstream connect failed: {exc}") from exc

        link = UpstreamLink(
            ws,
            session_id=session_id,
            on_event=on_event,
            on_close=on_close,
            debug=self._settings.debug,
        )
        link.start()
        if not await link.send(build_session_update(config, instructions)):
            await link.close()
            raise ConnectFailedError("upstream closed before the session could be configured")
        logger.info("upstream connected session_id=%s voice=%s", session_id, config.voice)
        return link


__all__ = ["UpstreamConnector", "UpstreamLink"]
