"""Session lifecycle: created -> connecting -> connected -> disconnected."""

from __future__ import annotations

import logging
from typing import Any
from functools import partial

from voice_relay.errors import ConnectFailedError
from voice_relay.state.session import Session, SessionState
from voice_relay.upstream.link import UpstreamLink, UpstreamConnector
from voice_relay.upstream.protocol import RESPONSE_CREATE, INPUT_AUDIO_CLEAR, INPUT_AUDIO_COMMIT, build_event
from voice_relay.config.websocket import EVENT_REALTIME, EVENT_AUDIO_STREAM, EVENT_SESSION_DISCONNECTED

from .events import (
    RESPONSE_DONE,
    RESPONSE_CREATED,
    classify_event,
    extract_audio_delta,
    extract_response_id,
    upstream_error_from_event,
)

logger = logging.getLogger(__name__)


class SessionMachine:
    """Drives sessions through their lifecycle and relays traffic both ways.

    Connect attempts for one session are serialized by ``session.connect_lock``;
    holding that lock is what ``session.connecting_guard`` reports, and the
    ``async with`` releases it on every exit path (success, failure, timeout,
    cancellation). ``close`` never waits for the lock: it bumps ``session.epoch``
    so an in-flight connect discards the socket it opens.
    """

    def __init__(self, connector: UpstreamConnector) -> None:
        self._connector = connector

    @property
    def upstream_configured(self) -> bool:
        return self._connector.configured

    @staticmethod
    def _is_live(session: Session) -> bool:
        return session.state is SessionState.CONNECTED and session.link is not None and session.link.is_open

    async def start_connect(self, session: Session, initial_prompt: str | None = None) -> bool:
        if self._is_live(session):
            return True

        async with session.connect_lock:
            if session.closed:
                session.last_error = "session is closed"
                return False
            if self._is_live(session):
                return True
            if initial_prompt:
                session.instructions = initial_prompt

            epoch = session.epoch
            session.state = SessionState.CONNECTING
            session.last_error = None
            connected = False
            try:
                await self._close_link(session)
                link = await self._connector.connect(
                    session.session_id,
                    session.config,
                    session.instructions,
                    on_event=partial(self._on_link_event, session),
                    on_close=partial(self._on_link_closed, session),
                )
                if session.epoch != epoch:
                    logger.info("session closed during connect; discarding upstream session_id=%s", session.session_id)
                    session.last_error = "session was closed while connecting"
                    await link.close()
                    return False
                if not link.is_open:
                    session.last_error = "upstream closed during connect"
                    await link.close()
                    return False
                session.link = link
                session.state = SessionState.CONNECTED
                session.touch()
                connected = True
                logger.info("session connected session_id=%s", session.session_id)
                return True
            except ConnectFailedError as exc:
                session.last_error = exc.message
                logger.warning("session connect failed session_id=%s: %s", session.session_id, exc.message)
                return False
            finally:
                if not connected and session.state is SessionState.CONNECTING:
                    session.state = SessionState.DISCONNECTED

    async def relay_client_audio(self, session: Session, chunk: bytes, is_final: bool = False) -> bool:
        link = session.link
        if link is None or session.state is not SessionState.CONNECTED:
            return False
        if not await link.send_audio_frame(chunk):
            return False
        session.touch()
        if is_final and session.config.is_manual:
            # Manual turn detection: the relay marks the end of the utterance.
            if not await link.send(build_event(INPUT_AUDIO_COMMIT)):
                return False
            if not await link.send(build_event(RESPONSE_CREATE)):
                return False
        return True

    async def commit_buffer(self, session: Session) -> bool:
        return await self._send_control(session, INPUT_AUDIO_COMMIT)

    async def create_response(self, session: Session) -> bool:
        return await self._send_control(session, RESPONSE_CREATE)

    async def clear_buffer(self, session: Session) -> bool:
        return await self._send_control(session, INPUT_AUDIO_CLEAR)

    async def _send_control(self, session: Session, event_type: str) -> bool:
        link = session.link
        if link is None:
            return False
        ok = await link.send(build_event(event_type))
        if ok:
            session.touch()
        return ok

    async def relay_upstream_event(self, session: Session, event: dict[str, Any]) -> None:
        event_type = event.get("type")
        if not isinstance(event_type, str):
            return
        session.touch()
        kind = classify_event(event_type)

        if kind == "response":
            if event_type == RESPONSE_CREATED:
                session.pending_response_id = extract_response_id(event)
            elif event_type == RESPONSE_DONE:
                done_id = extract_response_id(event)
                if done_id is None or done_id == session.pending_response_id:
                    session.pending_response_id = None
        elif kind == "error":
            error = upstream_error_from_event(event)
            session.last_error = error.message
            logger.warning(
                "upstream error session_id=%s code=%s: %s",
                session.session_id,
                error.details.get("upstreamCode"),
                error.message,
            )
            # Clients would otherwise show "processing" forever.
            session.pending_response_id = None

        session.outbox.publish(EVENT_REALTIME, event)

        if kind == "audio_delta":
            audio = extract_audio_delta(event)
            if audio:
                session.outbox.publish(EVENT_AUDIO_STREAM, {"audio": audio, "sessionId": session.session_id})

    async def close(self, session: Session) -> None:
        # State is settled before awaiting so a later connect cannot be overwritten.
        session.epoch += 1
        session.state = SessionState.DISCONNECTED
        session.pending_response_id = None
        await self._close_link(session)

    async def _close_link(self, session: Session) -> None:
        link = session.link
        session.link = None
        if link is not None:
            await link.close()

    async def _on_link_event(self, session: Session, link: UpstreamLink, event: dict[str, Any]) -> None:
        # Events from a replaced link are stale; during connect session.link is still unset.
        if session.link is not None and session.link is not link:
            return
        await self.relay_upstream_event(session, event)

    async def _on_link_closed(self, session: Session, link: UpstreamLink, code: int | None, reason: str) -> None:
        if session.link is not link:
            return
        session.link = None
        session.pending_response_id = None
        if session.state is SessionState.CONNECTED:
            session.state = SessionState.DISCONNECTED
        logger.info("session upstream dropped session_id=%s code=%s", session.session_id, code)
        session.outbox.publish(
            EVENT_SESSION_DISCONNECTED,
            {"sessionId": session.session_id, "code": code, "reason": reason},
        )


__all__ = ["SessionMachine"]
