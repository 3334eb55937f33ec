"""Inbound-facing session operations: ownership, existence checks, and client fan-in."""

from __future__ import annotations

import time
import asyncio
import logging
import contextlib
from typing import Any

from voice_relay.state.client import ClientHandle
from voice_relay.state.session import Session
from voice_relay.state.settings import SessionSettings
from voice_relay.config.websocket import EVENT_SESSION_CLOSED
from voice_relay.errors import (
    SendFailedError,
    UnauthorizedError,
    ConnectFailedError,
    SessionNotFoundError,
)

from .machine import SessionMachine
from .registry import SessionRegistry
from .payloads import optional_str, decode_audio_payload, parse_session_config

logger = logging.getLogger(__name__)

_PUMP_DRAIN_TIMEOUT_S = 2.0


class RelayGateway:
    """Maps client connections to sessions.

    Ownership policy: a session is driven by at most one client at a time. A
    session whose client disconnected is detached (``client is None``) and is
    claimed by the next client that uses it. A session attached to another
    live client raises ``UnauthorizedError``.

    Every session has one pump task draining its outbox toward whichever
    client currently owns it, so events never hold a reference to a stale
    socket.
    """

    def __init__(self, registry: SessionRegistry, machine: SessionMachine, settings: SessionSettings) -> None:
        self._registry = registry
        self._machine = machine
        self._settings = settings
        self._pumps: dict[str, asyncio.Task] = {}

    @property
    def registry(self) -> SessionRegistry:
        return self._registry

    # ---- ownership helpers ----

    def _claim(self, session: Session, client: ClientHandle) -> None:
        if session.client is None:
            session.client = client
            logger.info("session claimed session_id=%s client_id=%s", session.session_id, client.client_id)
        elif session.client.client_id != client.client_id:
            raise UnauthorizedError(
                "Unauthorized: session belongs to another connection",
                details={"sessionId": session.session_id},
            )

    def _require(self, client: ClientHandle, session_id: str | None) -> Session:
        session = self._registry.get(session_id)
        if session is None:
            raise SessionNotFoundError(f"Session not found: {session_id}", details={"sessionId": session_id})
        self._claim(session, client)
        return session

    def _create(self, client: ClientHandle, session_id: str | None, payload: dict[str, Any]) -> Session:
        config = parse_session_config(payload, default_voice=self._settings.default_voice)
        instructions = optional_str(payload, "initialPrompt") or self._settings.default_instructions
        session = self._registry.create(session_id, config, instructions=instructions, client=client)
        self._ensure_pump(session)
        return session

    # ---- operations ----

    async def create_session(
        self,
        client: ClientHandle,
        session_id: str | None,
        payload: dict[str, Any],
    ) -> dict[str, Any]:
        existing = self._registry.get(session_id)
        if existing is not None:
            self._claim(existing, client)
            prompt = optional_str(payload, "initialPrompt")
            if prompt:
                existing.instructions = prompt
            existing.touch()
            self._ensure_pump(existing)
            return {"success": True, "sessionId": existing.session_id, "reused": True}

        session = self._create(client, session_id, payload)
        return {"success": True, "sessionId": session.session_id}

    async def connect_session(
        self,
        client: ClientHandle,
        session_id: str | None,
        payload: dict[str, Any],
    ) -> dict[str, Any]:
        session = self._registry.get(session_id)
        if session is None:
            logger.info("connect on unknown session; creating session_id=%s", session_id)
            session = self._create(client, session_id, payload)
        else:
            self._claim(session, client)
            self._ensure_pump(session)

        if not await self._machine.start_connect(session, optional_str(payload, "initialPrompt")):
            raise ConnectFailedError(
                session.last_error or "Failed to connect to the realtime API",
                details={"sessionId": session.session_id, "state": session.state.value},
            )
        if session.closed or self._registry.get(session.session_id) is not session:
            # Torn down while connecting: the new upstream has no owner left.
            await self._machine.close(session)
            raise ConnectFailedError(
                "Session was closed while connecting",
                details={"sessionId": session.session_id, "state": session.state.value},
            )
        return {"success": True, "sessionId": session.session_id}

    async def relay_audio(self, client: ClientHandle, session_id: str | None, payload: dict[str, Any]) -> None:
        session = self._require(client, session_id)
        chunk = decode_audio_payload(payload.get("audioData"))
        session.touch()
        if not await self._machine.relay_client_audio(session, chunk, bool(payload.get("isFinal", False))):
            raise SendFailedError(
                "Failed to send audio: upstream is not connected",
                details={"sessionId": session.session_id, "state": session.state.value},
            )

    async def end_session(self, client: ClientHandle, session_id: str | None) -> dict[str, Any]:
        session = self._registry.get(session_id)
        if session is None:
            return {"success": True, "sessionId": session_id}
        if session.client is not None and not session.is_owned_by(client.client_id):
            raise UnauthorizedError(
                "Unauthorized: session belongs to another connection",
                details={"sessionId": session.session_id},
            )
        await self.teardown(session, reason="ended")
        return {"success": True, "sessionId": session.session_id}

    async def commit_buffer(self, client: ClientHandle, session_id: str | None) -> dict[str, Any]:
        session = self._require(client, session_id)
        if not await self._machine.commit_buffer(session):
            raise SendFailedError("Failed to commit audio buffer", details={"sessionId": session.session_id})
        return {"success": True, "sessionId": session.session_id}

    async def create_response(self, client: ClientHandle, session_id: str | None) -> dict[str, Any]:
        session = self._require(client, session_id)
        if not await self._machine.create_response(session):
            raise SendFailedError("Failed to request a response", details={"sessionId": session.session_id})
        return {"success": True, "sessionId": session.session_id}

    async def clear_buffer(self, client: ClientHandle, session_id: str | None) -> dict[str, Any]:
        session = self._require(client, session_id)
        if not await self._machine.clear_buffer(session):
            raise SendFailedError("Failed to clear audio buffer", details={"sessionId": session.session_id})
        return {"success": True, "sessionId": session.session_id}

    def get_session_status(self, client: ClientHandle, session_id: str | None) -> dict[str, Any]:
        session = self._registry.get(session_id)
        if session is None:
            return {"exists": False, "sessionId": session_id}
        now = time.monotonic()
        link = session.link
        return {
            "exists": True,
            "sessionId": session.session_id,
            "state": session.state.value,
            "ownerMatch": session.is_owned_by(client.client_id),
            "connecting": session.connecting_guard,
            "hasUpstream": link is not None and link.is_open,
            "pendingResponseId": session.pending_response_id,
            "voice": session.config.voice,
            "turnDetection": session.config.turn_detection,
            "idleSeconds": round(max(0.0, now - session.last_activity_at), 3),
            "ageSeconds": round(max(0.0, now - session.created_at), 3),
            "lastError": session.last_error,
        }

    def health(self) -> dict[str, Any]:
        return {
            "status": "healthy",
            "activeSessions": len(self._registry),
            "upstreamConfigured": self._machine.upstream_configured,
        }

    def has_active_response(self, client_id: str) -> bool:
        return any(s.pending_response_id for s in self._registry.owned_by(client_id))

    def detach_client(self, client: ClientHandle) -> list[str]:
        """Release a disconnected client's sessions; they stay live for reconnection."""
        detached: list[str] = []
        for session in self._registry.owned_by(client.client_id):
            session.client = None
            detached.append(session.session_id)
        if detached:
            logger.info("client detached client_id=%s sessions=%s", client.client_id, detached)
        return detached

    async def teardown(self, session: Session, reason: str) -> None:
        """Close the upstream link, notify the owner, then remove the session."""
        if session.closed:
            return
        session.closed = True
        await self._machine.close(session)
        session.outbox.publish(EVENT_SESSION_CLOSED, {"sessionId": session.session_id, "reason": reason})
        session.outbox.close()
        if self._registry.get(session.session_id) is session:
            self._registry.remove(session.session_id)
        self._pumps.pop(session.session_id, None)
        logger.info("session closed session_id=%s reason=%s", session.session_id, reason)

    async def shutdown(self) -> None:
        pumps = list(self._pumps.values())
        for session in self._registry:
            try:
                await self.teardown(session, reason="shutdown")
            except Exception:
                logger.exception("session teardown failed session_id=%s", session.session_id)
        pumps.extend(self._pumps.values())
        self._pumps.clear()
        if not pumps:
            return
        _done, pending = await asyncio.wait(pumps, timeout=_PUMP_DRAIN_TIMEOUT_S)
        for task in pending:
            task.cancel()
            with contextlib.suppress(BaseException):
                await task

    # ---- outbox pump ----

    def _ensure_pump(self, session: Session) -> None:
        if session.closed:
            return
        task = self._pumps.get(session.session_id)
        if task is not None and not task.done():
            return
        self._pumps[session.session_id] = asyncio.create_task(
            self._pump(session),
            name=f"session-pump-{session.session_id}",
        )

    async def _pump(self, session: Session) -> None:
        outbox = session.outbox
        while True:
            event = await outbox.get()
            if event is None:
                return
            client = session.client
            if client is None:
                # Detached: nobody to deliver to.
                continue
            try:
                await client.send(event.msg_type, event.payload, session_id=session.session_id)
            except Exception:
                logger.exception("client delivery failed session_id=%s type=%s", session.session_id, event.msg_type)


__all__ = ["RelayGateway"]
