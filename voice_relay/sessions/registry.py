"""In-memory registry of live sessions keyed by session id."""

from __future__ import annotations

import time
import uuid
import logging
from collections.abc import Callable, Iterator

from voice_relay.errors import SessionExistsError
from voice_relay.state.client import ClientHandle
from voice_relay.state.session import Session, SessionConfig

from .outbox import SessionOutbox

logger = logging.getLogger(__name__)

TimeFn = Callable[[], float]


class SessionRegistry:
    """Single source of truth for session existence.

    Mutations are plain dict operations with no await in between, so they are
    atomic with respect to the event loop. The registry never closes resources:
    callers close the upstream link before calling ``remove``.
    """

    def __init__(self, *, outbox_max: int = 1024, now_fn: TimeFn | None = None) -> None:
        self._sessions: dict[str, Session] = {}
        self._outbox_max = outbox_max
        self._now = now_fn or time.monotonic

    def create(
        self,
        session_id: str | None,
        config: SessionConfig,
        *,
        instructions: str = "",
        client: ClientHandle | None = None,
    ) -> Session:
        sid = session_id or str(uuid.uuid4())
        if sid in self._sessions:
            raise SessionExistsError(f"Session already exists: {sid}", details={"sessionId": sid})
        now = self._now()
        session = Session(
            session_id=sid,
            config=config,
            outbox=SessionOutbox(sid, maxsize=self._outbox_max),
            instructions=instructions,
            client=client,
            created_at=now,
            last_activity_at=now,
        )
        self._sessions[sid] = session
        logger.info("session created session_id=%s client_id=%s", sid, session.client_id)
        return session

    def get(self, session_id: str | None) -> Session | None:
        if not session_id:
            return None
        return self._sessions.get(session_id)

    def remove(self, session_id: str) -> Session | None:
        session = self._sessions.pop(session_id, None)
        if session is not None:
            logger.info("session removed session_id=%s", session_id)
        return session

    def list_ids(self) -> list[str]:
        return list(self._sessions)

    def owned_by(self, client_id: str) -> list[Session]:
        return [s for s in self._sessions.values() if s.is_owned_by(client_id)]

    def __len__(self) -> int:
        return len(self._sessions)

    def __iter__(self) -> Iterator[Session]:
        return iter(list(self._sessions.values()))

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions


__all__ = ["SessionRegistry"]
