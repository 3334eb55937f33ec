"""Per-session outbound channel toward whichever client currently owns the session."""

from __future__ import annotations

import asyncio
import logging
from typing import Any
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class OutboundEvent:
    msg_type: str
    payload: dict[str, Any]


class SessionOutbox:
    """Bounded FIFO of client-bound events.

    Producers never block: when the client falls behind, the oldest event is
    dropped. ``close()`` enqueues a sentinel so the drain loop exits after
    delivering everything published before it.
    """

    def __init__(self, session_id: str, *, maxsize: int) -> None:
        self._session_id = session_id
        self._queue: asyncio.Queue[OutboundEvent | None] = asyncio.Queue(maxsize=max(1, int(maxsize)))
        self._closed = False
        self.dropped = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def publish(self, msg_type: str, payload: dict[str, Any]) -> bool:
        if self._closed:
            return False
        event = OutboundEvent(msg_type, payload)
        while True:
            try:
                self._queue.put_nowait(event)
                return True
            except asyncio.QueueFull:
                oldest = self._queue.get_nowait()
                self.dropped += 1
                if self.dropped == 1 or self.dropped % 100 == 0:
                    logger.warning(
                        "outbox full session_id=%s; dropped %s event(s), oldest type=%s",
                        self._session_id,
                        self.dropped,
                        oldest.msg_type if oldest is not None else None,
                    )

    async def get(self) -> OutboundEvent | None:
        return await self._queue.get()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        while True:
            try:
                self._queue.put_nowait(None)
                return
            except asyncio.QueueFull:
                self._queue.get_nowait()
                self.dropped += 1

    def __len__(self) -> int:
        return self._queue.qsize()


__all__ = ["OutboundEvent", "SessionOutbox"]
