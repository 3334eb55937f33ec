"""Periodic sweep that closes sessions with no recent traffic."""

from __future__ import annotations

import time
import asyncio
import logging
import contextlib
from collections.abc import Callable, Awaitable

from voice_relay.state.session import Session

from .registry import SessionRegistry

logger = logging.getLogger(__name__)

CloseFn = Callable[[Session], Awaitable[None]]
TimeFn = Callable[[], float]


class IdleReaper:
    def __init__(
        self,
        registry: SessionRegistry,
        close_fn: CloseFn,
        *,
        idle_timeout_s: float,
        interval_s: float,
        grace_period_s: float,
        now_fn: TimeFn | None = None,
    ) -> None:
        self._registry = registry
        self._close_fn = close_fn
        self._idle_timeout_s = float(idle_timeout_s)
        self._interval_s = float(interval_s)
        self._grace_period_s = float(grace_period_s)
        self._now = now_fn or time.monotonic
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task | None = None

    def is_reapable(self, session: Session, now: float) -> bool:
        if session.closed or session.connecting_guard:
            return False
        if now - session.created_at <= self._grace_period_s:
            return False
        limit = self._idle_timeout_s
        # An unfinished response on an open link gets one extra idle window, then counts as stale.
        if session.pending_response_id and session.link is not None and session.link.is_open:
            limit += self._idle_timeout_s
        return now - session.last_activity_at > limit

    async def sweep(self) -> list[str]:
        reaped: list[str] = []
        for session in self._registry:
            # Re-checked per session: an earlier close may have yielded to other tasks.
            if self._registry.get(session.session_id) is not session:
                continue
            if not self.is_reapable(session, self._now()):
                continue
            idle_s = self._now() - session.last_activity_at
            logger.info("reaping idle session session_id=%s idle=%.0fs", session.session_id, idle_s)
            try:
                await self._close_fn(session)
            except Exception:
                logger.exception("failed to reap session session_id=%s", session.session_id)
                continue
            reaped.append(session.session_id)
        if reaped:
            logger.info("reaper closed %s session(s); %s remain", len(reaped), len(self._registry))
        return reaped

    def start(self) -> asyncio.Task:
        if self._task is None:
            self._stop_event.clear()
            self._task = asyncio.create_task(self._loop(), name="session-reaper")
        return self._task

    async def stop(self) -> None:
        self._stop_event.set()
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(BaseException):
            await self._task
        self._task = None

    async def _loop(self) -> None:
        try:
            while not self._stop_event.is_set():
                await asyncio.sleep(self._interval_s)
                if self._stop_event.is_set():
                    break
                try:
                    await self.sweep()
                except Exception:
                    logger.exception("reaper sweep failed")
        except asyncio.CancelledError:
            return


__all__ = ["IdleReaper"]
