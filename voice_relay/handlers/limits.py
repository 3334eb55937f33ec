"""Sliding-window rate limiter for per-connection request budgets."""

from __future__ import annotations

import time
import collections
from collections.abc import Callable

from voice_relay.errors import RateLimitError

TimeFn = Callable[[], float]


class SlidingWindowRateLimiter:
    """Count events over a rolling window; ``consume`` raises once the window is full.

    A limit or window of zero disables the limiter.
    """

    def __init__(
        self,
        *,
        limit: int,
        window_seconds: float,
        now_fn: TimeFn | None = None,
    ) -> None:
        self.limit = max(0, int(limit))
        self.window_seconds = max(0.0, float(window_seconds))
        self._now = now_fn or time.monotonic
        self._events: collections.deque[float] = collections.deque()
        self._enabled = self.limit > 0 and self.window_seconds > 0

    @property
    def enabled(self) -> bool:
        return self._enabled

    def remaining(self) -> int:
        if not self._enabled:
            return -1
        self._evict(self._now())
        return max(0, self.limit - len(self._events))

    def _evict(self, now: float) -> None:
        cutoff = now - self.window_seconds
        events = self._events
        while events and events[0] <= cutoff:
            events.popleft()

    def consume(self) -> None:
        if not self._enabled:
            return
        now = self._now()
        self._evict(now)
        if len(self._events) >= self.limit:
            raise RateLimitError(
                retry_in=max(0.0, (self._events[0] + self.window_seconds) - now),
                limit=self.limit,
                window_seconds=self.window_seconds,
            )
        self._events.append(now)


__all__ = ["RateLimitError", "SlidingWindowRateLimiter"]
