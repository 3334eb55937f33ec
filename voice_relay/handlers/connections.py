"""Client socket admission control."""

from __future__ import annotations

import asyncio
from typing import Any


class ConnectionManager:
    def __init__(self, *, max_connections: int) -> None:
        self._max = max(1, int(max_connections))
        self._lock = asyncio.Lock()
        self._active: set[int] = set()

    @property
    def max_connections(self) -> int:
        return self._max

    async def connect(self, ws: Any) -> bool:
        """Reserve a slot for a client socket (before it is accepted)."""
        key = id(ws)
        async with self._lock:
            if key in self._active:
                return True
            if len(self._active) >= self._max:
                return False
            self._active.add(key)
            return True

    async def disconnect(self, ws: Any) -> None:
        async with self._lock:
            self._active.discard(id(ws))

    def get_connection_count(self) -> int:
        return len(self._active)


__all__ = ["ConnectionManager"]
