"""Typed runtime state objects for dependency wiring."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from voice_relay.sessions.reaper import IdleReaper
    from voice_relay.state.settings import AppSettings
    from voice_relay.sessions.gateway import RelayGateway
    from voice_relay.handlers.connections import ConnectionManager


@dataclass(slots=True)
class RuntimeDeps:
    connections: ConnectionManager
    gateway: RelayGateway
    reaper: IdleReaper
    settings: AppSettings

    async def shutdown(self) -> None:
        try:
            await self.reaper.stop()
        except Exception:
            logger.exception("reaper shutdown failed")
        try:
            await self.gateway.shutdown()
        except Exception:
            logger.exception("gateway shutdown failed")


__all__ = ["RuntimeDeps"]
