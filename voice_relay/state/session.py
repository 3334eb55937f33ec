"""Per-session records shared by the registry, state machine, and gateway."""

from __future__ import annotations

import time
import asyncio
from enum import Enum
from typing import TYPE_CHECKING, Literal
from dataclasses import field, dataclass

from voice_relay.config.session import DEFAULT_VOICE, DEFAULT_MODALITIES, DEFAULT_AUDIO_FORMAT

if TYPE_CHECKING:
    from voice_relay.state.client import ClientHandle
    from voice_relay.upstream.link import UpstreamLink
    from voice_relay.sessions.outbox import SessionOutbox

TurnDetectionMode = Literal["server_vad", "manual"]


class SessionState(str, Enum):
    CREATED = "created"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


@dataclass(frozen=True, slots=True)
class SessionConfig:
    voice: str = DEFAULT_VOICE
    modalities: tuple[str, ...] = DEFAULT_MODALITIES
    input_audio_format: str = DEFAULT_AUDIO_FORMAT
    output_audio_format: str = DEFAULT_AUDIO_FORMAT
    turn_detection: TurnDetectionMode = "server_vad"
    transcribe_input: bool = True

    @property
    def is_manual(self) -> bool:
        return self.turn_detection == "manual"


@dataclass(slots=True, eq=False)
class Session:
    session_id: str
    config: SessionConfig
    outbox: SessionOutbox
    instructions: str = ""
    client: ClientHandle | None = None
    state: SessionState = SessionState.CREATED
    link: UpstreamLink | None = None
    created_at: float = field(default_factory=time.monotonic)
    last_activity_at: float = field(default_factory=time.monotonic)
    pending_response_id: str | None = None
    last_error: str | None = None
    # Bumped on every close so an in-flight connect can tell it lost the race.
    epoch: int = 0
    # Set once teardown begins; a closed session never connects again.
    closed: bool = False
    connect_lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    @property
    def connecting_guard(self) -> bool:
        """True for the whole duration of a connect attempt; cleanup must skip the session."""
        return self.connect_lock.locked()

    @property
    def client_id(self) -> str | None:
        return self.client.client_id if self.client is not None else None

    def touch(self, now: float | None = None) -> None:
        self.last_activity_at = time.monotonic() if now is None else now

    def is_owned_by(self, client_id: str) -> bool:
        return self.client is not None and self.client.client_id == client_id


__all__ = ["Session", "SessionConfig", "SessionState", "TurnDetectionMode"]
