"""Runtime settings (dataclasses only)."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class UpstreamSettings:
    api_key: str
    url: str
    model: str
    beta_header: str
    connect_timeout_s: float
    max_message_bytes: int
    debug: bool


@dataclass(frozen=True, slots=True)
class SessionSettings:
    idle_timeout_s: float
    reap_interval_s: float
    grace_period_s: float
    outbox_max: int
    default_voice: str
    default_instructions: str


@dataclass(frozen=True, slots=True)
class LimitsSettings:
    max_concurrent_connections: int
    ws_message_window_seconds: float
    ws_max_messages_per_window: int
    ws_connect_window_seconds: float
    ws_max_connects_per_window: int


@dataclass(frozen=True, slots=True)
class WebSocketSettings:
    idle_timeout_s: float
    watchdog_tick_s: float
    allowed_origins: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class AppSettings:
    upstream: UpstreamSettings
    sessions: SessionSettings
    limits: LimitsSettings
    websocket: WebSocketSettings


__all__ = [
    "AppSettings",
    "LimitsSettings",
    "SessionSettings",
    "UpstreamSettings",
    "WebSocketSettings",
]
