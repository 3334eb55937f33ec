"""Load runtime settings.

Configuration values are resolved from the environment in `voice_relay/config/*`
and exposed here as structured dataclasses for the rest of the server.
"""

from __future__ import annotations

from voice_relay.config.logging import DEBUG_MODE
from voice_relay.config.secrets import get_openai_api_key
from voice_relay.config.websocket import ALLOWED_ORIGINS, WS_IDLE_TIMEOUT_S, WS_WATCHDOG_TICK_S
from voice_relay.state.settings import (
    AppSettings,
    LimitsSettings,
    SessionSettings,
    UpstreamSettings,
    WebSocketSettings,
)
from voice_relay.config.upstream import (
    OPENAI_BETA_HEADER,
    OPENAI_REALTIME_URL,
    OPENAI_REALTIME_MODEL,
    UPSTREAM_CONNECT_TIMEOUT_S,
    UPSTREAM_MAX_MESSAGE_BYTES,
)
from voice_relay.config.session import (
    DEFAULT_VOICE,
    SESSION_OUTBOX_MAX,
    DEFAULT_INSTRUCTIONS,
    SESSION_GRACE_PERIOD_S,
    SESSION_IDLE_TIMEOUT_S,
    SESSION_REAP_INTERVAL_S,
)
from voice_relay.config.limits import (
    WS_CONNECT_WINDOW_SECONDS,
    MAX_CONCURRENT_CONNECTIONS,
    WS_MESSAGE_WINDOW_SECONDS,
    WS_MAX_CONNECTS_PER_WINDOW,
    WS_MAX_MESSAGES_PER_WINDOW,
)


def load_settings() -> AppSettings:
    return AppSettings(
        upstream=UpstreamSettings(
            api_key=get_openai_api_key(),
            url=OPENAI_REALTIME_URL,
            model=OPENAI_REALTIME_MODEL,
            beta_header=OPENAI_BETA_HEADER,
            connect_timeout_s=UPSTREAM_CONNECT_TIMEOUT_S,
            max_message_bytes=UPSTREAM_MAX_MESSAGE_BYTES,
            debug=DEBUG_MODE,
        ),
        sessions=SessionSettings(
            idle_timeout_s=SESSION_IDLE_TIMEOUT_S,
            reap_interval_s=SESSION_REAP_INTERVAL_S,
            grace_period_s=SESSION_GRACE_PERIOD_S,
            outbox_max=SESSION_OUTBOX_MAX,
            default_voice=DEFAULT_VOICE,
            default_instructions=DEFAULT_INSTRUCTIONS,
        ),
        limits=LimitsSettings(
            max_concurrent_connections=MAX_CONCURRENT_CONNECTIONS,
            ws_message_window_seconds=WS_MESSAGE_WINDOW_SECONDS,
            ws_max_messages_per_window=WS_MAX_MESSAGES_PER_WINDOW,
            ws_connect_window_seconds=WS_CONNECT_WINDOW_SECONDS,
            ws_max_connects_per_window=WS_MAX_CONNECTS_PER_WINDOW,
        ),
        websocket=WebSocketSettings(
            idle_timeout_s=WS_IDLE_TIMEOUT_S,
            watchdog_tick_s=WS_WATCHDOG_TICK_S,
            allowed_origins=ALLOWED_ORIGINS,
        ),
    )


__all__ = ["load_settings"]
