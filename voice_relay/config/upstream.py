"""Upstream realtime provider configuration (env-resolved constants only)."""

from __future__ import annotations

import os

OPENAI_REALTIME_URL: str = (os.getenv("OPENAI_REALTIME_URL") or "").strip() or "wss://api.openai.com/v1/realtime"
OPENAI_REALTIME_MODEL: str = (
    os.getenv("OPENAI_REALTIME_MODEL") or ""
).strip() or "gpt-4o-realtime-preview-2024-12-17"
OPENAI_BETA_HEADER: str = (os.getenv("OPENAI_BETA_HEADER") or "").strip() or "realtime=v1"

_UPSTREAM_CONNECT_TIMEOUT_S_RAW = (os.getenv("UPSTREAM_CONNECT_TIMEOUT_S") or "").strip()
try:
    UPSTREAM_CONNECT_TIMEOUT_S: float = (
        float(_UPSTREAM_CONNECT_TIMEOUT_S_RAW) if _UPSTREAM_CONNECT_TIMEOUT_S_RAW else 30.0
    )
except Exception:
    UPSTREAM_CONNECT_TIMEOUT_S = 30.0
if UPSTREAM_CONNECT_TIMEOUT_S <= 0:
    UPSTREAM_CONNECT_TIMEOUT_S = 30.0

_UPSTREAM_MAX_MESSAGE_BYTES_RAW = (os.getenv("UPSTREAM_MAX_MESSAGE_BYTES") or "").strip()
try:
    UPSTREAM_MAX_MESSAGE_BYTES: int = (
        int(_UPSTREAM_MAX_MESSAGE_BYTES_RAW) if _UPSTREAM_MAX_MESSAGE_BYTES_RAW else 16 * 1024 * 1024
    )
except Exception:
    UPSTREAM_MAX_MESSAGE_BYTES = 16 * 1024 * 1024
UPSTREAM_MAX_MESSAGE_BYTES = max(64 * 1024, int(UPSTREAM_MAX_MESSAGE_BYTES))

# Provider-side vocabulary accepted in the configuration frame.
UPSTREAM_VOICES: frozenset[str] = frozenset(
    {"alloy", "ash", "ballad", "coral", "echo", "sage", "shimmer", "verse"}
)
UPSTREAM_MODALITIES: frozenset[str] = frozenset({"text", "audio"})
UPSTREAM_AUDIO_FORMATS: frozenset[str] = frozenset({"pcm16", "g711_ulaw", "g711_alaw"})
UPSTREAM_TRANSCRIPTION_MODEL: str = (os.getenv("UPSTREAM_TRANSCRIPTION_MODEL") or "").strip() or "whisper-1"

__all__ = [
    "OPENAI_BETA_HEADER",
    "OPENAI_REALTIME_MODEL",
    "OPENAI_REALTIME_URL",
    "UPSTREAM_AUDIO_FORMATS",
    "UPSTREAM_CONNECT_TIMEOUT_S",
    "UPSTREAM_MAX_MESSAGE_BYTES",
    "UPSTREAM_MODALITIES",
    "UPSTREAM_TRANSCRIPTION_MODEL",
    "UPSTREAM_VOICES",
]
