"""Session lifecycle configuration (env-resolved constants only)."""

from __future__ import annotations

import os

_SESSION_IDLE_TIMEOUT_S_RAW = (os.getenv("SESSION_IDLE_TIMEOUT_S") or "").strip()
try:
    SESSION_IDLE_TIMEOUT_S: float = float(_SESSION_IDLE_TIMEOUT_S_RAW) if _SESSION_IDLE_TIMEOUT_S_RAW else 600.0
except Exception:
    SESSION_IDLE_TIMEOUT_S = 600.0
if SESSION_IDLE_TIMEOUT_S <= 0:
    SESSION_IDLE_TIMEOUT_S = 600.0

_SESSION_REAP_INTERVAL_S_RAW = (os.getenv("SESSION_REAP_INTERVAL_S") or "").strip()
try:
    SESSION_REAP_INTERVAL_S: float = float(_SESSION_REAP_INTERVAL_S_RAW) if _SESSION_REAP_INTERVAL_S_RAW else 60.0
except Exception:
    SESSION_REAP_INTERVAL_S = 60.0
if SESSION_REAP_INTERVAL_S <= 0:
    SESSION_REAP_INTERVAL_S = 60.0

# New sessions are not reaped while they may still be completing their first connect.
_SESSION_GRACE_PERIOD_S_RAW = (os.getenv("SESSION_GRACE_PERIOD_S") or "").strip()
try:
    SESSION_GRACE_PERIOD_S: float = float(_SESSION_GRACE_PERIOD_S_RAW) if _SESSION_GRACE_PERIOD_S_RAW else 20.0
except Exception:
    SESSION_GRACE_PERIOD_S = 20.0
SESSION_GRACE_PERIOD_S = max(0.0, float(SESSION_GRACE_PERIOD_S))

_SESSION_OUTBOX_MAX_RAW = (os.getenv("SESSION_OUTBOX_MAX") or "").strip()
try:
    SESSION_OUTBOX_MAX: int = int(_SESSION_OUTBOX_MAX_RAW) if _SESSION_OUTBOX_MAX_RAW else 1024
except Exception:
    SESSION_OUTBOX_MAX = 1024
SESSION_OUTBOX_MAX = max(16, int(SESSION_OUTBOX_MAX))

DEFAULT_VOICE: str = (os.getenv("DEFAULT_VOICE") or "").strip() or "alloy"
DEFAULT_MODALITIES: tuple[str, ...] = ("text", "audio")
DEFAULT_AUDIO_FORMAT: str = "pcm16"
DEFAULT_INSTRUCTIONS: str = (os.getenv("DEFAULT_INSTRUCTIONS") or "").strip() or (
    "You are a helpful voice assistant. Keep answers short and conversational."
)

# Server VAD tuning sent with turn_detection=server_vad.
VAD_THRESHOLD: float = 0.5
VAD_PREFIX_PADDING_MS: int = 300
VAD_SILENCE_DURATION_MS: int = 500

__all__ = [
    "DEFAULT_AUDIO_FORMAT",
    "DEFAULT_INSTRUCTIONS",
    "DEFAULT_MODALITIES",
    "DEFAULT_VOICE",
    "SESSION_GRACE_PERIOD_S",
    "SESSION_IDLE_TIMEOUT_S",
    "SESSION_OUTBOX_MAX",
    "SESSION_REAP_INTERVAL_S",
    "VAD_PREFIX_PADDING_MS",
    "VAD_SILENCE_DURATION_MS",
    "VAD_THRESHOLD",
]
