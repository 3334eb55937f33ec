"""Builders for the provider's realtime event protocol (gateway -> provider)."""

from __future__ import annotations

import base64
from typing import Any
from urllib.parse import urlencode

from voice_relay.state.session import SessionConfig
from voice_relay.config.session import VAD_THRESHOLD, VAD_PREFIX_PADDING_MS, VAD_SILENCE_DURATION_MS
from voice_relay.config.upstream import UPSTREAM_TRANSCRIPTION_MODEL

SESSION_UPDATE = "session.update"
INPUT_AUDIO_APPEND = "input_audio_buffer.append"
INPUT_AUDIO_COMMIT = "input_audio_buffer.commit"
INPUT_AUDIO_CLEAR = "input_audio_buffer.clear"
RESPONSE_CREATE = "response.create"


def build_upstream_url(base_url: str, model: str) -> str:
    sep = "&" if "?" in base_url else "?"
    return f"{base_url}{sep}{urlencode({'model': model})}"


def build_upstream_headers(api_key: str, beta_header: str) -> list[tuple[str, str]]:
    headers = [("Authorization", f"Bearer {api_key}")]
    if beta_header:
        headers.append(("OpenAI-Beta", beta_header))
    return headers


def build_turn_detection(config: SessionConfig) -> dict[str, Any] | None:
    # Manual mode: the relay commits the buffer and asks for a response itself.
    if config.is_manual:
        return None
    return {
        "type": "server_vad",
        "threshold": VAD_THRESHOLD,
        "prefix_padding_ms": VAD_PREFIX_PADDING_MS,
        "silence_duration_ms": VAD_SILENCE_DURATION_MS,
    }


def build_session_update(config: SessionConfig, instructions: str) -> dict[str, Any]:
    session: dict[str, Any] = {
        "modalities": list(config.modalities),
        "instructions": instructions,
        "voice": config.voice,
        "input_audio_format": config.input_audio_format,
        "output_audio_format": config.output_audio_format,
        "turn_detection": build_turn_detection(config),
    }
    if config.transcribe_input:
        session["input_audio_transcription"] = {"model": UPSTREAM_TRANSCRIPTION_MODEL}
    return {"type": SESSION_UPDATE, "session": session}


def build_audio_append(chunk: bytes) -> dict[str, Any]:
    return {"type": INPUT_AUDIO_APPEND, "audio": base64.b64encode(chunk).decode("ascii")}


def build_event(event_type: str, **fields: Any) -> dict[str, Any]:
    event: dict[str, Any] = {"type": event_type}
    event.update(fields)
    return event


__all__ = [
    "INPUT_AUDIO_APPEND",
    "INPUT_AUDIO_CLEAR",
    "INPUT_AUDIO_COMMIT",
    "RESPONSE_CREATE",
    "SESSION_UPDATE",
    "build_audio_append",
    "build_event",
    "build_session_update",
    "build_turn_detection",
    "build_upstream_headers",
    "build_upstream_url",
]
