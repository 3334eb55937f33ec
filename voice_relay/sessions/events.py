"""Classification of provider events for routing toward the client."""

from __future__ import annotations

from typing import Any, Literal

from voice_relay.errors import UpstreamError

EventKind = Literal[
    "session",
    "response",
    "audio_delta",
    "text_delta",
    "transcript_delta",
    "speech",
    "buffer_committed",
    "error",
    "other",
]

RESPONSE_CREATED = "response.created"
RESPONSE_DONE = "response.done"
RESPONSE_AUDIO_DELTA = "response.audio.delta"
UPSTREAM_ERROR = "error"

_EXACT_KINDS: dict[str, EventKind] = {
    "session.created": "session",
    "session.updated": "session",
    RESPONSE_AUDIO_DELTA: "audio_delta",
    "response.text.delta": "text_delta",
    "response.audio_transcript.delta": "transcript_delta",
    "input_audio_buffer.speech_started": "speech",
    "input_audio_buffer.speech_stopped": "speech",
    "input_audio_buffer.committed": "buffer_committed",
    UPSTREAM_ERROR: "error",
}


def classify_event(event_type: str) -> EventKind:
    kind = _EXACT_KINDS.get(event_type)
    if kind is not None:
        return kind
    if event_type.startswith("response."):
        return "response"
    if event_type.startswith("session."):
        return "session"
    return "other"


def extract_audio_delta(event: dict[str, Any]) -> str | None:
    """Return the base64 audio carried by a ``response.audio.delta`` event."""
    delta = event.get("delta")
    if isinstance(delta, str):
        return delta or None
    if isinstance(delta, dict):
        audio = delta.get("audio")
        if isinstance(audio, str) and audio:
            return audio
    return None


def extract_response_id(event: dict[str, Any]) -> str | None:
    response = event.get("response")
    if isinstance(response, dict) and isinstance(response.get("id"), str):
        return response["id"]
    response_id = event.get("response_id")
    return response_id if isinstance(response_id, str) else None


def upstream_error_from_event(event: dict[str, Any]) -> UpstreamError:
    """Describe a provider ``error`` event; the provider's own code lands in ``details['upstreamCode']``."""
    code, message = "upstream_error", "upstream reported an error"
    error = event.get("error")
    if isinstance(error, dict):
        code = str(error.get("code") or error.get("type") or code)
        message = str(error.get("message") or message)
    elif isinstance(error, str) and error:
        message = error
    return UpstreamError(message, details={"upstreamCode": code})


__all__ = [
    "RESPONSE_AUDIO_DELTA",
    "RESPONSE_CREATED",
    "RESPONSE_DONE",
    "UPSTREAM_ERROR",
    "EventKind",
    "classify_event",
    "extract_audio_delta",
    "extract_response_id",
    "upstream_error_from_event",
]
