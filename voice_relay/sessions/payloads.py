"""Validation of client-supplied session config and audio payloads."""

from __future__ import annotations

import base64
import binascii
from typing import Any

from voice_relay.errors import InvalidPayloadError
from voice_relay.state.session import SessionConfig
from voice_relay.config.session import DEFAULT_MODALITIES, DEFAULT_AUDIO_FORMAT
from voice_relay.config.upstream import UPSTREAM_VOICES, UPSTREAM_MODALITIES, UPSTREAM_AUDIO_FORMATS

_TURN_DETECTION_MODES = ("server_vad", "manual")


def optional_str(payload: dict[str, Any], key: str) -> str | None:
    value = payload.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidPayloadError(f"'{key}' must be a string")
    value = value.strip()
    return value or None


def _audio_format(payload: dict[str, Any], key: str) -> str:
    value = optional_str(payload, key) or DEFAULT_AUDIO_FORMAT
    if value not in UPSTREAM_AUDIO_FORMATS:
        raise InvalidPayloadError(
            f"unsupported {key}: {value}",
            details={"allowed": sorted(UPSTREAM_AUDIO_FORMATS)},
        )
    return value


def _modalities(payload: dict[str, Any]) -> tuple[str, ...]:
    raw = payload.get("modalities")
    if raw is None:
        return DEFAULT_MODALITIES
    if not isinstance(raw, list) or not raw or not all(isinstance(m, str) for m in raw):
        raise InvalidPayloadError("'modalities' must be a non-empty list of strings")
    unknown = sorted(set(raw) - UPSTREAM_MODALITIES)
    if unknown:
        raise InvalidPayloadError(
            f"unsupported modalities: {', '.join(unknown)}",
            details={"allowed": sorted(UPSTREAM_MODALITIES)},
        )
    # Keep client order, drop duplicates.
    return tuple(dict.fromkeys(raw))


def parse_session_config(payload: dict[str, Any], *, default_voice: str) -> SessionConfig:
    """Build an immutable session config from a start/connect request payload."""
    voice = optional_str(payload, "voice") or default_voice
    if voice not in UPSTREAM_VOICES:
        raise InvalidPayloadError(f"unsupported voice: {voice}", details={"allowed": sorted(UPSTREAM_VOICES)})

    turn_detection = optional_str(payload, "turnDetection") or "server_vad"
    if turn_detection not in _TURN_DETECTION_MODES:
        raise InvalidPayloadError(
            f"unsupported turnDetection: {turn_detection}",
            details={"allowed": list(_TURN_DETECTION_MODES)},
        )

    transcribe = payload.get("transcribeInput", True)
    if not isinstance(transcribe, bool):
        raise InvalidPayloadError("'transcribeInput' must be a boolean")

    return SessionConfig(
        voice=voice,
        modalities=_modalities(payload),
        input_audio_format=_audio_format(payload, "inputAudioFormat"),
        output_audio_format=_audio_format(payload, "outputAudioFormat"),
        turn_detection=turn_detection,  # type: ignore[arg-type]
        transcribe_input=transcribe,
    )


def decode_audio_payload(value: Any) -> bytes:
    """Decode ``audioData`` given as a base64 string or a list of byte values."""
    if isinstance(value, str):
        value = value.strip()
        if not value:
            raise InvalidPayloadError("audioData is empty")
        try:
            chunk = base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise InvalidPayloadError("audioData is not valid base64") from exc
    elif isinstance(value, list):
        try:
            chunk = bytes(value)
        except (TypeError, ValueError) as exc:
            raise InvalidPayloadError("audioData must contain byte values 0-255") from exc
    elif value is None:
        raise InvalidPayloadError("audioData is required")
    else:
        raise InvalidPayloadError("audioData must be a base64 string or a list of byte values")

    if not chunk:
        raise InvalidPayloadError("audioData is empty")
    return chunk


__all__ = ["decode_audio_payload", "optional_str", "parse_session_config"]
