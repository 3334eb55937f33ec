from __future__ import annotations

import base64

import pytest

from voice_relay.errors import InvalidPayloadError
from voice_relay.sessions.payloads import decode_audio_payload, parse_session_config


def test_parse_session_config_defaults() -> None:
    config = parse_session_config({}, default_voice="alloy")
    assert config.voice == "alloy"
    assert config.modalities == ("text", "audio")
    assert config.input_audio_format == "pcm16"
    assert config.output_audio_format == "pcm16"
    assert config.turn_detection == "server_vad"
    assert config.is_manual is False


def test_parse_session_config_client_values() -> None:
    config = parse_session_config(
        {
            "voice": "verse",
            "modalities": ["audio", "text", "audio"],
            "turnDetection": "manual",
            "inputAudioFormat": "g711_ulaw",
            "transcribeInput": False,
        },
        default_voice="alloy",
    )
    assert config.voice == "verse"
    assert config.modalities == ("audio", "text")
    assert config.input_audio_format == "g711_ulaw"
    assert config.is_manual is True
    assert config.transcribe_input is False


@pytest.mark.parametrize(
    "payload",
    [
        {"voice": "robot"},
        {"voice": 3},
        {"modalities": []},
        {"modalities": ["video"]},
        {"modalities": "audio"},
        {"turnDetection": "semantic"},
        {"outputAudioFormat": "mp3"},
        {"transcribeInput": "yes"},
    ],
)
def test_parse_session_config_rejects_invalid(payload: dict) -> None:
    with pytest.raises(InvalidPayloadError):
        parse_session_config(payload, default_voice="alloy")


def test_decode_audio_payload_base64() -> None:
    raw = b"\x00\x01\x02\x03"
    assert decode_audio_payload(base64.b64encode(raw).decode()) == raw


def test_decode_audio_payload_byte_list() -> None:
    assert decode_audio_payload([0, 127, 255]) == b"\x00\x7f\xff"


@pytest.mark.parametrize("value", [None, "", "   ", "%%%not-base64", [], [256], ["a"], 12, {"a": 1}])
def test_decode_audio_payload_rejects_empty_or_invalid(value) -> None:
    with pytest.raises(InvalidPayloadError):
        decode_audio_payload(value)
