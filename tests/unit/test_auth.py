from __future__ import annotations

import pytest

from voice_relay.handlers.websocket.auth import get_origin, validate_origin, authorize_websocket

ALLOWED = ("http://localhost:5173", "https://app.example.com")


def test_validate_origin_accepts_listed_origin() -> None:
    assert validate_origin("https://app.example.com", ALLOWED) is True


def test_validate_origin_rejects_unlisted_origin() -> None:
    assert validate_origin("https://evil.example.com", ALLOWED) is False


def test_validate_origin_allows_missing_origin() -> None:
    assert validate_origin("", ALLOWED) is True


def test_validate_origin_wildcard() -> None:
    assert validate_origin("https://anything.example", ("*",)) is True


@pytest.mark.asyncio
async def test_authorize_websocket_normalizes_trailing_slash(make_websocket) -> None:
    ws = make_websocket(headers={"origin": "http://localhost:5173/"})
    assert get_origin(ws) == "http://localhost:5173"
    assert await authorize_websocket(ws, allowed_origins=ALLOWED) is True
