from __future__ import annotations

import base64
import asyncio

import pytest

from voice_relay.state.session import SessionState
from voice_relay.errors import (
    SendFailedError,
    UnauthorizedError,
    ConnectFailedError,
    InvalidPayloadError,
    SessionNotFoundError,
)


def _audio(chunk: bytes, *, final: bool = False) -> dict:
    return {"audioData": base64.b64encode(chunk).decode("ascii"), "isFinal": final}


@pytest.mark.asyncio
async def test_create_session_generates_id_and_reuses_live_one(relay, make_client) -> None:
    registry, _machine, gateway = relay()
    alice = make_client("alice")

    reply = await gateway.create_session(alice, None, {"voice": "coral"})
    sid = reply["sessionId"]
    assert reply["success"] is True
    assert registry.get(sid).config.voice == "coral"
    assert registry.get(sid).instructions == "Be brief."

    again = await gateway.create_session(alice, sid, {"initialPrompt": "New prompt"})
    assert again == {"success": True, "sessionId": sid, "reused": True}
    assert len(registry) == 1
    assert registry.get(sid).instructions == "New prompt"

    await gateway.shutdown()


@pytest.mark.asyncio
async def test_create_session_rejects_invalid_config(relay, make_client) -> None:
    registry, _machine, gateway = relay()
    with pytest.raises(InvalidPayloadError):
        await gateway.create_session(make_client("alice"), "s1", {"voice": "robot"})
    assert len(registry) == 0


@pytest.mark.asyncio
async def test_manual_session_relays_append_commit_response(relay, upstream, make_client) -> None:
    registry, _machine, gateway = relay()
    client = make_client("alice")

    await gateway.create_session(
        client,
        "s1",
        {"voice": "alloy", "modalities": ["text", "audio"], "turnDetection": "manual"},
    )
    assert (await gateway.connect_session(client, "s1", {})) == {"success": True, "sessionId": "s1"}

    await gateway.relay_audio(client, "s1", _audio(b"one"))
    await gateway.relay_audio(client, "s1", _audio(b"two"))
    await gateway.relay_audio(client, "s1", _audio(b"three", final=True))

    ws = upstream.last
    assert ws.events[0]["session"]["turn_detection"] is None
    assert ws.events[0]["session"]["voice"] == "alloy"
    assert ws.event_types[1:] == [
        "input_audio_buffer.append",
        "input_audio_buffer.append",
        "input_audio_buffer.append",
        "input_audio_buffer.commit",
        "response.create",
    ]

    await gateway.shutdown()


@pytest.mark.asyncio
async def test_connect_session_auto_creates(relay, upstream, make_client) -> None:
    registry, _machine, gateway = relay()
    client = make_client("alice")

    reply = await gateway.connect_session(client, "fresh", {"initialPrompt": "Hello"})

    assert reply == {"success": True, "sessionId": "fresh"}
    session = registry.get("fresh")
    assert session.state is SessionState.CONNECTED
    assert session.is_owned_by("alice")
    assert upstream.last.events[0]["session"]["instructions"] == "Hello"

    await gateway.shutdown()


@pytest.mark.asyncio
async def test_connect_failure_reports_state(relay, upstream, make_client) -> None:
    registry, _machine, gateway = relay()
    upstream.error = OSError("refused")

    with pytest.raises(ConnectFailedError) as exc:
        await gateway.connect_session(make_client("alice"), "s1", {})

    reply = exc.value.to_reply()
    assert reply["success"] is False
    assert reply["state"] == "disconnected"
    assert reply["sessionId"] == "s1"
    assert "refused" in reply["error"]
    assert registry.get("s1") is not None

    await gateway.shutdown()


@pytest.mark.asyncio
async def test_health_counts_live_sessions(relay, make_client) -> None:
    _registry, _machine, gateway = relay()
    client = make_client("alice")
    await gateway.create_session(client, "a", {})
    await gateway.create_session(client, "b", {})

    assert gateway.health() == {"status": "healthy", "activeSessions": 2, "upstreamConfigured": True}

    await gateway.shutdown()
    assert gateway.health()["activeSessions"] == 0


@pytest.mark.asyncio
async def test_end_session_is_idempotent(relay, upstream, make_client) -> None:
    registry, _machine, gateway = relay()
    client = make_client("alice")
    await gateway.connect_session(client, "s1", {})

    assert await gateway.end_session(client, "s1") == {"success": True, "sessionId": "s1"}
    assert await gateway.end_session(client, "s1") == {"success": True, "sessionId": "s1"}
    assert registry.get("s1") is None
    assert upstream.open_sockets() == []

    await gateway.shutdown()


@pytest.mark.asyncio
async def test_end_session_checks_ownership(relay, make_client, wait_until) -> None:
    registry, _machine, gateway = relay()
    alice, bob = make_client("alice"), make_client("bob")
    await gateway.connect_session(alice, "s1", {})

    with pytest.raises(UnauthorizedError):
        await gateway.end_session(bob, "s1")
    assert registry.get("s1") is not None

    assert (await gateway.end_session(alice, "s1"))["success"] is True
    await wait_until(lambda: alice.of_type("session-closed") != [])
    assert alice.of_type("session-closed") == [{"sessionId": "s1", "reason": "ended"}]
    assert bob.messages == []

    await gateway.shutdown()


@pytest.mark.asyncio
async def test_not_found_is_distinct_from_unauthorized(relay, make_client) -> None:
    _registry, _machine, gateway = relay()
    alice, bob = make_client("alice"), make_client("bob")
    await gateway.create_session(alice, "s1", {})

    with pytest.raises(SessionNotFoundError):
        await gateway.commit_buffer(bob, "missing")
    with pytest.raises(UnauthorizedError):
        await gateway.commit_buffer(bob, "s1")
    with pytest.raises(UnauthorizedError):
        await gateway.relay_audio(bob, "s1", _audio(b"x"))

    await gateway.shutdown()


@pytest.mark.asyncio
async def test_relay_audio_validation(relay, make_client) -> None:
    _registry, _machine, gateway = relay()
    client = make_client("alice")
    await gateway.create_session(client, "s1", {})

    with pytest.raises(InvalidPayloadError):
        await gateway.relay_audio(client, "s1", {"audioData": ""})
    # Valid audio before connect-session has nowhere to go.
    with pytest.raises(SendFailedError):
        await gateway.relay_audio(client, "s1", _audio(b"x"))

    await gateway.shutdown()


@pytest.mark.asyncio
async def test_manual_controls_report_send_failures(relay, upstream, make_client) -> None:
    _registry, _machine, gateway = relay()
    client = make_client("alice")
    await gateway.connect_session(client, "s1", {"turnDetection": "manual"})

    assert (await gateway.commit_buffer(client, "s1"))["success"] is True
    assert (await gateway.create_response(client, "s1"))["success"] is True
    assert (await gateway.clear_buffer(client, "s1"))["success"] is True

    await upstream.last.close()
    with pytest.raises(SendFailedError):
        await gateway.commit_buffer(client, "s1")

    await gateway.shutdown()


@pytest.mark.asyncio
async def test_detached_session_survives_and_can_be_claimed(relay, make_client, wait_until) -> None:
    registry, _machine, gateway = relay()
    alice, bob = make_client("alice"), make_client("bob")
    await gateway.connect_session(alice, "s1", {})

    assert gateway.detach_client(alice) == ["s1"]
    session = registry.get("s1")
    assert session is not None
    assert session.client is None

    await gateway.connect_session(bob, "s1", {})
    assert session.is_owned_by("bob")

    session.outbox.publish("realtime-event", {"type": "session.updated"})
    await wait_until(lambda: bob.of_type("realtime-event") != [])
    assert alice.of_type("realtime-event") == []

    await gateway.shutdown()


@pytest.mark.asyncio
async def test_session_status(relay, make_client) -> None:
    _registry, _machine, gateway = relay()
    alice, bob = make_client("alice"), make_client("bob")
    await gateway.connect_session(alice, "s1", {})

    status = gateway.get_session_status(alice, "s1")
    assert status["exists"] is True
    assert status["state"] == "connected"
    assert status["ownerMatch"] is True
    assert status["connecting"] is False
    assert status["hasUpstream"] is True
    assert gateway.get_session_status(bob, "s1")["ownerMatch"] is False
    assert gateway.get_session_status(alice, "nope") == {"exists": False, "sessionId": "nope"}

    await gateway.shutdown()


@pytest.mark.asyncio
async def test_upstream_events_reach_owning_client(relay, upstream, make_client, wait_until) -> None:
    _registry, _machine, gateway = relay()
    client = make_client("alice")
    await gateway.connect_session(client, "s1", {})

    upstream.last.feed({"type": "response.created", "response": {"id": "r1"}})
    await wait_until(lambda: gateway.has_active_response("alice"))
    upstream.last.feed({"type": "response.audio.delta", "delta": "QUJD"})
    upstream.last.feed({"type": "response.done", "response": {"id": "r1"}})

    await wait_until(lambda: len(client.of_type("realtime-event")) == 3)
    assert [e["type"] for e in client.of_type("realtime-event")] == [
        "response.created",
        "response.audio.delta",
        "response.done",
    ]
    assert client.of_type("audio-stream") == [{"audio": "QUJD", "sessionId": "s1"}]
    assert gateway.has_active_response("alice") is False

    await gateway.shutdown()


@pytest.mark.asyncio
async def test_connect_during_teardown_leaves_no_upstream(relay, upstream, make_client) -> None:
    registry, _machine, gateway = relay()
    client = make_client("alice")
    await gateway.connect_session(client, "s1", {})
    session = registry.get("s1")

    old = upstream.last
    release = asyncio.Event()
    close_socket = old.close

    async def slow_close(code: int = 1000, reason: str = "") -> None:
        await release.wait()
        await close_socket(code, reason)

    old.close = slow_close
    teardown = asyncio.create_task(gateway.teardown(session, reason="idle_timeout"))
    await asyncio.sleep(0.01)
    assert session.closed is True
    assert registry.get("s1") is session

    with pytest.raises(ConnectFailedError):
        await gateway.connect_session(client, "s1", {})

    release.set()
    await teardown

    assert registry.get("s1") is None
    assert session.link is None
    assert session.state is SessionState.DISCONNECTED
    assert len(upstream.sockets) == 1
    assert upstream.open_sockets() == []
    await gateway.shutdown()


@pytest.mark.asyncio
async def test_end_session_during_connect_discards_upstream(relay, upstream, make_client) -> None:
    registry, _machine, gateway = relay()
    client = make_client("alice")
    upstream.gate = asyncio.Event()

    connect = asyncio.create_task(gateway.connect_session(client, "s1", {}))
    await asyncio.sleep(0.01)
    assert registry.get("s1").connecting_guard is True

    assert await gateway.end_session(client, "s1") == {"success": True, "sessionId": "s1"}
    upstream.gate.set()

    with pytest.raises(ConnectFailedError):
        await connect
    assert registry.get("s1") is None
    assert upstream.open_sockets() == []
    await gateway.shutdown()
