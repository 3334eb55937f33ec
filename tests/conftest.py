from __future__ import annotations

import sys
import time
import asyncio
from typing import Any
from pathlib import Path
from collections.abc import Callable

import orjson
import pytest
from fastapi import WebSocketDisconnect
from websockets.protocol import State


def pytest_configure() -> None:
    # Keep `import voice_relay...` working when running `pytest` from the repo root.
    repo_root = Path(__file__).resolve().parents[1]
    repo_root_str = str(repo_root)
    if repo_root_str not in sys.path:
        sys.path.insert(0, repo_root_str)


class FakeUpstreamSocket:
    """Stands in for a `websockets` client connection to the provider."""

    def __init__(self) -> None:
        self.state = State.OPEN
        self.sent: list[str] = []
        self.close_code: int | None = None
        self.close_reason: str | None = None
        self.close_calls = 0
        self._incoming: asyncio.Queue[str | None] = asyncio.Queue()

    @property
    def events(self) -> list[dict[str, Any]]:
        return [orjson.loads(raw) for raw in self.sent]

    @property
    def event_types(self) -> list[str]:
        return [event["type"] for event in self.events]

    async def send(self, data: str) -> None:
        if self.state is not State.OPEN:
            raise RuntimeError("socket is closed")
        self.sent.append(data)

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.close_calls += 1
        if self.state is State.OPEN:
            self.state = State.CLOSED
            self.close_code = code
            self.close_reason = reason
        self._incoming.put_nowait(None)

    def feed(self, event: dict[str, Any]) -> None:
        self._incoming.put_nowait(orjson.dumps(event).decode("utf-8"))

    def feed_raw(self, raw: str) -> None:
        self._incoming.put_nowait(raw)

    def drop(self, code: int = 1006, reason: str = "") -> None:
        """Simulate the provider closing the socket."""
        self.state = State.CLOSED
        self.close_code = code
        self.close_reason = reason
        self._incoming.put_nowait(None)

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        while True:
            raw = await self._incoming.get()
            if raw is None:
                return
            yield raw


class FakeUpstreamFactory:
    """Injectable replacement for `websockets.connect`."""

    def __init__(self) -> None:
        self.sockets: list[FakeUpstreamSocket] = []
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.gate: asyncio.Event | None = None
        self.error: Exception | None = None

    @property
    def last(self) -> FakeUpstreamSocket:
        return self.sockets[-1]

    def open_sockets(self) -> list[FakeUpstreamSocket]:
        return [ws for ws in self.sockets if ws.state is State.OPEN]

    async def __call__(self, url: str, **kwargs: Any) -> FakeUpstreamSocket:
        self.calls.append((url, kwargs))
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        ws = FakeUpstreamSocket()
        self.sockets.append(ws)
        return ws


class FakeClient:
    """Records everything the relay pushes to one client."""

    def __init__(self, client_id: str) -> None:
        self.client_id = client_id
        self.messages: list[tuple[str, dict[str, Any], str | None]] = []

    async def send(
        self,
        msg_type: str,
        payload: dict[str, Any],
        *,
        session_id: str | None = None,
        request_id: str | None = None,
    ) -> bool:
        self.messages.append((msg_type, payload, session_id))
        return True

    def of_type(self, msg_type: str) -> list[dict[str, Any]]:
        return [payload for kind, payload, _sid in self.messages if kind == msg_type]


class FakeWebSocket:
    """Minimal FastAPI WebSocket double for transport tests."""

    def __init__(self, headers: dict[str, str] | None = None) -> None:
        self.headers = headers or {}
        self.accepted = False
        self.sent: list[dict[str, Any]] = []
        self.close_code: int | None = None
        self.close_reason: str | None = None
        self._incoming: asyncio.Queue[str | None] = asyncio.Queue()

    @property
    def sent_types(self) -> list[str]:
        return [msg["type"] for msg in self.sent]

    def push(self, msg: dict[str, Any]) -> None:
        self._incoming.put_nowait(orjson.dumps(msg).decode("utf-8"))

    def push_raw(self, raw: str) -> None:
        self._incoming.put_nowait(raw)

    def disconnect(self) -> None:
        self._incoming.put_nowait(None)

    async def accept(self) -> None:
        self.accepted = True

    async def send_text(self, text: str) -> None:
        if self.close_code is not None:
            raise RuntimeError("socket is closed")
        self.sent.append(orjson.loads(text))

    async def receive_text(self) -> str:
        raw = await self._incoming.get()
        if raw is None:
            raise WebSocketDisconnect(code=1000)
        return raw

    async def close(self, code: int = 1000, reason: str | None = None) -> None:
        self.close_code = code
        self.close_reason = reason
        self._incoming.put_nowait(None)


@pytest.fixture
def upstream() -> FakeUpstreamFactory:
    return FakeUpstreamFactory()


@pytest.fixture
def make_client() -> Callable[[str], FakeClient]:
    return FakeClient


@pytest.fixture
def make_websocket() -> Callable[..., FakeWebSocket]:
    return FakeWebSocket


@pytest.fixture
def make_settings() -> Callable[..., Any]:
    from voice_relay.state.settings import (
        AppSettings,
        LimitsSettings,
        SessionSettings,
        UpstreamSettings,
        WebSocketSettings,
    )

    def _make(
        *,
        api_key: str = "test-key",
        connect_timeout_s: float = 1.0,
        idle_timeout_s: float = 600.0,
        grace_period_s: float = 20.0,
        max_concurrent_connections: int = 10,
        max_connects_per_window: int = 20,
        allowed_origins: tuple[str, ...] = ("http://localhost:5173",),
    ) -> AppSettings:
        return AppSettings(
            upstream=UpstreamSettings(
                api_key=api_key,
                url="wss://upstream.test/v1/realtime",
                model="test-model",
                beta_header="realtime=v1",
                connect_timeout_s=connect_timeout_s,
                max_message_bytes=1024 * 1024,
                debug=False,
            ),
            sessions=SessionSettings(
                idle_timeout_s=idle_timeout_s,
                reap_interval_s=60.0,
                grace_period_s=grace_period_s,
                outbox_max=64,
                default_voice="alloy",
                default_instructions="Be brief.",
            ),
            limits=LimitsSettings(
                max_concurrent_connections=max_concurrent_connections,
                ws_message_window_seconds=60.0,
                ws_max_messages_per_window=1000,
                ws_connect_window_seconds=60.0,
                ws_max_connects_per_window=max_connects_per_window,
            ),
            websocket=WebSocketSettings(
                idle_timeout_s=900.0,
                watchdog_tick_s=5.0,
                allowed_origins=allowed_origins,
            ),
        )

    return _make


@pytest.fixture
def wait_until() -> Callable[..., Any]:
    async def _wait(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
        deadline = time.monotonic() + timeout
        while not predicate():
            if time.monotonic() > deadline:
                raise AssertionError("condition not met before timeout")
            await asyncio.sleep(0.005)

    return _wait


@pytest.fixture
def relay(upstream: FakeUpstreamFactory, make_settings: Callable[..., Any]) -> Callable[..., Any]:
    """Build a registry, state machine, and gateway wired to the fake upstream."""
    from voice_relay.upstream.link import UpstreamConnector
    from voice_relay.sessions import RelayGateway, SessionMachine, SessionRegistry

    def _build(**overrides: Any) -> tuple[Any, Any, Any]:
        settings = make_settings(**overrides)
        registry = SessionRegistry(outbox_max=settings.sessions.outbox_max)
        machine = SessionMachine(UpstreamConnector(settings.upstream, connect_fn=upstream))
        gateway = RelayGateway(registry, machine, settings.sessions)
        return registry, machine, gateway

    return _build
