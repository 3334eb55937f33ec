"""FastAPI server for the realtime voice relay."""

from __future__ import annotations

import logging
from typing import Any
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, WebSocket
from fastapi.responses import ORJSONResponse
from fastapi.middleware.cors import CORSMiddleware

from voice_relay.config.websocket import ALLOWED_ORIGINS, WS_ENDPOINT_PATH
from voice_relay.runtime.logging import configure_logging
from voice_relay.runtime.dependencies import build_runtime_deps
from voice_relay.handlers.websocket.manager import handle_websocket_connection

logger = logging.getLogger(__name__)

configure_logging()


@asynccontextmanager
async def _lifespan(app: FastAPI):
    runtime_deps = await build_runtime_deps()
    app.state.runtime_deps = runtime_deps
    logger.info("runtime: ready")
    try:
        yield
    finally:
        deps = getattr(app.state, "runtime_deps", None)
        if deps is not None:
            await deps.shutdown()
        logger.info("runtime: stopped")


app = FastAPI(default_response_class=ORJSONResponse, lifespan=_lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(ALLOWED_ORIGINS),
    allow_credentials="*" not in ALLOWED_ORIGINS,
    allow_methods=["GET"],
    allow_headers=["*"],
)


def _health(request: Request) -> dict[str, Any]:
    runtime_deps = getattr(request.app.state, "runtime_deps", None)
    if runtime_deps is None:
        return {"status": "starting", "activeSessions": 0, "upstreamConfigured": False}
    return runtime_deps.gateway.health()


@app.get("/")
async def root(request: Request) -> dict[str, Any]:
    return _health(request)


@app.get("/health")
async def health(request: Request) -> dict[str, Any]:
    return _health(request)


@app.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


@app.websocket(WS_ENDPOINT_PATH)
async def websocket_endpoint(websocket: WebSocket) -> None:
    runtime_deps = getattr(app.state, "runtime_deps", None)
    if runtime_deps is None:
        raise RuntimeError("Runtime dependencies are not initialized")
    await handle_websocket_connection(websocket, runtime_deps)
