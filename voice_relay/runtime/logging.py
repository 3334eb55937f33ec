"""Logging initialization."""

from __future__ import annotations

import logging

from voice_relay.config.logging import LOG_LEVEL, LOG_FORMAT, DEBUG_MODE


def configure_logging() -> None:
    # Per-frame websockets logs and uvicorn access lines drown out session events.
    if not DEBUG_MODE:
        logging.getLogger("websockets").setLevel(logging.WARNING)
        logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)


__all__ = ["configure_logging"]
