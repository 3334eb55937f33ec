"""Logging configuration (env-resolved constants only)."""

from __future__ import annotations

import os

DEBUG_MODE: bool = (os.getenv("DEBUG_MODE") or "").strip().lower() in {"1", "true", "yes", "on"}

LOG_LEVEL: str = "DEBUG" if DEBUG_MODE else ((os.getenv("LOG_LEVEL") or "INFO").strip().upper() or "INFO")
LOG_FORMAT: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"

__all__ = ["DEBUG_MODE", "LOG_FORMAT", "LOG_LEVEL"]
