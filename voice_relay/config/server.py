"""HTTP server bind configuration (env-resolved constants only)."""

from __future__ import annotations

import os

HOST: str = (os.getenv("HOST") or "").strip() or "0.0.0.0"

_PORT_RAW = (os.getenv("PORT") or "").strip()
try:
    PORT: int = int(_PORT_RAW) if _PORT_RAW else 3000
except Exception:
    PORT = 3000

__all__ = ["HOST", "PORT"]
