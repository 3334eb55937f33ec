"""Secrets configuration."""

from __future__ import annotations

import os


def get_openai_api_key() -> str:
    return (os.getenv("OPENAI_API_KEY") or "").strip()


__all__ = ["get_openai_api_key"]
