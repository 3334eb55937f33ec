"""Configuration module exports (env-resolved constants only)."""

from .limits import (
    MAX_CONCURRENT_CONNECTIONS,
)

__all__ = [
    "MAX_CONCURRENT_CONNECTIONS",
]
