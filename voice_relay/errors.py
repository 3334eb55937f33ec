"""Shared error types for the realtime relay."""

from __future__ import annotations

from typing import Any
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class RateLimitError(Exception):
    """Raised when a sliding-window rate limiter is saturated."""

    retry_in: float
    limit: int
    window_seconds: float


class RelayError(Exception):
    """Base for failures that are reported back to the client as a structured reply."""

    code = "relay_error"

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = dict(details or {})

    def to_reply(self) -> dict[str, Any]:
        reply: dict[str, Any] = {"success": False, "error": self.message, "code": self.code}
        reply.update(self.details)
        return reply


class SessionNotFoundError(RelayError):
    code = "not_found"


class UnauthorizedError(RelayError):
    """The session exists but the requesting client does not own it."""

    code = "unauthorized"


class SessionExistsError(RelayError):
    code = "already_exists"


class ConnectFailedError(RelayError):
    code = "connect_failed"


class SendFailedError(RelayError):
    code = "send_failed"


class InvalidPayloadError(RelayError):
    code = "invalid_payload"


class UpstreamError(RelayError):
    code = "upstream_error"


__all__ = [
    "ConnectFailedError",
    "InvalidPayloadError",
    "RateLimitError",
    "RelayError",
    "SendFailedError",
    "SessionExistsError",
    "SessionNotFoundError",
    "UnauthorizedError",
    "UpstreamError",
]
