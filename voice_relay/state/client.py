"""Client connection handle contract."""

from __future__ import annotations

from typing import Any, Protocol


class ClientHandle(Protocol):
    """The inbound connection currently driving one or more sessions."""

    client_id: str

    async def send(
        self,
        msg_type: str,
        payload: dict[str, Any],
        *,
        session_id: str | None = None,
        request_id: str | None = None,
    ) -> bool: ...


__all__ = ["ClientHandle"]
