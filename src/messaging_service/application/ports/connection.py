from __future__ import annotations

from typing import Protocol


class ConnectionHandle(Protocol):
    """Transport side of a live connection. Starlette's WebSocket fits."""

    async def send_text(self, data: str) -> None: ...

    async def close(self, code: int = 1000, reason: str | None = None) -> None: ...
