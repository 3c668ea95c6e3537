from __future__ import annotations

from contextlib import AbstractAsyncContextManager
from typing import Callable, Protocol

from messaging_service.application.repositories.message import MessageReader, MessageWriter
from messaging_service.application.repositories.notification import (
    NotificationReader,
    NotificationWriter,
)


class UnitOfWork(Protocol):
    messages: MessageReader
    messages_w: MessageWriter
    notifications: NotificationReader
    notifications_w: NotificationWriter

    async def commit(self) -> None: ...
    async def rollback(self) -> None: ...
    async def flush(self) -> None: ...


# Opens a fresh unit of work (one transaction) per call.
UoWFactory = Callable[[], AbstractAsyncContextManager[UnitOfWork]]
