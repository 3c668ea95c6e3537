"""Shared test fixtures."""
from __future__ import annotations

import asyncio
import json
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Any, Callable
from uuid import UUID

import jwt
import pytest

from messaging_service.application.dto.principal import Principal
from messaging_service.config import settings
from messaging_service.domain.entities.message import Message
from messaging_service.domain.entities.notification import Notification
from messaging_service.domain.value_objects.conversation_key import conversation_key
from messaging_service.domain.value_objects.enums import UserRole
from messaging_service.infrastructure.auth.hs256_verifier import HS256Verifier
from messaging_service.infrastructure.ws.registry import ConnectionRegistry
from messaging_service.services.auth_gate import AuthenticationGate
from messaging_service.services.conversation_store import ConversationStore
from messaging_service.services.delivery_router import DeliveryRouter
from messaging_service.services.notification_fanout import NotificationFanout


def make_token(user_id: str = "alice", role: str = "student", **claims: Any) -> str:
    payload: dict[str, Any] = {"userId": user_id, "role": role}
    payload.update(claims)
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def auth(user_id: str, role: str = "student") -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user_id, role=role)}"}


def make_message(
    *,
    sender_id: str = "alice",
    receiver_id: str = "bob",
    content: str = "hello",
    created_at: datetime | None = None,
) -> Message:
    return Message(
        id=uuid.uuid4(),
        sender_id=sender_id,
        receiver_id=receiver_id,
        conversation_key=conversation_key(sender_id, receiver_id),
        content=content,
        created_at=created_at or datetime.now(timezone.utc),
    )


@dataclass
class FakeDatabase:
    """Shared state behind every FakeUoW, standing in for PostgreSQL."""

    messages: dict[UUID, Message] = field(default_factory=dict)
    notifications: dict[UUID, Notification] = field(default_factory=dict)
    write_delay: float = 0.0
    fail_commits: bool = False
    commits: int = 0
    # conversation keys with a writer inside add(); used to detect overlap
    active_keys: set[str] = field(default_factory=set)
    overlapping_writes: int = 0


@dataclass
class FakeMessageReader:
    _db: FakeDatabase

    async def get_by_id(self, message_id: UUID) -> Message | None:
        return self._db.messages.get(message_id)

    async def list_for_conversation(
        self, conversation_key: str, user_a: str, user_b: str,
    ) -> list[Message]:
        pair = {(user_a, user_b), (user_b, user_a)}
        found = [
            m for m in self._db.messages.values()
            if m.conversation_key == conversation_key and (m.sender_id, m.receiver_id) in pair
        ]
        return sorted(found, key=lambda m: (m.created_at, m.id))

    async def latest_created_at(self, conversation_key: str) -> datetime | None:
        stamps = [m.created_at for m in self._db.messages.values() if m.conversation_key == conversation_key]
        return max(stamps, default=None)

    async def count_unread(self, receiver_id: str) -> int:
        return sum(
            1 for m in self._db.messages.values()
            if m.receiver_id == receiver_id and not m.is_read and not m.is_deleted
        )


@dataclass
class FakeMessageWriter:
    _db: FakeDatabase
    _pending: list[Callable[[], None]]
    locked: list[str] = field(default_factory=list)

    async def lock_conversation(self, conversation_key: str) -> None:
        self.locked.append(conversation_key)

    async def add(self, message: Message) -> Message:
        key = message.conversation_key
        if key in self._db.active_keys:
            self._db.overlapping_writes += 1
        self._db.active_keys.add(key)
        try:
            if self._db.write_delay:
                await asyncio.sleep(self._db.write_delay)
        finally:
            self._db.active_keys.discard(key)
        self._pending.append(lambda: self._db.messages.__setitem__(message.id, message))
        return message

    async def save_state(self, message: Message) -> None:
        self._pending.append(lambda: self._db.messages.__setitem__(message.id, message))


@dataclass
class FakeNotificationReader:
    _db: FakeDatabase

    async def list_for_user(
        self, user_id: str, *, pending_only: bool = False, limit: int = 50,
    ) -> list[Notification]:
        found = [
            n for n in self._db.notifications.values()
            if n.user_id == user_id and not (pending_only and n.delivered)
        ]
        return sorted(found, key=lambda n: n.created_at, reverse=True)[:limit]


@dataclass
class FakeNotificationWriter:
    _db: FakeDatabase
    _pending: list[Callable[[], None]]

    async def add_many(self, notifications: list[Notification]) -> None:
        for n in notifications:
            self._pending.append(lambda n=n: self._db.notifications.__setitem__(n.id, n))

    async def mark_delivered(
        self, ids: list[UUID], at: datetime, *, user_id: str | None = None,
    ) -> int:
        count = 0
        for nid in ids:
            n = self._db.notifications.get(nid)
            if n is None or n.delivered or (user_id is not None and n.user_id != user_id):
                continue
            self._pending.append(
                lambda n=n: self._db.notifications.__setitem__(
                    n.id, replace(n, delivered=True, delivered_at=at),
                )
            )
            count += 1
        return count


class FakeUoW:
    """In-memory UoW for unit tests. Writes become visible on commit."""

    def __init__(self, db: FakeDatabase) -> None:
        self._db = db
        self._pending: list[Callable[[], None]] = []
        self.messages = FakeMessageReader(db)
        self.messages_w = FakeMessageWriter(db, self._pending)
        self.notifications = FakeNotificationReader(db)
        self.notifications_w = FakeNotificationWriter(db, self._pending)

    async def flush(self) -> None:
        pass

    async def commit(self) -> None:
        if self._db.fail_commits:
            raise ConnectionError("database unavailable")
        for apply in self._pending:
            apply()
        self._pending.clear()
        self._db.commits += 1

    async def rollback(self) -> None:
        self._pending.clear()

    async def __aenter__(self) -> FakeUoW:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.rollback()


class FakeHandle:
    """Stands in for a WebSocket."""

    def __init__(self, *, delay: float = 0.0, fail: bool = False) -> None:
        self.delay = delay
        self.fail = fail
        self.sent: list[dict[str, Any]] = []
        self.closed: tuple[int, str | None] | None = None

    async def send_text(self, data: str) -> None:
        if self.fail:
            raise RuntimeError("socket is gone")
        if self.delay:
            await asyncio.sleep(self.delay)
        self.sent.append(json.loads(data))

    async def close(self, code: int = 1000, reason: str | None = None) -> None:
        self.closed = (code, reason)

    def events(self, event_type: str) -> list[dict[str, Any]]:
        return [e["data"] for e in self.sent if e["type"] == event_type]


@dataclass
class FakeUserStatus:
    banned: set[str] = field(default_factory=set)

    async def is_user_active(self, user_id: str) -> bool:
        return user_id not in self.banned

    async def ban(self, user_id: str) -> None:
        self.banned.add(user_id)

    async def unban(self, user_id: str) -> None:
        self.banned.discard(user_id)


class SteppingClock:
    """Returns the same instant until advanced; exercises timestamp bumping."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)


async def wait_until(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.005)


@pytest.fixture
def alice() -> Principal:
    return Principal(user_id="alice", role=UserRole.STUDENT)


@pytest.fixture
def bob() -> Principal:
    return Principal(user_id="bob", role=UserRole.TUTOR)


@pytest.fixture
def db() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture
def uow_factory(db: FakeDatabase) -> Callable[[], FakeUoW]:
    return lambda: FakeUoW(db)


@pytest.fixture
def registry() -> ConnectionRegistry:
    return ConnectionRegistry(shards=4, max_connections=50, max_per_user=3)


@pytest.fixture
def store(uow_factory) -> ConversationStore:
    return ConversationStore(uow_factory, max_length=200)


@pytest.fixture
def router(registry: ConnectionRegistry) -> DeliveryRouter:
    return DeliveryRouter(registry, timeout=0.1)


@pytest.fixture
def fanout(router: DeliveryRouter, uow_factory) -> NotificationFanout:
    return NotificationFanout(router, uow_factory, concurrency=10)


@pytest.fixture
def user_status() -> FakeUserStatus:
    return FakeUserStatus()


@pytest.fixture
def gate(user_status: FakeUserStatus) -> AuthenticationGate:
    return AuthenticationGate(HS256Verifier(settings.JWT_SECRET), user_status)
