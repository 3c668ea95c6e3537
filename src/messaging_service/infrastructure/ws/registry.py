"""In-process registry of live connections.

User buckets are spread over a fixed number of shards, each guarded by its
own ``threading.Lock``; room membership has a separate lock. No method awaits,
so a lock is never held across a network write and the registry can be used
from the event loop and from threadpool handlers alike.
"""
from __future__ import annotations

import logging
import threading
import uuid
import zlib
from dataclasses import dataclass, field
from datetime import datetime, timezone

from messaging_service.application.exceptions import NotFoundError, ResourceExhaustedError
from messaging_service.application.ports.connection import ConnectionHandle
from messaging_service.domain.value_objects.enums import ConnectionState
from messaging_service.domain.value_objects.ids import ConnectionId

logger = logging.getLogger(__name__)


@dataclass(eq=False, slots=True)
class Connection:
    connection_id: ConnectionId
    user_id: str
    handle: ConnectionHandle
    opened_at: datetime
    rooms: set[str] = field(default_factory=set)
    state: ConnectionState = ConnectionState.REGISTERED

    @property
    def is_open(self) -> bool:
        return self.state != ConnectionState.DISCONNECTED


class _Shard:
    __slots__ = ("lock", "by_user")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.by_user: dict[str, dict[ConnectionId, Connection]] = {}


class ConnectionRegistry:
    """Tracks live connections per user and their room subscriptions."""

    def __init__(
        self,
        *,
        shards: int = 16,
        max_connections: int = 10_000,
        max_per_user: int = 10,
    ) -> None:
        if shards < 1:
            raise ValueError("shards must be >= 1")
        self._shards = [_Shard() for _ in range(shards)]
        self._max_connections = max_connections
        self._max_per_user = max_per_user

        # connection_id -> Connection; guarded by _index_lock
        self._index: dict[ConnectionId, Connection] = {}
        self._index_lock = threading.Lock()

        # room -> connection ids; guarded by _rooms_lock
        self._rooms: dict[str, set[ConnectionId]] = {}
        self._rooms_lock = threading.Lock()

    def _shard_for(self, user_id: str) -> _Shard:
        return self._shards[zlib.crc32(user_id.encode()) % len(self._shards)]

    def register(self, user_id: str, handle: ConnectionHandle) -> Connection:
        conn = Connection(
            connection_id=ConnectionId(uuid.uuid4().hex),
            user_id=user_id,
            handle=handle,
            opened_at=datetime.now(timezone.utc),
        )
        shard = self._shard_for(user_id)
        with shard.lock:
            user_conns = shard.by_user.setdefault(user_id, {})
            if len(user_conns) >= self._max_per_user:
                if not user_conns:
                    del shard.by_user[user_id]
                raise ResourceExhaustedError(
                    f"Too many live connections for user {user_id}"
                )
            with self._index_lock:
                if len(self._index) >= self._max_connections:
                    if not user_conns:
                        del shard.by_user[user_id]
                    raise ResourceExhaustedError("Connection limit reached")
                self._index[conn.connection_id] = conn
            user_conns[conn.connection_id] = conn
        logger.debug("Registered %s for %s", conn.connection_id, user_id)
        return conn

    def unregister(self, connection_id: str) -> Connection | None:
        """Remove a connection. Safe to call more than once."""
        with self._index_lock:
            conn = self._index.pop(ConnectionId(connection_id), None)
        if conn is None:
            return None
        conn.state = ConnectionState.DISCONNECTED

        shard = self._shard_for(conn.user_id)
        with shard.lock:
            user_conns = shard.by_user.get(conn.user_id)
            if user_conns is not None:
                user_conns.pop(conn.connection_id, None)
                if not user_conns:
                    del shard.by_user[conn.user_id]

        with self._rooms_lock:
            for room in conn.rooms:
                members = self._rooms.get(room)
                if members is None:
                    continue
                members.discard(conn.connection_id)
                if not members:
                    del self._rooms[room]
            conn.rooms.clear()
        logger.debug("Unregistered %s for %s", conn.connection_id, conn.user_id)
        return conn

    def get(self, connection_id: str) -> Connection | None:
        with self._index_lock:
            return self._index.get(ConnectionId(connection_id))

    def connections_for(self, user_id: str) -> list[Connection]:
        shard = self._shard_for(user_id)
        with shard.lock:
            return list(shard.by_user.get(user_id, {}).values())

    def is_online(self, user_id: str) -> bool:
        shard = self._shard_for(user_id)
        with shard.lock:
            return user_id in shard.by_user

    def online_users(self) -> list[str]:
        users: list[str] = []
        for shard in self._shards:
            with shard.lock:
                users.extend(shard.by_user)
        return users

    def join_room(self, connection_id: str, room_key: str) -> None:
        conn = self._require(connection_id)
        with self._rooms_lock:
            if not conn.is_open:
                raise NotFoundError("Connection is closed")
            self._rooms.setdefault(room_key, set()).add(conn.connection_id)
            conn.rooms.add(room_key)
            conn.state = ConnectionState.ROOM_JOINED

    def leave_room(self, connection_id: str, room_key: str) -> None:
        conn = self._require(connection_id)
        with self._rooms_lock:
            members = self._rooms.get(room_key)
            if members is not None:
                members.discard(conn.connection_id)
                if not members:
                    del self._rooms[room_key]
            conn.rooms.discard(room_key)
            if not conn.rooms and conn.is_open:
                conn.state = ConnectionState.REGISTERED

    def connections_in_room(self, room_key: str) -> list[Connection]:
        with self._rooms_lock:
            ids = list(self._rooms.get(room_key, ()))
        with self._index_lock:
            return [self._index[cid] for cid in ids if cid in self._index]

    def _require(self, connection_id: str) -> Connection:
        conn = self.get(connection_id)
        if conn is None:
            raise NotFoundError(f"Connection {connection_id} not found")
        return conn

    def __len__(self) -> int:
        with self._index_lock:
            return len(self._index)
