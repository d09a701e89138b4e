"""In-process registry of realtime connections, rooms and group-update registrations."""
import asyncio
import logging
import uuid
from abc import ABC, abstractmethod
from collections import defaultdict
from contextlib import suppress
from typing import Any

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class Connection(ABC):
    """One client connection. Subclasses decide how a frame reaches the client."""

    def __init__(self, user_id: int | None = None, connection_id: str | None = None):
        self.id = connection_id or uuid.uuid4().hex
        # Verified by the auth layer at connect time
        self.user_id = user_id

    @abstractmethod
    def send(self, event: str, data: Any) -> None:
        """Queue a frame for delivery. Must not block."""

    def __repr__(self):
        return f'<{type(self).__name__} {self.id} user={self.user_id}>'


class WebSocketConnection(Connection):
    """Connection backed by a FastAPI WebSocket.

    Frames go through an outbound queue drained by one writer task, so sends
    never block the caller and arrive in the order they were queued.
    """

    def __init__(self, websocket: WebSocket, user_id: int | None = None):
        super().__init__(user_id=user_id)
        self.websocket = websocket
        self._outbox: asyncio.Queue[dict] = asyncio.Queue()
        self._writer: asyncio.Task | None = None

    def start(self):
        self._writer = asyncio.create_task(self._write_loop())

    @property
    def writing(self) -> bool:
        return self._writer is not None and not self._writer.done()

    def send(self, event: str, data: Any) -> None:
        if self._writer is not None and self._writer.done():
            raise ConnectionError(f'Writer for {self.id} has stopped')
        self._outbox.put_nowait({'event': event, 'data': data})

    async def _write_loop(self):
        while True:
            frame = await self._outbox.get()
            try:
                await self.websocket.send_json(frame)
            except Exception as e:
                # The receive loop sees the broken socket and runs disconnect cleanup
                logger.warning(f'Dropping writer for {self.id}: {e}')
                return

    async def close(self):
        if self._writer is None:
            return
        self._writer.cancel()
        with suppress(asyncio.CancelledError):
            await self._writer
        self._writer = None


class RealtimeHub:
    """Tracks which connections are in which rooms and which user each one represents.

    Only ever touched from the event loop, so no locking.
    """

    def __init__(self):
        self.connections: dict[str, Connection] = {}
        # room id -> connections joined to it
        self.rooms: dict[str, set[Connection]] = defaultdict(set)
        # connection id -> room ids it joined (for disconnect cleanup)
        self.connection_rooms: dict[str, set[str]] = defaultdict(set)
        # connection id -> user id registered for group-level events
        self.registrations: dict[str, int] = {}

    def connect(self, connection: Connection):
        self.connections[connection.id] = connection
        logger.info(f'Connection {connection.id} opened (user {connection.user_id}). Total: {len(self.connections)}')

    def join(self, connection: Connection, room_id: str):
        """Add connection to room. Joining twice is a no-op."""
        self.connections.setdefault(connection.id, connection)
        self.rooms[room_id].add(connection)
        self.connection_rooms[connection.id].add(room_id)
        logger.info(f'Connection {connection.id} joined {room_id} ({len(self.rooms[room_id])} in room)')

    def leave(self, connection: Connection, room_id: str):
        members = self.rooms.get(room_id)
        if members is not None:
            members.discard(connection)
            if not members:
                del self.rooms[room_id]
        joined = self.connection_rooms.get(connection.id)
        if joined is not None:
            joined.discard(room_id)
            if not joined:
                del self.connection_rooms[connection.id]
        logger.info(f'Connection {connection.id} left {room_id}')

    def register(self, connection: Connection, user_id: int):
        """Associate connection with user_id for broadcast_to_all. Overwrites."""
        self.connections.setdefault(connection.id, connection)
        self.registrations[connection.id] = user_id
        logger.info(f'User {user_id} registered for group updates on {connection.id}')

    def unregister(self, connection: Connection):
        user_id = self.registrations.pop(connection.id, None)
        logger.info(f'User {user_id} unregistered from group updates on {connection.id}')

    def on_disconnect(self, connection: Connection):
        """Release every room membership and the registration of connection."""
        for room_id in list(self.connection_rooms.get(connection.id, ())):
            self.leave(connection, room_id)
        self.registrations.pop(connection.id, None)
        self.connections.pop(connection.id, None)
        logger.info(f'Connection {connection.id} closed. Remaining: {len(self.connections)}')

    def is_joined(self, connection: Connection, room_id: str) -> bool:
        return connection in self.rooms.get(room_id, ())

    def registered_user(self, connection: Connection) -> int | None:
        return self.registrations.get(connection.id)

    def broadcast_to_room(self, room_id: str, event: str, payload: Any) -> int:
        """Send to every connection in room_id. Returns how many were handed the frame."""
        targets = list(self.rooms.get(room_id, ()))
        logger.info(f'Emitting {event} to {room_id} ({len(targets)} connections)')
        return self._deliver(targets, event, payload)

    def broadcast_to_all(self, event: str, payload: Any) -> int:
        """Send to every connection currently registered for group updates."""
        targets = [
            self.connections[connection_id]
            for connection_id in self.registrations
            if connection_id in self.connections
        ]
        logger.info(f'Emitting {event} to {len(targets)} registered connections')
        return self._deliver(targets, event, payload)

    def _deliver(self, targets: list[Connection], event: str, payload: Any) -> int:
        delivered = 0
        for connection in targets:
            try:
                connection.send(event, payload)
                delivered += 1
            except Exception as e:
                # Best effort: a connection mid-disconnect must not stop the fan-out
                logger.warning(f'Failed to send {event} to {connection.id}: {e}')
        return delivered
