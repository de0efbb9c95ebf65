"""WebSocket connection manager with per-session rooms.

The membership table (session id -> connections) is process-wide state
owned by this class alone. It is mutated only under ``self._lock`` and is
read through ``members``/``member_count``.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from support_relay.domains.chat.keys import online_key
from support_relay.infrastructure.cache import CacheService

logger = logging.getLogger("ws")


@dataclass
class Connection:
    """Represents an active WebSocket connection."""

    websocket: WebSocket
    connection_id: str = field(default_factory=lambda: uuid4().hex)
    session_id: UUID | None = None
    connected_at: datetime = field(default_factory=datetime.utcnow)


class ConnectionManager:
    """Manages WebSocket connections and session rooms."""

    def __init__(self, cache: CacheService | None = None):
        # Map of websocket id -> Connection
        self._connections: dict[int, Connection] = {}
        # Map of session_id -> websocket ids in that room
        self._members: dict[UUID, set[int]] = {}
        self._lock = asyncio.Lock()
        self._cache = cache

    def _get_cache(self) -> CacheService:
        if self._cache is None:
            from support_relay.core.di import get_container

            return get_container().cache
        return self._cache

    @property
    def connection_count(self) -> int:
        """Get total number of active connections."""
        return len(self._connections)

    async def connect(self, websocket: WebSocket, session_id: UUID | None = None) -> Connection:
        """Accept a new WebSocket connection, joining its session room if given.

        Args:
            websocket: The WebSocket to connect
            session_id: Session from the connection query string, if any

        Returns:
            Connection object for tracking
        """
        await websocket.accept()
        connection = Connection(websocket=websocket)
        self._connections[id(websocket)] = connection

        logger.info(
            "WebSocket connected",
            extra={
                "service": "ws",
                "connection_id": connection.connection_id,
                "metadata": {"connection_count": self.connection_count},
            },
        )

        if session_id is not None:
            await self.join_session(websocket, session_id)
        return connection

    async def join_session(self, websocket: WebSocket, session_id: UUID) -> None:
        """Add a connection to a session room and announce it to the room.

        A connection belongs to one room at a time; joining a new room
        leaves the previous one.
        """
        connection = self._connections.get(id(websocket))
        if connection is None or connection.session_id == session_id:
            return
        if connection.session_id is not None:
            await self._leave(connection)

        async with self._lock:
            self._members.setdefault(session_id, set()).add(id(websocket))
            connection.session_id = session_id
            count = len(self._members[session_id])

        await self._get_cache().increment(online_key(session_id))

        logger.info(
            "Joined session room",
            extra={
                "service": "ws",
                "connection_id": connection.connection_id,
                "session_id": str(session_id),
                "member_count": count,
            },
        )

        await self.broadcast_to_session(
            session_id,
            {"type": "userOnline", "payload": {"sessionId": str(session_id)}},
            exclude=websocket,
        )

    async def _leave(self, connection: Connection) -> None:
        session_id = connection.session_id
        if session_id is None:
            return
        async with self._lock:
            members = self._members.get(session_id)
            if members is not None:
                members.discard(id(connection.websocket))
                if not members:
                    self._members.pop(session_id, None)
            connection.session_id = None

        cache = self._get_cache()
        key = online_key(session_id)
        if await cache.decrement(key) <= 0:
            await cache.delete(key)

    async def disconnect(self, websocket: WebSocket) -> None:
        """Handle WebSocket disconnection.

        Args:
            websocket: The WebSocket that disconnected
        """
        connection = self._connections.pop(id(websocket), None)
        if connection is None:
            return
        session_id = connection.session_id
        await self._leave(connection)

        logger.info(
            "WebSocket disconnected",
            extra={
                "service": "ws",
                "connection_id": connection.connection_id,
                "session_id": str(session_id) if session_id else None,
                "metadata": {"connection_count": self.connection_count},
            },
        )

    def get_connection(self, websocket: WebSocket) -> Connection | None:
        """Get connection info for a WebSocket."""
        return self._connections.get(id(websocket))

    def members(self, session_id: UUID) -> set[str]:
        """Connection ids currently in a session room."""
        return {
            self._connections[ws_id].connection_id
            for ws_id in self._members.get(session_id, set())
            if ws_id in self._connections
        }

    def member_count(self, session_id: UUID) -> int:
        return len(self._members.get(session_id, ()))

    async def send_message(self, websocket: WebSocket, message: dict[str, Any]) -> bool:
        """Send a message to a specific WebSocket.

        Args:
            websocket: Target WebSocket
            message: Message to send

        Returns:
            True if sent successfully, False otherwise
        """
        msg_type = message.get("type")
        if (
            websocket.client_state == WebSocketState.DISCONNECTED
            or websocket.application_state == WebSocketState.DISCONNECTED
        ):
            logger.debug(
                f"Skipping send to disconnected websocket: {msg_type}",
                extra={"service": "ws", "event_type": msg_type},
            )
            return False
        try:
            await websocket.send_json(message)
            return True
        except Exception as e:
            logger.warning(
                f"Failed to send message {msg_type}",
                extra={
                    "service": "ws",
                    "event_type": msg_type,
                    "error": str(e),
                    "error_type": type(e).__name__,
                },
            )
            return False

    async def broadcast_to_session(
        self,
        session_id: UUID,
        message: dict[str, Any],
        exclude: WebSocket | None = None,
    ) -> int:
        """Send a message to every connection in a session room.

        Args:
            session_id: Target room
            message: Message to send
            exclude: Connection to skip (usually the sender)

        Returns:
            Number of successful sends
        """
        async with self._lock:
            targets = [
                self._connections[ws_id].websocket
                for ws_id in self._members.get(session_id, set())
                if ws_id in self._connections
            ]

        sent_count = 0
        for target in targets:
            if exclude is not None and target is exclude:
                continue
            if await self.send_message(target, message):
                sent_count += 1
        return sent_count


# Global connection manager instance
_manager: ConnectionManager | None = None


def get_connection_manager() -> ConnectionManager:
    """Get the global connection manager instance."""
    global _manager
    if _manager is None:
        _manager = ConnectionManager()
    return _manager


def reset_connection_manager() -> None:
    """Drop the global connection manager (tests)."""
    global _manager
    _manager = None
