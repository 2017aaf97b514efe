"""
Real-time Connection Manager

Keeps every open WebSocket keyed by user id and fans out events:
- Task created/updated/deleted (everyone)
- Comment events (everyone)
- Direct messages (sender and recipient)
- Group channel messages and membership changes (channel members)

A user may hold several sockets (one per tab or device). Sends are sequential
and best effort: a socket that fails a send is dropped from the registry.
"""

import asyncio
from typing import Dict, List, Optional, Any, Iterable
from datetime import datetime
from dataclasses import dataclass, field
from enum import Enum
from fastapi import WebSocket

from teamdesk.core.logging_config import logger


class EventType(str, Enum):
    """WebSocket event types"""
    # Connection events
    CONNECTION_STATUS = "connection_status"

    # Task events
    TASK_CREATED = "task_created"
    TASK_UPDATED = "task_updated"
    TASK_DELETED = "task_deleted"

    # Comment events
    COMMENT_CREATED = "COMMENT_CREATED"
    COMMENT_UPDATED = "COMMENT_UPDATED"
    COMMENT_DELETED = "COMMENT_DELETED"

    # Chat events
    PRIVATE_MESSAGE = "private_message"
    NEW_GROUP_MESSAGE = "NEW_GROUP_MESSAGE"
    CHANNEL_MEMBER_ADDED = "CHANNEL_MEMBER_ADDED"
    CHANNEL_MEMBER_REMOVED = "CHANNEL_MEMBER_REMOVED"

    # System events
    ERROR = "error"
    PING = "ping"
    PONG = "pong"


@dataclass
class UserConnection:
    """One open socket belonging to a user"""
    websocket: WebSocket
    user_id: str
    connected_at: datetime = field(default_factory=datetime.utcnow)
    last_activity: datetime = field(default_factory=datetime.utcnow)


def build_message(event_type: EventType, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Mutation event, payload nested under data"""
    return {
        "type": event_type.value,
        "data": data or {},
        "timestamp": datetime.utcnow().isoformat()
    }


def build_frame(event_type: EventType, **fields: Any) -> Dict[str, Any]:
    """Control frame (status, error, ping, pong) with its fields at the top level"""
    return {"type": event_type.value, **fields, "timestamp": datetime.utcnow().isoformat()}


class ConnectionManager:
    """
    Registry of live WebSocket connections.

    user_id -> [UserConnection, ...]
    """

    def __init__(self):
        self._connections: Dict[str, List[UserConnection]] = {}
        # Lock guards the registry, never held across a send
        self._lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket, user_id: str) -> UserConnection:
        """
        Accept and register a socket, then confirm the connection to the client.

        Args:
            websocket: The WebSocket connection
            user_id: Authenticated user ID

        Returns:
            UserConnection object
        """
        await websocket.accept()

        connection = UserConnection(websocket=websocket, user_id=user_id)

        async with self._lock:
            self._connections.setdefault(user_id, []).append(connection)
            total = len(self._connections[user_id])

        logger.info(f"[WS] Connected: user {user_id} ({total} socket(s))")

        await self._send(connection, build_frame(
            EventType.CONNECTION_STATUS, status="connected", userId=user_id
        ))

        return connection

    async def disconnect(self, websocket: WebSocket, user_id: str) -> None:
        """Remove one socket; the user entry goes when its last socket does."""
        async with self._lock:
            connections = self._connections.get(user_id, [])
            remaining = [c for c in connections if c.websocket is not websocket]
            if remaining:
                self._connections[user_id] = remaining
            else:
                self._connections.pop(user_id, None)

        logger.info(f"[WS] Disconnected: user {user_id}")

    async def _send(self, connection: UserConnection, message: Dict[str, Any]) -> bool:
        try:
            await connection.websocket.send_json(message)
            connection.last_activity = datetime.utcnow()
            return True
        except Exception as e:
            logger.warning(f"[WS] Send to user {connection.user_id} failed: {e}")
            return False

    async def _snapshot(self, user_ids: Optional[Iterable[str]] = None) -> List[UserConnection]:
        async with self._lock:
            if user_ids is None:
                return [c for conns in self._connections.values() for c in conns]
            wanted = set(user_ids)
            return [c for uid, conns in self._connections.items() if uid in wanted for c in conns]

    async def _drop(self, dead: List[UserConnection]) -> None:
        for connection in dead:
            await self.disconnect(connection.websocket, connection.user_id)

    async def send_to_user(
        self,
        user_id: str,
        event_type: EventType,
        data: Dict[str, Any]
    ) -> bool:
        """
        Send an event to every socket of one user.

        Returns True if at least one socket received it.
        """
        message = build_message(event_type, data)
        delivered = False
        dead = []

        for connection in await self._snapshot([user_id]):
            if await self._send(connection, message):
                delivered = True
            else:
                dead.append(connection)

        await self._drop(dead)
        return delivered

    async def broadcast(
        self,
        event_type: EventType,
        data: Dict[str, Any],
        target_user_ids: Optional[Iterable[str]] = None
    ) -> int:
        """
        Send an event to every connected socket, or only to the target users.

        Args:
            event_type: Type of event
            data: Event payload
            target_user_ids: Restrict delivery to these users

        Returns:
            Number of sockets the message was sent to
        """
        message = build_message(event_type, data)
        sent = 0
        dead = []

        for connection in await self._snapshot(target_user_ids):
            if await self._send(connection, message):
                sent += 1
            else:
                dead.append(connection)

        await self._drop(dead)

        logger.debug(f"[WS] Broadcast {event_type.value}: sent={sent} errors={len(dead)}")
        return sent

    def is_online(self, user_id: str) -> bool:
        return bool(self._connections.get(user_id))

    def online_user_ids(self) -> List[str]:
        return list(self._connections.keys())

    @property
    def connection_count(self) -> int:
        return sum(len(conns) for conns in self._connections.values())


# Singleton instance
connection_manager = ConnectionManager()
