"""
Realtime presence hub.

Tracks which connections are viewing which bug report room and relays
collaboration events between them. State lives in memory for the lifetime of
the process and is only touched from the event loop, so no locking is needed.

Rooms are named ``bug:<id>`` for a bug report and ``user:<id>`` for the
personal room every connection joins on connect.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

import structlog

from ..db.base import generate_ulid, utc_now

logger = structlog.get_logger()

Sender = Callable[[Dict[str, Any]], Awaitable[None]]

_CLIENT_EVENTS = {"bug:join", "bug:leave", "bug:comment", "bug:typing"}


def bug_room(bug_id: str) -> str:
    return f"bug:{bug_id}"


def user_room(user_id: str) -> str:
    return f"user:{user_id}"


@dataclass
class Viewer:
    """A user viewing a bug report room."""

    id: str
    name: str
    email: str
    joined_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "joinedAt": self.joined_at.isoformat(),
        }


@dataclass
class Connection:
    """One authenticated realtime connection."""

    user_id: str
    name: str
    email: str
    send: Sender
    id: str = field(default_factory=generate_ulid)
    rooms: Set[str] = field(default_factory=set)


class PresenceHub:
    """In-memory room registry and event fan-out."""

    def __init__(self):
        self._connections: Dict[str, Connection] = {}
        # room name -> connection id -> viewer
        self._rooms: Dict[str, Dict[str, Viewer]] = {}

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    def rooms(self) -> List[str]:
        return sorted(self._rooms)

    def members(self, room: str) -> List[str]:
        return list(self._rooms.get(room, {}))

    def viewers(self, bug_id: str) -> List[Dict[str, Any]]:
        return [viewer.to_dict() for viewer in self._rooms.get(bug_room(bug_id), {}).values()]

    # Membership

    async def connect(self, user_id: str, name: str, email: str, send: Sender) -> Connection:
        """Register a connection and put it in its user's personal room."""
        connection = Connection(user_id=user_id, name=name, email=email, send=send)
        self._connections[connection.id] = connection
        self._add_member(connection, user_room(user_id))
        logger.info("realtime_connected", connection_id=connection.id, user_id=user_id)
        return connection

    async def join(self, connection_id: str, bug_id: str) -> None:
        connection = self._connections[connection_id]
        room = bug_room(bug_id)
        viewer = self._add_member(connection, room)

        await self.emit_to_room(
            room,
            "presence:userJoined",
            {
                "bugId": bug_id,
                "user": {"id": viewer.id, "name": viewer.name, "email": viewer.email},
            },
            exclude=connection_id,
        )
        await self._broadcast_viewers(bug_id)

    async def leave(self, connection_id: str, bug_id: str) -> None:
        connection = self._connections.get(connection_id)
        if connection is None:
            return
        await self._leave_room(connection, bug_id)

    async def disconnect(self, connection_id: str) -> None:
        """Drop a connection from every room it joined and refresh each roster."""
        connection = self._connections.pop(connection_id, None)
        if connection is None:
            return

        for room in sorted(connection.rooms):
            if room.startswith("bug:"):
                await self._leave_room(connection, room[len("bug:"):])
            else:
                self._remove_member(connection, room)

        logger.info("realtime_disconnected", connection_id=connection_id, user_id=connection.user_id)

    # Relays

    async def relay_comment(self, connection_id: str, bug_id: str, comment: str) -> int:
        connection = self._connections[connection_id]
        return await self.emit_to_room(
            bug_room(bug_id),
            "bug:commented",
            {
                "bugId": bug_id,
                "comment": {
                    "id": generate_ulid(),
                    "text": comment,
                    "author": {
                        "id": connection.user_id,
                        "name": connection.name,
                        "email": connection.email,
                    },
                    "createdAt": utc_now().isoformat(),
                },
            },
            exclude=connection_id,
        )

    async def relay_typing(self, connection_id: str, bug_id: str, is_typing: bool) -> int:
        connection = self._connections[connection_id]
        return await self.emit_to_room(
            bug_room(bug_id),
            "bug:userTyping",
            {
                "bugId": bug_id,
                "userId": connection.user_id,
                "userName": connection.name,
                "isTyping": bool(is_typing),
            },
            exclude=connection_id,
        )

    async def handle_message(self, connection_id: str, frame: Any) -> None:
        """Dispatch one client frame ``{"event": ..., "data": {...}}``."""
        if not isinstance(frame, dict) or not isinstance(frame.get("data", {}), dict):
            await self._send_error(connection_id, "Malformed message")
            return

        event = frame.get("event")
        data = frame.get("data") or {}
        bug_id = data.get("bugId")
        if event not in _CLIENT_EVENTS:
            await self._send_error(connection_id, f"Unknown event '{event}'")
            return
        if not isinstance(bug_id, str) or not bug_id:
            await self._send_error(connection_id, "bugId is required")
            return

        if event == "bug:join":
            await self.join(connection_id, bug_id)
        elif event == "bug:leave":
            await self.leave(connection_id, bug_id)
        elif event == "bug:comment":
            await self.relay_comment(connection_id, bug_id, str(data.get("comment", "")))
        elif event == "bug:typing":
            await self.relay_typing(connection_id, bug_id, bool(data.get("isTyping")))

    # Emitters

    async def emit_to_room(
        self,
        room: str,
        event: str,
        data: Dict[str, Any],
        exclude: Optional[str] = None,
    ) -> int:
        """Send an event to every connection in a room. Returns deliveries made."""
        delivered = 0
        for connection_id in list(self._rooms.get(room, {})):
            if connection_id == exclude:
                continue
            connection = self._connections.get(connection_id)
            if connection is not None and await self._send(connection, event, data):
                delivered += 1
        return delivered

    async def emit_to_user(self, user_id: str, event: str, data: Dict[str, Any]) -> int:
        return await self.emit_to_room(user_room(user_id), event, data)

    async def broadcast(self, event: str, data: Dict[str, Any]) -> int:
        delivered = 0
        for connection in list(self._connections.values()):
            if await self._send(connection, event, data):
                delivered += 1
        return delivered

    async def emit_bug_created(self, bug_id: str, title: str, reported_by: str) -> int:
        return await self.broadcast(
            "bug:created", {"bugId": bug_id, "title": title, "reportedBy": reported_by}
        )

    async def emit_bug_updated(self, bug_id: str, changes: Dict[str, Any]) -> int:
        return await self.emit_to_room(
            bug_room(bug_id), "bug:updated", {"bugId": bug_id, "changes": changes}
        )

    async def emit_bug_status_changed(self, bug_id: str, status: str, changed_by: str) -> int:
        return await self.emit_to_room(
            bug_room(bug_id),
            "bug:statusChanged",
            {"bugId": bug_id, "status": status, "changedBy": changed_by},
        )

    # Internals

    def _add_member(self, connection: Connection, room: str) -> Viewer:
        viewer = Viewer(id=connection.user_id, name=connection.name, email=connection.email)
        self._rooms.setdefault(room, {})[connection.id] = viewer
        connection.rooms.add(room)
        return viewer

    def _remove_member(self, connection: Connection, room: str) -> bool:
        members = self._rooms.get(room)
        connection.rooms.discard(room)
        if members is None or connection.id not in members:
            return False
        del members[connection.id]
        if not members:
            del self._rooms[room]
        return True

    async def _leave_room(self, connection: Connection, bug_id: str) -> None:
        room = bug_room(bug_id)
        if not self._remove_member(connection, room):
            return
        if room not in self._rooms:
            return
        await self.emit_to_room(
            room, "presence:userLeft", {"bugId": bug_id, "userId": connection.user_id}
        )
        await self._broadcast_viewers(bug_id)

    async def _broadcast_viewers(self, bug_id: str) -> None:
        await self.emit_to_room(
            bug_room(bug_id),
            "presence:viewers",
            {"bugId": bug_id, "viewers": self.viewers(bug_id)},
        )

    async def _send(self, connection: Connection, event: str, data: Dict[str, Any]) -> bool:
        try:
            await connection.send({"event": event, "data": data})
        except Exception as exc:
            logger.warning(
                "realtime_send_failed",
                connection_id=connection.id,
                realtime_event=event,
                error=str(exc),
            )
            return False
        return True

    async def _send_error(self, connection_id: str, message: str) -> None:
        connection = self._connections.get(connection_id)
        if connection is not None:
            await self._send(connection, "error", {"message": message})
