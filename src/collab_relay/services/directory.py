"""In-memory directory of sessions and project rooms."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from collab_relay.adapters.websocket_hub import Broadcaster
from collab_relay.domain.access import AccessGrant
from collab_relay.domain.sessions import (
    Cursor,
    DisplayInfo,
    PresenceStatus,
    Session,
)

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class SessionDirectory:
    """Tracks who is in which project room.

    Every mutation finishes before the first await, so handlers running on the
    same event loop never observe a half-applied change. Lookups of unknown
    connections or rooms are no-ops rather than errors.
    """

    broadcaster: Broadcaster
    clock: Callable[[], datetime] = utc_now
    _sessions: dict[str, Session] = field(default_factory=dict, init=False)
    _rooms: dict[str, dict[str, Session]] = field(default_factory=dict, init=False)

    def find(self, connection_id: str, project_id: str | None = None) -> Session | None:
        """Return the live session for a connection, optionally scoped to a project."""
        session = self._sessions.get(connection_id)
        if session is None:
            return None
        if project_id is not None and session.project_id != project_id:
            return None
        return session

    def room_connections(
        self, project_id: str, exclude: str | None = None
    ) -> list[str]:
        """Return connection ids in a room, minus an optional sender."""
        room = self._rooms.get(project_id, {})
        return [connection_id for connection_id in room if connection_id != exclude]

    def list_active(self, project_id: str) -> list[Session]:
        """Return copies of every session in the room."""
        room = self._rooms.get(project_id, {})
        return [session.snapshot() for session in room.values()]

    def project_ids(self) -> list[str]:
        return list(self._rooms)

    def touch(self, connection_id: str) -> None:
        """Refresh the last-activity timestamp of a session."""
        session = self._sessions.get(connection_id)
        if session is not None:
            session.last_activity = self.clock()

    async def join(
        self, grant: AccessGrant, connection_id: str, display: DisplayInfo
    ) -> list[Session]:
        """Add a connection to the grant's project room.

        Returns the other sessions already in the room. Re-joining the same
        project replaces the session in place; joining another project leaves
        the previous room first.
        """
        project_id = grant.project_id
        previous = self._sessions.get(connection_id)
        if previous is not None and previous.project_id != project_id:
            await self.leave(connection_id)
            previous = None

        now = self.clock()
        session = Session(
            connection_id=connection_id,
            user_id=grant.user_id,
            project_id=project_id,
            display=display,
            joined_at=previous.joined_at if previous else now,
            last_activity=now,
        )
        room = self._rooms.setdefault(project_id, {})
        room[connection_id] = session
        self._sessions[connection_id] = session
        others = [s.snapshot() for cid, s in room.items() if cid != connection_id]
        room_size = len(room)

        if previous is None:
            await self.broadcaster.broadcast(
                [other.connection_id for other in others],
                "user-joined",
                {
                    "connectionId": connection_id,
                    "user": serialize_user(session),
                },
            )
            logger.info(
                "User %s joined project %s", display.username, project_id
            )
        await self.broadcaster.send(
            connection_id,
            "active-users",
            {"users": [serialize_peer(other) for other in others]},
        )
        await self.broadcaster.send(
            connection_id,
            "project-joined",
            {"projectId": project_id, "activeUsers": room_size},
        )
        return others

    async def leave(self, connection_id: str) -> Session | None:
        """Remove a connection from its room and notify the remaining peers."""
        session = self._detach(connection_id)
        if session is None:
            return None
        await self.broadcaster.broadcast(
            self.room_connections(session.project_id),
            "user-left",
            {"connectionId": connection_id, "userId": session.user_id},
        )
        logger.info(
            "User %s left project %s", session.display.username, session.project_id
        )
        return session

    async def update_cursor(
        self, connection_id: str, project_id: str, cursor: Cursor
    ) -> bool:
        """Store a cursor move and relay it to every other session in the room."""
        session = self.find(connection_id, project_id)
        if session is None:
            return False
        session.cursor = cursor
        session.last_activity = self.clock()
        await self.broadcaster.broadcast(
            self.room_connections(project_id, exclude=connection_id),
            "cursor-move",
            {
                "connectionId": connection_id,
                "userId": session.user_id,
                **serialize_cursor(cursor),
            },
        )
        return True

    async def update_presence(
        self,
        connection_id: str,
        project_id: str,
        status: PresenceStatus,
        activity: str | None,
    ) -> bool:
        """Store advisory presence and relay it to the other sessions."""
        session = self.find(connection_id, project_id)
        if session is None:
            return False
        session.status = status
        session.activity = activity
        session.last_activity = self.clock()
        await self.broadcaster.broadcast(
            self.room_connections(project_id, exclude=connection_id),
            "presence-update",
            {
                "connectionId": connection_id,
                "userId": session.user_id,
                "status": status.value,
                "activity": activity,
            },
        )
        return True

    async def evict_inactive(self, threshold: timedelta) -> list[Session]:
        """Drop sessions idle for longer than the threshold."""
        now = self.clock()
        stale = [
            session
            for session in self._sessions.values()
            if now - session.last_activity > threshold
        ]
        for session in stale:
            self._detach(session.connection_id)
        for session in stale:
            await self.broadcaster.broadcast(
                self.room_connections(session.project_id),
                "user-inactive",
                {"connectionId": session.connection_id, "userId": session.user_id},
            )
            logger.info(
                "Evicted inactive user %s from project %s",
                session.display.username,
                session.project_id,
            )
        return stale

    def _detach(self, connection_id: str) -> Session | None:
        session = self._sessions.pop(connection_id, None)
        if session is None:
            return None
        room = self._rooms.get(session.project_id)
        if room is not None:
            room.pop(connection_id, None)
            if not room:
                del self._rooms[session.project_id]
        return session


def serialize_user(session: Session) -> dict[str, object]:
    return {
        "id": session.user_id,
        "username": session.display.username,
        "fullName": session.display.full_name,
        "avatar": session.display.avatar_url,
    }


def serialize_cursor(cursor: Cursor) -> dict[str, object]:
    selection = None
    if cursor.selection is not None:
        selection = {
            "start": {
                "line": cursor.selection.start.line,
                "col": cursor.selection.start.col,
            },
            "end": {"line": cursor.selection.end.line, "col": cursor.selection.end.col},
        }
    return {
        "filePath": cursor.file_path,
        "position": {"line": cursor.position.line, "col": cursor.position.col},
        "selection": selection,
    }


def serialize_peer(session: Session) -> dict[str, object]:
    """Shape of a peer entry in the active-users payload."""
    return {
        "connectionId": session.connection_id,
        "user": serialize_user(session),
        "cursor": serialize_cursor(session.cursor) if session.cursor else None,
        "status": session.status.value,
    }


def serialize_session(session: Session) -> dict[str, object]:
    """Full diagnostic view of a session."""
    return {
        **serialize_peer(session),
        "projectId": session.project_id,
        "activity": session.activity,
        "joinedAt": session.joined_at.isoformat(),
        "lastActivity": session.last_activity.isoformat(),
    }
