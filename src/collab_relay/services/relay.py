"""Code-change and file-operation relay for project rooms."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Protocol
from uuid import uuid4

from collab_relay.adapters.websocket_hub import Broadcaster
from collab_relay.domain.access import AccessAction, AccessGrant
from collab_relay.domain.errors import (
    AccessDeniedError,
    MalformedMessageError,
    SessionNotFoundError,
)
from collab_relay.domain.files import ACTIVITY_TYPES, FileOperationKind, ProjectFile
from collab_relay.domain.operations import EditOperation, PendingOperation
from collab_relay.domain.sessions import CursorPosition, Session
from collab_relay.services.directory import (
    SessionDirectory,
    serialize_session,
    utc_now,
)
from collab_relay.services.persistence import DebouncedSaver, FileContentRepository
from collab_relay.services.transform import OperationHistory, adjust_operation

logger = logging.getLogger(__name__)


class ProjectFileRepository(Protocol):
    """Persistence interface for file-structure changes and activity."""

    def create_file(
        self, project_id: str, path: str, content: str, author_id: str
    ) -> ProjectFile:
        """Create a file, raising FileAlreadyExistsError on duplicates."""

    def delete_file(self, project_id: str, path: str) -> None:
        """Delete a file, raising FileNotFoundInProjectError when missing."""

    def rename_file(self, project_id: str, path: str, new_path: str) -> ProjectFile:
        """Move a file to a new path."""

    def record_activity(
        self, project_id: str, kind: str, actor_id: str, details: dict[str, object]
    ) -> None:
        """Append an entry to the project activity log."""


class ProjectStore(FileContentRepository, ProjectFileRepository, Protocol):
    """Project persistence needed to build a relay."""


@dataclass
class CollaborationRelay:
    """Relays edits between the sessions of a project room."""

    directory: SessionDirectory
    history: OperationHistory
    saver: DebouncedSaver
    files: ProjectFileRepository
    broadcaster: Broadcaster
    clock: Callable[[], datetime] = utc_now

    async def submit_change(  # noqa: PLR0913
        self,
        grant: AccessGrant,
        connection_id: str,
        file_path: str,
        operation: EditOperation,
        content: str,
        position: CursorPosition | None,
        client_timestamp: float,
    ) -> EditOperation:
        """Adjust, queue, relay and schedule persistence for one edit."""
        session = self._require_session(grant, connection_id, AccessAction.WRITE)
        project_id = session.project_id
        adjusted = adjust_operation(
            operation, client_timestamp, self.history.entries(project_id, file_path)
        )
        self.history.append(
            project_id,
            file_path,
            PendingOperation(
                operation=adjusted,
                connection_id=connection_id,
                user_id=session.user_id,
                client_timestamp=client_timestamp,
            ),
        )
        self.directory.touch(connection_id)
        self.saver.schedule_save(project_id, file_path, content)
        await self.broadcaster.broadcast(
            self.directory.room_connections(project_id, exclude=connection_id),
            "code-change",
            {
                "connectionId": connection_id,
                "userId": session.user_id,
                "filePath": file_path,
                "operation": serialize_operation(adjusted),
                "content": content,
                "position": (
                    {"line": position.line, "col": position.col} if position else None
                ),
                "timestamp": client_timestamp,
            },
        )
        return adjusted

    async def submit_file_operation(  # noqa: PLR0913
        self,
        grant: AccessGrant,
        connection_id: str,
        kind: FileOperationKind,
        path: str,
        new_path: str | None = None,
        content: str | None = None,
    ) -> dict[str, object]:
        """Apply a file-structure change and echo it to the whole room."""
        session = self._require_session(grant, connection_id, AccessAction.WRITE)
        project_id = session.project_id
        if kind == FileOperationKind.RENAME and not new_path:
            raise MalformedMessageError("newPath is required for rename")
        if kind == FileOperationKind.CREATE:
            created = self.files.create_file(
                project_id, path, content or "", session.user_id
            )
            result = serialize_file(created)
        elif kind == FileOperationKind.DELETE:
            self.files.delete_file(project_id, path)
            result = {"path": path}
        else:
            await self.saver.flush_file(project_id, path)
            renamed = self.files.rename_file(project_id, path, new_path)
            result = serialize_file(renamed)

        if kind != FileOperationKind.CREATE:
            self.saver.discard(project_id, path)
            self.history.forget(project_id, path)
        try:
            self.files.record_activity(
                project_id,
                ACTIVITY_TYPES[kind],
                session.user_id,
                {"filePath": path, "newPath": new_path},
            )
        except Exception:
            # the mutation is already committed
            logger.exception(
                "Failed to record file activity",
                extra={"project_id": project_id, "file_path": path},
            )
        await self.broadcaster.broadcast(
            self.directory.room_connections(project_id),
            "file-operation",
            {
                "operation": kind.value,
                "filePath": path,
                "newPath": new_path,
                "content": content,
                "result": result,
                "userId": session.user_id,
                "timestamp": self.clock().isoformat(),
            },
        )
        logger.info(
            "File %s %s in project %s", path, ACTIVITY_TYPES[kind], project_id
        )
        return result

    async def relay_typing(
        self, connection_id: str, project_id: str, file_path: str, typing: bool
    ) -> bool:
        """Relay a typing indicator to the other sessions in the room."""
        session = self.directory.find(connection_id, project_id)
        if session is None:
            return False
        self.directory.touch(connection_id)
        await self.broadcaster.broadcast(
            self.directory.room_connections(project_id, exclude=connection_id),
            "typing-start" if typing else "typing-stop",
            {
                "connectionId": connection_id,
                "userId": session.user_id,
                "filePath": file_path,
            },
        )
        return True

    async def relay_screen_share(
        self,
        connection_id: str,
        project_id: str,
        action: str,
        stream_id: str | None = None,
    ) -> bool:
        """Announce a started or stopped screen share to the other sessions."""
        session = self.directory.find(connection_id, project_id)
        if session is None:
            return False
        if action == "start":
            event = "screen-share-started"
            data: dict[str, object] = {"userId": session.user_id, "streamId": stream_id}
        else:
            event = "screen-share-stopped"
            data = {"userId": session.user_id}
        self.directory.touch(connection_id)
        await self.broadcaster.broadcast(
            self.directory.room_connections(project_id, exclude=connection_id),
            event,
            data,
        )
        return True

    async def relay_voice_signal(  # noqa: PLR0913
        self,
        connection_id: str,
        project_id: str,
        action: str,
        offer: object = None,
        answer: object = None,
        candidate: object = None,
    ) -> bool:
        """Forward WebRTC signalling to the other sessions without inspecting it."""
        session = self.directory.find(connection_id, project_id)
        if session is None:
            return False
        self.directory.touch(connection_id)
        await self.broadcaster.broadcast(
            self.directory.room_connections(project_id, exclude=connection_id),
            "voice-chat-signal",
            {
                "from": session.user_id,
                "action": action,
                "offer": offer,
                "answer": answer,
                "candidate": candidate,
            },
        )
        return True

    async def add_comment(  # noqa: PLR0913
        self,
        grant: AccessGrant,
        connection_id: str,
        file_path: str,
        line_number: int,
        comment: str,
        thread: str | None = None,
    ) -> dict[str, object]:
        """Stamp a review comment and broadcast it to the whole room."""
        session = self._require_session(grant, connection_id, AccessAction.READ)
        comment_data: dict[str, object] = {
            "id": str(uuid4()),
            "userId": session.user_id,
            "filePath": file_path,
            "lineNumber": line_number,
            "comment": comment,
            "thread": thread,
            "timestamp": self.clock().isoformat(),
            "resolved": False,
        }
        await self.broadcaster.broadcast(
            self.directory.room_connections(session.project_id),
            "comment-added",
            comment_data,
        )
        return comment_data

    def project_stats(self, project_id: str) -> dict[str, object]:
        """Return presence and recent-operation diagnostics for a project."""
        sessions = self.directory.list_active(project_id)
        return {
            "projectId": project_id,
            "activeUsers": len(sessions),
            "users": [serialize_session(session) for session in sessions],
            "totalOperations": self.history.pending_count(project_id),
            "recentActivity": [
                {
                    "filePath": path,
                    "userId": pending.user_id,
                    "operation": serialize_operation(pending.operation),
                    "timestamp": pending.client_timestamp,
                }
                for path, pending in self.history.recent(project_id)
            ],
        }

    async def run_inactivity_sweep(
        self, interval_seconds: float, threshold: timedelta
    ) -> None:
        """Evict idle sessions periodically until cancelled."""
        while True:
            await asyncio.sleep(interval_seconds)
            try:
                await self.directory.evict_inactive(threshold)
            except Exception:
                logger.exception("Inactivity sweep failed")

    async def close(self) -> None:
        """Flush pending saves before shutdown."""
        await self.saver.flush()

    def _require_session(
        self, grant: AccessGrant, connection_id: str, action: AccessAction
    ) -> Session:
        session = self.directory.find(connection_id)
        if session is None or session.project_id != grant.project_id:
            raise SessionNotFoundError("Join the project before editing it")
        if session.user_id != grant.user_id or not grant.covers(
            session.project_id, action
        ):
            raise AccessDeniedError("Insufficient permissions")
        return session


def serialize_operation(operation: EditOperation) -> dict[str, object]:
    return {
        "kind": operation.kind.value,
        "offset": operation.offset,
        "payload": operation.payload,
    }


def serialize_file(file: ProjectFile) -> dict[str, object]:
    return {
        "path": file.path,
        "name": file.name,
        "parent": file.parent,
        "version": file.version,
        "size": file.size,
    }
