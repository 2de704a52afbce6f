"""Domain models for live collaboration sessions."""

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum


class PresenceStatus(str, Enum):
    """Advisory presence status reported by a client."""

    ONLINE = "online"
    AWAY = "away"
    BUSY = "busy"


@dataclass(frozen=True)
class DisplayInfo:
    """User details denormalized onto a session at join time."""

    username: str
    full_name: str | None = None
    avatar_url: str | None = None


@dataclass(frozen=True)
class CursorPosition:
    """Line/column position inside a file."""

    line: int
    col: int


@dataclass(frozen=True)
class SelectionRange:
    """Selected text range inside a file."""

    start: CursorPosition
    end: CursorPosition


@dataclass(frozen=True)
class Cursor:
    """Current cursor of a session."""

    file_path: str
    position: CursorPosition
    selection: SelectionRange | None = None


@dataclass
class Session:
    """One live connection joined to one project room."""

    connection_id: str
    user_id: str
    project_id: str
    display: DisplayInfo
    joined_at: datetime
    last_activity: datetime
    cursor: Cursor | None = None
    status: PresenceStatus = PresenceStatus.ONLINE
    activity: str | None = None

    def snapshot(self) -> "Session":
        """Return a detached copy safe to hand out of the directory."""
        return replace(self)
