"""Domain models for project files."""

from dataclasses import dataclass
from enum import Enum


class FileOperationKind(str, Enum):
    """File-structure operations relayed to a project room."""

    CREATE = "create"
    DELETE = "delete"
    RENAME = "rename"


ACTIVITY_TYPES: dict[FileOperationKind, str] = {
    FileOperationKind.CREATE: "file_created",
    FileOperationKind.DELETE: "file_deleted",
    FileOperationKind.RENAME: "file_renamed",
}


@dataclass(frozen=True)
class ProjectFile:
    """A file stored in a project."""

    path: str
    name: str
    parent: str
    version: int
    size: int


def file_name(path: str) -> str:
    """Return the last path segment."""
    return path.rsplit("/", maxsplit=1)[-1]


def parent_path(path: str) -> str:
    """Return the parent directory of a path, "/" for top-level files."""
    head, _, _ = path.rpartition("/")
    return head or "/"
