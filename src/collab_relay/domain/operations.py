"""Domain models for in-flight edit operations."""

from dataclasses import dataclass
from enum import Enum


class OperationKind(str, Enum):
    """Supported edit operation kinds."""

    INSERT = "insert"
    DELETE = "delete"


@dataclass(frozen=True)
class EditOperation:
    """A single insert or delete against one file's content.

    Inserts carry the inserted text as payload, deletes carry the number of
    deleted characters.
    """

    kind: OperationKind
    offset: int
    payload: str | int

    @property
    def length(self) -> int:
        """Number of characters inserted or deleted."""
        if isinstance(self.payload, str):
            return len(self.payload)
        return int(self.payload)

    def shifted(self, delta: int) -> "EditOperation":
        """Return a copy moved by delta characters, never below offset 0."""
        return EditOperation(
            kind=self.kind, offset=max(0, self.offset + delta), payload=self.payload
        )


@dataclass(frozen=True)
class PendingOperation:
    """An adjusted operation kept in the per-file history window."""

    operation: EditOperation
    connection_id: str
    user_id: str
    client_timestamp: float
