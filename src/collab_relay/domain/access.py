"""Access capabilities issued at the connection boundary."""

from dataclasses import dataclass
from enum import Enum


class AccessAction(str, Enum):
    """Project actions a user can be authorized for."""

    READ = "read"
    WRITE = "write"


@dataclass(frozen=True)
class AccessGrant:
    """Proof that a user was authorized for an action on a project."""

    user_id: str
    project_id: str
    action: AccessAction

    def covers(self, project_id: str, action: AccessAction) -> bool:
        """Return true when this grant allows the action on the project."""
        if project_id != self.project_id:
            return False
        return action == self.action or self.action == AccessAction.WRITE
