"""Project access checks performed at the connection boundary."""

from dataclasses import dataclass
from typing import Protocol

from collab_relay.domain.access import AccessAction, AccessGrant
from collab_relay.domain.errors import AccessDeniedError


class ProjectAccessRepository(Protocol):
    """Persistence interface for project membership."""

    def can_access(self, user_id: str, project_id: str, action: AccessAction) -> bool:
        """Return true when the user may perform the action on the project."""


@dataclass
class AccessService:
    """Issues access grants after checking project membership."""

    repository: ProjectAccessRepository

    def authorize(
        self, user_id: str, project_id: str, action: AccessAction
    ) -> AccessGrant:
        """Return a grant for the action or raise AccessDeniedError."""
        if not self.repository.can_access(user_id, project_id, action):
            message = (
                "Access denied to project"
                if action == AccessAction.READ
                else "Insufficient permissions"
            )
            raise AccessDeniedError(message)
        return AccessGrant(user_id=user_id, project_id=project_id, action=action)
