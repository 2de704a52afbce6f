"""User display lookups."""

from dataclasses import dataclass
from typing import Protocol

from collab_relay.domain.sessions import DisplayInfo


class UserRepository(Protocol):
    """Persistence interface for user profiles."""

    def get_display_info(self, user_id: str) -> DisplayInfo | None:
        """Return display details for a user, if present."""


@dataclass
class UserService:
    """Application service for user profile lookups."""

    repository: UserRepository

    def display_info(self, user_id: str) -> DisplayInfo:
        """Return display details, falling back to the raw user id."""
        info = self.repository.get_display_info(user_id)
        if info is None:
            return DisplayInfo(username=user_id)
        return info
