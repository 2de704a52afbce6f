"""Supabase-backed user repository."""

from dataclasses import dataclass

from supabase import Client

from collab_relay.domain.sessions import DisplayInfo
from collab_relay.services.users import UserRepository


@dataclass
class SupabaseUserRepository(UserRepository):
    """Supabase implementation for user profile lookups."""

    client: Client

    def get_display_info(self, user_id: str) -> DisplayInfo | None:
        """Return display details for a user, if present."""
        response = (
            self.client.table("users")
            .select("id, username, first_name, last_name, avatar_url")
            .eq("id", user_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        row = response.data[0]
        full_name = " ".join(
            part for part in (row.get("first_name"), row.get("last_name")) if part
        )
        return DisplayInfo(
            username=row["username"],
            full_name=full_name or None,
            avatar_url=row.get("avatar_url"),
        )
