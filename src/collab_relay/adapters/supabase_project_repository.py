"""Supabase-backed project repository."""

from dataclasses import dataclass
from datetime import UTC, datetime

from supabase import Client

from collab_relay.domain.access import AccessAction
from collab_relay.domain.errors import (
    FileAlreadyExistsError,
    FileNotFoundInProjectError,
)
from collab_relay.domain.files import ProjectFile, file_name, parent_path
from collab_relay.services.access import ProjectAccessRepository
from collab_relay.services.persistence import FileContentRepository
from collab_relay.services.relay import ProjectFileRepository

_ROLE_PERMISSIONS: dict[AccessAction, set[str]] = {
    AccessAction.READ: {"read", "write", "admin"},
    AccessAction.WRITE: {"write", "admin"},
}

_FILE_COLUMNS = "id, path, name, parent, content, size, version"


@dataclass
class SupabaseProjectRepository(
    ProjectAccessRepository, FileContentRepository, ProjectFileRepository
):
    """Supabase implementation for project membership, files and activity."""

    client: Client

    def can_access(self, user_id: str, project_id: str, action: AccessAction) -> bool:
        """Owners may do anything; collaborators need an accepted, covering role."""
        response = (
            self.client.table("projects")
            .select("id, owner_id")
            .eq("id", project_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return False
        if str(response.data[0]["owner_id"]) == user_id:
            return True
        collaborator = (
            self.client.table("project_collaborators")
            .select("role")
            .eq("project_id", project_id)
            .eq("user_id", user_id)
            .eq("status", "accepted")
            .limit(1)
            .execute()
        )
        if not collaborator.data:
            return False
        return collaborator.data[0]["role"] in _ROLE_PERMISSIONS[action]

    def update_file(
        self, project_id: str, path: str, content: str, author_id: str
    ) -> None:
        """Replace file content, keeping the previous version in history."""
        row = self._get_file_row(project_id, path)
        if row is None:
            raise FileNotFoundInProjectError(f"File not found: {path}")
        version = int(row["version"])
        self.client.table("project_file_history").insert(
            {
                "file_id": row["id"],
                "version": version,
                "content": row["content"],
                "modified_by": author_id,
            }
        ).execute()
        self.client.table("project_files").update(
            {
                "content": content,
                "size": len(content.encode("utf-8")),
                "version": version + 1,
                "modified_by": author_id,
                "updated_at": datetime.now(tz=UTC).isoformat(),
            }
        ).eq("id", row["id"]).execute()

    def create_file(
        self, project_id: str, path: str, content: str, author_id: str
    ) -> ProjectFile:
        """Insert a new file row."""
        if self._get_file_row(project_id, path) is not None:
            raise FileAlreadyExistsError(f"File already exists: {path}")
        response = (
            self.client.table("project_files")
            .insert(
                {
                    "project_id": project_id,
                    "path": path,
                    "name": file_name(path),
                    "parent": parent_path(path),
                    "content": content,
                    "size": len(content.encode("utf-8")),
                    "version": 1,
                    "modified_by": author_id,
                }
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to create file in Supabase")
        return _to_file(response.data[0])

    def delete_file(self, project_id: str, path: str) -> None:
        """Delete a file row."""
        row = self._get_file_row(project_id, path)
        if row is None:
            raise FileNotFoundInProjectError(f"File not found: {path}")
        self.client.table("project_files").delete().eq("id", row["id"]).execute()

    def rename_file(self, project_id: str, path: str, new_path: str) -> ProjectFile:
        """Move a file row to a new path."""
        row = self._get_file_row(project_id, path)
        if row is None:
            raise FileNotFoundInProjectError(f"File not found: {path}")
        if self._get_file_row(project_id, new_path) is not None:
            raise FileAlreadyExistsError(
                f"File with new name already exists: {new_path}"
            )
        response = (
            self.client.table("project_files")
            .update(
                {
                    "path": new_path,
                    "name": file_name(new_path),
                    "parent": parent_path(new_path),
                    "updated_at": datetime.now(tz=UTC).isoformat(),
                }
            )
            .eq("id", row["id"])
            .execute()
        )
        if response.data:
            return _to_file(response.data[0])
        return _to_file(
            {
                **row,
                "path": new_path,
                "name": file_name(new_path),
                "parent": parent_path(new_path),
            }
        )

    def record_activity(
        self, project_id: str, kind: str, actor_id: str, details: dict[str, object]
    ) -> None:
        """Append a project activity row."""
        self.client.table("project_activity").insert(
            {
                "project_id": project_id,
                "type": kind,
                "user_id": actor_id,
                "details_json": details,
            }
        ).execute()

    def _get_file_row(self, project_id: str, path: str) -> dict[str, object] | None:
        response = (
            self.client.table("project_files")
            .select(_FILE_COLUMNS)
            .eq("project_id", project_id)
            .eq("path", path)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return response.data[0]


def _to_file(row: dict[str, object]) -> ProjectFile:
    return ProjectFile(
        path=str(row["path"]),
        name=str(row["name"]),
        parent=str(row.get("parent") or "/"),
        version=int(row.get("version") or 1),
        size=int(row.get("size") or 0),
    )
