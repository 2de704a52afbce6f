"""Debounced persistence of file content."""

import logging
from dataclasses import dataclass
from typing import Protocol

from collab_relay.services.debounce import KeyedDebouncer

logger = logging.getLogger(__name__)

SYSTEM_AUTHOR = "system"


class FileContentRepository(Protocol):
    """Persistence interface for file content."""

    def update_file(
        self, project_id: str, path: str, content: str, author_id: str
    ) -> None:
        """Replace a file's content, raising when the file is missing."""


@dataclass
class DebouncedSaver:
    """Coalesces bursts of edits into one write per (project, file)."""

    repository: FileContentRepository
    debouncer: KeyedDebouncer

    def schedule_save(self, project_id: str, file_path: str, content: str) -> None:
        """Restart the quiet-period timer with the latest content."""

        async def save() -> None:
            await self._save(project_id, file_path, content)

        self.debouncer.schedule((project_id, file_path), save)

    def discard(self, project_id: str, file_path: str) -> bool:
        """Cancel a pending save, e.g. after the file was deleted."""
        return self.debouncer.cancel((project_id, file_path))

    async def flush(self) -> None:
        """Write all pending content immediately."""
        await self.debouncer.flush()

    async def flush_file(self, project_id: str, file_path: str) -> bool:
        """Write one file's pending content now, e.g. before it is renamed."""
        return await self.debouncer.flush_key((project_id, file_path))

    async def _save(self, project_id: str, file_path: str, content: str) -> None:
        try:
            self.repository.update_file(project_id, file_path, content, SYSTEM_AUTHOR)
        except Exception:
            logger.exception(
                "Debounced save failed",
                extra={"project_id": project_id, "file_path": file_path},
            )
