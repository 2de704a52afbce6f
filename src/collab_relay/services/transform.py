"""Positional adjustment of concurrent edits.

This is a best-effort heuristic, not operational transform. Concurrent
deletes are never adjusted against each other and only the bounded history
window is consulted, so replicas can diverge when deletes interleave or when
more than two writers race on overlapping ranges.
"""

from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass, field

from collab_relay.domain.operations import (
    EditOperation,
    OperationKind,
    PendingOperation,
)

DEFAULT_HISTORY_LIMIT = 100

FileKey = tuple[str, str]


def adjust_against(incoming: EditOperation, prior: EditOperation) -> EditOperation:
    """Shift an incoming operation to account for one earlier operation."""
    if prior.kind == OperationKind.INSERT:
        if prior.offset <= incoming.offset:
            return incoming.shifted(prior.length)
        return incoming
    if incoming.kind == OperationKind.INSERT and prior.offset < incoming.offset:
        return incoming.shifted(-prior.length)
    # delete vs delete is left untouched
    return incoming


def adjust_operation(
    incoming: EditOperation,
    client_timestamp: float,
    history: Iterable[PendingOperation],
) -> EditOperation:
    """Adjust against every queued operation stamped strictly earlier."""
    adjusted = incoming
    for pending in history:
        if pending.client_timestamp < client_timestamp:
            adjusted = adjust_against(adjusted, pending.operation)
    return adjusted


@dataclass
class OperationHistory:
    """Bounded per-file window of recently relayed operations."""

    limit: int = DEFAULT_HISTORY_LIMIT
    _queues: dict[FileKey, deque[PendingOperation]] = field(
        default_factory=dict, init=False
    )

    def entries(self, project_id: str, file_path: str) -> list[PendingOperation]:
        return list(self._queues.get((project_id, file_path), ()))

    def append(
        self, project_id: str, file_path: str, pending: PendingOperation
    ) -> None:
        """Queue an operation, dropping the oldest beyond the limit."""
        key = (project_id, file_path)
        queue = self._queues.get(key)
        if queue is None:
            queue = deque(maxlen=self.limit)
            self._queues[key] = queue
        queue.append(pending)

    def forget(self, project_id: str, file_path: str) -> None:
        self._queues.pop((project_id, file_path), None)

    def pending_count(self, project_id: str) -> int:
        return sum(
            len(queue) for (pid, _), queue in self._queues.items() if pid == project_id
        )

    def recent(
        self, project_id: str, limit: int = 10
    ) -> list[tuple[str, PendingOperation]]:
        """Return the latest operations across a project's files, oldest first."""
        entries = [
            (path, pending)
            for (pid, path), queue in self._queues.items()
            if pid == project_id
            for pending in queue
        ]
        entries.sort(key=lambda entry: entry[1].client_timestamp)
        return entries[-limit:]
