"""WebSocket fan-out for project rooms."""

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Protocol

logger = logging.getLogger(__name__)


class Broadcaster(Protocol):
    """Interface for delivering events to live connections."""

    async def send(
        self, connection_id: str, event: str, data: dict[str, object]
    ) -> None:
        """Send an event to a single connection."""

    async def broadcast(
        self, connection_ids: Iterable[str], event: str, data: dict[str, object]
    ) -> None:
        """Send the same event to every listed connection."""


class JsonSocket(Protocol):
    """Minimal socket surface the hub writes to."""

    async def send_json(self, data: object) -> None:
        """Send a JSON-serializable frame."""


@dataclass
class WebSocketHub(Broadcaster):
    """Broadcaster that writes event envelopes to registered sockets."""

    _sockets: dict[str, JsonSocket] = field(default_factory=dict)

    def register(self, connection_id: str, socket: JsonSocket) -> None:
        """Track a newly accepted socket."""
        self._sockets[connection_id] = socket

    def unregister(self, connection_id: str) -> None:
        """Forget a socket; unknown ids are ignored."""
        self._sockets.pop(connection_id, None)

    def is_connected(self, connection_id: str) -> bool:
        return connection_id in self._sockets

    async def send(
        self, connection_id: str, event: str, data: dict[str, object]
    ) -> None:
        """Send one event envelope; delivery failures drop the socket."""
        socket = self._sockets.get(connection_id)
        if socket is None:
            return
        try:
            await socket.send_json({"event": event, "data": data})
        except Exception:
            logger.exception(
                "Failed to deliver event",
                extra={"connection_id": connection_id, "event": event},
            )
            self.unregister(connection_id)

    async def broadcast(
        self, connection_ids: Iterable[str], event: str, data: dict[str, object]
    ) -> None:
        """Send an event to every listed connection concurrently."""
        targets = list(connection_ids)
        if not targets:
            return
        await asyncio.gather(*(self.send(target, event, data) for target in targets))
