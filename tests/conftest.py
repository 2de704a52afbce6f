"""Shared test fixtures."""

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

import pytest

from collab_relay.adapters.websocket_hub import Broadcaster, WebSocketHub
from collab_relay.config import Settings
from collab_relay.containers import AppContainer, build_relay
from collab_relay.domain.access import AccessAction, AccessGrant
from collab_relay.domain.errors import (
    FileAlreadyExistsError,
    FileNotFoundInProjectError,
)
from collab_relay.domain.files import ProjectFile, file_name, parent_path
from collab_relay.domain.sessions import DisplayInfo
from collab_relay.services.access import AccessService, ProjectAccessRepository
from collab_relay.services.relay import ProjectStore
from collab_relay.services.users import UserRepository, UserService

TEST_SERVICE_KEY = "eyJhbGciOiJIUzI1NiJ9.eyJyb2xlIjoic2VydmljZV9yb2xlIn0.signature"


@dataclass
class InMemoryProjectRepository(ProjectAccessRepository, ProjectStore):
    """In-memory project store for tests."""

    roles: dict[tuple[str, str], str] = field(default_factory=dict)
    files: dict[tuple[str, str], str] = field(default_factory=dict)
    versions: dict[tuple[str, str], int] = field(default_factory=dict)
    updates: list[tuple[str, str, str, str]] = field(default_factory=list)
    activity: list[tuple[str, str, str, dict[str, object]]] = field(
        default_factory=list
    )
    fail_updates: bool = False
    fail_activity: bool = False

    def grant(self, user_id: str, project_id: str, role: str = "write") -> None:
        self.roles[(user_id, project_id)] = role

    def can_access(self, user_id: str, project_id: str, action: AccessAction) -> bool:
        role = self.roles.get((user_id, project_id))
        if role is None:
            return False
        if action == AccessAction.READ:
            return True
        return role in {"write", "admin"}

    def update_file(
        self, project_id: str, path: str, content: str, author_id: str
    ) -> None:
        if self.fail_updates:
            raise RuntimeError("store unavailable")
        key = (project_id, path)
        if key not in self.files:
            raise FileNotFoundInProjectError(f"File not found: {path}")
        self.files[key] = content
        self.versions[key] += 1
        self.updates.append((project_id, path, content, author_id))

    def create_file(
        self, project_id: str, path: str, content: str, author_id: str
    ) -> ProjectFile:
        key = (project_id, path)
        if key in self.files:
            raise FileAlreadyExistsError(f"File already exists: {path}")
        self.files[key] = content
        self.versions[key] = 1
        return self._to_file(project_id, path)

    def delete_file(self, project_id: str, path: str) -> None:
        key = (project_id, path)
        if key not in self.files:
            raise FileNotFoundInProjectError(f"File not found: {path}")
        del self.files[key]
        del self.versions[key]

    def rename_file(self, project_id: str, path: str, new_path: str) -> ProjectFile:
        key = (project_id, path)
        if key not in self.files:
            raise FileNotFoundInProjectError(f"File not found: {path}")
        new_key = (project_id, new_path)
        if new_key in self.files:
            raise FileAlreadyExistsError(f"File already exists: {new_path}")
        self.files[new_key] = self.files.pop(key)
        self.versions[new_key] = self.versions.pop(key)
        return self._to_file(project_id, new_path)

    def record_activity(
        self, project_id: str, kind: str, actor_id: str, details: dict[str, object]
    ) -> None:
        if self.fail_activity:
            raise RuntimeError("activity log unavailable")
        self.activity.append((project_id, kind, actor_id, details))

    def _to_file(self, project_id: str, path: str) -> ProjectFile:
        key = (project_id, path)
        return ProjectFile(
            path=path,
            name=file_name(path),
            parent=parent_path(path),
            version=self.versions[key],
            size=len(self.files[key].encode("utf-8")),
        )


@dataclass
class InMemoryUserRepository(UserRepository):
    """In-memory user repository for tests."""

    users: dict[str, DisplayInfo] = field(default_factory=dict)

    def get_display_info(self, user_id: str) -> DisplayInfo | None:
        return self.users.get(user_id)


@dataclass
class FakeBroadcaster(Broadcaster):
    """Broadcaster that records every delivered event."""

    sent: list[tuple[str, str, dict[str, object]]] = field(default_factory=list)

    async def send(
        self, connection_id: str, event: str, data: dict[str, object]
    ) -> None:
        self.sent.append((connection_id, event, data))

    async def broadcast(
        self, connection_ids: Iterable[str], event: str, data: dict[str, object]
    ) -> None:
        for connection_id in connection_ids:
            self.sent.append((connection_id, event, data))

    def events(self, event: str) -> list[tuple[str, dict[str, object]]]:
        return [
            (connection_id, data)
            for connection_id, name, data in self.sent
            if name == event
        ]

    def recipients(self, event: str) -> list[str]:
        return [connection_id for connection_id, _ in self.events(event)]

    def clear(self) -> None:
        self.sent.clear()


@dataclass
class FakeSocket:
    """Socket double that records frames and can be told to fail."""

    frames: list[object] = field(default_factory=list)
    fail: bool = False

    async def send_json(self, data: object) -> None:
        if self.fail:
            raise ConnectionError("socket closed")
        self.frames.append(data)


@dataclass
class FakeClock:
    """Controllable clock for activity timestamps."""

    now: datetime = field(
        default_factory=lambda: datetime(2024, 1, 1, 12, 0, tzinfo=UTC)
    )

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


def read_grant(user_id: str, project_id: str) -> AccessGrant:
    return AccessGrant(user_id=user_id, project_id=project_id, action=AccessAction.READ)


def write_grant(user_id: str, project_id: str) -> AccessGrant:
    return AccessGrant(
        user_id=user_id, project_id=project_id, action=AccessAction.WRITE
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key=TEST_SERVICE_KEY,
        admin_token="admin-token",
        save_debounce_seconds=0.01,
    )


@pytest.fixture
def project_repository() -> InMemoryProjectRepository:
    return InMemoryProjectRepository()


@pytest.fixture
def user_repository() -> InMemoryUserRepository:
    return InMemoryUserRepository()


@pytest.fixture
def container(
    settings: Settings,
    project_repository: InMemoryProjectRepository,
    user_repository: InMemoryUserRepository,
) -> AppContainer:
    hub = WebSocketHub()
    relay = build_relay(settings, hub, project_repository)

    async def close_resources() -> None:
        await relay.close()

    return AppContainer(
        settings=settings,
        hub=hub,
        access_service=AccessService(project_repository),
        user_service=UserService(user_repository),
        relay=relay,
        close_resources=close_resources,
    )
