"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from collab_relay.adapters.supabase_project_repository import (
    SupabaseProjectRepository,
)
from collab_relay.adapters.supabase_user_repository import SupabaseUserRepository
from collab_relay.adapters.websocket_hub import WebSocketHub
from collab_relay.config import Settings
from collab_relay.services.access import AccessService
from collab_relay.services.debounce import KeyedDebouncer
from collab_relay.services.directory import SessionDirectory
from collab_relay.services.persistence import DebouncedSaver
from collab_relay.services.relay import CollaborationRelay, ProjectStore
from collab_relay.services.transform import OperationHistory
from collab_relay.services.users import UserService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    hub: WebSocketHub
    access_service: AccessService
    user_service: UserService
    relay: CollaborationRelay
    close_resources: Callable[[], Awaitable[None]]


def build_relay(
    settings: Settings, hub: WebSocketHub, repository: ProjectStore
) -> CollaborationRelay:
    """Create the relay and its in-memory state."""
    saver = DebouncedSaver(
        repository=repository,
        debouncer=KeyedDebouncer(settings.save_debounce_seconds),
    )
    return CollaborationRelay(
        directory=SessionDirectory(hub),
        history=OperationHistory(limit=settings.operation_history_limit),
        saver=saver,
        files=repository,
        broadcaster=hub,
    )


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    project_repository = SupabaseProjectRepository(supabase_client)
    user_repository = SupabaseUserRepository(supabase_client)
    hub = WebSocketHub()
    relay = build_relay(resolved_settings, hub, project_repository)

    async def close_resources() -> None:
        await relay.close()

    return AppContainer(
        settings=resolved_settings,
        hub=hub,
        access_service=AccessService(project_repository),
        user_service=UserService(user_repository),
        relay=relay,
        close_resources=close_resources,
    )
