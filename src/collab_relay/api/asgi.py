"""ASGI entrypoint served by uvicorn as ``collab_relay.api.asgi:app``."""

from collab_relay.api.app import create_app
from collab_relay.config import Settings
from collab_relay.containers import build_container

settings = Settings()
app = create_app(build_container(settings))
