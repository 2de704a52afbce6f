"""FastAPI application factory."""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager, suppress
from datetime import timedelta

from fastapi import FastAPI

from collab_relay.api.admin import router as admin_router
from collab_relay.api.collaboration import router as collaboration_router
from collab_relay.app_logging import configure_logging
from collab_relay.containers import AppContainer


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    settings = container.settings
    configure_logging(settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        state_container: AppContainer = app.state.container
        sweep = asyncio.create_task(
            state_container.relay.run_inactivity_sweep(
                settings.sweep_interval_seconds,
                timedelta(seconds=settings.inactivity_threshold_seconds),
            )
        )
        logger.info("Collaboration relay started")
        yield
        sweep.cancel()
        with suppress(asyncio.CancelledError):
            await sweep
        await state_container.close_resources()
        logger.info("Collaboration relay stopped")

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(admin_router)
    app.include_router(collaboration_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    return app
