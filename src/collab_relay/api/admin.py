"""Admin API endpoints with simple token auth."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from collab_relay.services.directory import serialize_session

if TYPE_CHECKING:
    from collab_relay.containers import AppContainer

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_admin_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.admin_token


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str = Depends(_get_admin_token),
) -> None:
    """Ensure requests include a valid admin token."""
    if not x_admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


@router.get("/health", dependencies=[Depends(require_admin)])
async def admin_health() -> dict[str, str]:
    """Admin health check endpoint."""
    return {"status": "ok"}


@router.get("/projects", dependencies=[Depends(require_admin)])
async def list_rooms(request: Request) -> dict[str, object]:
    """Return project ids that currently have a live room."""
    container: AppContainer = request.app.state.container
    return {"projects": container.relay.directory.project_ids()}


@router.get("/projects/{project_id}/sessions", dependencies=[Depends(require_admin)])
async def list_sessions(project_id: str, request: Request) -> dict[str, object]:
    """Return the live sessions of a project room."""
    container: AppContainer = request.app.state.container
    sessions = container.relay.directory.list_active(project_id)
    return {"sessions": [serialize_session(session) for session in sessions]}


@router.get("/projects/{project_id}/stats", dependencies=[Depends(require_admin)])
async def project_stats(project_id: str, request: Request) -> dict[str, object]:
    """Return presence and recent-operation diagnostics for a project."""
    container: AppContainer = request.app.state.container
    return container.relay.project_stats(project_id)
