"""WebSocket endpoint and event dispatch for collaboration rooms."""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING
from uuid import uuid4

from fastapi import APIRouter, Header, WebSocket, status

from collab_relay.api.messages import (
    AddCommentMessage,
    CodeChangeMessage,
    CursorMoveMessage,
    FileOperationMessage,
    JoinProjectMessage,
    PresenceUpdateMessage,
    ScreenShareMessage,
    TypingStartMessage,
    TypingStopMessage,
    VoiceChatMessage,
    parse_inbound,
)
from collab_relay.domain.access import AccessAction
from collab_relay.domain.errors import MalformedMessageError, RelayError
from collab_relay.domain.files import FileOperationKind
from collab_relay.domain.sessions import PresenceStatus

if TYPE_CHECKING:
    from collab_relay.containers import AppContainer

logger = logging.getLogger(__name__)

router = APIRouter(tags=["collaboration"])

ERROR_EVENT = "collaboration-error"


@router.websocket("/ws")
async def collaboration_socket(
    websocket: WebSocket,
    user_id: str | None = None,
    x_user_id: str | None = Header(default=None),
) -> None:
    """Serve one client connection until it disconnects.

    The user id is set by the upstream auth layer, either as the X-User-Id
    header or the user_id query parameter.
    """
    container: AppContainer = websocket.app.state.container
    resolved_user_id = x_user_id or user_id
    if not resolved_user_id:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    await websocket.accept()
    connection_id = str(uuid4())
    container.hub.register(connection_id, websocket)
    logger.info(
        "Connection opened",
        extra={"connection_id": connection_id, "user_id": resolved_user_id},
    )
    try:
        while True:
            frame = await websocket.receive()
            if frame["type"] == "websocket.disconnect":
                break
            text = frame.get("text")
            if text is None:
                await send_error(
                    container,
                    connection_id,
                    MalformedMessageError("Binary frames are not supported"),
                )
                continue
            try:
                raw = json.loads(text)
            except ValueError:
                await send_error(
                    container, connection_id, MalformedMessageError("Invalid JSON")
                )
                continue
            await dispatch(container, connection_id, resolved_user_id, raw)
    finally:
        container.hub.unregister(connection_id)
        await container.relay.directory.leave(connection_id)
        logger.info("Connection closed", extra={"connection_id": connection_id})


async def dispatch(
    container: AppContainer, connection_id: str, user_id: str, raw: object
) -> None:
    """Validate one inbound frame and run its handler.

    Relay errors go back to the sender only; nothing escapes this function.
    """
    event = raw.get("event") if isinstance(raw, dict) else None
    try:
        message = parse_inbound(raw)
    except MalformedMessageError as exc:
        await send_error(container, connection_id, exc, event)
        return
    handler = _HANDLERS[message.event]
    try:
        await handler(container, connection_id, user_id, message)
    except RelayError as exc:
        await send_error(container, connection_id, exc, message.event)
    except Exception:
        logger.exception(
            "Failed to handle event",
            extra={"connection_id": connection_id, "event": message.event},
        )
        await send_error(
            container,
            connection_id,
            RelayError(f"Failed to process {message.event}"),
            message.event,
        )


async def send_error(
    container: AppContainer,
    connection_id: str,
    error: RelayError,
    event: object = None,
) -> None:
    """Report a failure category and detail to one connection."""
    await container.hub.send(
        connection_id,
        ERROR_EVENT,
        {
            "error": error.category,
            "message": str(error),
            "event": event if isinstance(event, str) else None,
        },
    )


async def _join_project(
    container: AppContainer,
    connection_id: str,
    user_id: str,
    message: JoinProjectMessage,
) -> None:
    grant = container.access_service.authorize(
        user_id, message.data.project_id, AccessAction.READ
    )
    display = container.user_service.display_info(user_id)
    await container.relay.directory.join(grant, connection_id, display)


async def _cursor_move(
    container: AppContainer,
    connection_id: str,
    user_id: str,
    message: CursorMoveMessage,
) -> None:
    await container.relay.directory.update_cursor(
        connection_id, message.data.project_id, message.data.to_cursor()
    )


async def _code_change(
    container: AppContainer,
    connection_id: str,
    user_id: str,
    message: CodeChangeMessage,
) -> None:
    data = message.data
    grant = container.access_service.authorize(
        user_id, data.project_id, AccessAction.WRITE
    )
    await container.relay.submit_change(
        grant,
        connection_id,
        file_path=data.file_path,
        operation=data.operation.to_domain(),
        content=data.content,
        position=data.position.to_domain() if data.position else None,
        client_timestamp=data.client_timestamp,
    )


async def _file_operation(
    container: AppContainer,
    connection_id: str,
    user_id: str,
    message: FileOperationMessage,
) -> None:
    data = message.data
    grant = container.access_service.authorize(
        user_id, data.project_id, AccessAction.WRITE
    )
    await container.relay.submit_file_operation(
        grant,
        connection_id,
        kind=FileOperationKind(data.kind),
        path=data.path,
        new_path=data.new_path,
        content=data.content,
    )


async def _presence_update(
    container: AppContainer,
    connection_id: str,
    user_id: str,
    message: PresenceUpdateMessage,
) -> None:
    await container.relay.directory.update_presence(
        connection_id,
        message.data.project_id,
        PresenceStatus(message.data.status),
        message.data.activity,
    )


async def _typing(
    container: AppContainer,
    connection_id: str,
    user_id: str,
    message: TypingStartMessage | TypingStopMessage,
) -> None:
    await container.relay.relay_typing(
        connection_id,
        message.data.project_id,
        message.data.file_path,
        typing=isinstance(message, TypingStartMessage),
    )


async def _add_comment(
    container: AppContainer,
    connection_id: str,
    user_id: str,
    message: AddCommentMessage,
) -> None:
    data = message.data
    grant = container.access_service.authorize(
        user_id, data.project_id, AccessAction.READ
    )
    await container.relay.add_comment(
        grant,
        connection_id,
        file_path=data.file_path,
        line_number=data.line_number,
        comment=data.comment,
        thread=data.thread,
    )


async def _screen_share(
    container: AppContainer,
    connection_id: str,
    user_id: str,
    message: ScreenShareMessage,
) -> None:
    await container.relay.relay_screen_share(
        connection_id,
        message.data.project_id,
        message.data.action,
        stream_id=message.data.stream_id,
    )


async def _voice_chat(
    container: AppContainer,
    connection_id: str,
    user_id: str,
    message: VoiceChatMessage,
) -> None:
    data = message.data
    await container.relay.relay_voice_signal(
        connection_id,
        data.project_id,
        data.action,
        offer=data.offer,
        answer=data.answer,
        candidate=data.candidate,
    )


Handler = Callable[..., Awaitable[None]]

_HANDLERS: dict[str, Handler] = {
    "join-project": _join_project,
    "cursor-move": _cursor_move,
    "code-change": _code_change,
    "file-operation": _file_operation,
    "presence-update": _presence_update,
    "typing-start": _typing,
    "typing-stop": _typing,
    "add-comment": _add_comment,
    "screen-share": _screen_share,
    "voice-chat": _voice_chat,
}
