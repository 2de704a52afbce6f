"""Pydantic models for inbound WebSocket events."""

from typing import Annotated, Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    model_validator,
)

from collab_relay.domain.errors import MalformedMessageError
from collab_relay.domain.operations import EditOperation, OperationKind
from collab_relay.domain.sessions import Cursor, CursorPosition, SelectionRange


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class Position(_Payload):
    """Line/column position payload."""

    line: int = Field(ge=0)
    col: int = Field(ge=0)

    def to_domain(self) -> CursorPosition:
        return CursorPosition(line=self.line, col=self.col)


class Selection(_Payload):
    """Selection range payload."""

    start: Position
    end: Position


class Operation(_Payload):
    """Edit operation payload: inserted text or deleted length."""

    kind: Literal["insert", "delete"]
    offset: int = Field(ge=0)
    payload: str | int

    @model_validator(mode="after")
    def _check_payload(self) -> "Operation":
        if self.kind == "insert" and not isinstance(self.payload, str):
            raise ValueError("insert payload must be the inserted text")
        if self.kind == "delete" and (
            not isinstance(self.payload, int) or self.payload < 0
        ):
            raise ValueError("delete payload must be a non-negative length")
        return self

    def to_domain(self) -> EditOperation:
        return EditOperation(
            kind=OperationKind(self.kind), offset=self.offset, payload=self.payload
        )


class JoinProjectData(_Payload):
    """Payload of join-project."""

    project_id: str = Field(alias="projectId", min_length=1)


class CursorMoveData(_Payload):
    """Payload of cursor-move."""

    project_id: str = Field(alias="projectId", min_length=1)
    file_path: str = Field(alias="filePath", min_length=1)
    position: Position
    selection: Selection | None = None

    def to_cursor(self) -> Cursor:
        selection = None
        if self.selection is not None:
            selection = SelectionRange(
                start=self.selection.start.to_domain(),
                end=self.selection.end.to_domain(),
            )
        return Cursor(
            file_path=self.file_path,
            position=self.position.to_domain(),
            selection=selection,
        )


class CodeChangeData(_Payload):
    """Payload of code-change."""

    project_id: str = Field(alias="projectId", min_length=1)
    file_path: str = Field(alias="filePath", min_length=1)
    operation: Operation
    content: str
    position: Position | None = None
    client_timestamp: float = Field(alias="clientTimestamp")


class FileOperationData(_Payload):
    """Payload of file-operation."""

    project_id: str = Field(alias="projectId", min_length=1)
    kind: Literal["create", "delete", "rename"]
    path: str = Field(min_length=1)
    new_path: str | None = Field(default=None, alias="newPath")
    content: str | None = None

    @model_validator(mode="after")
    def _check_new_path(self) -> "FileOperationData":
        if self.kind == "rename" and not self.new_path:
            raise ValueError("newPath is required for rename")
        return self


class PresenceUpdateData(_Payload):
    """Payload of presence-update."""

    project_id: str = Field(alias="projectId", min_length=1)
    status: Literal["online", "away", "busy"]
    activity: str | None = None


class TypingData(_Payload):
    """Payload of typing-start and typing-stop."""

    project_id: str = Field(alias="projectId", min_length=1)
    file_path: str = Field(alias="filePath", min_length=1)


class AddCommentData(_Payload):
    """Payload of add-comment."""

    project_id: str = Field(alias="projectId", min_length=1)
    file_path: str = Field(alias="filePath", min_length=1)
    line_number: int = Field(alias="lineNumber", ge=0)
    comment: str = Field(min_length=1)
    thread: str | None = None


class ScreenShareData(_Payload):
    """Payload of screen-share."""

    project_id: str = Field(alias="projectId", min_length=1)
    action: Literal["start", "stop"]
    stream_id: str | None = Field(default=None, alias="streamId")


class VoiceChatData(_Payload):
    """Payload of voice-chat; WebRTC signalling blobs are passed through as-is."""

    project_id: str = Field(alias="projectId", min_length=1)
    action: str = Field(min_length=1)
    offer: Any = None
    answer: Any = None
    candidate: Any = None


class JoinProjectMessage(BaseModel):
    event: Literal["join-project"]
    data: JoinProjectData


class CursorMoveMessage(BaseModel):
    event: Literal["cursor-move"]
    data: CursorMoveData


class CodeChangeMessage(BaseModel):
    event: Literal["code-change"]
    data: CodeChangeData


class FileOperationMessage(BaseModel):
    event: Literal["file-operation"]
    data: FileOperationData


class PresenceUpdateMessage(BaseModel):
    event: Literal["presence-update"]
    data: PresenceUpdateData


class TypingStartMessage(BaseModel):
    event: Literal["typing-start"]
    data: TypingData


class TypingStopMessage(BaseModel):
    event: Literal["typing-stop"]
    data: TypingData


class AddCommentMessage(BaseModel):
    event: Literal["add-comment"]
    data: AddCommentData


class ScreenShareMessage(BaseModel):
    event: Literal["screen-share"]
    data: ScreenShareData


class VoiceChatMessage(BaseModel):
    event: Literal["voice-chat"]
    data: VoiceChatData


InboundMessage = Annotated[
    JoinProjectMessage
    | CursorMoveMessage
    | CodeChangeMessage
    | FileOperationMessage
    | PresenceUpdateMessage
    | TypingStartMessage
    | TypingStopMessage
    | AddCommentMessage
    | ScreenShareMessage
    | VoiceChatMessage,
    Field(discriminator="event"),
]

_INBOUND = TypeAdapter(InboundMessage)


def parse_inbound(raw: object) -> InboundMessage:
    """Validate a decoded frame, raising MalformedMessageError on bad shapes."""
    try:
        return _INBOUND.validate_python(raw)
    except ValidationError as exc:
        first = exc.errors()[0] if exc.errors() else {}
        location = ".".join(str(part) for part in first.get("loc", ()))
        detail = first.get("msg", "invalid message")
        message = f"{location}: {detail}" if location else detail
        raise MalformedMessageError(message) from exc
