"""Pydantic models for the chat room.

Stored state:
    - Member: an authenticated participant
    - ChatMessage: one entry in the message history, with optional
      ReplyReference and AttachmentReference snapshots

Inbound requests:
    Every inbound WebSocket frame is parsed into exactly one of JoinRequest,
    SendRequest, DeleteOneRequest, DeleteAllRequest or DisconnectRequest by
    parse_request(). Anything else raises RequestParseError.
"""
import time
import uuid
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, Field, StrictInt, StrictStr, ValidationError


def now_ms() -> int:
    """Current time in epoch milliseconds."""
    return int(time.time() * 1000)


def generate_message_id() -> str:
    """Timestamp plus random suffix, e.g. ``1718000000000-3f9a1c2be``."""
    return f"{now_ms()}-{uuid.uuid4().hex[:9]}"


# =============================================================================
# Stored state
# =============================================================================


class Member(BaseModel):
    """An authenticated participant in the room.

    Attributes:
        connectionId: Server-assigned id of the owning connection.
        displayName: Trimmed display name, unique case-insensitively.
        origin: Remote origin key (IP). Never broadcast to members.
        joinedAt: Join time in epoch milliseconds.
    """
    connectionId: str
    displayName: str
    origin: str
    joinedAt: int = Field(default_factory=now_ms)

    def public_view(self) -> dict:
        return {"displayName": self.displayName, "joinedAt": self.joinedAt}


class ReplyReference(BaseModel):
    """Snapshot of the message being replied to."""
    id: StrictStr
    author: StrictStr
    body: StrictStr


class AttachmentReference(BaseModel):
    """Pointer to a file already stored in the file catalog."""
    id: StrictStr
    originalName: StrictStr
    mimeType: StrictStr
    size: StrictInt = Field(..., ge=0)


class ChatMessage(BaseModel):
    """A chat message as stored in history and broadcast to members."""
    id: str = Field(default_factory=generate_message_id)
    author: str
    body: str
    createdAt: int = Field(default_factory=now_ms)
    replyTo: Optional[ReplyReference] = None
    attachment: Optional[AttachmentReference] = None

    def to_wire(self) -> dict:
        return self.model_dump(exclude_none=True)


# =============================================================================
# Inbound requests
# =============================================================================


class JoinRequest(BaseModel):
    type: Literal["join"] = "join"
    displayName: StrictStr
    password: StrictStr


class SendRequest(BaseModel):
    type: Literal["send-message"] = "send-message"
    body: Optional[StrictStr] = None
    replyTo: Optional[ReplyReference] = None
    attachment: Optional[AttachmentReference] = None


class DeleteOneRequest(BaseModel):
    type: Literal["delete-message"] = "delete-message"
    messageId: StrictStr


class DeleteAllRequest(BaseModel):
    type: Literal["delete-all-messages"] = "delete-all-messages"
    password: Optional[StrictStr] = None


class DisconnectRequest(BaseModel):
    type: Literal["disconnect"] = "disconnect"


ChatRequest = Union[
    JoinRequest, SendRequest, DeleteOneRequest, DeleteAllRequest, DisconnectRequest
]

_REQUEST_TYPES = {
    "join": JoinRequest,
    "send-message": SendRequest,
    "delete-message": DeleteOneRequest,
    "delete-all-messages": DeleteAllRequest,
}


class RequestParseError(ValueError):
    """Raised when an inbound frame does not match any request shape."""


def parse_request(data: Any) -> ChatRequest:
    """Validate a decoded JSON frame into a typed request.

    ``disconnect`` is not accepted from the wire; the transport produces
    DisconnectRequest itself when the socket closes.

    Raises:
        RequestParseError: If the frame is not an object, names an unknown
            event, or has a malformed payload.
    """
    if not isinstance(data, dict):
        raise RequestParseError("Frame must be a JSON object")

    event = data.get("type")
    model = _REQUEST_TYPES.get(event) if isinstance(event, str) else None
    if model is None:
        raise RequestParseError(f"Unknown event type: {event!r}")

    try:
        return model.model_validate(data)
    except ValidationError as e:
        fields = ", ".join(
            ".".join(str(p) for p in err["loc"]) for err in e.errors()
        )
        raise RequestParseError(f"Invalid {event} payload ({fields})") from e
