"""The chat room: membership, history, and the per-event state machine.

All room state lives on a Room instance. dispatch() handles one inbound
request to completion and returns the effects to deliver; it never awaits,
so two requests can never interleave mid-mutation on a single event loop.

Connection states:
    unauthenticated -> authenticated -> closed

A failed join leaves the connection unauthenticated and free to retry.
Message ownership is by display name: a member who later takes a freed name
can delete messages written under that name.
"""
import logging
import re
from typing import Callable, List, Optional

from .effects import Broadcast, Effect, ErrorKind, NoOp, Rejection, Scope, Unicast
from .history import DEFAULT_HISTORY_LIMIT, MessageHistory
from .membership import MembershipTable
from .schemas import (
    AttachmentReference,
    ChatMessage,
    ChatRequest,
    DeleteAllRequest,
    DeleteOneRequest,
    DisconnectRequest,
    JoinRequest,
    Member,
    ReplyReference,
    SendRequest,
)

logger = logging.getLogger(__name__)

# Number of recent messages replayed to a joining member
DEFAULT_REPLAY_LIMIT = 100

MAX_MESSAGE_LENGTH = 1000
REPLY_PREVIEW_LENGTH = 100
MAX_DISPLAY_NAME_LENGTH = 32

_SCRIPT_BLOCK = re.compile(r"<\s*script\b[^>]*>.*?<\s*/\s*script\s*>", re.IGNORECASE | re.DOTALL)
_SCRIPT_TAG = re.compile(r"<\s*/?\s*script\b[^>]*>?", re.IGNORECASE)


def sanitize_body(text: str, max_length: int = MAX_MESSAGE_LENGTH) -> str:
    """Trim, truncate, and strip script markup from a message body."""
    text = text.strip()[:max_length]
    # Repeat until stable so nested fragments cannot reassemble a tag.
    while True:
        cleaned = _SCRIPT_TAG.sub("", _SCRIPT_BLOCK.sub("", text))
        if cleaned == text:
            break
        text = cleaned
    return text.strip()


class Room:
    """Single shared chat room.

    Args:
        password_provider: Returns the current room password. Called on every
            join so admin changes apply immediately.
        bulk_delete_password_provider: Returns the password required for
            delete-all, or None when any member may clear history.
    """

    def __init__(
        self,
        password_provider: Callable[[], str],
        bulk_delete_password_provider: Optional[Callable[[], Optional[str]]] = None,
        *,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        replay_limit: int = DEFAULT_REPLAY_LIMIT,
        max_message_length: int = MAX_MESSAGE_LENGTH,
        reply_preview_length: int = REPLY_PREVIEW_LENGTH,
        max_display_name_length: int = MAX_DISPLAY_NAME_LENGTH,
    ) -> None:
        self._password_provider = password_provider
        self._bulk_delete_password_provider = bulk_delete_password_provider or (lambda: None)
        self.replay_limit = replay_limit
        self.max_message_length = max_message_length
        self.reply_preview_length = reply_preview_length
        self.max_display_name_length = max_display_name_length

        self.members = MembershipTable()
        self.history = MessageHistory(history_limit)

    # =========================================================================
    # Dispatch
    # =========================================================================

    def dispatch(
        self, connection_id: str, request: ChatRequest, origin: str = "unknown"
    ) -> List[Effect]:
        """Handle one request from ``connection_id`` and return its effects."""
        if isinstance(request, JoinRequest):
            return self.join(connection_id, request, origin)
        if isinstance(request, SendRequest):
            return self.send(connection_id, request)
        if isinstance(request, DeleteOneRequest):
            return self.delete_message(connection_id, request.messageId)
        if isinstance(request, DeleteAllRequest):
            return self.delete_all(connection_id, request.password)
        if isinstance(request, DisconnectRequest):
            return self.leave(connection_id)
        raise TypeError(f"Unsupported request: {type(request).__name__}")

    def is_authenticated(self, connection_id: str) -> bool:
        return connection_id in self.members

    # =========================================================================
    # Authentication gate
    # =========================================================================

    def join(self, connection_id: str, request: JoinRequest, origin: str) -> List[Effect]:
        if connection_id in self.members:
            return [Rejection(ErrorKind.ALREADY_JOINED, "Already joined the chat")]

        display_name = request.displayName.strip()
        if not display_name or len(display_name) > self.max_display_name_length:
            return [Rejection(
                ErrorKind.INVALID_FORMAT,
                f"Display name must be 1-{self.max_display_name_length} characters",
            )]

        if request.password != self._password_provider():
            logger.info("[Room] Join rejected for %r: invalid password", display_name)
            return [Rejection(ErrorKind.INVALID_CREDENTIALS, "Invalid password")]

        if self.members.find_by_name(display_name) is not None:
            logger.info("[Room] Join rejected: name %r already taken", display_name)
            return [Rejection(
                ErrorKind.NAME_TAKEN,
                "Username already taken. Please choose a different name.",
            )]

        member = Member(connectionId=connection_id, displayName=display_name, origin=origin)
        self.members.insert(member)
        logger.info(f"[Room] {display_name} joined ({len(self.members)} members)")

        replay = [m.to_wire() for m in self.history.tail(self.replay_limit)]
        return [
            Unicast("history-replay", {"messages": replay}),
            Broadcast(
                "member-joined",
                {"displayName": display_name},
                scope=Scope.OTHERS,
                origin=connection_id,
            ),
            self._presence(),
        ]

    def leave(self, connection_id: str) -> List[Effect]:
        member = self.members.remove(connection_id)
        if member is None:
            return [NoOp()]

        logger.info(f"[Room] {member.displayName} left ({len(self.members)} members)")
        return [
            Broadcast(
                "member-left",
                {"displayName": member.displayName},
                scope=Scope.OTHERS,
                origin=connection_id,
            ),
            self._presence(),
        ]

    def _presence(self) -> Broadcast:
        return Broadcast("presence", self.members.presence())

    # =========================================================================
    # Message lifecycle
    # =========================================================================

    def send(self, connection_id: str, request: SendRequest) -> List[Effect]:
        member = self.members.get(connection_id)
        if member is None:
            return [Rejection(ErrorKind.NOT_AUTHENTICATED, "Not authenticated")]

        body = sanitize_body(request.body or "", self.max_message_length)
        if not body and request.attachment is None:
            return [Rejection(ErrorKind.EMPTY_MESSAGE, "Message cannot be empty")]

        message = ChatMessage(
            author=member.displayName,
            body=body,
            replyTo=self._reply_snapshot(request.replyTo),
            attachment=self._attachment_snapshot(request.attachment),
        )
        evicted = self.history.append(message)
        if evicted is not None:
            logger.debug("[Room] History full, evicted message %s", evicted.id)

        return [Broadcast("message-created", message.to_wire(), origin=connection_id)]

    def _reply_snapshot(self, reply: Optional[ReplyReference]) -> Optional[ReplyReference]:
        if reply is None:
            return None
        return ReplyReference(
            id=reply.id,
            author=reply.author,
            body=reply.body[:self.reply_preview_length],
        )

    @staticmethod
    def _attachment_snapshot(
        attachment: Optional[AttachmentReference],
    ) -> Optional[AttachmentReference]:
        if attachment is None:
            return None
        return attachment.model_copy()

    def delete_message(self, connection_id: str, message_id: str) -> List[Effect]:
        member = self.members.get(connection_id)
        if member is None:
            return [Rejection(ErrorKind.NOT_AUTHENTICATED, "Not authenticated")]

        message = self.history.find(message_id)
        if message is None:
            return [Rejection(ErrorKind.NOT_FOUND, "Message not found")]

        if message.author != member.displayName:
            logger.warning(
                "[Room] %s tried to delete message %s by %s",
                member.displayName, message_id, message.author,
            )
            return [Rejection(ErrorKind.NOT_OWNER, "You can only delete your own messages")]

        self.history.remove(message_id)
        logger.info(f"[Room] Message {message_id} deleted by {member.displayName}")
        return [Broadcast("message-deleted", {"messageId": message_id}, origin=connection_id)]

    def delete_all(self, connection_id: str, password: Optional[str] = None) -> List[Effect]:
        member = self.members.get(connection_id)
        if member is None:
            return [Rejection(ErrorKind.NOT_AUTHENTICATED, "Not authenticated")]

        required = self._bulk_delete_password_provider()
        if required and password != required:
            logger.warning("[Room] Bulk delete by %s rejected: bad password", member.displayName)
            return [Rejection(ErrorKind.INVALID_CREDENTIALS, "Invalid password for deleting all messages")]

        self.history.clear()
        logger.info(f"[Room] All messages deleted by {member.displayName}")
        return [Broadcast("history-cleared", {}, origin=connection_id)]
