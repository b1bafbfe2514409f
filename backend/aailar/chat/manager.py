"""WebSocket connection manager for the chat room.

This module binds the transport-free Room to live WebSocket connections.

Key features:
    - Server-assigned connection ids (never client supplied)
    - Admission guard applied before any other handling
    - Concurrent broadcast with asyncio.gather()
    - Broadcasts reach authenticated members only
    - Library bridge: file, link and password-change events forwarded into the room

Thread Safety:
    This implementation is designed for async/await usage with a single event loop.
    It is NOT thread-safe for concurrent access from multiple threads.

Performance Notes:
    - Failed sends are logged and ignored; the transport's own ping timeout
      eventually raises WebSocketDisconnect and the normal leave path runs.
"""
import asyncio
import logging
import uuid
from typing import Dict, Iterable, List, Optional, Tuple

from fastapi import WebSocket

from aailar.config import AppConfig, RoomPasswordStore, get_config

from .admission import AdmissionGuard
from .effects import Broadcast, Effect, NoOp, Rejection, Scope, Unicast
from .room import Room
from .schemas import ChatRequest

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Owns the live sockets, the admission guard and the single Room.

    Attributes:
        connections: connection id -> WebSocket, for every admitted socket.
        origins: connection id -> origin key used by the admission guard.
        passwords: Runtime-mutable room password.
        guard: Global and per-origin connection caps.
        room: The chat room state machine.
    """

    def __init__(self, config: AppConfig) -> None:
        self.connections: Dict[str, WebSocket] = {}
        self.origins: Dict[str, str] = {}
        self.passwords = RoomPasswordStore(config.secrets.chat_password)
        self._bulk_delete_password = config.secrets.bulk_delete_password
        self.guard = AdmissionGuard(
            max_total=config.chat.max_total_connections,
            max_per_origin=config.chat.max_connections_per_origin,
        )
        self.room = Room(
            self.passwords.get,
            lambda: self._bulk_delete_password,
            history_limit=config.chat.history_limit,
            replay_limit=config.chat.replay_limit,
            max_message_length=config.chat.max_message_length,
            reply_preview_length=config.chat.reply_preview_length,
            max_display_name_length=config.chat.max_display_name_length,
        )

    # =========================================================================
    # Connection lifecycle
    # =========================================================================

    async def connect(
        self, websocket: WebSocket, origin: str
    ) -> Tuple[Optional[str], Optional[Rejection]]:
        """Run a new WebSocket through the admission guard and accept it.

        The slot is taken before accepting. The socket is accepted even when
        rejected so the rejection can be reported; the caller then closes it.

        Returns:
            Tuple of (connection_id, rejection). Exactly one is None.
        """
        admitted, kind, reason = self.guard.admit(origin)
        if not admitted:
            await websocket.accept()
            return None, Rejection(kind, reason)

        connection_id = str(uuid.uuid4())
        self.connections[connection_id] = websocket
        self.origins[connection_id] = origin
        try:
            await websocket.accept()
        except Exception:
            self.connections.pop(connection_id, None)
            self.origins.pop(connection_id, None)
            self.guard.release(origin)
            raise
        logger.info(
            f"[Manager] Connection {connection_id} admitted from {origin} "
            f"({self.guard.total} open)"
        )
        return connection_id, None

    async def handle(self, connection_id: str, request: ChatRequest) -> List[Effect]:
        """Dispatch one request to the room and deliver its effects."""
        origin = self.origins.get(connection_id, "unknown")
        effects = self.room.dispatch(connection_id, request, origin)
        await self.deliver(connection_id, effects)
        return effects

    def disconnect(self, connection_id: str) -> List[Effect]:
        """Release the connection's slot and remove it from the room.

        Returns the leave effects; the caller delivers them.
        """
        self.connections.pop(connection_id, None)
        origin = self.origins.pop(connection_id, None)
        if origin is not None:
            self.guard.release(origin)
        return self.room.leave(connection_id)

    # =========================================================================
    # Delivery
    # =========================================================================

    async def deliver(self, connection_id: Optional[str], effects: Iterable[Effect]) -> None:
        """Perform effects in order on behalf of ``connection_id``."""
        for effect in effects:
            if isinstance(effect, NoOp):
                continue
            if isinstance(effect, Broadcast):
                await self.broadcast(effect)
            elif isinstance(effect, (Unicast, Rejection)):
                if isinstance(effect, Rejection):
                    logger.info(
                        f"[Manager] Rejected request from {connection_id}: "
                        f"{effect.kind.value} ({effect.reason})"
                    )
                websocket = self.connections.get(connection_id) if connection_id else None
                if websocket is not None:
                    await self._safe_send(websocket, {"type": effect.event, **effect.payload})

    async def broadcast(self, effect: Broadcast) -> None:
        """Send a broadcast to authenticated members concurrently."""
        targets = [
            self.connections[cid]
            for cid in self.room.members.connection_ids()
            if cid in self.connections
            and not (effect.scope == Scope.OTHERS and cid == effect.origin)
        ]
        if not targets:
            return

        message = {"type": effect.event, **effect.payload}
        await asyncio.gather(
            *[self._safe_send(conn, message) for conn in targets],
            return_exceptions=True
        )

    async def send_rejection(self, websocket: WebSocket, rejection: Rejection) -> None:
        """Report a rejection on a socket that has no connection id."""
        await self._safe_send(websocket, {"type": rejection.event, **rejection.payload})

    async def _safe_send(self, connection: WebSocket, message: dict) -> bool:
        """Send a message to a WebSocket connection with error handling.

        Returns:
            True if successful, False if connection failed.
        """
        try:
            await connection.send_json(message)
            return True
        except Exception as e:
            logger.debug(f"Failed to send to connection: {e}")
            return False

    # =========================================================================
    # Library bridge
    # =========================================================================

    async def notify_file_uploaded(self, upload: dict) -> None:
        """Forward a completed upload from the file store to the room."""
        logger.info(f"[Manager] Forwarding upload {upload.get('originalName')} to chat")
        await self.broadcast(Broadcast("file-uploaded", dict(upload)))

    async def notify_file_deleted(self, file_id: str, file_name: str) -> None:
        await self.broadcast(Broadcast("file-deleted", {"fileId": file_id, "fileName": file_name}))

    async def notify_link_uploaded(self, link: dict) -> None:
        """Forward a newly shared link to the room."""
        logger.info(f"[Manager] Forwarding link {link.get('title')} to chat")
        await self.broadcast(Broadcast("link-uploaded", dict(link)))

    async def notify_link_deleted(self, link_id: str, link_title: str) -> None:
        await self.broadcast(Broadcast("link-deleted", {"linkId": link_id, "linkTitle": link_title}))

    async def notify_chat_password_changed(self, changed_at: int) -> None:
        """Tell members the room password was replaced; nobody is removed."""
        await self.broadcast(Broadcast(
            "chat-password-changed",
            {
                "message": "Chat room password has been updated by admin",
                "changedAt": changed_at,
            },
        ))

    # =========================================================================
    # Admin views
    # =========================================================================

    def get_room_size(self) -> int:
        """Number of authenticated members."""
        return len(self.room.members)

    def get_member_details(self) -> List[dict]:
        """Members including origin; for the admin surface only."""
        return [
            {"displayName": m.displayName, "origin": m.origin, "joinedAt": m.joinedAt}
            for m in self.room.members
        ]


_manager: Optional[ConnectionManager] = None


def get_manager() -> ConnectionManager:
    """Return the process-wide manager, creating it from config on first use."""
    global _manager
    if _manager is None:
        _manager = ConnectionManager(get_config())
    return _manager


def reset_manager(config: Optional[AppConfig] = None) -> ConnectionManager:
    """Replace the process-wide manager with a fresh one (used by tests)."""
    global _manager
    _manager = ConnectionManager(config or get_config())
    return _manager
