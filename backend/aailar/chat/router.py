"""Chat router providing the WebSocket endpoint.

This module provides:
    - WebSocket /ws/chat: the single shared chat room

Protocol Message Types (client -> server):
    - join: {displayName, password}
    - send-message: {body, replyTo?, attachment?}
    - delete-message: {messageId}
    - delete-all-messages: {password?}

Protocol Message Types (server -> client):
    - history-replay, member-joined, member-left, presence
    - message-created, message-deleted, history-cleared
    - file-uploaded, file-deleted, link-uploaded, link-deleted
    - chat-password-changed
    - auth-error, message-error, capacity-error
"""
import json
import logging
from typing import Any, Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from aailar.config import get_config

from .effects import ErrorKind, Rejection
from .manager import get_manager
from .schemas import RequestParseError, parse_request

logger = logging.getLogger(__name__)

router = APIRouter()

# 1008 = Policy Violation
CAPACITY_CLOSE_CODE = 1008


def origin_key(websocket: WebSocket, trust_forwarded_for: bool = False) -> str:
    """Key used to count connections per remote origin."""
    if trust_forwarded_for:
        forwarded: Optional[str] = websocket.headers.get("x-forwarded-for")
        if forwarded:
            first = forwarded.split(",")[0].strip()
            if first:
                return first
    if websocket.client and websocket.client.host:
        return websocket.client.host
    return "unknown"


def decode_frame(message: dict) -> Any:
    """Decode a websocket.receive message; None for binary or non-JSON frames."""
    text = message.get("text")
    if text is None:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return None


@router.websocket("/ws/chat")
async def websocket_chat_endpoint(websocket: WebSocket) -> None:
    """WebSocket endpoint for the chat room.

    Protocol Flow:
        1. Client connects -> admission guard. On rejection the server sends
           {type: "capacity-error", kind, reason} and closes with 1008.
        2. Client sends {type: "join", displayName, password}
           -> joining client: {type: "history-replay", messages: [...]}
           -> other members: {type: "member-joined", displayName}
           -> all members: {type: "presence", count, members}
        3. Client sends {type: "send-message", body, ...}
           -> all members: {type: "message-created", ...message}
        4. On disconnect -> other members: member-left, all members: presence
    """
    manager = get_manager()
    origin = origin_key(websocket, get_config().chat.trust_forwarded_for)
    logger.info(f"[WS] New connection from {origin}")

    connection_id, rejection = await manager.connect(websocket, origin)
    if rejection is not None:
        await manager.send_rejection(websocket, rejection)
        await websocket.close(code=CAPACITY_CLOSE_CODE)
        return

    try:
        # Main message loop
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))
            data = decode_frame(message)
            logger.debug(
                "[WS] %s received: type=%s",
                connection_id,
                data.get("type", "?") if isinstance(data, dict) else "?",
            )

            try:
                request = parse_request(data)
            except RequestParseError as e:
                logger.info(f"[WS] Invalid frame from {connection_id}: {e}")
                await manager.deliver(
                    connection_id, [Rejection(ErrorKind.INVALID_FORMAT, str(e))]
                )
                continue

            try:
                await manager.handle(connection_id, request)
            except Exception:
                logger.exception(f"[WS] Failed to handle {request.type} from {connection_id}")

    except WebSocketDisconnect:
        logger.info(f"[WS] Connection {connection_id} closed")
    finally:
        effects = manager.disconnect(connection_id)
        await manager.deliver(None, effects)
