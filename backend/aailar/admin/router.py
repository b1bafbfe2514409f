"""Admin REST API router.

Endpoints:
    POST /api/admin/change-chat-password - Replace the room password
    GET  /api/admin/chat-users           - Current members, including origin

All endpoints require the X-Admin-Password header.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from pydantic import BaseModel

from aailar.chat.manager import get_manager
from aailar.chat.schemas import now_ms
from aailar.config import get_config

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])


MAX_PASSWORD_LENGTH = 100


class ChangeChatPasswordRequest(BaseModel):
    """Request model for replacing the room password."""
    newPassword: Optional[str] = None


class ChatUser(BaseModel):
    displayName: str
    origin: str
    joinedAt: int


class ChatUsersResponse(BaseModel):
    """Response model for the admin member list."""
    activeChatUsers: List[ChatUser]
    totalActive: int


def require_admin(x_admin_password: Optional[str] = Header(None)) -> None:
    if not x_admin_password or x_admin_password != get_config().secrets.admin_password:
        logger.warning("[Admin] Rejected request with bad admin password")
        raise HTTPException(status_code=403, detail="Admin password required")


@router.post("/change-chat-password", dependencies=[Depends(require_admin)])
async def change_chat_password(request: ChangeChatPasswordRequest) -> dict:
    """Replace the room password and announce the change to members.

    Members already in the room stay; the next join must use the new one.

    Raises:
        HTTPException 400: If the new password is empty or too long
    """
    new_password = request.newPassword
    if not new_password or len(new_password) > MAX_PASSWORD_LENGTH:
        raise HTTPException(status_code=400, detail="Invalid password format")

    manager = get_manager()
    manager.passwords.set(new_password)
    changed_at = now_ms()
    await manager.notify_chat_password_changed(changed_at)
    logger.info("[Admin] Chat password changed")
    return {"message": "Chat password changed successfully", "changedAt": changed_at}


@router.get(
    "/chat-users",
    response_model=ChatUsersResponse,
    dependencies=[Depends(require_admin)],
)
async def chat_users() -> ChatUsersResponse:
    users = [ChatUser(**u) for u in get_manager().get_member_details()]
    return ChatUsersResponse(activeChatUsers=users, totalActive=len(users))
