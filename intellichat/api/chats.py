"""Chats API - create, list and delete conversation threads."""
from typing import Optional

from fastapi import APIRouter, Depends, status

from intellichat.auth import get_current_user
from intellichat.db import Store, get_db
from intellichat.db.models import CamelModel, User
from intellichat.errors import ChatNotFound, ValidationError
from intellichat.logging import get_logger


logger = get_logger(__name__)

router = APIRouter(prefix="/api/chat", tags=["chats"])


class DeleteChatRequest(CamelModel):
    chat_id: Optional[str] = None


@router.get("/create", status_code=status.HTTP_201_CREATED)
async def create_chat(
    current_user: User = Depends(get_current_user),
    store: Store = Depends(get_db),
):
    """Create an empty chat for the current user."""
    chat = await store.create_chat(current_user)
    logger.info("chat_created", user_id=current_user.id, chat_id=chat.id)
    return {"success": True, "message": "Chat created"}


@router.get("/get")
async def get_chats(
    current_user: User = Depends(get_current_user),
    store: Store = Depends(get_db),
):
    """List the current user's chats, most recently updated first."""
    chats = await store.list_chats(current_user.id)
    return {
        "success": True,
        "chats": [chat.model_dump(by_alias=True, mode="json") for chat in chats],
    }


@router.post("/delete")
async def delete_chat(
    body: DeleteChatRequest,
    current_user: User = Depends(get_current_user),
    store: Store = Depends(get_db),
):
    """Delete one of the current user's chats."""
    if not body.chat_id:
        raise ValidationError("Chat ID required")

    if not await store.delete_chat(body.chat_id, current_user.id):
        raise ChatNotFound()

    logger.info("chat_deleted", user_id=current_user.id, chat_id=body.chat_id)
    return {"success": True, "message": "Chat deleted"}
