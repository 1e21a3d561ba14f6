"""API routes module."""
from .chats import router as chats_router
from .credits import router as credits_router
from .messages import router as messages_router
from .users import router as users_router
from .webhooks import router as webhooks_router

__all__ = ["users_router", "chats_router", "messages_router", "credits_router", "webhooks_router"]
