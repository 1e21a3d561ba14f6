"""Database module."""
from typing import Optional

from intellichat.config import Settings, get_settings

from .local import LocalDatabase
from .models import Chat, Message, Plan, PublishedImage, Transaction, User
from .store import Store
from .turso import DatabaseError, TursoDatabase


_store: Optional[Store] = None


def create_store(settings: Settings) -> Store:
    """Build a store for the configured database URL."""
    url = settings.database_url
    if url.startswith(("libsql://", "https://", "http://")):
        return Store(TursoDatabase(url, settings.database_auth_token))
    return Store(LocalDatabase(url))


def get_db() -> Store:
    """Get the process-wide store."""
    global _store
    if _store is None:
        _store = create_store(get_settings())
    return _store


async def init_db() -> None:
    """Initialize database schema."""
    await get_db().init_schema()


async def close_db() -> None:
    global _store
    if _store is not None:
        await _store.close()
        _store = None


__all__ = [
    "get_db", "init_db", "close_db", "create_store",
    "Store", "TursoDatabase", "LocalDatabase", "DatabaseError",
    "User", "Chat", "Message", "Transaction", "Plan", "PublishedImage",
]
