"""Data access for users, chats, messages and credit transactions."""
import uuid
from datetime import datetime, timezone
from typing import Optional, Protocol

from .models import Chat, Message, PublishedImage, ResultSet, Transaction, User
from .turso import Statement


class Database(Protocol):
    """Transport the store runs SQL through (Turso over HTTP or local SQLite)."""

    async def execute(self, sql: str, args: Optional[list] = None) -> ResultSet: ...

    async def batch(self, statements: list[Statement], transactional: bool = True) -> list[ResultSet]: ...

    async def close(self) -> None: ...


SCHEMA = [
    ("""
        CREATE TABLE IF NOT EXISTS users (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            email TEXT UNIQUE NOT NULL,
            password_hash TEXT NOT NULL,
            credits INTEGER NOT NULL DEFAULT 0 CHECK (credits >= 0),
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
    """, []),
    ("""
        CREATE TABLE IF NOT EXISTS chats (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            user_name TEXT NOT NULL,
            name TEXT NOT NULL,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            FOREIGN KEY (user_id) REFERENCES users(id)
        )
    """, []),
    # seq fixes conversation order; messages are never updated in place
    ("""
        CREATE TABLE IF NOT EXISTS messages (
            seq INTEGER PRIMARY KEY AUTOINCREMENT,
            chat_id TEXT NOT NULL,
            role TEXT NOT NULL CHECK (role IN ('user', 'assistant')),
            content TEXT NOT NULL,
            timestamp INTEGER NOT NULL,
            is_image INTEGER NOT NULL DEFAULT 0,
            is_published INTEGER NOT NULL DEFAULT 0,
            FOREIGN KEY (chat_id) REFERENCES chats(id) ON DELETE CASCADE
        )
    """, []),
    ("""
        CREATE TABLE IF NOT EXISTS transactions (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            plan_id TEXT NOT NULL,
            amount INTEGER NOT NULL,
            credits INTEGER NOT NULL,
            is_paid INTEGER NOT NULL DEFAULT 0,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            FOREIGN KEY (user_id) REFERENCES users(id)
        )
    """, []),
    ("CREATE INDEX IF NOT EXISTS idx_chats_user_id ON chats(user_id, updated_at)", []),
    ("CREATE INDEX IF NOT EXISTS idx_messages_chat_id ON messages(chat_id, seq)", []),
    ("CREATE INDEX IF NOT EXISTS idx_messages_published ON messages(is_image, is_published)", []),
    ("CREATE INDEX IF NOT EXISTS idx_transactions_user_id ON transactions(user_id)", []),
]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


def _row_to_user(row: dict) -> User:
    """Convert row dict to User model."""
    return User(
        id=row["id"],
        name=row["name"],
        email=row["email"],
        password_hash=row["password_hash"],
        credits=int(row.get("credits") or 0),
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
    )


def _row_to_message(row: dict) -> Message:
    return Message(
        role=row["role"],
        content=row["content"],
        timestamp=int(row["timestamp"]),
        is_image=bool(row["is_image"]),
        is_published=bool(row["is_published"]),
    )


def _row_to_chat(row: dict, messages: list[Message]) -> Chat:
    return Chat(
        id=row["id"],
        user_id=row["user_id"],
        user_name=row["user_name"],
        name=row["name"],
        messages=messages,
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
    )


def _row_to_transaction(row: dict) -> Transaction:
    return Transaction(
        id=row["id"],
        user_id=row["user_id"],
        plan_id=row["plan_id"],
        amount=int(row["amount"]),
        credits=int(row["credits"]),
        is_paid=bool(row["is_paid"]),
        created_at=datetime.fromisoformat(row["created_at"]),
    )


class Store:
    """Repository over a Database transport."""

    def __init__(self, db: Database):
        self.db = db

    async def init_schema(self) -> None:
        """Create tables and indexes if missing."""
        await self.db.batch(SCHEMA)

    async def close(self) -> None:
        await self.db.close()

    # User operations
    async def get_user_by_id(self, user_id: str) -> Optional[User]:
        result = await self.db.execute("SELECT * FROM users WHERE id = ?", [user_id])
        return _row_to_user(result.rows[0]) if result.rows else None

    async def get_user_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(
            "SELECT * FROM users WHERE email = ?", [email.strip().lower()]
        )
        return _row_to_user(result.rows[0]) if result.rows else None

    async def create_user(self, name: str, email: str, password_hash: str, credits: int) -> User:
        """Create a new user with a starting balance."""
        now = _now()
        user_id = str(uuid.uuid4())

        await self.db.execute(
            """
            INSERT INTO users (id, name, email, password_hash, credits, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            [user_id, name.strip(), email.strip().lower(), password_hash, credits, now, now]
        )
        return await self.get_user_by_id(user_id)

    async def debit_credits(self, user_id: str, cost: int) -> bool:
        """Atomically take ``cost`` credits unless that would go below zero."""
        result = await self.db.execute(
            """
            UPDATE users SET credits = credits - ?, updated_at = ?
            WHERE id = ? AND credits >= ?
            """,
            [cost, _now(), user_id, cost]
        )
        return result.affected_row_count == 1

    # Chat operations
    async def create_chat(self, user: User, name: str = "New Chat") -> Chat:
        now = _now()
        chat_id = str(uuid.uuid4())

        await self.db.execute(
            """
            INSERT INTO chats (id, user_id, user_name, name, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            [chat_id, user.id, user.name, name, now, now]
        )
        return await self.get_chat(chat_id, user.id)

    async def get_chat(self, chat_id: str, owner_id: str) -> Optional[Chat]:
        """Get a chat only if it belongs to ``owner_id``."""
        result = await self.db.execute(
            "SELECT * FROM chats WHERE id = ? AND user_id = ?", [chat_id, owner_id]
        )
        if not result.rows:
            return None

        messages = await self.db.execute(
            "SELECT * FROM messages WHERE chat_id = ? ORDER BY seq", [chat_id]
        )
        return _row_to_chat(result.rows[0], [_row_to_message(r) for r in messages.rows])

    async def list_chats(self, owner_id: str) -> list[Chat]:
        """List a user's chats, most recently updated first."""
        chats = await self.db.execute(
            "SELECT * FROM chats WHERE user_id = ? ORDER BY updated_at DESC", [owner_id]
        )
        if not chats.rows:
            return []

        messages = await self.db.execute(
            """
            SELECT m.* FROM messages m
            JOIN chats c ON c.id = m.chat_id
            WHERE c.user_id = ?
            ORDER BY m.seq
            """,
            [owner_id]
        )
        by_chat: dict[str, list[Message]] = {}
        for row in messages.rows:
            by_chat.setdefault(row["chat_id"], []).append(_row_to_message(row))

        return [_row_to_chat(row, by_chat.get(row["id"], [])) for row in chats.rows]

    async def delete_chat(self, chat_id: str, owner_id: str) -> bool:
        """Delete a chat and its messages. False if not found or not owned."""
        results = await self.db.batch([
            (
                """
                DELETE FROM messages WHERE chat_id IN (
                    SELECT id FROM chats WHERE id = ? AND user_id = ?
                )
                """,
                [chat_id, owner_id]
            ),
            ("DELETE FROM chats WHERE id = ? AND user_id = ?", [chat_id, owner_id]),
        ])
        return results[-1].affected_row_count == 1

    async def append_messages(self, chat_id: str, messages: list[Message]) -> None:
        """Append messages to a chat in one transaction."""
        statements = [
            (
                """
                INSERT INTO messages (chat_id, role, content, timestamp, is_image, is_published)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                [chat_id, m.role, m.content, m.timestamp, m.is_image, m.is_published]
            )
            for m in messages
        ]
        statements.append(
            ("UPDATE chats SET updated_at = ? WHERE id = ?", [_now(), chat_id])
        )
        await self.db.batch(statements)

    async def list_published_images(self) -> list[PublishedImage]:
        """Published generated images, newest first."""
        result = await self.db.execute(
            """
            SELECT m.content AS image_url, c.user_name AS user_name
            FROM messages m
            JOIN chats c ON c.id = m.chat_id
            WHERE m.is_image = 1 AND m.is_published = 1
            ORDER BY m.seq DESC
            """
        )
        return [
            PublishedImage(image_url=row["image_url"], user_name=row["user_name"])
            for row in result.rows
        ]

    # Transaction operations
    async def create_transaction(self, user_id: str, plan_id: str, amount: int, credits: int) -> Transaction:
        now = _now()
        transaction_id = str(uuid.uuid4())

        await self.db.execute(
            """
            INSERT INTO transactions (id, user_id, plan_id, amount, credits, is_paid, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, 0, ?, ?)
            """,
            [transaction_id, user_id, plan_id, amount, credits, now, now]
        )
        return await self.get_transaction(transaction_id)

    async def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        result = await self.db.execute(
            "SELECT * FROM transactions WHERE id = ?", [transaction_id]
        )
        return _row_to_transaction(result.rows[0]) if result.rows else None

    async def settle_transaction(self, transaction_id: str) -> bool:
        """Mark an unpaid transaction paid and grant its credits, atomically.

        The flip is a compare-and-set on ``is_paid = 0``; the credit
        statement only matches when that flip changed a row, so redelivered
        events settle nothing. Returns True only for the call that settled.
        """
        now = _now()
        results = await self.db.batch([
            (
                "UPDATE transactions SET is_paid = 1, updated_at = ? WHERE id = ? AND is_paid = 0",
                [now, transaction_id]
            ),
            (
                """
                UPDATE users
                SET credits = credits + (SELECT credits FROM transactions WHERE id = ?),
                    updated_at = ?
                WHERE id = (SELECT user_id FROM transactions WHERE id = ?)
                  AND changes() = 1
                """,
                [transaction_id, now, transaction_id]
            ),
        ])
        return results[0].affected_row_count == 1 and results[1].affected_row_count == 1
