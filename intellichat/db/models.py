"""Database models (Pydantic schemas for Turso/LibSQL rows).

Field names are snake_case in Python and camelCase on the wire; the
identifier serializes as ``_id`` because the browser client was written
against that shape.
"""
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serializing to camelCase."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class User(CamelModel):
    """User model."""
    id: str = Field(alias="_id")  # UUID
    name: str
    email: EmailStr
    password_hash: str = Field(default="", exclude=True)
    credits: int = 0
    created_at: datetime
    updated_at: datetime


class Message(CamelModel):
    """A single chat message. Text content or a hosted image URL."""
    role: Literal["user", "assistant"]
    content: str
    timestamp: int  # Milliseconds since epoch
    is_image: bool = False
    is_published: bool = False


class Chat(CamelModel):
    """Chat thread with its messages in conversation order."""
    id: str = Field(alias="_id")
    user_id: str
    user_name: str
    name: str
    messages: list[Message] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class Transaction(CamelModel):
    """Credit purchase record, unpaid until the webhook confirms it."""
    id: str = Field(alias="_id")
    user_id: str
    plan_id: str
    amount: int  # Price in USD
    credits: int
    is_paid: bool = False
    created_at: datetime


class Plan(CamelModel):
    """Purchasable credit bundle."""
    id: str = Field(alias="_id")
    name: str
    price: int  # USD
    credits: int
    features: list[str] = Field(default_factory=list)


class PublishedImage(CamelModel):
    """Community gallery entry."""
    image_url: str
    user_name: str


class ResultSet(BaseModel):
    """Rows and change count from one executed statement."""
    rows: list[dict] = Field(default_factory=list)
    affected_row_count: int = 0
    last_insert_rowid: Optional[int] = None
