"""
SQLAlchemy ORM models for database tables.

This module contains database table definitions using SQLAlchemy.
For Pydantic request/response schemas, see schemas.py.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, String, Text
from sqlalchemy.types import TypeDecorator
from sqlalchemy.orm import relationship

from app.storage import Base


def generate_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware UTC datetime column.

    SQLite drops the offset on storage, so naive values read back are
    tagged as UTC; aware values are normalized to UTC before writing.
    """
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value


class User(Base):
    """
    Registered dashboard user.

    Table: users
    Only `id` takes part in the message workflow (ownership and existence).
    """
    __tablename__ = "users"

    id = Column(String, primary_key=True, default=generate_id)
    email = Column(String, nullable=False, unique=True, index=True)
    password_hash = Column(String, nullable=False)
    created_at = Column(UTCDateTime(), nullable=False, default=utcnow)

    messages = relationship("Message", back_populates="user")


class Message(Base):
    """
    Outbound SMS record. Insert-only: rows are never updated or deleted.

    Table: messages
    """
    __tablename__ = "messages"

    id = Column(String, primary_key=True, default=generate_id)
    recipient = Column(String, nullable=False)
    content = Column(Text, nullable=False)
    status = Column(String, nullable=False, default="sent")
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(UTCDateTime(), nullable=False, default=utcnow)

    user = relationship("User", back_populates="messages")
