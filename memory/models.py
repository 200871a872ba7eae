"""
SQLAlchemy models for Bethany's storage.

Two tables:
- blobs: the key/value store holding every JSON memory and session record
- conversation_turns: the ordered raw log of every message in and out
"""

from datetime import datetime

import pytz
from sqlalchemy import (
    Column,
    Index,
    Integer,
    String,
    Text,
    DateTime,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def naive_utc_now() -> datetime:
    """Current UTC time without tzinfo, matching the naive DateTime columns."""
    return datetime.now(pytz.utc).replace(tzinfo=None)


class Blob(Base):
    """Key/value records. Keys are namespaced paths like 'micaiah/sessions/index.json'."""

    __tablename__ = "blobs"

    key = Column(String(512), primary_key=True)
    value = Column(Text, nullable=False)
    created_at = Column(DateTime, default=naive_utc_now, nullable=False)
    updated_at = Column(DateTime, default=naive_utc_now, nullable=False, index=True)

    def __repr__(self):
        return f"<Blob(key='{self.key}', size={len(self.value or '')})>"


class ConversationTurn(Base):
    """Raw conversation log - every message exchanged, in order."""

    __tablename__ = "conversation_turns"
    __table_args__ = (
        Index("idx_conversation_turns_created", "created_at"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    role = Column(String(20), nullable=False)  # "user" or "agent"
    content = Column(Text, nullable=False)
    channel = Column(String(50), default="sms", nullable=False)  # sms, imessage, rhythm
    created_at = Column(DateTime, default=naive_utc_now, nullable=False)

    def __repr__(self):
        return f"<ConversationTurn(id={self.id}, role='{self.role}', created_at={self.created_at})>"
