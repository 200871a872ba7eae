"""Conversation log schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, ConfigDict


class ConversationTurnBaseSchema(BaseModel):
    """Base conversation turn schema."""

    role: Literal["user", "agent"] = Field(..., description="Who spoke")
    content: str = Field(..., min_length=1, description="Message content")
    channel: str = Field(default="sms", description="sms, imessage, rhythm")


class ConversationTurnSchema(ConversationTurnBaseSchema):
    """Complete conversation log row."""

    id: int = Field(..., description="Turn ID")
    created_at: datetime = Field(..., description="When the turn was logged")

    model_config = ConfigDict(from_attributes=True)
