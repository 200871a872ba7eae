"""Agent state and inbound payload schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from schemas.memory import utc_now


class AgentState(BaseModel):
    """State of the single agent instance, rehydrated on cold start."""

    is_available: bool = Field(default=True, description="False while the user asked for quiet")
    last_interaction: Optional[datetime] = None
    quota_notified: bool = Field(
        default=False,
        description="Operator already told about quota exhaustion",
    )
    last_updated: datetime = Field(default_factory=utc_now)


class InboundMessage(BaseModel):
    """Normalized message-in event. Sender is authenticated upstream."""

    message: str = Field(..., min_length=1, description="Message text")
