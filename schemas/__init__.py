"""
Pydantic schemas for type-safe data transfer.
"""

from schemas.memory import (
    CoreMemory,
    RelationshipMemory,
    PersonMemory,
    PeopleMemory,
    ActiveThread,
    ThreadsMemory,
    ConversationSummary,
    HistoryMemory,
    SelfNote,
    SelfReflection,
    HotMemory,
)
from schemas.session import (
    SessionMessage,
    Session,
    ArchivedSessionEntry,
    SessionIndex,
    SessionCheckResult,
    migrate_session_index,
)
from schemas.conversation import ConversationTurnSchema
from schemas.agent import AgentState, InboundMessage

__all__ = [
    "CoreMemory",
    "RelationshipMemory",
    "PersonMemory",
    "PeopleMemory",
    "ActiveThread",
    "ThreadsMemory",
    "ConversationSummary",
    "HistoryMemory",
    "SelfNote",
    "SelfReflection",
    "HotMemory",
    "SessionMessage",
    "Session",
    "ArchivedSessionEntry",
    "SessionIndex",
    "SessionCheckResult",
    "migrate_session_index",
    "ConversationTurnSchema",
    "AgentState",
    "InboundMessage",
]
