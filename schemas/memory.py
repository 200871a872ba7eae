"""Tiered memory schemas: core facts, relationship, people, threads, history, self-notes."""

from datetime import datetime
from typing import List, Literal, Optional

import pytz
from pydantic import BaseModel, Field


Vibe = Literal["new", "friendly", "close", "intimate", "playful", "tense"]
FlirtLevel = Literal["light", "playful", "flirty", "spicy", "hot"]
Sentiment = Literal["positive", "negative", "neutral", "complicated"]
SelfNoteType = Literal["gap", "confusion", "made_up", "improvement", "observation"]


def utc_now() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(pytz.utc)


# ==================== Core ====================


class JobInfo(BaseModel):
    """What the user does for work."""

    title: Optional[str] = None
    company: Optional[str] = None
    industry: Optional[str] = None
    notes: Optional[str] = None


class CommunicationStyle(BaseModel):
    """How the user talks."""

    humor: Optional[str] = None
    depth: Optional[str] = None
    pace: Optional[str] = None
    notes: Optional[str] = None


class Preferences(BaseModel):
    """Things the user likes and dislikes."""

    likes: List[str] = Field(default_factory=list)
    dislikes: List[str] = Field(default_factory=list)


class CoreMemory(BaseModel):
    """Durable facts about the user."""

    name: Optional[str] = None
    age: Optional[str] = None
    location: Optional[str] = None
    job: JobInfo = Field(default_factory=JobInfo)
    relationship_status: Optional[str] = None
    interests: List[str] = Field(default_factory=list)
    values: List[str] = Field(default_factory=list)
    communication_style: CommunicationStyle = Field(default_factory=CommunicationStyle)
    preferences: Preferences = Field(default_factory=Preferences)
    goals: List[str] = Field(default_factory=list)
    quirks: List[str] = Field(default_factory=list)
    last_updated: datetime = Field(default_factory=utc_now)


# ==================== Relationship ====================


class RelationshipMemory(BaseModel):
    """The dynamic between Bethany and the user."""

    first_contact: datetime = Field(default_factory=utc_now)
    vibe: Vibe = "new"
    flirt_level: FlirtLevel = "playful"
    inside_jokes: List[str] = Field(default_factory=list)
    recurring_topics: List[str] = Field(default_factory=list)
    boundaries: List[str] = Field(default_factory=list)
    highlights: List[str] = Field(default_factory=list)
    patterns: List[str] = Field(default_factory=list)
    last_updated: datetime = Field(default_factory=utc_now)


# ==================== People ====================


class PersonMemory(BaseModel):
    """Someone the user has mentioned. Keyed by name, case-insensitively."""

    name: str = Field(..., min_length=1)
    relationship: str = ""
    key_facts: List[str] = Field(default_factory=list)
    sentiment: Sentiment = "neutral"
    last_mentioned: datetime = Field(default_factory=utc_now)
    mention_count: int = Field(default=1, ge=0)


class PeopleMemory(BaseModel):
    """people.json"""

    people: List[PersonMemory] = Field(default_factory=list)
    last_updated: datetime = Field(default_factory=utc_now)


# ==================== Threads ====================


class ActiveThread(BaseModel):
    """An open topic worth following up on. Resolved threads are kept, not removed."""

    id: str
    topic: str
    context: str = ""
    created_at: datetime = Field(default_factory=utc_now)
    last_referenced: Optional[datetime] = None
    resolved: bool = False


class ThreadsMemory(BaseModel):
    """threads.json"""

    active: List[ActiveThread] = Field(default_factory=list)
    last_updated: datetime = Field(default_factory=utc_now)


# ==================== History ====================


class ConversationSummary(BaseModel):
    """One closed day or period of conversation."""

    date: datetime
    summary: str
    topics: List[str] = Field(default_factory=list)
    vibe: str = ""
    memorable_moment: Optional[str] = None


class HistoryMemory(BaseModel):
    """history.json"""

    summaries: List[ConversationSummary] = Field(default_factory=list)
    last_updated: datetime = Field(default_factory=utc_now)


# ==================== Self-reflection ====================


class SelfNote(BaseModel):
    """Bethany's private note about her own performance."""

    id: str
    type: SelfNoteType
    note: str
    context: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)


class SelfReflection(BaseModel):
    """self.json"""

    notes: List[SelfNote] = Field(default_factory=list)
    last_updated: datetime = Field(default_factory=utc_now)


# ==================== Hot memory ====================


class HotMemory(BaseModel):
    """The subset of memory loaded on every turn."""

    core: CoreMemory
    relationship: RelationshipMemory
    threads: List[ActiveThread] = Field(
        default_factory=list,
        description="Open (unresolved) threads only",
    )


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so stored and computed times compare safely."""
    if value.tzinfo is None:
        return pytz.utc.localize(value)
    return value.astimezone(pytz.utc)
