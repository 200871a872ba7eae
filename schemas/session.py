"""Session schemas and the session index migration."""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

import pytz
from pydantic import BaseModel, Field

from schemas.memory import utc_now


SESSION_INDEX_VERSION = 2

SessionRole = Literal["user", "agent"]


class SessionMessage(BaseModel):
    """One turn inside a session."""

    role: SessionRole = Field(..., description="Who spoke")
    content: str = Field(..., description="Message content")
    timestamp: datetime = Field(default_factory=utc_now)


class Session(BaseModel):
    """A contiguous burst of conversation bounded by inactivity gaps."""

    id: str
    title: Optional[str] = Field(default=None, description="Assigned at archival")
    started_at: datetime
    last_activity: datetime
    messages: List[SessionMessage] = Field(default_factory=list)
    context: Optional[str] = Field(
        default=None,
        description="What opened the session: 'message' or a rhythm name",
    )


class ArchivedSessionEntry(BaseModel):
    """Searchable summary of an archived session."""

    id: str
    title: str
    date: datetime
    message_count: int = Field(default=0, ge=0)


class SessionIndex(BaseModel):
    """Root of session discovery. archived_sessions is most-recent-first."""

    schema_version: int = SESSION_INDEX_VERSION
    current_session_id: Optional[str] = None
    archived_sessions: List[ArchivedSessionEntry] = Field(default_factory=list)
    last_updated: datetime = Field(default_factory=utc_now)


class SessionCheckResult(BaseModel):
    """Outcome of a session boundary check."""

    is_new_session: bool
    session: Session
    previous_session: Optional[Session] = None


def _date_from_session_id(session_id: str) -> Optional[datetime]:
    """Session ids start with YYYY-MM-DD; recover that as a UTC midnight."""
    try:
        return datetime.strptime(session_id[:10], "%Y-%m-%d").replace(tzinfo=pytz.utc)
    except ValueError:
        return None


def migrate_session_index(raw: Dict[str, Any]) -> SessionIndex:
    """
    Bring a stored index up to the current shape.

    Version 1 indexes kept `recent_sessions` as a bare list of the last five
    session ids and had no titles. Those ids become untitled placeholder
    entries; the session manager backfills or drops them against the
    stored session records.

    Args:
        raw: Decoded JSON of sessions/index.json

    Returns:
        SessionIndex in the current schema
    """
    version = raw.get("schema_version", 1)
    if version >= SESSION_INDEX_VERSION:
        return SessionIndex.model_validate(raw)

    entries = []
    for session_id in raw.get("recent_sessions", []):
        date = _date_from_session_id(session_id) or utc_now()
        entries.append(
            ArchivedSessionEntry(id=session_id, title="untitled", date=date, message_count=0)
        )

    migrated = {
        "schema_version": SESSION_INDEX_VERSION,
        "current_session_id": raw.get("current_session_id"),
        "archived_sessions": [e.model_dump() for e in entries]
        + list(raw.get("archived_sessions", [])),
    }
    if raw.get("last_updated"):
        migrated["last_updated"] = raw["last_updated"]
    return SessionIndex.model_validate(migrated)
