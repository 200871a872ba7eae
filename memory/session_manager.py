"""
Session Manager - conversation bursts bounded by inactivity gaps.

Layout under the user's namespace:
- sessions/index.json   current-session pointer + archived entries (most recent first)
- sessions/<id>.json    one document per session

A session is open while it is the current pointer, closed once the gap
threshold passes, and archived when it gets a title and an index entry.
Sessions with no messages are never archived.
"""

import json
import re
import uuid
from datetime import datetime, timedelta
from typing import Callable, List, Optional

import pytz
from pydantic import ValidationError

from config.settings import settings
from core import get_logger
from memory.blob_store import BlobStore, blob_store
from prompts.session_title import EXAMPLE_SESSION_TITLES, SESSION_TITLE_PROMPT
from schemas.memory import ensure_utc, utc_now
from schemas.session import (
    ArchivedSessionEntry,
    Session,
    SessionCheckResult,
    SESSION_INDEX_VERSION,
    SessionIndex,
    SessionMessage,
    SessionRole,
    migrate_session_index,
)
from utils.llm_client import LLMClient, llm_client

logger = get_logger(__name__)

SESSIONS_DIR = "sessions"
INDEX_FILE = "index.json"
NEW_CONVERSATION_PLACEHOLDER = "(new conversation)"

# Order matters: the first matching group names the session
TITLE_KEYWORD_GROUPS = [
    ("writing-talk", ("writing", "book", "chapter", "draft", "manuscript")),
    ("work-stuff", ("work", "client", "meeting", "deadline", "project")),
    ("flirty-chat", ("sexy", "bed", "kiss", "miss you", "😏")),
    ("morning-chat", ("morning", "coffee", "wake")),
    ("evening-chat", ("evening", "night", "sleep", "tired")),
]
DEFAULT_TITLE = "casual-chat"

TOPIC_KEYWORDS = [
    ("writing", ("writing", "book", "chapter")),
    ("work", ("work", "client", "meeting")),
    ("feelings", ("miss", "thinking about", "want")),
    ("flirty", ("sexy", "bed", "tonight", "😏")),
    ("morning chat", ("morning", "coffee", "wake")),
    ("evening chat", ("night", "sleep", "tired")),
]

_SLUG_INVALID = re.compile(r"[^a-z0-9]+")


def _transcript_text(session: Session) -> str:
    return " ".join(m.content.lower() for m in session.messages)


def title_from_keywords(session: Session) -> str:
    """Deterministic fallback title from the transcript's keywords."""
    text = _transcript_text(session)
    for title, keywords in TITLE_KEYWORD_GROUPS:
        if any(keyword in text for keyword in keywords):
            return title
    return DEFAULT_TITLE


def normalize_title(raw: str) -> str:
    """
    Turn a model reply into a 2-5 word lowercase hyphenated slug.

    Returns an empty string when nothing usable is left.
    """
    text = (raw or "").strip()
    first_line = text.splitlines()[0] if text else ""
    words = [w for w in _SLUG_INVALID.split(first_line.lower()) if w]
    return "-".join(words[:5])


def session_topics(session: Session) -> List[str]:
    """Coarse topics for a session, by keyword."""
    text = _transcript_text(session)
    return [topic for topic, keywords in TOPIC_KEYWORDS if any(k in text for k in keywords)]


def summarize_session(session: Session, timezone: str = settings.TIMEZONE) -> str:
    """
    One-line summary of a session, e.g. "Tue, Mar 3 9:05 AM: 6 messages, work".

    Empty sessions summarize to an empty string.
    """
    if not session.messages:
        return ""

    started = ensure_utc(session.started_at).astimezone(pytz.timezone(timezone))
    hour = started.hour % 12 or 12
    when = f"{started.strftime('%a, %b')} {started.day} {hour}:{started.strftime('%M %p')}"
    topics = session_topics(session)
    return f"{when}: {len(session.messages)} messages, {', '.join(topics) if topics else 'casual'}"


class SessionManager:
    """
    Owns Session and SessionIndex records.

    Callers are expected to serialize access (the orchestrator holds a lock),
    so the index read-modify-write here is not guarded.
    """

    def __init__(
        self,
        store: BlobStore = blob_store,
        user_key: str = settings.USER_KEY,
        clock: Callable[[], datetime] = utc_now,
        id_factory: Callable[[], str] = lambda: uuid.uuid4().hex[:8],
        gap_threshold: timedelta = timedelta(hours=settings.SESSION_GAP_THRESHOLD_HOURS),
        llm: LLMClient = llm_client,
    ):
        self.store = store
        self.user_key = user_key
        self.clock = clock
        self.id_factory = id_factory
        self.gap_threshold = gap_threshold
        self.llm = llm

    # ==================== Storage helpers ====================

    def _index_key(self) -> str:
        return f"{self.user_key}/{SESSIONS_DIR}/{INDEX_FILE}"

    def _session_key(self, session_id: str) -> str:
        return f"{self.user_key}/{SESSIONS_DIR}/{session_id}.json"

    def _new_session_id(self, now: datetime) -> str:
        stamp = ensure_utc(now).strftime("%Y-%m-%d-%H%M%S")
        return f"{stamp}-{self.id_factory()}"

    async def get_index(self) -> SessionIndex:
        """
        Read the session index, migrating older shapes.

        A missing or unreadable index reads as a fresh empty one; the next
        save overwrites whatever was stored.
        """
        raw = await self.store.get(self._index_key())
        if raw is None:
            return SessionIndex(last_updated=self.clock())
        try:
            data = json.loads(raw)
            if not isinstance(data, dict):
                raise ValueError(f"expected an object, got {type(data).__name__}")
            index = migrate_session_index(data)
        except (ValueError, ValidationError) as e:
            logger.error("Unreadable session index, starting fresh", error=str(e))
            return SessionIndex(last_updated=self.clock())

        if data.get("schema_version", 1) < SESSION_INDEX_VERSION:
            index = await self._backfill_legacy_entries(index, data.get("recent_sessions") or [])
        return index

    async def _backfill_legacy_entries(self, index: SessionIndex, legacy_ids: List[str]) -> SessionIndex:
        """Replace migrated placeholder entries with real titles and counts; drop empty ones."""
        legacy = set(legacy_ids)
        entries = []
        for entry in index.archived_sessions:
            if entry.id not in legacy:
                entries.append(entry)
                continue
            session = await self.get_session(entry.id)
            if session is None or not session.messages:
                logger.info("Dropping empty legacy session from index", session_id=entry.id)
                continue
            entries.append(
                ArchivedSessionEntry(
                    id=entry.id,
                    title=session.title or title_from_keywords(session),
                    date=ensure_utc(session.started_at),
                    message_count=len(session.messages),
                )
            )
        index.archived_sessions = entries
        return index

    async def _save_index(self, index: SessionIndex) -> None:
        index.last_updated = self.clock()
        await self.store.put(self._index_key(), index.model_dump_json(indent=2))

    async def get_session(self, session_id: str) -> Optional[Session]:
        """Load one session. Missing or unreadable -> None."""
        raw = await self.store.get(self._session_key(session_id))
        if raw is None:
            return None
        try:
            return Session.model_validate_json(raw)
        except ValidationError as e:
            logger.warning("Unreadable session record", session_id=session_id, error=str(e))
            return None

    async def _save_session(self, session: Session) -> None:
        await self.store.put(self._session_key(session.id), session.model_dump_json(indent=2))

    async def get_current_session(self) -> Optional[Session]:
        """The session the index currently points at, if it exists."""
        index = await self.get_index()
        if not index.current_session_id:
            return None
        return await self.get_session(index.current_session_id)

    # ==================== Lifecycle ====================

    async def check_and_manage_session(self, context_tag: str = "message") -> SessionCheckResult:
        """
        Decide whether the next turn continues the current session.

        A new session is started when there is no current session, when the
        pointer dangles, or when the current session's last activity is older
        than the gap threshold. In the gap case the closed session is returned
        as `previous_session` exactly once; the caller archives it.

        Args:
            context_tag: What triggered this check ("message" or a rhythm name)

        Returns:
            SessionCheckResult
        """
        now = self.clock()
        index = await self.get_index()

        current = None
        if index.current_session_id:
            current = await self.get_session(index.current_session_id)
            if current is None:
                logger.warning("Current session missing, starting fresh",
                               session_id=index.current_session_id)

        if current is not None:
            gap = ensure_utc(now) - ensure_utc(current.last_activity)
            if gap <= self.gap_threshold:
                return SessionCheckResult(is_new_session=False, session=current)

        session = Session(
            id=self._new_session_id(now),
            started_at=now,
            last_activity=now,
            messages=[],
            context=context_tag,
        )
        await self._save_session(session)
        index.current_session_id = session.id
        await self._save_index(index)

        logger.info(
            "Started new session",
            session_id=session.id,
            context=context_tag,
            previous_session_id=current.id if current else None,
        )
        return SessionCheckResult(is_new_session=True, session=session, previous_session=current)

    async def append_turn(self, role: SessionRole, content: str) -> Session:
        """
        Append a message to the current session.

        If there is no current session (or the pointer dangles) one is created
        first. Bumps last_activity.

        Returns:
            The updated session
        """
        session = await self.get_current_session()
        if session is None:
            logger.warning("No current session on append, creating one")
            session = (await self.check_and_manage_session("message")).session

        now = self.clock()
        session.messages.append(SessionMessage(role=role, content=content, timestamp=now))
        session.last_activity = now
        await self._save_session(session)
        return session

    async def generate_title(self, session: Session) -> str:
        """Ask the completion service for a slug title; fall back to keywords."""
        transcript = "\n".join(f"{m.role}: {m.content}" for m in session.messages)
        system_prompt = SESSION_TITLE_PROMPT.format(
            examples="\n".join(f"- {t}" for t in EXAMPLE_SESSION_TITLES)
        )
        try:
            raw = await self.llm.complete(
                system_prompt,
                transcript,
                model=settings.MODEL_TITLE,
                max_tokens=20,
                temperature=0.3,
            )
            title = normalize_title(raw)
            if title:
                return title
            logger.warning("Empty session title, using keywords", session_id=session.id)
        except Exception as e:
            logger.warning("Session title generation failed, using keywords",
                           session_id=session.id, error=str(e))
        return title_from_keywords(session)

    async def archive(self, session: Session) -> Optional[ArchivedSessionEntry]:
        """
        Title a closed session and add it to the index.

        Empty sessions are skipped. Archiving an already indexed session
        returns the existing entry and changes nothing.

        Returns:
            The index entry, or None for an empty session
        """
        if not session.messages:
            logger.debug("Skipping empty session", session_id=session.id)
            return None

        index = await self.get_index()
        for entry in index.archived_sessions:
            if entry.id == session.id:
                logger.debug("Session already archived", session_id=session.id)
                return entry

        session.title = await self.generate_title(session)
        await self._save_session(session)

        entry = ArchivedSessionEntry(
            id=session.id,
            title=session.title,
            date=session.started_at,
            message_count=len(session.messages),
        )
        # Re-read so a slow title call doesn't clobber newer index writes
        index = await self.get_index()
        if not any(e.id == session.id for e in index.archived_sessions):
            index.archived_sessions.insert(0, entry)
            await self._save_index(index)

        logger.info(
            "Session archived",
            session_id=session.id,
            title=entry.title,
            message_count=entry.message_count,
        )
        return entry

    async def cleanup(self, retention_days: Optional[int] = None) -> int:
        """
        Delete archived sessions older than the retention window.

        Orphaned session records (never archived, not current) past the
        window are removed as well.

        Args:
            retention_days: Defaults to SESSION_RETENTION_DAYS

        Returns:
            Number of session records deleted
        """
        days = retention_days if retention_days is not None else settings.SESSION_RETENTION_DAYS
        cutoff = ensure_utc(self.clock()) - timedelta(days=days)

        index = await self.get_index()
        expired = {e.id for e in index.archived_sessions if ensure_utc(e.date) < cutoff}
        kept = {e.id for e in index.archived_sessions if e.id not in expired}

        for session_id in expired:
            await self.store.delete(self._session_key(session_id))

        orphans = 0
        prefix = f"{self.user_key}/{SESSIONS_DIR}/"
        for info in await self.store.list(prefix):
            session_id = info.key[len(prefix):]
            if not session_id.endswith(".json") or session_id == INDEX_FILE:
                continue
            session_id = session_id[: -len(".json")]
            if session_id in kept or session_id in expired or session_id == index.current_session_id:
                continue
            if ensure_utc(info.updated_at) < cutoff:
                await self.store.delete(info.key)
                orphans += 1

        if expired:
            # Entries archived while we were deleting must survive the rewrite
            latest = await self.get_index()
            latest.archived_sessions = [
                e for e in latest.archived_sessions if e.id not in expired
            ]
            await self._save_index(latest)

        logger.info(
            "Session cleanup complete",
            retention_days=days,
            expired=len(expired),
            orphans=orphans,
        )
        return len(expired) + orphans

    # ==================== Reading ====================

    @staticmethod
    def format_for_context(
        session: Optional[Session], limit: int = settings.SESSION_CONTEXT_LIMIT
    ) -> str:
        """Last `limit` messages, oldest first, tagged by speaker."""
        if session is None or not session.messages:
            return NEW_CONVERSATION_PLACEHOLDER
        lines = []
        for message in session.messages[-limit:]:
            tag = "[you said]" if message.role == "agent" else "[they said]"
            lines.append(f"{tag}: {message.content}")
        return "\n".join(lines)

    async def list_recent_titles(self, limit: int = 5) -> List[str]:
        index = await self.get_index()
        return [e.title for e in index.archived_sessions[:limit]]

    async def find_by_topic(self, term: str) -> Optional[ArchivedSessionEntry]:
        """First archived entry (most recent first) whose title contains term."""
        needle = term.lower()
        index = await self.get_index()
        for entry in index.archived_sessions:
            if needle in entry.title.lower():
                return entry
        return None

    async def recent_sessions_summary(
        self, limit: int = settings.RECENT_SESSION_SUMMARY_LIMIT
    ) -> List[str]:
        """One-line summaries of the most recent archived sessions."""
        index = await self.get_index()
        summaries = []
        for entry in index.archived_sessions[:limit]:
            session = await self.get_session(entry.id)
            if session and session.messages:
                summaries.append(summarize_session(session))
        return summaries


# Singleton instance
session_manager = SessionManager()
