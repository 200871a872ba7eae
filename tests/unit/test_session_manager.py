"""
Tests for session boundary detection, archival and cleanup.
"""

from datetime import timedelta
from unittest.mock import AsyncMock

from core import CompletionQuotaError
from memory.session_manager import (
    SessionManager,
    normalize_title,
    session_topics,
    summarize_session,
    title_from_keywords,
)
from schemas.session import ArchivedSessionEntry, Session, SessionMessage


def make_session(fixed_now, *texts, session_id="2026-03-03-150000-aaaaaaaa"):
    return Session(
        id=session_id,
        started_at=fixed_now,
        last_activity=fixed_now,
        messages=[SessionMessage(role="user", content=t, timestamp=fixed_now) for t in texts],
    )


class TestBoundaries:
    """check_and_manage_session"""

    async def test_first_check_starts_session(self, sessions):
        result = await sessions.check_and_manage_session()

        assert result.is_new_session is True
        assert result.previous_session is None
        assert result.session.context == "message"
        index = await sessions.get_index()
        assert index.current_session_id == result.session.id

    async def test_session_id_format(self, sessions):
        result = await sessions.check_and_manage_session()
        assert result.session.id == "2026-03-03-150000-00000001"

    async def test_turns_within_threshold_share_session(self, sessions, clock):
        first = await sessions.check_and_manage_session()
        await sessions.append_turn("user", "hey")
        clock.advance(hours=1)

        second = await sessions.check_and_manage_session()
        await sessions.append_turn("user", "you there?")

        assert second.is_new_session is False
        assert second.session.id == first.session.id
        current = await sessions.get_current_session()
        assert [m.content for m in current.messages] == ["hey", "you there?"]

    async def test_gap_starts_new_session_and_returns_previous_once(self, sessions, clock):
        first = await sessions.check_and_manage_session()
        await sessions.append_turn("user", "hey")
        clock.advance(hours=5)

        second = await sessions.check_and_manage_session()
        third = await sessions.check_and_manage_session()

        assert second.is_new_session is True
        assert second.previous_session.id == first.session.id
        assert second.previous_session.messages[0].content == "hey"
        assert third.is_new_session is False
        assert third.previous_session is None

    async def test_exactly_threshold_is_same_session(self, sessions, clock):
        await sessions.check_and_manage_session()
        clock.advance(hours=4)

        result = await sessions.check_and_manage_session()

        assert result.is_new_session is False

    async def test_dangling_pointer_starts_fresh(self, sessions, store):
        first = await sessions.check_and_manage_session()
        await store.delete(f"tester/sessions/{first.session.id}.json")

        result = await sessions.check_and_manage_session()

        assert result.is_new_session is True
        assert result.previous_session is None
        assert result.session.id != first.session.id

    async def test_corrupt_index_reads_empty_and_is_repaired(self, sessions, store):
        await store.put("tester/sessions/index.json", "{not json")

        index = await sessions.get_index()
        assert index.current_session_id is None
        assert index.archived_sessions == []

        result = await sessions.check_and_manage_session()

        assert result.is_new_session is True
        repaired = await sessions.get_index()
        assert repaired.current_session_id == result.session.id

    async def test_non_object_index_reads_empty(self, sessions, store):
        await store.put("tester/sessions/index.json", "[1, 2, 3]")

        index = await sessions.get_index()

        assert index.archived_sessions == []

    async def test_append_without_session_creates_one(self, sessions):
        session = await sessions.append_turn("user", "hello?")

        assert [m.content for m in session.messages] == ["hello?"]
        assert (await sessions.get_index()).current_session_id == session.id

    async def test_append_bumps_last_activity(self, sessions, clock):
        await sessions.check_and_manage_session()
        later = clock.advance(minutes=20)

        session = await sessions.append_turn("agent", "hi")

        assert session.last_activity == later


class TestArchive:
    """Titles, idempotence and the empty-session rule."""

    async def test_empty_session_never_indexed(self, sessions, mock_llm):
        result = await sessions.check_and_manage_session()

        assert await sessions.archive(result.session) is None

        index = await sessions.get_index()
        assert index.archived_sessions == []
        mock_llm.complete.assert_not_called()

    async def test_llm_title_normalized(self, sessions, mock_llm, fixed_now):
        mock_llm.complete = AsyncMock(return_value="  Chapter Three Rewrite!\n")
        session = make_session(fixed_now, "finished chapter three")

        entry = await sessions.archive(session)

        assert entry.title == "chapter-three-rewrite"
        stored = await sessions.get_session(session.id)
        assert stored.title == "chapter-three-rewrite"

    async def test_title_failure_falls_back_to_keywords(self, sessions, mock_llm, fixed_now):
        mock_llm.complete = AsyncMock(side_effect=CompletionQuotaError(details="insufficient_quota"))
        session = make_session(fixed_now, "client meeting ran long")

        entry = await sessions.archive(session)

        assert entry.title == "work-stuff"

    async def test_empty_title_falls_back_to_keywords(self, sessions, mock_llm, fixed_now):
        mock_llm.complete = AsyncMock(return_value="!!!")
        session = make_session(fixed_now, "hey")

        entry = await sessions.archive(session)

        assert entry.title == "casual-chat"

    async def test_archive_is_idempotent(self, sessions, fixed_now):
        session = make_session(fixed_now, "hey")

        await sessions.archive(session)
        await sessions.archive(session)

        index = await sessions.get_index()
        assert len(index.archived_sessions) == 1

    async def test_archive_prepends(self, sessions, fixed_now):
        older = make_session(fixed_now, "a", session_id="2026-03-01-100000-aaaaaaaa")
        newer = make_session(fixed_now, "b", session_id="2026-03-02-100000-bbbbbbbb")

        await sessions.archive(older)
        await sessions.archive(newer)

        index = await sessions.get_index()
        assert [e.id for e in index.archived_sessions] == [newer.id, older.id]


class TestGapScenario:
    """Two turns an hour apart, then a morning message six hours later."""

    async def test_four_hour_threshold(self, sessions, clock):
        await sessions.check_and_manage_session()
        await sessions.append_turn("user", "hey")
        clock.advance(hours=1)
        assert (await sessions.check_and_manage_session()).is_new_session is False
        await sessions.append_turn("user", "you there?")
        clock.advance(hours=6)

        result = await sessions.check_and_manage_session()
        await sessions.append_turn("user", "morning")
        entry = await sessions.archive(result.previous_session)

        assert result.is_new_session is True
        assert len(result.previous_session.messages) == 2
        assert entry.title
        index = await sessions.get_index()
        assert len(index.archived_sessions) == 1
        assert index.archived_sessions[0].message_count == 2


class TestCleanup:
    """Retention window."""

    async def test_removes_only_expired(self, sessions, store, fixed_now):
        old = make_session(
            fixed_now - timedelta(days=200), "old", session_id="2025-08-15-100000-aaaaaaaa"
        )
        recent = make_session(
            fixed_now - timedelta(days=10), "recent", session_id="2026-02-21-100000-bbbbbbbb"
        )
        await sessions.archive(old)
        await sessions.archive(recent)

        deleted = await sessions.cleanup(retention_days=150)

        assert deleted == 1
        index = await sessions.get_index()
        assert [e.id for e in index.archived_sessions] == [recent.id]
        assert await store.get(f"tester/sessions/{old.id}.json") is None
        assert await store.get(f"tester/sessions/{recent.id}.json") is not None

    async def test_keeps_current_session(self, sessions):
        current = await sessions.check_and_manage_session()

        await sessions.cleanup(retention_days=0)

        assert await sessions.get_session(current.session.id) is not None


class TestReading:
    """Formatting and lookups."""

    def test_format_empty(self, fixed_now):
        assert SessionManager.format_for_context(make_session(fixed_now)) == "(new conversation)"
        assert SessionManager.format_for_context(None) == "(new conversation)"

    def test_format_last_ten_oldest_first(self, fixed_now):
        session = make_session(fixed_now, *[f"msg {i}" for i in range(12)])
        session.messages[-1].role = "agent"

        lines = SessionManager.format_for_context(session).split("\n")

        assert len(lines) == 10
        assert lines[0] == "[they said]: msg 2"
        assert lines[-1] == "[you said]: msg 11"

    async def test_titles_and_topic_search(self, sessions, mock_llm, fixed_now):
        mock_llm.complete = AsyncMock(side_effect=["sunday-coffee-plans", "book-launch-nerves"])
        await sessions.archive(make_session(fixed_now, "a", session_id="2026-03-01-100000-aaaaaaaa"))
        await sessions.archive(make_session(fixed_now, "b", session_id="2026-03-02-100000-bbbbbbbb"))

        assert await sessions.list_recent_titles(5) == ["book-launch-nerves", "sunday-coffee-plans"]
        assert (await sessions.find_by_topic("COFFEE")).title == "sunday-coffee-plans"
        assert await sessions.find_by_topic("taxes") is None

    async def test_recent_sessions_summary(self, sessions, fixed_now):
        await sessions.archive(make_session(fixed_now, "coffee first", "then work"))

        summaries = await sessions.recent_sessions_summary()

        assert summaries == ["Tue, Mar 3 9:00 AM: 2 messages, work, morning chat"]


class TestHeuristics:
    """Pure helpers."""

    def test_keyword_group_order(self, fixed_now):
        # writing beats work when both appear
        session = make_session(fixed_now, "work on the book tonight")
        assert title_from_keywords(session) == "writing-talk"

    def test_keyword_default(self, fixed_now):
        assert title_from_keywords(make_session(fixed_now, "hey", "you there?")) == "casual-chat"

    def test_normalize_title(self):
        assert normalize_title('"Late Night Book Talk"') == "late-night-book-talk"
        assert normalize_title("one two three four five six") == "one-two-three-four-five"
        assert normalize_title("") == ""

    def test_topics_and_summary(self, fixed_now):
        session = make_session(fixed_now, "miss you", "so tired")

        assert session_topics(session) == ["feelings", "evening chat"]
        assert summarize_session(make_session(fixed_now)) == ""
