"""
Tiered Memory Store - durable, structured facts about the user and the relationship.

Tiers (one JSON document each, under the user's namespace):
- core.json          facts about the user
- relationship.json  the dynamic between Bethany and the user
- people.json        third parties the user mentions
- threads.json       open topics worth following up on
- history.json       day-level conversation summaries (30 day window)
- self.json          Bethany's private self-notes (last 100)

Reads never raise: a memory hiccup must never block a reply.
"""

import asyncio
import uuid
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from config.settings import settings
from core import get_logger, InvalidMemoryDataError
from memory.blob_store import BlobStore, blob_store
from schemas.memory import (
    ActiveThread,
    ConversationSummary,
    CoreMemory,
    HistoryMemory,
    HotMemory,
    PeopleMemory,
    PersonMemory,
    RelationshipMemory,
    SelfNote,
    SelfNoteType,
    SelfReflection,
    ThreadsMemory,
    ensure_utc,
    utc_now,
)

logger = get_logger(__name__)

T = TypeVar("T", bound=BaseModel)

CORE_FILE = "core.json"
RELATIONSHIP_FILE = "relationship.json"
PEOPLE_FILE = "people.json"
THREADS_FILE = "threads.json"
HISTORY_FILE = "history.json"
SELF_FILE = "self.json"

CORE_LIST_FIELDS = ("interests", "goals", "quirks", "values")
PREFERENCE_FIELDS = ("likes", "dislikes")


def _merge_unique(existing: Iterable[str], new: Iterable[str]) -> List[str]:
    """Union preserving first-seen order."""
    merged: List[str] = []
    for item in list(existing) + list(new):
        if item not in merged:
            merged.append(item)
    return merged


class TieredMemoryStore:
    """
    Owns every long-lived memory record about the user.

    The store shares the blob store with the session manager but only
    touches keys under `<user_key>/` that are listed above.
    """

    def __init__(
        self,
        store: BlobStore = blob_store,
        user_key: str = settings.USER_KEY,
        clock: Callable[[], datetime] = utc_now,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
        seed_core: Optional[CoreMemory] = None,
        seed_people: Optional[List[PersonMemory]] = None,
    ):
        self.store = store
        self.user_key = user_key
        self.clock = clock
        self.id_factory = id_factory
        self.seed_core = seed_core
        self.seed_people = seed_people or []

    # ==================== Storage helpers ====================

    def _path(self, name: str) -> str:
        return f"{self.user_key}/{name}"

    async def _read(self, name: str, model: Type[T]) -> Optional[T]:
        raw = await self.store.get(self._path(name))
        if raw is None:
            return None
        try:
            return model.model_validate_json(raw)
        except ValidationError as e:
            raise InvalidMemoryDataError(name, str(e))

    async def _write(self, name: str, record: BaseModel) -> None:
        await self.store.put(self._path(name), record.model_dump_json(indent=2))

    def _seed_records(self, now: datetime) -> Dict[str, BaseModel]:
        core = (
            self.seed_core.model_copy(update={"last_updated": now})
            if self.seed_core
            else CoreMemory(name=settings.USER_NAME or None, last_updated=now)
        )
        people = [p.model_copy(update={"last_mentioned": now}) for p in self.seed_people]
        return {
            CORE_FILE: core,
            RELATIONSHIP_FILE: RelationshipMemory(first_contact=now, last_updated=now),
            PEOPLE_FILE: PeopleMemory(people=people, last_updated=now),
            THREADS_FILE: ThreadsMemory(last_updated=now),
            HISTORY_FILE: HistoryMemory(last_updated=now),
            SELF_FILE: SelfReflection(last_updated=now),
        }

    # ==================== Initialization ====================

    async def initialize(self) -> bool:
        """
        Create the memory files if they don't exist yet.

        Idempotent. When core.json is already present only missing sub-records
        are backfilled; nothing existing is overwritten.

        Returns:
            True if a fresh store was seeded, False if it already existed
        """
        now = self.clock()
        seeds = self._seed_records(now)

        if await self.store.get(self._path(CORE_FILE)) is not None:
            for name, record in seeds.items():
                if name == CORE_FILE:
                    continue
                if await self.store.get(self._path(name)) is None:
                    await self._write(name, record)
                    logger.info("Backfilled missing memory record", record=name)
            return False

        # Best-effort group write, not a transaction
        await asyncio.gather(*(self._write(name, record) for name, record in seeds.items()))
        logger.info("Memory initialized", user_key=self.user_key)
        return True

    # ==================== Loading ====================

    async def load_hot(self) -> Optional[HotMemory]:
        """
        Load core, relationship and open threads.

        Missing records trigger one re-initialization and a retry.

        Returns:
            HotMemory, or None if memory still can't be produced
        """
        try:
            return await self._load_hot_once(allow_init=True)
        except Exception as e:
            logger.error("Failed to load hot memory", error=str(e))
            return None

    async def _load_hot_once(self, allow_init: bool) -> Optional[HotMemory]:
        core, relationship, threads = await asyncio.gather(
            self._read(CORE_FILE, CoreMemory),
            self._read(RELATIONSHIP_FILE, RelationshipMemory),
            self._read(THREADS_FILE, ThreadsMemory),
        )

        if core is None or relationship is None or threads is None:
            if not allow_init:
                logger.warning("Hot memory still missing after initialization")
                return None
            logger.info("Hot memory missing, initializing")
            await self.initialize()
            return await self._load_hot_once(allow_init=False)

        return HotMemory(
            core=core,
            relationship=relationship,
            threads=[t for t in threads.active if not t.resolved],
        )

    async def load_people(self) -> List[PersonMemory]:
        """Load everyone the user has mentioned. Empty list if missing or unreadable."""
        try:
            data = await self._read(PEOPLE_FILE, PeopleMemory)
            return data.people if data else []
        except Exception as e:
            logger.error("Failed to load people", error=str(e))
            return []

    async def load_threads(self) -> List[ActiveThread]:
        """All threads, resolved ones included."""
        try:
            data = await self._read(THREADS_FILE, ThreadsMemory)
            return data.active if data else []
        except Exception as e:
            logger.error("Failed to load threads", error=str(e))
            return []

    async def load_history(self) -> List[ConversationSummary]:
        """Conversation summaries, oldest first."""
        try:
            data = await self._read(HISTORY_FILE, HistoryMemory)
            return data.summaries if data else []
        except Exception as e:
            logger.error("Failed to load history", error=str(e))
            return []

    async def load_self_notes(self) -> List[SelfNote]:
        """Self-notes, oldest first."""
        try:
            data = await self._read(SELF_FILE, SelfReflection)
            return data.notes if data else []
        except Exception as e:
            logger.error("Failed to load self notes", error=str(e))
            return []

    # ==================== Core & relationship ====================

    async def update_core(self, updates: Dict[str, Any]) -> Optional[CoreMemory]:
        """
        Shallow-merge fields into core.json.

        Args:
            updates: Top-level CoreMemory fields to replace

        Returns:
            Updated CoreMemory, or None if core.json doesn't exist (no auto-create)
        """
        current = await self._read(CORE_FILE, CoreMemory)
        if current is None:
            logger.debug("Core memory missing, update skipped")
            return None

        merged = current.model_dump()
        merged.update(updates)
        merged["last_updated"] = self.clock()
        try:
            updated = CoreMemory.model_validate(merged)
        except ValidationError as e:
            raise InvalidMemoryDataError("core", str(e))

        await self._write(CORE_FILE, updated)
        logger.info("Updated core memory", fields=sorted(updates))
        return updated

    async def update_relationship(self, updates: Dict[str, Any]) -> Optional[RelationshipMemory]:
        """Shallow-merge fields into relationship.json. No-op if it doesn't exist."""
        current = await self._read(RELATIONSHIP_FILE, RelationshipMemory)
        if current is None:
            logger.debug("Relationship memory missing, update skipped")
            return None

        merged = current.model_dump()
        merged.update(updates)
        merged["last_updated"] = self.clock()
        try:
            updated = RelationshipMemory.model_validate(merged)
        except ValidationError as e:
            raise InvalidMemoryDataError("relationship", str(e))

        await self._write(RELATIONSHIP_FILE, updated)
        logger.info("Updated relationship memory", fields=sorted(updates))
        return updated

    async def append_to_core(self, field: str, items: List[str]) -> None:
        """Add new items to one of the core list fields (interests, goals, quirks, values)."""
        if field not in CORE_LIST_FIELDS:
            raise InvalidMemoryDataError(field, "not an appendable core field")
        if not items:
            return

        current = await self._read(CORE_FILE, CoreMemory)
        if current is None:
            return
        existing = getattr(current, field)
        new_items = [item for item in items if item not in existing]
        if not new_items:
            return

        await self.update_core({field: existing + new_items})
        logger.info("Appended to core memory", field=field, items=new_items)

    async def append_to_preferences(self, field: str, items: List[str]) -> None:
        """Add new likes or dislikes."""
        if field not in PREFERENCE_FIELDS:
            raise InvalidMemoryDataError(field, "not a preference field")
        if not items:
            return

        current = await self._read(CORE_FILE, CoreMemory)
        if current is None:
            return
        existing = getattr(current.preferences, field)
        new_items = [item for item in items if item not in existing]
        if not new_items:
            return

        preferences = current.preferences.model_dump()
        preferences[field] = existing + new_items
        await self.update_core({"preferences": preferences})
        logger.info("Appended to preferences", field=field, items=new_items)

    async def add_inside_joke(self, joke: str) -> None:
        """Remember an inside joke once."""
        current = await self._read(RELATIONSHIP_FILE, RelationshipMemory)
        if current is None or joke in current.inside_jokes:
            return
        await self.update_relationship({"inside_jokes": current.inside_jokes + [joke]})

    async def add_highlight(self, highlight: str) -> None:
        """Remember a moment worth bringing back."""
        current = await self._read(RELATIONSHIP_FILE, RelationshipMemory)
        if current is None:
            return
        await self.update_relationship({"highlights": current.highlights + [highlight]})

    # ==================== People ====================

    async def upsert_person(self, person: PersonMemory) -> PersonMemory:
        """
        Add someone, or merge into the existing entry with the same name.

        On a case-insensitive name match the key facts are unioned, the
        last-mentioned time is overwritten and the mention count goes up by one.

        Returns:
            The stored PersonMemory
        """
        data = await self._read(PEOPLE_FILE, PeopleMemory) or PeopleMemory()
        wanted = person.name.strip().lower()

        stored = None
        for existing in data.people:
            if existing.name.strip().lower() == wanted:
                existing.key_facts = _merge_unique(existing.key_facts, person.key_facts)
                existing.last_mentioned = person.last_mentioned
                existing.mention_count += 1
                stored = existing
                break

        if stored is None:
            stored = person.model_copy(
                update={"key_facts": _merge_unique([], person.key_facts)}
            )
            data.people.append(stored)

        data.last_updated = self.clock()
        await self._write(PEOPLE_FILE, data)
        logger.debug("Upserted person", name=stored.name, mention_count=stored.mention_count)
        return stored

    # ==================== Threads ====================

    async def add_thread(self, topic: str, context: str) -> str:
        """Open a thread to follow up on. Returns the new thread id."""
        data = await self._read(THREADS_FILE, ThreadsMemory) or ThreadsMemory()
        now = self.clock()
        thread_id = self.id_factory()

        data.active.append(
            ActiveThread(
                id=thread_id,
                topic=topic,
                context=context,
                created_at=now,
                last_referenced=None,
                resolved=False,
            )
        )
        data.last_updated = now
        await self._write(THREADS_FILE, data)
        logger.info("Opened thread", thread_id=thread_id, topic=topic)
        return thread_id

    async def resolve_thread(self, thread_id: str) -> None:
        """Mark a thread resolved. Unknown ids are ignored."""
        data = await self._read(THREADS_FILE, ThreadsMemory)
        if data is None:
            return
        for thread in data.active:
            if thread.id == thread_id:
                thread.resolved = True
                data.last_updated = self.clock()
                await self._write(THREADS_FILE, data)
                logger.info("Resolved thread", thread_id=thread_id)
                return

    async def resolve_thread_by_topic(self, topic: str) -> Optional[str]:
        """Resolve the first open thread whose topic contains `topic`. Returns its id."""
        data = await self._read(THREADS_FILE, ThreadsMemory)
        if data is None:
            return None
        needle = topic.lower()
        for thread in data.active:
            if not thread.resolved and needle in thread.topic.lower():
                thread.resolved = True
                data.last_updated = self.clock()
                await self._write(THREADS_FILE, data)
                logger.info("Resolved thread by topic", thread_id=thread.id, topic=thread.topic)
                return thread.id
        return None

    async def touch_thread(self, thread_id: str) -> None:
        """Record that a thread was just brought up."""
        data = await self._read(THREADS_FILE, ThreadsMemory)
        if data is None:
            return
        for thread in data.active:
            if thread.id == thread_id:
                now = self.clock()
                thread.last_referenced = now
                data.last_updated = now
                await self._write(THREADS_FILE, data)
                return

    # ==================== History ====================

    async def add_conversation_summary(self, summary: ConversationSummary) -> None:
        """
        Append a day/period summary.

        Summaries older than the retention window (relative to now) are pruned
        first. The file is written even when nothing was pruned.
        """
        data = await self._read(HISTORY_FILE, HistoryMemory) or HistoryMemory()
        now = self.clock()
        cutoff = ensure_utc(now) - timedelta(days=settings.HISTORY_RETENTION_DAYS)

        before = len(data.summaries)
        data.summaries = [s for s in data.summaries if ensure_utc(s.date) > cutoff]
        data.summaries.append(summary)
        data.last_updated = now

        await self._write(HISTORY_FILE, data)
        logger.info(
            "Added conversation summary",
            pruned=before - (len(data.summaries) - 1),
            total=len(data.summaries),
        )

    # ==================== Self-reflection ====================

    async def add_self_note(
        self, note_type: SelfNoteType, note: str, context: Optional[str] = None
    ) -> SelfNote:
        """Append a self-note, keeping only the most recent SELF_NOTE_LIMIT."""
        data = await self._read(SELF_FILE, SelfReflection) or SelfReflection()
        now = self.clock()

        entry = SelfNote(
            id=self.id_factory(),
            type=note_type,
            note=note,
            context=context,
            created_at=now,
        )
        data.notes.append(entry)
        if len(data.notes) > settings.SELF_NOTE_LIMIT:
            data.notes = data.notes[-settings.SELF_NOTE_LIMIT:]
        data.last_updated = now

        await self._write(SELF_FILE, data)
        logger.debug("Added self note", note_type=note_type)
        return entry

    # ==================== Formatting ====================

    @staticmethod
    def format_for_context(
        hot: HotMemory,
        people: List[PersonMemory],
        people_limit: int = settings.PEOPLE_CONTEXT_LIMIT,
        thread_limit: int = settings.THREAD_CONTEXT_LIMIT,
    ) -> str:
        """
        Render memory as a compact text block for the prompt.

        Empty fields are left out entirely. At most `people_limit` people and
        `thread_limit` open threads are listed, in stored order.
        """
        core = hot.core
        relationship = hot.relationship
        sections: List[List[str]] = []

        facts = []
        if core.name:
            facts.append(f"- Name: {core.name}")
        if core.age:
            facts.append(f"- Age: {core.age}")
        if core.location:
            facts.append(f"- Location: {core.location}")
        work = " at ".join(part for part in (core.job.title, core.job.company) if part)
        if work:
            facts.append(f"- Work: {work}")
        if core.relationship_status:
            facts.append(f"- Relationship: {core.relationship_status}")
        style = "; ".join(
            f"{key}: {value}"
            for key, value in core.communication_style.model_dump().items()
            if value
        )
        if style:
            facts.append(f"- Communication: {style}")
        for label, items in (
            ("Interests", core.interests),
            ("Values", core.values),
            ("Likes", core.preferences.likes),
            ("Dislikes", core.preferences.dislikes),
            ("Goals", core.goals),
            ("Quirks", core.quirks),
        ):
            if items:
                facts.append(f"- {label}: {', '.join(items)}")
        if facts:
            sections.append(["## What you know about them:"] + facts)

        dynamic = [
            "## Your dynamic:",
            f"- Vibe: {relationship.vibe}",
            f"- Flirt level: {relationship.flirt_level}",
        ]
        if relationship.inside_jokes:
            dynamic.append(f"- Inside jokes: {'; '.join(relationship.inside_jokes)}")
        if relationship.patterns:
            dynamic.append(f"- Patterns you've noticed: {'; '.join(relationship.patterns)}")
        sections.append(dynamic)

        if people:
            lines = ["## People in their life:"]
            for person in people[:people_limit]:
                line = f"- {person.name}"
                if person.relationship:
                    line += f" ({person.relationship})"
                if person.key_facts:
                    line += f": {', '.join(person.key_facts)}"
                lines.append(line)
            sections.append(lines)

        if hot.threads:
            lines = ["## Topics to maybe follow up on:"]
            for thread in hot.threads[:thread_limit]:
                lines.append(f"- {thread.topic}: {thread.context}" if thread.context else f"- {thread.topic}")
            sections.append(lines)

        return "\n\n".join("\n".join(section) for section in sections)


# Singleton instance
tiered_memory = TieredMemoryStore()
