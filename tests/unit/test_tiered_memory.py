"""
Tests for the tiered memory store.
"""

from datetime import timedelta

from schemas.memory import (
    ActiveThread,
    ConversationSummary,
    CoreMemory,
    HotMemory,
    PersonMemory,
    RelationshipMemory,
)
from memory.tiered_memory import TieredMemoryStore


class TestInitialize:
    """Seeding and backfill."""

    async def test_seeds_once(self, memory):
        assert await memory.initialize() is True
        assert await memory.initialize() is False

    async def test_seeded_hot_memory_has_defaults(self, memory, fixed_now):
        await memory.initialize()
        hot = await memory.load_hot()

        assert hot is not None
        assert hot.relationship.vibe == "new"
        assert hot.relationship.first_contact == fixed_now
        assert hot.threads == []

    async def test_backfills_missing_records_without_overwriting(self, memory, store):
        await memory.initialize()
        await memory.update_core({"location": "Tulsa"})
        await store.delete("tester/self.json")

        assert await memory.initialize() is False

        assert await store.get("tester/self.json") is not None
        hot = await memory.load_hot()
        assert hot.core.location == "Tulsa"

    async def test_seed_people(self, store, clock):
        memory = TieredMemoryStore(
            store=store,
            user_key="tester",
            clock=clock,
            seed_people=[PersonMemory(name="Irene", relationship="business partner")],
        )
        await memory.initialize()

        people = await memory.load_people()
        assert [p.name for p in people] == ["Irene"]


class TestLoading:
    """Reads degrade instead of raising."""

    async def test_load_hot_initializes_empty_store(self, memory):
        hot = await memory.load_hot()
        assert hot is not None

    async def test_load_hot_returns_none_on_corrupt_record(self, memory, store):
        await memory.initialize()
        await store.put("tester/core.json", "not json at all")

        assert await memory.load_hot() is None

    async def test_load_people_missing_is_empty(self, memory):
        assert await memory.load_people() == []

    async def test_load_people_corrupt_is_empty(self, memory, store):
        await store.put("tester/people.json", "{broken")
        assert await memory.load_people() == []


class TestCoreAndRelationship:
    """Shallow merges."""

    async def test_update_core_missing_is_noop(self, memory, store):
        assert await memory.update_core({"name": "Sam"}) is None
        assert await store.get("tester/core.json") is None

    async def test_update_core_merges_and_bumps_timestamp(self, memory, clock):
        await memory.initialize()
        later = clock.advance(hours=1)

        updated = await memory.update_core({"age": "38"})

        assert updated.age == "38"
        assert updated.last_updated == later
        hot = await memory.load_hot()
        assert hot.core.age == "38"

    async def test_update_relationship(self, memory):
        await memory.initialize()
        await memory.update_relationship({"vibe": "close"})

        hot = await memory.load_hot()
        assert hot.relationship.vibe == "close"

    async def test_append_to_core_only_adds_new_items(self, memory):
        await memory.initialize()
        await memory.append_to_core("interests", ["thrillers", "running"])
        await memory.append_to_core("interests", ["running", "coffee"])

        hot = await memory.load_hot()
        assert hot.core.interests == ["thrillers", "running", "coffee"]

    async def test_append_to_preferences(self, memory):
        await memory.initialize()
        await memory.append_to_preferences("dislikes", ["mornings"])

        hot = await memory.load_hot()
        assert hot.core.preferences.dislikes == ["mornings"]

    async def test_inside_joke_deduplicated(self, memory):
        await memory.initialize()
        await memory.add_inside_joke("the goose incident")
        await memory.add_inside_joke("the goose incident")

        hot = await memory.load_hot()
        assert hot.relationship.inside_jokes == ["the goose incident"]


class TestPeople:
    """Case-insensitive upsert."""

    async def test_upsert_same_name_merges(self, memory, clock):
        first = PersonMemory(name="Sean", relationship="friend", key_facts=["runs marathons"])
        await memory.upsert_person(first)
        later = clock.advance(days=2)
        second = PersonMemory(
            name="sean", key_facts=["runs marathons", "new job"], last_mentioned=later
        )

        stored = await memory.upsert_person(second)

        people = await memory.load_people()
        assert len(people) == 1
        assert stored.mention_count == 2
        assert people[0].key_facts == ["runs marathons", "new job"]
        assert people[0].last_mentioned == later
        assert people[0].name == "Sean"

    async def test_upsert_new_person_appends(self, memory):
        await memory.upsert_person(PersonMemory(name="Amber"))
        await memory.upsert_person(PersonMemory(name="Isaac"))

        assert [p.name for p in await memory.load_people()] == ["Amber", "Isaac"]


class TestThreads:
    """Open, touch and resolve."""

    async def test_add_and_resolve(self, memory):
        await memory.initialize()
        thread_id = await memory.add_thread("job interview", "Thursday at 2")

        hot = await memory.load_hot()
        assert [t.id for t in hot.threads] == [thread_id]

        await memory.resolve_thread(thread_id)

        hot = await memory.load_hot()
        assert hot.threads == []
        assert (await memory.load_threads())[0].resolved is True

    async def test_resolve_unknown_id_is_noop(self, memory):
        await memory.initialize()
        await memory.add_thread("dentist", "")
        await memory.resolve_thread("does-not-exist")

        hot = await memory.load_hot()
        assert len(hot.threads) == 1

    async def test_resolve_by_topic(self, memory):
        await memory.initialize()
        thread_id = await memory.add_thread("Job Interview at Acme", "")

        assert await memory.resolve_thread_by_topic("interview") == thread_id
        assert await memory.resolve_thread_by_topic("interview") is None

    async def test_touch_sets_last_referenced(self, memory, clock):
        await memory.initialize()
        thread_id = await memory.add_thread("dentist", "")
        later = clock.advance(hours=3)

        await memory.touch_thread(thread_id)

        assert (await memory.load_threads())[0].last_referenced == later


class TestHistory:
    """30 day window."""

    async def test_old_summaries_pruned_on_write(self, memory, fixed_now):
        old = ConversationSummary(date=fixed_now - timedelta(days=40), summary="old")
        recent = ConversationSummary(date=fixed_now, summary="recent")

        await memory.add_conversation_summary(old)
        await memory.add_conversation_summary(recent)

        assert [s.summary for s in await memory.load_history()] == ["recent"]

    async def test_summary_inside_window_kept(self, memory, fixed_now):
        await memory.add_conversation_summary(
            ConversationSummary(date=fixed_now - timedelta(days=29), summary="a")
        )
        await memory.add_conversation_summary(ConversationSummary(date=fixed_now, summary="b"))

        assert len(await memory.load_history()) == 2


class TestSelfNotes:
    """Capped at the most recent 100."""

    async def test_cap_keeps_most_recent(self, memory):
        for i in range(150):
            await memory.add_self_note("observation", f"note {i}")

        notes = await memory.load_self_notes()

        assert len(notes) == 100
        assert notes[0].note == "note 50"
        assert notes[-1].note == "note 149"


class TestFormatForContext:
    """Rendering memory for the prompt."""

    def test_empty_fields_omitted(self):
        hot = HotMemory(core=CoreMemory(), relationship=RelationshipMemory())

        text = TieredMemoryStore.format_for_context(hot, [])

        assert "What you know about them" not in text
        assert "People in their life" not in text
        assert "follow up" not in text
        assert "None" not in text
        assert "- Vibe: new" in text
        assert "- Flirt level: playful" in text

    def test_core_facts_rendered(self):
        core = CoreMemory(name="Sam", location="Tulsa", interests=["thrillers", "running"])
        core.job.title = "developer"
        hot = HotMemory(core=core, relationship=RelationshipMemory())

        text = TieredMemoryStore.format_for_context(hot, [])

        assert "- Name: Sam" in text
        assert "- Location: Tulsa" in text
        assert "- Work: developer" in text
        assert "- Interests: thrillers, running" in text
        assert "Age" not in text

    def test_people_and_threads_capped(self, fixed_now):
        people = [PersonMemory(name=f"Person {i}") for i in range(12)]
        threads = [ActiveThread(id=str(i), topic=f"topic {i}") for i in range(7)]
        hot = HotMemory(core=CoreMemory(), relationship=RelationshipMemory(), threads=threads)

        text = TieredMemoryStore.format_for_context(hot, people)

        assert "- Person 9" in text
        assert "Person 10" not in text
        assert "- topic 4" in text
        assert "topic 5" not in text

    def test_deterministic(self):
        hot = HotMemory(core=CoreMemory(name="Sam"), relationship=RelationshipMemory())
        people = [PersonMemory(name="Amber", relationship="partner", key_facts=["nurse"])]

        first = TieredMemoryStore.format_for_context(hot, people)
        second = TieredMemoryStore.format_for_context(hot, people)

        assert first == second
        assert "- Amber (partner): nurse" in first
