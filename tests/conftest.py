"""
Shared pytest fixtures for Bethany tests.
"""

import os

# Settings validate on import; give them something to load before any app import.
os.environ.setdefault("ANTHROPIC_API_KEY", "test-key")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./bethany-test.db")
os.environ.setdefault("USER_PHONE_NUMBER", "+15550000001")
os.environ.setdefault("OPERATOR_PHONE_NUMBER", "+15550000002")

import itertools
from datetime import datetime, timedelta
from unittest.mock import AsyncMock

import pytest
import pytz

from core import CompletionServiceError


# --- Time fixtures ---

class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def fixed_now():
    """A fixed UTC datetime for deterministic time tests."""
    return pytz.utc.localize(datetime(2026, 3, 3, 15, 0, 0))  # Tuesday 9:00 AM Chicago


@pytest.fixture
def clock(fixed_now):
    return FakeClock(fixed_now)


@pytest.fixture
def id_factory():
    """Sequential ids: 00000001, 00000002, ..."""
    counter = itertools.count(1)
    return lambda: f"{next(counter):08x}"


# --- Storage fixtures ---

@pytest.fixture
async def database(tmp_path):
    """A fresh SQLite database per test."""
    from memory.database_async import AsyncDatabase

    database = AsyncDatabase(db_url=f"sqlite+aiosqlite:///{tmp_path}/bethany.db")
    await database.create_tables()
    yield database
    await database.dispose()


@pytest.fixture
def store(database):
    from memory.blob_store import BlobStore

    return BlobStore(database)


# --- Mock LLM client ---

@pytest.fixture
def mock_llm():
    """Completion client that is offline unless a test says otherwise."""
    llm = AsyncMock()
    llm.complete = AsyncMock(side_effect=CompletionServiceError(details="offline"))
    return llm


@pytest.fixture
def mock_messenger():
    messenger = AsyncMock()
    messenger.send = AsyncMock(return_value=True)
    return messenger


# --- Components ---

@pytest.fixture
def memory(store, clock, id_factory):
    from memory.tiered_memory import TieredMemoryStore

    return TieredMemoryStore(store=store, user_key="tester", clock=clock, id_factory=id_factory)


@pytest.fixture
def sessions(store, clock, id_factory, mock_llm):
    from memory.session_manager import SessionManager

    return SessionManager(
        store=store,
        user_key="tester",
        clock=clock,
        id_factory=id_factory,
        gap_threshold=timedelta(hours=4),
        llm=mock_llm,
    )


@pytest.fixture
def extractor(memory, mock_llm):
    from memory.extraction import FactExtractor

    return FactExtractor(memory=memory, llm=mock_llm)


@pytest.fixture
def agent(memory, sessions, extractor, mock_llm, mock_messenger, database, store, clock):
    from agents.orchestrator import AgentOrchestrator

    return AgentOrchestrator(
        memory=memory,
        sessions=sessions,
        extractor=extractor,
        llm=mock_llm,
        messenger=mock_messenger,
        database=database,
        store=store,
        user_key="tester",
        user_address="+15550000001",
        operator_address="+15550000002",
        clock=clock,
    )
