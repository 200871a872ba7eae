"""
Agent Orchestrator - the single Bethany instance.

Every inbound message and every scheduled rhythm goes through here, one at
a time. The orchestrator drives the session manager, tiered memory and
context assembly, calls the completion service and delivers the reply.

Flow for a message:
1. Log the raw turn, check the session boundary, archive what closed
2. Handle availability signals
3. Assemble context and get a reply
4. Store and deliver the reply, then fold new facts into memory
"""

import asyncio
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Tuple

from pydantic import ValidationError

from agents.context_assembler import ContextFooter, PromptMode, assemble
from config.settings import settings
from core import (
    get_logger,
    CompletionQuotaError,
    CompletionServiceError,
    DatabaseException,
    InvalidInputError,
)
from memory.blob_store import BlobStore, blob_store
from memory.database_async import AsyncDatabase, db
from memory.extraction import FactExtractor, fact_extractor
from memory.session_manager import (
    SessionManager,
    session_manager,
    session_topics,
    summarize_session,
)
from memory.tiered_memory import TieredMemoryStore, tiered_memory
from prompts.personality import BETHANY_PERSONALITY
from prompts.rhythms import RHYTHM_PROMPTS, SILENCE_SENTINEL
from schemas.agent import AgentState
from schemas.memory import ConversationSummary, HotMemory, ensure_utc, utc_now
from schemas.session import Session
from utils.llm_client import LLMClient, llm_client
from utils.message_client import MessageClient, message_client

logger = get_logger(__name__)

AGENT_STATE_FILE = "agent_state.json"
SESSION_CLEANUP = "sessionCleanup"
RHYTHM_NAMES = tuple(RHYTHM_PROMPTS) + (SESSION_CLEANUP,)

AWAY_SIGNALS = ("at dinner", "taking the day off", "busy", "going dark")
BACK_SIGNALS = ("i'm back", "back now", "available again")

AWAY_ACK = "Got it. I'll be here when you're back."
APOLOGY = "sorry, my brain glitched for a sec. say that again?"
QUOTA_NOTICE = (
    "Bethany is out of model credit and can't reply right now. "
    "Top up the account and she'll pick back up."
)

# Open threads untouched for this long show up as overdue in the footer
OVERDUE_THREAD_AGE = timedelta(days=3)


class AgentOrchestrator:
    """
    Serializes message and rhythm handling for the one user.

    Holds an asyncio.Lock so session creation and index writes never
    interleave. AgentState is rehydrated from the blob store on first use.
    """

    def __init__(
        self,
        memory: TieredMemoryStore = tiered_memory,
        sessions: SessionManager = session_manager,
        extractor: FactExtractor = fact_extractor,
        llm: LLMClient = llm_client,
        messenger: MessageClient = message_client,
        database: AsyncDatabase = db,
        store: BlobStore = blob_store,
        user_key: str = settings.USER_KEY,
        user_address: str = settings.USER_PHONE_NUMBER,
        operator_address: str = settings.operator_address,
        clock: Callable[[], datetime] = utc_now,
    ):
        """Initialize orchestrator."""
        self.memory = memory
        self.sessions = sessions
        self.extractor = extractor
        self.llm = llm
        self.messenger = messenger
        self.db = database
        self.store = store
        self.user_key = user_key
        self.user_address = user_address
        self.operator_address = operator_address
        self.clock = clock
        self.state: Optional[AgentState] = None
        self._lock = asyncio.Lock()
        logger.info("Agent orchestrator initialized", user_key=user_key)

    # ==================== State ====================

    def _state_key(self) -> str:
        return f"{self.user_key}/{AGENT_STATE_FILE}"

    async def load_state(self) -> AgentState:
        """Rehydrate AgentState once; defaults if nothing usable is stored."""
        if self.state is not None:
            return self.state
        try:
            raw = await self.store.get(self._state_key())
            self.state = AgentState.model_validate_json(raw) if raw else AgentState()
        except (DatabaseException, ValidationError) as e:
            logger.error("Failed to load agent state, using defaults", error=str(e))
            self.state = AgentState()
        return self.state

    async def _save_state(self) -> None:
        self.state.last_updated = self.clock()
        try:
            await self.store.put(self._state_key(), self.state.model_dump_json(indent=2))
        except DatabaseException as e:
            logger.error("Failed to save agent state", error=str(e))

    # ==================== Messages ====================

    async def handle_message(self, message: str) -> Optional[str]:
        """
        Handle one inbound message.

        Args:
            message: Normalized message text

        Returns:
            The reply that was sent, or None when nothing went to the user
        """
        async with self._lock:
            return await self._handle_message(message)

    async def _handle_message(self, message: str) -> Optional[str]:
        state = await self.load_state()
        logger.info(
            "Processing message",
            message_preview=message[:50] if len(message) > 50 else message,
        )

        await self._log_turn("user", message)

        result = await self.sessions.check_and_manage_session("message")
        if result.previous_session is not None:
            await self._close_session(result.previous_session)

        state.last_interaction = self.clock()
        lowered = message.lower()

        if any(signal in lowered for signal in AWAY_SIGNALS):
            state.is_available = False
            await self._save_state()
            logger.info("User went away")
            await self.sessions.append_turn("user", message)
            await self._reply(AWAY_ACK)
            return AWAY_ACK

        if any(signal in lowered for signal in BACK_SIGNALS):
            state.is_available = True
            logger.info("User is back")
        await self._save_state()

        session = await self.sessions.append_turn("user", message)
        system_prompt, memory_block = await self._build_prompt(
            SessionManager.format_for_context(session), PromptMode.STEADY
        )

        try:
            reply = await self.llm.complete(system_prompt, message)
        except CompletionQuotaError:
            await self._notify_quota()
            return None
        except CompletionServiceError as e:
            logger.error("Completion failed, apologizing", error_code=e.error_code)
            await self._reply(APOLOGY)
            return APOLOGY

        await self._clear_quota_flag()
        await self._reply(reply)
        await self.extractor.process_exchange(message, reply, memory_block)
        return reply

    # ==================== Rhythms ====================

    async def handle_rhythm(self, name: str) -> Optional[str]:
        """
        Run a scheduled rhythm.

        Args:
            name: One of RHYTHM_NAMES

        Returns:
            The message sent, or None (cleanup, unavailable, silence, failure)

        Raises:
            InvalidInputError: Unknown rhythm name
        """
        if name not in RHYTHM_NAMES:
            raise InvalidInputError("rhythm", f"unknown rhythm '{name}'")

        async with self._lock:
            if name == SESSION_CLEANUP:
                await self.sessions.cleanup()
                return None
            return await self._run_rhythm(name)

    async def _run_rhythm(self, name: str) -> Optional[str]:
        state = await self.load_state()
        if not state.is_available:
            logger.info("Rhythm skipped, user unavailable", rhythm=name)
            return None

        summaries = await self.sessions.recent_sessions_summary()
        system_prompt, _ = await self._build_prompt(
            "\n".join(f"- {s}" for s in summaries), PromptMode.RHYTHM
        )
        instruction = RHYTHM_PROMPTS[name].format(user_name=settings.USER_NAME)

        try:
            reply = await self.llm.complete(system_prompt, instruction)
        except CompletionQuotaError:
            await self._notify_quota()
            return None
        except CompletionServiceError as e:
            logger.error("Rhythm completion failed", rhythm=name, error_code=e.error_code)
            return None

        await self._clear_quota_flag()
        if SILENCE_SENTINEL in reply.lower():
            logger.info("Rhythm chose silence", rhythm=name)
            return None

        result = await self.sessions.check_and_manage_session(name)
        if result.previous_session is not None:
            await self._close_session(result.previous_session)
        await self._reply(reply)
        logger.info("Rhythm message sent", rhythm=name)
        return reply

    # ==================== Helpers ====================

    async def _build_prompt(self, session_block: str, mode: PromptMode) -> Tuple[str, str]:
        """Returns (system prompt, memory block)."""
        hot = await self.memory.load_hot()
        people = await self.memory.load_people()
        memory_block = TieredMemoryStore.format_for_context(hot, people) if hot else ""

        now = self.clock()
        footer = ContextFooter(
            current_time=now,
            user_name=(hot.core.name if hot else None) or settings.USER_NAME,
            contact_count=len(people),
            overdue=self._overdue_threads(hot, now),
            extra={"Available": "yes" if self.state and self.state.is_available else "no"},
        )
        personality = BETHANY_PERSONALITY.format(user_name=settings.USER_NAME)
        return assemble(personality, memory_block, session_block, mode, footer), memory_block

    @staticmethod
    def _overdue_threads(hot: Optional[HotMemory], now: datetime) -> List[str]:
        if hot is None:
            return []
        overdue = []
        for thread in hot.threads:
            last = ensure_utc(thread.last_referenced or thread.created_at)
            age = ensure_utc(now) - last
            if age >= OVERDUE_THREAD_AGE:
                overdue.append(f"{thread.topic} ({age.days} days)")
        return overdue

    async def _close_session(self, session: Session) -> None:
        """Archive a closed session and add it to history. Never raises."""
        try:
            entry = await self.sessions.archive(session)
            if entry is None:
                return
            await self.memory.add_conversation_summary(
                ConversationSummary(
                    date=session.started_at,
                    summary=f"{entry.title}: {summarize_session(session)}",
                    topics=session_topics(session),
                )
            )
        except Exception as e:
            logger.error("Failed to close session", session_id=session.id, error=str(e))

    async def _reply(self, text: str) -> None:
        await self.sessions.append_turn("agent", text)
        await self._log_turn("agent", text)
        await self.messenger.send(self.user_address, text)

    async def _log_turn(self, role: str, content: str) -> None:
        try:
            await self.db.log_turn(role, content)
        except DatabaseException as e:
            logger.error("Failed to log conversation turn", role=role, error=str(e))

    async def _notify_quota(self) -> None:
        """Tell the operator once per exhaustion episode. The user hears nothing."""
        state = await self.load_state()
        if state.quota_notified:
            logger.warning("Completion quota still exhausted, operator already notified")
            return
        sent = await self.messenger.send(self.operator_address, QUOTA_NOTICE)
        if sent:
            state.quota_notified = True
            await self._save_state()
        logger.error("Completion quota exhausted", operator_notified=sent)

    async def _clear_quota_flag(self) -> None:
        if self.state and self.state.quota_notified:
            self.state.quota_notified = False
            await self._save_state()
            logger.info("Completion quota recovered")


# Singleton instance
orchestrator = AgentOrchestrator()
