"""
Fact extraction - folds each exchange into tiered memory.

A small model reads the latest exchange plus the current memory block and
returns JSON. Anything new is written through the TieredMemoryStore.
Extraction is best-effort: failures are logged and never reach the user.
"""

import json
import re
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from config.settings import settings
from core import get_logger
from memory.tiered_memory import TieredMemoryStore, tiered_memory
from prompts.extraction import (
    EXTRACTION_FORMAT,
    EXTRACTION_SYSTEM_PROMPT,
    EXTRACTION_USER_PROMPT,
)
from schemas.memory import PersonMemory, Sentiment
from utils.llm_client import LLMClient, llm_client

logger = get_logger(__name__)

_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$")


class JobUpdate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = None
    company: Optional[str] = None
    industry: Optional[str] = None


class CoreUpdates(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    age: Optional[str] = None
    location: Optional[str] = None
    job: Optional[JobUpdate] = None
    relationship_status: Optional[str] = None


class PersonUpdate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = Field(..., min_length=1)
    relationship: str = ""
    facts: List[str] = Field(default_factory=list)
    sentiment: Sentiment = "neutral"


class ThreadToOpen(BaseModel):
    model_config = ConfigDict(extra="ignore")

    topic: str = ""
    context: str = ""


class ExtractionResult(BaseModel):
    """What the extraction model found in one exchange."""

    model_config = ConfigDict(extra="ignore")

    core_updates: Optional[CoreUpdates] = None
    people_updates: List[PersonUpdate] = Field(default_factory=list)
    new_interests: List[str] = Field(default_factory=list)
    new_likes: List[str] = Field(default_factory=list)
    new_dislikes: List[str] = Field(default_factory=list)
    new_goals: List[str] = Field(default_factory=list)
    new_quirks: List[str] = Field(default_factory=list)
    inside_joke: Optional[str] = None
    thread_to_open: Optional[ThreadToOpen] = None
    thread_to_close: Optional[str] = None


def strip_code_fences(text: str) -> str:
    """Remove a surrounding ```json fence if the model added one."""
    return _CODE_FENCE.sub("", text.strip()).strip()


def _drop_nulls(value):
    if isinstance(value, dict):
        return {k: _drop_nulls(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [_drop_nulls(v) for v in value if v is not None]
    return value


def parse_extraction(text: str) -> Optional[ExtractionResult]:
    """Parse model output. Malformed JSON or shape -> None."""
    try:
        data = json.loads(strip_code_fences(text))
    except ValueError as e:
        logger.warning("Extraction returned invalid JSON", error=str(e))
        return None
    # Nulls mean "nothing new"; let field defaults apply
    data = _drop_nulls(data)
    if isinstance(data, dict) and isinstance(data.get("people_updates"), list):
        data["people_updates"] = [
            p for p in data["people_updates"] if isinstance(p, dict) and p.get("name")
        ]
    try:
        return ExtractionResult.model_validate(data)
    except ValidationError as e:
        logger.warning("Extraction returned unexpected shape", error=str(e))
        return None


class FactExtractor:
    """Extracts new facts from an exchange and writes them to memory."""

    def __init__(
        self,
        memory: TieredMemoryStore = tiered_memory,
        llm: LLMClient = llm_client,
    ):
        self.memory = memory
        self.llm = llm

    async def extract(
        self, user_message: str, agent_response: str, memory_block: str
    ) -> Optional[ExtractionResult]:
        """
        Ask the extraction model what is new in this exchange.

        Args:
            user_message: What the user said
            agent_response: What Bethany replied
            memory_block: Formatted current memory, so known facts are skipped

        Returns:
            ExtractionResult, or None on any failure
        """
        prompt = EXTRACTION_USER_PROMPT.format(
            memory_block=memory_block or "(empty)",
            user_message=user_message,
            agent_response=agent_response,
            format=EXTRACTION_FORMAT,
        )
        try:
            text = await self.llm.complete(
                EXTRACTION_SYSTEM_PROMPT,
                prompt,
                model=settings.MODEL_EXTRACTION,
                temperature=0.0,
            )
        except Exception as e:
            logger.warning("Fact extraction failed", error=str(e))
            return None
        return parse_extraction(text)

    @staticmethod
    def has_content(result: Optional[ExtractionResult]) -> bool:
        """True when the result carries anything worth writing."""
        if result is None:
            return False

        core = result.core_updates
        if core:
            if core.name or core.age or core.location or core.relationship_status:
                return True
            if core.job and (core.job.title or core.job.company or core.job.industry):
                return True

        return bool(
            result.people_updates
            or result.new_interests
            or result.new_likes
            or result.new_dislikes
            or result.new_goals
            or result.new_quirks
            or result.inside_joke
            or (result.thread_to_open and result.thread_to_open.topic)
            or result.thread_to_close
        )

    async def apply(self, result: Optional[ExtractionResult]) -> None:
        """Write an extraction result through the memory store."""
        if not self.has_content(result):
            return

        if result.core_updates:
            await self._apply_core(result.core_updates)

        for update in result.people_updates:
            await self.memory.upsert_person(
                PersonMemory(
                    name=update.name,
                    relationship=update.relationship,
                    key_facts=update.facts,
                    sentiment=update.sentiment,
                    last_mentioned=self.memory.clock(),
                )
            )

        await self.memory.append_to_core("interests", result.new_interests)
        await self.memory.append_to_core("goals", result.new_goals)
        await self.memory.append_to_core("quirks", result.new_quirks)
        await self.memory.append_to_preferences("likes", result.new_likes)
        await self.memory.append_to_preferences("dislikes", result.new_dislikes)

        if result.inside_joke:
            await self.memory.add_inside_joke(result.inside_joke)
        if result.thread_to_open and result.thread_to_open.topic:
            await self.memory.add_thread(result.thread_to_open.topic, result.thread_to_open.context)
        if result.thread_to_close:
            await self.memory.resolve_thread_by_topic(result.thread_to_close)

        logger.info(
            "Applied extracted facts",
            people=len(result.people_updates),
            interests=len(result.new_interests),
            opened_thread=bool(result.thread_to_open),
            closed_thread=bool(result.thread_to_close),
        )

    async def _apply_core(self, core: CoreUpdates) -> None:
        updates = {
            field: value
            for field, value in core.model_dump(exclude={"job"}).items()
            if value
        }

        if core.job:
            job_fields = {k: v for k, v in core.job.model_dump().items() if v}
            if job_fields:
                hot = await self.memory.load_hot()
                job = hot.core.job.model_dump() if hot else {}
                job.update(job_fields)
                updates["job"] = job

        if updates:
            await self.memory.update_core(updates)

    async def process_exchange(
        self, user_message: str, agent_response: str, memory_block: str
    ) -> None:
        """Extract and apply. Never raises."""
        try:
            result = await self.extract(user_message, agent_response, memory_block)
            await self.apply(result)
        except Exception as e:
            logger.error("Failed to apply extracted facts", error=str(e))


# Singleton instance
fact_extractor = FactExtractor()
