"""
Context assembly - builds the system prompt for one completion call.

Order: personality, memory block, session block, scenario guidance,
current-context footer. Blocks arrive already bounded (session formatting
keeps the last 10 messages, memory formatting caps people and threads), so
nothing is truncated again here.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

import pytz

from config.settings import settings
from prompts.scenarios import (
    BRAINDUMP_GUIDANCE,
    DRAFT_GUIDANCE,
    NUDGE_GUIDANCE,
    ONBOARDING_GUIDANCE,
    RHYTHM_GUIDANCE,
    STEADY_GUIDANCE,
)

OVERDUE_LIMIT = 5


class PromptMode(str, Enum):
    """Closed set of conversation scenarios."""

    STEADY = "steady"
    ONBOARDING = "onboarding"
    BRAINDUMP = "braindump"
    NUDGE = "nudge"
    DRAFT = "draft"
    RHYTHM = "rhythm"


SCENARIO_GUIDELINES: Dict[PromptMode, str] = {
    PromptMode.STEADY: STEADY_GUIDANCE,
    PromptMode.ONBOARDING: ONBOARDING_GUIDANCE,
    PromptMode.BRAINDUMP: BRAINDUMP_GUIDANCE,
    PromptMode.NUDGE: NUDGE_GUIDANCE,
    PromptMode.DRAFT: DRAFT_GUIDANCE,
    PromptMode.RHYTHM: RHYTHM_GUIDANCE,
}


@dataclass
class ContextFooter:
    """Wall-clock and situational facts appended last."""

    current_time: datetime
    user_name: Optional[str] = None
    contact_count: Optional[int] = None
    overdue: List[str] = field(default_factory=list)
    extra: Dict[str, str] = field(default_factory=dict)
    timezone: str = settings.TIMEZONE

    def render(self) -> str:
        local = self.current_time
        if local.tzinfo is None:
            local = pytz.utc.localize(local)
        local = local.astimezone(pytz.timezone(self.timezone))
        hour = local.hour % 12 or 12
        time_str = f"{local.strftime('%a, %b')} {local.day}, {hour}:{local.strftime('%M %p')}"

        lines = ["---", "CURRENT CONTEXT", "", f"Time: {time_str}"]
        if self.user_name:
            lines.append(f"User: {self.user_name}")
        if self.contact_count is not None:
            lines.append(f"Contacts: {self.contact_count}")
        for key, value in self.extra.items():
            lines.append(f"{key}: {value}")

        if self.overdue:
            lines.append("")
            lines.append("Overdue:")
            lines.extend(f"- {item}" for item in self.overdue[:OVERDUE_LIMIT])

        return "\n".join(lines)


def assemble(
    personality_template: str,
    memory_block: str,
    session_block: str,
    mode: Optional[PromptMode] = None,
    footer: Optional[ContextFooter] = None,
) -> str:
    """
    Join the prompt blocks into one system prompt.

    Pure: same inputs, same output. Empty blocks are skipped.

    Args:
        personality_template: Formatted personality prompt
        memory_block: TieredMemoryStore.format_for_context output
        session_block: Current session transcript, or recent-session
            summaries in rhythm mode
        mode: Scenario whose guidance is appended
        footer: Current-context footer

    Returns:
        The system prompt
    """
    blocks = [personality_template.strip()]
    if memory_block and memory_block.strip():
        blocks.append(memory_block.strip())
    if session_block and session_block.strip():
        heading = "## Recent sessions:" if mode == PromptMode.RHYTHM else "## This conversation:"
        blocks.append(f"{heading}\n{session_block.strip()}")
    if mode is not None:
        blocks.append(SCENARIO_GUIDELINES[mode].strip())
    if footer is not None:
        blocks.append(footer.render())
    return "\n\n".join(blocks)
