"""
Prompts module - All LLM prompts organized by feature.

Import prompts directly:
    from prompts import BETHANY_PERSONALITY, SILENCE_SENTINEL

Or import from specific modules:
    from prompts.rhythms import RHYTHM_PROMPTS
"""

from prompts.personality import BETHANY_PERSONALITY
from prompts.scenarios import (
    STEADY_GUIDANCE,
    ONBOARDING_GUIDANCE,
    BRAINDUMP_GUIDANCE,
    NUDGE_GUIDANCE,
    DRAFT_GUIDANCE,
    RHYTHM_GUIDANCE,
)
from prompts.rhythms import RHYTHM_PROMPTS, SILENCE_SENTINEL
from prompts.session_title import SESSION_TITLE_PROMPT, EXAMPLE_SESSION_TITLES
from prompts.extraction import (
    EXTRACTION_SYSTEM_PROMPT,
    EXTRACTION_USER_PROMPT,
    EXTRACTION_FORMAT,
)

__all__ = [
    "BETHANY_PERSONALITY",
    "STEADY_GUIDANCE",
    "ONBOARDING_GUIDANCE",
    "BRAINDUMP_GUIDANCE",
    "NUDGE_GUIDANCE",
    "DRAFT_GUIDANCE",
    "RHYTHM_GUIDANCE",
    "RHYTHM_PROMPTS",
    "SILENCE_SENTINEL",
    "SESSION_TITLE_PROMPT",
    "EXAMPLE_SESSION_TITLES",
    "EXTRACTION_SYSTEM_PROMPT",
    "EXTRACTION_USER_PROMPT",
    "EXTRACTION_FORMAT",
]
