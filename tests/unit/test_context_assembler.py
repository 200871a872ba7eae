"""
Tests for system prompt assembly.
"""

from datetime import datetime

import pytest
import pytz

from agents.context_assembler import (
    SCENARIO_GUIDELINES,
    ContextFooter,
    PromptMode,
    assemble,
)


class TestAssemble:
    """Block order and the mode lookup."""

    def test_block_order(self, fixed_now):
        footer = ContextFooter(current_time=fixed_now, user_name="Sam")

        prompt = assemble(
            "PERSONALITY",
            "## Your dynamic:\n- Vibe: new",
            "[they said]: hey",
            PromptMode.STEADY,
            footer,
        )

        positions = [
            prompt.index("PERSONALITY"),
            prompt.index("## Your dynamic:"),
            prompt.index("[they said]: hey"),
            prompt.index("STEADY MODE"),
            prompt.index("CURRENT CONTEXT"),
        ]
        assert positions == sorted(positions)

    def test_pure(self, fixed_now):
        footer = ContextFooter(current_time=fixed_now)
        args = ("P", "M", "S", PromptMode.BRAINDUMP, footer)
        assert assemble(*args) == assemble(*args)

    def test_empty_blocks_skipped(self):
        assert assemble("P", "", "") == "P"

    def test_rhythm_mode_labels_summaries(self):
        prompt = assemble("P", "", "- Tue, Mar 3 9:00 AM: 2 messages, work", PromptMode.RHYTHM)

        assert "## Recent sessions:" in prompt
        assert "[silent]" in prompt

    @pytest.mark.parametrize("mode", list(PromptMode))
    def test_every_mode_has_guidance(self, mode):
        assert SCENARIO_GUIDELINES[mode].strip()

    def test_mode_from_string(self):
        assert PromptMode("draft") is PromptMode.DRAFT


class TestContextFooter:
    """CURRENT CONTEXT rendering."""

    def test_local_time_in_chicago(self, fixed_now):
        text = ContextFooter(current_time=fixed_now).render()

        assert text.startswith("---\nCURRENT CONTEXT\n\n")
        assert "Time: Tue, Mar 3, 9:00 AM" in text

    def test_naive_time_treated_as_utc(self):
        text = ContextFooter(current_time=datetime(2026, 3, 3, 15, 0)).render()
        assert "9:00 AM" in text

    def test_optional_lines(self, fixed_now):
        footer = ContextFooter(
            current_time=fixed_now,
            user_name="Sam",
            contact_count=12,
            overdue=[f"thread {i}" for i in range(7)],
            extra={"Available": "yes"},
        )

        text = footer.render()

        assert "User: Sam" in text
        assert "Contacts: 12" in text
        assert "Available: yes" in text
        assert "- thread 4" in text
        assert "thread 5" not in text

    def test_minimal(self, fixed_now):
        text = ContextFooter(current_time=fixed_now).render()

        assert "User:" not in text
        assert "Overdue" not in text

    def test_other_timezone(self):
        now = pytz.utc.localize(datetime(2026, 7, 1, 12, 0))
        text = ContextFooter(current_time=now, timezone="Europe/London").render()
        assert "1:00 PM" in text
