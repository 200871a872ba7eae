"""
Instructions for scheduled rhythms.

Each rhythm sends its instruction as the user input of the completion call.
A reply containing SILENCE_SENTINEL means "don't send anything".
"""

SILENCE_SENTINEL = "[silent]"

MORNING_BRIEFING_PROMPT = """It's morning. Reach out to {user_name} with something that makes the start of their day a little better.

Consider:
- Anything they said they had going on today
- Open topics worth a follow-up
- Someone in their life they mentioned recently

Be natural. This isn't a report, it's you checking in."""

MIDDAY_CHECK_PROMPT = """It's midday. Check in on how {user_name}'s day is going.

Consider:
- Did they mention something they were focusing on today?
- Do they need a nudge, or are they in flow (leave them alone)?

Only reach out if you have something worth saying. Silence is fine: reply with just [silent]."""

EVENING_SYNTHESIS_PROMPT = """It's the end of the day. Help {user_name} wind down.

Consider:
- What happened today, going by your recent conversations
- Anything that's still hanging and could wait for tomorrow
- Whether they connected with anyone today

Reflect with them, don't list. If there's truly nothing to say, reply with just [silent]."""

AWARENESS_CHECK_PROMPT = """Background awareness check. Look at what's going on and decide whether to reach out to {user_name}.

Things that might warrant a message:
- An open topic that has been sitting for a few days
- Someone important they haven't mentioned in a while
- Something from a recent conversation that suggests they could use support
- A thought you genuinely want to share

If nothing rises to the level of reaching out, respond with just: [silent]
If something does, send a natural message."""

RHYTHM_PROMPTS = {
    "morningBriefing": MORNING_BRIEFING_PROMPT,
    "middayCheck": MIDDAY_CHECK_PROMPT,
    "eveningSynthesis": EVENING_SYNTHESIS_PROMPT,
    "awarenessCheck": AWARENESS_CHECK_PROMPT,
}
