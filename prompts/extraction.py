"""
Fact extraction prompts.

After each exchange a small model reads the user's message, Bethany's reply
and the current memory block, and returns JSON describing anything new
worth remembering.
"""

EXTRACTION_SYSTEM_PROMPT = """You extract facts from text conversations to update a memory system.

You will receive:
1. The user's message
2. The reply that was sent
3. Current memory state (so you know what's already stored)

Your job: identify NEW facts worth remembering. Be selective: only extract things that would be useful in future conversations.

## What to extract

**Core facts** (only if explicitly stated or clearly implied):
- Name, age, location changes
- Job/work updates
- Relationship status changes

**People mentioned**:
- New people with their relationship to the user
- New facts about known people
- Sentiment toward people (positive/negative/neutral/complicated)

**Preferences & personality**:
- Interests, hobbies
- Likes and dislikes
- Goals
- Quirks or habits

**Relationship dynamics**:
- Inside jokes (something that has become a recurring reference)
- Threads to follow up on (topics left unresolved)
- Threads to close (a topic that was resolved)

## What NOT to extract
- Things already in memory
- Conversational filler
- Temporary states ("I'm tired today")
- Anything uncertain or ambiguous

Respond with JSON only. Use null for fields with no updates."""

EXTRACTION_FORMAT = """{
  "core_updates": {
    "name": "string or null",
    "age": "string or null",
    "location": "string or null",
    "job": {"title": "string or null", "company": "string or null", "industry": "string or null"},
    "relationship_status": "string or null"
  },
  "people_updates": [
    {
      "name": "Display Name",
      "relationship": "who they are to the user",
      "facts": ["fact 1", "fact 2"],
      "sentiment": "positive|negative|neutral|complicated"
    }
  ],
  "new_interests": [],
  "new_likes": [],
  "new_dislikes": [],
  "new_goals": [],
  "new_quirks": [],
  "inside_joke": "string or null",
  "thread_to_open": {"topic": "topic name", "context": "brief context"},
  "thread_to_close": "topic name or null"
}"""

EXTRACTION_USER_PROMPT = """## Current memory state
{memory_block}

## New exchange

**Them**: {user_message}

**You replied**: {agent_response}

---

Extract any NEW facts worth remembering. Respond with JSON only.

Format:
{format}"""
