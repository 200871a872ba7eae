"""
Session title prompt.

Produces a short slug naming what a finished conversation was about.
"""

EXAMPLE_SESSION_TITLES = [
    "chapter-three-rewrite",
    "client-deadline-stress",
    "sunday-coffee-plans",
    "missing-each-other",
    "late-night-book-talk",
]

SESSION_TITLE_PROMPT = """You name finished text conversations so they can be found again later.

Read the whole transcript and reply with a title that captures what it was mostly about.

Rules:
- 2 to 5 words
- all lowercase
- words separated by hyphens, no spaces
- no quotes, no punctuation, nothing else

Example titles:
{examples}

Reply with the title only."""
