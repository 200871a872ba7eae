"""
Rhythm scheduler.

Wakes at the top of every hour and fires whichever rhythms are due at that
local hour (TIMEZONE):

    03:00        sessionCleanup
    07:00        morningBriefing
    12:00        middayCheck
    20:00        eveningSynthesis
    09:00-21:00  awarenessCheck
"""

import asyncio
from datetime import datetime, timedelta
from typing import Callable, List, Optional

import pytz

from config.settings import settings
from core import get_logger
from schemas.memory import ensure_utc, utc_now

logger = get_logger(__name__)

FIXED_RHYTHMS = {
    3: "sessionCleanup",
    7: "morningBriefing",
    12: "middayCheck",
    20: "eveningSynthesis",
}
AWARENESS_HOURS = range(9, 22)


def rhythms_due(now: datetime, timezone: str = settings.TIMEZONE) -> List[str]:
    """Rhythms to fire for the local hour containing `now`."""
    hour = ensure_utc(now).astimezone(pytz.timezone(timezone)).hour
    due = []
    if hour in FIXED_RHYTHMS:
        due.append(FIXED_RHYTHMS[hour])
    if hour in AWARENESS_HOURS:
        due.append("awarenessCheck")
    return due


def seconds_until_next_hour(now: datetime) -> float:
    """Seconds from `now` to the next top of the hour."""
    next_hour = now.replace(minute=0, second=0, microsecond=0) + timedelta(hours=1)
    return (next_hour - now).total_seconds()


async def run_scheduler(
    agent,
    clock: Callable[[], datetime] = utc_now,
    stop_event: Optional[asyncio.Event] = None,
) -> None:
    """
    Fire due rhythms once per hour until stop_event is set.

    Args:
        agent: AgentOrchestrator (anything with async handle_rhythm(name))
        clock: Time source
        stop_event: Set to stop the loop
    """
    stop_event = stop_event or asyncio.Event()
    logger.info("Rhythm scheduler started", timezone=settings.TIMEZONE)

    while not stop_event.is_set():
        delay = seconds_until_next_hour(clock())
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=delay)
            break
        except asyncio.TimeoutError:
            pass

        for name in rhythms_due(clock()):
            try:
                await agent.handle_rhythm(name)
            except Exception as e:
                logger.error("Rhythm failed", rhythm=name, error=str(e))

    logger.info("Rhythm scheduler stopped")
