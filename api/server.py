"""
HTTP front door.

Accepts already-normalized messages and rhythm triggers, and exposes
read-only debug views of memory and sessions.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Query

from agents.orchestrator import RHYTHM_NAMES, orchestrator
from agents.scheduler import run_scheduler
from config.settings import settings
from core import get_logger, BethanyException, InvalidInputError
from schemas.agent import InboundMessage

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifecycle manager for the FastAPI app.
    Prepares storage and memory, and runs the rhythm scheduler alongside the API.
    """
    logger.info("Starting up Bethany API", environment=settings.ENVIRONMENT)
    await orchestrator.db.create_tables()
    await orchestrator.memory.initialize()
    await orchestrator.load_state()

    stop_event = asyncio.Event()
    scheduler_task = asyncio.create_task(run_scheduler(orchestrator, stop_event=stop_event))

    yield

    logger.info("Shutting down...")
    stop_event.set()
    await scheduler_task
    await orchestrator.db.dispose()


app = FastAPI(title="Bethany", lifespan=lifespan)


@app.get("/health")
async def health_check():
    return {"status": "ok"}


# ── Inbound ─────────────────────────────────────────────────────────


@app.post("/message")
async def receive_message(payload: InboundMessage):
    """Handle one normalized inbound message."""
    try:
        reply = await orchestrator.handle_message(payload.message)
    except BethanyException as e:
        logger.error("Message handling failed", **e.to_dict())
        raise HTTPException(status_code=500, detail="Message handling failed")
    return {"status": "ok", "replied": reply is not None}


@app.post("/rhythm/{name}")
async def trigger_rhythm(name: str):
    """Run a rhythm on demand."""
    try:
        sent = await orchestrator.handle_rhythm(name)
    except InvalidInputError:
        raise HTTPException(
            status_code=404,
            detail=f"Unknown rhythm. Expected one of: {', '.join(RHYTHM_NAMES)}",
        )
    return {"status": "ok", "rhythm": name, "sent": sent is not None}


# ── Debug views ─────────────────────────────────────────────────────


@app.get("/debug/memory")
async def debug_memory():
    hot = await orchestrator.memory.load_hot()
    people = await orchestrator.memory.load_people()
    history = await orchestrator.memory.load_history()
    return {
        "hot": hot.model_dump(mode="json") if hot else None,
        "people": [p.model_dump(mode="json") for p in people],
        "history": [h.model_dump(mode="json") for h in history],
        "state": (await orchestrator.load_state()).model_dump(mode="json"),
    }


@app.get("/debug/session")
async def debug_session():
    session = await orchestrator.sessions.get_current_session()
    return {"session": session.model_dump(mode="json") if session else None}


@app.get("/debug/sessions")
async def debug_sessions():
    index = await orchestrator.sessions.get_index()
    return index.model_dump(mode="json")


@app.get("/debug/notes")
async def debug_notes():
    notes = await orchestrator.memory.load_self_notes()
    return {"notes": [n.model_dump(mode="json") for n in notes]}


@app.get("/debug/conversation")
async def debug_conversation(limit: Optional[int] = Query(default=20, ge=1, le=200)):
    turns = await orchestrator.db.get_recent_turns(limit=limit)
    return {"turns": [t.model_dump(mode="json") for t in turns]}
