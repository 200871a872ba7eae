"""
Async database access for Bethany.
Owns the engine and session factory, and the ordered raw conversation log.
"""

from contextlib import asynccontextmanager
from typing import List, Optional, AsyncIterator

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
    AsyncEngine,
)
from sqlalchemy import select, desc
from sqlalchemy.exc import SQLAlchemyError
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

from config.settings import settings
from core import get_logger, DatabaseException, DatabaseConnectionError
from memory.models import Base, ConversationTurn, naive_utc_now
from schemas import ConversationTurnSchema

logger = get_logger(__name__)


class AsyncDatabase:
    """
    Async database interface:
    - Connection pooling and retry logic
    - Type-safe reads with Pydantic
    - Transaction management
    """

    def __init__(self, db_url: Optional[str] = None):
        """Initialize async database engine and session factory."""
        db_url = db_url or settings.DATABASE_URL
        # Convert postgresql:// to postgresql+asyncpg://
        if db_url.startswith("postgresql://"):
            db_url = db_url.replace("postgresql://", "postgresql+asyncpg://")

        engine_kwargs = {"echo": settings.LOG_LEVEL == "DEBUG"}
        if db_url.startswith("postgresql"):
            engine_kwargs.update(
                pool_size=10,
                max_overflow=20,
                pool_pre_ping=True,  # Verify connections before use
                pool_recycle=3600,  # Recycle connections after 1 hour
            )

        self.engine: AsyncEngine = create_async_engine(db_url, **engine_kwargs)

        self.async_session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

        logger.info("Async database engine initialized", db_url=db_url.split("@")[-1])

    @asynccontextmanager
    async def get_session(self) -> AsyncIterator[AsyncSession]:
        """
        Context manager for database sessions with automatic cleanup.

        Yields:
            AsyncSession instance
        """
        async with self.async_session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception as e:
                await session.rollback()
                logger.error("Session rolled back", error=str(e))
                raise
            finally:
                await session.close()

    async def create_tables(self) -> None:
        """Create all database tables."""
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except (SQLAlchemyError, OSError) as e:
            raise DatabaseConnectionError(str(e))
        logger.info("Database tables created")

    async def drop_tables(self) -> None:
        """Drop all database tables (use with caution)."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        logger.warning("Database tables dropped")

    async def dispose(self) -> None:
        """Close pooled connections."""
        await self.engine.dispose()

    # ==================== Conversation Log ====================

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(DatabaseException),
        reraise=True,
    )
    async def log_turn(
        self, role: str, content: str, channel: str = "sms"
    ) -> ConversationTurnSchema:
        """
        Append a raw turn to the conversation log.

        Args:
            role: "user" or "agent"
            content: Message text
            channel: Where it came from or went to

        Returns:
            ConversationTurnSchema with the stored row

        Raises:
            DatabaseException: If the insert fails
        """
        try:
            async with self.get_session() as session:
                turn = ConversationTurn(
                    role=role,
                    content=content,
                    channel=channel,
                    created_at=naive_utc_now(),
                )
                session.add(turn)
                await session.flush()
                return ConversationTurnSchema.model_validate(turn)

        except SQLAlchemyError as e:
            logger.error("Failed to log conversation turn", role=role, error=str(e))
            raise DatabaseException(f"Failed to log conversation turn: {e}")

    async def get_recent_turns(self, limit: int = 20) -> List[ConversationTurnSchema]:
        """Get the most recent logged turns, oldest first."""
        try:
            async with self.get_session() as session:
                result = await session.execute(
                    select(ConversationTurn)
                    .order_by(desc(ConversationTurn.created_at), desc(ConversationTurn.id))
                    .limit(limit)
                )
                turns = result.scalars().all()
                # Reverse to get chronological order
                return [ConversationTurnSchema.model_validate(t) for t in reversed(turns)]

        except SQLAlchemyError as e:
            logger.error("Failed to get conversation turns", error=str(e))
            raise DatabaseException(f"Failed to get conversation turns: {e}")


# Singleton instance
db = AsyncDatabase()
