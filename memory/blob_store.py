"""
Blob store - durable key/value storage with prefix listing.

Every memory and session record is a JSON document stored under a
namespaced key. The store only knows strings; callers own encoding.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select, delete as sa_delete
from sqlalchemy.exc import SQLAlchemyError
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

from core import get_logger, BlobStoreError
from memory.database_async import AsyncDatabase, db
from memory.models import Blob, naive_utc_now

logger = get_logger(__name__)

_retry_transient = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=5),
    retry=retry_if_exception_type(BlobStoreError),
    reraise=True,
)


@dataclass
class BlobInfo:
    """Listing entry for a stored blob."""

    key: str
    updated_at: datetime


class BlobStore:
    """
    Key/value store backed by the `blobs` table.

    Contract:
        get(key) -> str | None
        put(key, value)
        list(prefix) -> [BlobInfo] ordered by key
        delete(key)  (missing keys are ignored)

    All failures surface as BlobStoreError after retries.
    """

    def __init__(self, database: AsyncDatabase = db):
        self.db = database

    @_retry_transient
    async def get(self, key: str) -> Optional[str]:
        """Read a blob, or None if it doesn't exist."""
        try:
            async with self.db.get_session() as session:
                blob = await session.get(Blob, key)
                return blob.value if blob else None
        except SQLAlchemyError as e:
            logger.warning("Blob read failed", key=key, error=str(e))
            raise BlobStoreError("get", key, str(e))

    @_retry_transient
    async def put(self, key: str, value: str) -> None:
        """Create or overwrite a blob."""
        now = naive_utc_now()
        try:
            async with self.db.get_session() as session:
                blob = await session.get(Blob, key)
                if blob:
                    blob.value = value
                    blob.updated_at = now
                else:
                    session.add(Blob(key=key, value=value, created_at=now, updated_at=now))
        except SQLAlchemyError as e:
            logger.warning("Blob write failed", key=key, error=str(e))
            raise BlobStoreError("put", key, str(e))

    @_retry_transient
    async def list(self, prefix: str) -> List[BlobInfo]:
        """List blobs whose key starts with prefix."""
        try:
            async with self.db.get_session() as session:
                result = await session.execute(
                    select(Blob.key, Blob.updated_at)
                    .where(Blob.key.startswith(prefix, autoescape=True))
                    .order_by(Blob.key)
                )
                return [BlobInfo(key=row.key, updated_at=row.updated_at) for row in result]
        except SQLAlchemyError as e:
            logger.warning("Blob list failed", prefix=prefix, error=str(e))
            raise BlobStoreError("list", prefix, str(e))

    @_retry_transient
    async def delete(self, key: str) -> None:
        """Delete a blob. Deleting a missing key is not an error."""
        try:
            async with self.db.get_session() as session:
                await session.execute(sa_delete(Blob).where(Blob.key == key))
        except SQLAlchemyError as e:
            logger.warning("Blob delete failed", key=key, error=str(e))
            raise BlobStoreError("delete", key, str(e))


# Singleton instance
blob_store = BlobStore()
