"""Durable metadata stores for the file-handle registry."""

import logging

from sqlalchemy import delete
from sqlmodel import select

from promptier.db.models import HandleRecord
from promptier.db.session import (
    close_engine,
    create_all_tables,
    create_engine,
    create_session_maker,
    session_scope,
)
from promptier.interfaces.store import BaseHandleRecordStore, HandleMetadata

logger = logging.getLogger(__name__)


class InMemoryHandleRecordStore(BaseHandleRecordStore):
    """Process-local record store. Records do not survive a restart."""

    def __init__(self) -> None:
        self._records: dict[str, HandleMetadata] = {}

    async def put(self, record: HandleMetadata) -> None:
        self._records[record.id] = record

    async def delete(self, handle_id: str) -> None:
        self._records.pop(handle_id, None)

    async def list(self) -> list[HandleMetadata]:
        return sorted(self._records.values(), key=lambda record: record.timestamp)

    async def clear(self) -> None:
        self._records.clear()


class SqlHandleRecordStore(BaseHandleRecordStore):
    """Record store backed by a SQL table through async SQLAlchemy.

    The table is created on first use.

    Example:
        ```python
        store = SqlHandleRecordStore("sqlite+aiosqlite:///./promptier.db")
        await store.put(HandleMetadata(id="a1", name="notes.md", kind=HandleKind.FILE, timestamp=0))
        await store.close()
        ```
    """

    def __init__(self, database_url: str, echo: bool = False) -> None:
        """Initialize the store.

        Args:
            database_url: Async SQLAlchemy URL.
            echo: Log every SQL statement.
        """
        self._engine = create_engine(database_url, echo=echo)
        self._session_maker = create_session_maker(self._engine)
        self._initialized = False

    async def init(self) -> None:
        """Create the records table if it does not exist."""
        await create_all_tables(self._engine)
        self._initialized = True

    async def put(self, record: HandleMetadata) -> None:
        await self._ensure_initialized()
        async with session_scope(self._session_maker) as session:
            await session.merge(HandleRecord.from_metadata(record))

    async def delete(self, handle_id: str) -> None:
        await self._ensure_initialized()
        async with session_scope(self._session_maker) as session:
            await session.execute(delete(HandleRecord).where(HandleRecord.id == handle_id))

    async def list(self) -> list[HandleMetadata]:
        await self._ensure_initialized()
        async with session_scope(self._session_maker) as session:
            result = await session.execute(select(HandleRecord).order_by(HandleRecord.timestamp))
            return [row.to_metadata() for row in result.scalars().all()]

    async def clear(self) -> None:
        await self._ensure_initialized()
        async with session_scope(self._session_maker) as session:
            await session.execute(delete(HandleRecord))
        logger.info("Cleared all handle records")

    async def close(self) -> None:
        await close_engine(self._engine)

    async def _ensure_initialized(self) -> None:
        if not self._initialized:
            await self.init()
