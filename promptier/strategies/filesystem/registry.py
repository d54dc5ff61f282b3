"""Registry mapping opaque ids to live handles.

Live handles exist only in memory. Each registration also writes a metadata
record to a durable store, so after a restart the registry still knows which
ids existed even though their handles must be re-acquired.
"""

import logging
import time
import uuid

from promptier.interfaces.handle import BaseHandle
from promptier.interfaces.store import BaseHandleRecordStore, HandleMetadata
from promptier.strategies.filesystem.record_stores import InMemoryHandleRecordStore

logger = logging.getLogger(__name__)


class FileHandleRegistry:
    """Id to handle map shadowed by durable metadata records.

    Store failures propagate to the caller; the in-memory map is only
    updated after the store accepted the change.
    """

    def __init__(self, store: BaseHandleRecordStore | None = None) -> None:
        """Initialize the registry.

        Args:
            store: Durable record store. Defaults to an in-memory store.
        """
        self._store = store or InMemoryHandleRecordStore()
        self._handles: dict[str, BaseHandle] = {}
        self._records: dict[str, HandleMetadata] = {}
        self._loaded = False

    @property
    def store(self) -> BaseHandleRecordStore:
        return self._store

    @property
    def handle_count(self) -> int:
        return len(self._handles)

    async def register_handle(self, handle: BaseHandle, handle_id: str | None = None) -> str:
        """Register a live handle.

        Args:
            handle: The handle to register.
            handle_id: Id to register under; a new one is generated when None.
                Registering an existing id replaces its handle.

        Returns:
            The id the handle is registered under.
        """
        handle_id = handle_id or uuid.uuid4().hex
        record = HandleMetadata(
            id=handle_id,
            name=handle.name,
            kind=handle.kind,
            timestamp=int(time.time() * 1000),
        )

        await self._store.put(record)

        self._handles[handle_id] = handle
        self._records[handle_id] = record
        logger.debug(f"Registered {handle.kind.value} handle {handle.name} as {handle_id}")
        return handle_id

    def get_handle(self, handle_id: str) -> BaseHandle | None:
        return self._handles.get(handle_id)

    def get_record(self, handle_id: str) -> HandleMetadata | None:
        return self._records.get(handle_id)

    def get_all_handles(self) -> dict[str, BaseHandle]:
        return dict(self._handles)

    async def remove_handle(self, handle_id: str) -> bool:
        """Forget a handle and its record. Returns whether it was known."""
        known = handle_id in self._handles or handle_id in self._records
        await self._store.delete(handle_id)
        self._handles.pop(handle_id, None)
        self._records.pop(handle_id, None)
        return known

    async def clear_handles(self) -> None:
        await self._store.clear()
        self._handles.clear()
        self._records.clear()
        logger.info("Cleared file handle registry")

    async def load_records(self) -> list[HandleMetadata]:
        """Load the stored records, including those without a live handle."""
        records = await self._store.list()
        for record in records:
            self._records.setdefault(record.id, record)
        self._loaded = True
        logger.debug(f"Loaded {len(records)} handle record(s)")
        return records

    async def ensure_loaded(self) -> None:
        if not self._loaded:
            await self.load_records()
