"""Key-value storage backends for the session history."""
import logging
from typing import Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from sales_assistant.models.storage_entry import StorageEntry
from sales_assistant.utils.exceptions import StorageError

logger = logging.getLogger(__name__)


class KeyValueStorage(Protocol):
    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str) -> None: ...


def _check_quota(key: str, value: str, quota_bytes: int | None) -> None:
    size = len(key.encode("utf-8")) + len(value.encode("utf-8"))
    if quota_bytes is not None and size > quota_bytes:
        raise StorageError(f"Storage quota exceeded: {size} > {quota_bytes} bytes")


class SqlKeyValueStorage:
    """Stores each key as one row; every write replaces the whole value."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], quota_bytes: int | None = None):
        self._session_factory = session_factory
        self._quota_bytes = quota_bytes

    async def get(self, key: str) -> str | None:
        try:
            async with self._session_factory() as session:
                entry = await session.get(StorageEntry, key)
                return entry.value if entry else None
        except SQLAlchemyError as e:
            raise StorageError(f"Storage read failed: {e}") from e

    async def set(self, key: str, value: str) -> None:
        _check_quota(key, value, self._quota_bytes)
        try:
            async with self._session_factory() as session:
                await session.merge(StorageEntry(key=key, value=value))
                await session.commit()
        except SQLAlchemyError as e:
            raise StorageError(f"Storage write failed: {e}") from e
        logger.debug("Stored %d chars under %s", len(value), key)


class MemoryKeyValueStorage:
    def __init__(self, quota_bytes: int | None = None):
        self._data: dict[str, str] = {}
        self._quota_bytes = quota_bytes

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        _check_quota(key, value, self._quota_bytes)
        self._data[key] = value
