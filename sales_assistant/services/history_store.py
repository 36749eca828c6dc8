"""Bounded, durable log of past sessions.

The whole history lives under a single storage key as a JSON list, newest
first. Every mutation reads the full list and rewrites it in full. Image
payloads are never written: they are what blows the storage quota.
"""
import asyncio
import json
import logging

from pydantic import TypeAdapter, ValidationError

from sales_assistant.schemas.car import HistoryItem
from sales_assistant.services.storage import KeyValueStorage
from sales_assistant.utils.exceptions import CorruptHistoryError, StorageError

logger = logging.getLogger(__name__)

_history_adapter = TypeAdapter(list[HistoryItem])


def _decode(raw: str) -> list[HistoryItem]:
    try:
        return _history_adapter.validate_json(raw)
    except ValidationError as e:
        raise CorruptHistoryError(f"Malformed history payload: {e.error_count()} errors") from e


def _encode(items: list[HistoryItem]) -> str:
    return json.dumps([item.model_dump(mode="json", by_alias=True) for item in items], ensure_ascii=False)


class HistoryStore:
    def __init__(self, storage: KeyValueStorage, key: str, limit: int | None = None):
        self._storage = storage
        self._key = key
        self._limit = limit
        # Last attempted list whose durable write failed; authoritative until a write succeeds.
        self._unsynced: list[HistoryItem] | None = None
        self.last_error: StorageError | None = None
        # Held across every read-modify-write cycle.
        self._lock = asyncio.Lock()

    async def load(self) -> list[HistoryItem]:
        if self._unsynced is not None:
            return list(self._unsynced)

        try:
            raw = await self._storage.get(self._key)
        except StorageError as e:
            logger.warning("History read failed, treating as empty: %s", e)
            return []

        if not raw:
            return []

        try:
            return _decode(raw)
        except CorruptHistoryError as e:
            logger.warning("Discarding corrupt history under %s: %s", self._key, e)
            return []

    async def save(self, item: HistoryItem) -> list[HistoryItem]:
        stored = item.model_copy(update={"images": []})
        async with self._lock:
            items = [existing for existing in await self.load() if existing.id != stored.id]
            items.insert(0, stored)
            if self._limit is not None and len(items) > self._limit:
                dropped = len(items) - self._limit
                items = items[: self._limit]
                logger.info("History limit %d reached, dropped %d oldest item(s)", self._limit, dropped)
            await self._persist(items)
        return list(items)

    async def delete(self, item_id: str) -> list[HistoryItem]:
        async with self._lock:
            current = await self.load()
            items = [existing for existing in current if existing.id != item_id]
            if len(items) == len(current):
                return items
            await self._persist(items)
        return list(items)

    async def _persist(self, items: list[HistoryItem]) -> None:
        try:
            await self._storage.set(self._key, _encode(items))
        except StorageError as e:
            logger.warning("History write failed, keeping %d item(s) in memory: %s", len(items), e)
            self.last_error = e
            self._unsynced = list(items)
            return
        self.last_error = None
        self._unsynced = None
