import asyncio
import json

import pytest

from conftest import OCTAVIA, OCTAVIA_ADS, OCTAVIA_ANALYSIS
from sales_assistant.schemas.car import HistoryItem
from sales_assistant.services.history_store import HistoryStore
from sales_assistant.services.storage import MemoryKeyValueStorage
from sales_assistant.utils.exceptions import StorageError

KEY = "car_sales_history"


def _item(item_id: str, timestamp: int = 1, ads=None, images=None) -> HistoryItem:
    return HistoryItem(
        id=item_id,
        timestamp=timestamp,
        car_details=OCTAVIA,
        analysis=OCTAVIA_ANALYSIS,
        ads=ads,
        images=images or [],
    )


class SlowStorage(MemoryKeyValueStorage):
    async def get(self, key):
        await asyncio.sleep(0.01)
        return await super().get(key)


class FailingStorage(MemoryKeyValueStorage):
    def __init__(self):
        super().__init__()
        self.fail_writes = False

    async def set(self, key, value):
        if self.fail_writes:
            raise StorageError("QuotaExceededError")
        await super().set(key, value)


@pytest.mark.asyncio
async def test_load_empty_storage(history_store):
    assert await history_store.load() == []


@pytest.mark.asyncio
@pytest.mark.parametrize("raw", ["{not json", '{"id": "x"}', '[{"id": "x"}]', "null"])
async def test_load_corrupt_history_is_empty(storage, history_store, raw):
    await storage.set(KEY, raw)
    assert await history_store.load() == []


@pytest.mark.asyncio
async def test_save_strips_images(history_store):
    saved = await history_store.save(_item("a", images=["data:image/jpeg;base64,AAAA"]))
    assert saved[0].images == []

    loaded = await history_store.load()
    assert [item.images for item in loaded] == [[]]


@pytest.mark.asyncio
async def test_save_writes_camel_case_without_images(storage, history_store):
    await history_store.save(_item("a", images=["data:image/jpeg;base64,AAAA"]))

    payload = json.loads(await storage.get(KEY))
    assert payload[0]["id"] == "a"
    assert payload[0]["images"] == []
    assert payload[0]["carDetails"]["engineVolume"] == "1.6"
    assert payload[0]["ads"] is None


@pytest.mark.asyncio
async def test_load_tolerates_legacy_images(storage, history_store):
    legacy = _item("old").model_dump(mode="json", by_alias=True)
    legacy["images"] = ["data:image/jpeg;base64,AAAA"]
    await storage.set(KEY, json.dumps([legacy]))

    loaded = await history_store.load()
    assert loaded[0].id == "old"
    assert loaded[0].images == ["data:image/jpeg;base64,AAAA"]

    # the next write drops them
    saved = await history_store.save(_item("new"))
    assert all(item.images == [] for item in saved)


@pytest.mark.asyncio
async def test_save_prepends_newest(history_store):
    await history_store.save(_item("a"))
    saved = await history_store.save(_item("b"))
    assert [item.id for item in saved] == ["b", "a"]


@pytest.mark.asyncio
async def test_save_existing_id_moves_to_front_without_duplicate(history_store):
    await history_store.save(_item("a"))
    await history_store.save(_item("b"))
    saved = await history_store.save(_item("a", timestamp=2, ads=OCTAVIA_ADS))

    assert [item.id for item in saved] == ["a", "b"]
    assert saved[0].ads == OCTAVIA_ADS
    assert [item.id for item in await history_store.load()] == ["a", "b"]


@pytest.mark.asyncio
async def test_save_respects_limit(storage):
    store = HistoryStore(storage, key=KEY, limit=2)
    for item_id in ("a", "b", "c"):
        await store.save(_item(item_id))
    assert [item.id for item in await store.load()] == ["c", "b"]


@pytest.mark.asyncio
async def test_delete_removes_item(history_store):
    await history_store.save(_item("a"))
    await history_store.save(_item("b"))

    remaining = await history_store.delete("a")
    assert [item.id for item in remaining] == ["b"]
    assert "a" not in [item.id for item in await history_store.load()]


@pytest.mark.asyncio
async def test_delete_missing_id_is_noop(history_store):
    await history_store.save(_item("a"))
    remaining = await history_store.delete("missing")
    assert [item.id for item in remaining] == ["a"]
    assert [item.id for item in await history_store.load()] == ["a"]


@pytest.mark.asyncio
async def test_write_failure_is_not_fatal():
    storage = FailingStorage()
    store = HistoryStore(storage, key=KEY)
    await store.save(_item("a"))

    storage.fail_writes = True
    saved = await store.save(_item("b"))

    assert [item.id for item in saved] == ["b", "a"]
    assert isinstance(store.last_error, StorageError)
    # read-your-writes within the process even though the durable write failed
    assert [item.id for item in await store.load()] == ["b", "a"]
    assert [item["id"] for item in json.loads(await storage.get(KEY))] == ["a"]

    storage.fail_writes = False
    await store.delete("a")
    assert store.last_error is None
    assert [item["id"] for item in json.loads(await storage.get(KEY))] == ["b"]


@pytest.mark.asyncio
async def test_quota_exceeded_is_not_fatal():
    store = HistoryStore(MemoryKeyValueStorage(quota_bytes=10), key=KEY)
    saved = await store.save(_item("a"))
    assert [item.id for item in saved] == ["a"]
    assert store.last_error is not None


@pytest.mark.asyncio
async def test_overlapping_saves_keep_both_items():
    store = HistoryStore(SlowStorage(), key=KEY)
    await asyncio.gather(store.save(_item("a")), store.save(_item("b")))
    assert sorted(item.id for item in await store.load()) == ["a", "b"]


@pytest.mark.asyncio
async def test_delete_overlapping_save_keeps_new_item():
    store = HistoryStore(SlowStorage(), key=KEY)
    await store.save(_item("a"))
    await asyncio.gather(store.delete("a"), store.save(_item("b")))
    assert [item.id for item in await store.load()] == ["b"]
