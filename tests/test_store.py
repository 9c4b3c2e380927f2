"""Tests for the key/value store backends."""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

from app.db.store import MemoryStore, MongoStore


def test_memory_strings_hashes_sets():
    store = MemoryStore()

    async def scenario():
        await store.set("k", "v")
        await store.hset("h", "a", "1")
        await store.hset("h", "b", "2")
        first = await store.sadd("s", "x")
        again = await store.sadd("s", "x")
        await store.sadd("s", "a")
        return (
            await store.get("k"),
            await store.hget("h", "a"),
            await store.hgetall("h"),
            (first, again),
            await store.sismember("s", "x"),
            await store.smembers("s"),
        )

    value, field, fields, adds, member, members = asyncio.run(scenario())
    assert value == "v"
    assert field == "1"
    assert fields == {"a": "1", "b": "2"}
    assert adds == (True, False)
    assert member is True
    assert members == ["a", "x"]


def test_memory_missing_keys_and_delete():
    store = MemoryStore()

    async def scenario():
        await store.set("k", "v")
        await store.delete("k")
        return await store.get("k"), await store.hget("h", "a"), await store.hgetall("h"), await store.smembers("s")

    assert asyncio.run(scenario()) == (None, None, {}, [])


def test_memory_hgetall_returns_copy():
    store = MemoryStore()
    asyncio.run(store.hset("h", "a", "1"))

    snapshot = asyncio.run(store.hgetall("h"))
    snapshot["a"] = "changed"

    assert asyncio.run(store.hget("h", "a")) == "1"


def mongo_collection():
    collection = MagicMock()
    collection.find_one = AsyncMock(return_value=None)
    collection.update_one = AsyncMock(return_value=SimpleNamespace(upserted_id=None, modified_count=0))
    collection.delete_one = AsyncMock()
    return collection


def test_mongo_set_is_single_document_upsert():
    collection = mongo_collection()
    store = MongoStore(collection)

    asyncio.run(store.set("user:1:last_send", "123.0"))

    collection.update_one.assert_awaited_once_with(
        {"_id": "user:1:last_send"},
        {"$set": {"kind": "string", "value": "123.0"}},
        upsert=True,
    )


def test_mongo_hash_field_update():
    collection = mongo_collection()
    store = MongoStore(collection)

    asyncio.run(store.hset("user:1:settings", "tz", "Asia/Tokyo"))

    collection.update_one.assert_awaited_once_with(
        {"_id": "user:1:settings"},
        {"$set": {"kind": "hash", "fields.tz": "Asia/Tokyo"}},
        upsert=True,
    )


def test_mongo_reads():
    collection = mongo_collection()
    collection.find_one.return_value = {"_id": "h", "kind": "hash", "fields": {"tz": "UTC"}}
    store = MongoStore(collection)

    assert asyncio.run(store.hgetall("h")) == {"tz": "UTC"}
    assert asyncio.run(store.hget("h", "tz")) == "UTC"

    collection.find_one.return_value = None
    assert asyncio.run(store.get("missing")) is None
    assert asyncio.run(store.sismember("users:set", "1")) is False


def test_mongo_sadd_reports_new_members():
    collection = mongo_collection()
    store = MongoStore(collection)

    collection.update_one.return_value = SimpleNamespace(upserted_id="users:set", modified_count=0)
    created = asyncio.run(store.sadd("users:set", "1"))

    collection.update_one.return_value = SimpleNamespace(upserted_id=None, modified_count=1)
    added = asyncio.run(store.sadd("users:set", "2"))

    collection.update_one.return_value = SimpleNamespace(upserted_id=None, modified_count=0)
    existing = asyncio.run(store.sadd("users:set", "2"))

    assert (created, added, existing) == (True, True, False)
