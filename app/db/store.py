"""
app/db/store.py

Purpose: Key/value persistence used by every service

- String, hash and set primitives keyed by string
- MemoryStore for development and tests (lost on restart)
- MongoStore backed by motor, one document per key
- Only single-key atomicity is assumed by callers
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Set

from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)


class Store(ABC):
    """Async key/value, hash and set store."""

    # Strings
    @abstractmethod
    async def get(self, key: str) -> Optional[str]: ...

    @abstractmethod
    async def set(self, key: str, value: str) -> None: ...

    @abstractmethod
    async def delete(self, key: str) -> None: ...

    # Hashes
    @abstractmethod
    async def hget(self, key: str, field: str) -> Optional[str]: ...

    @abstractmethod
    async def hset(self, key: str, field: str, value: str) -> None: ...

    @abstractmethod
    async def hgetall(self, key: str) -> Dict[str, str]: ...

    # Sets
    @abstractmethod
    async def sadd(self, key: str, member: str) -> bool:
        """Adds member; returns True if it was not already present."""

    @abstractmethod
    async def sismember(self, key: str, member: str) -> bool: ...

    @abstractmethod
    async def smembers(self, key: str) -> List[str]: ...

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        return None


class MemoryStore(Store):
    """
    In-process store. Data is lost on restart.
    """

    def __init__(self):
        self._strings: Dict[str, str] = {}
        self._hashes: Dict[str, Dict[str, str]] = {}
        self._sets: Dict[str, Set[str]] = {}

    async def get(self, key):
        return self._strings.get(key)

    async def set(self, key, value):
        self._strings[key] = value

    async def delete(self, key):
        self._strings.pop(key, None)
        self._hashes.pop(key, None)
        self._sets.pop(key, None)

    async def hget(self, key, field):
        return self._hashes.get(key, {}).get(field)

    async def hset(self, key, field, value):
        self._hashes.setdefault(key, {})[field] = value

    async def hgetall(self, key):
        return dict(self._hashes.get(key, {}))

    async def sadd(self, key, member):
        members = self._sets.setdefault(key, set())
        if member in members:
            return False
        members.add(member)
        return True

    async def sismember(self, key, member):
        return member in self._sets.get(key, set())

    async def smembers(self, key):
        return sorted(self._sets.get(key, set()))


class MongoStore(Store):
    """
    MongoDB-backed store. Each key is a document in the kv collection;
    every operation touches exactly one document.
    """

    def __init__(self, collection=None):
        self._collection = collection

    @property
    def collection(self):
        if self._collection is None:
            from app.db.mongo import get_kv_collection
            self._collection = get_kv_collection()
        return self._collection

    async def get(self, key):
        doc = await self.collection.find_one({"_id": key, "kind": "string"})
        return doc.get("value") if doc else None

    async def set(self, key, value):
        await self.collection.update_one(
            {"_id": key},
            {"$set": {"kind": "string", "value": value}},
            upsert=True,
        )

    async def delete(self, key):
        await self.collection.delete_one({"_id": key})

    async def hget(self, key, field):
        doc = await self.collection.find_one(
            {"_id": key, "kind": "hash"},
            {f"fields.{field}": 1},
        )
        if not doc:
            return None
        return doc.get("fields", {}).get(field)

    async def hset(self, key, field, value):
        await self.collection.update_one(
            {"_id": key},
            {"$set": {"kind": "hash", f"fields.{field}": value}},
            upsert=True,
        )

    async def hgetall(self, key):
        doc = await self.collection.find_one({"_id": key, "kind": "hash"})
        return dict(doc.get("fields", {})) if doc else {}

    async def sadd(self, key, member):
        result = await self.collection.update_one(
            {"_id": key},
            {"$set": {"kind": "set"}, "$addToSet": {"members": member}},
            upsert=True,
        )
        return bool(result.upserted_id is not None or result.modified_count)

    async def sismember(self, key, member):
        doc = await self.collection.find_one({"_id": key, "members": member}, {"_id": 1})
        return doc is not None

    async def smembers(self, key):
        doc = await self.collection.find_one({"_id": key, "kind": "set"})
        return sorted(doc.get("members", [])) if doc else []

    async def ping(self):
        from app.db.mongo import check_database_health
        return await check_database_health()

    async def close(self):
        from app.db.mongo import close_mongo_connection
        await close_mongo_connection()


# Process-wide store
_store: Optional[Store] = None


async def init_store() -> Store:
    """
    Creates the store selected by STORE_BACKEND.
    Called during application startup.
    """
    global _store

    if _store is not None:
        return _store

    if settings.STORE_BACKEND == "mongo":
        from app.db.mongo import connect_to_mongo
        from app.db.indexes import create_indexes

        await connect_to_mongo()
        await create_indexes()
        _store = MongoStore()
    else:
        _store = MemoryStore()

    logger.info(f"Store initialized: {settings.STORE_BACKEND}")
    return _store


async def close_store():
    """Closes the process store, if any."""
    global _store

    if _store is not None:
        await _store.close()
        _store = None


def get_store() -> Store:
    """
    Returns the process store. Falls back to a MemoryStore when startup
    has not run (scripts, tests).
    """
    global _store

    if _store is None:
        if settings.STORE_BACKEND == "mongo":
            raise RuntimeError("Store not initialized. Call init_store() during startup.")
        _store = MemoryStore()
    return _store


def set_store(store: Optional[Store]):
    """Replaces the process store (tests)."""
    global _store
    _store = store
