from __future__ import annotations

import hashlib
import json
import logging
from collections import OrderedDict
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Protocol

from sqlalchemy import delete
from sqlalchemy.orm import Session

from restaurant_sim.app.integrations.base import EntityType, Record, RemoteEntityGateway
from restaurant_sim.app.models import GatewayCacheEntry

logger = logging.getLogger(__name__)


class KeyValueCache(Protocol):
    def get(self, key: str) -> Optional[dict]:
        ...

    def put(self, key: str, value: dict) -> None:
        ...

    def invalidate(self, prefix: str) -> int:
        ...


class MemoryKeyValueCache:
    """In-process LRU cache. Not thread safe."""

    def __init__(self, max_items: int = 512) -> None:
        self.max_items = max_items
        self._store: OrderedDict[str, dict] = OrderedDict()

    def get(self, key: str) -> Optional[dict]:
        if key not in self._store:
            return None
        value = self._store.pop(key)
        self._store[key] = value
        return value

    def put(self, key: str, value: dict) -> None:
        self._store.pop(key, None)
        self._store[key] = value
        if len(self._store) > self.max_items:
            self._store.popitem(last=False)

    def invalidate(self, prefix: str) -> int:
        doomed = [k for k in self._store if k.startswith(prefix)]
        for key in doomed:
            del self._store[key]
        return len(doomed)


class SqlKeyValueCache:
    """Cache rows in gateway_cache_entries, expired after ttl_seconds."""

    def __init__(self, db: Session, *, ttl_seconds: int = 300):
        self.db = db
        self.ttl = timedelta(seconds=ttl_seconds)

    def get(self, key: str) -> Optional[dict]:
        row = self.db.get(GatewayCacheEntry, key)
        if row is None:
            return None
        created_at = row.created_at
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        if datetime.now(timezone.utc) - created_at > self.ttl:
            self.db.delete(row)
            self.db.commit()
            return None
        return row.value

    def put(self, key: str, value: dict) -> None:
        row = self.db.get(GatewayCacheEntry, key)
        if row is None:
            row = GatewayCacheEntry(key=key)
            self.db.add(row)
        row.value = value
        row.created_at = datetime.now(timezone.utc)
        self.db.commit()

    def invalidate(self, prefix: str) -> int:
        result = self.db.execute(delete(GatewayCacheEntry).where(GatewayCacheEntry.key.startswith(prefix)))
        self.db.commit()
        return int(result.rowcount or 0)


def cache_key(entity_type: EntityType, operation: str, args: dict[str, Any]) -> str:
    raw = json.dumps({"op": operation, "args": args}, sort_keys=True, default=str)
    digest = hashlib.sha256(raw.encode("utf-8")).hexdigest()
    return f"{entity_type}:{digest[:32]}"


class CachingGateway:
    """
    Read-through cache around another gateway.

    list/get results are cached per entity type; any write to a type drops
    every cached read for that type.
    """

    def __init__(self, inner: RemoteEntityGateway, cache: KeyValueCache):
        self.inner = inner
        self.cache = cache

    def list(
        self,
        entity_type: EntityType,
        *,
        limit: int = 100,
        offset: int = 0,
        filter: Optional[dict] = None,
    ) -> dict:
        key = cache_key(entity_type, "list", {"limit": limit, "offset": offset, "filter": filter or {}})
        hit = self.cache.get(key)
        if hit is not None:
            logger.debug("gateway cache hit %s", key)
            return hit
        result = self.inner.list(entity_type, limit=limit, offset=offset, filter=filter)
        self.cache.put(key, result)
        return result

    def get(self, entity_type: EntityType, entity_id: str) -> Record:
        key = cache_key(entity_type, "get", {"id": entity_id})
        hit = self.cache.get(key)
        if hit is not None:
            return hit
        record = self.inner.get(entity_type, entity_id)
        self.cache.put(key, record)
        return record

    def _invalidate(self, entity_type: EntityType) -> None:
        dropped = self.cache.invalidate(f"{entity_type}:")
        if entity_type == "tip":
            dropped += self.cache.invalidate("payment:")
        if dropped:
            logger.debug("gateway cache invalidated %s entries for %s", dropped, entity_type)

    def create(self, entity_type: EntityType, payload: dict) -> Record:
        record = self.inner.create(entity_type, payload)
        self._invalidate(entity_type)
        return record

    def update(self, entity_type: EntityType, entity_id: str, payload: dict) -> Record:
        record = self.inner.update(entity_type, entity_id, payload)
        self._invalidate(entity_type)
        return record

    def delete(self, entity_type: EntityType, entity_id: str) -> bool:
        ok = self.inner.delete(entity_type, entity_id)
        self._invalidate(entity_type)
        return ok
