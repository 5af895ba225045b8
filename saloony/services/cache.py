"""Two-tier expiring cache: an in-process map backed by a persistent store."""

from __future__ import annotations

import json
import logging
import math
import time
from dataclasses import dataclass
from threading import Lock
from typing import Any, Callable, Dict, Mapping, Optional, Protocol

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from saloony.models import CacheEntry

logger = logging.getLogger(__name__)

KEY_PREFIX = "saloony_ai_"
EVICTION_FRACTION = 0.2
BACKFILL_TTL_SECONDS = 10 * 60


@dataclass(frozen=True)
class NamespaceConfig:
    ttl: float  # seconds
    max_size: int = 1000


@dataclass
class _Entry:
    value: Any
    expiry: float
    created: float


class PersistentStore(Protocol):
    def load(self, key: str) -> Optional[str]:
        """Return the stored JSON payload for ``key`` or ``None``."""

    def save(self, key: str, payload: str, expiry: float) -> None:
        """Insert or replace ``key``."""

    def delete(self, key: str) -> None:
        """Remove ``key`` if present."""

    def purge_expired(self, now: float) -> int:
        """Drop every entry whose expiry is before ``now``; return the count."""


class DatabaseCacheStore:
    """Persistent tier stored in the ``cache_entries`` table."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def load(self, key: str) -> Optional[str]:
        with self._session_factory() as session:
            row = session.get(CacheEntry, key)
            return row.payload if row is not None else None

    def save(self, key: str, payload: str, expiry: float) -> None:
        with self._session_factory() as session:
            row = session.get(CacheEntry, key)
            if row is None:
                session.add(CacheEntry(key=key, payload=payload, expiry=expiry))
            else:
                row.payload = payload
                row.expiry = expiry
            session.commit()

    def delete(self, key: str) -> None:
        with self._session_factory() as session:
            session.execute(delete(CacheEntry).where(CacheEntry.key == key))
            session.commit()

    def purge_expired(self, now: float) -> int:
        with self._session_factory() as session:
            result = session.execute(delete(CacheEntry).where(CacheEntry.expiry < now))
            session.commit()
            return result.rowcount or 0


def search_key(city: str | None, gender: str | None, query_type: str | None, service: str | None) -> str:
    """Stable key for a salon search: ``city_gender_queryType_service``."""

    parts = [city or "", gender or "", query_type or "", service or "all"]
    return "_".join(str(part) for part in parts).lower()


class LayeredCache:
    """Per-namespace TTL cache with an optional persistent second tier.

    ``get``/``set`` only touch memory. ``get_enhanced``/``set_enhanced`` also
    read and write the persistent tier; a persistent hit is copied back into
    memory. Values written to the persistent tier must be JSON serialisable.
    """

    def __init__(
        self,
        namespaces: Mapping[str, NamespaceConfig],
        *,
        store: PersistentStore | None = None,
        persistent_ttl: float = 600,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._namespaces = dict(namespaces)
        self._store = store
        self._persistent_ttl = persistent_ttl
        self._clock = clock
        self._data: Dict[str, Dict[str, _Entry]] = {name: {} for name in self._namespaces}
        self._lock = Lock()

    def _config(self, namespace: str) -> NamespaceConfig:
        try:
            return self._namespaces[namespace]
        except KeyError as exc:
            raise ValueError(f"Unknown cache namespace: {namespace!r}") from exc

    def get(self, namespace: str, key: str) -> Any:
        self._config(namespace)
        now = self._clock()
        with self._lock:
            entries = self._data[namespace]
            entry = entries.get(key)
            if entry is None:
                return None
            if entry.expiry <= now:
                del entries[key]
                return None
            return entry.value

    def set(self, namespace: str, key: str, value: Any, ttl: float | None = None) -> None:
        config = self._config(namespace)
        now = self._clock()
        lifetime = config.ttl if ttl is None else ttl
        with self._lock:
            entries = self._data[namespace]
            if key not in entries and len(entries) >= config.max_size:
                self._evict_oldest(namespace, config)
            entries[key] = _Entry(value=value, expiry=now + lifetime, created=now)

    def delete(self, namespace: str, key: str) -> None:
        self._config(namespace)
        with self._lock:
            self._data[namespace].pop(key, None)
        if self._store is not None:
            self._store_call("delete", self._persistent_key(namespace, key))

    def _evict_oldest(self, namespace: str, config: NamespaceConfig) -> None:
        entries = self._data[namespace]
        count = max(1, math.floor(config.max_size * EVICTION_FRACTION))
        oldest = sorted(entries.items(), key=lambda item: item[1].created)[:count]
        for key, _ in oldest:
            del entries[key]
        logger.debug("Evicted %s entries from cache namespace %s", len(oldest), namespace)

    @staticmethod
    def _persistent_key(namespace: str, key: str) -> str:
        return f"{KEY_PREFIX}{namespace}_{key}"

    def _store_call(self, method: str, *args):
        try:
            return getattr(self._store, method)(*args)
        except SQLAlchemyError as exc:
            logger.warning("Persistent cache %s failed: %s", method, exc)
            return None

    def get_enhanced(self, namespace: str, key: str) -> Any:
        value = self.get(namespace, key)
        if value is not None or self._store is None:
            return value

        payload = self._store_call("load", self._persistent_key(namespace, key))
        if payload is None:
            return None
        try:
            record = json.loads(payload)
        except ValueError:
            logger.warning("Discarding unreadable cache entry %s/%s", namespace, key)
            self._store_call("delete", self._persistent_key(namespace, key))
            return None
        if record.get("expiry", 0) <= self._clock():
            self._store_call("delete", self._persistent_key(namespace, key))
            return None

        value = record.get("value")
        self.set(namespace, key, value, ttl=BACKFILL_TTL_SECONDS)
        return value

    def set_enhanced(
        self,
        namespace: str,
        key: str,
        value: Any,
        memory_ttl: float | None = None,
        persistent_ttl: float | None = None,
    ) -> None:
        self.set(namespace, key, value, ttl=memory_ttl)
        if self._store is None:
            return
        now = self._clock()
        expiry = now + (self._persistent_ttl if persistent_ttl is None else persistent_ttl)
        payload = json.dumps({"value": value, "expiry": expiry, "created": now}, ensure_ascii=False)
        self._store_call("save", self._persistent_key(namespace, key), payload, expiry)

    def sweep(self) -> int:
        """Purge expired entries from both tiers; returns how many were removed."""

        now = self._clock()
        removed = 0
        with self._lock:
            for entries in self._data.values():
                expired = [key for key, entry in entries.items() if entry.expiry <= now]
                for key in expired:
                    del entries[key]
                removed += len(expired)
        if self._store is not None:
            removed += self._store_call("purge_expired", now) or 0
        if removed:
            logger.info("Cache sweep removed %s expired entries", removed)
        return removed

    def clear(self) -> None:
        with self._lock:
            for entries in self._data.values():
                entries.clear()

    def size(self, namespace: str) -> int:
        self._config(namespace)
        with self._lock:
            return len(self._data[namespace])
