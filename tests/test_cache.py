import json

import pytest
from sqlalchemy.exc import OperationalError

from saloony.models import CacheEntry
from saloony.services.cache import (
    DatabaseCacheStore,
    LayeredCache,
    NamespaceConfig,
    search_key,
)


class ManualClock:
    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class BrokenStore:
    def load(self, key):
        raise OperationalError("SELECT", {}, Exception("database is locked"))

    def save(self, key, payload, expiry):
        raise OperationalError("INSERT", {}, Exception("database is locked"))

    def delete(self, key):
        return None

    def purge_expired(self, now):
        return 0


def _cache(clock, store=None, max_size=1000):
    return LayeredCache(
        {
            "salons": NamespaceConfig(ttl=300, max_size=max_size),
            "profiles": NamespaceConfig(ttl=1800, max_size=max_size),
        },
        store=store,
        clock=clock,
    )


def test_set_then_get_within_ttl_and_expiry() -> None:
    clock = ManualClock()
    cache = _cache(clock)

    cache.set("salons", "k", {"a": 1})
    clock.now += 299
    assert cache.get("salons", "k") == {"a": 1}

    clock.now += 1
    assert cache.get("salons", "k") is None
    assert cache.size("salons") == 0


def test_namespaces_have_independent_ttls() -> None:
    clock = ManualClock()
    cache = _cache(clock)
    cache.set("salons", "k", "salon")
    cache.set("profiles", "k", "profile")

    clock.now += 600

    assert cache.get("salons", "k") is None
    assert cache.get("profiles", "k") == "profile"


def test_full_namespace_evicts_oldest_fifth() -> None:
    clock = ManualClock()
    cache = _cache(clock, max_size=10)
    for index in range(10):
        clock.now += 1
        cache.set("salons", f"k{index}", index)

    cache.set("salons", "new", "value")

    assert cache.size("salons") == 9
    assert cache.get("salons", "k0") is None
    assert cache.get("salons", "k1") is None
    assert cache.get("salons", "k2") == 2
    assert cache.get("salons", "new") == "value"


def test_unknown_namespace_is_rejected() -> None:
    with pytest.raises(ValueError):
        _cache(ManualClock()).get("nope", "k")


def test_search_key_format() -> None:
    assert search_key("Ramallah", "Female", "service_inquiry", None) == "ramallah_female_service_inquiry_all"
    assert search_key("رام الله", "female", "general", "شعر") == "رام الله_female_general_شعر"


def test_enhanced_get_backfills_memory_from_store(session_factory) -> None:
    clock = ManualClock()
    store = DatabaseCacheStore(session_factory)
    writer = _cache(clock, store=store)
    writer.set_enhanced("salons", "ramallah", ["صالون"])

    reader = _cache(clock, store=store)
    assert reader.get("salons", "ramallah") is None
    assert reader.get_enhanced("salons", "ramallah") == ["صالون"]
    assert reader.get("salons", "ramallah") == ["صالون"]

    with session_factory() as session:
        row = session.get(CacheEntry, "saloony_ai_salons_ramallah")
        record = json.loads(row.payload)
    assert set(record) == {"value", "expiry", "created"}
    assert record["expiry"] == clock.now + 600


def test_expired_persistent_entry_is_dropped(session_factory) -> None:
    clock = ManualClock()
    store = DatabaseCacheStore(session_factory)
    _cache(clock, store=store).set_enhanced("salons", "k", "v", persistent_ttl=10)

    clock.now += 11
    reader = _cache(clock, store=store)

    assert reader.get_enhanced("salons", "k") is None
    assert store.load("saloony_ai_salons_k") is None


def test_sweep_purges_both_tiers(session_factory) -> None:
    clock = ManualClock()
    store = DatabaseCacheStore(session_factory)
    cache = _cache(clock, store=store)
    cache.set_enhanced("salons", "old", 1, persistent_ttl=100)
    cache.set_enhanced("profiles", "fresh", 2, persistent_ttl=5000)

    clock.now += 1000
    removed = cache.sweep()

    assert removed == 2  # one memory entry, one persistent row
    assert cache.get("profiles", "fresh") == 2
    assert store.load("saloony_ai_salons_old") is None
    assert store.load("saloony_ai_profiles_fresh") is not None


def test_store_failures_do_not_break_reads_or_writes() -> None:
    cache = _cache(ManualClock(), store=BrokenStore())

    cache.set_enhanced("salons", "k", "v")

    assert cache.get_enhanced("salons", "k") == "v"
    assert cache.get_enhanced("salons", "missing") is None
