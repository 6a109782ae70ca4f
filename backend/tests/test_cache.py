"""Tests for the cache backends."""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from cadence.cache import DatabaseCache, MemoryCache
from cadence.models.cache_entry import CacheEntry


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class TestMemoryCache:

    @pytest.mark.asyncio
    async def test_entries_expire(self):
        clock = FakeClock()
        cache = MemoryCache(clock=clock)
        await cache.set("merchant:1", {"name": "Netflix"}, 60)

        clock.now += 59
        assert await cache.get("merchant:1") == {"name": "Netflix"}
        clock.now += 1
        assert await cache.get("merchant:1") is None

    @pytest.mark.asyncio
    async def test_values_are_copies(self):
        cache = MemoryCache()
        value = {"flags": ["subscription"]}
        await cache.set("k", value, 60)
        value["flags"].append("mutated")
        assert await cache.get("k") == {"flags": ["subscription"]}

    @pytest.mark.asyncio
    async def test_delete_prefix(self):
        cache = MemoryCache()
        await cache.set("merchant:rules:all", [], 60)
        await cache.set("merchant:rules:match:NETFLIX", {}, 60)
        await cache.set("merchant:42", {}, 60)

        assert await cache.delete_prefix("merchant:rules:") == 2
        assert len(cache) == 1

    @pytest.mark.asyncio
    async def test_cleanup_expired(self):
        clock = FakeClock()
        cache = MemoryCache(clock=clock)
        await cache.set("short", 1, 10)
        await cache.set("long", 2, 1000)
        clock.now += 11

        assert await cache.cleanup_expired() == 1
        assert await cache.get("long") == 2


class TestDatabaseCache:

    @pytest.mark.asyncio
    async def test_round_trip_and_overwrite(self, session_factory):
        cache = DatabaseCache(session_factory)
        await cache.set("patterns:all", [{"id": "a"}], 60)
        await cache.set("patterns:all", [{"id": "b"}], 60)

        assert await cache.get("patterns:all") == [{"id": "b"}]
        db = session_factory()
        try:
            assert db.query(CacheEntry).count() == 1
        finally:
            db.close()

    @pytest.mark.asyncio
    async def test_expired_entry_is_a_miss(self, session_factory):
        cache = DatabaseCache(session_factory)
        await cache.set("patterns:all", [], -1)

        assert await cache.get("patterns:all") is None

    @pytest.mark.asyncio
    async def test_prefix_and_cleanup(self, session_factory):
        cache = DatabaseCache(session_factory)
        await cache.set("patterns:merchant:1", [], 60)
        await cache.set("patterns:merchant:2", [], 60)
        await cache.set("merchant:1", {}, -1)

        assert await cache.delete_prefix("patterns:merchant:") == 2
        assert await cache.cleanup_expired() == 1

    @pytest.mark.asyncio
    async def test_backend_failure_is_a_miss(self):
        # No tables were created on this engine.
        bare = create_engine("sqlite:///:memory:", poolclass=StaticPool)
        cache = DatabaseCache(sessionmaker(bind=bare))

        await cache.set("merchant:1", {}, 60)
        assert await cache.get("merchant:1") is None
        assert await cache.delete_prefix("merchant:") == 0
        bare.dispose()
