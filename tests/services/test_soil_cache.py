import json
from datetime import timedelta

import pytest
from sqlalchemy import func, select

from app.models.soil_cache import SoilCacheEntry
from app.schemas.soil import GeoJSONPolygon, QueryBounds
from app.services.soil.analytics import empty_summary
from app.services.soil.cache import (
    REDIS_KEY_PREFIX,
    DatabaseSoilCache,
    RedisSoilCache,
    cache_key,
    short_key,
)

BOUNDS = QueryBounds(north=40.108, south=40.1, east=-88.195, west=-88.205)


class FakeRedis:
    """In-memory stand-in for the redis.asyncio calls the cache makes."""

    def __init__(self):
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    async def get(self, key):
        return self.store.get(key)

    async def setex(self, key, seconds, value):
        self.store[key] = value
        self.ttls[key] = seconds

    async def delete(self, key):
        self.store.pop(key, None)
        self.ttls.pop(key, None)


@pytest.fixture
def summary():
    return empty_summary("usda-ssurgo", BOUNDS)


async def _row_count(db) -> int:
    return await db.scalar(select(func.count()).select_from(SoilCacheEntry))


# ── Keys ──────────────────────────────────────────────────────────────────────


def test_cache_key_is_stable(polygon):
    key = cache_key("usda-ssurgo", polygon)
    assert key == cache_key("usda-ssurgo", polygon.model_copy(deep=True))
    assert len(key) == 64
    assert short_key(key) == key[:16] + "..."


def test_cache_key_ignores_int_float_spelling():
    ints = GeoJSONPolygon(coordinates=[[[0, 0], [1, 0], [1, 1], [0, 0]]])
    floats = GeoJSONPolygon(coordinates=[[[0.0, 0.0], [1.0, 0.0], [1.0, 1.0], [0.0, 0.0]]])
    assert cache_key("usda-ssurgo", ints) == cache_key("usda-ssurgo", floats)


def test_cache_key_depends_on_provider_and_coordinates(polygon):
    moved = polygon.model_copy(deep=True)
    moved.coordinates[0][0][0] += 0.001
    assert cache_key("usda-ssurgo", polygon) != cache_key("other", polygon)
    assert cache_key("usda-ssurgo", polygon) != cache_key("usda-ssurgo", moved)


# ── Database backend ──────────────────────────────────────────────────────────


async def test_database_get_miss(db):
    assert await DatabaseSoilCache(db).get("missing") is None


async def test_database_set_then_get(db, polygon, summary):
    cache = DatabaseSoilCache(db)
    key = cache_key("usda-ssurgo", polygon)

    await cache.set(key, "usda-ssurgo", polygon, summary)

    assert await cache.get(key) == summary
    entry = await db.scalar(select(SoilCacheEntry).where(SoilCacheEntry.cache_key == key))
    assert entry.provider == "usda-ssurgo"
    assert entry.polygon["coordinates"] == polygon.coordinates


async def test_database_set_overwrites(db, polygon, summary):
    cache = DatabaseSoilCache(db)
    key = cache_key("usda-ssurgo", polygon)
    updated = summary.model_copy(update={"total_acres": 42.0})

    await cache.set(key, "usda-ssurgo", polygon, summary)
    await cache.set(key, "usda-ssurgo", polygon, updated)

    assert (await cache.get(key)).total_acres == 42.0
    assert await _row_count(db) == 1


async def test_database_expired_entry_is_a_miss_but_kept(db, polygon, summary):
    cache = DatabaseSoilCache(db)
    key = cache_key("usda-ssurgo", polygon)

    await cache.set(key, "usda-ssurgo", polygon, summary, ttl=timedelta(seconds=-1))

    assert await cache.get(key) is None
    assert await _row_count(db) == 1


async def test_database_invalidate(db, polygon, summary):
    cache = DatabaseSoilCache(db)
    key = cache_key("usda-ssurgo", polygon)
    await cache.set(key, "usda-ssurgo", polygon, summary)

    await cache.invalidate(key)

    assert await cache.get(key) is None
    assert await _row_count(db) == 0


async def test_database_invalidate_missing_key(db):
    await DatabaseSoilCache(db).invalidate("missing")


async def test_purge_expired_only_removes_expired(db, polygon, summary):
    cache = DatabaseSoilCache(db)
    await cache.set("fresh", "usda-ssurgo", polygon, summary)
    await cache.set("stale-1", "usda-ssurgo", polygon, summary, ttl=timedelta(seconds=-1))
    await cache.set("stale-2", "usda-ssurgo", polygon, summary, ttl=timedelta(days=-3))

    assert await cache.purge_expired() == 2

    assert await _row_count(db) == 1
    assert await cache.get("fresh") == summary


# ── Redis backend ─────────────────────────────────────────────────────────────


async def test_redis_set_then_get(polygon, summary):
    redis = FakeRedis()
    cache = RedisSoilCache(redis)
    key = cache_key("usda-ssurgo", polygon)

    await cache.set(key, "usda-ssurgo", polygon, summary, ttl=timedelta(hours=1))

    assert await cache.get(key) == summary
    assert redis.ttls[REDIS_KEY_PREFIX + key] == 3600
    doc = json.loads(redis.store[REDIS_KEY_PREFIX + key])
    assert doc["provider"] == "usda-ssurgo"
    assert doc["cache_key"] == key


async def test_redis_reads_bytes(polygon, summary):
    redis = FakeRedis()
    cache = RedisSoilCache(redis)
    await cache.set("k", "usda-ssurgo", polygon, summary)
    redis.store[REDIS_KEY_PREFIX + "k"] = redis.store[REDIS_KEY_PREFIX + "k"].encode("utf-8")

    assert await cache.get("k") == summary


async def test_redis_expired_entry_is_a_miss(polygon, summary):
    redis = FakeRedis()
    cache = RedisSoilCache(redis)

    await cache.set("k", "usda-ssurgo", polygon, summary, ttl=timedelta(seconds=-5))

    assert redis.ttls[REDIS_KEY_PREFIX + "k"] == 1
    assert await cache.get("k") is None


async def test_redis_invalidate(polygon, summary):
    redis = FakeRedis()
    cache = RedisSoilCache(redis)
    await cache.set("k", "usda-ssurgo", polygon, summary)

    await cache.invalidate("k")

    assert await cache.get("k") is None
    assert redis.store == {}
