"""
Soil summary cache.

Summaries are keyed by sha256(provider + canonical JSON of the polygon
coordinates) and stored with an explicit expires_at. Reads treat anything at
or past expires_at as a miss without deleting it; expired rows are removed by
purge_expired() (run from the worker) or by the Redis TTL.

Two backends, selected by SOIL_CACHE_BACKEND:
- DatabaseSoilCache: the soil_cache table (durable, default)
- RedisSoilCache:    one JSON document per key with SETEX
"""
import hashlib
import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.soil_cache import SoilCacheEntry
from app.schemas.soil import GeoJSONPolygon, SoilSummary

logger = logging.getLogger(__name__)

DEFAULT_TTL = timedelta(days=7)
REDIS_KEY_PREFIX = "soil_summary:"


def cache_key(provider: str, polygon: GeoJSONPolygon) -> str:
    """Deterministic sha256 hex digest of provider name + polygon coordinates."""
    coordinates = [
        [[float(value) for value in position] for position in ring]
        for ring in polygon.coordinates
    ]
    canonical = json.dumps(coordinates, separators=(",", ":"))
    return hashlib.sha256(f"{provider}:{canonical}".encode("utf-8")).hexdigest()


def short_key(key: str) -> str:
    return f"{key[:16]}..."


class SoilCache(ABC):
    @abstractmethod
    async def get(self, key: str) -> Optional[SoilSummary]:
        ...

    @abstractmethod
    async def set(
        self,
        key: str,
        provider: str,
        polygon: GeoJSONPolygon,
        summary: SoilSummary,
        ttl: timedelta = DEFAULT_TTL,
    ) -> None:
        ...

    @abstractmethod
    async def invalidate(self, key: str) -> None:
        ...


class DatabaseSoilCache(SoilCache):
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, key: str) -> Optional[SoilSummary]:
        now = datetime.now(timezone.utc)
        entry = await self.db.scalar(
            select(SoilCacheEntry).where(
                SoilCacheEntry.cache_key == key,
                SoilCacheEntry.expires_at > now,
            )
        )
        if entry is None:
            return None
        return SoilSummary.model_validate(entry.summary)

    async def set(
        self,
        key: str,
        provider: str,
        polygon: GeoJSONPolygon,
        summary: SoilSummary,
        ttl: timedelta = DEFAULT_TTL,
    ) -> None:
        expires_at = datetime.now(timezone.utc) + ttl

        entry = await self.db.scalar(select(SoilCacheEntry).where(SoilCacheEntry.cache_key == key))
        if entry is None:
            entry = SoilCacheEntry(cache_key=key)
            self.db.add(entry)

        entry.provider = provider
        entry.polygon = polygon.model_dump()
        entry.summary = summary.model_dump(mode="json")
        entry.expires_at = expires_at

        try:
            await self.db.commit()
        except IntegrityError:
            # A concurrent miss inserted the same key first; its summary is equivalent.
            await self.db.rollback()
            logger.debug("soil cache insert race lost: %s", short_key(key))
            return

        logger.debug("cached soil summary: %s (expires: %s)", short_key(key), expires_at.isoformat())

    async def invalidate(self, key: str) -> None:
        await self.db.execute(delete(SoilCacheEntry).where(SoilCacheEntry.cache_key == key))
        await self.db.commit()

    async def purge_expired(self) -> int:
        """Delete every entry whose expires_at has passed. Returns the number removed."""
        now = datetime.now(timezone.utc)
        result = await self.db.execute(
            delete(SoilCacheEntry)
            .where(SoilCacheEntry.expires_at <= now)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        return result.rowcount or 0


class RedisSoilCache(SoilCache):
    def __init__(self, redis: Any):
        self.redis = redis

    async def get(self, key: str) -> Optional[SoilSummary]:
        cached = await self.redis.get(REDIS_KEY_PREFIX + key)
        if cached is None:
            return None

        raw_str = cached.decode("utf-8") if isinstance(cached, bytes) else cached
        doc = json.loads(raw_str)
        expires_at = datetime.fromisoformat(doc["expires_at"])
        if expires_at <= datetime.now(timezone.utc):
            return None
        return SoilSummary.model_validate(doc["summary"])

    async def set(
        self,
        key: str,
        provider: str,
        polygon: GeoJSONPolygon,
        summary: SoilSummary,
        ttl: timedelta = DEFAULT_TTL,
    ) -> None:
        expires_at = datetime.now(timezone.utc) + ttl
        doc = {
            "cache_key": key,
            "provider": provider,
            "polygon": polygon.model_dump(),
            "summary": summary.model_dump(mode="json"),
            "expires_at": expires_at.isoformat(),
        }
        # SETEX rejects non-positive TTLs; expires_at still guards the read.
        seconds = max(int(ttl.total_seconds()), 1)
        await self.redis.setex(REDIS_KEY_PREFIX + key, seconds, json.dumps(doc))
        logger.debug("cached soil summary: %s (expires: %s)", short_key(key), expires_at.isoformat())

    async def invalidate(self, key: str) -> None:
        await self.redis.delete(REDIS_KEY_PREFIX + key)
