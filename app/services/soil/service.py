"""
Soil service: provider selection plus cache-aside summaries.

The only entry point the API layer uses. Providers are tried in registration
order; a preferred provider wins if it covers the polygon. Two concurrent
misses for the same polygon both compute and both write; the last write wins,
and both results are identical for unchanged survey data.
"""
import logging
from datetime import timedelta
from typing import Iterable, Optional

from app.schemas.soil import (
    GeoJSONPolygon,
    MapUnitDetails,
    SoilFeatureCollection,
    SoilProviderRead,
    SoilQuery,
    SoilSummary,
    WmsConfig,
)
from app.services.soil.cache import DEFAULT_TTL, SoilCache, cache_key, short_key
from app.services.soil.exceptions import ProviderNotFoundError
from app.services.soil.geometry import polygon_bounds
from app.services.soil.providers.base import SoilProvider

logger = logging.getLogger(__name__)


class SoilService:
    def __init__(
        self,
        providers: Iterable[SoilProvider],
        cache: SoilCache,
        default_provider: str = "usda-ssurgo",
        cache_ttl: timedelta = DEFAULT_TTL,
    ):
        self.providers: dict[str, SoilProvider] = {}
        for provider in providers:
            self.providers[provider.name] = provider
        self.cache = cache
        self.default_provider = default_provider
        self.cache_ttl = cache_ttl

    def get_providers(self) -> list[SoilProviderRead]:
        return [
            SoilProviderRead(name=provider.name, wms=provider.get_wms_config())
            for provider in self.providers.values()
        ]

    def get_provider(self, name: Optional[str] = None) -> SoilProvider:
        """Look up a provider by name, falling back to the default provider."""
        provider_name = name or self.default_provider
        provider = self.providers.get(provider_name)
        if provider is None:
            raise ProviderNotFoundError(f"Soil provider '{provider_name}' not found", provider_name)
        return provider

    def select_provider(self, polygon: GeoJSONPolygon, preferred: Optional[str] = None) -> SoilProvider:
        bounds = polygon_bounds(polygon)

        if preferred:
            provider = self.providers.get(preferred)
            if provider is not None and provider.supports_bounds(bounds):
                return provider

        for provider in self.providers.values():
            if provider.supports_bounds(bounds):
                return provider

        raise ProviderNotFoundError("No soil data provider available for this location", preferred)

    def get_wms_config(self, provider_name: Optional[str] = None) -> WmsConfig:
        return self.get_provider(provider_name).get_wms_config()

    async def get_soil_summary(self, query: SoilQuery) -> SoilSummary:
        provider = self.select_provider(query.polygon, query.provider)
        key = cache_key(provider.name, query.polygon)

        cached = await self.cache.get(key)
        if cached is not None:
            logger.debug("soil summary cache hit: %s", short_key(key))
            return cached

        logger.info("Fetching soil data from %s for polygon", provider.name)
        summary = await provider.get_soil_summary(query.polygon)

        # Best-effort write
        try:
            await self.cache.set(key, provider.name, query.polygon, summary, self.cache_ttl)
        except Exception as exc:
            logger.warning("Failed to cache soil summary %s: %s", short_key(key), exc)

        return summary

    async def get_map_unit_details(self, mukey: str, provider_name: Optional[str] = None) -> MapUnitDetails:
        return await self.get_provider(provider_name).get_map_unit_details(mukey)

    async def get_soil_geometries(self, query: SoilQuery) -> SoilFeatureCollection:
        provider = self.select_provider(query.polygon, query.provider)
        logger.info("Fetching soil geometries from %s", provider.name)
        return await provider.get_soil_geometries(query.polygon)

    async def clear_cache(self, polygon: GeoJSONPolygon, provider_name: Optional[str] = None) -> None:
        provider = self.select_provider(polygon, provider_name)
        key = cache_key(provider.name, polygon)
        await self.cache.invalidate(key)
        logger.info("Cleared soil cache for key: %s", short_key(key))
