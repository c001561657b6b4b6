"""
Soil data provider interface.

A provider is one soil data source with a fixed coverage envelope. Only USDA
SSURGO exists today; the interface leaves room for a global source later.
"""
from abc import ABC, abstractmethod

from app.schemas.soil import (
    GeoJSONPolygon,
    MapUnitDetails,
    QueryBounds,
    SoilFeatureCollection,
    SoilSummary,
    WmsConfig,
)


class SoilProvider(ABC):
    name: str

    # Coverage envelope used by supports_bounds().
    coverage: QueryBounds

    def supports_bounds(self, bounds: QueryBounds) -> bool:
        """True when the bounding box overlaps this provider's coverage rectangle."""
        return not (
            bounds.south > self.coverage.north
            or bounds.north < self.coverage.south
            or bounds.west > self.coverage.east
            or bounds.east < self.coverage.west
        )

    @abstractmethod
    def get_wms_config(self) -> WmsConfig:
        ...

    @abstractmethod
    async def get_soil_summary(self, polygon: GeoJSONPolygon) -> SoilSummary:
        ...

    @abstractmethod
    async def get_map_unit_details(self, mukey: str) -> MapUnitDetails:
        ...

    async def get_soil_geometries(self, polygon: GeoJSONPolygon) -> SoilFeatureCollection:
        return SoilFeatureCollection(features=[])
