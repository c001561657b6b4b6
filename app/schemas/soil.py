from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

SuitabilityRating = Literal["excellent", "good", "fair", "poor", "not_suited"]


class CamelModel(BaseModel):
    """Summary-level structures go over the wire in camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ── Geometry ──────────────────────────────────────────────────────────────────


class GeoJSONPolygon(BaseModel):
    type: Literal["Polygon"] = "Polygon"
    coordinates: list[list[list[float]]] = Field(min_length=1)

    @field_validator("coordinates")
    @classmethod
    def check_exterior_ring(cls, v: list[list[list[float]]]) -> list[list[list[float]]]:
        if not v[0]:
            raise ValueError("exterior ring must contain at least one position")
        for ring in v:
            for position in ring:
                if len(position) < 2:
                    raise ValueError("each position must be [lng, lat]")
        return v


class QueryBounds(BaseModel):
    north: float
    south: float
    east: float
    west: float


class SoilFeatureProperties(BaseModel):
    mukey: Optional[str] = None
    musym: Optional[str] = None
    muname: Optional[str] = None


class SoilFeature(BaseModel):
    type: Literal["Feature"] = "Feature"
    properties: SoilFeatureProperties
    geometry: GeoJSONPolygon


class SoilFeatureCollection(BaseModel):
    type: Literal["FeatureCollection"] = "FeatureCollection"
    features: list[SoilFeature] = []


# ── SSURGO records (field names are SSURGO column names) ──────────────────────


class SoilMapUnit(BaseModel):
    mukey: str
    musym: Optional[str] = None
    muname: Optional[str] = None
    mukind: Optional[str] = None
    muacres: Optional[float] = None
    farmlndcl: Optional[str] = None


class SoilComponent(BaseModel):
    cokey: str
    mukey: Optional[str] = None
    compname: Optional[str] = None
    compkind: Optional[str] = None
    comppct_r: float = 0.0
    slope_r: Optional[float] = None
    drainagecl: Optional[str] = None
    hydgrp: Optional[str] = None
    taxorder: Optional[str] = None
    taxsubgrp: Optional[str] = None
    nirrcapcl: Optional[str] = None
    nirrcapscl: Optional[str] = None


class SoilHorizon(BaseModel):
    hzname: Optional[str] = None
    hzdept_r: float = 0.0
    hzdepb_r: float = 0.0
    sandtotal_r: Optional[float] = None
    silttotal_r: Optional[float] = None
    claytotal_r: Optional[float] = None
    om_r: Optional[float] = None
    ph1to1h2o_r: Optional[float] = None
    ksat_r: Optional[float] = None
    awc_r: Optional[float] = None
    cec7_r: Optional[float] = None


# ── Derived analytics ─────────────────────────────────────────────────────────


class SoilInsight(BaseModel):
    type: Literal["strength", "limitation", "recommendation"]
    category: str
    title: str
    description: str
    severity: Optional[Literal["low", "medium", "high"]] = None


class DominantSoil(CamelModel):
    name: str
    percentage: float
    description: str
    drainage_class: Optional[str] = None
    hydrologic_group: Optional[str] = None
    slope_range: Optional[str] = None
    farmland_class: Optional[str] = None


class Suitability(BaseModel):
    cropland: SuitabilityRating
    pasture: SuitabilityRating
    woodland: SuitabilityRating
    garden: SuitabilityRating


class RecommendedZone(CamelModel):
    type: str
    title: str
    name: Optional[str] = None
    description: str
    soil_types: list[str]
    suggested_uses: list[str]


class SoilSummary(CamelModel):
    provider: str
    query_bounds: QueryBounds
    total_acres: float = 0.0
    map_units: list[SoilMapUnit] = []
    dominant_soils: list[DominantSoil] = []
    insights: list[SoilInsight] = []
    suitability: Suitability
    recommended_zones: list[RecommendedZone] = []


class MapUnitDetails(CamelModel):
    map_unit: SoilMapUnit
    components: list[SoilComponent]
    horizons: dict[str, list[SoilHorizon]]


# ── Provider descriptors ──────────────────────────────────────────────────────


class WmsConfig(BaseModel):
    url: str
    layers: str
    format: str
    transparent: bool = True
    attribution: str
    version: Optional[str] = None
    crs: Optional[str] = None


class SoilProviderRead(BaseModel):
    name: str
    wms: WmsConfig


# ── Requests / responses ──────────────────────────────────────────────────────


class SoilQuery(BaseModel):
    polygon: GeoJSONPolygon
    provider: Optional[str] = None


class ClearCacheResponse(BaseModel):
    success: bool
    message: str
