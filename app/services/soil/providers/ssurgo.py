"""
USDA SSURGO soil data provider.

Backed by NRCS Soil Data Access:
- REST: https://SDMDataAccess.sc.egov.usda.gov/Tabular/post.rest
- WMS:  https://SDMDataAccess.sc.egov.usda.gov/Spatial/SDM.wms

Map units and components feed the summary analytics. A failed map unit,
acreage or component query degrades to an empty list so the caller still gets
a (possibly empty) summary; a failed geometry query degrades to an empty
feature collection. Map unit detail lookups propagate their errors.
"""
import logging

from app.schemas.soil import (
    GeoJSONPolygon,
    MapUnitDetails,
    QueryBounds,
    SoilComponent,
    SoilFeatureCollection,
    SoilHorizon,
    SoilMapUnit,
    SoilSummary,
    WmsConfig,
)
from app.services.soil import analytics, parsers
from app.services.soil.exceptions import MapUnitNotFoundError, SoilDataError
from app.services.soil.geometry import polygon_bounds, polygon_to_wkt
from app.services.soil.providers.base import SoilProvider
from app.services.soil.sda_client import SdaClient, sql_literal, sql_literal_list

logger = logging.getLogger(__name__)

SDA_WMS_URL = "https://SDMDataAccess.sc.egov.usda.gov/Spatial/SDM.wms"

# Continental US + Alaska + Hawaii
US_BOUNDS = QueryBounds(north=71.5, south=18.9, east=-66.9, west=-179.2)

SQUARE_METERS_TO_ACRES = 0.000247105

_MAP_UNITS_QUERY = """
SELECT
    M.mukey,
    M.musym,
    M.muname,
    M.mukind,
    M.farmlndcl
FROM mapunit M
INNER JOIN SDA_Get_Mukey_from_intersection_with_WktWgs84({wkt}) AS MK
    ON M.mukey = MK.mukey
ORDER BY M.muname
"""

_MAP_UNIT_ACRES_QUERY = """
SELECT
    P.mukey,
    ROUND(SUM(
        geography::STGeomFromWKB(
            P.mupolygongeo.STIntersection(geometry::STGeomFromText({wkt}, 4326)).STAsBinary(), 4326
        ).MakeValid().STArea()
    ) * {to_acres}, 2) AS area_acres
FROM mupolygon P
WHERE P.mupolygonkey IN (
    SELECT mupolygonkey FROM SDA_Get_Mupolygonkey_from_intersection_with_WktWgs84({wkt})
)
GROUP BY P.mukey
"""

_SINGLE_MAP_UNIT_QUERY = """
SELECT mukey, musym, muname, mukind, farmlndcl
FROM mapunit
WHERE mukey = {mukey}
"""

_COMPONENTS_QUERY = """
SELECT
    C.cokey,
    C.mukey,
    C.compname,
    C.compkind,
    C.comppct_r,
    C.slope_r,
    C.drainagecl,
    C.hydgrp,
    C.taxorder,
    C.taxsubgrp,
    C.nirrcapcl,
    C.nirrcapscl
FROM component C
WHERE C.mukey IN ({mukeys})
    AND C.comppct_r > 0
ORDER BY C.comppct_r DESC
"""

_HORIZONS_QUERY = """
SELECT
    H.cokey,
    H.hzname,
    H.hzdept_r,
    H.hzdepb_r,
    H.sandtotal_r,
    H.silttotal_r,
    H.claytotal_r,
    H.om_r,
    H.ph1to1h2o_r,
    H.ksat_r,
    H.awc_r,
    H.cec7_r
FROM chorizon H
WHERE H.cokey IN ({cokeys})
ORDER BY H.cokey, H.hzdept_r
"""

_GEOMETRIES_QUERY = """
SELECT
    M.mukey,
    M.musym,
    M.muname,
    geometry::STGeomFromText(MP.mupolygongeo.STAsText(), 4326).STIntersection(
        geometry::STGeomFromText({wkt}, 4326)
    ).STAsText() AS geom_wkt
FROM mupolygon MP
INNER JOIN mapunit M ON MP.mukey = M.mukey
WHERE MP.mupolygonkey IN (
    SELECT mupolygonkey
    FROM SDA_Get_Mupolygonkey_from_intersection_with_WktWgs84({wkt})
)
"""


class UsdaSsurgoProvider(SoilProvider):
    name = "usda-ssurgo"
    coverage = US_BOUNDS

    def __init__(self, client: SdaClient, wms_url: str = SDA_WMS_URL):
        self.client = client
        self.wms_url = wms_url

    def get_wms_config(self) -> WmsConfig:
        return WmsConfig(
            url=self.wms_url,
            layers="mapunitpoly",
            format="image/png",
            transparent=True,
            attribution="Soil Data: USDA-NRCS",
            version="1.1.1",
            crs="EPSG:4326",
        )

    async def get_soil_summary(self, polygon: GeoJSONPolygon) -> SoilSummary:
        bounds = polygon_bounds(polygon)
        wkt = polygon_to_wkt(polygon)

        map_units = await self.fetch_map_units(wkt)
        if not map_units:
            return analytics.empty_summary(self.name, bounds)

        acres = await self.fetch_map_unit_acres(wkt)
        for mu in map_units:
            if mu.mukey in acres:
                mu.muacres = acres[mu.mukey]

        components = await self.fetch_components([mu.mukey for mu in map_units])
        return analytics.build_summary(self.name, bounds, map_units, components)

    async def get_map_unit_details(self, mukey: str) -> MapUnitDetails:
        map_unit = await self.fetch_single_map_unit(mukey)
        components = await self.fetch_components([mukey])
        horizons = await self.fetch_horizons([c.cokey for c in components])
        return MapUnitDetails(map_unit=map_unit, components=components, horizons=horizons)

    async def get_soil_geometries(self, polygon: GeoJSONPolygon) -> SoilFeatureCollection:
        wkt = sql_literal(polygon_to_wkt(polygon))
        try:
            result = await self.client.execute(_GEOMETRIES_QUERY.format(wkt=wkt))
        except SoilDataError as exc:
            logger.error("Failed to fetch soil geometries: %s", exc)
            return SoilFeatureCollection(features=[])
        return parsers.parse_geometries(result)

    # ── SDA fetches ───────────────────────────────────────────────────────────

    async def fetch_map_units(self, wkt: str) -> list[SoilMapUnit]:
        try:
            result = await self.client.execute(_MAP_UNITS_QUERY.format(wkt=sql_literal(wkt)))
        except SoilDataError as exc:
            logger.error("Failed to fetch map units: %s", exc)
            return []
        return parsers.parse_map_units(result)

    async def fetch_map_unit_acres(self, wkt: str) -> dict[str, float]:
        query = _MAP_UNIT_ACRES_QUERY.format(wkt=sql_literal(wkt), to_acres=SQUARE_METERS_TO_ACRES)
        try:
            result = await self.client.execute(query)
        except SoilDataError as exc:
            logger.warning("Failed to fetch map unit acreage: %s", exc)
            return {}
        return parsers.parse_map_unit_acres(result)

    async def fetch_single_map_unit(self, mukey: str) -> SoilMapUnit:
        result = await self.client.execute(_SINGLE_MAP_UNIT_QUERY.format(mukey=sql_literal(mukey)))
        map_units = parsers.parse_map_units(result)
        if not map_units:
            raise MapUnitNotFoundError(mukey)
        return map_units[0]

    async def fetch_components(self, mukeys: list[str]) -> list[SoilComponent]:
        if not mukeys:
            return []
        try:
            result = await self.client.execute(_COMPONENTS_QUERY.format(mukeys=sql_literal_list(mukeys)))
        except SoilDataError as exc:
            logger.error("Failed to fetch components: %s", exc)
            return []
        return parsers.parse_components(result)

    async def fetch_horizons(self, cokeys: list[str]) -> dict[str, list[SoilHorizon]]:
        if not cokeys:
            return {}
        try:
            result = await self.client.execute(_HORIZONS_QUERY.format(cokeys=sql_literal_list(cokeys)))
        except SoilDataError as exc:
            logger.error("Failed to fetch horizons: %s", exc)
            return {}
        return parsers.parse_horizons(result)
