"""
Polygon <-> WKT conversion for Soil Data Access queries.

SDA takes and returns geometry as well-known text in WGS84 (x = lng, y = lat).
Only the exterior ring is carried: holes are dropped, and for a MULTIPOLYGON
only the first part is kept, which is all the map highlighting needs.
"""
import logging
import math
from typing import Optional

from shapely import wkt as shapely_wkt
from shapely.errors import ShapelyError
from shapely.geometry import MultiPolygon, Polygon

from app.schemas.soil import GeoJSONPolygon, QueryBounds

logger = logging.getLogger(__name__)


def polygon_to_wkt(polygon: GeoJSONPolygon) -> str:
    """Emit POLYGON((lng lat, ...)) from the exterior ring. Closure is not checked."""
    coords = ", ".join(f"{position[0]} {position[1]}" for position in polygon.coordinates[0])
    return f"POLYGON(({coords}))"


def wkt_to_polygon(wkt: Optional[str]) -> Optional[GeoJSONPolygon]:
    """Parse a POLYGON or MULTIPOLYGON WKT string. Returns None if it can't be parsed."""
    if not wkt or not isinstance(wkt, str):
        return None
    # GEOS releases differ on whether text after the geometry is an error
    if not wkt.rstrip().endswith(")"):
        return None

    try:
        geom = shapely_wkt.loads(wkt)
    except (ShapelyError, ValueError) as exc:
        logger.warning("Failed to parse WKT: %s", exc)
        return None

    if geom.is_empty:
        return None
    if isinstance(geom, MultiPolygon):
        geom = geom.geoms[0]
    if not isinstance(geom, Polygon):
        return None

    ring = [[float(x), float(y)] for x, y, *_ in geom.exterior.coords]
    if not all(math.isfinite(value) for position in ring for value in position):
        return None
    return GeoJSONPolygon(type="Polygon", coordinates=[ring])


def polygon_bounds(polygon: GeoJSONPolygon) -> QueryBounds:
    ring = polygon.coordinates[0]
    lngs = [position[0] for position in ring]
    lats = [position[1] for position in ring]
    return QueryBounds(north=max(lats), south=min(lats), east=max(lngs), west=min(lngs))
