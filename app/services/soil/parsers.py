"""
Parsers for SDA tabular results.

SDA rows come back either as objects keyed by column name or as plain
positional arrays (format=JSON). Every cell is looked up by name first and by
its position in the SELECT list second, so the column order of each query
below must match the index arguments here.

None of these raise on a missing or malformed Table: they return empty results.
"""
import logging
import math
from collections.abc import Mapping, Sequence
from typing import Any, Optional

from app.schemas.soil import (
    SoilComponent,
    SoilFeature,
    SoilFeatureCollection,
    SoilFeatureProperties,
    SoilHorizon,
    SoilMapUnit,
)
from app.services.soil.geometry import wkt_to_polygon

logger = logging.getLogger(__name__)


def _rows(result: Any) -> list:
    if not isinstance(result, Mapping):
        return []
    table = result.get("Table")
    if not isinstance(table, list):
        return []
    return table


def _cell(row: Any, name: str, index: int) -> Any:
    if isinstance(row, Mapping):
        value = row.get(name)
        if value is None:
            value = row.get(index, row.get(str(index)))
        return value
    if isinstance(row, Sequence) and not isinstance(row, str):
        return row[index] if index < len(row) else None
    return None


def _text(row: Any, name: str, index: int) -> Optional[str]:
    value = _cell(row, name, index)
    if value is None or value == "":
        return None
    return str(value)


def to_float(value: Any) -> Optional[float]:
    """Permissive float parse: None for blanks, junk and NaN/inf."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(str(value).strip())
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def _float(row: Any, name: str, index: int) -> Optional[float]:
    return to_float(_cell(row, name, index))


# ── Map units ─────────────────────────────────────────────────────────────────
# SELECT mukey, musym, muname, mukind, farmlndcl


def parse_map_units(result: Any) -> list[SoilMapUnit]:
    map_units = []
    for row in _rows(result):
        mukey = _text(row, "mukey", 0)
        if mukey is None:
            continue
        map_units.append(SoilMapUnit(
            mukey=mukey,
            musym=_text(row, "musym", 1),
            muname=_text(row, "muname", 2),
            mukind=_text(row, "mukind", 3),
            farmlndcl=_text(row, "farmlndcl", 4),
        ))
    return map_units


# SELECT mukey, area_acres


def parse_map_unit_acres(result: Any) -> dict[str, float]:
    acres: dict[str, float] = {}
    for row in _rows(result):
        mukey = _text(row, "mukey", 0)
        area = _float(row, "area_acres", 1)
        if mukey is not None and area is not None:
            acres[mukey] = area
    return acres


# ── Components ────────────────────────────────────────────────────────────────
# SELECT cokey, mukey, compname, compkind, comppct_r, slope_r, drainagecl,
#        hydgrp, taxorder, taxsubgrp, nirrcapcl, nirrcapscl


def parse_components(result: Any) -> list[SoilComponent]:
    components = []
    for row in _rows(result):
        cokey = _text(row, "cokey", 0)
        if cokey is None:
            continue
        components.append(SoilComponent(
            cokey=cokey,
            mukey=_text(row, "mukey", 1),
            compname=_text(row, "compname", 2),
            compkind=_text(row, "compkind", 3),
            comppct_r=_float(row, "comppct_r", 4) or 0.0,
            slope_r=_float(row, "slope_r", 5),
            drainagecl=_text(row, "drainagecl", 6),
            hydgrp=_text(row, "hydgrp", 7),
            taxorder=_text(row, "taxorder", 8),
            taxsubgrp=_text(row, "taxsubgrp", 9),
            nirrcapcl=_text(row, "nirrcapcl", 10),
            nirrcapscl=_text(row, "nirrcapscl", 11),
        ))
    return components


# ── Horizons ──────────────────────────────────────────────────────────────────
# SELECT cokey, hzname, hzdept_r, hzdepb_r, sandtotal_r, silttotal_r,
#        claytotal_r, om_r, ph1to1h2o_r, ksat_r, awc_r, cec7_r


def parse_horizons(result: Any) -> dict[str, list[SoilHorizon]]:
    """Group horizons by component key, each list ordered by top depth."""
    horizons: dict[str, list[SoilHorizon]] = {}
    for row in _rows(result):
        cokey = _text(row, "cokey", 0)
        if cokey is None:
            continue
        horizons.setdefault(cokey, []).append(SoilHorizon(
            hzname=_text(row, "hzname", 1),
            hzdept_r=_float(row, "hzdept_r", 2) or 0.0,
            hzdepb_r=_float(row, "hzdepb_r", 3) or 0.0,
            sandtotal_r=_float(row, "sandtotal_r", 4),
            silttotal_r=_float(row, "silttotal_r", 5),
            claytotal_r=_float(row, "claytotal_r", 6),
            om_r=_float(row, "om_r", 7),
            ph1to1h2o_r=_float(row, "ph1to1h2o_r", 8),
            ksat_r=_float(row, "ksat_r", 9),
            awc_r=_float(row, "awc_r", 10),
            cec7_r=_float(row, "cec7_r", 11),
        ))

    for layers in horizons.values():
        layers.sort(key=lambda h: h.hzdept_r)
    return horizons


# ── Geometries ────────────────────────────────────────────────────────────────
# SELECT mukey, musym, muname, geom_wkt


def parse_geometries(result: Any) -> SoilFeatureCollection:
    features = []
    skipped = 0
    for row in _rows(result):
        geometry = wkt_to_polygon(_text(row, "geom_wkt", 3))
        if geometry is None:
            skipped += 1
            continue
        features.append(SoilFeature(
            properties=SoilFeatureProperties(
                mukey=_text(row, "mukey", 0),
                musym=_text(row, "musym", 1),
                muname=_text(row, "muname", 2),
            ),
            geometry=geometry,
        ))

    if skipped:
        logger.debug("Skipped %d soil geometries with unparseable WKT", skipped)
    return SoilFeatureCollection(features=features)
