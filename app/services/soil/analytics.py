"""
Soil analytics derived from parsed SSURGO records.

Pure functions, no I/O: dominant soil ranking, plain-language descriptions,
land-use suitability, rule-based insights and recommended planning zones.
"""
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable, Optional

from app.schemas.soil import (
    DominantSoil,
    QueryBounds,
    RecommendedZone,
    SoilComponent,
    SoilInsight,
    SoilMapUnit,
    SoilSummary,
    Suitability,
    SuitabilityRating,
)

MAX_DOMINANT_SOILS = 5

# Missing capability class is treated as the worst case.
WORST_CAPABILITY_CLASS = 8

# Upper bounds of average capability class for excellent / good / fair / poor.
SUITABILITY_THRESHOLDS: dict[str, tuple[float, float, float, float]] = {
    "cropland": (2, 3, 4, 6),
    "pasture": (3, 4, 5, 7),
    "woodland": (4, 5, 6, 7),
    "garden": (2, 3, 4, 5),
}

PRIME_CAPABILITY_CLASSES = {"1", "2", "2e", "2s", "2w"}

HYDROLOGIC_GROUP_DESCRIPTIONS = {
    "A": "high infiltration",
    "B": "moderate infiltration",
    "C": "slow infiltration",
    "D": "very slow infiltration",
}

_LEADING_INT = re.compile(r"^\s*(\d+)")


@dataclass
class _SoilGroup:
    name: str
    total_pct: float = 0.0
    drainage: list[str] = field(default_factory=list)
    hydgrp: list[str] = field(default_factory=list)
    slopes: list[float] = field(default_factory=list)
    farmland: list[str] = field(default_factory=list)


def most_common(values: Iterable[str]) -> Optional[str]:
    """Most frequent value; ties go to whichever was seen first."""
    counts = Counter(values)
    if not counts:
        return None
    return counts.most_common(1)[0][0]


def slope_description(avg_slope: float) -> str:
    if avg_slope < 3:
        return "nearly level"
    if avg_slope < 8:
        return "gently sloping"
    if avg_slope < 15:
        return "moderately sloping"
    return "steep"


def _fmt_number(value: float) -> str:
    return f"{value:g}"


# ── Dominant soils ────────────────────────────────────────────────────────────


def _group_components(
    map_units: list[SoilMapUnit], components: list[SoilComponent]
) -> dict[str, _SoilGroup]:
    farmland_by_mukey = {mu.mukey: mu.farmlndcl for mu in map_units if mu.farmlndcl}

    groups: dict[str, _SoilGroup] = {}
    for comp in components:
        name = comp.compname or "Unnamed"
        group = groups.setdefault(name, _SoilGroup(name=name))
        group.total_pct += comp.comppct_r
        if comp.drainagecl:
            group.drainage.append(comp.drainagecl)
        if comp.hydgrp:
            group.hydgrp.append(comp.hydgrp)
        if comp.slope_r is not None:
            group.slopes.append(comp.slope_r)
        farmland = farmland_by_mukey.get(comp.mukey)
        if farmland:
            group.farmland.append(farmland)
    return groups


def describe_soil(
    drainage: list[str], slopes: list[float], hydgrp: list[str]
) -> str:
    parts = []

    drainage_class = most_common(drainage)
    if drainage_class:
        parts.append(drainage_class.lower())

    if slopes:
        parts.append(slope_description(sum(slopes) / len(slopes)))

    group = most_common(hydgrp)
    if group and group in HYDROLOGIC_GROUP_DESCRIPTIONS:
        parts.append(HYDROLOGIC_GROUP_DESCRIPTIONS[group])

    if not parts:
        return "Soil characteristics vary."
    text = ", ".join(parts)
    return text[0].upper() + text[1:] + " soil."


def calculate_dominant_soils(
    map_units: list[SoilMapUnit], components: list[SoilComponent]
) -> list[DominantSoil]:
    """
    Rank soils by summed component percentage and keep the top five.

    Percentages are shares of the total across *all* soil groups, so they add
    up to ~100 unless the list was truncated.
    """
    groups = _group_components(map_units, components)
    grand_total = sum(g.total_pct for g in groups.values())

    ranked = sorted(groups.values(), key=lambda g: g.total_pct, reverse=True)
    dominant = []
    for group in ranked[:MAX_DOMINANT_SOILS]:
        percentage = round(group.total_pct / grand_total * 100) if grand_total else 0
        slope_range = (
            f"{_fmt_number(min(group.slopes))}-{_fmt_number(max(group.slopes))}%"
            if group.slopes else None
        )
        dominant.append(DominantSoil(
            name=group.name,
            percentage=percentage,
            description=describe_soil(group.drainage, group.slopes, group.hydgrp),
            drainage_class=most_common(group.drainage),
            hydrologic_group=most_common(group.hydgrp),
            slope_range=slope_range,
            farmland_class=most_common(group.farmland),
        ))
    return dominant


# ── Suitability ───────────────────────────────────────────────────────────────


def capability_class_value(nirrcapcl: Optional[str]) -> int:
    """Leading integer of a capability class ("2", "3e" -> 2, 3); missing -> 8."""
    if not nirrcapcl:
        return WORST_CAPABILITY_CLASS
    match = _LEADING_INT.match(nirrcapcl)
    if match is None:
        return WORST_CAPABILITY_CLASS
    return int(match.group(1))


def average_capability_class(components: list[SoilComponent]) -> float:
    if not components:
        return float(WORST_CAPABILITY_CLASS)
    values = [capability_class_value(c.nirrcapcl) for c in components]
    return sum(values) / len(values)


def rate_suitability(avg_class: float, use: str) -> SuitabilityRating:
    excellent, good, fair, poor = SUITABILITY_THRESHOLDS[use]
    if avg_class <= excellent:
        return "excellent"
    if avg_class <= good:
        return "good"
    if avg_class <= fair:
        return "fair"
    if avg_class <= poor:
        return "poor"
    return "not_suited"


def calculate_suitability(components: list[SoilComponent]) -> Suitability:
    avg_class = average_capability_class(components)
    return Suitability(**{use: rate_suitability(avg_class, use) for use in SUITABILITY_THRESHOLDS})


# ── Insights ──────────────────────────────────────────────────────────────────


def generate_insights(
    map_units: list[SoilMapUnit], components: list[SoilComponent]
) -> list[SoilInsight]:
    insights = []

    drainage_classes = [c.drainagecl for c in components if c.drainagecl]
    poor_drainage = [d for d in drainage_classes if "poor" in d.lower()]
    if len(poor_drainage) > len(drainage_classes) * 0.3:
        insights.append(SoilInsight(
            type="limitation",
            category="drainage",
            title="Drainage Concerns",
            description=(
                "A significant portion of this area has poor to somewhat poorly drained soils. "
                "Consider drainage improvements or selecting water-tolerant crops."
            ),
            severity="medium",
        ))

    cap_classes = [c.nirrcapcl for c in components if c.nirrcapcl]
    prime_ag = [c for c in cap_classes if c in PRIME_CAPABILITY_CLASSES]
    if len(prime_ag) > len(cap_classes) * 0.5:
        insights.append(SoilInsight(
            type="strength",
            category="productivity",
            title="Prime Agricultural Land",
            description="Over half of this area consists of prime farmland with excellent agricultural potential.",
            severity="low",
        ))

    prime_farmland = [
        mu for mu in map_units
        if mu.farmlndcl and (
            "prime" in mu.farmlndcl.lower() or "farmland of statewide" in mu.farmlndcl.lower()
        )
    ]
    if prime_farmland:
        extent = "all" if len(prime_farmland) == len(map_units) else "some"
        insights.append(SoilInsight(
            type="strength",
            category="classification",
            title="USDA Prime Farmland",
            description=(
                f"This area contains {extent} soils classified as prime farmland "
                "or farmland of statewide importance."
            ),
        ))

    slopes = [c.slope_r for c in components if c.slope_r is not None]
    avg_slope = sum(slopes) / len(slopes) if slopes else 0.0
    if avg_slope > 8:
        insights.append(SoilInsight(
            type="limitation",
            category="erosion",
            title="Erosion Risk",
            description=(
                "Steeper slopes in this area may require erosion control measures such as "
                "contour farming, cover crops, or terracing."
            ),
            severity="high" if avg_slope > 15 else "medium",
        ))

    hyd_groups = [c.hydgrp for c in components if c.hydgrp]
    group_d = [g for g in hyd_groups if "D" in g]
    if len(group_d) > len(hyd_groups) * 0.3:
        insights.append(SoilInsight(
            type="recommendation",
            category="water",
            title="High Runoff Potential",
            description=(
                "Significant areas have Group D soils with high runoff potential. "
                "Consider water management practices and appropriate crop selection."
            ),
        ))

    if not insights:
        insights.append(SoilInsight(
            type="recommendation",
            category="general",
            title="Soil Testing Recommended",
            description=(
                "For best results, conduct detailed soil testing to determine specific "
                "nutrient levels and pH before planting."
            ),
        ))

    return insights


# ── Zones ─────────────────────────────────────────────────────────────────────


def generate_recommended_zones(dominant_soils: list[DominantSoil]) -> list[RecommendedZone]:
    zones = []

    well_drained = [
        s for s in dominant_soils if s.drainage_class and "well" in s.drainage_class.lower()
    ]
    poorly_drained = [
        s for s in dominant_soils if s.drainage_class and "poor" in s.drainage_class.lower()
    ]

    if well_drained:
        zones.append(RecommendedZone(
            type="crops",
            title="Upland Crop Zone",
            name="Upland Crop Zone",
            description="Well-drained areas suitable for most crops and orchards.",
            soil_types=[s.name for s in well_drained],
            suggested_uses=["Row crops", "Orchards", "Vegetables", "Berries"],
        ))

    if poorly_drained:
        zones.append(RecommendedZone(
            type="drainage",
            title="Wetland/Buffer Zone",
            name="Wetland/Buffer Zone",
            description="Areas with higher moisture - consider water-tolerant plants or conservation use.",
            soil_types=[s.name for s in poorly_drained],
            suggested_uses=["Wetland crops", "Riparian buffer", "Wildlife habitat", "Rain garden"],
        ))

    if not zones:
        prime = [
            s for s in dominant_soils if s.farmland_class and "prime" in s.farmland_class.lower()
        ]
        if prime:
            zones.append(RecommendedZone(
                type="garden",
                title="Prime Agricultural Zone",
                name="Prime Agricultural Zone",
                description="USDA-classified prime farmland with excellent growing potential.",
                soil_types=[s.name for s in prime],
                suggested_uses=["Cash crops", "Market garden", "Hay production"],
            ))

    return zones


# ── Summaries ─────────────────────────────────────────────────────────────────


def build_summary(
    provider: str,
    bounds: QueryBounds,
    map_units: list[SoilMapUnit],
    components: list[SoilComponent],
) -> SoilSummary:
    if not map_units:
        return empty_summary(provider, bounds)

    dominant_soils = calculate_dominant_soils(map_units, components)
    return SoilSummary(
        provider=provider,
        query_bounds=bounds,
        total_acres=sum(mu.muacres or 0.0 for mu in map_units),
        map_units=map_units,
        dominant_soils=dominant_soils,
        insights=generate_insights(map_units, components),
        suitability=calculate_suitability(components),
        recommended_zones=generate_recommended_zones(dominant_soils),
    )


def empty_summary(provider: str, bounds: QueryBounds) -> SoilSummary:
    return SoilSummary(
        provider=provider,
        query_bounds=bounds,
        total_acres=0,
        map_units=[],
        dominant_soils=[],
        insights=[SoilInsight(
            type="recommendation",
            category="data",
            title="No Soil Data Available",
            description=(
                "No soil survey data is available for this location. "
                "This may be outside the US or in an unsurveyed area."
            ),
        )],
        suitability=Suitability(
            cropland="not_suited",
            pasture="not_suited",
            woodland="not_suited",
            garden="not_suited",
        ),
        recommended_zones=[],
    )
