#!/usr/bin/env python3
"""
One-off script to fetch a soil summary for a GeoJSON polygon, bypassing the cache.

Usage (inside the API container):
    python scripts/run_soil_summary.py boundary.geojson
    python scripts/run_soil_summary.py boundary.geojson --provider usda-ssurgo

The file may hold a bare Polygon geometry, a Feature, or a FeatureCollection
(the first feature is used).
"""
import argparse
import asyncio
import json
import logging
import sys
from typing import Optional

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s: %(message)s",
    stream=sys.stdout,
)

from app.core.deps import get_soil_providers
from app.schemas.soil import GeoJSONPolygon
from app.services.soil.geometry import polygon_bounds
from app.services.soil.providers.base import SoilProvider


def load_polygon(path: str) -> GeoJSONPolygon:
    with open(path) as fh:
        doc = json.load(fh)
    if doc.get("type") == "FeatureCollection":
        doc = doc["features"][0]
    if doc.get("type") == "Feature":
        doc = doc["geometry"]
    return GeoJSONPolygon.model_validate(doc)


def pick_provider(polygon: GeoJSONPolygon, name: Optional[str]) -> Optional[SoilProvider]:
    bounds = polygon_bounds(polygon)
    candidates = [p for p in get_soil_providers() if p.supports_bounds(bounds)]
    for provider in candidates:
        if provider.name == name:
            return provider
    return candidates[0] if candidates else None


async def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("path", help="GeoJSON file containing a polygon")
    parser.add_argument("--provider", default=None, help="provider name (default: first that covers the polygon)")
    args = parser.parse_args()

    polygon = load_polygon(args.path)
    provider = pick_provider(polygon, args.provider)
    if provider is None:
        print("No soil data provider available for this location", file=sys.stderr)
        return 1

    print(f"Fetching soil summary from {provider.name}...\n")
    summary = await provider.get_soil_summary(polygon)
    print(json.dumps(summary.model_dump(mode="json", by_alias=True), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
