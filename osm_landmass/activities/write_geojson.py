"""GeoJSON encoder activity.

Writes the final landmass as a GeoJSON ``FeatureCollection`` with one
feature per polygon (properties ``feature_type``, ``area_sqm``,
``index``), and the intermediate land or water coverage as a debug
collection holding a single MultiPolygon feature.

Coordinates are written in the lon/lat order they were read in; no
reprojection happens.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from osm_landmass.activities.boolean_ops import to_multipolygon
from osm_landmass.activities.build_landmass import geodesic_area_sqm
from osm_landmass.core.exceptions import PermanentError

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from shapely.geometry.base import BaseGeometry

    from osm_landmass.models.landmass import LandmassPolygon

logger = logging.getLogger("osm_landmass.activities.write_geojson")


class GeoJsonWriteError(PermanentError):
    """Raised when an output file cannot be written."""

    default_stage = "write_geojson"
    default_code = "GEOJSON_WRITE_FAILED"


def landmass_feature_collection(polygons: Sequence[LandmassPolygon]) -> dict[str, object]:
    """Build the output ``FeatureCollection`` dict, in index order."""
    ordered = sorted(polygons, key=lambda p: p.index)
    return {
        "type": "FeatureCollection",
        "features": [polygon.to_geojson_feature() for polygon in ordered],
    }


def coverage_feature_collection(geom: BaseGeometry, feature_type: str) -> dict[str, object]:
    """Build a single-feature collection for a whole coverage set."""
    from shapely.geometry import mapping

    coverage = to_multipolygon(geom)
    return {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "geometry": mapping(coverage),
                "properties": {
                    "feature_type": feature_type,
                    "area_sqm": geodesic_area_sqm(coverage),
                    "polygon_count": len(coverage.geoms),
                },
            }
        ],
    }


def write_landmass_geojson(polygons: Sequence[LandmassPolygon], path: Path) -> Path:
    """Write landmass polygons to ``path``.

    Raises:
        GeoJsonWriteError: If the file cannot be written.
    """
    _dump(landmass_feature_collection(polygons), path)
    logger.info("GeoJSON written | path=%s | features=%d", path, len(polygons))
    return path


def write_coverage_geojson(geom: BaseGeometry, path: Path, feature_type: str) -> Path:
    """Write a debug coverage (raw land or water) to ``path``.

    Raises:
        GeoJsonWriteError: If the file cannot be written.
    """
    _dump(coverage_feature_collection(geom, feature_type), path)
    logger.info("Debug GeoJSON written | path=%s | feature_type=%s", path, feature_type)
    return path


def _dump(document: dict[str, object], path: Path) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as fh:
            json.dump(document, fh)
    except OSError as exc:
        msg = f"Cannot write GeoJSON to {path}: {exc}"
        raise GeoJsonWriteError(msg) from exc
