"""Landmass output activity.

Turns the final coverage into ordered ``LandmassPolygon`` entities.

Area formula (one formula for every figure the pipeline reports):
    geodesic area on the WGS 84 ellipsoid via
    ``pyproj.Geod.geometry_area_perimeter``, taken on the polygon
    oriented per RFC 7946 so holes are subtracted, in square metres.

Ordering:
    ``index`` is zero-based over descending ``area_sqm``; equal areas
    are ordered by bounding box so output is identical across runs.

Polygons with fewer than 3 distinct exterior vertices, or with an area
under ``min_area_sqm`` (slivers left by boolean repair), are dropped.
Each drop is recorded as a ``degenerate_dropped`` diagnostic and a
single aggregated warning is logged.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from osm_landmass.activities.boolean_ops import polygon_parts, repair_geometry
from osm_landmass.core.constants import (
    AREA_ELLIPSOID,
    DEFAULT_MIN_AREA_SQM,
    DEFAULT_REPAIR_EPSILON,
    DEFAULT_REPAIR_MAX_ATTEMPTS,
    MIN_DISTINCT_RING_POINTS,
    SQ_METRES_PER_SQ_KM,
)
from osm_landmass.core.diagnostics import Diagnostic, DiagnosticKind
from osm_landmass.models.landmass import LandmassPolygon

if TYPE_CHECKING:
    from shapely.geometry import Polygon
    from shapely.geometry.base import BaseGeometry

    from osm_landmass.core.diagnostics import DiagnosticsSink

logger = logging.getLogger("osm_landmass.activities.build_landmass")

STAGE = "build_landmass"


# ---------------------------------------------------------------------------
# Area
# ---------------------------------------------------------------------------


def geodesic_area_sqm(geom: BaseGeometry) -> float:
    """Geodesic area of a (multi)polygon in square metres, holes subtracted."""
    from pyproj import Geod
    from shapely.geometry.polygon import orient

    geod = Geod(ellps=AREA_ELLIPSOID)
    total = 0.0
    for part in polygon_parts(geom):
        area_m2, _perimeter = geod.geometry_area_perimeter(orient(part, sign=1.0))
        total += abs(area_m2)
    return total


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def build_landmass(
    coverage: BaseGeometry,
    diagnostics: DiagnosticsSink,
    *,
    min_area_sqm: float = DEFAULT_MIN_AREA_SQM,
    feature_type: str = "landmass",
    epsilon: float = DEFAULT_REPAIR_EPSILON,
    max_attempts: int = DEFAULT_REPAIR_MAX_ATTEMPTS,
) -> list[LandmassPolygon]:
    """Produce ordered output polygons from a coverage.

    Args:
        coverage: Disjoint polygons-with-holes (any polygonal geometry).
        diagnostics: Sink for ``degenerate_dropped`` and
            ``boolean_repair_failed`` events.
        min_area_sqm: Polygons below this area are dropped.
        feature_type: Value of the ``feature_type`` output property.
        epsilon: Initial union-trick distance for last-chance repair.
        max_attempts: Union-trick retry count.

    Returns:
        Polygons indexed ``0..n-1`` in descending-area order.
    """
    from shapely.geometry.polygon import orient

    candidates: list[tuple[Polygon, float]] = []
    dropped = 0
    for i, part in enumerate(polygon_parts(coverage)):
        polygon_id = f"{feature_type}#{i}"
        for polygon in _valid_parts(part, polygon_id, diagnostics, epsilon, max_attempts):
            oriented = orient(polygon, sign=1.0)
            area_sqm = geodesic_area_sqm(oriented)
            if _distinct_vertices(oriented) < MIN_DISTINCT_RING_POINTS or area_sqm < min_area_sqm:
                dropped += 1
                diagnostics.record(
                    Diagnostic(
                        kind=DiagnosticKind.DEGENERATE_DROPPED,
                        stage=STAGE,
                        polygon_id=polygon_id,
                        area=area_sqm,
                    )
                )
                continue
            candidates.append((oriented, area_sqm))

    if dropped:
        logger.warning(
            "Dropped %d degenerate polygon(s) below %.2f m² | feature_type=%s",
            dropped,
            min_area_sqm,
            feature_type,
        )

    candidates.sort(key=lambda item: (-item[1], item[0].bounds))
    result = [
        LandmassPolygon(
            geometry=polygon,
            area_sqm=area_sqm,
            planar_area=polygon.area,
            index=index,
            feature_type=feature_type,
        )
        for index, (polygon, area_sqm) in enumerate(candidates)
    ]

    logger.info(
        "Landmass built | feature_type=%s | polygons=%d | area=%.2f km² | dropped=%d",
        feature_type,
        len(result),
        sum(p.area_sqm for p in result) / SQ_METRES_PER_SQ_KM,
        dropped,
    )
    return result


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _valid_parts(
    polygon: Polygon,
    polygon_id: str,
    diagnostics: DiagnosticsSink,
    epsilon: float,
    max_attempts: int,
) -> list[Polygon]:
    if polygon.is_valid:
        return [polygon]
    repaired = repair_geometry(polygon, epsilon=epsilon, max_attempts=max_attempts)
    if repaired is None:
        diagnostics.record(
            Diagnostic(
                kind=DiagnosticKind.BOOLEAN_REPAIR_FAILED,
                stage=STAGE,
                polygon_id=polygon_id,
                detail="output polygon invalid and could not be repaired",
            )
        )
        return []
    return polygon_parts(repaired)


def _distinct_vertices(polygon: Polygon) -> int:
    return len(set(polygon.exterior.coords[:-1]))
