"""Clip-boundary activity.

Coastline that continues beyond the edge of an extract cannot close
into a ring.  When the caller supplies the extract's clip polygon, such
open chains are closed explicitly along that boundary, and the final
landmass is intersected with it.

OSM coastlines keep land on the LEFT of the way direction.  For an open
chain running from START to END, the land polygon is the chain itself
followed by the clip boundary walked counter-clockwise (interior on the
left, like the land) from END back to START.

Without a clip polygon nothing here runs: open chains are reported and
discarded, never closed by guesswork.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from osm_landmass.activities.boolean_ops import intersect
from osm_landmass.core.constants import COORD_EPSILON, MIN_RING_AREA_DEG2
from osm_landmass.core.diagnostics import Diagnostic, DiagnosticKind
from osm_landmass.core.exceptions import ValidationError
from osm_landmass.models.fragment import FeatureClass, dedupe_consecutive
from osm_landmass.models.polygon import SourcePolygon

if TYPE_CHECKING:
    from pathlib import Path

    from shapely.geometry import LineString, MultiPolygon, Polygon

    from osm_landmass.activities.assemble_rings import OpenChain
    from osm_landmass.core.diagnostics import DiagnosticsSink
    from osm_landmass.models.fragment import Point

logger = logging.getLogger("osm_landmass.activities.clip_boundary")

STAGE = "clip_boundary"


class ClipBoundaryError(ValidationError):
    """Raised when the clip polygon file cannot be read or holds no polygon."""

    default_stage = STAGE
    default_code = "CLIP_BOUNDARY_INVALID"


# ---------------------------------------------------------------------------
# Reading
# ---------------------------------------------------------------------------


def read_clip_polygon(path: Path) -> Polygon:
    """Read the first polygon from a GeoJSON file.

    Accepts a bare Polygon/MultiPolygon geometry, a Feature, or a
    FeatureCollection (first polygonal feature wins).  The first member
    of a MultiPolygon is used.

    Raises:
        ClipBoundaryError: If the file cannot be read or parsed, or
            contains no polygon.
    """
    try:
        document = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        msg = f"Cannot read clip file {path}: {exc}"
        raise ClipBoundaryError(msg) from exc
    except json.JSONDecodeError as exc:
        msg = f"Clip file {path} is not valid JSON: {exc}"
        raise ClipBoundaryError(msg) from exc

    polygon = _first_polygon(document)
    if polygon is None:
        msg = f"No polygon found in clip file {path}"
        raise ClipBoundaryError(msg)
    logger.info(
        "Clip polygon loaded | path=%s | vertices=%d | bounds=[%.4f, %.4f, %.4f, %.4f]",
        path,
        len(polygon.exterior.coords),
        *polygon.bounds,
    )
    return polygon


def _first_polygon(document: object) -> Polygon | None:
    from shapely.geometry import shape

    if not isinstance(document, dict):
        return None
    kind = document.get("type")
    if kind == "FeatureCollection":
        for feature in document.get("features", []):
            polygon = _first_polygon(feature)
            if polygon is not None:
                return polygon
        return None
    if kind == "Feature":
        return _first_polygon(document.get("geometry"))
    if kind not in ("Polygon", "MultiPolygon"):
        return None
    try:
        geom = shape(document)
    except (ValueError, TypeError, AttributeError, IndexError) as exc:
        logger.warning("Skipping malformed clip geometry: %s", exc)
        return None
    if geom.is_empty:
        return None
    if geom.geom_type == "MultiPolygon":
        return geom.geoms[0]  # type: ignore[attr-defined]
    return geom  # type: ignore[return-value]


# ---------------------------------------------------------------------------
# Closing open chains
# ---------------------------------------------------------------------------


def close_chains_against_boundary(
    chains: list[OpenChain],
    clip: Polygon,
    diagnostics: DiagnosticsSink,
) -> list[SourcePolygon]:
    """Close open coastline chains along the clip boundary.

    Returns:
        One land polygon per chain that closes into a non-negligible area.
        Chains whose ends project onto the same boundary point, or whose
        closed shape has no area, are reported as ``boundary_close_failed``.
    """
    from shapely.geometry import LineString, Polygon
    from shapely.geometry import Point as GeomPoint
    from shapely.geometry.polygon import orient

    boundary = LineString(orient(clip, sign=1.0).exterior.coords)
    polygons: list[SourcePolygon] = []

    for chain in chains:
        ids = "+".join(str(fid) for fid in chain.fragment_ids)
        start_d = boundary.project(GeomPoint(chain.points[0]))
        end_d = boundary.project(GeomPoint(chain.points[-1]))
        start_pt = boundary.interpolate(start_d)
        end_pt = boundary.interpolate(end_d)

        if start_pt.distance(end_pt) < COORD_EPSILON:
            _report(diagnostics, chain, "chain ends project to the same boundary point")
            continue

        coords: list[Point] = [(start_pt.x, start_pt.y), *chain.points, (end_pt.x, end_pt.y)]
        coords.extend(_walk_ccw(boundary, end_d, start_d))
        coords = dedupe_consecutive(coords)
        if coords[0] != coords[-1]:
            coords.append(coords[0])

        if len(coords) < 4:
            _report(diagnostics, chain, "closed shape has fewer than 4 coordinates")
            continue
        polygon = Polygon(coords)
        if polygon.area < MIN_RING_AREA_DEG2:
            _report(diagnostics, chain, f"closed shape has negligible area {polygon.area:.3e}")
            continue
        polygons.append(
            SourcePolygon(
                polygon_id=f"boundary:{ids}",
                geometry=polygon,
                feature_class=FeatureClass.LAND,
            )
        )

    logger.info(
        "Open chains closed against boundary | chains=%d | polygons=%d",
        len(chains),
        len(polygons),
    )
    return polygons


def _walk_ccw(boundary: LineString, from_d: float, to_d: float) -> list[Point]:
    """Boundary coordinates walking forward (CCW) from ``from_d`` to ``to_d``."""
    from shapely.ops import substring

    if to_d >= from_d:
        return list(substring(boundary, from_d, to_d).coords)
    head = list(substring(boundary, from_d, boundary.length).coords)
    tail = list(substring(boundary, 0.0, to_d).coords)
    return head + tail


def _report(diagnostics: DiagnosticsSink, chain: OpenChain, detail: str) -> None:
    diagnostics.record(
        Diagnostic(
            kind=DiagnosticKind.BOUNDARY_CLOSE_FAILED,
            stage=STAGE,
            fragment_ids=chain.fragment_ids,
            endpoint=chain.points[-1],
            detail=detail,
        )
    )


# ---------------------------------------------------------------------------
# Final clip
# ---------------------------------------------------------------------------


def clip_to_boundary(
    landmass: MultiPolygon,
    clip: Polygon,
    diagnostics: DiagnosticsSink,
    *,
    epsilon: float,
    max_attempts: int,
) -> MultiPolygon:
    """Intersect the landmass with the clip polygon."""
    before = len(landmass.geoms)
    clipped = intersect(landmass, clip, diagnostics, epsilon=epsilon, max_attempts=max_attempts)
    logger.info("Landmass clipped | polygons_before=%d | polygons_after=%d", before, len(clipped.geoms))
    return clipped
