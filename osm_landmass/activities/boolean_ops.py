"""Polygon boolean engine.

Unions same-class polygons into coverage sets and subtracts water from
land, using GEOS through shapely.

Robustness policy
-----------------
Every input polygon is made valid before it is combined:

1. ``make_valid`` (keeping polygonal parts only).
2. If that still fails, the union trick: ``buffer(+eps).buffer(-eps)``
   with ``eps`` starting at ``DEFAULT_REPAIR_EPSILON`` (1e-9 degrees,
   roughly 0.1 mm) and growing tenfold per retry, for at most
   ``DEFAULT_REPAIR_MAX_ATTEMPTS`` retries.
3. A polygon that still cannot be repaired is dropped and reported as
   ``boolean_repair_failed``.

Boolean operations that raise a GEOS error or return invalid output are
retried the same way on both operands.  Unions fall back to a stable
pairwise fold and differences to a per-part difference, so a single bad
polygon costs only itself.

Inputs are combined in ascending polygon-id order so results and
diagnostics are reproducible across runs.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from osm_landmass.core.constants import (
    DEFAULT_REPAIR_EPSILON,
    DEFAULT_REPAIR_MAX_ATTEMPTS,
    REPAIR_EPSILON_GROWTH,
)
from osm_landmass.core.diagnostics import Diagnostic, DiagnosticKind

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from shapely.geometry import MultiPolygon, Polygon
    from shapely.geometry.base import BaseGeometry

    from osm_landmass.core.diagnostics import DiagnosticsSink
    from osm_landmass.models.polygon import SourcePolygon

    BinaryOp = Callable[[BaseGeometry, BaseGeometry], BaseGeometry]

logger = logging.getLogger("osm_landmass.activities.boolean_ops")

STAGE = "boolean_ops"


# ---------------------------------------------------------------------------
# Geometry normalisation
# ---------------------------------------------------------------------------


def polygon_parts(geom: BaseGeometry | None) -> list[Polygon]:
    """Flatten a geometry to its non-empty polygons, dropping lines and points."""
    if geom is None or geom.is_empty:
        return []
    if geom.geom_type == "Polygon":
        return [geom]  # type: ignore[list-item]
    if geom.geom_type in ("MultiPolygon", "GeometryCollection"):
        parts: list[Polygon] = []
        for part in geom.geoms:  # type: ignore[attr-defined]
            parts.extend(polygon_parts(part))
        return parts
    return []


def to_multipolygon(geom: BaseGeometry | None) -> MultiPolygon:
    """Polygonal content of ``geom`` as a ``MultiPolygon`` (possibly empty)."""
    from shapely.geometry import MultiPolygon

    return MultiPolygon(polygon_parts(geom))


def _usable(geom: BaseGeometry | None) -> bool:
    return geom is not None and not geom.is_empty and geom.is_valid and geom.area > 0


def repair_geometry(
    geom: BaseGeometry,
    *,
    epsilon: float = DEFAULT_REPAIR_EPSILON,
    max_attempts: int = DEFAULT_REPAIR_MAX_ATTEMPTS,
) -> MultiPolygon | None:
    """Return a valid polygonal version of ``geom``, or ``None``.

    Valid input is returned unchanged (as a ``MultiPolygon``).
    """
    from shapely.errors import GEOSException
    from shapely.validation import make_valid

    if geom.is_empty:
        return None
    if geom.is_valid:
        candidate = to_multipolygon(geom)
        return candidate if _usable(candidate) else None

    try:
        candidate = to_multipolygon(make_valid(geom))
    except GEOSException:
        candidate = None
    if _usable(candidate):
        return candidate

    eps = epsilon
    for attempt in range(1, max_attempts + 1):
        try:
            candidate = to_multipolygon(geom.buffer(eps).buffer(-eps))
        except GEOSException as exc:
            logger.debug("Union trick failed | attempt=%d | eps=%g | error=%s", attempt, eps, exc)
            candidate = None
        if _usable(candidate):
            logger.debug("Union trick repaired geometry | attempt=%d | eps=%g", attempt, eps)
            return candidate
        eps *= REPAIR_EPSILON_GROWTH
    return None


def _robust_binary(
    op: BinaryOp,
    a: BaseGeometry,
    b: BaseGeometry,
    *,
    epsilon: float,
    max_attempts: int,
) -> MultiPolygon | None:
    """Apply ``op`` and retry on inflated-deflated operands if it misbehaves."""
    from shapely.errors import GEOSException

    try:
        result = op(a, b)
        if result.is_valid:
            return to_multipolygon(result)
        repaired = repair_geometry(result, epsilon=epsilon, max_attempts=max_attempts)
        if repaired is not None:
            return repaired
    except GEOSException as exc:
        logger.debug("Boolean operation raised | op=%s | error=%s", op.__name__, exc)

    eps = epsilon
    for attempt in range(1, max_attempts + 1):
        try:
            result = op(a.buffer(eps).buffer(-eps), b.buffer(eps).buffer(-eps))
        except GEOSException as exc:
            logger.debug("Retry raised | op=%s | attempt=%d | error=%s", op.__name__, attempt, exc)
            result = None
        if result is not None and result.is_valid:
            return to_multipolygon(result)
        eps *= REPAIR_EPSILON_GROWTH
    return None


def _union(a: BaseGeometry, b: BaseGeometry) -> BaseGeometry:
    return a.union(b)


def _difference(a: BaseGeometry, b: BaseGeometry) -> BaseGeometry:
    return a.difference(b)


def _intersection(a: BaseGeometry, b: BaseGeometry) -> BaseGeometry:
    return a.intersection(b)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def union_polygons(
    polygons: Iterable[SourcePolygon],
    diagnostics: DiagnosticsSink,
    *,
    epsilon: float = DEFAULT_REPAIR_EPSILON,
    max_attempts: int = DEFAULT_REPAIR_MAX_ATTEMPTS,
) -> MultiPolygon:
    """Union polygons of one class into a coverage set.

    Args:
        polygons: Land or water polygons.
        diagnostics: Sink for ``boolean_repair_failed`` events.
        epsilon: Initial union-trick distance in degrees.
        max_attempts: Union-trick retry count.

    Returns:
        The union as a ``MultiPolygon`` (empty when nothing survives).
    """
    from shapely.errors import GEOSException
    from shapely.ops import unary_union

    operands: list[tuple[str, MultiPolygon]] = []
    for source in sorted(polygons, key=lambda p: p.polygon_id):
        repaired = repair_geometry(source.geometry, epsilon=epsilon, max_attempts=max_attempts)
        if repaired is None:
            _report_failure(diagnostics, source.polygon_id, "input could not be repaired")
            continue
        operands.append((source.polygon_id, repaired))

    if not operands:
        return to_multipolygon(None)

    try:
        merged = unary_union([geom for _, geom in operands])
        if merged.is_valid:
            return to_multipolygon(merged)
        logger.warning("Cascaded union produced invalid output, folding pairwise")
    except GEOSException as exc:
        logger.warning("Cascaded union failed, folding pairwise | error=%s", exc)

    return _fold_union(operands, diagnostics, epsilon=epsilon, max_attempts=max_attempts)


def _fold_union(
    operands: list[tuple[str, MultiPolygon]],
    diagnostics: DiagnosticsSink,
    *,
    epsilon: float,
    max_attempts: int,
) -> MultiPolygon:
    accumulated = to_multipolygon(None)
    for polygon_id, geom in operands:
        merged = _robust_binary(
            _union, accumulated, geom, epsilon=epsilon, max_attempts=max_attempts
        )
        if merged is None:
            _report_failure(diagnostics, polygon_id, "union failed after repair")
            continue
        accumulated = merged
    return accumulated


def subtract(
    land: MultiPolygon,
    water: MultiPolygon,
    diagnostics: DiagnosticsSink,
    *,
    epsilon: float = DEFAULT_REPAIR_EPSILON,
    max_attempts: int = DEFAULT_REPAIR_MAX_ATTEMPTS,
) -> MultiPolygon:
    """Compute ``land − water``.

    An empty water set returns ``land`` unchanged.  If the whole-coverage
    difference cannot be computed, each land part is differenced on its
    own and parts that still fail are dropped and reported.
    """
    if water.is_empty:
        logger.debug("No water bodies to subtract")
        return land

    result = _robust_binary(_difference, land, water, epsilon=epsilon, max_attempts=max_attempts)
    if result is not None:
        return result

    logger.warning("Coverage difference failed, subtracting per land part")
    kept: list[Polygon] = []
    for i, part in enumerate(polygon_parts(land)):
        part_result = _robust_binary(
            _difference, part, water, epsilon=epsilon, max_attempts=max_attempts
        )
        if part_result is None:
            _report_failure(diagnostics, f"land#{i}", "difference failed after repair")
            continue
        kept.extend(polygon_parts(part_result))
    return _from_parts(kept)


def intersect(
    coverage: MultiPolygon,
    mask: BaseGeometry,
    diagnostics: DiagnosticsSink,
    *,
    epsilon: float = DEFAULT_REPAIR_EPSILON,
    max_attempts: int = DEFAULT_REPAIR_MAX_ATTEMPTS,
) -> MultiPolygon:
    """Clip ``coverage`` to ``mask``; on failure the coverage is returned unclipped."""
    result = _robust_binary(
        _intersection, coverage, mask, epsilon=epsilon, max_attempts=max_attempts
    )
    if result is None:
        _report_failure(diagnostics, "clip", "intersection failed, coverage left unclipped")
        return coverage
    return result


def _from_parts(parts: list[Polygon]) -> MultiPolygon:
    from shapely.geometry import MultiPolygon

    return MultiPolygon(parts)


def _report_failure(diagnostics: DiagnosticsSink, polygon_id: str, detail: str) -> None:
    logger.debug("Boolean repair failed | polygon=%s | %s", polygon_id, detail)
    diagnostics.record(
        Diagnostic(
            kind=DiagnosticKind.BOOLEAN_REPAIR_FAILED,
            stage=STAGE,
            polygon_id=polygon_id,
            detail=detail,
        )
    )
