"""Bounded phase helpers for the landmass pipeline.

Each phase is a plain function over the previous phase's output that
returns a typed result contract.  The top-level pipeline in
``landmass_pipeline.py`` runs these phases in order.

Phases
------
1. **Land**: assemble coastline rings, add closed tidal areas, resolve
   land relations, close open coastline chains against the clip boundary
   when one is given.
2. **Water**: closed water areas plus resolved water relations.
3. **Combine**: union land, union water, land − water, optional clip.
4. **Build**: ordered, measured output polygons.

Land and water phases do not depend on each other.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, TypedDict

from osm_landmass.activities.assemble_rings import assemble_rings
from osm_landmass.activities.boolean_ops import subtract, to_multipolygon, union_polygons
from osm_landmass.activities.build_landmass import build_landmass
from osm_landmass.activities.clip_boundary import (
    clip_to_boundary,
    close_chains_against_boundary,
)
from osm_landmass.activities.resolve_relations import (
    closed_fragments_to_rings,
    resolve_relations,
)
from osm_landmass.models.fragment import FeatureClass
from osm_landmass.models.polygon import SourcePolygon

if TYPE_CHECKING:
    from shapely.geometry import MultiPolygon, Polygon

    from osm_landmass.activities.classify_features import ClassifiedInput
    from osm_landmass.core.config import LandmassConfig
    from osm_landmass.core.diagnostics import DiagnosticsSink
    from osm_landmass.models.landmass import LandmassPolygon

logger = logging.getLogger("osm_landmass.orchestrators.phases")


# ---------------------------------------------------------------------------
# Phase result contracts
# ---------------------------------------------------------------------------


class LandPhaseResult(TypedDict):
    """Output contract for the land phase."""

    polygons: list[SourcePolygon]
    ring_count: int
    tidal_area_count: int
    relation_polygon_count: int
    open_chain_count: int
    boundary_polygon_count: int


class WaterPhaseResult(TypedDict):
    """Output contract for the water phase."""

    polygons: list[SourcePolygon]
    area_count: int
    relation_polygon_count: int


class CombineResult(TypedDict):
    """Output contract for the combine phase."""

    land: MultiPolygon
    water: MultiPolygon
    landmass: MultiPolygon


# ---------------------------------------------------------------------------
# Phase 1: Land
# ---------------------------------------------------------------------------


def run_land_phase(
    classified: ClassifiedInput,
    diagnostics: DiagnosticsSink,
    *,
    clip: Polygon | None = None,
) -> LandPhaseResult:
    """Coastline fragments and land relations → land polygons.

    Open coastline chains are always reported.  They are closed along
    ``clip`` only when one is given; otherwise they are discarded.
    Tidal ways count only when closed on their own and never take part
    in coastline assembly or boundary closure.
    """
    assembled = assemble_rings(classified.land_fragments, diagnostics)
    polygons = [SourcePolygon.from_ring(ring) for ring in assembled.rings]

    tidal_rings = closed_fragments_to_rings(classified.tidal_areas, diagnostics)
    polygons.extend(SourcePolygon.from_ring(ring) for ring in tidal_rings)

    relation_polygons = resolve_relations(
        classified.relations_of(FeatureClass.LAND), diagnostics
    )
    polygons.extend(relation_polygons)

    boundary_polygons: list[SourcePolygon] = []
    if clip is not None and assembled.open_chains:
        boundary_polygons = close_chains_against_boundary(
            assembled.open_chains, clip, diagnostics
        )
        polygons.extend(boundary_polygons)

    logger.info(
        "Land phase complete | rings=%d | tidal_areas=%d | relation_polygons=%d | "
        "open_chains=%d | boundary_polygons=%d",
        len(assembled.rings),
        len(tidal_rings),
        len(relation_polygons),
        len(assembled.open_chains),
        len(boundary_polygons),
    )
    return LandPhaseResult(
        polygons=polygons,
        ring_count=len(assembled.rings),
        tidal_area_count=len(tidal_rings),
        relation_polygon_count=len(relation_polygons),
        open_chain_count=len(assembled.open_chains),
        boundary_polygon_count=len(boundary_polygons),
    )


# ---------------------------------------------------------------------------
# Phase 2: Water
# ---------------------------------------------------------------------------


def run_water_phase(
    classified: ClassifiedInput,
    diagnostics: DiagnosticsSink,
) -> WaterPhaseResult:
    """Closed water ways and water relations → water polygons."""
    rings = closed_fragments_to_rings(classified.water_areas, diagnostics)
    polygons = [SourcePolygon.from_ring(ring) for ring in rings]

    relation_polygons = resolve_relations(
        classified.relations_of(FeatureClass.WATER), diagnostics
    )
    polygons.extend(relation_polygons)

    logger.info(
        "Water phase complete | areas=%d | relation_polygons=%d",
        len(rings),
        len(relation_polygons),
    )
    return WaterPhaseResult(
        polygons=polygons,
        area_count=len(rings),
        relation_polygon_count=len(relation_polygons),
    )


# ---------------------------------------------------------------------------
# Phase 3: Combine
# ---------------------------------------------------------------------------


def run_combine_phase(
    land_polygons: list[SourcePolygon],
    water_polygons: list[SourcePolygon],
    config: LandmassConfig,
    diagnostics: DiagnosticsSink,
    *,
    clip: Polygon | None = None,
) -> CombineResult:
    """Union each class, subtract water from land, then clip.

    With ``config.skip_water`` the water union and the difference are
    bypassed entirely and the landmass is the land union.
    """
    repair = {"epsilon": config.repair_epsilon, "max_attempts": config.repair_max_attempts}

    land = union_polygons(land_polygons, diagnostics, **repair)
    if config.skip_water:
        water = to_multipolygon(None)
        landmass = land
    else:
        water = union_polygons(water_polygons, diagnostics, **repair)
        landmass = subtract(land, water, diagnostics, **repair)

    if clip is not None:
        landmass = clip_to_boundary(landmass, clip, diagnostics, **repair)

    logger.info(
        "Combine phase complete | land_parts=%d | water_parts=%d | landmass_parts=%d | "
        "skip_water=%s",
        len(land.geoms),
        len(water.geoms),
        len(landmass.geoms),
        config.skip_water,
    )
    return CombineResult(land=land, water=water, landmass=landmass)


# ---------------------------------------------------------------------------
# Phase 4: Build
# ---------------------------------------------------------------------------


def run_build_phase(
    landmass: MultiPolygon,
    config: LandmassConfig,
    diagnostics: DiagnosticsSink,
) -> list[LandmassPolygon]:
    return build_landmass(
        landmass,
        diagnostics,
        min_area_sqm=config.min_area_sqm,
        epsilon=config.repair_epsilon,
        max_attempts=config.repair_max_attempts,
    )
