"""Landmass pipeline orchestrator.

Coordinates the pipeline for one extract:

1. Classify decoded features (single pass over the feature stream)
2. Land phase: coastline rings, land relations, boundary closure
3. Water phase: closed water areas, water relations
4. Combine: union land, union water, land − water, optional clip
5. Build: ordered ``LandmassPolygon``s

Recoverable problems land in the ``DiagnosticsSink`` the caller passes
in.  The only fatal condition raised here is ``NoLandError``: an extract
with no land polygon at all has nothing to emit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from osm_landmass.activities.build_landmass import geodesic_area_sqm
from osm_landmass.activities.classify_features import split_features
from osm_landmass.core.constants import SQ_METRES_PER_SQ_KM
from osm_landmass.core.exceptions import PermanentError
from osm_landmass.orchestrators.phases import (
    run_build_phase,
    run_combine_phase,
    run_land_phase,
    run_water_phase,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from shapely.geometry import MultiPolygon, Polygon

    from osm_landmass.core.config import LandmassConfig
    from osm_landmass.core.diagnostics import DiagnosticsSink
    from osm_landmass.models.feature import Feature
    from osm_landmass.models.landmass import LandmassPolygon
    from osm_landmass.models.polygon import SourcePolygon

logger = logging.getLogger("osm_landmass.orchestrators.landmass_pipeline")


class NoLandError(PermanentError):
    """Raised when an extract yields no valid land polygon."""

    default_stage = "landmass_pipeline"
    default_code = "NO_LAND"


@dataclass(slots=True)
class GeometryStats:
    """Polygon counts and geodesic areas (m²) for one run."""

    land_polygons: int = 0
    land_area_sqm: float = 0.0
    water_polygons: int = 0
    water_area_sqm: float = 0.0
    landmass_polygons: int = 0
    landmass_area_sqm: float = 0.0

    @property
    def water_removed_sqm(self) -> float:
        """Land area lost to water subtraction and clipping."""
        return max(self.land_area_sqm - self.landmass_area_sqm, 0.0)

    def to_dict(self) -> dict[str, object]:
        return {
            "land_polygons": self.land_polygons,
            "land_area_sqm": self.land_area_sqm,
            "water_polygons": self.water_polygons,
            "water_area_sqm": self.water_area_sqm,
            "landmass_polygons": self.landmass_polygons,
            "landmass_area_sqm": self.landmass_area_sqm,
        }

    def log_summary(self) -> None:
        logger.info("Geometry statistics:")
        logger.info(
            "  land:     %d polygon(s), %.2f km²",
            self.land_polygons,
            self.land_area_sqm / SQ_METRES_PER_SQ_KM,
        )
        logger.info(
            "  water:    %d polygon(s), %.2f km²",
            self.water_polygons,
            self.water_area_sqm / SQ_METRES_PER_SQ_KM,
        )
        logger.info(
            "  landmass: %d polygon(s), %.2f km² (%.2f km² removed)",
            self.landmass_polygons,
            self.landmass_area_sqm / SQ_METRES_PER_SQ_KM,
            self.water_removed_sqm / SQ_METRES_PER_SQ_KM,
        )


@dataclass(slots=True)
class LandmassResult:
    """Everything one run produces.

    Attributes:
        polygons: Output polygons in index order.
        land: Land coverage before water subtraction (debug output).
        water: Water coverage (empty when water was skipped).
        stats: Counts and areas for the summary log.
    """

    polygons: list[LandmassPolygon]
    land: MultiPolygon
    water: MultiPolygon
    stats: GeometryStats = field(default_factory=GeometryStats)


def run_pipeline(
    features: Iterable[Feature],
    config: LandmassConfig,
    diagnostics: DiagnosticsSink,
    *,
    clip: Polygon | None = None,
    correlation_id: str = "",
) -> LandmassResult:
    """Build the landmass for one extract.

    Args:
        features: Decoded feature stream, consumed once.
        config: Pipeline configuration.
        diagnostics: Sink for recoverable problems.
        clip: Optional extract boundary.  When given, open coastline is
            closed along it and the result is clipped to it.
        correlation_id: Run identifier for error payloads.

    Returns:
        The ordered output polygons plus intermediate coverages and stats.

    Raises:
        NoLandError: If no land polygon survives the land phase.
    """
    logger.info(
        "Pipeline started | correlation_id=%s | include_tidal=%s | skip_water=%s | clip=%s",
        correlation_id,
        config.include_tidal,
        config.skip_water,
        clip is not None,
    )

    classified = split_features(features, config)

    land_phase = run_land_phase(classified, diagnostics, clip=clip)
    if not land_phase["polygons"]:
        msg = "No land polygons could be built from the input"
        raise NoLandError(msg, correlation_id=correlation_id)

    water_polygons: list[SourcePolygon] = []
    if not config.skip_water:
        water_polygons = run_water_phase(classified, diagnostics)["polygons"]

    combined = run_combine_phase(
        land_phase["polygons"], water_polygons, config, diagnostics, clip=clip
    )
    if combined["land"].is_empty:
        msg = "Land polygons were all lost to geometry repair"
        raise NoLandError(msg, correlation_id=correlation_id)

    polygons = run_build_phase(combined["landmass"], config, diagnostics)

    stats = GeometryStats(
        land_polygons=len(combined["land"].geoms),
        land_area_sqm=geodesic_area_sqm(combined["land"]),
        water_polygons=len(combined["water"].geoms),
        water_area_sqm=geodesic_area_sqm(combined["water"]),
        landmass_polygons=len(polygons),
        landmass_area_sqm=sum(p.area_sqm for p in polygons),
    )
    logger.info(
        "Pipeline completed | correlation_id=%s | polygons=%d | diagnostics=%d",
        correlation_id,
        len(polygons),
        len(diagnostics),
    )
    return LandmassResult(
        polygons=polygons,
        land=combined["land"],
        water=combined["water"],
        stats=stats,
    )
