"""Data model for a classified polygon entering the boolean engine.

Rings and resolved relations become ``SourcePolygon``s: a shapely
``Polygon`` (shell plus holes) with a stable id and its classification.
The id orders the boolean combination so diagnostics are reproducible.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from osm_landmass.models.fragment import FeatureClass

if TYPE_CHECKING:
    from shapely.geometry import Polygon

    from osm_landmass.models.ring import Ring


@dataclass(frozen=True, slots=True)
class SourcePolygon:
    """A land or water polygon with provenance.

    Attributes:
        polygon_id: Stable id, e.g. ``"way/12"``, ``"ring:3+7"`` or
            ``"relation/40#1"``.
        geometry: Shapely polygon, possibly with holes.
        feature_class: ``land`` or ``water``.
    """

    polygon_id: str
    geometry: Polygon
    feature_class: FeatureClass = FeatureClass.LAND

    @classmethod
    def from_ring(cls, ring: Ring, *, polygon_id: str = "") -> SourcePolygon:
        return cls(
            polygon_id=polygon_id or ring.ring_id,
            geometry=ring.to_polygon(),
            feature_class=ring.feature_class,
        )

    @property
    def hole_count(self) -> int:
        return len(self.geometry.interiors)
