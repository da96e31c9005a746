"""Data model for a closed ring assembled from fragments.

A Ring is a closed ordered point sequence (first == last) with no two
consecutive points equal.  Orientation is implied by point order.  The
ring remembers which fragments it was built from so diagnostics can
point back at the source ways.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from osm_landmass.core.constants import MIN_DISTINCT_RING_POINTS, MIN_RING_AREA_DEG2
from osm_landmass.models.fragment import FeatureClass, MemberRole, Point, point_key

if TYPE_CHECKING:
    from shapely.geometry import Polygon


@dataclass(frozen=True, slots=True)
class Ring:
    """A closed ring.

    Attributes:
        points: Closed ``(lon, lat)`` sequence, first == last.
        fragment_ids: Ids of the fragments that composed the ring, in
            assembly order.
        feature_class: Classification inherited from the fragments.
        role: Declared relation role of the fragments.
    """

    points: tuple[Point, ...]
    fragment_ids: tuple[int, ...] = ()
    feature_class: FeatureClass = FeatureClass.LAND
    role: MemberRole = MemberRole.UNKNOWN

    @property
    def ring_id(self) -> str:
        """Stable identifier derived from provenance, e.g. ``"ring:3+7+9"``."""
        return "ring:" + "+".join(str(fid) for fid in self.fragment_ids)

    @property
    def distinct_point_count(self) -> int:
        return len({point_key(p) for p in self.points})

    @property
    def signed_area(self) -> float:
        """Shoelace area in square degrees; positive when counter-clockwise."""
        total = 0.0
        pts = self.points
        for i in range(len(pts) - 1):
            x1, y1 = pts[i]
            x2, y2 = pts[i + 1]
            total += x1 * y2 - x2 * y1
        return total / 2.0

    @property
    def area(self) -> float:
        return abs(self.signed_area)

    @property
    def is_ccw(self) -> bool:
        return self.signed_area > 0

    @property
    def is_degenerate(self) -> bool:
        return (
            self.distinct_point_count < MIN_DISTINCT_RING_POINTS
            or self.area < MIN_RING_AREA_DEG2
        )

    def to_polygon(self) -> Polygon:
        """Shapely polygon bounded by this ring (no holes)."""
        from shapely.geometry import Polygon

        return Polygon(self.points)
