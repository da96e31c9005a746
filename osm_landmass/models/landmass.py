"""Data model for a final landmass polygon.

A LandmassPolygon is one polygon of the final coverage plus its
computed attributes.  This is the output of the ``build_landmass``
activity and the input to the GeoJSON encoder.

Units are explicit: ``planar_area`` is square degrees (the raw
longitude/latitude plane), ``area_sqm`` is geodesic square metres on
the WGS 84 ellipsoid.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from shapely.geometry import Polygon


@dataclass(frozen=True, slots=True)
class LandmassPolygon:
    """A polygon of the output coverage.

    Attributes:
        geometry: Shapely polygon, exterior CCW and holes CW (RFC 7946).
        area_sqm: Geodesic area in square metres, holes subtracted.
        planar_area: Planar area in square degrees, holes subtracted.
        index: Zero-based position in descending-area order.
        feature_type: Output category (``"landmass"``, ``"land"``, ``"water"``).
    """

    geometry: Polygon
    area_sqm: float
    planar_area: float
    index: int
    feature_type: str = "landmass"

    @property
    def hole_count(self) -> int:
        return len(self.geometry.interiors)

    def to_geojson_feature(self) -> dict[str, object]:
        """Serialise as a GeoJSON ``Feature`` dict."""
        from shapely.geometry import mapping

        return {
            "type": "Feature",
            "geometry": mapping(self.geometry),
            "properties": {
                "feature_type": self.feature_type,
                "area_sqm": self.area_sqm,
                "index": self.index,
            },
        }
