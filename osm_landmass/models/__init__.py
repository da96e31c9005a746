"""Data models and schemas.

Defines the data structures used throughout the pipeline:
- Feature: Decoded OSM way or relation with tags and coordinates
- Fragment: Classified line fragment owned by the ring assembler
- Ring: Closed ring with fragment provenance
- SourcePolygon: Land or water polygon entering the boolean engine
- LandmassPolygon: Final output polygon with area and index
"""

from osm_landmass.models.feature import Feature, FeatureKind, RelationMember
from osm_landmass.models.fragment import (
    FeatureClass,
    Fragment,
    MemberRole,
    point_key,
)
from osm_landmass.models.landmass import LandmassPolygon
from osm_landmass.models.polygon import SourcePolygon
from osm_landmass.models.relation import Relation
from osm_landmass.models.ring import Ring

__all__ = [
    "Feature",
    "FeatureClass",
    "FeatureKind",
    "Fragment",
    "LandmassPolygon",
    "MemberRole",
    "Relation",
    "RelationMember",
    "Ring",
    "SourcePolygon",
    "point_key",
]
