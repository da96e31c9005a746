"""Data model for a decoded OSM feature.

A Feature is what the decoder hands to the pipeline: one way (an
ordered coordinate sequence) or one relation (member ways with their
roles and resolved coordinates), plus its tags.  This is the output of
the ``read_osm`` activity and the input to ``classify_features``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum


class FeatureKind(StrEnum):
    WAY = "way"
    RELATION = "relation"


@dataclass(frozen=True, slots=True)
class RelationMember:
    """A way referenced by a relation.

    Attributes:
        way_id: OSM id of the member way.
        role: Declared role (``"outer"``, ``"inner"`` or anything else).
        coords: Resolved ``(lon, lat)`` coordinates.  Empty when the way
            (or one of its nodes) lies outside the extract.
    """

    way_id: int
    role: str = ""
    coords: list[tuple[float, float]] = field(default_factory=list)

    @property
    def is_resolved(self) -> bool:
        return len(self.coords) > 0


@dataclass(frozen=True, slots=True)
class Feature:
    """A single decoded OSM way or relation.

    Attributes:
        osm_id: OSM element id (unique per kind).
        kind: ``way`` or ``relation``.
        tags: Tag mapping.
        coords: Way coordinates as ``(lon, lat)`` tuples (ways only).
        members: Member ways (relations only).
    """

    osm_id: int
    kind: FeatureKind = FeatureKind.WAY
    tags: dict[str, str] = field(default_factory=dict)
    coords: list[tuple[float, float]] = field(default_factory=list)
    members: list[RelationMember] = field(default_factory=list)

    @property
    def is_relation(self) -> bool:
        return self.kind == FeatureKind.RELATION

    @property
    def source_id(self) -> str:
        """Human-readable element reference, e.g. ``"way/42"``."""
        return f"{self.kind}/{self.osm_id}"
