"""Data model for a classified line fragment.

A Fragment is one way's coordinate sequence after classification.  It is
owned by the ring assembler until it is absorbed into a ring (or left
over in an open chain) and is never mutated.

Endpoint identity uses fixed-point integer keys so that fragments
produced by different ways match exactly, with no float drift.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from osm_landmass.core.constants import COORD_SCALE, ROLE_INNER, ROLE_OUTER

Point = tuple[float, float]
PointKey = tuple[int, int]


class FeatureClass(StrEnum):
    """What a feature contributes to the landmass."""

    LAND = "land"
    WATER = "water"
    IRRELEVANT = "irrelevant"


class MemberRole(StrEnum):
    """Role of a ring within a multi-part relation."""

    OUTER = "outer"
    INNER = "inner"
    UNKNOWN = "unknown"

    @classmethod
    def from_osm(cls, role: str) -> MemberRole:
        if role == ROLE_OUTER:
            return cls.OUTER
        if role == ROLE_INNER:
            return cls.INNER
        return cls.UNKNOWN


def point_key(point: Point) -> PointKey:
    """Fixed-point key for endpoint matching (7 decimal places)."""
    return (round(point[0] * COORD_SCALE), round(point[1] * COORD_SCALE))


def dedupe_consecutive(points: list[Point] | tuple[Point, ...]) -> list[Point]:
    """Drop points whose key equals the previous point's key."""
    result: list[Point] = []
    last_key: PointKey | None = None
    for point in points:
        key = point_key(point)
        if key != last_key:
            result.append(point)
            last_key = key
    return result


@dataclass(frozen=True, slots=True)
class Fragment:
    """A directed line fragment with a classification.

    Attributes:
        fragment_id: Stable id (the source way id); also the assembly
            tie-break order.
        points: Ordered ``(lon, lat)`` points.
        feature_class: ``land``, ``water`` or ``irrelevant``.
        role: Relation role; ``unknown`` for free-standing ways.
        source_id: Element reference for diagnostics (e.g. ``"way/42"``).
    """

    fragment_id: int
    points: tuple[Point, ...]
    feature_class: FeatureClass = FeatureClass.LAND
    role: MemberRole = MemberRole.UNKNOWN
    source_id: str = ""

    @property
    def start_key(self) -> PointKey:
        return point_key(self.points[0])

    @property
    def end_key(self) -> PointKey:
        return point_key(self.points[-1])

    @property
    def is_closed(self) -> bool:
        return len(self.points) >= 2 and self.start_key == self.end_key

    def reversed(self) -> Fragment:
        return Fragment(
            fragment_id=self.fragment_id,
            points=tuple(reversed(self.points)),
            feature_class=self.feature_class,
            role=self.role,
            source_id=self.source_id,
        )
