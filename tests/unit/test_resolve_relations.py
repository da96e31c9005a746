"""Tests for the relation resolution activity.

Covers:
- Outer/inner grouping into polygons with holes
- Structural (even-odd) nesting: islands in lakes, ponds on islands
- Advisory roles: orphaned holes and role mismatches
- Unresolved members and empty relations
"""

from __future__ import annotations

import pytest

from osm_landmass.activities.resolve_relations import (
    closed_fragments_to_rings,
    resolve_relation,
    resolve_relations,
)
from osm_landmass.core.diagnostics import DiagnosticKind, DiagnosticsSink
from osm_landmass.models.fragment import FeatureClass, Fragment, MemberRole
from osm_landmass.models.relation import Relation


def _square(x0: float, y0: float, size: float) -> list[tuple[float, float]]:
    x1, y1 = x0 + size, y0 + size
    return [(x0, y0), (x1, y0), (x1, y1), (x0, y1), (x0, y0)]


def _member(fid: int, points: list[tuple[float, float]], role: MemberRole) -> Fragment:
    return Fragment(
        fragment_id=fid,
        points=tuple(points),
        feature_class=FeatureClass.WATER,
        role=role,
        source_id=f"way/{fid}",
    )


def _relation(rid: int, members: list[Fragment], missing: list[int] | None = None) -> Relation:
    return Relation(
        relation_id=rid,
        feature_class=FeatureClass.WATER,
        members=members,
        missing_member_ids=missing or [],
    )


class TestOuterInner:
    """Basic multipolygon resolution."""

    def test_lake_with_island(self, diagnostics: DiagnosticsSink) -> None:
        relation = _relation(
            100,
            [
                _member(1, _square(0, 0, 10), MemberRole.OUTER),
                _member(2, _square(2, 2, 2), MemberRole.INNER),
            ],
        )
        polygons = resolve_relation(relation, diagnostics)
        assert len(polygons) == 1
        polygon = polygons[0]
        assert polygon.polygon_id == "relation/100#0"
        assert polygon.feature_class == FeatureClass.WATER
        assert polygon.hole_count == 1
        assert polygon.geometry.area == pytest.approx(96.0)
        assert len(diagnostics) == 0

    def test_outer_split_across_ways(self, diagnostics: DiagnosticsSink) -> None:
        relation = _relation(
            101,
            [
                _member(1, [(0, 0), (10, 0), (10, 10)], MemberRole.OUTER),
                _member(2, [(0, 0), (0, 10), (10, 10)], MemberRole.OUTER),
            ],
        )
        polygons = resolve_relation(relation, diagnostics)
        assert len(polygons) == 1
        assert polygons[0].geometry.area == pytest.approx(100.0)

    def test_untagged_role_treated_as_outer(self, diagnostics: DiagnosticsSink) -> None:
        relation = _relation(102, [_member(1, _square(0, 0, 1), MemberRole.UNKNOWN)])
        polygons = resolve_relation(relation, diagnostics)
        assert len(polygons) == 1
        assert polygons[0].hole_count == 0

    def test_two_disjoint_outers(self, diagnostics: DiagnosticsSink) -> None:
        relation = _relation(
            103,
            [
                _member(1, _square(0, 0, 1), MemberRole.OUTER),
                _member(2, _square(5, 5, 2), MemberRole.OUTER),
            ],
        )
        polygons = resolve_relation(relation, diagnostics)
        assert [p.polygon_id for p in polygons] == ["relation/103#0", "relation/103#1"]
        assert polygons[0].geometry.area == pytest.approx(4.0)


class TestStructuralNesting:
    """Nesting comes from containment, not from roles."""

    def test_pond_on_island_in_lake(self, diagnostics: DiagnosticsSink) -> None:
        relation = _relation(
            200,
            [
                _member(1, _square(0, 0, 10), MemberRole.OUTER),
                _member(2, _square(2, 2, 6), MemberRole.INNER),
                _member(3, _square(3, 3, 4), MemberRole.OUTER),
                _member(4, _square(4, 4, 2), MemberRole.INNER),
            ],
        )
        polygons = resolve_relation(relation, diagnostics)
        assert len(polygons) == 2
        assert all(p.hole_count == 1 for p in polygons)
        assert polygons[0].geometry.area == pytest.approx(100.0 - 36.0)
        assert polygons[1].geometry.area == pytest.approx(16.0 - 4.0)
        assert len(diagnostics) == 0

    def test_outer_inside_outer_becomes_hole(self, diagnostics: DiagnosticsSink) -> None:
        relation = _relation(
            201,
            [
                _member(1, _square(0, 0, 10), MemberRole.OUTER),
                _member(2, _square(2, 2, 2), MemberRole.OUTER),
            ],
        )
        polygons = resolve_relation(relation, diagnostics)
        assert len(polygons) == 1
        assert polygons[0].hole_count == 1
        mismatches = diagnostics.of_kind(DiagnosticKind.ROLE_MISMATCH)
        assert len(mismatches) == 1
        assert mismatches[0].ring_id == "ring:2"

    def test_orphaned_inner_kept_as_shell(self, diagnostics: DiagnosticsSink) -> None:
        relation = _relation(
            202,
            [
                _member(1, _square(0, 0, 1), MemberRole.OUTER),
                _member(2, _square(5, 5, 1), MemberRole.INNER),
            ],
        )
        polygons = resolve_relation(relation, diagnostics)
        assert len(polygons) == 2
        assert all(p.hole_count == 0 for p in polygons)
        orphans = diagnostics.of_kind(DiagnosticKind.ORPHANED_HOLE)
        assert len(orphans) == 1
        assert orphans[0].relation_id == 202
        assert orphans[0].fragment_ids == (2,)

    def test_input_order_irrelevant(self) -> None:
        members = [
            _member(1, _square(0, 0, 10), MemberRole.OUTER),
            _member(2, _square(2, 2, 2), MemberRole.INNER),
        ]
        forward = resolve_relation(_relation(1, members), DiagnosticsSink())
        backward = resolve_relation(_relation(1, members[::-1]), DiagnosticsSink())
        assert [p.geometry.equals(q.geometry) for p, q in zip(forward, backward, strict=True)] == [
            True
        ]


class TestDegradedRelations:
    """Relations missing data degrade with diagnostics."""

    def test_unresolved_members_reported(self, diagnostics: DiagnosticsSink) -> None:
        relation = _relation(300, [_member(1, _square(0, 0, 1), MemberRole.OUTER)], [7, 8])
        polygons = resolve_relation(relation, diagnostics)
        assert len(polygons) == 1
        events = diagnostics.of_kind(DiagnosticKind.UNRESOLVED_MEMBER)
        assert len(events) == 1
        assert events[0].fragment_ids == (7, 8)

    def test_relation_with_only_open_members(self, diagnostics: DiagnosticsSink) -> None:
        relation = _relation(301, [_member(1, [(0, 0), (1, 0), (1, 1)], MemberRole.OUTER)])
        assert resolve_relation(relation, diagnostics) == []
        assert len(diagnostics.of_kind(DiagnosticKind.OPEN_RING)) == 1
        empty = diagnostics.of_kind(DiagnosticKind.EMPTY_RELATION)
        assert len(empty) == 1
        assert empty[0].relation_id == 301


class TestBatchResolution:
    """Resolving many relations and free-standing areas."""

    def test_relations_resolved_in_id_order(self, diagnostics: DiagnosticsSink) -> None:
        relations = [
            _relation(9, [_member(1, _square(0, 0, 1), MemberRole.OUTER)]),
            _relation(3, [_member(2, _square(5, 5, 1), MemberRole.OUTER)]),
        ]
        polygons = resolve_relations(relations, diagnostics)
        assert [p.polygon_id for p in polygons] == ["relation/3#0", "relation/9#0"]

    def test_closed_fragments_to_rings_ignores_open_ways(
        self, diagnostics: DiagnosticsSink
    ) -> None:
        fragments = [
            _member(1, _square(0, 0, 1), MemberRole.UNKNOWN),
            _member(2, [(5, 5), (6, 5), (6, 6)], MemberRole.UNKNOWN),
        ]
        rings = closed_fragments_to_rings(fragments, diagnostics)
        assert [r.fragment_ids for r in rings] == [(1,)]
        assert len(diagnostics) == 0
