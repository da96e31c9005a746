"""Relation resolution activity.

Groups the rings of one multipolygon relation into polygons with holes.

Member ways are assembled into rings per declared role (``outer`` and
untagged members together, ``inner`` separately).  Nesting is then
resolved structurally, not from the roles: rings are ordered by area and
each ring's parent is the smallest larger ring that contains it.  Rings
at even depth are shells, rings at odd depth are holes of their parent,
so a pond on an island in a lake comes out as water again.

Roles are advisory.  An ``inner`` ring that nothing contains is reported
as an orphaned hole and kept as an independent shell; an ``outer`` ring
that ends up as a hole (or an ``inner`` one that ends up as a shell
inside another ring) is reported as a role mismatch.  Neither aborts
the relation.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from osm_landmass.activities.assemble_rings import assemble_rings
from osm_landmass.core.diagnostics import Diagnostic, DiagnosticKind
from osm_landmass.models.fragment import FeatureClass, MemberRole
from osm_landmass.models.polygon import SourcePolygon

if TYPE_CHECKING:
    from collections.abc import Iterable

    from shapely.geometry.base import BaseGeometry

    from osm_landmass.core.diagnostics import DiagnosticsSink
    from osm_landmass.models.fragment import Fragment
    from osm_landmass.models.relation import Relation
    from osm_landmass.models.ring import Ring

logger = logging.getLogger("osm_landmass.activities.resolve_relations")

STAGE = "resolve_relations"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def resolve_relation(relation: Relation, diagnostics: DiagnosticsSink) -> list[SourcePolygon]:
    """Resolve one relation into zero or more polygons with holes.

    Args:
        relation: Relation with role-tagged member fragments.
        diagnostics: Sink for assembly and nesting events.

    Returns:
        One polygon per shell ring, each carrying the holes nested
        directly inside it.  Empty if no member ring could be closed.
    """
    rid = relation.relation_id
    if relation.missing_member_ids:
        diagnostics.record(
            Diagnostic(
                kind=DiagnosticKind.UNRESOLVED_MEMBER,
                stage=STAGE,
                fragment_ids=tuple(relation.missing_member_ids),
                relation_id=rid,
                detail="member ways missing from extract",
            )
        )

    outer = assemble_rings(
        relation.members_with_role(MemberRole.OUTER, MemberRole.UNKNOWN),
        diagnostics,
        relation_id=rid,
    )
    inner = assemble_rings(
        relation.members_with_role(MemberRole.INNER),
        diagnostics,
        relation_id=rid,
    )
    rings = outer.rings + inner.rings
    if not rings:
        diagnostics.record(
            Diagnostic(
                kind=DiagnosticKind.EMPTY_RELATION,
                stage=STAGE,
                relation_id=rid,
                detail=f"no closed rings from {len(relation.members)} member(s)",
            )
        )
        return []

    polygons = nest_rings(
        rings,
        diagnostics,
        relation_id=rid,
        feature_class=relation.feature_class,
    )
    logger.debug(
        "Relation resolved | relation=%d | class=%s | rings=%d | polygons=%d",
        rid,
        relation.feature_class,
        len(rings),
        len(polygons),
    )
    return polygons


def resolve_relations(
    relations: Iterable[Relation], diagnostics: DiagnosticsSink
) -> list[SourcePolygon]:
    """Resolve every relation in ascending relation-id order."""
    polygons: list[SourcePolygon] = []
    count = 0
    for relation in sorted(relations, key=lambda r: r.relation_id):
        polygons.extend(resolve_relation(relation, diagnostics))
        count += 1
    logger.info("Relations resolved | relations=%d | polygons=%d", count, len(polygons))
    return polygons


def nest_rings(
    rings: list[Ring],
    diagnostics: DiagnosticsSink,
    *,
    relation_id: int,
    feature_class: FeatureClass = FeatureClass.WATER,
) -> list[SourcePolygon]:
    """Build polygons from rings by structural containment.

    Rings are ordered by descending area (ties by ring id) so a parent
    always precedes its children.  Containment is tested with an
    interior point of the child, which tolerates a hole touching its
    shell at a vertex.
    """
    from shapely.geometry import Polygon
    from shapely.prepared import prep

    ordered = sorted(rings, key=lambda r: (-r.area, r.ring_id))
    shapes = [_valid_shape(ring) for ring in ordered]
    prepared = [prep(shape) for shape in shapes]
    anchors = [shape.representative_point() for shape in shapes]

    parents: list[int | None] = [None] * len(ordered)
    depths = [0] * len(ordered)
    for i, ring in enumerate(ordered):
        for j in range(i - 1, -1, -1):
            if ordered[j].area <= ring.area:
                continue
            if prepared[j].contains(anchors[i]):
                parents[i] = j
                depths[i] = depths[j] + 1
                break
        _check_role(ring, parents[i], depths[i], diagnostics, relation_id)

    holes: dict[int, list[Ring]] = {}
    for i, parent in enumerate(parents):
        if depths[i] % 2 == 1 and parent is not None:
            holes.setdefault(parent, []).append(ordered[i])

    polygons: list[SourcePolygon] = []
    for i, ring in enumerate(ordered):
        if depths[i] % 2 == 1:
            continue
        geometry = Polygon(ring.points, [hole.points for hole in holes.get(i, [])])
        polygons.append(
            SourcePolygon(
                polygon_id=f"relation/{relation_id}#{len(polygons)}",
                geometry=geometry,
                feature_class=feature_class,
            )
        )
    return polygons


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _valid_shape(ring: Ring) -> BaseGeometry:
    """Ring polygon, made valid if it self-intersects, for containment tests."""
    from shapely.validation import make_valid

    shape = ring.to_polygon()
    if shape.is_valid:
        return shape
    return make_valid(shape)


def _check_role(
    ring: Ring,
    parent: int | None,
    depth: int,
    diagnostics: DiagnosticsSink,
    relation_id: int,
) -> None:
    if ring.role == MemberRole.INNER and parent is None:
        diagnostics.record(
            Diagnostic(
                kind=DiagnosticKind.ORPHANED_HOLE,
                stage=STAGE,
                fragment_ids=ring.fragment_ids,
                relation_id=relation_id,
                ring_id=ring.ring_id,
                detail="inner ring outside every outer ring, kept as shell",
            )
        )
    elif ring.role == MemberRole.INNER and depth % 2 == 0:
        diagnostics.record(
            Diagnostic(
                kind=DiagnosticKind.ROLE_MISMATCH,
                stage=STAGE,
                fragment_ids=ring.fragment_ids,
                relation_id=relation_id,
                ring_id=ring.ring_id,
                detail=f"inner ring at nesting depth {depth} treated as shell",
            )
        )
    elif ring.role == MemberRole.OUTER and depth % 2 == 1:
        diagnostics.record(
            Diagnostic(
                kind=DiagnosticKind.ROLE_MISMATCH,
                stage=STAGE,
                fragment_ids=ring.fragment_ids,
                relation_id=relation_id,
                ring_id=ring.ring_id,
                detail=f"outer ring at nesting depth {depth} treated as hole",
            )
        )


def closed_fragments_to_rings(
    fragments: Iterable[Fragment], diagnostics: DiagnosticsSink
) -> list[Ring]:
    """Rings for free-standing areas that are closed on their own.

    Unclosed water ways are usually pieces of a relation and are ignored
    here; the relation carries them.
    """
    closed = [fragment for fragment in fragments if fragment.is_closed]
    return assemble_rings(closed, diagnostics).rings
