"""Ring assembly activity.

Joins open line fragments that share endpoints into closed rings.

Algorithm
---------
1. Malformed fragments (fewer than 2 distinct points, or closed with
   fewer than 4 coordinates) are dropped and reported.  Fragments that
   are already closed become rings directly.
2. The remaining fragments go into an arena ordered by fragment id and
   an endpoint index (point key → arena slots) is built over every
   start and end point before any matching starts.
3. The lowest unconsumed fragment seeds a chain.  The tail grows by
   looking its end point up in the index, preferring a fragment that
   starts there (appended as-is) over one that ends there (appended
   reversed): stored way direction is not trusted to be consistent.
   Consumed fragments are deleted from the index so they are never
   reused.  The chain is a ring once its tail meets its own start.
4. If the tail runs out of matches, the head grows backward the same
   way, so each open chain is reported exactly once with every
   fragment it owns.  Open chains are never emitted as rings.

When more than one unconsumed fragment shares an endpoint (a data
defect), the lowest fragment id wins and the tie is reported.

Lookups are hashed, so assembly is near-linear in fragment count.
"""

from __future__ import annotations

import logging
from collections import defaultdict, deque
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

from osm_landmass.core.constants import MIN_CLOSED_RING_COORDS, MIN_FRAGMENT_POINTS
from osm_landmass.core.diagnostics import Diagnostic, DiagnosticKind
from osm_landmass.models.fragment import (
    FeatureClass,
    Fragment,
    MemberRole,
    Point,
    PointKey,
    dedupe_consecutive,
    point_key,
)
from osm_landmass.models.ring import Ring

if TYPE_CHECKING:
    from collections.abc import Iterable

    from osm_landmass.core.diagnostics import DiagnosticsSink

logger = logging.getLogger("osm_landmass.activities.assemble_rings")

STAGE = "assemble_rings"


@dataclass(frozen=True, slots=True)
class OpenChain:
    """A fragment chain that could not be closed.

    Attributes:
        points: Chain points from its head to its tail.
        fragment_ids: Fragments in chain order.
        feature_class: Classification inherited from the fragments.
    """

    points: tuple[Point, ...]
    fragment_ids: tuple[int, ...]
    feature_class: FeatureClass = FeatureClass.LAND


@dataclass(slots=True)
class AssemblyResult:
    """Output of ring assembly for one set of fragments."""

    rings: list[Ring] = field(default_factory=list)
    open_chains: list[OpenChain] = field(default_factory=list)
    dropped_count: int = 0


class EndpointIndex:
    """Point key → arena slots of unconsumed fragments touching that point."""

    def __init__(self, arena: list[Fragment]) -> None:
        self._arena = arena
        self._slots: dict[PointKey, set[int]] = defaultdict(set)
        self._consumed = [False] * len(arena)
        self._ambiguous: set[PointKey] = set()
        for slot, fragment in enumerate(arena):
            self._slots[fragment.start_key].add(slot)
            self._slots[fragment.end_key].add(slot)

    def is_consumed(self, slot: int) -> bool:
        return self._consumed[slot]

    def consume(self, slot: int) -> Fragment:
        """Mark a fragment used and remove it from both of its endpoints."""
        self._consumed[slot] = True
        fragment = self._arena[slot]
        for key in (fragment.start_key, fragment.end_key):
            slots = self._slots.get(key)
            if slots is None:
                continue
            slots.discard(slot)
            if not slots:
                del self._slots[key]
        return fragment

    def candidates(self, key: PointKey) -> list[int]:
        """Unconsumed slots touching ``key``, lowest first."""
        return sorted(self._slots.get(key, ()))

    def first_ambiguity(self, key: PointKey) -> bool:
        """True the first time ``key`` is seen with several candidates."""
        if key in self._ambiguous:
            return False
        self._ambiguous.add(key)
        return True


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def assemble_rings(
    fragments: Iterable[Fragment],
    diagnostics: DiagnosticsSink,
    *,
    relation_id: int | None = None,
) -> AssemblyResult:
    """Assemble fragments of one classification into closed rings.

    Args:
        fragments: Fragments to join.  Order is irrelevant; ids decide.
        diagnostics: Sink receiving malformed, ambiguous, open and
            degenerate events.
        relation_id: Owning relation, attached to diagnostics.

    Returns:
        Closed rings plus the open chains that could not be closed.
    """
    result = AssemblyResult()
    arena: list[Fragment] = []

    for fragment in sorted(fragments, key=lambda f: f.fragment_id):
        cleaned = _clean_fragment(fragment, diagnostics, relation_id)
        if cleaned is None:
            result.dropped_count += 1
            continue
        if cleaned.is_closed:
            _accept_ring(
                list(cleaned.points),
                [cleaned.fragment_id],
                cleaned.feature_class,
                cleaned.role,
                result,
                diagnostics,
                relation_id,
            )
        else:
            arena.append(cleaned)

    index = EndpointIndex(arena)
    for slot in range(len(arena)):
        if not index.is_consumed(slot):
            _grow_chain(slot, arena, index, result, diagnostics, relation_id)

    logger.debug(
        "Ring assembly | relation=%s | fragments=%d | rings=%d | open=%d | dropped=%d",
        relation_id,
        len(arena) + len(result.rings),
        len(result.rings),
        len(result.open_chains),
        result.dropped_count,
    )
    return result


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _clean_fragment(
    fragment: Fragment,
    diagnostics: DiagnosticsSink,
    relation_id: int | None,
) -> Fragment | None:
    """Collapse repeated points; drop fragments too short to use."""
    points = dedupe_consecutive(fragment.points)
    reason = ""
    if len(points) < MIN_FRAGMENT_POINTS:
        reason = f"fewer than {MIN_FRAGMENT_POINTS} distinct points"
    elif point_key(points[0]) == point_key(points[-1]) and len(points) < MIN_CLOSED_RING_COORDS:
        reason = f"closed with fewer than {MIN_CLOSED_RING_COORDS} coordinates"

    if reason:
        diagnostics.record(
            Diagnostic(
                kind=DiagnosticKind.MALFORMED_FRAGMENT,
                stage=STAGE,
                fragment_ids=(fragment.fragment_id,),
                endpoint=fragment.points[0] if fragment.points else None,
                relation_id=relation_id,
                detail=reason,
            )
        )
        return None
    if len(points) == len(fragment.points):
        return fragment
    return replace(fragment, points=tuple(points))


def _pick(
    key: PointKey,
    arena: list[Fragment],
    index: EndpointIndex,
    *,
    at_tail: bool,
    diagnostics: DiagnosticsSink,
    relation_id: int | None,
) -> tuple[int, bool] | None:
    """Choose the next fragment at ``key``.

    Returns ``(slot, flip)`` where ``flip`` means the fragment must be
    reversed to continue the chain, or ``None`` if nothing matches.
    """
    slots = index.candidates(key)
    if not slots:
        return None

    if len(slots) > 1 and index.first_ambiguity(key):
        diagnostics.record(
            Diagnostic(
                kind=DiagnosticKind.AMBIGUOUS_ENDPOINT,
                stage=STAGE,
                fragment_ids=tuple(arena[s].fragment_id for s in slots),
                endpoint=_key_to_point(key, arena[slots[0]]),
                relation_id=relation_id,
                detail=f"{len(slots)} candidates, lowest id chosen",
            )
        )

    # At the tail a forward fragment starts at key; at the head it ends there.
    for slot in slots:
        fragment = arena[slot]
        forward_key = fragment.start_key if at_tail else fragment.end_key
        if forward_key == key:
            return slot, False
    return slots[0], True


def _grow_chain(
    seed: int,
    arena: list[Fragment],
    index: EndpointIndex,
    result: AssemblyResult,
    diagnostics: DiagnosticsSink,
    relation_id: int | None,
) -> None:
    first = index.consume(seed)
    points: deque[Point] = deque(first.points)
    ids: deque[int] = deque([first.fragment_id])
    start_key = first.start_key
    closed = False

    while True:
        tail_key = point_key(points[-1])
        if tail_key == start_key:
            closed = True
            break
        picked = _pick(
            tail_key, arena, index, at_tail=True, diagnostics=diagnostics, relation_id=relation_id
        )
        if picked is None:
            break
        slot, flip = picked
        fragment = index.consume(slot)
        sequence = fragment.points[::-1] if flip else fragment.points
        points.extend(sequence[1:])
        ids.append(fragment.fragment_id)

    if not closed:
        while True:
            head_key = point_key(points[0])
            picked = _pick(
                head_key,
                arena,
                index,
                at_tail=False,
                diagnostics=diagnostics,
                relation_id=relation_id,
            )
            if picked is None:
                break
            slot, flip = picked
            fragment = index.consume(slot)
            sequence = fragment.points[::-1] if flip else fragment.points
            points.extendleft(reversed(sequence[:-1]))
            ids.appendleft(fragment.fragment_id)
            if point_key(points[0]) == point_key(points[-1]):
                closed = True
                break

    if closed:
        _accept_ring(
            list(points), list(ids), first.feature_class, first.role, result, diagnostics, relation_id
        )
        return

    chain = OpenChain(
        points=tuple(points),
        fragment_ids=tuple(ids),
        feature_class=first.feature_class,
    )
    result.open_chains.append(chain)
    diagnostics.record(
        Diagnostic(
            kind=DiagnosticKind.OPEN_RING,
            stage=STAGE,
            fragment_ids=chain.fragment_ids,
            endpoint=chain.points[-1],
            relation_id=relation_id,
        )
    )


def _accept_ring(
    points: list[Point],
    fragment_ids: list[int],
    feature_class: FeatureClass,
    role: MemberRole,
    result: AssemblyResult,
    diagnostics: DiagnosticsSink,
    relation_id: int | None,
) -> None:
    # Closure is decided on keys; make it exact on floats too.
    points[-1] = points[0]
    ring = Ring(
        points=tuple(points),
        fragment_ids=tuple(fragment_ids),
        feature_class=feature_class,
        role=role,
    )
    if ring.is_degenerate:
        diagnostics.record(
            Diagnostic(
                kind=DiagnosticKind.DEGENERATE_RING,
                stage=STAGE,
                fragment_ids=ring.fragment_ids,
                endpoint=ring.points[0],
                relation_id=relation_id,
                detail=f"distinct_points={ring.distinct_point_count} area={ring.area:.3e}",
            )
        )
        return
    result.rings.append(ring)


def _key_to_point(key: PointKey, fragment: Fragment) -> Point:
    """Return the fragment's actual coordinate at ``key``."""
    if fragment.start_key == key:
        return fragment.points[0]
    return fragment.points[-1]
