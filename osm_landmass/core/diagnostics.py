"""Run-level diagnostics.

Recoverable problems found while building a landmass (open coastline
chains, orphaned holes, geometry that could not be repaired) do not stop
the run.  Each stage records a ``Diagnostic`` into a ``DiagnosticsSink``
that the caller passes in explicitly; the sink is drained once at the
end of the run and summarised in a single log block.

Diagnostics are consumed by logging only, never by control flow.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from enum import StrEnum

logger = logging.getLogger("osm_landmass.core.diagnostics")


class DiagnosticKind(StrEnum):
    """Kinds of recoverable problem the pipeline reports."""

    MALFORMED_FRAGMENT = "malformed_fragment"
    AMBIGUOUS_ENDPOINT = "ambiguous_endpoint"
    OPEN_RING = "open_ring"
    DEGENERATE_RING = "degenerate_ring"
    ORPHANED_HOLE = "orphaned_hole"
    ROLE_MISMATCH = "role_mismatch"
    EMPTY_RELATION = "empty_relation"
    UNRESOLVED_MEMBER = "unresolved_member"
    BOOLEAN_REPAIR_FAILED = "boolean_repair_failed"
    DEGENERATE_DROPPED = "degenerate_dropped"
    BOUNDARY_CLOSE_FAILED = "boundary_close_failed"


@dataclass(frozen=True, slots=True)
class Diagnostic:
    """A single structured diagnostic event.

    Attributes:
        kind: What went wrong.
        stage: Pipeline stage that produced the event.
        fragment_ids: Source fragments involved (assembly events).
        endpoint: One representative ``(lon, lat)`` (assembly events).
        relation_id: Owning relation (relation events).
        ring_id: Ring identifier within a relation (relation events).
        polygon_id: Polygon identifier (boolean / output events).
        area: Area of the dropped polygon in square metres.
        detail: Free-text context for the log line.
    """

    kind: DiagnosticKind
    stage: str = ""
    fragment_ids: tuple[int, ...] = ()
    endpoint: tuple[float, float] | None = None
    relation_id: int | None = None
    ring_id: str = ""
    polygon_id: str = ""
    area: float | None = None
    detail: str = ""

    def to_dict(self) -> dict[str, object]:
        """Serialise to a dict, omitting fields the event kind does not use."""
        payload: dict[str, object] = {"kind": str(self.kind), "stage": self.stage}
        if self.fragment_ids:
            payload["fragment_ids"] = list(self.fragment_ids)
        if self.endpoint is not None:
            payload["endpoint"] = list(self.endpoint)
        if self.relation_id is not None:
            payload["relation_id"] = self.relation_id
        if self.ring_id:
            payload["ring_id"] = self.ring_id
        if self.polygon_id:
            payload["polygon_id"] = self.polygon_id
        if self.area is not None:
            payload["area"] = self.area
        if self.detail:
            payload["detail"] = self.detail
        return payload


@dataclass(slots=True)
class DiagnosticsSink:
    """Accumulates diagnostics across pipeline stages."""

    events: list[Diagnostic] = field(default_factory=list)

    def record(self, event: Diagnostic) -> None:
        """Record an event and emit it at DEBUG level."""
        self.events.append(event)
        logger.debug("diagnostic | %s", event.to_dict())

    def of_kind(self, kind: DiagnosticKind) -> list[Diagnostic]:
        return [event for event in self.events if event.kind == kind]

    def counts(self) -> dict[str, int]:
        """Event count per kind, in first-seen order."""
        return dict(Counter(str(event.kind) for event in self.events))

    def __len__(self) -> int:
        return len(self.events)

    def drain(self) -> list[Diagnostic]:
        """End of run: log one aggregated line per kind, then clear the sink.

        Returns:
            The events recorded since the sink was created or last drained.
        """
        counts = self.counts()
        drained = list(self.events)
        self.events.clear()
        if not counts:
            logger.info("Diagnostics: none")
            return drained
        logger.warning("Diagnostics: %d event(s)", len(drained))
        for kind, count in counts.items():
            logger.warning("  %s: %d", kind, count)
        return drained
