"""OSM PBF decoder activity.

Reads a binary ``.osm.pbf`` extract with pyosmium and produces the same
``Feature`` stream as the XML decoder.  Node locations are resolved by
osmium's location index (``locations=True``); way coordinates are kept
in memory so relation members, which follow the ways in a sorted
extract, can be resolved.

pyosmium's handler is callback driven, so the whole file is decoded
before the first feature is handed on.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import osmium

from osm_landmass.activities.read_osm import OsmDecodeError
from osm_landmass.models.feature import Feature, FeatureKind, RelationMember

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

logger = logging.getLogger("osm_landmass.activities.read_pbf")

_WAY_MEMBER = "w"


class FeatureHandler(osmium.SimpleHandler):
    """Collects tagged ways and relations as ``Feature`` objects.

    osmium objects are only valid inside the callback, so everything
    kept is copied into plain Python values.
    """

    def __init__(self) -> None:
        osmium.SimpleHandler.__init__(self)
        self.features: list[Feature] = []
        self.way_coords: dict[int, list[tuple[float, float]]] = {}
        self.way_count = 0
        self.relation_count = 0
        self.incomplete_way_count = 0

    def way(self, w: osmium.osm.Way) -> None:
        self.way_count += 1
        coords = self._coords(w)
        self.way_coords[w.id] = coords
        tags = {tag.k: tag.v for tag in w.tags}
        if not tags:
            return
        self.features.append(
            Feature(osm_id=w.id, kind=FeatureKind.WAY, tags=tags, coords=coords)
        )

    def relation(self, r: osmium.osm.Relation) -> None:
        self.relation_count += 1
        members = [
            RelationMember(
                way_id=member.ref,
                role=member.role,
                coords=self.way_coords.get(member.ref, []),
            )
            for member in r.members
            if member.type == _WAY_MEMBER
        ]
        self.features.append(
            Feature(
                osm_id=r.id,
                kind=FeatureKind.RELATION,
                tags={tag.k: tag.v for tag in r.tags},
                members=members,
            )
        )

    def _coords(self, w: osmium.osm.Way) -> list[tuple[float, float]]:
        """Way coordinates; empty if any node location is missing."""
        coords: list[tuple[float, float]] = []
        for node in w.nodes:
            location = node.location
            if not location.valid():
                self.incomplete_way_count += 1
                return []
            coords.append((location.lon, location.lat))
        return coords


def read_pbf_features(path: Path) -> Iterator[Feature]:
    """Yield every tagged way and every relation in a PBF extract.

    Raises:
        OsmDecodeError: If the file is missing or not a readable PBF.
    """
    handler = FeatureHandler()
    try:
        handler.apply_file(str(path), locations=True)
    except (RuntimeError, OSError, ValueError) as exc:
        msg = f"Cannot decode OSM PBF {path}: {exc}"
        raise OsmDecodeError(msg) from exc

    logger.info(
        "OSM PBF decoded | path=%s | ways=%d | relations=%d | incomplete_ways=%d",
        path.name,
        handler.way_count,
        handler.relation_count,
        handler.incomplete_way_count,
    )
    yield from handler.features
