"""OSM decoder activity.

Streams ``Feature`` objects out of an OSM extract.  Binary ``.osm.pbf``
files are handed to the pyosmium decoder in ``read_pbf``; XML extracts
(``.osm``, ``.osm.gz`` or ``.osm.bz2``) are read in one forward pass
with ``lxml.etree.iterparse``.

The file is expected in the usual element order (nodes, then ways,
then relations).  Node coordinates and way node references are kept in
memory so that ways and relation members can be resolved into
coordinates; everything else is cleared as soon as it is consumed.

A way that references a node missing from the extract yields no
coordinates.  As a relation member it is reported by the resolver as
unresolved; as a free-standing way it is dropped by the classifier.
"""

from __future__ import annotations

import bz2
import gzip
import logging
from typing import IO, TYPE_CHECKING

from osm_landmass.core.exceptions import PermanentError
from osm_landmass.models.feature import Feature, FeatureKind, RelationMember

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

    from lxml.etree import _Element

logger = logging.getLogger("osm_landmass.activities.read_osm")

_OSM_ELEMENTS = ("node", "way", "relation")

PBF_SUFFIX = ".pbf"


class OsmDecodeError(PermanentError):
    """Raised when the input cannot be read or is not well-formed OSM data."""

    default_stage = "read_osm"
    default_code = "OSM_DECODE_FAILED"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def read_osm_features(path: Path) -> Iterator[Feature]:
    """Yield every tagged way and every relation in ``path``.

    Untagged ways are not yielded; they are only kept to resolve
    relation members.  The format is chosen by file name.

    Raises:
        OsmDecodeError: If the file is missing, truncated, or not
            well-formed, or an element carries a malformed id or
            coordinate.  Raised lazily, during iteration.
    """
    if path.name.lower().endswith(PBF_SUFFIX):
        from osm_landmass.activities.read_pbf import read_pbf_features

        yield from read_pbf_features(path)
    else:
        yield from _read_xml(path)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _read_xml(path: Path) -> Iterator[Feature]:
    from lxml import etree  # type: ignore[attr-defined]

    nodes: dict[int, tuple[float, float]] = {}
    way_refs: dict[int, list[int]] = {}
    counts = {"node": 0, "way": 0, "relation": 0}

    try:
        with _open(path) as stream:
            context = etree.iterparse(
                stream,
                events=("end",),
                tag=_OSM_ELEMENTS,
                resolve_entities=False,
                no_network=True,
            )
            for _event, elem in context:
                counts[elem.tag] += 1
                feature = _decode_element(elem, nodes, way_refs)
                _release(elem)
                if feature is not None:
                    yield feature
    except etree.XMLSyntaxError as exc:
        msg = f"Malformed OSM XML in {path}: {exc}"
        raise OsmDecodeError(msg) from exc
    except (OSError, EOFError) as exc:
        msg = f"Cannot read OSM input {path}: {exc}"
        raise OsmDecodeError(msg) from exc
    except (KeyError, ValueError) as exc:
        msg = f"Malformed OSM element in {path}: {exc}"
        raise OsmDecodeError(msg) from exc

    logger.info(
        "OSM decoded | path=%s | nodes=%d | ways=%d | relations=%d",
        path.name,
        counts["node"],
        counts["way"],
        counts["relation"],
    )


def _open(path: Path) -> IO[bytes]:
    """Open ``path`` for binary reading, decompressing by suffix."""
    suffix = path.suffix.lower()
    if suffix == ".gz":
        return gzip.open(path, "rb")
    if suffix == ".bz2":
        return bz2.open(path, "rb")
    return path.open("rb")


def _decode_element(
    elem: _Element,
    nodes: dict[int, tuple[float, float]],
    way_refs: dict[int, list[int]],
) -> Feature | None:
    osm_id = int(elem.attrib["id"])

    if elem.tag == "node":
        nodes[osm_id] = (float(elem.attrib["lon"]), float(elem.attrib["lat"]))
        return None

    tags = {tag.attrib["k"]: tag.attrib["v"] for tag in elem.iterchildren("tag")}

    if elem.tag == "way":
        refs = [int(nd.attrib["ref"]) for nd in elem.iterchildren("nd")]
        way_refs[osm_id] = refs
        if not tags:
            return None
        return Feature(
            osm_id=osm_id,
            kind=FeatureKind.WAY,
            tags=tags,
            coords=_resolve(refs, nodes),
        )

    members = [
        RelationMember(
            way_id=int(member.attrib["ref"]),
            role=member.attrib.get("role", ""),
            coords=_resolve(way_refs.get(int(member.attrib["ref"]), []), nodes),
        )
        for member in elem.iterchildren("member")
        if member.attrib.get("type") == "way"
    ]
    return Feature(osm_id=osm_id, kind=FeatureKind.RELATION, tags=tags, members=members)


def _resolve(refs: list[int], nodes: dict[int, tuple[float, float]]) -> list[tuple[float, float]]:
    """Coordinates for node refs; empty if any node is missing."""
    coords: list[tuple[float, float]] = []
    for ref in refs:
        point = nodes.get(ref)
        if point is None:
            return []
        coords.append(point)
    return coords


def _release(elem: _Element) -> None:
    """Free a consumed element and the siblings already processed before it."""
    elem.clear()
    parent = elem.getparent()
    if parent is None:
        return
    while elem.getprevious() is not None:
        del parent[0]
