"""Shared pytest fixtures for the OSM Landmass test suite."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from osm_landmass.core.config import LandmassConfig
from osm_landmass.core.diagnostics import DiagnosticsSink

# ---------------------------------------------------------------------------
# Pipeline fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def diagnostics() -> DiagnosticsSink:
    """Return an empty diagnostics sink."""
    return DiagnosticsSink()


@pytest.fixture()
def config() -> LandmassConfig:
    """Return the default configuration."""
    return LandmassConfig()


# ---------------------------------------------------------------------------
# OSM XML fixtures
# ---------------------------------------------------------------------------

#: Unit square island: coastline ways 1 and 2 (counter-clockwise, land on
#: the left), a lake (way 3) in the middle, and an untagged road (way 4).
ISLAND_OSM = """<?xml version="1.0" encoding="UTF-8"?>
<osm version="0.6" generator="test">
  <bounds minlat="0" minlon="0" maxlat="1" maxlon="1"/>
  <node id="1" lat="0.0" lon="0.0"/>
  <node id="2" lat="0.0" lon="1.0"/>
  <node id="3" lat="1.0" lon="1.0"/>
  <node id="4" lat="1.0" lon="0.0"/>
  <node id="11" lat="0.4" lon="0.4"/>
  <node id="12" lat="0.4" lon="0.6"/>
  <node id="13" lat="0.6" lon="0.6"/>
  <node id="14" lat="0.6" lon="0.4"/>
  <way id="1">
    <nd ref="1"/><nd ref="2"/><nd ref="3"/>
    <tag k="natural" v="coastline"/>
  </way>
  <way id="2">
    <nd ref="3"/><nd ref="4"/><nd ref="1"/>
    <tag k="natural" v="coastline"/>
  </way>
  <way id="3">
    <nd ref="11"/><nd ref="12"/><nd ref="13"/><nd ref="14"/><nd ref="11"/>
    <tag k="natural" v="water"/>
  </way>
  <way id="4">
    <nd ref="1"/><nd ref="3"/>
  </way>
</osm>
"""


@pytest.fixture()
def write_osm(tmp_path: Path) -> Callable[..., Path]:
    """Return a helper that writes OSM XML text to a file under ``tmp_path``."""

    def _write(content: str, name: str = "extract.osm") -> Path:
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture()
def island_osm(write_osm: Callable[..., Path]) -> Path:
    """Path to the unit-square island extract with one lake."""
    return write_osm(ISLAND_OSM)


@pytest.fixture()
def island_osm_text() -> str:
    """Raw XML of the unit-square island extract."""
    return ISLAND_OSM


# ---------------------------------------------------------------------------
# OSM PBF fixtures
# ---------------------------------------------------------------------------

#: The island extract as plain values: node id → (lon, lat), way id →
#: (node refs, tags).  Written to PBF by ``write_pbf``.
ISLAND_NODES: dict[int, tuple[float, float]] = {
    1: (0.0, 0.0),
    2: (1.0, 0.0),
    3: (1.0, 1.0),
    4: (0.0, 1.0),
    11: (0.4, 0.4),
    12: (0.6, 0.4),
    13: (0.6, 0.6),
    14: (0.4, 0.6),
}
ISLAND_WAYS: dict[int, tuple[list[int], dict[str, str]]] = {
    1: ([1, 2, 3], {"natural": "coastline"}),
    2: ([3, 4, 1], {"natural": "coastline"}),
    3: ([11, 12, 13, 14, 11], {"natural": "water"}),
    4: ([1, 3], {}),
}


@pytest.fixture()
def write_pbf(tmp_path: Path) -> Callable[..., Path]:
    """Return a helper that writes nodes, ways and relations to an ``.osm.pbf``.

    Relations are ``{id: (members, tags)}`` with members as
    ``(type, ref, role)`` tuples.
    """
    import osmium

    def _write(
        nodes: dict[int, tuple[float, float]],
        ways: dict[int, tuple[list[int], dict[str, str]]],
        relations: dict[int, tuple[list[tuple[str, int, str]], dict[str, str]]] | None = None,
        name: str = "extract.osm.pbf",
    ) -> Path:
        path = tmp_path / name
        writer = osmium.SimpleWriter(str(path))
        try:
            for node_id, (lon, lat) in nodes.items():
                writer.add_node(
                    osmium.osm.mutable.Node(id=node_id, location=osmium.osm.Location(lon, lat))
                )
            for way_id, (refs, tags) in ways.items():
                writer.add_way(osmium.osm.mutable.Way(id=way_id, nodes=refs, tags=tags))
            for rel_id, (members, tags) in (relations or {}).items():
                writer.add_relation(
                    osmium.osm.mutable.Relation(id=rel_id, members=members, tags=tags)
                )
        finally:
            writer.close()
        return path

    return _write


@pytest.fixture()
def island_pbf(write_pbf: Callable[..., Path]) -> Path:
    """Path to the unit-square island extract encoded as PBF."""
    return write_pbf(ISLAND_NODES, ISLAND_WAYS, name="island.osm.pbf")
