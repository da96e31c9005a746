"""Shared pipeline constants.

Centralises the OSM tag vocabulary, the fixed-point precision used for
endpoint matching, and the geometry tolerances shared by the assembly,
boolean and output stages.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Tag vocabulary
# ---------------------------------------------------------------------------

COASTLINE_TAG: tuple[str, str] = ("natural", "coastline")
TIDAL_TAG: tuple[str, str] = ("tidal", "yes")
MULTIPOLYGON_TAG: tuple[str, str] = ("type", "multipolygon")

#: Tag key → values that mark an area as a water body.
WATER_TAG_VALUES: dict[str, frozenset[str]] = {
    "natural": frozenset({"water", "wetland"}),
    "waterway": frozenset({"riverbank", "dock"}),
    "landuse": frozenset({"reservoir", "basin"}),
}

#: Any feature carrying this key is a water body, whatever its value.
GENERIC_WATER_KEY = "water"

ROLE_OUTER = "outer"
ROLE_INNER = "inner"

# ---------------------------------------------------------------------------
# Coordinate precision
# ---------------------------------------------------------------------------

#: Endpoint keys are coordinates scaled to 7 decimal places (sub-metre),
#: the precision OSM stores node locations at.
COORD_SCALE = 10_000_000

#: Tolerance (degrees) for float comparisons on projected boundary points.
COORD_EPSILON = 1e-9

# ---------------------------------------------------------------------------
# Geometry thresholds
# ---------------------------------------------------------------------------

#: Distinct vertices needed for a ring with area.
MIN_DISTINCT_RING_POINTS = 3

#: Coordinates in a closed ring including the closing point (3 distinct + closure).
MIN_CLOSED_RING_COORDS = 4

#: Minimum points for an open fragment.
MIN_FRAGMENT_POINTS = 2

#: Planar area (square degrees) below which a ring is degenerate.
MIN_RING_AREA_DEG2 = 1e-12

#: Union-trick buffer distance (degrees, roughly 0.1 mm) and retry count.
DEFAULT_REPAIR_EPSILON = 1e-9
DEFAULT_REPAIR_MAX_ATTEMPTS = 3
REPAIR_EPSILON_GROWTH = 10.0

#: Output polygons smaller than this (square metres) are repair artifacts.
DEFAULT_MIN_AREA_SQM = 1.0

# ---------------------------------------------------------------------------
# Units
# ---------------------------------------------------------------------------

SQ_METRES_PER_SQ_KM = 1_000_000.0

#: Ellipsoid used for every area figure the pipeline reports.
AREA_ELLIPSOID = "WGS84"
