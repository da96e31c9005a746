"""Tests for the pipeline exception taxonomy.

Covers:
- Structured fields and the ``to_error_dict()`` payload
- Validation vs permanent categories of every fatal error the run raises
"""

from __future__ import annotations

import pytest

from osm_landmass.activities.clip_boundary import ClipBoundaryError
from osm_landmass.activities.read_osm import OsmDecodeError
from osm_landmass.activities.write_geojson import GeoJsonWriteError
from osm_landmass.core.config import ConfigValidationError
from osm_landmass.core.exceptions import PermanentError, PipelineError, ValidationError
from osm_landmass.orchestrators.landmass_pipeline import NoLandError


class TestErrorPayload:
    """Fields carried into the CLI's structured error line."""

    def test_defaults_come_from_subclass(self) -> None:
        err = OsmDecodeError("truncated file")
        assert str(err) == "truncated file"
        assert err.stage == "read_osm"
        assert err.code == "OSM_DECODE_FAILED"
        assert err.correlation_id == ""

    def test_keyword_overrides(self) -> None:
        err = NoLandError("nothing", stage="combine", code="EMPTY", correlation_id="iom.osm")
        assert err.stage == "combine"
        assert err.code == "EMPTY"
        assert err.correlation_id == "iom.osm"

    def test_error_dict(self) -> None:
        err = NoLandError("No land polygons", correlation_id="monaco.osm.pbf")
        assert err.to_error_dict() == {
            "category": "permanent",
            "code": "NO_LAND",
            "stage": "landmass_pipeline",
            "message": "No land polygons",
            "correlation_id": "monaco.osm.pbf",
        }


class TestCategories:
    """Each fatal error falls into exactly one category."""

    @pytest.mark.parametrize(
        ("err", "category", "stage", "code"),
        [
            (OsmDecodeError("x"), "permanent", "read_osm", "OSM_DECODE_FAILED"),
            (NoLandError("x"), "permanent", "landmass_pipeline", "NO_LAND"),
            (GeoJsonWriteError("x"), "permanent", "write_geojson", "GEOJSON_WRITE_FAILED"),
            (ClipBoundaryError("x"), "validation", "clip_boundary", "CLIP_BOUNDARY_INVALID"),
            (
                ConfigValidationError("LANDMASS_MIN_AREA_SQM", -5, "must be >= 0"),
                "validation",
                "config",
                "CONFIG_VALIDATION_FAILED",
            ),
        ],
    )
    def test_domain_errors(self, err: PipelineError, category: str, stage: str, code: str) -> None:
        assert isinstance(err, PipelineError)
        assert err.category == category
        assert err.to_error_dict()["category"] == category
        assert err.stage == stage
        assert err.code == code

    def test_validation_and_permanent_are_disjoint(self) -> None:
        assert issubclass(ClipBoundaryError, ValidationError)
        assert not issubclass(ClipBoundaryError, PermanentError)
        assert issubclass(OsmDecodeError, PermanentError)
        assert not issubclass(OsmDecodeError, ValidationError)

    def test_config_error_keeps_offending_value(self) -> None:
        err = ConfigValidationError("LANDMASS_REPAIR_MAX_ATTEMPTS", 42, "must be 0..10")
        assert err.key == "LANDMASS_REPAIR_MAX_ATTEMPTS"
        assert err.value == 42
        assert "LANDMASS_REPAIR_MAX_ATTEMPTS=42" in err.message
