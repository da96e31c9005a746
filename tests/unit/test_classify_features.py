"""Tests for the feature classification activity.

Covers:
- Tag predicates and classification precedence
- Tidal toggle
- Way → fragment and relation → Relation conversion
- Bucketing of a feature stream, including skip-water mode
"""

from __future__ import annotations

from dataclasses import replace

import pytest

from osm_landmass.activities.classify_features import (
    classify_feature,
    classify_tags,
    is_water_feature,
    split_features,
)
from osm_landmass.core.config import LandmassConfig
from osm_landmass.models.feature import Feature, FeatureKind, RelationMember
from osm_landmass.models.fragment import FeatureClass, Fragment, MemberRole
from osm_landmass.models.relation import Relation

SQUARE = [(0.0, 0.0), (1.0, 0.0), (1.0, 1.0), (0.0, 1.0), (0.0, 0.0)]


def _way(osm_id: int, tags: dict[str, str], coords: list[tuple[float, float]] | None = None) -> Feature:
    return Feature(osm_id=osm_id, kind=FeatureKind.WAY, tags=tags, coords=coords or SQUARE)


def _relation(osm_id: int, tags: dict[str, str], members: list[RelationMember]) -> Feature:
    return Feature(osm_id=osm_id, kind=FeatureKind.RELATION, tags=tags, members=members)


class TestTagClassification:
    """Classification is a pure function of tags."""

    def test_coastline_is_land(self) -> None:
        assert classify_tags({"natural": "coastline"}) == FeatureClass.LAND

    @pytest.mark.parametrize(
        "tags",
        [
            {"natural": "water"},
            {"natural": "wetland"},
            {"waterway": "riverbank"},
            {"waterway": "dock"},
            {"landuse": "reservoir"},
            {"landuse": "basin"},
            {"water": "lake"},
        ],
    )
    def test_water_bodies(self, tags: dict[str, str]) -> None:
        assert is_water_feature(tags)
        assert classify_tags(tags) == FeatureClass.WATER

    def test_river_line_is_not_water_area(self) -> None:
        assert classify_tags({"waterway": "river"}) == FeatureClass.IRRELEVANT

    def test_unrelated_tags_irrelevant(self) -> None:
        assert classify_tags({"highway": "residential"}) == FeatureClass.IRRELEVANT
        assert classify_tags({}) == FeatureClass.IRRELEVANT

    def test_tidal_is_land_when_enabled(self) -> None:
        assert classify_tags({"tidal": "yes"}, include_tidal=True) == FeatureClass.LAND

    def test_tidal_irrelevant_when_disabled(self) -> None:
        assert classify_tags({"tidal": "yes"}, include_tidal=False) == FeatureClass.IRRELEVANT

    def test_water_beats_tidal(self) -> None:
        tags = {"natural": "water", "tidal": "yes"}
        assert classify_tags(tags, include_tidal=True) == FeatureClass.WATER

    def test_coastline_beats_water(self) -> None:
        tags = {"natural": "coastline", "water": "yes"}
        assert classify_tags(tags) == FeatureClass.LAND


class TestClassifyFeature:
    """Single feature conversion."""

    def test_coastline_way_becomes_land_fragment(self, config: LandmassConfig) -> None:
        result = classify_feature(_way(7, {"natural": "coastline"}), config)
        assert isinstance(result, Fragment)
        assert result.fragment_id == 7
        assert result.feature_class == FeatureClass.LAND
        assert result.role == MemberRole.UNKNOWN
        assert result.source_id == "way/7"
        assert result.points == tuple(SQUARE)

    def test_irrelevant_way_dropped(self, config: LandmassConfig) -> None:
        assert classify_feature(_way(1, {"highway": "primary"}), config) is None

    def test_way_without_coordinates_dropped(self, config: LandmassConfig) -> None:
        feature = Feature(osm_id=1, tags={"natural": "coastline"}, coords=[])
        assert classify_feature(feature, config) is None

    def test_water_relation(self, config: LandmassConfig) -> None:
        feature = _relation(
            40,
            {"type": "multipolygon", "natural": "water"},
            [
                RelationMember(way_id=1, role="outer", coords=SQUARE),
                RelationMember(way_id=2, role="inner", coords=SQUARE),
                RelationMember(way_id=3, role="", coords=SQUARE),
                RelationMember(way_id=4, role="outer"),
            ],
        )
        result = classify_feature(feature, config)
        assert isinstance(result, Relation)
        assert result.relation_id == 40
        assert result.feature_class == FeatureClass.WATER
        assert [m.role for m in result.members] == [
            MemberRole.OUTER,
            MemberRole.INNER,
            MemberRole.UNKNOWN,
        ]
        assert all(m.feature_class == FeatureClass.WATER for m in result.members)
        assert result.missing_member_ids == [4]

    def test_non_multipolygon_relation_dropped(self, config: LandmassConfig) -> None:
        feature = _relation(
            41,
            {"type": "route", "natural": "water"},
            [RelationMember(way_id=1, role="outer", coords=SQUARE)],
        )
        assert classify_feature(feature, config) is None

    def test_relation_without_members_dropped(self, config: LandmassConfig) -> None:
        feature = _relation(42, {"type": "multipolygon", "natural": "water"}, [])
        assert classify_feature(feature, config) is None


class TestSplitFeatures:
    """Bucketing of a whole feature stream."""

    def _stream(self) -> list[Feature]:
        return [
            _way(1, {"natural": "coastline"}),
            _way(2, {"natural": "water"}),
            _way(3, {"highway": "track"}),
            _way(4, {"tidal": "yes"}),
            _relation(
                10,
                {"type": "multipolygon", "waterway": "riverbank"},
                [RelationMember(way_id=5, role="outer", coords=SQUARE)],
            ),
        ]

    def test_buckets(self, config: LandmassConfig) -> None:
        result = split_features(self._stream(), config)
        assert [f.fragment_id for f in result.land_fragments] == [1]
        assert [f.fragment_id for f in result.tidal_areas] == [4]
        assert [f.fragment_id for f in result.water_areas] == [2]
        assert [r.relation_id for r in result.relations_of(FeatureClass.WATER)] == [10]
        assert result.relations_of(FeatureClass.LAND) == []
        assert result.irrelevant_count == 1
        assert result.skipped_water_count == 0

    def test_tidal_disabled(self) -> None:
        cfg = LandmassConfig(include_tidal=False)
        result = split_features(self._stream(), cfg)
        assert [f.fragment_id for f in result.land_fragments] == [1]
        assert result.tidal_areas == []
        assert result.irrelevant_count == 2

    def test_skip_water_retains_no_water(self, config: LandmassConfig) -> None:
        result = split_features(self._stream(), replace(config, skip_water=True))
        assert result.water_areas == []
        assert result.relations == []
        assert result.skipped_water_count == 2
        assert [f.fragment_id for f in result.land_fragments] == [1]
        assert [f.fragment_id for f in result.tidal_areas] == [4]

    def test_consumes_generator_once(self, config: LandmassConfig) -> None:
        result = split_features(iter(self._stream()), config)
        assert len(result.land_fragments) == 1
        assert len(result.tidal_areas) == 1

    def test_tidal_river_line_kept_out_of_coastline(self, config: LandmassConfig) -> None:
        stream = [
            _way(10, {"natural": "coastline"}, [(0.0, 0.0), (1.0, 0.0)]),
            _way(5, {"waterway": "river", "tidal": "yes"}, [(1.0, 0.0), (2.0, 0.0)]),
        ]
        result = split_features(stream, config)
        assert [f.fragment_id for f in result.land_fragments] == [10]
        assert [f.fragment_id for f in result.tidal_areas] == [5]
