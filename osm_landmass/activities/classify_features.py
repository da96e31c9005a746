"""Feature classification activity.

Tags each decoded feature as land-contributing, water-contributing or
irrelevant, and turns it into the fragments the later stages consume:

- Ways tagged ``natural=coastline`` become land fragments for ring
  assembly.
- Ways tagged ``tidal=yes`` (when enabled) become tidal areas.  Only
  closed ones count as land; they never join coastline assembly.
- Ways tagged as a water body become free-standing water areas.
- ``type=multipolygon`` relations tagged as water (or coastline/tidal)
  become relations whose member ways carry their declared role.

Classification is a pure function of tags and configuration.
Unrecognised tag combinations are irrelevant and dropped silently.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from osm_landmass.core.constants import (
    COASTLINE_TAG,
    GENERIC_WATER_KEY,
    MULTIPOLYGON_TAG,
    TIDAL_TAG,
    WATER_TAG_VALUES,
)
from osm_landmass.models.fragment import FeatureClass, Fragment, MemberRole
from osm_landmass.models.relation import Relation

if TYPE_CHECKING:
    from collections.abc import Iterable

    from osm_landmass.core.config import LandmassConfig
    from osm_landmass.models.feature import Feature

logger = logging.getLogger("osm_landmass.activities.classify_features")


@dataclass(slots=True)
class ClassifiedInput:
    """Decoder output bucketed by classification.

    Attributes:
        land_fragments: Coastline way fragments.
        tidal_areas: Tidal way fragments, kept apart from the coastline.
        water_areas: Free-standing water way fragments.
        relations: Land and water multipolygon relations.
        irrelevant_count: Features dropped as irrelevant.
        skipped_water_count: Water features not retained because water
            subtraction is disabled.
    """

    land_fragments: list[Fragment] = field(default_factory=list)
    tidal_areas: list[Fragment] = field(default_factory=list)
    water_areas: list[Fragment] = field(default_factory=list)
    relations: list[Relation] = field(default_factory=list)
    irrelevant_count: int = 0
    skipped_water_count: int = 0

    def relations_of(self, feature_class: FeatureClass) -> list[Relation]:
        return [rel for rel in self.relations if rel.feature_class == feature_class]


# ---------------------------------------------------------------------------
# Tag predicates
# ---------------------------------------------------------------------------


def is_coastline(tags: dict[str, str]) -> bool:
    return tags.get(COASTLINE_TAG[0]) == COASTLINE_TAG[1]


def is_tidal(tags: dict[str, str]) -> bool:
    return tags.get(TIDAL_TAG[0]) == TIDAL_TAG[1]


def is_water_feature(tags: dict[str, str]) -> bool:
    """Whether tags mark a standing-water, riverbank, reservoir or generic water area."""
    for key, values in WATER_TAG_VALUES.items():
        if tags.get(key) in values:
            return True
    return GENERIC_WATER_KEY in tags


def is_multipolygon(tags: dict[str, str]) -> bool:
    return tags.get(MULTIPOLYGON_TAG[0]) == MULTIPOLYGON_TAG[1]


def classify_tags(tags: dict[str, str], *, include_tidal: bool = True) -> FeatureClass:
    """Classify a tag set.

    Coastline always wins.  Water beats tidal, so a tidal lagoon stays
    water even when tidal land is folded in.
    """
    if is_coastline(tags):
        return FeatureClass.LAND
    if is_water_feature(tags):
        return FeatureClass.WATER
    if include_tidal and is_tidal(tags):
        return FeatureClass.LAND
    return FeatureClass.IRRELEVANT


# ---------------------------------------------------------------------------
# Feature → fragments
# ---------------------------------------------------------------------------


def way_to_fragment(feature: Feature, feature_class: FeatureClass) -> Fragment:
    return Fragment(
        fragment_id=feature.osm_id,
        points=tuple(feature.coords),
        feature_class=feature_class,
        role=MemberRole.UNKNOWN,
        source_id=feature.source_id,
    )


def relation_from_feature(feature: Feature, feature_class: FeatureClass) -> Relation:
    """Build a ``Relation`` from a decoded relation feature.

    Member ways inherit the relation's classification; their own tags
    are irrelevant here.
    """
    members: list[Fragment] = []
    missing: list[int] = []
    for member in feature.members:
        if not member.is_resolved:
            missing.append(member.way_id)
            continue
        members.append(
            Fragment(
                fragment_id=member.way_id,
                points=tuple(member.coords),
                feature_class=feature_class,
                role=MemberRole.from_osm(member.role),
                source_id=f"way/{member.way_id}",
            )
        )
    return Relation(
        relation_id=feature.osm_id,
        feature_class=feature_class,
        members=members,
        missing_member_ids=missing,
    )


def classify_feature(
    feature: Feature, config: LandmassConfig
) -> Fragment | Relation | None:
    """Classify one feature.

    Returns:
        A ``Fragment`` for a land or water way, a ``Relation`` for a
        land or water multipolygon, or ``None`` if irrelevant.
    """
    feature_class = classify_tags(feature.tags, include_tidal=config.include_tidal)
    if feature_class == FeatureClass.IRRELEVANT:
        return None
    if feature.is_relation:
        if not is_multipolygon(feature.tags) or not feature.members:
            return None
        return relation_from_feature(feature, feature_class)
    if not feature.coords:
        return None
    return way_to_fragment(feature, feature_class)


def split_features(features: Iterable[Feature], config: LandmassConfig) -> ClassifiedInput:
    """Consume the decoded feature stream once and bucket it.

    When ``config.skip_water`` is set, water features are counted but
    not retained, so water ingestion is fully bypassed.
    """
    result = ClassifiedInput()
    for feature in features:
        classified = classify_feature(feature, config)
        if classified is None:
            result.irrelevant_count += 1
            continue

        if classified.feature_class == FeatureClass.WATER and config.skip_water:
            result.skipped_water_count += 1
            continue

        if isinstance(classified, Relation):
            result.relations.append(classified)
        elif classified.feature_class == FeatureClass.LAND:
            if is_coastline(feature.tags):
                result.land_fragments.append(classified)
            else:
                result.tidal_areas.append(classified)
        else:
            result.water_areas.append(classified)

    logger.info(
        "Features classified | land_fragments=%d | tidal_areas=%d | water_areas=%d | "
        "land_relations=%d | water_relations=%d | irrelevant=%d | water_skipped=%d",
        len(result.land_fragments),
        len(result.tidal_areas),
        len(result.water_areas),
        len(result.relations_of(FeatureClass.LAND)),
        len(result.relations_of(FeatureClass.WATER)),
        result.irrelevant_count,
        result.skipped_water_count,
    )
    return result
