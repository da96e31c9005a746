"""Data model for a multi-part relation awaiting resolution."""

from __future__ import annotations

from dataclasses import dataclass, field

from osm_landmass.models.fragment import FeatureClass, Fragment, MemberRole


@dataclass(frozen=True, slots=True)
class Relation:
    """A multipolygon relation with its member fragments.

    Attributes:
        relation_id: OSM relation id.
        feature_class: ``land`` or ``water``.
        members: Member fragments, each carrying its declared role.
        missing_member_ids: Member ways the decoder could not resolve.
    """

    relation_id: int
    feature_class: FeatureClass
    members: list[Fragment] = field(default_factory=list)
    missing_member_ids: list[int] = field(default_factory=list)

    def members_with_role(self, *roles: MemberRole) -> list[Fragment]:
        return [member for member in self.members if member.role in roles]
