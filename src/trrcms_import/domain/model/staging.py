"""Staging rows: an isolated copy of every record carried by a package.

Staging rows never hold live foreign keys. Parent links are kept as the original
GUIDs from the device (``original_*_id``) and resolved within the batch.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, ClassVar

from trrcms_import.domain.errors import StagingRuleViolation

from .base import NIL_UUID, Entity, new_id, utcnow
from .enums import StagingKind, StagingValidationStatus

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime
    from uuid import UUID


@dataclass(eq=False, kw_only=True)
class StagingEntity(Entity):
    kind: ClassVar[StagingKind]

    import_package_id: UUID
    original_entity_id: UUID = field(default_factory=new_id)
    validation_status: StagingValidationStatus = StagingValidationStatus.PENDING
    validation_errors: list[str] = field(default_factory=list[str])
    validation_warnings: list[str] = field(default_factory=list[str])
    is_approved_for_commit: bool = False
    committed_entity_id: UUID | None = None
    staged_at_utc: datetime = field(default_factory=utcnow)

    def mark_as_valid(self, warnings: Iterable[str] | None = None) -> None:
        warning_list = list(warnings or ())
        self.validation_errors = []
        self.validation_warnings = warning_list
        self.validation_status = (
            StagingValidationStatus.WARNING if warning_list else StagingValidationStatus.VALID
        )

    def mark_as_invalid(self, errors: Iterable[str], warnings: Iterable[str] | None = None) -> None:
        error_list = list(errors)
        if not error_list:
            raise StagingRuleViolation("An invalid staging record needs at least one error")
        self.validation_errors = error_list
        self.validation_warnings = list(warnings or ())
        self.validation_status = StagingValidationStatus.INVALID
        self.is_approved_for_commit = False

    def mark_as_skipped(self, reason: str) -> None:
        self.validation_status = StagingValidationStatus.SKIPPED
        self.validation_warnings = [f"Skipped: {reason}"]
        self.is_approved_for_commit = False

    def approve_for_commit(self) -> None:
        if self.validation_status is StagingValidationStatus.INVALID:
            raise StagingRuleViolation(
                "Cannot approve an invalid staging record for commit. "
                "Resolve validation errors first."
            )
        if self.validation_status is StagingValidationStatus.SKIPPED:
            raise StagingRuleViolation("Cannot approve a skipped staging record for commit.")
        self.is_approved_for_commit = True

    def revoke_approval(self) -> None:
        self.is_approved_for_commit = False

    def set_committed_entity_id(self, entity_id: UUID) -> None:
        if entity_id == NIL_UUID:
            raise StagingRuleViolation("Committed entity id must not be empty")
        self.committed_entity_id = entity_id

    def reset_validation(self) -> None:
        self.validation_status = StagingValidationStatus.PENDING
        self.validation_errors = []
        self.validation_warnings = []
        self.is_approved_for_commit = False

    @property
    def is_committable(self) -> bool:
        return self.is_approved_for_commit and self.validation_status.is_committable


@dataclass(eq=False, kw_only=True)
class StagingBuilding(StagingEntity):
    kind: ClassVar[StagingKind] = StagingKind.BUILDING

    governorate_code: str = ""
    district_code: str = ""
    sub_district_code: str = ""
    community_code: str = ""
    neighborhood_code: str = ""
    building_number: str = ""
    governorate_name: str | None = None
    district_name: str | None = None
    sub_district_name: str | None = None
    community_name: str | None = None
    neighborhood_name: str | None = None
    building_id: str | None = None
    building_type: int | None = None
    building_status: int | None = None
    number_of_property_units: int = 0
    number_of_apartments: int = 0
    number_of_shops: int = 0
    number_of_floors: int | None = None
    year_of_construction: int | None = None
    damage_level: int | None = None
    latitude: float | None = None
    longitude: float | None = None
    building_geometry_wkt: str | None = None
    location_description: str | None = None
    notes: str | None = None

    @property
    def building_code(self) -> str:
        """The 17-digit composite administrative code."""

        return (
            f"{self.governorate_code}{self.district_code}{self.sub_district_code}"
            f"{self.community_code}{self.neighborhood_code}{self.building_number}"
        )

    @property
    def building_identifier(self) -> str:
        return "-".join(
            (
                self.governorate_code,
                self.district_code,
                self.sub_district_code,
                self.community_code,
                self.neighborhood_code,
                self.building_number,
            )
        )


@dataclass(eq=False, kw_only=True)
class StagingPropertyUnit(StagingEntity):
    kind: ClassVar[StagingKind] = StagingKind.PROPERTY_UNIT

    original_building_id: UUID | None = None
    unit_identifier: str = ""
    unit_type: int | None = None
    status: int | None = None
    floor_number: int | None = None
    number_of_rooms: int | None = None
    area_square_meters: float | None = None
    estimated_area_sqm: float | None = None
    description: str | None = None
    occupancy_status: str | None = None
    occupancy_type: str | None = None
    occupancy_nature: str | None = None
    damage_level: int | None = None


@dataclass(eq=False, kw_only=True)
class StagingPerson(StagingEntity):
    kind: ClassVar[StagingKind] = StagingKind.PERSON

    family_name_arabic: str = ""
    first_name_arabic: str = ""
    father_name_arabic: str = ""
    mother_name_arabic: str | None = None
    full_name_english: str | None = None
    national_id: str | None = None
    year_of_birth: int | None = None
    gender: str | None = None
    nationality: str | None = None
    email: str | None = None
    mobile_number: str | None = None
    phone_number: str | None = None
    original_household_id: UUID | None = None
    relationship_to_head: str | None = None


@dataclass(eq=False, kw_only=True)
class StagingHousehold(StagingEntity):
    kind: ClassVar[StagingKind] = StagingKind.HOUSEHOLD

    original_property_unit_id: UUID | None = None
    original_head_of_household_person_id: UUID | None = None
    head_of_household_name: str = ""
    household_size: int = 0
    male_count: int = 0
    female_count: int = 0
    male_child_count: int = 0
    female_child_count: int = 0
    male_elderly_count: int = 0
    female_elderly_count: int = 0
    male_disabled_count: int = 0
    female_disabled_count: int = 0
    is_female_headed: bool = False
    is_displaced: bool = False
    notes: str | None = None

    @property
    def gender_total(self) -> int:
        return self.male_count + self.female_count


@dataclass(eq=False, kw_only=True)
class StagingPersonPropertyRelation(StagingEntity):
    kind: ClassVar[StagingKind] = StagingKind.PERSON_PROPERTY_RELATION

    original_person_id: UUID | None = None
    original_property_unit_id: UUID | None = None
    relation_type: int | None = None
    relation_type_other_desc: str | None = None
    contract_type: str | None = None
    ownership_share: float | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    notes: str | None = None


@dataclass(eq=False, kw_only=True)
class StagingClaim(StagingEntity):
    kind: ClassVar[StagingKind] = StagingKind.CLAIM

    original_property_unit_id: UUID | None = None
    original_primary_claimant_id: UUID | None = None
    claim_type: str = ""
    claim_source: int | None = None
    priority: int | None = None
    lifecycle_stage: int | None = None
    status: int | None = None
    tenure_contract_type: str | None = None
    ownership_share: float | None = None
    tenure_start_date: datetime | None = None
    tenure_end_date: datetime | None = None
    claim_description: str | None = None
    legal_basis: str | None = None
    supporting_narrative: str | None = None
    processing_notes: str | None = None


@dataclass(eq=False, kw_only=True)
class StagingSurvey(StagingEntity):
    kind: ClassVar[StagingKind] = StagingKind.SURVEY

    original_building_id: UUID | None = None
    original_property_unit_id: UUID | None = None
    original_field_collector_id: UUID | None = None
    survey_date: datetime | None = None
    reference_code: str | None = None
    survey_type: str | None = None
    source: str | None = None
    status: str | None = None
    gps_coordinates: str | None = None
    interviewee_name: str | None = None
    interviewee_relationship: str | None = None
    notes: str | None = None


@dataclass(eq=False, kw_only=True)
class StagingEvidence(StagingEntity):
    kind: ClassVar[StagingKind] = StagingKind.EVIDENCE

    evidence_type: int | None = None
    description: str | None = None
    original_file_name: str = ""
    file_path: str | None = None
    file_size_bytes: int = 0
    mime_type: str | None = None
    file_hash: str | None = None
    original_person_id: UUID | None = None
    original_person_property_relation_id: UUID | None = None
    original_claim_id: UUID | None = None
    document_issued_date: datetime | None = None
    document_expiry_date: datetime | None = None
    issuing_authority: str | None = None
    document_reference_number: str | None = None
    notes: str | None = None

    @property
    def has_parent(self) -> bool:
        return any(
            ref is not None
            for ref in (
                self.original_person_id,
                self.original_person_property_relation_id,
                self.original_claim_id,
            )
        )


STAGING_ENTITY_TYPES: dict[StagingKind, type[StagingEntity]] = {
    StagingKind.BUILDING: StagingBuilding,
    StagingKind.PROPERTY_UNIT: StagingPropertyUnit,
    StagingKind.PERSON: StagingPerson,
    StagingKind.HOUSEHOLD: StagingHousehold,
    StagingKind.PERSON_PROPERTY_RELATION: StagingPersonPropertyRelation,
    StagingKind.CLAIM: StagingClaim,
    StagingKind.SURVEY: StagingSurvey,
    StagingKind.EVIDENCE: StagingEvidence,
}
