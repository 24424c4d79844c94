"""Production records touched by the import pipeline.

Only the fields the committer and the merge engines read or write are modelled here.
References between production rows are plain ids.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from .base import SoftDeletableEntity

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID


@dataclass(eq=False, kw_only=True)
class ProductionEntity(SoftDeletableEntity):
    source_package_id: UUID | None = None


@dataclass(eq=False, kw_only=True)
class Building(ProductionEntity):
    building_code: str
    governorate_code: str = ""
    district_code: str = ""
    sub_district_code: str = ""
    community_code: str = ""
    neighborhood_code: str = ""
    building_number: str = ""
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


@dataclass(eq=False, kw_only=True)
class PropertyUnit(ProductionEntity):
    building_id: UUID
    unit_identifier: str
    unit_type: int | None = None
    status: int | None = None
    floor_number: int | None = None
    number_of_rooms: int | None = None
    area_square_meters: float | None = None
    description: str | None = None
    damage_level: int | None = None


@dataclass(eq=False, kw_only=True)
class Person(ProductionEntity):
    family_name_arabic: str
    first_name_arabic: str
    father_name_arabic: str
    mother_name_arabic: str | None = None
    full_name_english: str | None = None
    national_id: str | None = None
    year_of_birth: int | None = None
    gender: str | None = None
    nationality: str | None = None
    email: str | None = None
    mobile_number: str | None = None
    phone_number: str | None = None
    household_id: UUID | None = None
    relationship_to_head: str | None = None


@dataclass(eq=False, kw_only=True)
class Household(ProductionEntity):
    property_unit_id: UUID
    head_of_household_person_id: UUID | None = None
    head_of_household_name: str = ""
    household_size: int = 0
    male_count: int = 0
    female_count: int = 0
    is_female_headed: bool = False
    is_displaced: bool = False
    notes: str | None = None


@dataclass(eq=False, kw_only=True)
class PersonPropertyRelation(ProductionEntity):
    person_id: UUID
    property_unit_id: UUID
    relation_type: int | None = None
    contract_type: str | None = None
    ownership_share: float | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    notes: str | None = None


@dataclass(eq=False, kw_only=True)
class Claim(ProductionEntity):
    property_unit_id: UUID
    primary_claimant_id: UUID | None = None
    claim_type: str = ""
    claim_source: int | None = None
    priority: int | None = None
    lifecycle_stage: int | None = None
    status: int | None = None
    claim_description: str | None = None
    legal_basis: str | None = None


@dataclass(eq=False, kw_only=True)
class Survey(ProductionEntity):
    building_id: UUID
    property_unit_id: UUID | None = None
    field_collector_id: UUID | None = None
    survey_date: datetime | None = None
    reference_code: str | None = None
    survey_type: str | None = None
    notes: str | None = None


@dataclass(eq=False, kw_only=True)
class Evidence(ProductionEntity):
    evidence_type: int | None = None
    original_file_name: str = ""
    file_path: str | None = None
    file_size_bytes: int = 0
    mime_type: str | None = None
    file_hash: str | None = None
    description: str | None = None
    person_id: UUID | None = None
    person_property_relation_id: UUID | None = None
    claim_id: UUID | None = None
