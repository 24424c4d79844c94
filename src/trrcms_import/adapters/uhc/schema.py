"""Pydantic models describing the tables of a ``.uhc`` package.

Device exports are loosely typed SQLite. Parsing is lenient the way the field app
expects: an unusable id becomes a fresh UUID, a bad count becomes 0, a bad optional
value becomes ``None``. Only the manifest's two identity fields are strict.
"""

from __future__ import annotations

import json
import uuid
from collections.abc import Mapping
from datetime import UTC, datetime
from logging import getLogger
from typing import cast

from pydantic import BaseModel, ConfigDict, Field, field_validator

from trrcms_import.domain.model import utcnow
from trrcms_import.domain.model.codes import CASE_PRIORITY_NORMAL
from trrcms_import.domain.verification import DEFAULT_SCHEMA_VERSION, Manifest

log = getLogger(__name__)

_TRUTHY = frozenset({"1", "true", "yes"})


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


def _parse_uuid(value: object) -> uuid.UUID | None:
    if isinstance(value, uuid.UUID):
        return value
    if value is None:
        return None
    try:
        return uuid.UUID(str(value).strip())
    except ValueError:
        return None


def _id_or_new(value: object) -> uuid.UUID:
    return _parse_uuid(value) or uuid.uuid4()


def _parse_int(value: object) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def _int_or_zero(value: object) -> int:
    parsed = _parse_int(value)
    return 0 if parsed is None else parsed


def _parse_float(value: object) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return float(value)
    try:
        return float(str(value).strip())
    except ValueError:
        return None


def _parse_datetime(value: object) -> datetime | None:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError:
            return None
    else:
        return None
    return parsed.replace(tzinfo=UTC) if parsed.tzinfo is None else parsed.astimezone(UTC)


def _datetime_or_now(value: object) -> datetime:
    return _parse_datetime(value) or utcnow()


def _text(value: object) -> str:
    if value is None:
        return ""
    return str(value)


def _optional_text(value: object) -> str | None:
    if value is None:
        return None
    return str(value)


def _flag(value: object) -> bool:
    if value is None:
        return False
    return str(value).strip().lower() in _TRUTHY


class UhcBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ManifestSchema(UhcBaseModel):
    """The key/value ``manifest`` table folded into one record."""

    package_id: uuid.UUID
    exported_by_user_id: uuid.UUID
    schema_version: str = DEFAULT_SCHEMA_VERSION
    form_schema_version: str = DEFAULT_SCHEMA_VERSION
    created_utc: datetime = Field(default_factory=utcnow)
    exported_date_utc: datetime = Field(default_factory=utcnow)
    device_id: str = ""
    app_version: str = ""
    checksum: str = ""
    digital_signature: str | None = None

    survey_count: int = 0
    building_count: int = 0
    property_unit_count: int = 0
    person_count: int = 0
    household_count: int = 0
    relation_count: int = 0
    claim_count: int = 0
    document_count: int = 0
    total_attachment_size_bytes: int = 0

    vocab_versions: dict[str, str] = Field(default_factory=dict[str, str])

    _normalize_signature = field_validator("digital_signature", mode="before")(_blank_to_none)
    _parse_dates = field_validator("created_utc", "exported_date_utc", mode="before")(
        _datetime_or_now
    )
    _parse_counts = field_validator(
        "survey_count",
        "building_count",
        "property_unit_count",
        "person_count",
        "household_count",
        "relation_count",
        "claim_count",
        "document_count",
        "total_attachment_size_bytes",
        mode="before",
    )(_int_or_zero)
    _stringify = field_validator(
        "schema_version",
        "form_schema_version",
        "device_id",
        "app_version",
        "checksum",
        mode="before",
    )(_text)

    @field_validator("vocab_versions", mode="before")
    @classmethod
    def _parse_vocab_versions(cls, value: object) -> dict[str, str]:
        if value is None or value == "":
            return {}
        if isinstance(value, str):
            try:
                value = json.loads(value)
            except json.JSONDecodeError:
                log.warning("Failed to parse vocab_versions from manifest: %s", value)
                return {}
        if not isinstance(value, Mapping):
            log.warning("Ignoring vocab_versions that is not a JSON object: %s", value)
            return {}
        mapping = cast("Mapping[object, object]", value)
        return {str(domain): str(version) for domain, version in mapping.items()}

    def to_manifest(self) -> Manifest:
        return Manifest(**self.model_dump())


class StagingRowModel(UhcBaseModel):
    """Columns every package table shares: the device-side ``id``."""

    original_entity_id: uuid.UUID = Field(default_factory=uuid.uuid4, alias="id")

    _parse_id = field_validator("original_entity_id", mode="before")(_id_or_new)


class BuildingRow(StagingRowModel):
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

    _codes = field_validator(
        "governorate_code",
        "district_code",
        "sub_district_code",
        "community_code",
        "neighborhood_code",
        "building_number",
        mode="before",
    )(_text)
    _texts = field_validator(
        "governorate_name",
        "district_name",
        "sub_district_name",
        "community_name",
        "neighborhood_name",
        "building_id",
        "building_geometry_wkt",
        "location_description",
        "notes",
        mode="before",
    )(_optional_text)
    _counts = field_validator(
        "number_of_property_units", "number_of_apartments", "number_of_shops", mode="before"
    )(_int_or_zero)
    _ints = field_validator(
        "building_type",
        "building_status",
        "number_of_floors",
        "year_of_construction",
        "damage_level",
        mode="before",
    )(_parse_int)
    _coordinates = field_validator("latitude", "longitude", mode="before")(_parse_float)


class PropertyUnitRow(StagingRowModel):
    original_building_id: uuid.UUID | None = Field(default=None, alias="building_id")
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

    _refs = field_validator("original_building_id", mode="before")(_parse_uuid)
    _identifier = field_validator("unit_identifier", mode="before")(_text)
    _ints = field_validator(
        "unit_type", "status", "floor_number", "number_of_rooms", "damage_level", mode="before"
    )(_parse_int)
    _areas = field_validator("area_square_meters", "estimated_area_sqm", mode="before")(
        _parse_float
    )
    _texts = field_validator(
        "description", "occupancy_status", "occupancy_type", "occupancy_nature", mode="before"
    )(_optional_text)


class PersonRow(StagingRowModel):
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
    original_household_id: uuid.UUID | None = Field(default=None, alias="household_id")
    relationship_to_head: str | None = None

    _names = field_validator(
        "family_name_arabic", "first_name_arabic", "father_name_arabic", mode="before"
    )(_text)
    _texts = field_validator(
        "mother_name_arabic",
        "full_name_english",
        "national_id",
        "gender",
        "nationality",
        "email",
        "mobile_number",
        "phone_number",
        "relationship_to_head",
        mode="before",
    )(_optional_text)
    _year = field_validator("year_of_birth", mode="before")(_parse_int)
    _refs = field_validator("original_household_id", mode="before")(_parse_uuid)


class HouseholdRow(StagingRowModel):
    original_property_unit_id: uuid.UUID | None = Field(default=None, alias="property_unit_id")
    original_head_of_household_person_id: uuid.UUID | None = Field(
        default=None, alias="head_of_household_person_id"
    )
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

    _refs = field_validator(
        "original_property_unit_id", "original_head_of_household_person_id", mode="before"
    )(_parse_uuid)
    _name = field_validator("head_of_household_name", mode="before")(_text)
    _counts = field_validator(
        "household_size",
        "male_count",
        "female_count",
        "male_child_count",
        "female_child_count",
        "male_elderly_count",
        "female_elderly_count",
        "male_disabled_count",
        "female_disabled_count",
        mode="before",
    )(_int_or_zero)
    _flags = field_validator("is_female_headed", "is_displaced", mode="before")(_flag)
    _notes = field_validator("notes", mode="before")(_optional_text)


class PersonPropertyRelationRow(StagingRowModel):
    original_person_id: uuid.UUID | None = Field(default=None, alias="person_id")
    original_property_unit_id: uuid.UUID | None = Field(default=None, alias="property_unit_id")
    relation_type: int | None = None
    relation_type_other_desc: str | None = None
    contract_type: str | None = None
    ownership_share: float | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    notes: str | None = None

    _refs = field_validator("original_person_id", "original_property_unit_id", mode="before")(
        _parse_uuid
    )
    _relation_type = field_validator("relation_type", mode="before")(_parse_int)
    _texts = field_validator(
        "relation_type_other_desc", "contract_type", "notes", mode="before"
    )(_optional_text)
    _share = field_validator("ownership_share", mode="before")(_parse_float)
    _dates = field_validator("start_date", "end_date", mode="before")(_parse_datetime)


class ClaimRow(StagingRowModel):
    original_property_unit_id: uuid.UUID | None = Field(default=None, alias="property_unit_id")
    original_primary_claimant_id: uuid.UUID | None = Field(
        default=None, alias="primary_claimant_id"
    )
    claim_type: str = ""
    claim_source: int | None = None
    priority: int = CASE_PRIORITY_NORMAL
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

    _refs = field_validator(
        "original_property_unit_id", "original_primary_claimant_id", mode="before"
    )(_parse_uuid)
    _claim_type = field_validator("claim_type", mode="before")(_text)
    _ints = field_validator("claim_source", "lifecycle_stage", "status", mode="before")(
        _parse_int
    )
    _texts = field_validator(
        "tenure_contract_type",
        "claim_description",
        "legal_basis",
        "supporting_narrative",
        "processing_notes",
        mode="before",
    )(_optional_text)
    _share = field_validator("ownership_share", mode="before")(_parse_float)
    _dates = field_validator("tenure_start_date", "tenure_end_date", mode="before")(
        _parse_datetime
    )

    @field_validator("priority", mode="before")
    @classmethod
    def _default_priority(cls, value: object) -> int:
        parsed = _parse_int(value)
        return CASE_PRIORITY_NORMAL if parsed is None else parsed


class SurveyRow(StagingRowModel):
    original_building_id: uuid.UUID | None = Field(default=None, alias="building_id")
    original_property_unit_id: uuid.UUID | None = Field(default=None, alias="property_unit_id")
    original_field_collector_id: uuid.UUID | None = Field(
        default=None, alias="field_collector_id"
    )
    survey_date: datetime = Field(default_factory=utcnow)
    reference_code: str | None = None
    survey_type: str | None = Field(default=None, alias="type")
    source: str | None = None
    status: str | None = None
    gps_coordinates: str | None = None
    interviewee_name: str | None = None
    interviewee_relationship: str | None = None
    notes: str | None = None

    _refs = field_validator(
        "original_building_id",
        "original_property_unit_id",
        "original_field_collector_id",
        mode="before",
    )(_parse_uuid)
    _survey_date = field_validator("survey_date", mode="before")(_datetime_or_now)
    _texts = field_validator(
        "reference_code",
        "survey_type",
        "source",
        "status",
        "gps_coordinates",
        "interviewee_name",
        "interviewee_relationship",
        "notes",
        mode="before",
    )(_optional_text)


class EvidenceRow(StagingRowModel):
    evidence_type: int | None = None
    description: str | None = None
    original_file_name: str = ""
    file_path: str | None = None
    file_size_bytes: int = 0
    mime_type: str | None = None
    file_hash: str | None = None
    original_person_id: uuid.UUID | None = Field(default=None, alias="person_id")
    original_person_property_relation_id: uuid.UUID | None = Field(
        default=None, alias="person_property_relation_id"
    )
    original_claim_id: uuid.UUID | None = Field(default=None, alias="claim_id")
    document_issued_date: datetime | None = None
    document_expiry_date: datetime | None = None
    issuing_authority: str | None = None
    document_reference_number: str | None = None
    notes: str | None = None

    _evidence_type = field_validator("evidence_type", mode="before")(_parse_int)
    _file_name = field_validator("original_file_name", mode="before")(_text)
    _size = field_validator("file_size_bytes", mode="before")(_int_or_zero)
    _texts = field_validator(
        "description",
        "file_path",
        "mime_type",
        "file_hash",
        "issuing_authority",
        "document_reference_number",
        "notes",
        mode="before",
    )(_optional_text)
    _refs = field_validator(
        "original_person_id",
        "original_person_property_relation_id",
        "original_claim_id",
        mode="before",
    )(_parse_uuid)
    _dates = field_validator("document_issued_date", "document_expiry_date", mode="before")(
        _parse_datetime
    )
