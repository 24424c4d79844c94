"""SQLAlchemy mapping metadata for the import pipeline model."""

from __future__ import annotations

import json
import logging
import uuid
from datetime import UTC, datetime
from enum import StrEnum
from functools import cache
from typing import TYPE_CHECKING, Any, Final, cast

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Dialect,
    Enum,
    Float,
    Index,
    Integer,
    String,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
    Uuid,
    orm,
)
from sqlalchemy.orm import configure_mappers

from trrcms_import.domain.model import (
    Building,
    Claim,
    ConfidenceLevel,
    ConflictPriority,
    ConflictResolution,
    ConflictStatus,
    ConflictType,
    Evidence,
    Household,
    ImportMethod,
    ImportPackage,
    ImportStatus,
    Person,
    PersonPropertyRelation,
    PropertyUnit,
    ResolutionAction,
    StagingBuilding,
    StagingClaim,
    StagingEntity,
    StagingEvidence,
    StagingHousehold,
    StagingKind,
    StagingPerson,
    StagingPersonPropertyRelation,
    StagingPropertyUnit,
    StagingSurvey,
    StagingValidationStatus,
    Survey,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


class JSONList(TypeDecorator[list[Any]]):
    """A list stored as JSON text. Domain code reassigns lists instead of mutating them."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: list[Any] | None, dialect: Dialect) -> str:
        _ = dialect
        return json.dumps(list(value or []), ensure_ascii=False)

    def process_result_value(self, value: str | None, dialect: Dialect) -> list[Any]:
        _ = dialect
        if not value:
            return []
        loaded = json.loads(value)
        return cast("list[Any]", loaded) if isinstance(loaded, list) else []


class JSONDict(TypeDecorator[dict[str, Any]]):
    impl = Text
    cache_ok = True

    def process_bind_param(self, value: dict[str, Any] | None, dialect: Dialect) -> str:
        _ = dialect
        return json.dumps(dict(value or {}), ensure_ascii=False, sort_keys=True)

    def process_result_value(self, value: str | None, dialect: Dialect) -> dict[str, Any]:
        _ = dialect
        if not value:
            return {}
        loaded = json.loads(value)
        return cast("dict[str, Any]", loaded) if isinstance(loaded, dict) else {}


def _enum_values(enum_cls: type[StrEnum]) -> list[str]:
    return [member.value for member in enum_cls]


def _enum(enum_cls: type[StrEnum]) -> Enum:
    """Store the PascalCase value rather than the member name."""

    return Enum(enum_cls, native_enum=False, values_callable=_enum_values, length=40)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_N_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# Pipeline tables -------------------------------------------------------------

import_package_table = Table(
    "import_package",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("package_id", UUIDColumnType, nullable=False, unique=True),
    Column("package_number", String(20), nullable=False, unique=True),
    Column("file_name", String(255), nullable=False),
    Column("file_size_bytes", Integer, nullable=False, default=0),
    Column("storage_key", String(255), nullable=True),
    Column("checksum", String(64), nullable=False, default=""),
    Column("package_created_date", UTCDateTime, nullable=False),
    Column("package_exported_date", UTCDateTime, nullable=False),
    Column("exported_by_user_id", UUIDColumnType, nullable=True),
    Column("device_id", String(100), nullable=True),
    Column("app_version", String(50), nullable=True),
    Column("status", _enum(ImportStatus), nullable=False, index=True),
    Column("import_method", _enum(ImportMethod), nullable=True),
    Column("imported_date", UTCDateTime, nullable=True),
    Column("imported_by_user_id", UUIDColumnType, nullable=True),
    Column("is_checksum_valid", Boolean, nullable=False, default=False),
    Column("is_signature_valid", Boolean, nullable=False, default=False),
    Column("digital_signature", Text, nullable=True),
    Column("is_schema_valid", Boolean, nullable=False, default=False),
    Column("schema_version", String(20), nullable=True),
    Column("vocabulary_versions", Text, nullable=True),
    Column("is_vocabulary_compatible", Boolean, nullable=False, default=True),
    Column("vocabulary_compatibility_issues", Text, nullable=True),
    Column("survey_count", Integer, nullable=False, default=0),
    Column("building_count", Integer, nullable=False, default=0),
    Column("property_unit_count", Integer, nullable=False, default=0),
    Column("person_count", Integer, nullable=False, default=0),
    Column("household_count", Integer, nullable=False, default=0),
    Column("relation_count", Integer, nullable=False, default=0),
    Column("claim_count", Integer, nullable=False, default=0),
    Column("document_count", Integer, nullable=False, default=0),
    Column("total_attachment_size_bytes", Integer, nullable=False, default=0),
    Column("validation_started_date", UTCDateTime, nullable=True),
    Column("validation_completed_date", UTCDateTime, nullable=True),
    Column("validation_errors", Text, nullable=True),
    Column("validation_warnings", Text, nullable=True),
    Column("validation_error_count", Integer, nullable=False, default=0),
    Column("validation_warning_count", Integer, nullable=False, default=0),
    Column("person_duplicate_count", Integer, nullable=False, default=0),
    Column("property_duplicate_count", Integer, nullable=False, default=0),
    Column("conflict_count", Integer, nullable=False, default=0),
    Column("are_conflicts_resolved", Boolean, nullable=False, default=False),
    Column("committed_date", UTCDateTime, nullable=True),
    Column("committed_by_user_id", UUIDColumnType, nullable=True),
    Column("successful_import_count", Integer, nullable=False, default=0),
    Column("failed_import_count", Integer, nullable=False, default=0),
    Column("skipped_record_count", Integer, nullable=False, default=0),
    Column("import_summary", Text, nullable=True),
    Column("error_message", Text, nullable=True),
    Column("error_log", Text, nullable=True),
    Column("archive_path", String(500), nullable=True),
    Column("is_archived", Boolean, nullable=False, default=False),
    Column("archived_date", UTCDateTime, nullable=True),
    Column("processing_notes", Text, nullable=True),
    Column("created_at", UTCDateTime, nullable=False),
    Column("created_by", UUIDColumnType, nullable=True),
    Column("modified_at", UTCDateTime, nullable=True),
    Column("modified_by", UUIDColumnType, nullable=True),
    Column("version_id", Integer, nullable=False),
)

conflict_resolution_table = Table(
    "conflict_resolution",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("conflict_number", String(20), nullable=False, unique=True),
    Column("conflict_type", _enum(ConflictType), nullable=False),
    Column("entity_type", _enum(StagingKind), nullable=False),
    Column("first_entity_id", UUIDColumnType, nullable=False),
    Column("second_entity_id", UUIDColumnType, nullable=False),
    Column("first_entity_identifier", String(200), nullable=True),
    Column("second_entity_identifier", String(200), nullable=True),
    Column("import_package_id", UUIDColumnType, nullable=True, index=True),
    Column("similarity_score", Float, nullable=False, default=0.0),
    Column("confidence_level", _enum(ConfidenceLevel), nullable=False),
    Column("conflict_description", Text, nullable=False, default=""),
    Column("matching_criteria", JSONDict, nullable=False),
    Column("data_comparison", JSONDict, nullable=False),
    Column("status", _enum(ConflictStatus), nullable=False, index=True),
    Column("resolution_action", _enum(ResolutionAction), nullable=True),
    Column("detected_date", UTCDateTime, nullable=False),
    Column("detected_by_user_id", UUIDColumnType, nullable=True),
    Column("assigned_date", UTCDateTime, nullable=True),
    Column("assigned_to_user_id", UUIDColumnType, nullable=True),
    Column("resolved_date", UTCDateTime, nullable=True),
    Column("resolved_by_user_id", UUIDColumnType, nullable=True),
    Column("resolution_reason", Text, nullable=True),
    Column("resolution_notes", Text, nullable=True),
    Column("merged_entity_id", UUIDColumnType, nullable=True),
    Column("discarded_entity_id", UUIDColumnType, nullable=True),
    Column("merge_mapping", Text, nullable=True),
    Column("priority", _enum(ConflictPriority), nullable=False),
    Column("target_resolution_hours", Integer, nullable=True),
    Column("is_auto_detected", Boolean, nullable=False, default=True),
    Column("is_auto_resolved", Boolean, nullable=False, default=False),
    Column("auto_resolution_rule", String(200), nullable=True),
    Column("is_escalated", Boolean, nullable=False, default=False),
    Column("escalation_reason", Text, nullable=True),
    Column("escalated_date", UTCDateTime, nullable=True),
    Column("escalated_by_user_id", UUIDColumnType, nullable=True),
    Column("review_attempt_count", Integer, nullable=False, default=0),
    Column("review_history", JSONList, nullable=False),
    Column("created_at", UTCDateTime, nullable=False),
    Column("created_by", UUIDColumnType, nullable=True),
    Column("modified_at", UTCDateTime, nullable=True),
    Column("modified_by", UUIDColumnType, nullable=True),
    Column("version_id", Integer, nullable=False),
    Index("ix_conflict_resolution_pair", "first_entity_id", "second_entity_id"),
)

# Staging tables --------------------------------------------------------------


def _staging_table(name: str, *columns: Column[Any]) -> Table:
    """Common staging columns plus the per-kind business columns.

    ``(import_package_id, original_entity_id)`` is unique; parents are plain GUIDs.
    """

    return Table(
        name,
        mapper_registry.metadata,
        Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
        Column("import_package_id", UUIDColumnType, nullable=False, index=True),
        Column("original_entity_id", UUIDColumnType, nullable=False),
        Column("validation_status", _enum(StagingValidationStatus), nullable=False),
        Column("validation_errors", JSONList, nullable=False),
        Column("validation_warnings", JSONList, nullable=False),
        Column("is_approved_for_commit", Boolean, nullable=False, default=False),
        Column("committed_entity_id", UUIDColumnType, nullable=True),
        Column("staged_at_utc", UTCDateTime, nullable=False),
        *columns,
        UniqueConstraint("import_package_id", "original_entity_id"),
    )


staging_building_table = _staging_table(
    "staging_building",
    Column("governorate_code", String(2), nullable=False, default=""),
    Column("district_code", String(2), nullable=False, default=""),
    Column("sub_district_code", String(2), nullable=False, default=""),
    Column("community_code", String(3), nullable=False, default=""),
    Column("neighborhood_code", String(3), nullable=False, default=""),
    Column("building_number", String(5), nullable=False, default=""),
    Column("governorate_name", String(100), nullable=True),
    Column("district_name", String(100), nullable=True),
    Column("sub_district_name", String(100), nullable=True),
    Column("community_name", String(100), nullable=True),
    Column("neighborhood_name", String(100), nullable=True),
    Column("building_id", String(50), nullable=True),
    Column("building_type", Integer, nullable=True),
    Column("building_status", Integer, nullable=True),
    Column("number_of_property_units", Integer, nullable=False, default=0),
    Column("number_of_apartments", Integer, nullable=False, default=0),
    Column("number_of_shops", Integer, nullable=False, default=0),
    Column("number_of_floors", Integer, nullable=True),
    Column("year_of_construction", Integer, nullable=True),
    Column("damage_level", Integer, nullable=True),
    Column("latitude", Float, nullable=True),
    Column("longitude", Float, nullable=True),
    Column("building_geometry_wkt", Text, nullable=True),
    Column("location_description", Text, nullable=True),
    Column("notes", Text, nullable=True),
)

staging_property_unit_table = _staging_table(
    "staging_property_unit",
    Column("original_building_id", UUIDColumnType, nullable=True),
    Column("unit_identifier", String(50), nullable=False, default=""),
    Column("unit_type", Integer, nullable=True),
    Column("status", Integer, nullable=True),
    Column("floor_number", Integer, nullable=True),
    Column("number_of_rooms", Integer, nullable=True),
    Column("area_square_meters", Float, nullable=True),
    Column("estimated_area_sqm", Float, nullable=True),
    Column("description", Text, nullable=True),
    Column("occupancy_status", String(50), nullable=True),
    Column("occupancy_type", String(50), nullable=True),
    Column("occupancy_nature", String(50), nullable=True),
    Column("damage_level", Integer, nullable=True),
)

staging_person_table = _staging_table(
    "staging_person",
    Column("family_name_arabic", String(100), nullable=False, default=""),
    Column("first_name_arabic", String(100), nullable=False, default=""),
    Column("father_name_arabic", String(100), nullable=False, default=""),
    Column("mother_name_arabic", String(100), nullable=True),
    Column("full_name_english", String(200), nullable=True),
    Column("national_id", String(50), nullable=True),
    Column("year_of_birth", Integer, nullable=True),
    Column("gender", String(20), nullable=True),
    Column("nationality", String(50), nullable=True),
    Column("email", String(200), nullable=True),
    Column("mobile_number", String(30), nullable=True),
    Column("phone_number", String(30), nullable=True),
    Column("original_household_id", UUIDColumnType, nullable=True),
    Column("relationship_to_head", String(50), nullable=True),
)

staging_household_table = _staging_table(
    "staging_household",
    Column("original_property_unit_id", UUIDColumnType, nullable=True),
    Column("original_head_of_household_person_id", UUIDColumnType, nullable=True),
    Column("head_of_household_name", String(200), nullable=False, default=""),
    Column("household_size", Integer, nullable=False, default=0),
    Column("male_count", Integer, nullable=False, default=0),
    Column("female_count", Integer, nullable=False, default=0),
    Column("male_child_count", Integer, nullable=False, default=0),
    Column("female_child_count", Integer, nullable=False, default=0),
    Column("male_elderly_count", Integer, nullable=False, default=0),
    Column("female_elderly_count", Integer, nullable=False, default=0),
    Column("male_disabled_count", Integer, nullable=False, default=0),
    Column("female_disabled_count", Integer, nullable=False, default=0),
    Column("is_female_headed", Boolean, nullable=False, default=False),
    Column("is_displaced", Boolean, nullable=False, default=False),
    Column("notes", Text, nullable=True),
)

staging_person_property_relation_table = _staging_table(
    "staging_person_property_relation",
    Column("original_person_id", UUIDColumnType, nullable=True),
    Column("original_property_unit_id", UUIDColumnType, nullable=True),
    Column("relation_type", Integer, nullable=True),
    Column("relation_type_other_desc", String(200), nullable=True),
    Column("contract_type", String(50), nullable=True),
    Column("ownership_share", Float, nullable=True),
    Column("start_date", UTCDateTime, nullable=True),
    Column("end_date", UTCDateTime, nullable=True),
    Column("notes", Text, nullable=True),
)

staging_claim_table = _staging_table(
    "staging_claim",
    Column("original_property_unit_id", UUIDColumnType, nullable=True),
    Column("original_primary_claimant_id", UUIDColumnType, nullable=True),
    Column("claim_type", String(50), nullable=False, default=""),
    Column("claim_source", Integer, nullable=True),
    Column("priority", Integer, nullable=True),
    Column("lifecycle_stage", Integer, nullable=True),
    Column("status", Integer, nullable=True),
    Column("tenure_contract_type", String(50), nullable=True),
    Column("ownership_share", Float, nullable=True),
    Column("tenure_start_date", UTCDateTime, nullable=True),
    Column("tenure_end_date", UTCDateTime, nullable=True),
    Column("claim_description", Text, nullable=True),
    Column("legal_basis", Text, nullable=True),
    Column("supporting_narrative", Text, nullable=True),
    Column("processing_notes", Text, nullable=True),
)

staging_survey_table = _staging_table(
    "staging_survey",
    Column("original_building_id", UUIDColumnType, nullable=True),
    Column("original_property_unit_id", UUIDColumnType, nullable=True),
    Column("original_field_collector_id", UUIDColumnType, nullable=True),
    Column("survey_date", UTCDateTime, nullable=True),
    Column("reference_code", String(50), nullable=True),
    Column("survey_type", String(50), nullable=True),
    Column("source", String(50), nullable=True),
    Column("status", String(50), nullable=True),
    Column("gps_coordinates", String(100), nullable=True),
    Column("interviewee_name", String(200), nullable=True),
    Column("interviewee_relationship", String(100), nullable=True),
    Column("notes", Text, nullable=True),
)

staging_evidence_table = _staging_table(
    "staging_evidence",
    Column("evidence_type", Integer, nullable=True),
    Column("description", Text, nullable=True),
    Column("original_file_name", String(255), nullable=False, default=""),
    Column("file_path", String(500), nullable=True),
    Column("file_size_bytes", Integer, nullable=False, default=0),
    Column("mime_type", String(100), nullable=True),
    Column("file_hash", String(64), nullable=True),
    Column("original_person_id", UUIDColumnType, nullable=True),
    Column("original_person_property_relation_id", UUIDColumnType, nullable=True),
    Column("original_claim_id", UUIDColumnType, nullable=True),
    Column("document_issued_date", UTCDateTime, nullable=True),
    Column("document_expiry_date", UTCDateTime, nullable=True),
    Column("issuing_authority", String(200), nullable=True),
    Column("document_reference_number", String(100), nullable=True),
    Column("notes", Text, nullable=True),
)

STAGING_TABLES: Final[dict[StagingKind, Table]] = {
    StagingKind.BUILDING: staging_building_table,
    StagingKind.PROPERTY_UNIT: staging_property_unit_table,
    StagingKind.PERSON: staging_person_table,
    StagingKind.HOUSEHOLD: staging_household_table,
    StagingKind.PERSON_PROPERTY_RELATION: staging_person_property_relation_table,
    StagingKind.CLAIM: staging_claim_table,
    StagingKind.SURVEY: staging_survey_table,
    StagingKind.EVIDENCE: staging_evidence_table,
}

STAGING_CLASSES: Final[dict[StagingKind, type[StagingEntity]]] = {
    StagingKind.BUILDING: StagingBuilding,
    StagingKind.PROPERTY_UNIT: StagingPropertyUnit,
    StagingKind.PERSON: StagingPerson,
    StagingKind.HOUSEHOLD: StagingHousehold,
    StagingKind.PERSON_PROPERTY_RELATION: StagingPersonPropertyRelation,
    StagingKind.CLAIM: StagingClaim,
    StagingKind.SURVEY: StagingSurvey,
    StagingKind.EVIDENCE: StagingEvidence,
}

# Production tables -----------------------------------------------------------


def _production_table(name: str, *columns: Column[Any] | Index) -> Table:
    return Table(
        name,
        mapper_registry.metadata,
        Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
        *columns,
        Column("source_package_id", UUIDColumnType, nullable=True),
        Column("is_deleted", Boolean, nullable=False, default=False),
        Column("deleted_at", UTCDateTime, nullable=True),
        Column("deleted_by", UUIDColumnType, nullable=True),
        Column("created_at", UTCDateTime, nullable=False),
        Column("created_by", UUIDColumnType, nullable=True),
        Column("modified_at", UTCDateTime, nullable=True),
        Column("modified_by", UUIDColumnType, nullable=True),
    )


building_table = _production_table(
    "building",
    Column("building_code", String(17), nullable=False, index=True),
    Column("governorate_code", String(2), nullable=False, default=""),
    Column("district_code", String(2), nullable=False, default=""),
    Column("sub_district_code", String(2), nullable=False, default=""),
    Column("community_code", String(3), nullable=False, default=""),
    Column("neighborhood_code", String(3), nullable=False, default=""),
    Column("building_number", String(5), nullable=False, default=""),
    Column("building_id", String(50), nullable=True),
    Column("building_type", Integer, nullable=True),
    Column("building_status", Integer, nullable=True),
    Column("number_of_property_units", Integer, nullable=False, default=0),
    Column("number_of_apartments", Integer, nullable=False, default=0),
    Column("number_of_shops", Integer, nullable=False, default=0),
    Column("number_of_floors", Integer, nullable=True),
    Column("year_of_construction", Integer, nullable=True),
    Column("damage_level", Integer, nullable=True),
    Column("latitude", Float, nullable=True),
    Column("longitude", Float, nullable=True),
    Column("building_geometry_wkt", Text, nullable=True),
    Column("location_description", Text, nullable=True),
    Column("notes", Text, nullable=True),
    Index("ix_building_location", "latitude", "longitude"),
)

property_unit_table = _production_table(
    "property_unit",
    Column("building_id", UUIDColumnType, nullable=False, index=True),
    Column("unit_identifier", String(50), nullable=False),
    Column("unit_type", Integer, nullable=True),
    Column("status", Integer, nullable=True),
    Column("floor_number", Integer, nullable=True),
    Column("number_of_rooms", Integer, nullable=True),
    Column("area_square_meters", Float, nullable=True),
    Column("description", Text, nullable=True),
    Column("damage_level", Integer, nullable=True),
)

person_table = _production_table(
    "person",
    Column("family_name_arabic", String(100), nullable=False, index=True),
    Column("first_name_arabic", String(100), nullable=False),
    Column("father_name_arabic", String(100), nullable=False),
    Column("mother_name_arabic", String(100), nullable=True),
    Column("full_name_english", String(200), nullable=True),
    Column("national_id", String(50), nullable=True, index=True),
    Column("year_of_birth", Integer, nullable=True),
    Column("gender", String(20), nullable=True),
    Column("nationality", String(50), nullable=True),
    Column("email", String(200), nullable=True),
    Column("mobile_number", String(30), nullable=True),
    Column("phone_number", String(30), nullable=True),
    Column("household_id", UUIDColumnType, nullable=True),
    Column("relationship_to_head", String(50), nullable=True),
)

household_table = _production_table(
    "household",
    Column("property_unit_id", UUIDColumnType, nullable=False, index=True),
    Column("head_of_household_person_id", UUIDColumnType, nullable=True),
    Column("head_of_household_name", String(200), nullable=False, default=""),
    Column("household_size", Integer, nullable=False, default=0),
    Column("male_count", Integer, nullable=False, default=0),
    Column("female_count", Integer, nullable=False, default=0),
    Column("is_female_headed", Boolean, nullable=False, default=False),
    Column("is_displaced", Boolean, nullable=False, default=False),
    Column("notes", Text, nullable=True),
)

person_property_relation_table = _production_table(
    "person_property_relation",
    Column("person_id", UUIDColumnType, nullable=False, index=True),
    Column("property_unit_id", UUIDColumnType, nullable=False, index=True),
    Column("relation_type", Integer, nullable=True),
    Column("contract_type", String(50), nullable=True),
    Column("ownership_share", Float, nullable=True),
    Column("start_date", UTCDateTime, nullable=True),
    Column("end_date", UTCDateTime, nullable=True),
    Column("notes", Text, nullable=True),
)

claim_table = _production_table(
    "claim",
    Column("property_unit_id", UUIDColumnType, nullable=False, index=True),
    Column("primary_claimant_id", UUIDColumnType, nullable=True, index=True),
    Column("claim_type", String(50), nullable=False, default=""),
    Column("claim_source", Integer, nullable=True),
    Column("priority", Integer, nullable=True),
    Column("lifecycle_stage", Integer, nullable=True),
    Column("status", Integer, nullable=True),
    Column("claim_description", Text, nullable=True),
    Column("legal_basis", Text, nullable=True),
)

survey_table = _production_table(
    "survey",
    Column("building_id", UUIDColumnType, nullable=False, index=True),
    Column("property_unit_id", UUIDColumnType, nullable=True),
    Column("field_collector_id", UUIDColumnType, nullable=True),
    Column("survey_date", UTCDateTime, nullable=True),
    Column("reference_code", String(50), nullable=True),
    Column("survey_type", String(50), nullable=True),
    Column("notes", Text, nullable=True),
)

evidence_table = _production_table(
    "evidence",
    Column("evidence_type", Integer, nullable=True),
    Column("original_file_name", String(255), nullable=False, default=""),
    Column("file_path", String(500), nullable=True),
    Column("file_size_bytes", Integer, nullable=False, default=0),
    Column("mime_type", String(100), nullable=True),
    Column("file_hash", String(64), nullable=True),
    Column("description", Text, nullable=True),
    Column("person_id", UUIDColumnType, nullable=True),
    Column("person_property_relation_id", UUIDColumnType, nullable=True),
    Column("claim_id", UUIDColumnType, nullable=True),
)


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the domain model."""

    log.info("Starting SQLAlchemy mappers")

    mapper_registry.map_imperatively(
        ImportPackage,
        import_package_table,
        version_id_col=import_package_table.c.version_id,
    )
    mapper_registry.map_imperatively(
        ConflictResolution,
        conflict_resolution_table,
        version_id_col=conflict_resolution_table.c.version_id,
    )

    for kind, staging_cls in STAGING_CLASSES.items():
        mapper_registry.map_imperatively(staging_cls, STAGING_TABLES[kind])

    mapper_registry.map_imperatively(Building, building_table)
    mapper_registry.map_imperatively(PropertyUnit, property_unit_table)
    mapper_registry.map_imperatively(Person, person_table)
    mapper_registry.map_imperatively(Household, household_table)
    mapper_registry.map_imperatively(PersonPropertyRelation, person_property_relation_table)
    mapper_registry.map_imperatively(Claim, claim_table)
    mapper_registry.map_imperatively(Survey, survey_table)
    mapper_registry.map_imperatively(Evidence, evidence_table)

    configure_mappers()
    return mapper_registry


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the mapped metadata."""

    log.info("Creating all tables")
    mapper_registry.metadata.create_all(engine)
