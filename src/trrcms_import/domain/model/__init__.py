"""Public domain model surface."""

from __future__ import annotations

from trrcms_import.domain.model.base import (
    NIL_UUID,
    AuditedEntity,
    Entity,
    SoftDeletableEntity,
    new_id,
    utcnow,
)
from trrcms_import.domain.model.conflict import (
    ConflictResolution,
    determine_priority,
    format_conflict_number,
)
from trrcms_import.domain.model.enums import (
    ConfidenceLevel,
    ConflictPriority,
    ConflictStatus,
    ConflictType,
    ImportMethod,
    ImportStatus,
    ResolutionAction,
    StagingKind,
    StagingValidationStatus,
    VocabularyCompatibilityLevel,
    VocabularyDomain,
)
from trrcms_import.domain.model.import_package import (
    ImportPackage,
    can_transition,
    format_package_number,
)
from trrcms_import.domain.model.production import (
    Building,
    Claim,
    Evidence,
    Household,
    Person,
    PersonPropertyRelation,
    ProductionEntity,
    PropertyUnit,
    Survey,
)
from trrcms_import.domain.model.staging import (
    STAGING_ENTITY_TYPES,
    StagingBuilding,
    StagingClaim,
    StagingEntity,
    StagingEvidence,
    StagingHousehold,
    StagingPerson,
    StagingPersonPropertyRelation,
    StagingPropertyUnit,
    StagingSurvey,
)

__all__ = [
    # base
    "NIL_UUID",
    "AuditedEntity",
    "Entity",
    "SoftDeletableEntity",
    "new_id",
    "utcnow",
    # enums
    "ConfidenceLevel",
    "ConflictPriority",
    "ConflictStatus",
    "ConflictType",
    "ImportMethod",
    "ImportStatus",
    "ResolutionAction",
    "StagingKind",
    "StagingValidationStatus",
    "VocabularyCompatibilityLevel",
    "VocabularyDomain",
    # aggregates
    "ConflictResolution",
    "ImportPackage",
    "can_transition",
    "determine_priority",
    "format_conflict_number",
    "format_package_number",
    # staging
    "STAGING_ENTITY_TYPES",
    "StagingBuilding",
    "StagingClaim",
    "StagingEntity",
    "StagingEvidence",
    "StagingHousehold",
    "StagingPerson",
    "StagingPersonPropertyRelation",
    "StagingPropertyUnit",
    "StagingSurvey",
    # production
    "Building",
    "Claim",
    "Evidence",
    "Household",
    "Person",
    "PersonPropertyRelation",
    "ProductionEntity",
    "PropertyUnit",
    "Survey",
]
