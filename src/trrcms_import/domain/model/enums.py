"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class ImportStatus(StrEnum):
    UPLOADING = "Uploading"
    VALIDATING = "Validating"
    VALIDATION_FAILED = "ValidationFailed"
    STAGING = "Staging"
    REVIEWING_CONFLICTS = "ReviewingConflicts"
    READY_TO_COMMIT = "ReadyToCommit"
    COMMITTING = "Committing"
    COMMITTED = "Committed"
    PARTIALLY_COMMITTED = "PartiallyCommitted"
    FAILED = "Failed"
    QUARANTINED = "Quarantined"
    CANCELLED = "Cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_IMPORT_STATUSES


_TERMINAL_IMPORT_STATUSES = frozenset(
    {
        ImportStatus.COMMITTED,
        ImportStatus.PARTIALLY_COMMITTED,
        ImportStatus.CANCELLED,
        ImportStatus.QUARANTINED,
    }
)


class ImportMethod(StrEnum):
    MANUAL_UPLOAD = "ManualUpload"
    NETWORK_SYNC = "NetworkSync"
    CLI = "Cli"


class StagingValidationStatus(StrEnum):
    PENDING = "Pending"
    VALID = "Valid"
    WARNING = "Warning"
    INVALID = "Invalid"
    SKIPPED = "Skipped"

    @property
    def is_committable(self) -> bool:
        return self in {StagingValidationStatus.VALID, StagingValidationStatus.WARNING}


class StagingKind(StrEnum):
    """The eight entity kinds carried by a package, in dependency order."""

    BUILDING = "Building"
    PROPERTY_UNIT = "PropertyUnit"
    PERSON = "Person"
    HOUSEHOLD = "Household"
    PERSON_PROPERTY_RELATION = "PersonPropertyRelation"
    CLAIM = "Claim"
    SURVEY = "Survey"
    EVIDENCE = "Evidence"


class ConflictType(StrEnum):
    """Duplicate conflict tags.

    Each family has a cross-batch tag and a ``_WithinBatch`` variant. Filtering by the
    family tag must match both, see ``matching``.
    """

    PERSON_DUPLICATE = "PersonDuplicate"
    PERSON_DUPLICATE_WITHIN_BATCH = "PersonDuplicate_WithinBatch"
    PROPERTY_DUPLICATE = "PropertyDuplicate"
    PROPERTY_DUPLICATE_WITHIN_BATCH = "PropertyDuplicate_WithinBatch"

    @property
    def is_within_batch(self) -> bool:
        return self.value.endswith("_WithinBatch")

    @property
    def family(self) -> ConflictType:
        return ConflictType(self.value.removesuffix("_WithinBatch"))

    @classmethod
    def matching(cls, prefix: str) -> tuple[ConflictType, ...]:
        """Return every tag whose value starts with ``prefix``."""

        return tuple(member for member in cls if member.value.startswith(prefix))


class ConflictStatus(StrEnum):
    PENDING_REVIEW = "PendingReview"
    RESOLVED = "Resolved"
    IGNORED = "Ignored"


class ResolutionAction(StrEnum):
    MERGE = "Merge"
    KEEP_SEPARATE = "KeepSeparate"
    ESCALATE = "Escalate"


class ConfidenceLevel(StrEnum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class ConflictPriority(StrEnum):
    LOW = "Low"
    NORMAL = "Normal"
    HIGH = "High"


class VocabularyCompatibilityLevel(StrEnum):
    IDENTICAL = "Identical"
    PATCH_DIFFERENCE = "PatchDifference"
    MINOR_DIFFERENCE = "MinorDifference"
    MAJOR_DIFFERENCE = "MajorDifference"
    UNKNOWN_DOMAIN = "UnknownDomain"


class VocabularyDomain(StrEnum):
    BUILDING_TYPE = "building_type"
    BUILDING_STATUS = "building_status"
    PROPERTY_UNIT_TYPE = "property_unit_type"
    PROPERTY_UNIT_STATUS = "property_unit_status"
    RELATION_TYPE = "relation_type"
    EVIDENCE_TYPE = "evidence_type"
    CLAIM_SOURCE = "claim_source"
    CASE_PRIORITY = "case_priority"
    DAMAGE_LEVEL = "damage_level"
