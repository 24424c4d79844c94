"""Results handed back to callers of the import workflows."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any
from uuid import UUID

if TYPE_CHECKING:
    from datetime import datetime

    from trrcms_import.domain.model import ConflictResolution, ImportPackage, ImportStatus


@dataclass(slots=True)
class UploadResult:
    package_id: UUID
    message: str
    import_package_id: UUID | None = None
    package_number: str | None = None
    status: ImportStatus | None = None
    is_duplicate: bool = False
    is_quarantined: bool = False
    total_records: int = 0
    errors: list[str] = field(default_factory=list[str])
    warnings: list[str] = field(default_factory=list[str])

    @classmethod
    def duplicate(cls, existing: ImportPackage) -> UploadResult:
        return cls(
            package_id=existing.package_id,
            import_package_id=existing.id,
            package_number=existing.package_number,
            status=existing.status,
            is_duplicate=True,
            total_records=existing.total_record_count,
            message=(
                f"Package already imported with status: {existing.status}. "
                f"Existing package ID: {existing.id}"
            ),
        )


@dataclass(slots=True)
class LevelSummary:
    validator_name: str
    level: int
    error_count: int
    warning_count: int
    records_checked: int
    failed: bool = False
    failure_message: str | None = None


@dataclass(slots=True)
class StagingSummary:
    import_package_id: UUID
    package_number: str
    status: ImportStatus
    staged_counts: dict[str, int] = field(default_factory=dict[str, int])
    attachment_files_extracted: int = 0
    attachment_bytes_extracted: int = 0
    total_records: int = 0
    valid_count: int = 0
    warning_count: int = 0
    invalid_count: int = 0
    skipped_count: int = 0
    validation_error_count: int = 0
    validation_warning_count: int = 0
    levels: list[LevelSummary] = field(default_factory=list[LevelSummary])
    duration_ms: float = 0.0


@dataclass(slots=True)
class DetectionSummary:
    import_package_id: UUID
    status: ImportStatus
    persons_scanned: int = 0
    buildings_scanned: int = 0
    person_duplicates: int = 0
    property_duplicates: int = 0
    superseded_conflicts: int = 0
    conflict_ids: list[UUID] = field(default_factory=list[UUID])
    duration_ms: float = 0.0

    @property
    def total_conflicts(self) -> int:
        return self.person_duplicates + self.property_duplicates


@dataclass(slots=True)
class ConflictDetail:
    id: UUID
    conflict_number: str
    conflict_type: str
    entity_type: str
    status: str
    first_entity_id: UUID
    second_entity_id: UUID
    first_entity_identifier: str | None
    second_entity_identifier: str | None
    import_package_id: UUID | None
    similarity_score: float
    confidence_level: str
    priority: str
    conflict_description: str
    matching_criteria: dict[str, Any]
    detected_date: datetime
    is_escalated: bool
    is_overdue: bool
    review_attempt_count: int
    review_history: list[dict[str, Any]]
    resolution_action: str | None = None
    resolution_reason: str | None = None
    merged_entity_id: UUID | None = None
    discarded_entity_id: UUID | None = None
    merge_mapping: str | None = None
    resolved_date: datetime | None = None

    @classmethod
    def from_conflict(cls, conflict: ConflictResolution) -> ConflictDetail:
        return cls(
            id=conflict.id,
            conflict_number=conflict.conflict_number,
            conflict_type=conflict.conflict_type,
            entity_type=conflict.entity_type,
            status=conflict.status,
            first_entity_id=conflict.first_entity_id,
            second_entity_id=conflict.second_entity_id,
            first_entity_identifier=conflict.first_entity_identifier,
            second_entity_identifier=conflict.second_entity_identifier,
            import_package_id=conflict.import_package_id,
            similarity_score=conflict.similarity_score,
            confidence_level=conflict.confidence_level,
            priority=conflict.priority,
            conflict_description=conflict.conflict_description,
            matching_criteria=dict(conflict.matching_criteria),
            detected_date=conflict.detected_date,
            is_escalated=conflict.is_escalated,
            is_overdue=conflict.is_overdue(),
            review_attempt_count=conflict.review_attempt_count,
            review_history=list(conflict.review_history),
            resolution_action=conflict.resolution_action,
            resolution_reason=conflict.resolution_reason,
            merged_entity_id=conflict.merged_entity_id,
            discarded_entity_id=conflict.discarded_entity_id,
            merge_mapping=conflict.merge_mapping,
            resolved_date=conflict.resolved_date,
        )


@dataclass(slots=True)
class ApprovalResult:
    import_package_id: UUID
    status: ImportStatus
    approved_by_kind: dict[str, int] = field(default_factory=dict[str, int])

    @property
    def total_approved(self) -> int:
        return sum(self.approved_by_kind.values())


@dataclass(slots=True)
class CommitResult:
    import_package_id: UUID
    status: ImportStatus
    committed: int = 0
    failed: int = 0
    skipped: int = 0
    committed_by_kind: dict[str, int] = field(default_factory=dict[str, int])
    failures: list[str] = field(default_factory=list[str])
    archive_path: str | None = None
    duration_ms: float = 0.0


@dataclass(slots=True)
class PackageStatus:
    import_package_id: UUID
    package_id: UUID
    package_number: str
    file_name: str
    status: ImportStatus
    is_terminal: bool
    manifest_counts: dict[str, int]
    staging_counts: dict[str, dict[str, int]]
    pending_conflicts: int
    conflict_count: int
    validation_error_count: int
    validation_warning_count: int
    successful_import_count: int
    failed_import_count: int
    skipped_record_count: int
    success_rate: float
    error_message: str | None = None
    processing_notes: str | None = None
    archive_path: str | None = None
    imported_date: datetime | None = None
    committed_date: datetime | None = None
