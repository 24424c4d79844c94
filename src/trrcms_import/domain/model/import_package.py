"""The import package aggregate and its lifecycle.

Every status change goes through ``ImportPackage._transition`` which consults
``_TRANSITIONS``. Illegal moves raise ``InvalidStateTransitionError`` instead of
silently overwriting the status.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from trrcms_import.domain.errors import InvalidStateTransitionError

from .base import AuditedEntity, utcnow
from .enums import ImportMethod, ImportStatus

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID


CHECKSUM_FAILED_REASON = "SHA-256 checksum verification failed"
SIGNATURE_FAILED_REASON = "Digital signature verification failed"
VOCABULARY_INCOMPATIBLE_REASON = "Incompatible vocabulary versions (MAJOR version mismatch)"

_ACTIVE = frozenset(
    {
        ImportStatus.UPLOADING,
        ImportStatus.VALIDATING,
        ImportStatus.VALIDATION_FAILED,
        ImportStatus.STAGING,
        ImportStatus.REVIEWING_CONFLICTS,
        ImportStatus.READY_TO_COMMIT,
        ImportStatus.COMMITTING,
    }
)
_INTERRUPTIBLE = (_ACTIVE - {ImportStatus.COMMITTING}) | {ImportStatus.FAILED}

_FORWARD: dict[ImportStatus, frozenset[ImportStatus]] = {
    ImportStatus.UPLOADING: frozenset({ImportStatus.VALIDATING}),
    ImportStatus.VALIDATING: frozenset({ImportStatus.STAGING, ImportStatus.VALIDATION_FAILED}),
    ImportStatus.VALIDATION_FAILED: frozenset({ImportStatus.STAGING}),
    ImportStatus.STAGING: frozenset(
        {
            ImportStatus.STAGING,
            ImportStatus.VALIDATION_FAILED,
            ImportStatus.REVIEWING_CONFLICTS,
            ImportStatus.READY_TO_COMMIT,
        }
    ),
    ImportStatus.REVIEWING_CONFLICTS: frozenset(
        {
            ImportStatus.REVIEWING_CONFLICTS,
            ImportStatus.READY_TO_COMMIT,
            ImportStatus.STAGING,
        }
    ),
    ImportStatus.READY_TO_COMMIT: frozenset({ImportStatus.COMMITTING}),
    ImportStatus.COMMITTING: frozenset(
        {ImportStatus.COMMITTED, ImportStatus.PARTIALLY_COMMITTED}
    ),
    ImportStatus.FAILED: frozenset({ImportStatus.STAGING}),
    ImportStatus.QUARANTINED: frozenset({ImportStatus.CANCELLED}),
}


def _build_transitions() -> dict[ImportStatus, frozenset[ImportStatus]]:
    table: dict[ImportStatus, set[ImportStatus]] = {status: set() for status in ImportStatus}
    for source, targets in _FORWARD.items():
        table[source].update(targets)
    for source in _ACTIVE:
        table[source].add(ImportStatus.FAILED)
    for source in _INTERRUPTIBLE:
        table[source].update({ImportStatus.CANCELLED, ImportStatus.QUARANTINED})
    return {source: frozenset(targets) for source, targets in table.items()}


_TRANSITIONS = _build_transitions()


def can_transition(current: ImportStatus, target: ImportStatus) -> bool:
    return target in _TRANSITIONS[current]


@dataclass(eq=False, kw_only=True)
class ImportPackage(AuditedEntity):
    """A received ``.uhc`` file and everything the pipeline learned about it."""

    package_id: UUID
    package_number: str
    file_name: str
    file_size_bytes: int = 0
    storage_key: str | None = None
    checksum: str = ""
    package_created_date: datetime = field(default_factory=utcnow)
    package_exported_date: datetime = field(default_factory=utcnow)
    exported_by_user_id: UUID | None = None
    device_id: str | None = None
    app_version: str | None = None

    status: ImportStatus = ImportStatus.UPLOADING
    import_method: ImportMethod | None = None
    imported_date: datetime | None = None
    imported_by_user_id: UUID | None = None

    is_checksum_valid: bool = False
    is_signature_valid: bool = False
    digital_signature: str | None = None
    is_schema_valid: bool = False
    schema_version: str | None = None
    vocabulary_versions: str | None = None
    is_vocabulary_compatible: bool = True
    vocabulary_compatibility_issues: str | None = None

    survey_count: int = 0
    building_count: int = 0
    property_unit_count: int = 0
    person_count: int = 0
    household_count: int = 0
    relation_count: int = 0
    claim_count: int = 0
    document_count: int = 0
    total_attachment_size_bytes: int = 0

    validation_started_date: datetime | None = None
    validation_completed_date: datetime | None = None
    validation_errors: str | None = None
    validation_warnings: str | None = None
    validation_error_count: int = 0
    validation_warning_count: int = 0

    person_duplicate_count: int = 0
    property_duplicate_count: int = 0
    conflict_count: int = 0
    are_conflicts_resolved: bool = False

    committed_date: datetime | None = None
    committed_by_user_id: UUID | None = None
    successful_import_count: int = 0
    failed_import_count: int = 0
    skipped_record_count: int = 0
    import_summary: str | None = None

    error_message: str | None = None
    error_log: str | None = None
    archive_path: str | None = None
    is_archived: bool = False
    archived_date: datetime | None = None
    processing_notes: str | None = None

    version_id: int = 0

    @classmethod
    def create(
        cls,
        *,
        package_id: UUID,
        package_number: str,
        file_name: str,
        actor_id: UUID,
        **attributes: object,
    ) -> ImportPackage:
        package = cls(
            package_id=package_id,
            package_number=package_number,
            file_name=file_name,
            created_by=actor_id,
            **attributes,  # pyright: ignore[reportArgumentType]
        )
        return package

    # ---- lifecycle -------------------------------------------------------

    def _transition(self, target: ImportStatus, actor_id: UUID | None) -> None:
        if not can_transition(self.status, target):
            raise InvalidStateTransitionError("ImportPackage", self.status, target)
        self.status = target
        self.touch(actor_id)

    def mark_as_imported(
        self, actor_id: UUID, import_method: ImportMethod = ImportMethod.MANUAL_UPLOAD
    ) -> None:
        self._transition(ImportStatus.VALIDATING, actor_id)
        self.imported_date = utcnow()
        self.imported_by_user_id = actor_id
        self.import_method = import_method

    def set_security_validation(
        self,
        *,
        is_checksum_valid: bool,
        is_signature_valid: bool,
        digital_signature: str | None,
        actor_id: UUID,
    ) -> None:
        self.is_checksum_valid = is_checksum_valid
        self.is_signature_valid = is_signature_valid
        self.digital_signature = digital_signature
        self.touch(actor_id)
        if not is_checksum_valid:
            self.quarantine(CHECKSUM_FAILED_REASON, actor_id)
        elif not is_signature_valid:
            self.quarantine(SIGNATURE_FAILED_REASON, actor_id)

    def set_schema_validation(
        self, *, is_valid: bool, schema_version: str | None, actor_id: UUID
    ) -> None:
        self.is_schema_valid = is_valid
        self.schema_version = schema_version
        self.touch(actor_id)
        if not is_valid:
            self._transition(ImportStatus.VALIDATION_FAILED, actor_id)

    def set_vocabulary_compatibility(
        self,
        *,
        is_compatible: bool,
        versions_json: str | None,
        issues: str | None,
        actor_id: UUID,
    ) -> None:
        self.is_vocabulary_compatible = is_compatible
        self.vocabulary_versions = versions_json
        self.vocabulary_compatibility_issues = issues
        self.touch(actor_id)
        if not is_compatible and self.status is not ImportStatus.QUARANTINED:
            self.quarantine(VOCABULARY_INCOMPATIBLE_REASON, actor_id)

    def begin_staging(self, actor_id: UUID) -> None:
        self._transition(ImportStatus.STAGING, actor_id)
        self.validation_started_date = utcnow()
        self.error_message = None
        self.error_log = None

    def add_validation_results(
        self,
        *,
        errors_json: str | None,
        warnings_json: str | None,
        error_count: int,
        warning_count: int,
        actor_id: UUID,
    ) -> None:
        target = ImportStatus.VALIDATION_FAILED if error_count > 0 else ImportStatus.STAGING
        self._transition(target, actor_id)
        self.validation_errors = errors_json
        self.validation_warnings = warnings_json
        self.validation_error_count = error_count
        self.validation_warning_count = warning_count
        self.validation_completed_date = utcnow()

    def set_conflict_results(
        self, *, person_duplicates: int, property_duplicates: int, actor_id: UUID
    ) -> None:
        total = person_duplicates + property_duplicates
        if total > 0:
            self._transition(ImportStatus.REVIEWING_CONFLICTS, actor_id)
            self.are_conflicts_resolved = False
        else:
            self._transition(ImportStatus.READY_TO_COMMIT, actor_id)
            self.are_conflicts_resolved = True
        self.person_duplicate_count = person_duplicates
        self.property_duplicate_count = property_duplicates
        self.conflict_count = total

    def mark_conflicts_resolved(self, actor_id: UUID) -> None:
        if self.status not in {ImportStatus.REVIEWING_CONFLICTS, ImportStatus.STAGING}:
            raise InvalidStateTransitionError(
                "ImportPackage", self.status, ImportStatus.READY_TO_COMMIT
            )
        self._transition(ImportStatus.READY_TO_COMMIT, actor_id)
        self.are_conflicts_resolved = True

    def start_commit(self, actor_id: UUID) -> None:
        self._transition(ImportStatus.COMMITTING, actor_id)

    def _record_commit(self, success: int, failed: int, skipped: int, summary: str | None) -> None:
        self.successful_import_count = success
        self.failed_import_count = failed
        self.skipped_record_count = skipped
        self.import_summary = summary
        self.committed_date = utcnow()

    def mark_as_committed(
        self, *, success: int, failed: int, skipped: int, summary: str | None, actor_id: UUID
    ) -> None:
        self._transition(ImportStatus.COMMITTED, actor_id)
        self._record_commit(success, failed, skipped, summary)
        self.committed_by_user_id = actor_id

    def mark_as_partially_committed(
        self, *, success: int, failed: int, skipped: int, summary: str | None, actor_id: UUID
    ) -> None:
        self._transition(ImportStatus.PARTIALLY_COMMITTED, actor_id)
        self._record_commit(success, failed, skipped, summary)
        self.committed_by_user_id = actor_id

    def mark_as_failed(self, message: str, diagnostics: str | None, actor_id: UUID) -> None:
        self._transition(ImportStatus.FAILED, actor_id)
        self.error_message = message
        self.error_log = diagnostics

    def quarantine(self, reason: str, actor_id: UUID) -> None:
        self._transition(ImportStatus.QUARANTINED, actor_id)
        self.error_message = reason

    def cancel(self, reason: str, actor_id: UUID) -> None:
        self._transition(ImportStatus.CANCELLED, actor_id)
        self._append_note(f"[Cancelled]: {reason}")

    def archive(self, archive_path: str, actor_id: UUID) -> None:
        self.archive_path = archive_path
        self.is_archived = True
        self.archived_date = utcnow()
        self.touch(actor_id)

    def add_processing_notes(self, notes: str, actor_id: UUID) -> None:
        self._append_note(notes)
        self.touch(actor_id)

    def _append_note(self, note: str) -> None:
        if self.processing_notes and self.processing_notes.strip():
            self.processing_notes = f"{self.processing_notes}\n{note}"
        else:
            self.processing_notes = note

    # ---- queries ---------------------------------------------------------

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def total_record_count(self) -> int:
        return (
            self.survey_count
            + self.building_count
            + self.property_unit_count
            + self.person_count
            + self.household_count
            + self.relation_count
            + self.claim_count
            + self.document_count
        )

    def success_rate(self) -> float:
        total = self.successful_import_count + self.failed_import_count + self.skipped_record_count
        if total == 0:
            return 0.0
        return self.successful_import_count / total * 100


def format_package_number(year: int, sequence: int) -> str:
    return f"PKG-{year}-{sequence:04d}"
