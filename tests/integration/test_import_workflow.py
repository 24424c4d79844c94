"""End-to-end import runs against SQLite and the local filesystem stores."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from trrcms_import.domain.errors import InvalidStateError, NotFoundError
from trrcms_import.domain.model import (
    ConfidenceLevel,
    ConflictStatus,
    ConflictType,
    ImportStatus,
    StagingKind,
    StagingValidationStatus,
)
from trrcms_import.domain.workflow.upload import CHECKSUM_ERROR
from tests.helpers.uhc import sample_package

if TYPE_CHECKING:
    import uuid
    from pathlib import Path

    from trrcms_import.app import ImportApplication
    from tests.helpers.uhc import SamplePackage


def _import_through_commit(
    application: ImportApplication, sample: SamplePackage, actor_id: uuid.UUID
) -> uuid.UUID:
    upload = application.upload(sample.path, actor_id)
    assert upload.import_package_id is not None
    package_key = upload.import_package_id

    application.stage(package_key, actor_id)
    application.detect(package_key, actor_id)
    for conflict in application.conflicts(package_key, status=ConflictStatus.PENDING_REVIEW):
        application.merge(conflict.id, actor_id, master_entity_id=sample.person_id)
    application.approve(package_key, actor_id)
    application.commit(package_key, actor_id)
    return package_key


def test_full_import_merges_within_batch_duplicate(
    application: ImportApplication, sample: SamplePackage, actor_id: uuid.UUID
) -> None:
    upload = application.upload(sample.path, actor_id)

    assert upload.status is ImportStatus.VALIDATING
    assert not upload.is_quarantined
    assert upload.package_number is not None
    assert upload.package_number.startswith("PKG-")
    assert upload.total_records == sample.record_count == 9
    assert upload.import_package_id is not None
    package_key = upload.import_package_id

    staged = application.stage(package_key, actor_id)

    assert staged.status is ImportStatus.STAGING
    assert staged.total_records == 9
    assert staged.valid_count == 9
    assert staged.invalid_count == 0
    assert staged.validation_error_count == 0
    assert staged.attachment_files_extracted == 1
    assert staged.attachment_bytes_extracted == 4
    assert [level.level for level in staged.levels] == [1, 2, 3, 4, 5, 6, 7, 8]

    detection = application.detect(package_key, actor_id)

    assert detection.status is ImportStatus.REVIEWING_CONFLICTS
    assert detection.persons_scanned == 2
    assert detection.person_duplicates == 1
    assert detection.property_duplicates == 0
    (conflict,) = application.conflicts(package_key, conflict_type="PersonDuplicate")
    assert conflict.conflict_type == ConflictType.PERSON_DUPLICATE_WITHIN_BATCH
    assert conflict.similarity_score == 70.0
    assert conflict.confidence_level == ConfidenceLevel.MEDIUM
    assert {conflict.first_entity_id, conflict.second_entity_id} == {
        sample.person_id,
        sample.duplicate_person_id,
    }
    assert application.conflicts(package_key, conflict_type="PropertyDuplicate") == []

    merged = application.merge(
        conflict.id, actor_id, master_entity_id=sample.person_id, reason="same household head"
    )

    assert merged.status == ConflictStatus.RESOLVED
    assert merged.merged_entity_id == sample.person_id
    assert merged.discarded_entity_id == sample.duplicate_person_id
    assert merged.review_attempt_count == 1
    assert application.status(package_key).status is ImportStatus.READY_TO_COMMIT

    approval = application.approve(package_key, actor_id)

    assert approval.status is ImportStatus.READY_TO_COMMIT
    assert approval.total_approved == 8
    assert approval.approved_by_kind[str(StagingKind.PERSON)] == 1

    result = application.commit(package_key, actor_id)

    assert result.status is ImportStatus.COMMITTED
    assert result.committed == 8
    assert result.skipped == 1
    assert result.failed == 0
    assert result.archive_path is not None

    status = application.status(package_key)
    assert status.is_terminal
    assert status.successful_import_count == 8
    assert status.skipped_record_count == 1
    assert status.success_rate == 88.9
    assert status.archive_path == result.archive_path
    assert status.staging_counts[str(StagingKind.PERSON)] == {
        str(StagingValidationStatus.VALID): 1,
        str(StagingValidationStatus.SKIPPED): 1,
    }

    with application.unit_of_work_factory() as uow:
        repositories = uow.repositories
        staging = repositories.staging
        person_row = staging[StagingKind.PERSON].get_by_package_and_original_id(
            package_key, sample.person_id
        )
        relation_row = staging[StagingKind.PERSON_PROPERTY_RELATION].get_by_package_and_original_id(
            package_key, sample.relation_id
        )
        assert person_row is not None
        assert relation_row is not None
        assert person_row.committed_entity_id is not None
        assert relation_row.committed_entity_id is not None

        relation = repositories.relations.get_by_id(relation_row.committed_entity_id)
        person = repositories.persons.get_by_id(person_row.committed_entity_id)
        assert relation is not None
        assert person is not None
        assert relation.person_id == person.id
        assert person.household_id is not None
        assert person.national_id == sample.national_id


def test_uploading_the_same_package_twice(
    application: ImportApplication, sample: SamplePackage, actor_id: uuid.UUID
) -> None:
    first = application.upload(sample.path, actor_id)
    second = application.upload(sample.path, actor_id)

    assert second.is_duplicate
    assert second.import_package_id == first.import_package_id
    assert second.status is ImportStatus.VALIDATING
    assert "already imported" in second.message


def test_tampered_package_is_quarantined(
    application: ImportApplication, tmp_path: Path, actor_id: uuid.UUID
) -> None:
    tampered = sample_package(tmp_path / "tampered.uhc", checksum="0" * 64)

    upload = application.upload(tampered.path, actor_id)

    assert upload.is_quarantined
    assert upload.status is ImportStatus.QUARANTINED
    assert upload.errors == [CHECKSUM_ERROR]
    assert upload.import_package_id is not None
    with pytest.raises(InvalidStateError):
        application.stage(upload.import_package_id, actor_id)


def test_major_vocabulary_mismatch_is_quarantined(
    application: ImportApplication, tmp_path: Path, actor_id: uuid.UUID
) -> None:
    newer = sample_package(tmp_path / "newer.uhc", vocab_versions={"building_type": "2.0.0"})

    upload = application.upload(newer.path, actor_id)

    assert upload.status is ImportStatus.QUARANTINED
    assert len(upload.errors) == 1
    assert upload.errors[0].startswith("Vocabulary version incompatibility")
    assert "building_type" in upload.errors[0]


def test_minor_vocabulary_difference_only_warns(
    application: ImportApplication, tmp_path: Path, actor_id: uuid.UUID
) -> None:
    newer = sample_package(tmp_path / "minor.uhc", vocab_versions={"building_type": "1.1.0"})

    upload = application.upload(newer.path, actor_id)

    assert upload.status is ImportStatus.VALIDATING
    assert upload.errors == []
    assert len(upload.warnings) == 1


def test_cancelled_package_drops_staging_rows(
    application: ImportApplication, sample: SamplePackage, actor_id: uuid.UUID
) -> None:
    upload = application.upload(sample.path, actor_id)
    application.stage(sample.package_id, actor_id)

    status = application.cancel(sample.package_id, actor_id, reason="wrong tablet")

    assert status.import_package_id == upload.import_package_id
    assert status.status is ImportStatus.CANCELLED
    assert status.staging_counts == {}
    assert status.processing_notes == "[Cancelled]: wrong tablet"
    with pytest.raises(InvalidStateError, match="cannot be cancelled"):
        application.cancel(sample.package_id, actor_id)


def test_unknown_package_is_not_found(
    application: ImportApplication, sample: SamplePackage
) -> None:
    with pytest.raises(NotFoundError):
        application.status(sample.package_id)


def test_second_package_matches_committed_person(
    application: ImportApplication,
    sample: SamplePackage,
    tmp_path: Path,
    actor_id: uuid.UUID,
) -> None:
    first_key = _import_through_commit(application, sample, actor_id)
    with application.unit_of_work_factory() as uow:
        row = uow.repositories.staging[StagingKind.PERSON].get_by_package_and_original_id(
            first_key, sample.person_id
        )
        assert row is not None
        production_id = row.committed_entity_id
    assert production_id is not None

    follow_up = sample_package(tmp_path / "follow-up.uhc")
    upload = application.upload(follow_up.path, actor_id)
    assert upload.import_package_id is not None
    package_key = upload.import_package_id
    application.stage(package_key, actor_id)
    application.detect(package_key, actor_id)

    conflicts = application.conflicts(package_key, conflict_type="PersonDuplicate")
    (national_id_match,) = [
        conflict
        for conflict in conflicts
        if conflict.first_entity_id == follow_up.person_id
        and conflict.second_entity_id == production_id
    ]
    assert national_id_match.conflict_type == ConflictType.PERSON_DUPLICATE
    assert national_id_match.similarity_score == 100.0
    assert national_id_match.confidence_level == ConfidenceLevel.HIGH
    assert national_id_match.matching_criteria["national_id_matched"] is True

    merged = application.merge(national_id_match.id, actor_id, master_entity_id=production_id)

    assert merged.merge_mapping is not None
    assert json.loads(merged.merge_mapping)["merge_type"] == "cross_batch_master_production"
    with application.unit_of_work_factory() as uow:
        staged = uow.repositories.staging[StagingKind.PERSON].get_by_package_and_original_id(
            package_key, follow_up.person_id
        )
        assert staged is not None
        assert staged.validation_status is StagingValidationStatus.SKIPPED
        assert staged.committed_entity_id == production_id
