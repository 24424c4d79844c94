"""Conflict review, re-detection and staging retries against SQLite."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from trrcms_import.domain.errors import InvalidStateError
from trrcms_import.domain.model import (
    ConflictPriority,
    ConflictStatus,
    ConflictType,
    ImportStatus,
    ResolutionAction,
)
from trrcms_import.domain.workflow.detection import SUPERSEDED_REASON

if TYPE_CHECKING:
    import uuid

    from trrcms_import.app import ImportApplication
    from trrcms_import.domain.workflow import ConflictDetail
    from tests.helpers.uhc import SamplePackage


def _detected(
    application: ImportApplication, sample: SamplePackage, actor_id: uuid.UUID
) -> tuple[uuid.UUID, ConflictDetail]:
    upload = application.upload(sample.path, actor_id)
    assert upload.import_package_id is not None
    package_key = upload.import_package_id
    application.stage(package_key, actor_id)
    application.detect(package_key, actor_id)
    (conflict,) = application.conflicts(package_key, status=ConflictStatus.PENDING_REVIEW)
    return package_key, conflict


def test_approval_is_refused_while_a_conflict_is_pending(
    application: ImportApplication, sample: SamplePackage, actor_id: uuid.UUID
) -> None:
    package_key, _ = _detected(application, sample, actor_id)

    with pytest.raises(InvalidStateError, match="1 unresolved conflict"):
        application.approve(package_key, actor_id)

    assert application.status(package_key).status is ImportStatus.REVIEWING_CONFLICTS


def test_keep_separate_resolves_and_readies_the_package(
    application: ImportApplication, sample: SamplePackage, actor_id: uuid.UUID
) -> None:
    package_key, conflict = _detected(application, sample, actor_id)

    kept = application.keep_separate(conflict.id, actor_id, reason="siblings")

    assert kept.status == ConflictStatus.RESOLVED
    assert kept.resolution_action == ResolutionAction.KEEP_SEPARATE
    assert kept.review_attempt_count == 1
    assert kept.review_history[0]["notes"] == "Keep-Separate: siblings"
    assert application.status(package_key).status is ImportStatus.READY_TO_COMMIT

    approval = application.approve(package_key, actor_id)

    assert approval.total_approved == 9
    with pytest.raises(InvalidStateError):
        application.keep_separate(conflict.id, actor_id)


def test_escalated_conflict_still_blocks_approval(
    application: ImportApplication, sample: SamplePackage, actor_id: uuid.UUID
) -> None:
    package_key, conflict = _detected(application, sample, actor_id)

    escalated = application.escalate(conflict.id, actor_id, reason="needs field visit")

    assert escalated.status == ConflictStatus.PENDING_REVIEW
    assert escalated.is_escalated
    assert escalated.priority == ConflictPriority.HIGH
    assert escalated.review_history[0]["notes"] == "Escalate: needs field visit"
    assert application.status(package_key).pending_conflicts == 1
    with pytest.raises(InvalidStateError, match="unresolved conflict"):
        application.approve(package_key, actor_id)


def test_detection_rerun_supersedes_pending_conflicts(
    application: ImportApplication, sample: SamplePackage, actor_id: uuid.UUID
) -> None:
    package_key, first = _detected(application, sample, actor_id)

    rerun = application.detect(package_key, actor_id)

    assert rerun.superseded_conflicts == 1
    assert rerun.person_duplicates == 1
    assert rerun.status is ImportStatus.REVIEWING_CONFLICTS
    (pending,) = application.conflicts(package_key, status=ConflictStatus.PENDING_REVIEW)
    assert pending.id != first.id
    assert pending.conflict_type == ConflictType.PERSON_DUPLICATE_WITHIN_BATCH
    assert {pending.first_entity_id, pending.second_entity_id} == {
        first.first_entity_id,
        first.second_entity_id,
    }
    superseded = application.conflict(first.id)
    assert superseded.status == ConflictStatus.IGNORED
    assert superseded.resolution_reason == SUPERSEDED_REASON


def test_staging_retry_after_failure_restages_from_scratch(
    application: ImportApplication, sample: SamplePackage, actor_id: uuid.UUID
) -> None:
    upload = application.upload(sample.path, actor_id)
    assert upload.import_package_id is not None
    package_key = upload.import_package_id
    first = application.stage(package_key, actor_id)
    counts_before = application.status(package_key).staging_counts

    with application.unit_of_work_factory() as uow:
        package = uow.repositories.packages.get_by_id(package_key)
        assert package is not None
        package.mark_as_failed("validator host lost", None, actor_id)
        uow.repositories.packages.update(package)
        uow.commit()

    retry = application.stage(package_key, actor_id)

    assert retry.status is ImportStatus.STAGING
    assert retry.staged_counts == first.staged_counts
    assert retry.total_records == first.total_records == 9
    assert retry.attachment_files_extracted == 1
    assert application.status(package_key).staging_counts == counts_before
