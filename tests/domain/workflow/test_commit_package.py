from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from trrcms_import.domain.errors import InvalidStateError
from trrcms_import.domain.model import ImportStatus, StagingKind
from trrcms_import.domain.workflow import commit_package
from tests.helpers.entities import (
    ACTOR_ID,
    make_conflict,
    make_package,
    make_staging_person,
    make_staging_unit,
)
from tests.helpers.fakes import FakeUnitOfWork

if TYPE_CHECKING:
    from datetime import datetime

    from trrcms_import.domain.model import ImportPackage


@dataclass(slots=True)
class _ArchivingStore:
    fail: bool = False
    archived: list[uuid.UUID] = field(default_factory=list)

    def archive(self, package_id: uuid.UUID, now: datetime) -> Path:
        if self.fail:
            raise OSError("archive volume offline")
        self.archived.append(package_id)
        return Path("/archive") / str(now.year) / f"{package_id}.uhc"


def _ready_package(uow: FakeUnitOfWork) -> ImportPackage:
    package = make_package(ImportStatus.READY_TO_COMMIT)
    uow.repositories.packages.add(package)
    return package


def test_commit_writes_rows_and_archives() -> None:
    uow = FakeUnitOfWork()
    package = _ready_package(uow)
    person = make_staging_person(package.id)
    person.approve_for_commit()
    uow.repositories.staging[StagingKind.PERSON].add(person)
    store = _ArchivingStore()

    result = commit_package(
        package.id,
        ACTOR_ID,
        unit_of_work_factory=uow.factory,
        package_store=store,  # type: ignore[arg-type]
    )

    assert result.status is ImportStatus.COMMITTED
    assert result.committed == 1
    assert result.committed_by_kind == {"Person": 1}
    assert store.archived == [package.package_id]
    assert result.archive_path == package.archive_path
    assert package.is_archived
    assert package.successful_import_count == 1
    assert uow.commit_count == 3


def test_partial_failure_marks_partially_committed() -> None:
    uow = FakeUnitOfWork()
    package = _ready_package(uow)
    person = make_staging_person(package.id)
    orphan = make_staging_unit(package.id, original_building_id=uuid.uuid4())
    for record in (person, orphan):
        record.approve_for_commit()
        uow.repositories.staging[record.kind].add(record)

    result = commit_package(package.id, ACTOR_ID, unit_of_work_factory=uow.factory)

    assert result.status is ImportStatus.PARTIALLY_COMMITTED
    assert result.failed == 1
    assert result.archive_path is None


def test_all_rows_failing_marks_package_failed() -> None:
    uow = FakeUnitOfWork()
    package = _ready_package(uow)
    orphan = make_staging_unit(package.id, original_building_id=uuid.uuid4())
    orphan.approve_for_commit()
    uow.repositories.staging[StagingKind.PROPERTY_UNIT].add(orphan)
    store = _ArchivingStore()

    result = commit_package(
        package.id,
        ACTOR_ID,
        unit_of_work_factory=uow.factory,
        package_store=store,  # type: ignore[arg-type]
    )

    assert result.status is ImportStatus.FAILED
    assert package.error_message == "All records failed during commit."
    assert store.archived == []


def test_empty_package_commits_with_zero_rows() -> None:
    uow = FakeUnitOfWork()
    package = _ready_package(uow)

    result = commit_package(package.id, ACTOR_ID, unit_of_work_factory=uow.factory)

    assert result.status is ImportStatus.COMMITTED
    assert result.committed == 0


def test_archive_failure_does_not_fail_commit() -> None:
    uow = FakeUnitOfWork()
    package = _ready_package(uow)

    result = commit_package(
        package.id,
        ACTOR_ID,
        unit_of_work_factory=uow.factory,
        package_store=_ArchivingStore(fail=True),  # type: ignore[arg-type]
    )

    assert result.status is ImportStatus.COMMITTED
    assert result.archive_path is None
    assert not package.is_archived


def test_commit_requires_ready_status() -> None:
    uow = FakeUnitOfWork()
    package = make_package(ImportStatus.STAGING)
    uow.repositories.packages.add(package)

    with pytest.raises(InvalidStateError, match="must be ReadyToCommit"):
        commit_package(package.id, ACTOR_ID, unit_of_work_factory=uow.factory)

    assert package.status is ImportStatus.STAGING


def test_commit_refuses_pending_conflicts() -> None:
    uow = FakeUnitOfWork()
    package = _ready_package(uow)
    uow.repositories.conflicts.add(
        make_conflict(uuid.uuid4(), uuid.uuid4(), import_package_id=package.id)
    )

    with pytest.raises(InvalidStateError, match="1 unresolved conflict"):
        commit_package(package.id, ACTOR_ID, unit_of_work_factory=uow.factory)


def test_commit_accepts_manifest_package_id() -> None:
    uow = FakeUnitOfWork()
    package = _ready_package(uow)

    result = commit_package(package.package_id, ACTOR_ID, unit_of_work_factory=uow.factory)

    assert result.import_package_id == package.id
