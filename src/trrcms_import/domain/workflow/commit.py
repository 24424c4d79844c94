"""Commit an approved package into production and archive its file."""

from __future__ import annotations

import time
from logging import getLogger
from typing import TYPE_CHECKING

from trrcms_import.domain.errors import InvalidStateError
from trrcms_import.domain.model import ImportStatus, utcnow

from .committer import ProductionCommitter
from .common import diagnostics_json, record_failure, require_package
from .dto import CommitResult

if TYPE_CHECKING:
    from uuid import UUID

    from trrcms_import.domain.model import ImportPackage
    from trrcms_import.domain.ports import PackageStore

    from .committer import CommitReport
    from .common import UnitOfWorkFactory


log = getLogger(__name__)

ALL_FAILED_MESSAGE = "All records failed during commit."


def commit_package(
    import_package_id: UUID,
    actor_id: UUID,
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    package_store: PackageStore | None = None,
) -> CommitResult:
    """Write every approved row to production in one transaction.

    The package ends Committed (no failures), PartiallyCommitted (some rows failed)
    or Failed (nothing could be written). Archiving afterwards is best effort.
    """

    started = time.perf_counter()
    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        package = require_package(repositories, import_package_id)
        if package.status is not ImportStatus.READY_TO_COMMIT:
            raise InvalidStateError(
                f"Package {package.package_number} must be ReadyToCommit to commit, "
                f"not {package.status}"
            )
        pending = repositories.conflicts.count_pending(package.id)
        if pending > 0:
            raise InvalidStateError(
                f"Cannot commit: {pending} unresolved conflict(s) remain for package "
                f"{package.package_number}"
            )
        package.start_commit(actor_id)
        repositories.packages.update(package)
        uow.commit()
        package_key = package.id

    log.info("Committing package %s", package_key)
    try:
        with unit_of_work_factory() as uow:
            repositories = uow.repositories
            report = ProductionCommitter(repositories).commit(package_key, actor_id)
            package = require_package(repositories, package_key)
            _finish(package, report, actor_id)
            repositories.packages.update(package)
            uow.commit()
    except Exception as exc:
        log.exception("Commit failed for package %s", package_key)
        record_failure(
            unit_of_work_factory,
            package_key,
            f"Commit failed: {exc}",
            diagnostics_json("commit", exc),
            actor_id,
        )
        raise

    archive_path = None
    if package_store is not None and package.status is not ImportStatus.FAILED:
        archive_path = _archive(package_key, actor_id, package_store, unit_of_work_factory)

    return CommitResult(
        import_package_id=package_key,
        status=package.status,
        committed=report.committed,
        failed=report.failed,
        skipped=report.skipped,
        committed_by_kind=dict(report.committed_by_kind),
        failures=list(report.failures),
        archive_path=archive_path,
        duration_ms=round((time.perf_counter() - started) * 1000, 1),
    )


def _finish(package: ImportPackage, report: CommitReport, actor_id: UUID) -> None:
    summary = report.summary_json()
    if report.failed > 0 and report.committed == 0:
        package.mark_as_failed(ALL_FAILED_MESSAGE, summary, actor_id)
    else:
        mark = (
            package.mark_as_committed
            if report.failed == 0
            else package.mark_as_partially_committed
        )
        mark(
            success=report.committed,
            failed=report.failed,
            skipped=report.skipped,
            summary=summary,
            actor_id=actor_id,
        )
    log.info(
        "Package %s %s: %s committed, %s failed, %s skipped",
        package.package_number,
        package.status,
        report.committed,
        report.failed,
        report.skipped,
    )


def _archive(
    import_package_id: UUID,
    actor_id: UUID,
    package_store: PackageStore,
    unit_of_work_factory: UnitOfWorkFactory,
) -> str | None:
    try:
        with unit_of_work_factory() as uow:
            package = require_package(uow.repositories, import_package_id)
            path = package_store.archive(package.package_id, utcnow())
            package.archive(str(path), actor_id)
            uow.repositories.packages.update(package)
            uow.commit()
    except Exception:  # noqa: BLE001
        log.warning("Archiving package %s failed", import_package_id, exc_info=True)
        return None
    log.info("Archived package %s to %s", import_package_id, path)
    return str(path)
