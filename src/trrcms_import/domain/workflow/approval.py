from __future__ import annotations

from collections import Counter
from logging import getLogger
from typing import TYPE_CHECKING

from trrcms_import.domain.errors import InvalidStateError, NotFoundError
from trrcms_import.domain.model import ImportStatus, StagingValidationStatus

from .common import require_package
from .dto import ApprovalResult

if TYPE_CHECKING:
    from collections.abc import Iterable
    from uuid import UUID

    from trrcms_import.domain.staging import StagingRepositorySet

    from .common import UnitOfWorkFactory


log = getLogger(__name__)

APPROVABLE_STATUSES = frozenset(
    {ImportStatus.STAGING, ImportStatus.REVIEWING_CONFLICTS, ImportStatus.READY_TO_COMMIT}
)
_COMMITTABLE = (StagingValidationStatus.VALID, StagingValidationStatus.WARNING)


def approve_for_commit(
    import_package_id: UUID,
    actor_id: UUID,
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    approve_all: bool = True,
    record_ids: Iterable[UUID] | None = None,
) -> ApprovalResult:
    """Approve staging rows and move the package to ReadyToCommit.

    With ``approve_all`` every Valid and Warning row is approved; otherwise only the
    staging rows named in ``record_ids``.
    """

    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        package = require_package(repositories, import_package_id)
        if package.status not in APPROVABLE_STATUSES:
            raise InvalidStateError(
                f"Package {package.package_number} cannot be approved in status {package.status}"
            )
        pending = repositories.conflicts.count_pending(package.id)
        if pending > 0:
            raise InvalidStateError(
                f"Cannot approve for commit: {pending} unresolved conflict(s) remain. "
                "Resolve all conflicts before approving."
            )

        if approve_all:
            approved = _approve_all(repositories.staging, package.id)
        else:
            approved = _approve_selected(repositories.staging, package.id, record_ids or ())

        if package.status is not ImportStatus.READY_TO_COMMIT:
            package.mark_conflicts_resolved(actor_id)
            repositories.packages.update(package)
        uow.commit()

    log.info(
        "Approved %s record(s) of package %s for commit",
        sum(approved.values()),
        package.package_number,
    )
    return ApprovalResult(
        import_package_id=package.id,
        status=package.status,
        approved_by_kind={str(kind): count for kind, count in approved.items()},
    )


def _approve_all(staging: StagingRepositorySet, import_package_id: UUID) -> Counter[str]:
    approved: Counter[str] = Counter()
    for kind, repository in staging:
        records = repository.get_by_package_and_status(import_package_id, _COMMITTABLE)
        for record in records:
            record.approve_for_commit()
        repository.update_range(records)
        approved[kind] = len(records)
        log.debug("Approved %s %s record(s)", len(records), kind)
    return approved


def _approve_selected(
    staging: StagingRepositorySet, import_package_id: UUID, record_ids: Iterable[UUID]
) -> Counter[str]:
    approved: Counter[str] = Counter()
    for record_id in record_ids:
        record = staging.find_record(record_id)
        if record is None or record.import_package_id != import_package_id:
            raise NotFoundError(f"Staging record {record_id} not found in this package")
        record.approve_for_commit()
        staging[record.kind].update(record)
        approved[record.kind] += 1
    return approved
