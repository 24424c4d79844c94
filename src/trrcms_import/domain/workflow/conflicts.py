"""Operator decisions on detected duplicates.

Each command runs in one unit of work: the review attempt, the merge side effects,
the conflict resolution and the package transition commit together or not at all.
"""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from trrcms_import.domain.errors import InvalidStateError, NotFoundError
from trrcms_import.domain.merge import merge_engine_for
from trrcms_import.domain.model import ConflictType, ImportStatus, ResolutionAction

from .dto import ConflictDetail

if TYPE_CHECKING:
    from uuid import UUID

    from trrcms_import.domain.model import ConflictResolution, ConflictStatus
    from trrcms_import.domain.ports import ImportRepositories

    from .common import UnitOfWorkFactory


log = getLogger(__name__)


def merge_conflict(
    conflict_id: UUID,
    actor_id: UUID,
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    master_entity_id: UUID | None = None,
    reason: str = "",
) -> ConflictDetail:
    """Merge the pair, keeping ``master_entity_id`` (default: the first entity)."""

    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        conflict = _require_pending(repositories, conflict_id)
        master_id = master_entity_id or conflict.first_entity_id
        if not conflict.involves(master_id):
            raise InvalidStateError(
                f"Master entity {master_id} is not part of conflict {conflict.conflict_number}"
            )
        discarded_id = conflict.other_entity(master_id)
        conflict.record_review_attempt(
            f"Merge: master={master_id}, discarded={discarded_id} - {reason}", actor_id
        )

        engine = merge_engine_for(conflict.entity_type, repositories)
        result = engine.merge(master_id, discarded_id, conflict.import_package_id, actor_id)
        if not result.success:
            raise InvalidStateError(
                f"Merge failed for conflict {conflict.conflict_number}: {result.error_message}"
            )

        conflict.resolve(
            ResolutionAction.MERGE,
            reason=reason,
            actor_id=actor_id,
            notes=f"{result.references_updated} reference(s) updated",
            merged_entity_id=result.master_entity_id,
            discarded_entity_id=result.discarded_entity_id,
            merge_mapping_json=result.merge_mapping_json,
        )
        repositories.conflicts.update(conflict)
        _advance_package(repositories, conflict, actor_id)
        uow.commit()

    log.info(
        "Conflict %s merged (%s): %s kept, %s discarded, %s reference(s) updated",
        conflict.conflict_number,
        result.merge_type,
        result.master_entity_id,
        result.discarded_entity_id,
        result.references_updated,
    )
    return ConflictDetail.from_conflict(conflict)


def keep_conflict_separate(
    conflict_id: UUID,
    actor_id: UUID,
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    reason: str = "",
) -> ConflictDetail:
    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        conflict = _require_pending(repositories, conflict_id)
        conflict.record_review_attempt(f"Keep-Separate: {reason}", actor_id)
        conflict.resolve(ResolutionAction.KEEP_SEPARATE, reason=reason, actor_id=actor_id)
        repositories.conflicts.update(conflict)
        _advance_package(repositories, conflict, actor_id)
        uow.commit()

    log.info("Conflict %s kept separate", conflict.conflict_number)
    return ConflictDetail.from_conflict(conflict)


def escalate_conflict(
    conflict_id: UUID,
    actor_id: UUID,
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    reason: str = "",
) -> ConflictDetail:
    """Flag a conflict for senior review. It stays pending and blocks the commit."""

    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        conflict = _require_pending(repositories, conflict_id)
        conflict.record_review_attempt(f"Escalate: {reason}", actor_id)
        conflict.escalate(reason, actor_id)
        repositories.conflicts.update(conflict)
        uow.commit()

    log.info("Conflict %s escalated: %s", conflict.conflict_number, reason)
    return ConflictDetail.from_conflict(conflict)


def list_conflicts(
    import_package_id: UUID,
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    conflict_type: ConflictType | str | None = None,
    status: ConflictStatus | None = None,
) -> list[ConflictDetail]:
    """List a package's conflicts; a family tag also matches its within-batch variant."""

    types = ConflictType.matching(str(conflict_type)) if conflict_type else None
    if types == ():
        return []
    with unit_of_work_factory() as uow:
        conflicts = uow.repositories.conflicts.get_by_package(
            import_package_id, conflict_types=types, status=status
        )
        return [ConflictDetail.from_conflict(conflict) for conflict in conflicts]


def get_conflict_detail(
    conflict_id: UUID, *, unit_of_work_factory: UnitOfWorkFactory
) -> ConflictDetail:
    with unit_of_work_factory() as uow:
        conflict = uow.repositories.conflicts.get_by_id(conflict_id)
        if conflict is None:
            raise NotFoundError(f"Conflict {conflict_id} not found")
        return ConflictDetail.from_conflict(conflict)


def _require_pending(repositories: ImportRepositories, conflict_id: UUID) -> ConflictResolution:
    conflict = repositories.conflicts.get_by_id(conflict_id)
    if conflict is None:
        raise NotFoundError(f"Conflict {conflict_id} not found")
    if not conflict.is_pending:
        raise InvalidStateError(
            f"Conflict {conflict.conflict_number} is {conflict.status}, not PendingReview"
        )
    return conflict


def _advance_package(
    repositories: ImportRepositories, conflict: ConflictResolution, actor_id: UUID
) -> None:
    if conflict.import_package_id is None:
        return
    package = repositories.packages.get_by_id(conflict.import_package_id)
    if package is None or package.status is not ImportStatus.REVIEWING_CONFLICTS:
        return
    remaining = repositories.conflicts.count_pending(package.id)
    if remaining > 0:
        log.debug("Package %s has %s pending conflict(s)", package.package_number, remaining)
        return
    package.mark_conflicts_resolved(actor_id)
    repositories.packages.update(package)
    log.info("All conflicts of package %s resolved", package.package_number)
