"""Helpers shared by the workflow steps."""

from __future__ import annotations

import json
from logging import getLogger
from typing import TYPE_CHECKING

from trrcms_import.domain.errors import NotFoundError
from trrcms_import.domain.model import (
    ImportStatus,
    can_transition,
    format_package_number,
    utcnow,
)

if TYPE_CHECKING:
    from collections.abc import Callable
    from uuid import UUID

    from trrcms_import.domain.model import ImportPackage
    from trrcms_import.domain.ports import ImportRepositories, ImportUnitOfWork


log = getLogger(__name__)

type UnitOfWorkFactory = Callable[[], ImportUnitOfWork]


def require_package(repositories: ImportRepositories, package_ref: UUID) -> ImportPackage:
    """Look a package up by its internal id, falling back to the manifest package id."""

    package = repositories.packages.get_by_id(package_ref)
    if package is None:
        package = repositories.packages.get_by_package_id(package_ref)
    if package is None:
        raise NotFoundError(f"Import package {package_ref} not found")
    return package


def next_package_number(repositories: ImportRepositories) -> str:
    year = utcnow().year
    issued = repositories.packages.count_numbers_with_prefix(f"PKG-{year}-")
    return format_package_number(year, issued + 1)


def diagnostics_json(stage: str, exc: BaseException) -> str:
    return json.dumps(
        {
            "stage": stage,
            "error_type": type(exc).__name__,
            "error": str(exc),
            "occurred_at": utcnow().isoformat(),
        }
    )


def record_failure(
    unit_of_work_factory: UnitOfWorkFactory,
    import_package_id: UUID,
    message: str,
    diagnostics: str | None,
    actor_id: UUID,
) -> None:
    """Persist ``mark_as_failed`` in a fresh transaction; the caller re-raises."""

    with unit_of_work_factory() as uow:
        package = uow.repositories.packages.get_by_id(import_package_id)
        if package is None:
            log.warning("Cannot record failure, package %s is gone", import_package_id)
            return
        if not can_transition(package.status, ImportStatus.FAILED):
            log.warning(
                "Package %s left in %s after failure: %s",
                package.package_number,
                package.status,
                message,
            )
            return
        package.mark_as_failed(message, diagnostics, actor_id)
        uow.repositories.packages.update(package)
        uow.commit()
    log.warning("Package %s marked as failed: %s", import_package_id, message)
