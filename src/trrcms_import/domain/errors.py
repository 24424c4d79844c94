"""Error taxonomy for the import pipeline.

Validation findings are never raised: they are stored on staging rows. Merge failures
are reported through ``MergeResult``. Everything else surfaces as one of these.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from enum import StrEnum


class ImportPipelineError(Exception):
    """Base class for all pipeline errors."""


class NotFoundError(ImportPipelineError):
    """A package, conflict or staging row does not exist."""


class InvalidStateError(ImportPipelineError):
    """The requested operation is not allowed in the current state."""


class InvalidStateTransitionError(InvalidStateError):
    def __init__(self, entity: str, current: StrEnum, target: StrEnum) -> None:
        super().__init__(f"{entity} cannot move from '{current}' to '{target}'")
        self.current = current
        self.target = target


class ConcurrencyConflictError(InvalidStateError):
    """Another writer modified the same row since it was loaded."""


class IntegrityFailureError(ImportPipelineError):
    """Checksum, signature or stored-content mismatch. Fatal for the package."""


class ManifestError(ImportPipelineError):
    """The package manifest is missing or malformed."""


class StagingRuleViolation(ValueError):
    """A staging row guard was violated (e.g. approving an invalid row)."""


class PackageRejectedError(ImportPipelineError):
    """The uploaded file cannot be accepted at all (extension, size, unreadable)."""
