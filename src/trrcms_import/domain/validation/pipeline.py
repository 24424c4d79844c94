"""Level-ordered validation of one package's staging rows.

Validators only report findings. The pipeline applies them to the rows after each
level, so a row marked Invalid at level 1 stays Invalid while later levels append
their errors and warnings.
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from datetime import timedelta
from logging import getLogger
from typing import TYPE_CHECKING, Protocol

from trrcms_import.domain.model import StagingKind, StagingValidationStatus

from .dataset import RecordFinding, StagedDataset

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence
    from uuid import UUID

    from trrcms_import.domain.model import StagingEntity
    from trrcms_import.domain.staging import StagingRepositorySet


log = getLogger(__name__)


@dataclass(slots=True)
class ValidatorResult:
    validator_name: str
    level: int
    findings: list[RecordFinding] = field(default_factory=list[RecordFinding])
    records_checked: int = 0
    duration: timedelta = field(default_factory=timedelta)
    failed: bool = False
    failure_message: str | None = None

    @property
    def error_count(self) -> int:
        """-1 marks a validator that raised instead of reporting."""

        if self.failed:
            return -1
        return sum(len(finding.errors) for finding in self.findings)

    @property
    def warning_count(self) -> int:
        return sum(len(finding.warnings) for finding in self.findings)

    @classmethod
    def failure(cls, name: str, level: int, message: str) -> ValidatorResult:
        return cls(validator_name=name, level=level, failed=True, failure_message=message)


class StagingValidator(Protocol):
    """Contract implemented by each validation level."""

    name: str
    level: int

    def validate(self, dataset: StagedDataset) -> ValidatorResult: ...


@dataclass(frozen=True, slots=True)
class KindStatusCounts:
    total: int = 0
    valid: int = 0
    warning: int = 0
    invalid: int = 0
    skipped: int = 0
    pending: int = 0

    @classmethod
    def from_counts(cls, counts: Mapping[StagingValidationStatus, int]) -> KindStatusCounts:
        return cls(
            total=sum(counts.values()),
            valid=counts.get(StagingValidationStatus.VALID, 0),
            warning=counts.get(StagingValidationStatus.WARNING, 0),
            invalid=counts.get(StagingValidationStatus.INVALID, 0),
            skipped=counts.get(StagingValidationStatus.SKIPPED, 0),
            pending=counts.get(StagingValidationStatus.PENDING, 0),
        )


@dataclass(slots=True)
class ValidationSummary:
    import_package_id: UUID
    level_results: list[ValidatorResult] = field(default_factory=list[ValidatorResult])
    counts: dict[StagingKind, KindStatusCounts] = field(
        default_factory=dict[StagingKind, KindStatusCounts]
    )
    total_duration: timedelta = field(default_factory=timedelta)

    def _sum(self, attribute: str) -> int:
        return sum(getattr(counts, attribute) for counts in self.counts.values())

    @property
    def total_records(self) -> int:
        return self._sum("total")

    @property
    def valid_count(self) -> int:
        return self._sum("valid")

    @property
    def warning_count(self) -> int:
        return self._sum("warning")

    @property
    def invalid_count(self) -> int:
        return self._sum("invalid")

    @property
    def skipped_count(self) -> int:
        return self._sum("skipped")

    @property
    def pending_count(self) -> int:
        return self._sum("pending")

    @property
    def failed_validators(self) -> list[ValidatorResult]:
        return [result for result in self.level_results if result.failed]

    @property
    def error_count(self) -> int:
        """Errors that block the package: invalid rows plus validators that crashed."""

        return self.invalid_count + len(self.failed_validators)

    def errors_json(self) -> str | None:
        if self.error_count == 0:
            return None
        return json.dumps(
            [
                {
                    "validator_name": result.validator_name,
                    "level": result.level,
                    "error_count": result.error_count,
                    **({"failure": result.failure_message} if result.failed else {}),
                }
                for result in self.level_results
                if result.failed or result.error_count > 0
            ]
        )

    def warnings_json(self) -> str | None:
        if self.warning_count == 0:
            return None
        return json.dumps(
            [
                {
                    "validator_name": result.validator_name,
                    "level": result.level,
                    "warning_count": result.warning_count,
                }
                for result in self.level_results
                if result.warning_count > 0
            ]
        )


def apply_finding(record: StagingEntity, finding: RecordFinding) -> None:
    if finding.errors:
        existing = (
            record.validation_errors
            if record.validation_status is StagingValidationStatus.INVALID
            else []
        )
        record.mark_as_invalid(
            [*existing, *finding.errors], [*record.validation_warnings, *finding.warnings]
        )
        return
    if not finding.warnings:
        return
    warnings = [*record.validation_warnings, *finding.warnings]
    if record.validation_status is StagingValidationStatus.INVALID:
        record.mark_as_invalid(record.validation_errors, warnings)
    else:
        record.mark_as_valid(warnings)


@dataclass(slots=True)
class ValidationPipeline:
    """Compose and execute validators in level order."""

    validators: Sequence[StagingValidator] = field(default_factory=tuple)

    def with_validator(self, validator: StagingValidator) -> ValidationPipeline:
        """Return a new pipeline appending ``validator``."""

        return ValidationPipeline(validators=(*self.validators, validator))

    def extend(self, validators: Iterable[StagingValidator]) -> ValidationPipeline:
        return ValidationPipeline(validators=(*self.validators, *tuple(validators)))

    def run(self, import_package_id: UUID, staging: StagingRepositorySet) -> ValidationSummary:
        started = time.perf_counter()
        records = staging.load_package(import_package_id)
        dataset = StagedDataset(records=records)
        by_id = {record.id: record for record in dataset.all_records()}
        summary = ValidationSummary(import_package_id=import_package_id)

        ordered = sorted(self.validators, key=lambda validator: validator.level)
        log.info("Running %s validators for package %s", len(ordered), import_package_id)

        for validator in ordered:
            try:
                result = validator.validate(dataset)
            except Exception as exc:  # noqa: BLE001
                log.exception("Validator level %s (%s) failed", validator.level, validator.name)
                result = ValidatorResult.failure(validator.name, validator.level, str(exc))
            else:
                for finding in result.findings:
                    record = by_id.get(finding.record_id)
                    if record is not None:
                        apply_finding(record, finding)
            summary.level_results.append(result)
            log.debug(
                "Level %s (%s): %s errors, %s warnings, %s records in %.1fms",
                result.level,
                result.validator_name,
                result.error_count,
                result.warning_count,
                result.records_checked,
                result.duration.total_seconds() * 1000,
            )

        for record in dataset.all_records():
            if record.validation_status is StagingValidationStatus.PENDING:
                record.mark_as_valid()

        for kind, repository in staging:
            repository.update_range(records.get(kind, []))

        summary.counts = {
            kind: KindStatusCounts.from_counts(counts)
            for kind, counts in staging.status_counts(import_package_id).items()
        }
        summary.total_duration = timedelta(seconds=time.perf_counter() - started)
        log.info(
            "Validation complete for package %s: %s valid, %s warning, %s invalid, %s skipped",
            import_package_id,
            summary.valid_count,
            summary.warning_count,
            summary.invalid_count,
            summary.skipped_count,
        )
        return summary
