"""Duplicate conflicts awaiting (or having received) an operator decision."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from typing import TYPE_CHECKING, Any

from trrcms_import.domain.errors import InvalidStateError

from .base import AuditedEntity, utcnow
from .enums import (
    ConfidenceLevel,
    ConflictPriority,
    ConflictStatus,
    ConflictType,
    ResolutionAction,
    StagingKind,
)

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID


TARGET_RESOLUTION_HOURS: dict[ConflictPriority, int] = {
    ConflictPriority.HIGH: 24,
    ConflictPriority.NORMAL: 72,
    ConflictPriority.LOW: 168,
}


def determine_priority(score: float, confidence: ConfidenceLevel) -> ConflictPriority:
    if confidence is ConfidenceLevel.HIGH and score >= 90:
        return ConflictPriority.HIGH
    if confidence is ConfidenceLevel.MEDIUM or score >= 70:
        return ConflictPriority.NORMAL
    return ConflictPriority.LOW


def format_conflict_number(year: int, sequence: int) -> str:
    return f"CNF-{year}-{sequence:04d}"


@dataclass(eq=False, kw_only=True)
class ConflictResolution(AuditedEntity):
    """One detected duplicate pair.

    ``first_entity_id`` and ``second_entity_id`` hold either a production id or a
    staging ``original_entity_id``; the merge engine tells them apart at merge time.
    """

    conflict_number: str
    conflict_type: ConflictType
    entity_type: StagingKind
    first_entity_id: UUID
    second_entity_id: UUID
    first_entity_identifier: str | None = None
    second_entity_identifier: str | None = None
    import_package_id: UUID | None = None

    similarity_score: float = 0.0
    confidence_level: ConfidenceLevel = ConfidenceLevel.LOW
    conflict_description: str = ""
    matching_criteria: dict[str, Any] = field(default_factory=dict[str, Any])
    data_comparison: dict[str, Any] = field(default_factory=dict[str, Any])

    status: ConflictStatus = ConflictStatus.PENDING_REVIEW
    resolution_action: ResolutionAction | None = None
    detected_date: datetime = field(default_factory=utcnow)
    detected_by_user_id: UUID | None = None
    assigned_date: datetime | None = None
    assigned_to_user_id: UUID | None = None
    resolved_date: datetime | None = None
    resolved_by_user_id: UUID | None = None

    resolution_reason: str | None = None
    resolution_notes: str | None = None
    merged_entity_id: UUID | None = None
    discarded_entity_id: UUID | None = None
    merge_mapping: str | None = None

    priority: ConflictPriority = ConflictPriority.NORMAL
    target_resolution_hours: int | None = None

    is_auto_detected: bool = True
    is_auto_resolved: bool = False
    auto_resolution_rule: str | None = None

    is_escalated: bool = False
    escalation_reason: str | None = None
    escalated_date: datetime | None = None
    escalated_by_user_id: UUID | None = None

    review_attempt_count: int = 0
    review_history: list[dict[str, Any]] = field(default_factory=list[dict[str, Any]])

    version_id: int = 0

    @classmethod
    def create(
        cls,
        *,
        conflict_number: str,
        conflict_type: ConflictType,
        entity_type: StagingKind,
        first_entity_id: UUID,
        second_entity_id: UUID,
        similarity_score: float,
        confidence_level: ConfidenceLevel,
        conflict_description: str,
        import_package_id: UUID | None,
        actor_id: UUID,
        first_entity_identifier: str | None = None,
        second_entity_identifier: str | None = None,
        matching_criteria: dict[str, Any] | None = None,
        data_comparison: dict[str, Any] | None = None,
        is_auto_detected: bool = True,
    ) -> ConflictResolution:
        priority = determine_priority(similarity_score, confidence_level)
        return cls(
            conflict_number=conflict_number,
            conflict_type=conflict_type,
            entity_type=entity_type,
            first_entity_id=first_entity_id,
            second_entity_id=second_entity_id,
            first_entity_identifier=first_entity_identifier,
            second_entity_identifier=second_entity_identifier,
            import_package_id=import_package_id,
            similarity_score=similarity_score,
            confidence_level=confidence_level,
            conflict_description=conflict_description,
            matching_criteria=dict(matching_criteria or {}),
            data_comparison=dict(data_comparison or {}),
            detected_by_user_id=actor_id,
            priority=priority,
            target_resolution_hours=TARGET_RESOLUTION_HOURS[priority],
            is_auto_detected=is_auto_detected,
            created_by=actor_id,
        )

    @property
    def is_pending(self) -> bool:
        return self.status is ConflictStatus.PENDING_REVIEW

    def involves(self, entity_id: UUID) -> bool:
        return entity_id in (self.first_entity_id, self.second_entity_id)

    def other_entity(self, entity_id: UUID) -> UUID:
        if entity_id == self.first_entity_id:
            return self.second_entity_id
        if entity_id == self.second_entity_id:
            return self.first_entity_id
        raise InvalidStateError(
            f"Entity {entity_id} is not part of conflict {self.conflict_number}"
        )

    def _require_pending(self, operation: str) -> None:
        if not self.is_pending:
            raise InvalidStateError(
                f"Cannot {operation} conflict {self.conflict_number}: status is {self.status}"
            )

    def assign_to(self, user_id: UUID, target_hours: int | None, actor_id: UUID) -> None:
        self.assigned_to_user_id = user_id
        self.assigned_date = utcnow()
        if target_hours is not None:
            self.target_resolution_hours = target_hours
        self.touch(actor_id)

    def record_review_attempt(self, notes: str, actor_id: UUID) -> None:
        self.review_attempt_count += 1
        entry = {
            "attempt_number": self.review_attempt_count,
            "date": utcnow().isoformat(),
            "notes": notes,
            "actor_id": str(actor_id),
        }
        # reassign so the JSON column is flagged dirty
        self.review_history = [*self.review_history, entry]
        self.touch(actor_id)

    def resolve(
        self,
        action: ResolutionAction,
        *,
        reason: str,
        actor_id: UUID,
        notes: str | None = None,
        merged_entity_id: UUID | None = None,
        discarded_entity_id: UUID | None = None,
        merge_mapping_json: str | None = None,
    ) -> None:
        self._require_pending("resolve")
        self.status = ConflictStatus.RESOLVED
        self.resolution_action = action
        self.resolution_reason = reason
        self.resolution_notes = notes
        self.merged_entity_id = merged_entity_id
        self.discarded_entity_id = discarded_entity_id
        self.merge_mapping = merge_mapping_json
        self.resolved_date = utcnow()
        self.resolved_by_user_id = actor_id
        self.touch(actor_id)

    def auto_resolve(
        self,
        action: ResolutionAction,
        *,
        rule: str,
        actor_id: UUID,
        merged_entity_id: UUID | None = None,
    ) -> None:
        self._require_pending("auto-resolve")
        self.status = ConflictStatus.RESOLVED
        self.resolution_action = action
        self.resolution_reason = f"Auto-resolved using rule: {rule}"
        self.auto_resolution_rule = rule
        self.merged_entity_id = merged_entity_id
        self.resolved_date = utcnow()
        self.is_auto_resolved = True
        self.touch(actor_id)

    def ignore(self, reason: str, actor_id: UUID) -> None:
        self._require_pending("ignore")
        self.status = ConflictStatus.IGNORED
        self.resolution_reason = reason
        self.resolved_date = utcnow()
        self.touch(actor_id)

    def escalate(self, reason: str, actor_id: UUID) -> None:
        self._require_pending("escalate")
        self.is_escalated = True
        self.escalation_reason = reason
        self.escalated_date = utcnow()
        self.escalated_by_user_id = actor_id
        self.priority = ConflictPriority.HIGH
        self.touch(actor_id)

    def is_overdue(self, now: datetime | None = None) -> bool:
        if self.target_resolution_hours is None or not self.is_pending:
            return False
        current = now or utcnow()
        return current > self.detected_date + timedelta(hours=self.target_resolution_hours)

    def elapsed(self, now: datetime | None = None) -> timedelta:
        end = self.resolved_date or now or utcnow()
        return end - self.detected_date
