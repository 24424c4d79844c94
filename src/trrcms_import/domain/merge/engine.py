"""The shared four-case merge algorithm.

Participants are resolved to production rows or staging rows of the package, and the
pair decides what is written:

- production/production: fill the master's gaps, repoint references, soft-delete
- production master, staging discarded: fill production gaps, skip the staging row
- staging master, production discarded: staging values win, skip the staging row
- staging/staging: skip the discarded row and remember the alias for commit
"""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Any, ClassVar

from trrcms_import.domain.model import ProductionEntity, StagingEntity

from .fields import fill_gaps, overwrite
from .refs import ProductionRef, StagingRef, resolve_ref
from .result import FieldSource, MergeResult, MergeType

if TYPE_CHECKING:
    from uuid import UUID

    from trrcms_import.domain.model import StagingKind
    from trrcms_import.domain.ports import Repository, StagingRepository

    from .fields import FieldRule


log = getLogger(__name__)

MERGED_INTO_PRODUCTION_NOTE = "Merged into existing production record"
APPLIED_TO_PRODUCTION_NOTE = "Data applied to existing production record"
WITHIN_BATCH_NOTE = "Within-batch duplicate - merged into master staging record"


@dataclass(slots=True)
class MergeEngine[T: ProductionEntity, S: StagingEntity]:
    production: Repository[T]
    staging: StagingRepository[S]

    entity_type: ClassVar[StagingKind]
    fill_rules: ClassVar[tuple[FieldRule, ...]] = ()
    overwrite_rules: ClassVar[tuple[FieldRule, ...]] = ()

    def merge(
        self,
        master_id: UUID,
        discarded_id: UUID,
        import_package_id: UUID | None,
        actor_id: UUID,
    ) -> MergeResult:
        """Merge ``discarded_id`` into ``master_id``. Failures are reported, never raised."""

        try:
            return self._merge(master_id, discarded_id, import_package_id, actor_id)
        except Exception as exc:  # noqa: BLE001
            log.warning(
                "%s merge of %s into %s failed: %s",
                self.entity_type,
                discarded_id,
                master_id,
                exc,
                exc_info=True,
            )
            return MergeResult.failed(master_id, discarded_id, str(exc))

    def _merge(
        self,
        master_id: UUID,
        discarded_id: UUID,
        import_package_id: UUID | None,
        actor_id: UUID,
    ) -> MergeResult:
        master = resolve_ref(master_id, import_package_id, self.production, self.staging)
        discarded = resolve_ref(discarded_id, import_package_id, self.production, self.staging)
        mapping: dict[str, Any] = {}

        match master, discarded:
            case ProductionRef(entity=kept), ProductionRef(entity=dropped):
                mapping["fields"] = fill_gaps(
                    kept,
                    dropped,
                    self.fill_rules,
                    kept=FieldSource.MASTER,
                    taken=FieldSource.DISCARDED,
                )
                references = self.repoint_references(kept.id, dropped.id, actor_id)
                dropped.mark_as_deleted(actor_id)
                kept.touch(actor_id)
                self.production.update(dropped)
                self.production.update(kept)
                mapping["merge_type"] = MergeType.PRODUCTION_PRODUCTION
                return MergeResult(
                    success=True,
                    master_entity_id=kept.id,
                    discarded_entity_id=dropped.id,
                    merge_mapping=mapping,
                    references_by_type=references,
                )

            case ProductionRef(entity=kept), StagingRef(entity=staged):
                mapping["fields"] = fill_gaps(
                    kept,
                    staged,
                    self.fill_rules,
                    kept=FieldSource.PRODUCTION,
                    taken=FieldSource.STAGING,
                )
                kept.touch(actor_id)
                self.production.update(kept)
                staged.mark_as_skipped(MERGED_INTO_PRODUCTION_NOTE)
                staged.set_committed_entity_id(kept.id)
                self.staging.update(staged)
                mapping["merge_type"] = MergeType.CROSS_BATCH_MASTER_PRODUCTION
                return MergeResult(
                    success=True,
                    master_entity_id=kept.id,
                    discarded_entity_id=staged.original_entity_id,
                    merge_mapping=mapping,
                )

            case StagingRef(entity=staged), ProductionRef(entity=existing):
                # production ids stay stable, so there is nothing to repoint
                mapping["fields"] = overwrite(existing, staged, self.overwrite_rules)
                mapping["data_source"] = "staging_priority"
                existing.touch(actor_id)
                self.production.update(existing)
                staged.mark_as_skipped(APPLIED_TO_PRODUCTION_NOTE)
                staged.set_committed_entity_id(existing.id)
                self.staging.update(staged)
                mapping["merge_type"] = MergeType.CROSS_BATCH_MASTER_STAGING
                return MergeResult(
                    success=True,
                    master_entity_id=existing.id,
                    discarded_entity_id=staged.original_entity_id,
                    merge_mapping=mapping,
                )

            case StagingRef(entity=survivor), StagingRef(entity=staged):
                staged.mark_as_skipped(WITHIN_BATCH_NOTE)
                self.staging.update(staged)
                mapping["merge_type"] = MergeType.WITHIN_BATCH
                mapping["master_staging_original_id"] = str(survivor.original_entity_id)
                mapping["discarded_staging_original_id"] = str(staged.original_entity_id)
                return MergeResult(
                    success=True,
                    master_entity_id=survivor.original_entity_id,
                    discarded_entity_id=staged.original_entity_id,
                    merge_mapping=mapping,
                )

            case _:
                return MergeResult.failed(
                    master_id,
                    discarded_id,
                    f"Could not locate master ({master_id}) or discarded ({discarded_id}) "
                    "entity in either production or staging tables.",
                )

    def repoint_references(
        self, master_id: UUID, discarded_id: UUID, actor_id: UUID
    ) -> dict[str, int]:
        """Move production rows referencing the discarded entity to the master."""

        raise NotImplementedError
