from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, ClassVar

from trrcms_import.domain.model import Person, StagingKind, StagingPerson

from .engine import MergeEngine
from .fields import FieldRule

if TYPE_CHECKING:
    from uuid import UUID

    from trrcms_import.domain.ports import ClaimRepository, PersonPropertyRelationRepository


log = getLogger(__name__)

PERSON_FILL_RULES: tuple[FieldRule, ...] = (
    FieldRule.of("NationalId", "national_id"),
    FieldRule.of("MobileNumber", "mobile_number"),
    FieldRule.of("PhoneNumber", "phone_number"),
    FieldRule.of("Email", "email"),
    FieldRule.of("YearOfBirth", "year_of_birth"),
    FieldRule.of("Gender", "gender"),
)

PERSON_OVERWRITE_RULES: tuple[FieldRule, ...] = (
    FieldRule.of("Names", "family_name_arabic", "first_name_arabic", "father_name_arabic"),
    FieldRule.of("MotherNameArabic", "mother_name_arabic"),
    *PERSON_FILL_RULES,
)


@dataclass(slots=True)
class PersonMergeEngine(MergeEngine[Person, StagingPerson]):
    relations: PersonPropertyRelationRepository
    claims: ClaimRepository

    entity_type: ClassVar[StagingKind] = StagingKind.PERSON
    fill_rules: ClassVar[tuple[FieldRule, ...]] = PERSON_FILL_RULES
    overwrite_rules: ClassVar[tuple[FieldRule, ...]] = PERSON_OVERWRITE_RULES

    def repoint_references(
        self, master_id: UUID, discarded_id: UUID, actor_id: UUID
    ) -> dict[str, int]:
        master_units = {
            relation.property_unit_id for relation in self.relations.get_by_person(master_id)
        }
        moved = removed = 0
        for relation in self.relations.get_by_person(discarded_id):
            if relation.property_unit_id in master_units:
                # the master already holds this tenure link
                relation.mark_as_deleted(actor_id)
                removed += 1
            else:
                relation.person_id = master_id
                relation.touch(actor_id)
                master_units.add(relation.property_unit_id)
                moved += 1
            self.relations.update(relation)

        claims = 0
        for claim in self.claims.get_by_primary_claimant(discarded_id):
            claim.primary_claimant_id = master_id
            claim.touch(actor_id)
            self.claims.update(claim)
            claims += 1

        log.debug(
            "Repointed %s relation(s), removed %s duplicate relation(s), %s claim(s) "
            "from person %s to %s",
            moved,
            removed,
            claims,
            discarded_id,
            master_id,
        )
        return {"PersonPropertyRelation": moved, "Claim": claims}
