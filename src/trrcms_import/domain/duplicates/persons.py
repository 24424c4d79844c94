"""Person duplicate scoring against production and within one batch.

Scoring:

- national id exact match (case-insensitive): 100, short-circuits the rest
- mobile number match after normalisation: +30
- weighted Arabic name similarity: 0-40
- year of birth: +15
- gender after normalisation: +15

The composite is capped at 100 and only pairs at or above the medium threshold are kept.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Any, Final, Protocol

from trrcms_import.config import DuplicateDetectionConfig
from trrcms_import.domain.model import ConfidenceLevel

from .names import ArabicNameSimilarity

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

    from trrcms_import.domain.model import StagingPerson
    from trrcms_import.domain.ports import PersonRepository


log = getLogger(__name__)

NATIONAL_ID_SCORE: Final[float] = 100.0
PHONE_SCORE: Final[float] = 30.0
MAX_NAME_SCORE: Final[float] = 40.0
YEAR_OF_BIRTH_SCORE: Final[float] = 15.0
GENDER_SCORE: Final[float] = 15.0
MAX_COMPOSITE_SCORE: Final[float] = 100.0

_SYRIA_COUNTRY_CODE = "963"
_LOCAL_NUMBER_LENGTH = 9

_MALE = frozenset({"M", "MALE", "ذكر"})
_FEMALE = frozenset({"F", "FEMALE", "أنثى", "انثى"})


class PersonLike(Protocol):
    """Fields shared by staging and production persons that scoring reads."""

    @property
    def id(self) -> UUID: ...

    @property
    def first_name_arabic(self) -> str: ...

    @property
    def father_name_arabic(self) -> str: ...

    @property
    def family_name_arabic(self) -> str: ...

    @property
    def national_id(self) -> str | None: ...

    @property
    def mobile_number(self) -> str | None: ...

    @property
    def year_of_birth(self) -> int | None: ...

    @property
    def gender(self) -> str | None: ...


def normalize_phone(value: str | None) -> str:
    digits = "".join(char for char in value or "" if char.isdigit())
    if digits.startswith(_SYRIA_COUNTRY_CODE) and len(digits) > _LOCAL_NUMBER_LENGTH:
        digits = digits[len(_SYRIA_COUNTRY_CODE) :]
    if digits.startswith("0") and len(digits) > _LOCAL_NUMBER_LENGTH:
        digits = digits[1:]
    return digits


def normalize_gender(value: str | None) -> str:
    folded = (value or "").strip().upper()
    if folded in _MALE:
        return "M"
    if folded in _FEMALE:
        return "F"
    return folded


def _same_national_id(first: PersonLike, second: PersonLike) -> bool:
    left = (first.national_id or "").strip()
    right = (second.national_id or "").strip()
    return bool(left) and left.casefold() == right.casefold()


def person_identifier(person: PersonLike) -> str:
    name = " ".join(
        part
        for part in (person.first_name_arabic, person.father_name_arabic, person.family_name_arabic)
        if part and part.strip()
    )
    return f"{name} (NID: {person.national_id})" if person.national_id else name


@dataclass(frozen=True, slots=True)
class PersonScore:
    score: float
    national_id_matched: bool = False
    phone_matched: bool = False
    name_similarity: float = 0.0
    year_of_birth_matched: bool = False
    gender_matched: bool = False


def score_persons(first: PersonLike, second: PersonLike) -> PersonScore:
    name_similarity = ArabicNameSimilarity.full_name_similarity(
        (first.first_name_arabic, first.father_name_arabic, first.family_name_arabic),
        (second.first_name_arabic, second.father_name_arabic, second.family_name_arabic),
    )
    phone = bool(normalize_phone(first.mobile_number)) and normalize_phone(
        first.mobile_number
    ) == normalize_phone(second.mobile_number)
    year = first.year_of_birth is not None and first.year_of_birth == second.year_of_birth
    gender = bool(normalize_gender(first.gender)) and normalize_gender(
        first.gender
    ) == normalize_gender(second.gender)

    if _same_national_id(first, second):
        return PersonScore(
            score=NATIONAL_ID_SCORE,
            national_id_matched=True,
            phone_matched=phone,
            name_similarity=name_similarity,
            year_of_birth_matched=year,
            gender_matched=gender,
        )

    score = name_similarity / 100.0 * MAX_NAME_SCORE
    if phone:
        score += PHONE_SCORE
    if year:
        score += YEAR_OF_BIRTH_SCORE
    if gender:
        score += GENDER_SCORE
    return PersonScore(
        score=round(min(score, MAX_COMPOSITE_SCORE), 1),
        phone_matched=phone,
        name_similarity=name_similarity,
        year_of_birth_matched=year,
        gender_matched=gender,
    )


@dataclass(frozen=True, slots=True)
class PersonMatch:
    """A candidate duplicate pair.

    ``staging_original_id`` is the first entity of the future conflict; ``matched_entity_id``
    is a production id, or another row's original id for within-batch matches.
    """

    staging_row_id: UUID
    staging_original_id: UUID
    matched_entity_id: UUID
    staging_identifier: str
    matched_identifier: str
    is_within_batch: bool
    details: PersonScore
    confidence: ConfidenceLevel
    national_id: str | None = None

    @property
    def score(self) -> float:
        return self.details.score

    @property
    def pair(self) -> tuple[UUID, UUID]:
        return (self.staging_original_id, self.matched_entity_id)

    def description(self) -> str:
        if self.details.national_id_matched:
            return f"National ID exact match detected (NID: {self.national_id})"
        return (
            f"Composite similarity score {self.details.score}% "
            f"({self.confidence} confidence)"
        )

    def matching_criteria(self) -> dict[str, Any]:
        return {
            "national_id_matched": self.details.national_id_matched,
            "phone_matched": self.details.phone_matched,
            "name_similarity_score": self.details.name_similarity,
            "year_of_birth_matched": self.details.year_of_birth_matched,
            "gender_matched": self.details.gender_matched,
            "is_within_batch": self.is_within_batch,
        }


@dataclass(slots=True)
class PersonMatcher:
    persons: PersonRepository
    config: DuplicateDetectionConfig = field(default_factory=DuplicateDetectionConfig)

    def confidence_for(self, score: float) -> ConfidenceLevel:
        if score >= self.config.person_high_confidence_threshold:
            return ConfidenceLevel.HIGH
        if score >= self.config.person_medium_confidence_threshold:
            return ConfidenceLevel.MEDIUM
        return ConfidenceLevel.LOW

    def _match(
        self, staging: StagingPerson, other: PersonLike, matched_id: UUID, *, within_batch: bool
    ) -> PersonMatch | None:
        details = score_persons(staging, other)
        if details.score < self.config.person_medium_confidence_threshold:
            return None
        return PersonMatch(
            staging_row_id=staging.id,
            staging_original_id=staging.original_entity_id,
            matched_entity_id=matched_id,
            staging_identifier=person_identifier(staging),
            matched_identifier=person_identifier(other),
            is_within_batch=within_batch,
            details=details,
            confidence=self.confidence_for(details.score),
            national_id=staging.national_id,
        )

    def detect(self, staging_persons: Sequence[StagingPerson]) -> list[PersonMatch]:
        if not staging_persons:
            return []
        matches: list[PersonMatch] = []

        matched_rows: set[UUID] = set()
        for staging in staging_persons:
            if not staging.national_id or not staging.national_id.strip():
                continue
            production = self.persons.get_by_national_id(staging.national_id.strip())
            if production is None:
                continue
            match = self._match(staging, production, production.id, within_batch=False)
            if match is not None:
                matches.append(match)
                matched_rows.add(staging.id)
                log.debug(
                    "National id match: staging %s <-> production %s", staging.id, production.id
                )

        for staging in staging_persons:
            if staging.id in matched_rows:
                continue
            candidates = self.persons.find_name_candidates(
                family_name=staging.family_name_arabic,
                first_name=staging.first_name_arabic,
                father_name=staging.father_name_arabic,
            )
            for candidate in candidates:
                match = self._match(staging, candidate, candidate.id, within_batch=False)
                if match is not None:
                    matches.append(match)

        matches.extend(self._within_batch(staging_persons))
        deduplicated = _keep_best(matches)
        log.info(
            "Person matching complete: %s scanned, %s matches found",
            len(staging_persons),
            len(deduplicated),
        )
        return deduplicated

    def _within_batch(self, staging_persons: Sequence[StagingPerson]) -> list[PersonMatch]:
        matches: list[PersonMatch] = []
        for index, first in enumerate(staging_persons):
            for second in staging_persons[index + 1 :]:
                match = self._match(first, second, second.original_entity_id, within_batch=True)
                if match is not None:
                    matches.append(match)
        return matches


def _keep_best(matches: list[PersonMatch]) -> list[PersonMatch]:
    best: dict[frozenset[UUID], PersonMatch] = {}
    for match in matches:
        key = frozenset(match.pair)
        current = best.get(key)
        if current is None or match.score > current.score:
            best[key] = match
    return list(best.values())
