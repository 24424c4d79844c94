"""Arabic name normalisation and similarity."""

from __future__ import annotations

import unicodedata
from typing import Final

from rapidfuzz.distance import Levenshtein

TATWEEL: Final[str] = "ـ"

_CHARACTER_FOLDS: Final[dict[int, str]] = str.maketrans(
    {
        "أ": "ا",  # alef with hamza above
        "إ": "ا",  # alef with hamza below
        "آ": "ا",  # alef with madda
        "ٱ": "ا",  # alef wasla
        "ة": "ه",  # taa marbuta
        "ى": "ي",  # alef maksura
    }
)

FIRST_NAME_WEIGHT: Final[float] = 0.30
FATHER_NAME_WEIGHT: Final[float] = 0.30
FAMILY_NAME_WEIGHT: Final[float] = 0.40


def normalize_arabic(value: str | None) -> str:
    """Strip diacritics and tatweel, fold letter variants and collapse whitespace."""

    if not value or not value.strip():
        return ""
    kept = (
        char
        for char in value
        if char != TATWEEL and unicodedata.category(char) not in {"Mn", "Me"}
    )
    return " ".join("".join(kept).translate(_CHARACTER_FOLDS).split())


class ArabicNameSimilarity:
    """Levenshtein-based similarity over normalised Arabic names, as a 0-100 percentage."""

    @staticmethod
    def similarity(first: str | None, second: str | None) -> float:
        left = normalize_arabic(first)
        right = normalize_arabic(second)
        if not left or not right:
            return 0.0
        if left == right:
            return 100.0
        distance = Levenshtein.distance(left, right)
        score = (1.0 - distance / max(len(left), len(right))) * 100.0
        return max(0.0, round(score, 1))

    @classmethod
    def full_name_similarity(
        cls,
        first: tuple[str | None, str | None, str | None],
        second: tuple[str | None, str | None, str | None],
    ) -> float:
        """Weighted similarity of ``(first name, father name, family name)`` triples."""

        first_name = cls.similarity(first[0], second[0])
        father_name = cls.similarity(first[1], second[1])
        family_name = cls.similarity(first[2], second[2])
        return round(
            first_name * FIRST_NAME_WEIGHT
            + father_name * FATHER_NAME_WEIGHT
            + family_name * FAMILY_NAME_WEIGHT,
            1,
        )
