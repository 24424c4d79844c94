"""Field-level merge rules with provenance tracking."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from .result import FieldSource

type EmptyCheck = Callable[[Any], bool]


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


def is_blank_or_zero(value: Any) -> bool:
    return is_blank(value) or value == 0


@dataclass(frozen=True, slots=True)
class FieldRule:
    """One logical field, possibly spread over several attributes (e.g. coordinates).

    A rule is empty when any of its attributes is empty, and is always copied as a whole.
    """

    label: str
    attributes: tuple[str, ...]
    is_empty: EmptyCheck = field(default=is_blank)

    @classmethod
    def of(cls, label: str, *attributes: str, is_empty: EmptyCheck = is_blank) -> FieldRule:
        return cls(label=label, attributes=attributes or (label,), is_empty=is_empty)

    def empty_on(self, entity: object) -> bool:
        return any(self.is_empty(getattr(entity, name)) for name in self.attributes)

    def copy(self, source: object, target: object) -> None:
        for name in self.attributes:
            setattr(target, name, getattr(source, name))


def fill_gaps(
    target: object,
    source: object,
    rules: tuple[FieldRule, ...],
    *,
    kept: FieldSource,
    taken: FieldSource,
) -> dict[str, str]:
    """Copy each rule from ``source`` only where ``target`` is empty."""

    provenance: dict[str, str] = {}
    for rule in rules:
        if rule.empty_on(target) and not rule.empty_on(source):
            rule.copy(source, target)
            provenance[rule.label] = taken
        else:
            provenance[rule.label] = kept
    return provenance


def overwrite(target: object, source: object, rules: tuple[FieldRule, ...]) -> dict[str, str]:
    """Copy each non-empty staging value over production."""

    provenance: dict[str, str] = {}
    for rule in rules:
        if rule.empty_on(source):
            provenance[rule.label] = FieldSource.PRODUCTION
        else:
            rule.copy(source, target)
            provenance[rule.label] = FieldSource.STAGING
    return provenance
