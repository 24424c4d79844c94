"""Vocabulary provider backed by configuration and the built-in code sets."""

from __future__ import annotations

from types import MappingProxyType
from typing import TYPE_CHECKING

from trrcms_import.config import DEFAULT_SERVER_VOCABULARY_VERSIONS
from trrcms_import.domain.model.codes import DEFAULT_VOCABULARY_CODES

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from trrcms_import.config import ImportPipelineConfig
    from trrcms_import.domain.model import VocabularyDomain


class StaticVocabularyProvider:
    def __init__(
        self,
        versions: Mapping[str, str] | None = None,
        codes: Mapping[VocabularyDomain, Iterable[int]] | None = None,
    ) -> None:
        self._versions = MappingProxyType(dict(versions or DEFAULT_SERVER_VOCABULARY_VERSIONS))
        source = codes if codes is not None else DEFAULT_VOCABULARY_CODES
        self._codes = {domain: frozenset(values) for domain, values in source.items()}

    @classmethod
    def from_config(cls, config: ImportPipelineConfig) -> StaticVocabularyProvider:
        return cls(versions=config.server_vocabulary_versions)

    def current_versions(self) -> Mapping[str, str]:
        return self._versions

    def is_valid_code(self, domain: VocabularyDomain, code: int) -> bool:
        """Domains without a known code set accept any code."""

        known = self._codes.get(domain)
        return known is None or code in known
