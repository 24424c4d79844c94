"""Per-domain semantic-version comparison between a package and the server."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from trrcms_import.domain.model import VocabularyCompatibilityLevel

if TYPE_CHECKING:
    from collections.abc import Mapping


@dataclass(frozen=True, slots=True)
class VocabularyCheckItem:
    domain: str
    package_version: str
    server_version: str | None
    level: VocabularyCompatibilityLevel
    message: str | None = None


@dataclass(slots=True)
class VocabularyCompatibilityResult:
    items: list[VocabularyCheckItem] = field(default_factory=list[VocabularyCheckItem])
    issues: list[str] = field(default_factory=list[str])
    versions: dict[str, str] = field(default_factory=dict[str, str])
    is_compatible: bool = True
    is_fully_compatible: bool = True

    @property
    def summary(self) -> str | None:
        return "; ".join(self.issues) if self.issues else None

    @property
    def versions_json(self) -> str:
        return json.dumps(self.versions, sort_keys=True)

    @property
    def issues_json(self) -> str | None:
        return json.dumps(self.issues) if self.issues else None


def parse_semver(version: str) -> tuple[int, int, int]:
    """Unparsable or missing parts count as 0."""

    parts = version.strip().lstrip("vV").split(".")
    numbers: list[int] = []
    for part in (*parts, "0", "0", "0")[:3]:
        digits = part.split("-", 1)[0].split("+", 1)[0]
        numbers.append(int(digits) if digits.isdigit() else 0)
    return numbers[0], numbers[1], numbers[2]


def compare_versions(package_version: str, server_version: str) -> VocabularyCompatibilityLevel:
    package = parse_semver(package_version)
    server = parse_semver(server_version)
    if package[0] != server[0]:
        return VocabularyCompatibilityLevel.MAJOR_DIFFERENCE
    if package[1] != server[1]:
        return VocabularyCompatibilityLevel.MINOR_DIFFERENCE
    if package[2] != server[2]:
        return VocabularyCompatibilityLevel.PATCH_DIFFERENCE
    return VocabularyCompatibilityLevel.IDENTICAL


def check_vocabulary_compatibility(
    package_versions: Mapping[str, str], server_versions: Mapping[str, str]
) -> VocabularyCompatibilityResult:
    result = VocabularyCompatibilityResult(versions=dict(package_versions))

    for domain, package_version in package_versions.items():
        server_version = server_versions.get(domain)
        if server_version is None:
            result.items.append(
                VocabularyCheckItem(
                    domain=domain,
                    package_version=package_version,
                    server_version=None,
                    level=VocabularyCompatibilityLevel.UNKNOWN_DOMAIN,
                    message=f"Unknown vocabulary domain '{domain}' (v{package_version})",
                )
            )
            result.is_fully_compatible = False
            result.issues.append(f"{domain}: unknown domain (package has v{package_version})")
            continue

        level = compare_versions(package_version, server_version)
        detail = f"(package v{package_version}, server v{server_version})"
        message: str | None = None
        match level:
            case VocabularyCompatibilityLevel.MAJOR_DIFFERENCE:
                message = f"{domain}: MAJOR incompatibility {detail}"
                result.is_compatible = False
                result.is_fully_compatible = False
                result.issues.append(f"{domain}: MAJOR version mismatch {detail}")
            case VocabularyCompatibilityLevel.MINOR_DIFFERENCE:
                message = f"{domain}: minor difference {detail}"
                result.is_fully_compatible = False
                result.issues.append(f"{domain}: minor version difference {detail}")
            case VocabularyCompatibilityLevel.PATCH_DIFFERENCE:
                message = f"{domain}: patch difference {detail}"
            case _:
                pass
        result.items.append(
            VocabularyCheckItem(
                domain=domain,
                package_version=package_version,
                server_version=server_version,
                level=level,
                message=message,
            )
        )

    return result
