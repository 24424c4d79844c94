"""Build ``.uhc`` package files (SQLite) for tests."""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import create_engine, text
from sqlalchemy.pool import NullPool

from trrcms_import.adapters.uhc import open_package
from trrcms_import.domain.verification import compute_content_checksum

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from pathlib import Path

type TableRows = Sequence[Mapping[str, object]]

MANIFEST_COUNT_KEYS: dict[str, str] = {
    "buildings": "building_count",
    "property_units": "property_unit_count",
    "persons": "person_count",
    "households": "household_count",
    "person_property_relations": "relation_count",
    "claims": "claim_count",
    "surveys": "survey_count",
    "evidences": "document_count",
}

DEFAULT_VOCABULARY_VERSIONS: dict[str, str] = {
    "building_type": "1.0.0",
    "relation_type": "1.0.0",
    "evidence_type": "1.0.0",
}


def _sql_value(value: object) -> object:
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def _sql_type(values: list[object]) -> str:
    for value in values:
        if value is None:
            continue
        if isinstance(value, bytes):
            return "BLOB"
        if isinstance(value, bool | int):
            return "INTEGER"
        if isinstance(value, float):
            return "REAL"
        return "TEXT"
    return "TEXT"


def _create_table(connection: object, name: str, rows: TableRows) -> None:
    columns: list[str] = []
    for row in rows:
        for column in row:
            if column not in columns:
                columns.append(column)
    if not columns:
        columns = ["id"]
    ddl = ", ".join(
        f'"{column}" {_sql_type([row.get(column) for row in rows])}' for column in columns
    )
    connection.execute(text(f'CREATE TABLE "{name}" ({ddl})'))  # type: ignore[attr-defined]
    if not rows:
        return
    names = ", ".join(f'"{column}"' for column in columns)
    params = ", ".join(f":p{index}" for index in range(len(columns)))
    connection.execute(  # type: ignore[attr-defined]
        text(f'INSERT INTO "{name}" ({names}) VALUES ({params})'),
        [
            {f"p{index}": _sql_value(row.get(column)) for index, column in enumerate(columns)}
            for row in rows
        ],
    )


def manifest_for(
    tables: Mapping[str, TableRows],
    *,
    package_id: uuid.UUID | None = None,
    exported_by_user_id: uuid.UUID | None = None,
    vocab_versions: Mapping[str, str] | None = None,
    **extra: object,
) -> dict[str, object]:
    """Manifest entries with record counts taken from ``tables``."""

    manifest: dict[str, object] = {
        "package_id": package_id or uuid.uuid4(),
        "exported_by_user_id": exported_by_user_id or uuid.uuid4(),
        "schema_version": "1.0.0",
        "created_utc": datetime(2026, 3, 1, 8, 0, tzinfo=UTC),
        "exported_date_utc": datetime(2026, 3, 1, 9, 0, tzinfo=UTC),
        "device_id": "TABLET-007",
        "app_version": "2.4.1",
        "vocab_versions": dict(
            DEFAULT_VOCABULARY_VERSIONS if vocab_versions is None else vocab_versions
        ),
    }
    for table, key in MANIFEST_COUNT_KEYS.items():
        manifest[key] = len(tables.get(table, ()))
    manifest.update(extra)
    return manifest


def write_uhc(
    path: Path,
    *,
    manifest: Mapping[str, object] | None,
    tables: Mapping[str, TableRows],
    attachments: Mapping[uuid.UUID | str, bytes] | None = None,
    checksum: str | bool = True,
) -> Path:
    """Write a package file.

    ``checksum=True`` stores the real content digest in the manifest, a string stores
    that value instead and ``False`` leaves it out. ``manifest=None`` omits the table.
    """

    path.parent.mkdir(parents=True, exist_ok=True)
    engine = create_engine(f"sqlite+pysqlite:///{path}", poolclass=NullPool)
    try:
        with engine.begin() as connection:
            for name, rows in tables.items():
                _create_table(connection, name, rows)
            if attachments is not None:
                connection.execute(text("CREATE TABLE attachments (evidence_id TEXT, data BLOB)"))
                for evidence_id, data in attachments.items():
                    connection.execute(
                        text("INSERT INTO attachments (evidence_id, data) VALUES (:id, :data)"),
                        {"id": str(evidence_id), "data": data},
                    )
    finally:
        engine.dispose()

    if manifest is None:
        return path

    entries = dict(manifest)
    if checksum is True:
        with open_package(path) as reader:
            entries["checksum"] = compute_content_checksum(reader)
    elif isinstance(checksum, str):
        entries["checksum"] = checksum

    engine = create_engine(f"sqlite+pysqlite:///{path}", poolclass=NullPool)
    try:
        with engine.begin() as connection:
            connection.execute(text("CREATE TABLE manifest (key TEXT PRIMARY KEY, value TEXT)"))
            for key, value in entries.items():
                if isinstance(value, dict):
                    stored: object = json.dumps(value)
                elif value is None:
                    stored = None
                else:
                    stored = str(_sql_value(value))
                connection.execute(
                    text("INSERT INTO manifest (key, value) VALUES (:key, :value)"),
                    {"key": key, "value": stored},
                )
    finally:
        engine.dispose()
    return path


@dataclass(slots=True)
class SamplePackage:
    path: Path
    package_id: uuid.UUID
    building_id: uuid.UUID
    unit_id: uuid.UUID
    person_id: uuid.UUID
    duplicate_person_id: uuid.UUID
    household_id: uuid.UUID
    relation_id: uuid.UUID
    claim_id: uuid.UUID
    survey_id: uuid.UUID
    evidence_id: uuid.UUID
    national_id: str = "01234567890"
    tables: dict[str, list[dict[str, object]]] = field(default_factory=dict)

    @property
    def record_count(self) -> int:
        return sum(len(rows) for rows in self.tables.values())


def sample_tables(
    *,
    building_id: uuid.UUID,
    unit_id: uuid.UUID,
    person_id: uuid.UUID,
    duplicate_person_id: uuid.UUID,
    household_id: uuid.UUID,
    relation_id: uuid.UUID,
    claim_id: uuid.UUID,
    survey_id: uuid.UUID,
    evidence_id: uuid.UUID,
    national_id: str,
) -> dict[str, list[dict[str, object]]]:
    return {
        "buildings": [
            {
                "id": building_id,
                "governorate_code": "01",
                "district_code": "01",
                "sub_district_code": "01",
                "community_code": "001",
                "neighborhood_code": "001",
                "building_number": "00001",
                "building_type": 1,
                "building_status": 1,
                "number_of_property_units": 1,
                "number_of_apartments": 1,
                "number_of_shops": 0,
                "damage_level": 0,
                "latitude": 33.5138,
                "longitude": 36.2765,
            }
        ],
        "property_units": [
            {
                "id": unit_id,
                "building_id": building_id,
                "unit_identifier": "1",
                "unit_type": 1,
                "status": 1,
                "floor_number": 0,
                "number_of_rooms": 3,
                "area_square_meters": 85.0,
            }
        ],
        "persons": [
            {
                "id": person_id,
                "family_name_arabic": "الأحمد",
                "first_name_arabic": "محمد",
                "father_name_arabic": "علي",
                "national_id": national_id,
                "year_of_birth": 1980,
                "gender": "M",
                "mobile_number": "0944123456",
                "household_id": household_id,
            },
            {
                "id": duplicate_person_id,
                "family_name_arabic": "الأحمد",
                "first_name_arabic": "محمد",
                "father_name_arabic": "علي",
                "national_id": None,
                "year_of_birth": 1980,
                "gender": "ذكر",
                "mobile_number": None,
                "household_id": household_id,
            },
        ],
        "households": [
            {
                "id": household_id,
                "property_unit_id": unit_id,
                "head_of_household_person_id": person_id,
                "head_of_household_name": "محمد علي الأحمد",
                "household_size": 2,
                "male_count": 2,
                "female_count": 0,
            }
        ],
        "person_property_relations": [
            {
                "id": relation_id,
                "person_id": duplicate_person_id,
                "property_unit_id": unit_id,
                "relation_type": 1,
                "ownership_share": 100.0,
            }
        ],
        "claims": [
            {
                "id": claim_id,
                "property_unit_id": unit_id,
                "primary_claimant_id": person_id,
                "claim_type": "Ownership",
                "claim_source": 1,
                "lifecycle_stage": 1,
                "status": 1,
            }
        ],
        "surveys": [
            {
                "id": survey_id,
                "building_id": building_id,
                "property_unit_id": unit_id,
                "survey_date": "2026-01-15T10:00:00",
                "type": "Field",
                "reference_code": "SRV-001",
            }
        ],
        "evidences": [
            {
                "id": evidence_id,
                "evidence_type": 1,
                "original_file_name": "deed.pdf",
                "file_size_bytes": 4,
                "person_id": person_id,
                "person_property_relation_id": relation_id,
            }
        ],
    }


def sample_package(
    path: Path,
    *,
    package_id: uuid.UUID | None = None,
    vocab_versions: Mapping[str, str] | None = None,
    checksum: str | bool = True,
) -> SamplePackage:
    """Write a valid package whose two persons are within-batch duplicates.

    The ownership relation points at the duplicate person so committing after a merge
    has to follow the alias to the surviving person.
    """

    sample = SamplePackage(
        path=path,
        package_id=package_id or uuid.uuid4(),
        building_id=uuid.uuid4(),
        unit_id=uuid.uuid4(),
        person_id=uuid.uuid4(),
        duplicate_person_id=uuid.uuid4(),
        household_id=uuid.uuid4(),
        relation_id=uuid.uuid4(),
        claim_id=uuid.uuid4(),
        survey_id=uuid.uuid4(),
        evidence_id=uuid.uuid4(),
    )
    sample.tables = sample_tables(
        building_id=sample.building_id,
        unit_id=sample.unit_id,
        person_id=sample.person_id,
        duplicate_person_id=sample.duplicate_person_id,
        household_id=sample.household_id,
        relation_id=sample.relation_id,
        claim_id=sample.claim_id,
        survey_id=sample.survey_id,
        evidence_id=sample.evidence_id,
        national_id=sample.national_id,
    )
    write_uhc(
        path,
        manifest=manifest_for(
            sample.tables, package_id=sample.package_id, vocab_versions=vocab_versions
        ),
        tables=sample.tables,
        attachments={sample.evidence_id: b"%PDF"},
        checksum=checksum,
    )
    return sample
