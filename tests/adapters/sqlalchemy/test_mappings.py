from __future__ import annotations

import uuid
from datetime import UTC
from typing import TYPE_CHECKING

from sqlalchemy import inspect

from trrcms_import.adapters.sqlalchemy import STAGING_TABLES
from trrcms_import.domain.model import (
    ConflictResolution,
    ImportPackage,
    ImportStatus,
    StagingKind,
    StagingPerson,
    StagingValidationStatus,
)
from tests.helpers.entities import ACTOR_ID, make_conflict, make_package, make_staging_person

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine
    from sqlalchemy.orm import Session


def test_migrations_create_every_table(sqlite_engine: Engine) -> None:
    tables = set(inspect(sqlite_engine).get_table_names())

    assert {"import_package", "conflict_resolution"} <= tables
    assert {table.name for table in STAGING_TABLES.values()} <= tables
    assert {
        "building",
        "property_unit",
        "person",
        "household",
        "person_property_relation",
        "claim",
        "survey",
        "evidence",
    } <= tables


def test_import_package_round_trip(sqlite_session: Session) -> None:
    package = make_package(ImportStatus.VALIDATING, vocabulary_versions='{"a": "1.0.0"}')
    sqlite_session.add(package)
    sqlite_session.commit()
    sqlite_session.expunge_all()

    loaded = sqlite_session.get(ImportPackage, package.id)

    assert loaded is not None
    assert loaded is not package
    assert loaded.status is ImportStatus.VALIDATING
    assert loaded.package_number == "PKG-2026-0001"
    assert loaded.created_at.tzinfo is not None
    assert loaded.created_at.astimezone(UTC) == package.created_at
    assert loaded.version_id == 1


def test_staging_lists_round_trip(sqlite_session: Session) -> None:
    person = make_staging_person(uuid.uuid4(), first_name_arabic="سارة")
    person.mark_as_invalid(["Year of birth is in the future"], ["Mobile number looks short"])
    sqlite_session.add(person)
    sqlite_session.commit()
    sqlite_session.expunge_all()

    loaded = sqlite_session.get(StagingPerson, person.id)

    assert loaded is not None
    assert loaded.kind is StagingKind.PERSON
    assert loaded.first_name_arabic == "سارة"
    assert loaded.validation_status is StagingValidationStatus.INVALID
    assert loaded.validation_errors == ["Year of birth is in the future"]
    assert loaded.validation_warnings == ["Mobile number looks short"]


def test_conflict_json_columns_round_trip(sqlite_session: Session) -> None:
    conflict = make_conflict(uuid.uuid4(), uuid.uuid4(), import_package_id=uuid.uuid4())
    conflict.matching_criteria = {"national_id_matched": True, "name_similarity_score": 91.5}
    conflict.record_review_attempt("Checked the deed scans", ACTOR_ID)
    sqlite_session.add(conflict)
    sqlite_session.commit()
    sqlite_session.expunge_all()

    loaded = sqlite_session.get(ConflictResolution, conflict.id)

    assert loaded is not None
    assert loaded.matching_criteria == {"national_id_matched": True, "name_similarity_score": 91.5}
    assert len(loaded.review_history) == 1
    assert loaded.review_history[0]["notes"] == "Checked the deed scans"
