from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from trrcms_import import main as main_module
from trrcms_import.domain.errors import InvalidStateError
from trrcms_import.domain.model import ConflictStatus, ImportMethod

ACTOR = uuid.UUID("0b5f7a7e-52a4-4c53-9a3a-7f0e1d2c3b4a")
PACKAGE = uuid.UUID("5d0c1f3e-8b2a-4c6e-9f1d-2a3b4c5d6e7f")


@dataclass(slots=True)
class _Outcome:
    command: str
    package: uuid.UUID | None = None
    counts: dict[str, int] = field(default_factory=dict[str, int])


@dataclass(slots=True)
class _FakeApplication:
    calls: list[tuple[str, tuple[object, ...], dict[str, object]]] = field(
        default_factory=list[tuple[str, tuple[object, ...], dict[str, object]]]
    )
    error: Exception | None = None

    def _record(self, name: str, *args: object, **kwargs: object) -> _Outcome:
        self.calls.append((name, args, kwargs))
        if self.error is not None:
            raise self.error
        package = next((arg for arg in args if isinstance(arg, uuid.UUID)), None)
        return _Outcome(command=name, package=package, counts={"persons": 2})

    def upload(self, *args: object, **kwargs: object) -> _Outcome:
        return self._record("upload", *args, **kwargs)

    def commit(self, *args: object, **kwargs: object) -> _Outcome:
        return self._record("commit", *args, **kwargs)

    def approve(self, *args: object, **kwargs: object) -> _Outcome:
        return self._record("approve", *args, **kwargs)

    def merge(self, *args: object, **kwargs: object) -> _Outcome:
        return self._record("merge", *args, **kwargs)

    def conflicts(self, *args: object, **kwargs: object) -> list[_Outcome]:
        return [self._record("conflicts", *args, **kwargs)]


@pytest.fixture
def fake_app(monkeypatch: pytest.MonkeyPatch) -> _FakeApplication:
    app = _FakeApplication()
    monkeypatch.setattr(main_module, "create_application", lambda: app)
    return app


def test_upload_prints_result_as_json(
    fake_app: _FakeApplication, capsys: pytest.CaptureFixture[str]
) -> None:
    main_module.main(["upload", "field.uhc", "--actor", str(ACTOR)])

    ((name, args, kwargs),) = fake_app.calls
    assert name == "upload"
    assert args == (Path("field.uhc"), ACTOR)
    assert kwargs == {"import_method": ImportMethod.CLI}
    payload = json.loads(capsys.readouterr().out)
    assert payload["command"] == "upload"
    assert payload["counts"] == {"persons": 2}


def test_package_commands_accept_uuid_arguments(
    fake_app: _FakeApplication, capsys: pytest.CaptureFixture[str]
) -> None:
    main_module.main(["commit", f" {PACKAGE} ", "--actor", str(ACTOR)])

    assert fake_app.calls == [("commit", (PACKAGE, ACTOR), {})]
    assert json.loads(capsys.readouterr().out)["package"] == str(PACKAGE)


def test_approve_forwards_selected_records(fake_app: _FakeApplication) -> None:
    first, second = uuid.uuid4(), uuid.uuid4()

    main_module.main(
        [
            "approve",
            str(PACKAGE),
            "--record",
            str(first),
            "--record",
            str(second),
            "--actor",
            str(ACTOR),
        ]
    )

    assert fake_app.calls == [("approve", (PACKAGE, ACTOR), {"record_ids": [first, second]})]


def test_merge_defaults_master_and_reason(fake_app: _FakeApplication) -> None:
    conflict_id = uuid.uuid4()

    main_module.main(["merge", str(conflict_id), "--actor", str(ACTOR)])

    assert fake_app.calls == [
        ("merge", (conflict_id, ACTOR), {"master_entity_id": None, "reason": ""})
    ]


def test_conflict_listing_prints_a_json_array(
    fake_app: _FakeApplication, capsys: pytest.CaptureFixture[str]
) -> None:
    main_module.main(["conflicts", str(PACKAGE), "--status", "PendingReview"])

    assert fake_app.calls == [
        (
            "conflicts",
            (PACKAGE,),
            {"conflict_type": None, "status": ConflictStatus.PENDING_REVIEW},
        )
    ]
    payload = json.loads(capsys.readouterr().out)
    assert isinstance(payload, list)
    assert payload[0]["command"] == "conflicts"


def test_invalid_uuid_exits_with_usage_error(fake_app: _FakeApplication) -> None:
    with pytest.raises(SystemExit) as exc:
        main_module.main(["commit", "not-a-uuid", "--actor", str(ACTOR)])

    assert exc.value.code == 2
    assert fake_app.calls == []


def test_workflow_errors_exit_with_status_one(
    fake_app: _FakeApplication, capsys: pytest.CaptureFixture[str]
) -> None:
    fake_app.error = InvalidStateError("Package PKG-2026-0001 must be ReadyToCommit")

    with pytest.raises(SystemExit) as exc:
        main_module.main(["commit", str(PACKAGE), "--actor", str(ACTOR)])

    assert exc.value.code == 1
    assert capsys.readouterr().err.strip() == (
        "Error: Package PKG-2026-0001 must be ReadyToCommit"
    )
