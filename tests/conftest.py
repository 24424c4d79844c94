from __future__ import annotations

import os
import uuid
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.orm import Session, sessionmaker

from trrcms_import.adapters.sqlalchemy import start_mappers
from trrcms_import.adapters.sqlalchemy.migrations import upgrade_head
from trrcms_import.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyImportUnitOfWork,
    shutdown,
    startup,
)
from trrcms_import.app import create_application
from trrcms_import.config import ImportPipelineConfig, StorageConfig
from tests.helpers.uhc import SamplePackage, sample_package

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from pathlib import Path

    from trrcms_import.app import ImportApplication


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    start_mappers()
    upgrade_head(engine=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_session(sqlite_engine: Engine) -> Iterator[Session]:
    session_factory = sessionmaker(bind=sqlite_engine, future=True, expire_on_commit=False)
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def sqlite_unit_of_work(
    sqlite_engine: Engine,
) -> Iterator[Callable[[], SqlAlchemyImportUnitOfWork]]:
    startup(engine=sqlite_engine, force=True)

    def factory() -> SqlAlchemyImportUnitOfWork:
        return SqlAlchemyImportUnitOfWork()

    try:
        yield factory
    finally:
        shutdown()


@pytest.fixture
def actor_id() -> uuid.UUID:
    return uuid.UUID("0b5f7a7e-52a4-4c53-9a3a-7f0e1d2c3b4a")


@pytest.fixture
def storage_config(tmp_path: Path) -> StorageConfig:
    return StorageConfig(data_dir=tmp_path / "data")


@pytest.fixture
def application(
    storage_config: StorageConfig,
    sqlite_unit_of_work: Callable[[], SqlAlchemyImportUnitOfWork],
) -> ImportApplication:
    return create_application(
        storage=storage_config,
        config=ImportPipelineConfig(),
        unit_of_work_factory=sqlite_unit_of_work,
    )


@pytest.fixture
def sample(tmp_path: Path) -> SamplePackage:
    """A consistent package with one of each kind plus a within-batch duplicate person."""

    return sample_package(tmp_path / "uploads" / "sample.uhc")
