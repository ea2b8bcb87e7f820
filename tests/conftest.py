from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.orm import Session, sessionmaker

from feedsync.adapters.sqlalchemy import create_all_tables, start_mappers
from feedsync.adapters.sqlalchemy.unit_of_work import SqlAlchemySyncUnitOfWork, shutdown, startup
from feedsync.config import SyncConfig
from tests.helpers.catalog import FakeCatalogClient
from tests.helpers.timing import RecordingSleep

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator


@pytest.fixture
def catalog() -> FakeCatalogClient:
    return FakeCatalogClient()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def fast_config() -> SyncConfig:
    return SyncConfig(inter_batch_delay=0.0, retry_base_delay=0.0)


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    start_mappers()
    create_all_tables(engine)
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
) -> Iterator[Callable[[], SqlAlchemySyncUnitOfWork]]:
    startup(engine=sqlite_engine, force=True)

    def factory() -> SqlAlchemySyncUnitOfWork:
        return SqlAlchemySyncUnitOfWork()

    try:
        yield factory
    finally:
        shutdown()
