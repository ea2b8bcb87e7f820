"""SQLAlchemy-backed unit of work for sync bookkeeping."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Literal

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from feedsync.adapters.sqlalchemy.mappings import create_all_tables, start_mappers
from feedsync.adapters.sqlalchemy.repositories import (
    SqlAlchemyProviderRepository,
    SqlAlchemySyncRunRepository,
    SqlAlchemyTrackingStore,
)
from feedsync.config.storage import get_database_config
from feedsync.domain.ports.unit_of_work import SyncRepositories

if TYPE_CHECKING:
    import uuid
    from types import TracebackType

    from sqlalchemy.engine import Engine

log = getLogger(__name__)


class StartupError(RuntimeError):
    """Raised when the tracking database is used before ``startup()`` or started twice."""


@dataclass(slots=True)
class _TrackingDatabase:
    engine: Engine | None = None
    sessions: sessionmaker[Session] | None = None

    def open(self, engine: Engine) -> None:
        self.engine = engine
        self.sessions = sessionmaker(bind=engine, expire_on_commit=False)

    def close(self) -> None:
        if self.engine is not None:
            self.engine.dispose()
        self.engine = None
        self.sessions = None


_DATABASE = _TrackingDatabase()


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Map the tracking records, create missing tables and open the session factory.

    The database defaults to ``DATABASE_URI`` or ``feedsync.db`` in the data
    directory. A second call raises unless ``force`` is set.
    """

    if _DATABASE.engine is not None and not force:
        raise StartupError("Tracking database already started; pass force=True to replace it")

    resolved = engine or create_engine(database_uri or get_database_config().uri, future=True)
    start_mappers()
    create_all_tables(resolved)
    _DATABASE.open(resolved)
    log.debug("Tracking database ready at %s", resolved.url)


def is_started() -> bool:
    return _DATABASE.engine is not None


def shutdown() -> None:
    _DATABASE.close()


def _session_factory() -> sessionmaker[Session]:
    if _DATABASE.sessions is None:
        raise StartupError(
            "Tracking database not started; call feedsync.adapters.sqlalchemy.startup() first"
        )
    return _DATABASE.sessions


class SqlAlchemySyncUnitOfWork:
    """One session shared by the provider, sync-run and tracking repositories."""

    def __init__(self) -> None:
        self.session_factory = _session_factory()
        self._session: Session | None = None
        self._repositories: SyncRepositories | None = None

    def __enter__(self) -> SqlAlchemySyncUnitOfWork:
        self.session = self.session_factory()
        self._repositories = SyncRepositories(
            providers=SqlAlchemyProviderRepository(self.session),
            sync_runs=SqlAlchemySyncRunRepository(self.session),
        )
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        if exc_type is not None:
            self.rollback()
        self.session.close()
        self.session = None
        self._repositories = None
        return False

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()

    def tracking(self, provider_id: uuid.UUID) -> SqlAlchemyTrackingStore:
        return SqlAlchemyTrackingStore(self.session, provider_id)

    @property
    def repositories(self) -> SyncRepositories:
        if self._repositories is None:
            raise StartupError("Unit of work session not initialised")
        return self._repositories

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._session

    @session.setter
    def session(self, session: Session | None) -> None:
        if self._session is not None and session is not None:
            raise StartupError("Unit of work session already initialised")
        self._session = session


if TYPE_CHECKING:
    from feedsync.domain.ports import SyncUnitOfWork

    _uow_check: SyncUnitOfWork = SqlAlchemySyncUnitOfWork()
