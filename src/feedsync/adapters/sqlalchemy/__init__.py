"""SQLAlchemy adapter package for feedsync."""

from __future__ import annotations

from .mappings import create_all_tables, mapper_registry, start_mappers
from .repositories import (
    SqlAlchemyProviderRepository,
    SqlAlchemySyncRunRepository,
    SqlAlchemyTrackingStore,
)
from .unit_of_work import SqlAlchemySyncUnitOfWork, StartupError, shutdown, startup

__all__ = [
    "SqlAlchemyProviderRepository",
    "SqlAlchemySyncRunRepository",
    "SqlAlchemySyncUnitOfWork",
    "SqlAlchemyTrackingStore",
    "StartupError",
    "create_all_tables",
    "mapper_registry",
    "shutdown",
    "start_mappers",
    "startup",
]
