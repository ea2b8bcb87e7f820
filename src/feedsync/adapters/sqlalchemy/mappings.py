"""SQLAlchemy mapping metadata for the tracking records."""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from functools import cache
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Dialect,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
    Uuid,
    orm,
)

from feedsync.domain.model import FeedProvider, ProductMapping, SyncRun, SyncStatus

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]


def _as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class UTCDateTime(TypeDecorator[datetime]):
    """Timestamps stored in UTC; SQLite drops the offset, so reads reattach it."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:  # noqa: ARG002
        return _as_utc(value)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:  # noqa: ARG002
        return _as_utc(value)


mapper_registry = orm.registry()

feed_provider_table = Table(
    "feed_provider",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True),
    Column("shop", String(255), nullable=False),
    Column("name", String(255), nullable=False),
    Column("feed_url", Text, nullable=False),
    Column("sync_frequency_hours", Integer, nullable=False),
    Column("auto_delete", Boolean, nullable=False, default=False),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("last_sync", UTCDateTime(), nullable=True),
    Column("next_sync", UTCDateTime(), nullable=True),
    UniqueConstraint("shop", "name"),
)

product_mapping_table = Table(
    "product_mapping",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True),
    Column(
        "provider_id",
        UUIDColumnType,
        ForeignKey("feed_provider.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("group_key", String(512), nullable=False),
    Column("remote_product_id", String(255), nullable=False),
    Column("title", String(512), nullable=False),
    Column("sku", String(255), nullable=True),
    Column("remote_handle", String(255), nullable=True),
    Column("last_price", Numeric(12, 2), nullable=True),
    Column("last_inventory", Integer, nullable=True),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("last_seen_at", UTCDateTime(), nullable=False),
    Column("updated_at", UTCDateTime(), nullable=False),
    UniqueConstraint("provider_id", "group_key"),
    Index("ix_product_mapping_active", "provider_id", "is_active"),
)

sync_run_table = Table(
    "sync_run",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True),
    Column(
        "provider_id",
        UUIDColumnType,
        ForeignKey("feed_provider.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("started_at", UTCDateTime(), nullable=False),
    Column("completed_at", UTCDateTime(), nullable=True),
    Column(
        "status",
        Enum(SyncStatus, native_enum=False, values_callable=lambda enum: [e.value for e in enum]),
        nullable=False,
    ),
    Column("total_groups", Integer, nullable=False, default=0),
    Column("created", Integer, nullable=False, default=0),
    Column("updated", Integer, nullable=False, default=0),
    Column("deleted", Integer, nullable=False, default=0),
    Column("errors", Integer, nullable=False, default=0),
    Column("error_message", Text, nullable=True),
    Column("details", Text, nullable=True),
    Index("ix_sync_run_provider_started", "provider_id", "started_at"),
)


@cache
def start_mappers() -> orm.registry:
    """Map the tracking dataclasses onto their tables (idempotent)."""

    log.debug("Mapping tracking records onto feed_provider, product_mapping and sync_run")
    mapper_registry.map_imperatively(FeedProvider, feed_provider_table)
    mapper_registry.map_imperatively(ProductMapping, product_mapping_table)
    mapper_registry.map_imperatively(SyncRun, sync_run_table)
    orm.configure_mappers()
    return mapper_registry


def create_all_tables(engine: Engine) -> None:
    mapper_registry.metadata.create_all(engine)
