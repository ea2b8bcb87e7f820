"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING, cast

from sqlalchemy import select

from feedsync.adapters.sqlalchemy.mappings import (
    feed_provider_table,
    product_mapping_table,
    sync_run_table,
)
from feedsync.domain.model import FeedProvider, ProductMapping, SyncRun

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.orm import Session


class SqlAlchemyProviderRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, provider: FeedProvider) -> None:
        self.session.add(provider)

    def get(self, provider_id: uuid.UUID) -> FeedProvider | None:
        return self.session.get(FeedProvider, provider_id)

    def find(self, *, shop: str, name: str) -> FeedProvider | None:
        stmt = (
            select(FeedProvider)
            .where(feed_provider_table.c.shop == shop)
            .where(feed_provider_table.c.name == name)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def list_providers(
        self,
        *,
        shop: str | None = None,
        active_only: bool = False,
    ) -> list[FeedProvider]:
        stmt = select(FeedProvider).order_by(feed_provider_table.c.shop, feed_provider_table.c.name)
        if shop is not None:
            stmt = stmt.where(feed_provider_table.c.shop == shop)
        if active_only:
            stmt = stmt.where(feed_provider_table.c.is_active.is_(True))
        return list(self.session.execute(stmt).scalars())


class SqlAlchemySyncRunRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, run: SyncRun) -> None:
        self.session.add(run)

    def latest(self, provider_id: uuid.UUID, *, limit: int = 10) -> list[SyncRun]:
        stmt = (
            select(SyncRun)
            .where(sync_run_table.c.provider_id == provider_id)
            .order_by(sync_run_table.c.started_at.desc())
            .limit(limit)
        )
        return list(self.session.execute(stmt).scalars())


class SqlAlchemyTrackingStore:
    """Product mappings of one provider.

    Writes are flushed immediately so lookups within the same run see them;
    the owning unit of work decides when to commit.
    """

    def __init__(self, session: Session, provider_id: uuid.UUID) -> None:
        self.session = session
        self.provider_id = provider_id

    def get(self, group_key: str) -> ProductMapping | None:
        stmt = (
            select(ProductMapping)
            .where(product_mapping_table.c.provider_id == self.provider_id)
            .where(product_mapping_table.c.group_key == group_key)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def active_mappings(self) -> list[ProductMapping]:
        stmt = (
            select(ProductMapping)
            .where(product_mapping_table.c.provider_id == self.provider_id)
            .where(product_mapping_table.c.is_active.is_(True))
            .order_by(product_mapping_table.c.title)
        )
        return list(self.session.execute(stmt).scalars())

    def upsert(self, mapping: ProductMapping) -> None:
        mapping.provider_id = self.provider_id
        self.session.add(mapping)
        self.session.flush()

    def mark_inactive(self, mapping: ProductMapping) -> None:
        mapping.deactivate()
        self.session.add(mapping)
        self.session.flush()


if TYPE_CHECKING:
    from feedsync.domain.ports import ProviderRepository, SyncRunRepository, TrackingStore

    _session_stub = cast("Session", object())
    _provider_repo: ProviderRepository = SqlAlchemyProviderRepository(_session_stub)
    _run_repo: SyncRunRepository = SqlAlchemySyncRunRepository(_session_stub)
    _tracking: TrackingStore = SqlAlchemyTrackingStore(_session_stub, cast("uuid.UUID", None))
