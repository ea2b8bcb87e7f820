from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

from feedsync.adapters.sqlalchemy import (
    SqlAlchemyProviderRepository,
    SqlAlchemySyncRunRepository,
    SqlAlchemyTrackingStore,
)
from feedsync.domain.model import FeedProvider, ProductMapping, SyncRun, SyncStatus
from feedsync.domain.ports import TrackingStore

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

SHOP = "acme-outlet.myshopify.com"


def _provider(session: Session, name: str = "Acme feed") -> FeedProvider:
    provider = FeedProvider(shop=SHOP, name=name, feed_url="https://feeds.example.com/acme.xml")
    SqlAlchemyProviderRepository(session).add(provider)
    session.flush()
    return provider


def test_tracking_store_satisfies_port(sqlite_session: Session) -> None:
    store = SqlAlchemyTrackingStore(sqlite_session, _provider(sqlite_session).id)

    assert isinstance(store, TrackingStore)


def test_upsert_then_get_by_group_key(sqlite_session: Session) -> None:
    provider = _provider(sqlite_session)
    store = SqlAlchemyTrackingStore(sqlite_session, provider.id)

    store.upsert(
        ProductMapping(
            provider_id=provider.id,
            group_key="g1",
            remote_product_id="gid://shopify/Product/1",
            title="Phone X",
            last_price=Decimal("149.00"),
            last_inventory=7,
        )
    )
    sqlite_session.commit()

    mapping = store.get("g1")
    assert mapping is not None
    assert mapping.remote_product_id == "gid://shopify/Product/1"
    assert mapping.last_price == Decimal("149.00")
    assert mapping.last_inventory == 7
    assert store.get("missing") is None


def test_mappings_are_scoped_to_their_provider(sqlite_session: Session) -> None:
    first = _provider(sqlite_session, "First")
    second = _provider(sqlite_session, "Second")
    SqlAlchemyTrackingStore(sqlite_session, first.id).upsert(
        ProductMapping(provider_id=first.id, group_key="g1", remote_product_id="p1", title="One")
    )

    assert SqlAlchemyTrackingStore(sqlite_session, second.id).get("g1") is None
    assert SqlAlchemyTrackingStore(sqlite_session, second.id).active_mappings() == []


def test_mark_inactive_removes_mapping_from_active_list(sqlite_session: Session) -> None:
    provider = _provider(sqlite_session)
    store = SqlAlchemyTrackingStore(sqlite_session, provider.id)
    for key, title in (("g1", "Zebra Lamp"), ("g2", "Alpha Desk")):
        store.upsert(ProductMapping(provider_id=provider.id, group_key=key, remote_product_id=key, title=title))

    assert [mapping.title for mapping in store.active_mappings()] == ["Alpha Desk", "Zebra Lamp"]

    store.mark_inactive(store.active_mappings()[0])

    assert [mapping.group_key for mapping in store.active_mappings()] == ["g1"]
    inactive = store.get("g2")
    assert inactive is not None
    assert inactive.is_active is False


def test_provider_repository_find_and_list(sqlite_session: Session) -> None:
    repo = SqlAlchemyProviderRepository(sqlite_session)
    active = _provider(sqlite_session, "Active")
    paused = _provider(sqlite_session, "Paused")
    paused.is_active = False
    sqlite_session.commit()

    assert repo.find(shop=SHOP, name="Active") is active
    assert repo.find(shop="other.myshopify.com", name="Active") is None
    assert repo.list_providers(shop=SHOP) == [active, paused]
    assert repo.list_providers(active_only=True) == [active]


def test_sync_run_repository_returns_latest_first(sqlite_session: Session) -> None:
    provider = _provider(sqlite_session)
    runs = SqlAlchemySyncRunRepository(sqlite_session)
    older = SyncRun(provider_id=provider.id, status=SyncStatus.SUCCESS)
    newer = SyncRun(provider_id=provider.id, status=SyncStatus.PARTIAL, started_at=older.started_at.replace(year=2100))
    runs.add(older)
    runs.add(newer)
    sqlite_session.commit()

    assert runs.latest(provider.id) == [newer, older]
    assert runs.latest(provider.id, limit=1) == [newer]
