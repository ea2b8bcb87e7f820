from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import TYPE_CHECKING

import pytest

from feedsync.adapters.notifiers import RecordingNotifier
from feedsync.app import read_feed, summarize_feed, sync_due_providers, sync_feed, sync_provider
from feedsync.config import SyncConfig
from feedsync.domain.errors import FeedFetchError, ParseError
from feedsync.domain.model import FeedProvider, SyncStatus
from feedsync.domain.reconciliation import ProgressEventType
from tests.helpers.catalog import FakeCatalogClient
from tests.helpers.feeds import GOOGLE_SHOPPING_FEED
from tests.helpers.timing import SteppingClock

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

    from feedsync.adapters.sqlalchemy import SqlAlchemySyncUnitOfWork
    from feedsync.domain.reconciliation import ReconciliationPipeline

SHOP = "acme-outlet.myshopify.com"
FEED_URL = "https://feeds.example.com/acme.xml"
BROKEN_URL = "https://feeds.example.com/broken.xml"


class StaticFeedFetcher:
    def __init__(self, documents: dict[str, bytes]) -> None:
        self.documents = documents
        self.fetched: list[str] = []

    async def fetch(self, url: str) -> bytes:
        self.fetched.append(url)
        if url not in self.documents:
            raise FeedFetchError(f"Feed {url} responded 404")
        return self.documents[url]


def _add_provider(
    unit_of_work: Callable[[], SqlAlchemySyncUnitOfWork],
    name: str,
    feed_url: str = FEED_URL,
    **fields: object,
) -> FeedProvider:
    with unit_of_work() as uow:
        provider = FeedProvider(shop=SHOP, name=name, feed_url=feed_url, **fields)  # type: ignore[arg-type]
        uow.repositories.providers.add(provider)
        uow.commit()
    return provider


def test_read_feed_applies_configured_defaults() -> None:
    document = b"<products><product><id>1</id><title>Desk Lamp</title><price>20</price></product></products>"

    [item] = read_feed(document, SyncConfig(default_vendor="House Brand"))

    assert item.vendor == "House Brand"


def test_summarize_feed_groups_variants() -> None:
    groups = summarize_feed(GOOGLE_SHOPPING_FEED)

    assert sorted(len(group.items) for group in groups) == [1, 3]


def test_sync_feed_exposes_the_pipeline_before_running(catalog: FakeCatalogClient, fast_config: SyncConfig) -> None:
    seen: list[ReconciliationPipeline] = []

    report = asyncio.run(
        sync_feed(
            read_feed(GOOGLE_SHOPPING_FEED),
            shop=SHOP,
            client=catalog,
            notifier=RecordingNotifier(),
            config=fast_config,
            on_pipeline=seen.append,
        )
    )

    assert len(seen) == 1
    assert report.stats.created == 2


def test_sync_provider_records_run_and_schedule(
    catalog: FakeCatalogClient,
    fast_config: SyncConfig,
    sqlite_unit_of_work: Callable[[], SqlAlchemySyncUnitOfWork],
) -> None:
    provider = _add_provider(sqlite_unit_of_work, "Acme")
    notifier = RecordingNotifier()
    clock = SteppingClock()
    started = clock.now

    with sqlite_unit_of_work() as uow:
        stored = uow.repositories.providers.get(provider.id)
        assert stored is not None
        run = asyncio.run(
            sync_provider(
                stored,
                fetcher=StaticFeedFetcher({FEED_URL: GOOGLE_SHOPPING_FEED}),
                client=catalog,
                unit_of_work=uow,
                notifier=notifier,
                config=fast_config,
                clock=clock,
            )
        )

    assert run.status is SyncStatus.SUCCESS
    assert (run.total_groups, run.created, run.updated, run.errors) == (2, 2, 0, 0)
    assert run.details is not None
    assert len(notifier.of_type(ProgressEventType.CREATED)) == 2

    with sqlite_unit_of_work() as uow:
        reloaded = uow.repositories.providers.get(provider.id)
        assert reloaded is not None
        assert reloaded.last_sync == started
        assert reloaded.next_sync == started + timedelta(hours=8)
        assert [saved.status for saved in uow.repositories.sync_runs.latest(provider.id)] == [SyncStatus.SUCCESS]
        mappings = uow.tracking(provider.id).active_mappings()
        assert {mapping.remote_product_id for mapping in mappings} == set(catalog.products)


@pytest.mark.parametrize(
    ("documents", "error"),
    [
        ({}, FeedFetchError),
        ({FEED_URL: b"<products><product><title>Lamp"}, ParseError),
    ],
)
def test_sync_provider_records_fatal_feed_errors(
    documents: dict[str, bytes],
    error: type[Exception],
    catalog: FakeCatalogClient,
    sqlite_unit_of_work: Callable[[], SqlAlchemySyncUnitOfWork],
) -> None:
    provider = _add_provider(sqlite_unit_of_work, "Acme")

    with sqlite_unit_of_work() as uow:
        stored = uow.repositories.providers.get(provider.id)
        assert stored is not None
        with pytest.raises(error):
            asyncio.run(
                sync_provider(
                    stored,
                    fetcher=StaticFeedFetcher(documents),
                    client=catalog,
                    unit_of_work=uow,
                    notifier=RecordingNotifier(),
                )
            )

    assert catalog.calls == []
    with sqlite_unit_of_work() as uow:
        [run] = uow.repositories.sync_runs.latest(provider.id)
        assert run.status is SyncStatus.ERROR
        assert run.error_message
        reloaded = uow.repositories.providers.get(provider.id)
        assert reloaded is not None
        assert reloaded.next_sync is None


def test_sync_due_providers_isolates_failures(
    catalog: FakeCatalogClient,
    fast_config: SyncConfig,
    sqlite_unit_of_work: Callable[[], SqlAlchemySyncUnitOfWork],
) -> None:
    clock = SteppingClock()
    healthy = _add_provider(sqlite_unit_of_work, "Healthy")
    broken = _add_provider(sqlite_unit_of_work, "Broken", BROKEN_URL)
    _add_provider(sqlite_unit_of_work, "Recent", next_sync=clock.now + timedelta(hours=2))
    _add_provider(sqlite_unit_of_work, "Paused", is_active=False)
    fetcher = StaticFeedFetcher({FEED_URL: GOOGLE_SHOPPING_FEED})
    shops: list[str] = []

    @asynccontextmanager
    async def client_factory(shop: str) -> AsyncIterator[FakeCatalogClient]:
        shops.append(shop)
        yield catalog

    results = asyncio.run(
        sync_due_providers(
            fetcher=fetcher,
            client_factory=client_factory,
            unit_of_work_factory=sqlite_unit_of_work,
            notifier=RecordingNotifier(),
            config=fast_config,
            clock=clock,
        )
    )

    assert sorted(result.provider_name for result in results) == ["Broken", "Healthy"]
    outcomes = {result.provider_name: result for result in results}
    assert outcomes["Healthy"].ok
    assert outcomes["Healthy"].run.status is SyncStatus.SUCCESS
    assert not outcomes["Broken"].ok
    assert "404" in (outcomes["Broken"].error or "")
    assert sorted(fetcher.fetched) == [BROKEN_URL, FEED_URL]
    assert shops == [SHOP, SHOP]

    with sqlite_unit_of_work() as uow:
        assert [run.status for run in uow.repositories.sync_runs.latest(broken.id)] == [SyncStatus.ERROR]
        reloaded = uow.repositories.providers.get(healthy.id)
        assert reloaded is not None
        assert reloaded.next_sync is not None
