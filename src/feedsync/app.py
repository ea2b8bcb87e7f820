"""Application orchestration entry points."""

from __future__ import annotations

import json
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING

from feedsync.config import SyncConfig
from feedsync.domain.errors import FeedFetchError, ParseError
from feedsync.domain.feed import group_items, parse_feed
from feedsync.domain.model import SyncRun, SyncStatus
from feedsync.domain.ports.unit_of_work import SyncUnitOfWork
from feedsync.domain.reconciliation import ReconciliationPipeline, SyncReport
from feedsync.domain.scheduling import mark_synced, providers_due

if TYPE_CHECKING:
    from feedsync.domain.model import FeedItem, FeedProvider, VariantGroup
    from feedsync.domain.ports import CatalogClient, FeedFetcher, ProgressNotifier, TrackingStore

log = getLogger(__name__)

type UnitOfWorkFactory = Callable[[], SyncUnitOfWork]
type CatalogClientFactory = Callable[[str], AbstractAsyncContextManager[CatalogClient]]
type PipelineHook = Callable[[ReconciliationPipeline], None]


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True, slots=True)
class ProviderSyncResult:
    provider_name: str
    shop: str
    run: SyncRun
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def read_feed(data: bytes | str, config: SyncConfig | None = None) -> list[FeedItem]:
    effective = config or SyncConfig()
    return parse_feed(
        data,
        default_vendor=effective.default_vendor,
        default_product_type=effective.default_product_type,
    )


def summarize_feed(data: bytes | str, config: SyncConfig | None = None) -> list[VariantGroup]:
    """Parse and group a feed without touching the catalog."""

    return list(group_items(read_feed(data, config)).values())


async def sync_feed(
    items: list[FeedItem],
    *,
    shop: str,
    client: CatalogClient,
    notifier: ProgressNotifier,
    tracking: TrackingStore | None = None,
    config: SyncConfig | None = None,
    provider: FeedProvider | None = None,
    on_pipeline: PipelineHook | None = None,
) -> SyncReport:
    pipeline = ReconciliationPipeline(client, notifier, tracking, config or SyncConfig())
    if on_pipeline is not None:
        on_pipeline(pipeline)
    return await pipeline.run(items, shop=shop, provider=provider)


async def sync_provider(
    provider: FeedProvider,
    *,
    fetcher: FeedFetcher,
    client: CatalogClient,
    unit_of_work: SyncUnitOfWork,
    notifier: ProgressNotifier,
    config: SyncConfig | None = None,
    clock: Callable[[], datetime] = _utcnow,
    on_pipeline: PipelineHook | None = None,
) -> SyncRun:
    """Fetch, parse and reconcile one provider's feed, recording a :class:`SyncRun`.

    ``unit_of_work`` must already be entered. Fetch and parse failures are
    recorded as an ``error`` run and re-raised; the provider schedule is left
    untouched so the next check retries it.
    """

    effective = config or SyncConfig()
    started = clock()
    run = SyncRun(provider_id=provider.id, started_at=started)
    unit_of_work.repositories.sync_runs.add(run)
    log.info("Syncing provider %s (%s) for %s", provider.name, provider.feed_url, provider.shop)

    try:
        data = await fetcher.fetch(provider.feed_url)
        items = read_feed(data, effective)
    except (FeedFetchError, ParseError) as exc:
        run.status = SyncStatus.ERROR
        run.error_message = str(exc)
        run.completed_at = clock()
        unit_of_work.commit()
        raise

    report = await sync_feed(
        items,
        shop=provider.shop,
        client=client,
        notifier=notifier,
        tracking=unit_of_work.tracking(provider.id),
        config=effective,
        provider=provider,
        on_pipeline=on_pipeline,
    )

    stats = report.stats
    run.status = report.status
    run.completed_at = clock()
    run.total_groups = report.total_groups
    run.created = stats.created
    run.updated = stats.updated
    run.deleted = stats.deleted
    run.errors = stats.errored
    run.details = json.dumps(stats.to_payload())
    if stats.errors:
        run.error_message = "; ".join(f"{error.title}: {error.message}" for error in stats.errors[:5])
    mark_synced(provider, started)
    unit_of_work.commit()
    log.info(
        "Provider %s finished with status %s in %ss",
        provider.name,
        run.status,
        run.duration_seconds,
    )
    return run


async def sync_due_providers(
    *,
    fetcher: FeedFetcher,
    client_factory: CatalogClientFactory,
    unit_of_work_factory: UnitOfWorkFactory,
    notifier: ProgressNotifier,
    config: SyncConfig | None = None,
    shop: str | None = None,
    clock: Callable[[], datetime] = _utcnow,
    on_pipeline: PipelineHook | None = None,
) -> list[ProviderSyncResult]:
    """Sync every provider whose schedule has passed; one failure never stops the rest."""

    results: list[ProviderSyncResult] = []
    with unit_of_work_factory() as uow:
        providers = uow.repositories.providers.list_providers(shop=shop, active_only=True)
        due = providers_due(providers, clock())
        log.info("%d of %d providers due", len(due), len(providers))

        for provider in due:
            try:
                async with client_factory(provider.shop) as client:
                    run = await sync_provider(
                        provider,
                        fetcher=fetcher,
                        client=client,
                        unit_of_work=uow,
                        notifier=notifier,
                        config=config,
                        clock=clock,
                        on_pipeline=on_pipeline,
                    )
            except Exception as exc:
                log.exception("Provider %s failed", provider.name)
                uow.rollback()
                failed = SyncRun(
                    provider_id=provider.id,
                    status=SyncStatus.ERROR,
                    error_message=str(exc),
                    completed_at=clock(),
                )
                results.append(ProviderSyncResult(provider.name, provider.shop, failed, str(exc)))
                continue
            results.append(ProviderSyncResult(provider.name, provider.shop, run))
    return results
