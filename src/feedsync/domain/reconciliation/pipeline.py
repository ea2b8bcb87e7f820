"""Reconciliation pipeline: feed items in, catalog mutations and progress out.

Groups are reconciled in batches of ``SyncConfig.batch_size`` concurrent
tasks. Every task in a batch settles before the next batch starts, and a
fixed delay separates batches. Errors below the group boundary are recorded
in :class:`PipelineStats` and never stop the run.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import UTC, datetime
from itertools import batched
from logging import getLogger
from typing import TYPE_CHECKING
from uuid import UUID

from feedsync.config import SyncConfig
from feedsync.domain.errors import FeedSyncError
from feedsync.domain.feed.grouping import group_items
from feedsync.domain.model import ProductMapping, SyncStatus

from .events import ProgressEvent, ProgressEventType
from .executor import IncompleteCreateError, MutationExecutor, nothing_to_push
from .gateway import CatalogGateway
from .matcher import CatalogMatcher, MatchCache
from .retry import BackoffPolicy, Sleep
from .stats import PipelineStats

if TYPE_CHECKING:
    from collections.abc import Callable, Coroutine, Iterable, Sequence

    from feedsync.domain.model import FeedItem, FeedProvider, RemoteProduct, VariantGroup
    from feedsync.domain.ports import CatalogClient, ProgressNotifier, TrackingStore

log = getLogger(__name__)

UNTRACKED_PROVIDER_ID = UUID(int=0)

type Outcome = tuple[ProgressEventType, dict[str, object]]


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True, slots=True)
class SyncReport:
    stats: PipelineStats
    total_groups: int
    started_at: datetime
    completed_at: datetime
    stopped: bool = False

    @property
    def status(self) -> SyncStatus:
        return self.stats.status()

    @property
    def duration_seconds(self) -> float:
        return (self.completed_at - self.started_at).total_seconds()


class ReconciliationPipeline:
    def __init__(
        self,
        client: CatalogClient,
        notifier: ProgressNotifier,
        tracking: TrackingStore | None = None,
        config: SyncConfig | None = None,
        *,
        sleep: Sleep = asyncio.sleep,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.config = config or SyncConfig()
        self.notifier = notifier
        self.tracking = tracking
        self._sleep = sleep
        self._clock = clock
        self._stop_requested = False

        self.gateway = CatalogGateway(
            client,
            policy=BackoffPolicy.from_config(self.config),
            sleep=sleep,
        )
        self.matcher = CatalogMatcher(self.gateway)
        self.executor = MutationExecutor(
            self.gateway,
            tracking=tracking,
            bulk_input_accepts_sku=self.config.bulk_input_accepts_sku,
        )

    def request_stop(self) -> None:
        """Stop scheduling new batches; tasks already running finish normally."""

        self._stop_requested = True

    @property
    def stop_requested(self) -> bool:
        return self._stop_requested

    async def run(
        self,
        items: Iterable[FeedItem],
        *,
        shop: str,
        provider: FeedProvider | None = None,
    ) -> SyncReport:
        started_at = self._clock()
        self._stop_requested = False
        self.matcher.cache = MatchCache() if self.config.cache_enabled else None

        all_groups = list(group_items(items).values())
        groups = all_groups
        if self.config.max_groups is not None and len(groups) > self.config.max_groups:
            log.info("Limiting run to %d of %d groups", self.config.max_groups, len(groups))
            groups = groups[: self.config.max_groups]

        total = len(groups)
        stats = PipelineStats()
        provider_id = provider.id if provider is not None else UNTRACKED_PROVIDER_ID
        log.info("Reconciling %d groups for %s", total, shop)
        self._emit(shop, ProgressEvent(ProgressEventType.SYNC_STARTED, total=total))

        await self._in_batches(
            groups,
            lambda group: self._reconcile(group, stats, shop=shop, total=total, provider_id=provider_id),
            on_crash=lambda group, exc: self._group_crashed(group, exc, stats, shop=shop, total=total),
        )

        auto_delete = provider.auto_delete if provider is not None else self.config.auto_delete
        if auto_delete and not self._stop_requested:
            await self._retire_missing(all_groups, stats, shop=shop)

        completed_at = self._clock()
        self._emit(
            shop,
            ProgressEvent(
                ProgressEventType.SYNC_COMPLETED,
                processed=stats.processed,
                total=total,
                extra={
                    "stats": stats.to_payload(),
                    "totalItems": total,
                    "status": stats.status().value,
                },
            ),
        )
        log.info(
            "Run for %s finished: %d created, %d updated, %d skipped, %d deleted, %d errors",
            shop,
            stats.created,
            stats.updated,
            stats.skipped,
            stats.deleted,
            stats.errored,
        )
        return SyncReport(
            stats=stats,
            total_groups=total,
            started_at=started_at,
            completed_at=completed_at,
            stopped=self._stop_requested,
        )

    async def _in_batches[T](
        self,
        entries: Sequence[T],
        task: Callable[[T], Coroutine[object, object, None]],
        *,
        on_crash: Callable[[T, Exception], None],
    ) -> None:
        for index, batch in enumerate(batched(entries, self.config.batch_size)):
            if index:
                await self._sleep(self.config.inter_batch_delay)
            if self._stop_requested:
                skipped = len(entries) - index * self.config.batch_size
                log.info("Stop requested, %d entries left unprocessed", skipped)
                return
            log.debug("Starting batch %d with %d entries", index + 1, len(batch))
            results = await asyncio.gather(*(task(entry) for entry in batch), return_exceptions=True)
            for entry, result in zip(batch, results, strict=True):
                if isinstance(result, Exception):
                    on_crash(entry, result)
                elif isinstance(result, BaseException):
                    raise result

    # -- group tasks -------------------------------------------------------

    async def _reconcile(
        self,
        group: VariantGroup,
        stats: PipelineStats,
        *,
        shop: str,
        total: int,
        provider_id: UUID,
    ) -> None:
        self._emit(
            shop,
            ProgressEvent(ProgressEventType.PROCESSING, group.title, stats.processed, total),
        )
        try:
            event_type, extra = await self._apply(group, stats, provider_id)
        except IncompleteCreateError as exc:
            self._track(
                group,
                exc.result.product_id,
                exc.result.handle,
                None,
                provider_id,
                complete=False,
            )
            stats.variants_created += exc.result.variants_created
            event_type, extra = self._failed(group.title, exc, stats)
        except FeedSyncError as exc:
            event_type, extra = self._failed(group.title, exc, stats)
        stats.processed += 1
        self._emit(shop, ProgressEvent(event_type, group.title, stats.processed, total, extra))

    async def _apply(self, group: VariantGroup, stats: PipelineStats, provider_id: UUID) -> Outcome:
        mapping = self.tracking.get(group.key) if self.tracking is not None else None
        if mapping is not None and mapping.is_active and nothing_to_push(group, mapping):
            self._track(group, mapping.remote_product_id, mapping.remote_handle, mapping, provider_id)
            stats.skipped += 1
            return ProgressEventType.SKIPPED, {"productId": mapping.remote_product_id}

        existing = await self._locate(group, mapping)
        if existing is None:
            created = await self.executor.create(group)
            self._track(group, created.product_id, created.handle, mapping, provider_id)
            stats.created += 1
            stats.variants_created += created.variants_created
            return ProgressEventType.CREATED, {
                "productId": created.product_id,
                "handle": created.handle,
                "variants": created.variants_created,
            }

        result = await self.executor.update(existing, group, mapping)
        self._track(group, result.product_id, result.handle, mapping, provider_id)
        if not result.changed:
            stats.skipped += 1
            return ProgressEventType.SKIPPED, {"productId": result.product_id}
        stats.updated += 1
        stats.variants_created += result.variants_created
        stats.variants_updated += result.variants_updated
        return ProgressEventType.UPDATED, {
            "productId": result.product_id,
            "variantsCreated": result.variants_created,
            "variantsUpdated": result.variants_updated,
        }

    async def _locate(self, group: VariantGroup, mapping: ProductMapping | None) -> RemoteProduct | None:
        if mapping is not None and mapping.is_active:
            tracked = await self.matcher.find_by_id(mapping.remote_product_id)
            if tracked is not None:
                return tracked
        existing = await self.matcher.find_existing(group)
        if existing is None and group.group_id is not None:
            existing = await self.matcher.find_existing_by_group(group.group_id, group.first_sku)
        return existing

    def _track(
        self,
        group: VariantGroup,
        product_id: str,
        handle: str | None,
        mapping: ProductMapping | None,
        provider_id: UUID,
        *,
        complete: bool = True,
    ) -> None:
        """Upsert the group's mapping.

        An incomplete create is tracked without price or stock so the next run
        updates the product instead of skipping it.
        """

        if self.tracking is None:
            return
        master = group.master
        price = master.price if complete else None
        inventory = master.inventory if complete else None
        if mapping is None:
            mapping = self.tracking.get(group.key)
        if mapping is None:
            mapping = ProductMapping(
                provider_id=provider_id,
                group_key=group.key,
                remote_product_id=product_id,
                title=master.title,
                sku=group.first_sku,
                remote_handle=handle,
                last_price=price,
                last_inventory=inventory,
            )
        else:
            mapping.remote_product_id = product_id
            mapping.remote_handle = handle or mapping.remote_handle
            mapping.sku = group.first_sku
            mapping.is_active = True
            mapping.touch(title=master.title, price=price, inventory=inventory, seen_at=self._clock())
        self.tracking.upsert(mapping)

    # -- auto delete -------------------------------------------------------

    async def _retire_missing(self, groups: Sequence[VariantGroup], stats: PipelineStats, *, shop: str) -> None:
        if self.tracking is None:
            log.warning("Auto delete requested without a tracking store, skipping")
            return
        if not groups:
            log.warning("Feed produced no groups, auto delete skipped")
            return
        present = {group.key for group in groups}
        stale = [mapping for mapping in self.tracking.active_mappings() if mapping.group_key not in present]
        if not stale:
            return
        log.info("Retiring %d products missing from the feed", len(stale))
        total = len(stale)

        await self._in_batches(
            stale,
            lambda mapping: self._retire(mapping, stats, shop=shop, total=total),
            on_crash=lambda mapping, exc: self._retire_crashed(mapping, exc, stats, shop=shop, total=total),
        )

    async def _retire(self, mapping: ProductMapping, stats: PipelineStats, *, shop: str, total: int) -> None:
        try:
            await self.executor.delete(mapping)
        except FeedSyncError as exc:
            event_type, extra = self._failed(mapping.title, exc, stats)
        else:
            stats.deleted += 1
            event_type, extra = ProgressEventType.DELETED, {"productId": mapping.remote_product_id}
        self._emit(shop, ProgressEvent(event_type, mapping.title, stats.deleted, total, extra))

    # -- reporting ---------------------------------------------------------

    def _failed(self, title: str, exc: Exception, stats: PipelineStats) -> Outcome:
        message = str(exc)
        log.warning("Reconciling %r failed: %s", title, message)
        stats.record_error(title, message)
        return ProgressEventType.ERROR, {"error": message}

    def _crashed(self, title: str, exc: Exception, stats: PipelineStats) -> dict[str, object]:
        log.error("Unexpected failure while reconciling %r", title, exc_info=exc)
        message = f"{type(exc).__name__}: {exc}"
        stats.record_error(title, message)
        return {"error": message}

    def _group_crashed(
        self,
        group: VariantGroup,
        exc: Exception,
        stats: PipelineStats,
        *,
        shop: str,
        total: int,
    ) -> None:
        extra = self._crashed(group.title, exc, stats)
        stats.processed += 1
        event = ProgressEvent(ProgressEventType.ERROR, group.title, stats.processed, total, extra)
        self._emit(shop, event)

    def _retire_crashed(
        self,
        mapping: ProductMapping,
        exc: Exception,
        stats: PipelineStats,
        *,
        shop: str,
        total: int,
    ) -> None:
        extra = self._crashed(mapping.title, exc, stats)
        event = ProgressEvent(ProgressEventType.ERROR, mapping.title, stats.deleted, total, extra)
        self._emit(shop, event)

    def _emit(self, shop: str, event: ProgressEvent) -> None:
        try:
            self.notifier.send(shop, event)
        except Exception:
            log.exception("Progress notifier failed for %s event", event.type)
