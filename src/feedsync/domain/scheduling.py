"""When providers are due, and how a finished run is classified."""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime

    from feedsync.domain.model import FeedProvider, SyncStatus
    from feedsync.domain.reconciliation.stats import PipelineStats


def is_due(provider: FeedProvider, now: datetime) -> bool:
    if not provider.is_active:
        return False
    return provider.next_sync is None or provider.next_sync <= now


def providers_due(providers: Iterable[FeedProvider], now: datetime) -> list[FeedProvider]:
    """Active providers whose next sync has passed, oldest schedule first."""

    due = [provider for provider in providers if is_due(provider, now)]
    return sorted(due, key=lambda provider: (provider.next_sync is not None, provider.next_sync or now))


def next_sync_after(provider: FeedProvider, started: datetime) -> datetime:
    return started + timedelta(hours=provider.sync_frequency_hours)


def sync_status(stats: PipelineStats) -> SyncStatus:
    return stats.status()


def mark_synced(provider: FeedProvider, started: datetime) -> None:
    provider.last_sync = started
    provider.next_sync = next_sync_after(provider, started)
