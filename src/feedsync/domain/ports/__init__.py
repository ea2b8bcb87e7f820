"""Domain port definitions for adapters."""

from __future__ import annotations

from .catalog import CatalogClient
from .fetching import FeedFetcher
from .notifier import ProgressNotifier
from .persistence import ProviderRepository, SyncRunRepository
from .tracking import TrackingStore
from .unit_of_work import SyncRepositories, SyncUnitOfWork

__all__ = [
    "CatalogClient",
    "FeedFetcher",
    "ProgressNotifier",
    "ProviderRepository",
    "SyncRepositories",
    "SyncRunRepository",
    "SyncUnitOfWork",
    "TrackingStore",
]
