"""Public domain model surface."""

from __future__ import annotations

from feedsync.domain.model.catalog import RemoteProduct, RemoteVariant
from feedsync.domain.model.enums import CONDITION_LABELS, Availability, Condition, SyncStatus
from feedsync.domain.model.feed import FeedItem, VariantGroup
from feedsync.domain.model.tracking import (
    DEFAULT_SYNC_FREQUENCY_HOURS,
    FeedProvider,
    ProductMapping,
    SyncRun,
)

__all__ = [
    "CONDITION_LABELS",
    "DEFAULT_SYNC_FREQUENCY_HOURS",
    "Availability",
    "Condition",
    "FeedItem",
    "FeedProvider",
    "ProductMapping",
    "RemoteProduct",
    "RemoteVariant",
    "SyncRun",
    "SyncStatus",
    "VariantGroup",
]
