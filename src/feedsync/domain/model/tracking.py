"""Locally tracked records: providers, product mappings and sync runs.

These are plain classes so the SQLAlchemy adapter can map them imperatively.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from uuid import UUID, uuid4

from .enums import SyncStatus

DEFAULT_SYNC_FREQUENCY_HOURS = 8


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(eq=False, kw_only=True)
class FeedProvider:
    """A supplier feed attached to one shop."""

    shop: str
    name: str
    feed_url: str
    sync_frequency_hours: int = DEFAULT_SYNC_FREQUENCY_HOURS
    auto_delete: bool = False
    is_active: bool = True
    last_sync: datetime | None = None
    next_sync: datetime | None = None
    id: UUID = field(default_factory=uuid4)


@dataclass(eq=False, kw_only=True)
class ProductMapping:
    """Link between a variant group and the remote product created for it."""

    provider_id: UUID
    group_key: str
    remote_product_id: str
    title: str
    sku: str | None = None
    remote_handle: str | None = None
    last_price: Decimal | None = None
    last_inventory: int | None = None
    is_active: bool = True
    last_seen_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)
    id: UUID = field(default_factory=uuid4)

    def touch(
        self,
        *,
        title: str,
        price: Decimal | None,
        inventory: int | None = None,
        seen_at: datetime | None = None,
    ) -> None:
        """Record what was last pushed; ``price=None`` forces the next run to update."""

        now = seen_at or _utcnow()
        self.title = title
        self.last_price = price
        self.last_inventory = inventory
        self.last_seen_at = now
        self.updated_at = now

    def deactivate(self) -> None:
        self.is_active = False
        self.updated_at = _utcnow()


@dataclass(eq=False, kw_only=True)
class SyncRun:
    """Audit record for one provider sync."""

    provider_id: UUID
    started_at: datetime = field(default_factory=_utcnow)
    status: SyncStatus = SyncStatus.RUNNING
    completed_at: datetime | None = None
    total_groups: int = 0
    created: int = 0
    updated: int = 0
    deleted: int = 0
    errors: int = 0
    error_message: str | None = None
    details: str | None = None
    id: UUID = field(default_factory=uuid4)

    @property
    def duration_seconds(self) -> int | None:
        if self.completed_at is None:
            return None
        return round((self.completed_at - self.started_at).total_seconds())
