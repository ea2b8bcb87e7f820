"""Canonical feed records and variant groups."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from .enums import Availability, Condition


@dataclass(frozen=True, slots=True, kw_only=True)
class FeedItem:
    """One normalized entry of a supplier feed."""

    external_id: str
    title: str
    group_id: str | None = None
    description: str = ""
    vendor: str = ""
    condition: Condition = Condition.NEW
    price: Decimal = Decimal(0)
    sku: str | None = None
    gtin: str | None = None
    mpn: str | None = None
    image_urls: tuple[str, ...] = ()
    availability: Availability = Availability.UNKNOWN
    color: str | None = None
    size: str | None = None
    inventory: int | None = None
    category: str = ""
    product_type: str = ""
    link: str | None = None
    tags: frozenset[str] = field(default_factory=frozenset[str])

    @property
    def image_url(self) -> str | None:
        return self.image_urls[0] if self.image_urls else None

    @property
    def is_standalone(self) -> bool:
        return self.group_id is None


@dataclass(frozen=True, slots=True)
class VariantGroup:
    """Feed items describing one logical product."""

    key: str
    items: tuple[FeedItem, ...]
    master: FeedItem
    group_id: str | None = None

    @property
    def title(self) -> str:
        return self.master.title

    @property
    def is_multi_variant(self) -> bool:
        return len(self.items) > 1

    @property
    def first_sku(self) -> str | None:
        for item in self.items:
            if item.sku:
                return item.sku
        return None

    @property
    def variants(self) -> tuple[FeedItem, ...]:
        """Items with the master first, the rest in feed order."""

        rest = tuple(item for item in self.items if item is not self.master)
        return (self.master, *rest)

    @property
    def image_urls(self) -> tuple[str, ...]:
        seen: dict[str, None] = {}
        for item in self.variants:
            for url in item.image_urls:
                seen.setdefault(url, None)
        return tuple(seen)

    @property
    def tags(self) -> frozenset[str]:
        merged: set[str] = set()
        for item in self.items:
            merged.update(item.tags)
        return frozenset(merged)
