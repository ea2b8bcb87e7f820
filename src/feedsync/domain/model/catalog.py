"""Read-only views of products held by the remote catalog."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True, slots=True)
class RemoteVariant:
    id: str
    sku: str | None = None
    barcode: str | None = None
    price: Decimal | None = None
    inventory_item_id: str | None = None
    inventory_quantity: int | None = None


@dataclass(frozen=True, slots=True)
class RemoteProduct:
    id: str
    title: str
    vendor: str = ""
    handle: str | None = None
    description: str = ""
    tags: frozenset[str] = frozenset()
    variants: tuple[RemoteVariant, ...] = ()
    images: tuple[str, ...] = ()

    @property
    def default_variant(self) -> RemoteVariant | None:
        return self.variants[0] if self.variants else None

    def variant_by_sku(self, sku: str | None) -> RemoteVariant | None:
        if not sku:
            return None
        return next((variant for variant in self.variants if variant.sku == sku), None)

    def variant_by_barcode(self, barcode: str | None) -> RemoteVariant | None:
        if not barcode:
            return None
        return next((variant for variant in self.variants if variant.barcode == barcode), None)
