"""Mutation executor: turn create/update/delete decisions into catalog calls."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from logging import getLogger
from pathlib import PurePosixPath
from typing import TYPE_CHECKING
from urllib.parse import urlparse

from feedsync.domain.errors import FeedSyncError, ResponseFormatError, ValidationError
from feedsync.domain.feed.normalize import is_absolute_http_url

from .gateway import parse_payload
from .options import OptionSchema, derive_options
from .queries import (
    INVENTORY_ITEM_UPDATE_MUTATION,
    INVENTORY_SET_QUANTITIES_MUTATION,
    PRIMARY_LOCATION_QUERY,
    PRODUCT_CREATE_MEDIA_MUTATION,
    PRODUCT_CREATE_MUTATION,
    PRODUCT_DELETE_MUTATION,
    PRODUCT_UPDATE_MUTATION,
    VARIANTS_BULK_CREATE_MUTATION,
    VARIANTS_BULK_UPDATE_MUTATION,
)
from .schema import DeletePayload, LocationsData, ProductPayload, VariantsPayload

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from feedsync.domain.model import (
        FeedItem,
        ProductMapping,
        RemoteProduct,
        RemoteVariant,
        VariantGroup,
    )
    from feedsync.domain.ports import TrackingStore

    from .gateway import CatalogGateway

log = getLogger(__name__)

PRODUCT_STATUS_ACTIVE = "ACTIVE"
AVAILABLE_QUANTITY = "available"
STOCK_CORRECTION_REASON = "correction"


@dataclass(frozen=True, slots=True)
class CreateResult:
    product_id: str
    handle: str | None
    variants: tuple[RemoteVariant, ...]
    images_attached: int = 0

    @property
    def variants_created(self) -> int:
        return len(self.variants)


@dataclass(frozen=True, slots=True)
class UpdateResult:
    product_id: str
    changed: bool
    handle: str | None = None
    variants_created: int = 0
    variants_updated: int = 0
    images_attached: int = 0


class IncompleteCreateError(FeedSyncError):
    """The product was created but a follow-up call failed.

    ``result`` describes what exists remotely so the caller can still track it.
    """

    def __init__(self, message: str, *, result: CreateResult) -> None:
        super().__init__(message)
        self.result = result


def validate_prices(group: VariantGroup) -> None:
    for item in group.items:
        if not item.price.is_finite() or item.price <= 0:
            raise ValidationError(f"Invalid price {item.price} for {item.title!r}")


def price_unchanged(group: VariantGroup, mapping: ProductMapping | None) -> bool:
    """Single-product groups whose price matches the last pushed price need no update."""

    if group.is_multi_variant or mapping is None or mapping.last_price is None:
        return False
    return mapping.last_price == group.master.price


def stock_unchanged(group: VariantGroup, mapping: ProductMapping | None) -> bool:
    inventory = group.master.inventory
    if inventory is None:
        return True
    return mapping is not None and mapping.last_inventory == inventory


def nothing_to_push(group: VariantGroup, mapping: ProductMapping | None) -> bool:
    """The tracked product already carries the feed's price and stock."""

    return price_unchanged(group, mapping) and stock_unchanged(group, mapping)


def _image_stem(url: str) -> str:
    return PurePosixPath(urlparse(url).path).stem.lower()


def image_already_attached(url: str, existing: Iterable[str]) -> bool:
    """Compare by file stem; the catalog rehosts images and may suffix the name."""

    stem = _image_stem(url)
    if not stem:
        return False
    for remote in existing:
        remote_stem = _image_stem(remote)
        if remote_stem == stem or remote_stem.startswith(f"{stem}_"):
            return True
    return False


class MutationExecutor:
    def __init__(
        self,
        gateway: CatalogGateway,
        *,
        tracking: TrackingStore | None = None,
        bulk_input_accepts_sku: bool = True,
    ) -> None:
        self.gateway = gateway
        self.tracking = tracking
        self.bulk_input_accepts_sku = bulk_input_accepts_sku
        self._location_id: str | None = None
        self._location_resolved = False
        self._location_lock = asyncio.Lock()

    # -- create ------------------------------------------------------------

    async def create(self, group: VariantGroup) -> CreateResult:
        validate_prices(group)
        master = group.master
        product_input: dict[str, object] = {
            "title": master.title,
            "vendor": master.vendor,
            "descriptionHtml": master.description,
            "status": PRODUCT_STATUS_ACTIVE,
            "productType": master.product_type,
            "tags": sorted(group.tags),
        }
        schema: OptionSchema | None = None
        if group.is_multi_variant:
            schema = derive_options(group)
            product_input["productOptions"] = schema.product_options_input()

        label = f"create {master.title!r}"
        payload = await self.gateway.mutate(
            PRODUCT_CREATE_MUTATION,
            {"product": product_input},
            root="productCreate",
            label=label,
        )
        node = parse_payload(ProductPayload, payload, label=label).product
        if node is None:
            raise ResponseFormatError(f"{label}: no product returned")
        created = node.to_domain()
        log.info("Created product %s for %r", created.id, master.title)

        variants: list[RemoteVariant] = []
        images = 0
        try:
            images = await self._attach_images(created.id, group.image_urls, title=master.title)
            default = created.default_variant
            if default is not None:
                variants.extend(await self._update_variants(created.id, [(default, master)]))
            if schema is not None:
                variants.extend(await self._create_variants(created.id, group.variants[1:], schema))
        except FeedSyncError as exc:
            partial = CreateResult(created.id, created.handle, tuple(variants), images)
            raise IncompleteCreateError(f"{label}: {exc}", result=partial) from exc

        return CreateResult(created.id, created.handle, tuple(variants), images)

    # -- update ------------------------------------------------------------

    async def update(
        self,
        existing: RemoteProduct,
        group: VariantGroup,
        mapping: ProductMapping | None = None,
    ) -> UpdateResult:
        validate_prices(group)
        if group.is_multi_variant:
            return await self._update_variant_group(existing, group)
        return await self._update_single(existing, group, mapping)

    async def _update_single(
        self,
        existing: RemoteProduct,
        group: VariantGroup,
        mapping: ProductMapping | None,
    ) -> UpdateResult:
        item = group.master
        if nothing_to_push(group, mapping):
            log.debug("Price and stock unchanged for %r, skipping", item.title)
            return UpdateResult(existing.id, changed=False, handle=existing.handle)

        changes: dict[str, object] = {}
        if existing.title != item.title:
            changes["title"] = item.title
        if existing.vendor != item.vendor:
            changes["vendor"] = item.vendor
        if existing.description != item.description:
            changes["descriptionHtml"] = item.description
        tags = existing.tags | group.tags
        if tags != existing.tags:
            changes["tags"] = sorted(tags)

        handle = existing.handle
        if changes:
            label = f"update {item.title!r}"
            payload = await self.gateway.mutate(
                PRODUCT_UPDATE_MUTATION,
                {"product": {"id": existing.id, **changes}},
                root="productUpdate",
                label=label,
            )
            node = parse_payload(ProductPayload, payload, label=label).product
            if node is not None:
                handle = node.handle

        updated = 0
        default = existing.default_variant
        if default is not None and self._variant_differs(default, item):
            await self._update_variants(existing.id, [(default, item)])
            updated = 1

        return UpdateResult(
            existing.id,
            changed=bool(changes) or bool(updated),
            handle=handle,
            variants_updated=updated,
        )

    async def _update_variant_group(self, existing: RemoteProduct, group: VariantGroup) -> UpdateResult:
        schema = derive_options(group)
        matched: list[tuple[RemoteVariant, FeedItem]] = []
        unmatched: list[FeedItem] = []
        for item in group.variants:
            remote = existing.variant_by_sku(item.sku) or existing.variant_by_barcode(item.gtin)
            if remote is None:
                unmatched.append(item)
            elif self._variant_differs(remote, item):
                matched.append((remote, item))

        if matched:
            await self._update_variants(existing.id, matched)
        created = await self._create_variants(existing.id, unmatched, schema)
        missing = [url for url in group.image_urls if not image_already_attached(url, existing.images)]
        images = await self._attach_images(existing.id, missing, title=group.title)

        return UpdateResult(
            existing.id,
            changed=bool(matched or created or images),
            handle=existing.handle,
            variants_created=len(created),
            variants_updated=len(matched),
            images_attached=images,
        )

    # -- delete ------------------------------------------------------------

    async def delete(self, mapping: ProductMapping) -> str | None:
        label = f"delete {mapping.title!r}"
        payload = await self.gateway.mutate(
            PRODUCT_DELETE_MUTATION,
            {"input": {"id": mapping.remote_product_id}},
            root="productDelete",
            label=label,
        )
        deleted = parse_payload(DeletePayload, payload, label=label).deleted_product_id
        log.info("Deleted product %s (%r)", mapping.remote_product_id, mapping.title)
        if self.tracking is not None:
            self.tracking.mark_inactive(mapping)
        else:
            mapping.deactivate()
        return deleted

    # -- variants ----------------------------------------------------------

    def _variant_differs(self, remote: RemoteVariant, item: FeedItem) -> bool:
        return (
            remote.price != item.price
            or bool(item.gtin and remote.barcode != item.gtin)
            or bool(item.sku and remote.sku != item.sku)
            or (item.inventory is not None and remote.inventory_quantity != item.inventory)
        )

    def _variant_input(
        self,
        item: FeedItem,
        *,
        variant_id: str | None = None,
        schema: OptionSchema | None = None,
    ) -> dict[str, object]:
        variant: dict[str, object] = {"price": str(item.price)}
        if variant_id is not None:
            variant["id"] = variant_id
        if item.gtin:
            variant["barcode"] = item.gtin
        inventory_item: dict[str, object] = {}
        if item.sku and self.bulk_input_accepts_sku:
            inventory_item["sku"] = item.sku
        if item.inventory is not None:
            inventory_item["tracked"] = True
        if inventory_item:
            variant["inventoryItem"] = inventory_item
        if schema is not None:
            variant["optionValues"] = schema.option_values_input(item)
        return variant

    async def _update_variants(
        self,
        product_id: str,
        pairs: Sequence[tuple[RemoteVariant, FeedItem]],
    ) -> list[RemoteVariant]:
        if not pairs:
            return []
        label = f"update variants of {product_id}"
        payload = await self.gateway.mutate(
            VARIANTS_BULK_UPDATE_MUTATION,
            {
                "productId": product_id,
                "variants": [self._variant_input(item, variant_id=remote.id) for remote, item in pairs],
            },
            root="productVariantsBulkUpdate",
            label=label,
        )
        updated = parse_payload(VariantsPayload, payload, label=label).to_domain()
        pushed = list(zip(updated, (item for _, item in pairs), strict=False))
        await self._push_skus(pushed)
        await self._push_stock(pushed)
        return updated

    async def _create_variants(
        self,
        product_id: str,
        items: Sequence[FeedItem],
        schema: OptionSchema,
    ) -> list[RemoteVariant]:
        if not items:
            return []
        label = f"add variants to {product_id}"
        payload = await self.gateway.mutate(
            VARIANTS_BULK_CREATE_MUTATION,
            {
                "productId": product_id,
                "variants": [self._variant_input(item, schema=schema) for item in items],
            },
            root="productVariantsBulkCreate",
            label=label,
        )
        created = parse_payload(VariantsPayload, payload, label=label).to_domain()
        pushed = list(zip(created, items, strict=False))
        await self._push_skus(pushed)
        await self._push_stock(pushed)
        return created

    async def _push_skus(self, pairs: Iterable[tuple[RemoteVariant, FeedItem]]) -> None:
        """Assign SKUs through the inventory item when bulk input cannot carry them."""

        if self.bulk_input_accepts_sku:
            return
        for remote, item in pairs:
            if not item.sku or remote.sku == item.sku:
                continue
            if remote.inventory_item_id is None:
                log.warning("Variant %s has no inventory item, SKU %s not set", remote.id, item.sku)
                continue
            await self.gateway.mutate(
                INVENTORY_ITEM_UPDATE_MUTATION,
                {"id": remote.inventory_item_id, "input": {"sku": item.sku}},
                root="inventoryItemUpdate",
                label=f"set SKU {item.sku}",
            )

    async def _push_stock(self, pairs: Iterable[tuple[RemoteVariant, FeedItem]]) -> None:
        quantities = [
            (remote.inventory_item_id, item.inventory)
            for remote, item in pairs
            if item.inventory is not None
            and remote.inventory_item_id is not None
            and remote.inventory_quantity != item.inventory
        ]
        if not quantities:
            return
        location_id = await self._location()
        if location_id is None:
            log.warning("Shop has no inventory location, %d stock levels not set", len(quantities))
            return
        await self.gateway.mutate(
            INVENTORY_SET_QUANTITIES_MUTATION,
            {
                "input": {
                    "name": AVAILABLE_QUANTITY,
                    "reason": STOCK_CORRECTION_REASON,
                    "ignoreCompareQuantity": True,
                    "quantities": [
                        {"inventoryItemId": item_id, "locationId": location_id, "quantity": quantity}
                        for item_id, quantity in quantities
                    ],
                }
            },
            root="inventorySetQuantities",
            label=f"set stock for {len(quantities)} variant(s)",
        )

    async def _location(self) -> str | None:
        async with self._location_lock:
            if not self._location_resolved:
                label = "primary location"
                data = await self.gateway.query(PRIMARY_LOCATION_QUERY, label=label)
                self._location_id = parse_payload(LocationsData, data, label=label).first_id()
                self._location_resolved = True
        return self._location_id

    # -- media -------------------------------------------------------------

    async def _attach_images(self, product_id: str, urls: Iterable[str], *, title: str) -> int:
        attached = 0
        for url in dict.fromkeys(urls):
            if not is_absolute_http_url(url):
                continue
            try:
                await self.gateway.mutate(
                    PRODUCT_CREATE_MEDIA_MUTATION,
                    {
                        "productId": product_id,
                        "media": [{"originalSource": url, "mediaContentType": "IMAGE", "alt": title}],
                    },
                    root="productCreateMedia",
                    label=f"attach image {url}",
                    errors_key="mediaUserErrors",
                )
            except FeedSyncError as exc:
                log.warning("Could not attach image %s to %s: %s", url, product_id, exc)
                continue
            attached += 1
        return attached
