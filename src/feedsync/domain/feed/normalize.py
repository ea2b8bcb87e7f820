"""Normalization of raw feed elements into :class:`FeedItem` records."""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import replace
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, cast
from urllib.parse import urlparse

from feedsync.domain.model import Availability, Condition, FeedItem

from .xml_tree import text_of, texts_of

if TYPE_CHECKING:
    from collections.abc import Iterable

DEFAULT_VENDOR = "Feed Supplier"
DEFAULT_PRODUCT_TYPE = "General"
IN_STOCK_QUANTITY = 99

_NUMBER_TOKEN = re.compile(r"\d+(?:[.,]\d+)*")
_GTIN_MIN_DIGITS = 8

_PRICE_FIELDS = ("sale_price", "price", "cost", "amount")
_ID_FIELDS = ("id", "@_id", "gtin", "sku")
_GROUP_FIELDS = ("item_group_id", "group_id")
_TITLE_FIELDS = ("title", "name")
_DESCRIPTION_FIELDS = ("description", "summary")
_VENDOR_FIELDS = ("brand", "vendor", "manufacturer")
_PRODUCT_TYPE_FIELDS = ("product_type", "type", "productType", "category")
_CATEGORY_FIELDS = ("category", "google_product_category")
_QUANTITY_FIELDS = ("inventory", "stock", "quantity")
_VARIANT_ID_FIELDS = ("id", "@_id", "sku")

_CONDITIONS: dict[str, Condition] = {
    "new": Condition.NEW,
    "refurbished": Condition.REFURBISHED,
    "used": Condition.USED,
}

_AVAILABILITY: dict[str, Availability] = {
    "in_stock": Availability.IN_STOCK,
    "instock": Availability.IN_STOCK,
    "available": Availability.IN_STOCK,
    "out_of_stock": Availability.OUT_OF_STOCK,
    "outofstock": Availability.OUT_OF_STOCK,
    "sold_out": Availability.OUT_OF_STOCK,
    "preorder": Availability.PREORDER,
    "pre_order": Availability.PREORDER,
    "backorder": Availability.PREORDER,
}


def extract_price(value: object) -> Decimal:
    """Return the first non-negative number found in ``value``.

    ``"179.00 EUR"`` gives ``Decimal("179.00")`` and ``"€45"`` gives
    ``Decimal("45")``. Anything without digits gives ``Decimal(0)``. Numeric
    input passes through unchanged, so the function is idempotent.
    """

    if isinstance(value, bool) or value is None:
        return Decimal(0)
    if isinstance(value, Decimal):
        return value if value.is_finite() and value >= 0 else Decimal(0)
    if isinstance(value, int | float):
        return extract_price(Decimal(str(value)))
    text = text_of(value)
    if text is None:
        return Decimal(0)
    match = _NUMBER_TOKEN.search(text)
    if match is None:
        return Decimal(0)
    try:
        return Decimal(_canonical_number(match.group(0)))
    except InvalidOperation:
        return Decimal(0)


def _canonical_number(token: str) -> str:
    has_comma = "," in token
    has_dot = "." in token
    if has_comma and has_dot:
        # whichever separator comes last is the decimal mark
        if token.rfind(",") > token.rfind("."):
            return token.replace(".", "").replace(",", ".")
        return token.replace(",", "")
    if has_comma:
        head, _, tail = token.rpartition(",")
        if token.count(",") == 1 and len(tail) != 3:  # noqa: PLR2004
            return f"{head}.{tail}"
        return token.replace(",", "")
    if token.count(".") > 1:
        return token.replace(".", "")
    return token


def normalize_gtin(value: object) -> str | None:
    text = text_of(value)
    if text is None:
        return None
    digits = re.sub(r"[\s-]", "", text)
    if not digits.isdigit() or len(digits) < _GTIN_MIN_DIGITS:
        return None
    return digits


def normalize_condition(value: object) -> Condition:
    key = _enum_key(value)
    return _CONDITIONS.get(key, Condition.NEW)


def normalize_availability(value: object) -> Availability:
    key = _enum_key(value)
    return _AVAILABILITY.get(key, Availability.UNKNOWN)


def _enum_key(value: object) -> str:
    text = text_of(value) or ""
    return re.sub(r"[\s-]+", "_", text.strip().lower())


def is_absolute_http_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in {"http", "https"} and bool(parsed.netloc)


def extract_images(raw: Mapping[str, object]) -> tuple[str, ...]:
    """Collect image URLs in priority order, keeping valid absolute URLs once."""

    candidates: list[str] = []
    candidates.extend(texts_of(raw.get("image_link")))
    candidates.extend(texts_of(raw.get("additional_image_link")))
    candidates.extend(texts_of(raw.get("image")))
    images = raw.get("images")
    if isinstance(images, dict):
        candidates.extend(texts_of(images.get("image")))  # pyright: ignore[reportUnknownMemberType, reportUnknownArgumentType]
    else:
        candidates.extend(texts_of(images))

    seen: dict[str, None] = {}
    for url in candidates:
        if is_absolute_http_url(url):
            seen.setdefault(url, None)
    return tuple(seen)


def extract_tags(raw: Mapping[str, object]) -> frozenset[str]:
    tags: set[str] = set()
    for key in ("brand", "color", "condition", "category"):
        tags.update(texts_of(raw.get(key)))
    for key in ("tags", "categories"):
        value = raw.get(key)
        if isinstance(value, dict):
            for nested in value.values():  # pyright: ignore[reportUnknownVariableType]
                tags.update(texts_of(nested))
        else:
            tags.update(texts_of(value))
    return frozenset(tag for tag in tags if tag)


def resolve_sku(*, gtin: str | None, mpn: str | None, external_id: str | None) -> str | None:
    for candidate in (gtin, mpn, external_id):
        if candidate:
            return candidate
    return None


def parse_quantity(value: object) -> int | None:
    """Whole units from ``"12"``, ``"12 pcs"`` or ``12``; ``None`` without digits."""

    text = text_of(value)
    if text is None:
        return None
    match = re.search(r"\d+", text)
    return int(match.group(0)) if match else None


def resolve_inventory(raw: Mapping[str, object], availability: Availability) -> int | None:
    """Stock level for an entry: an explicit count wins, then availability.

    ``in_stock`` without a count means :data:`IN_STOCK_QUANTITY` units and
    ``out_of_stock`` means none. Anything else leaves stock untouched.
    """

    quantity = parse_quantity(_first_text(raw, _QUANTITY_FIELDS))
    if quantity is not None:
        return quantity
    if availability is Availability.IN_STOCK:
        return IN_STOCK_QUANTITY
    if availability is Availability.OUT_OF_STOCK:
        return 0
    return None


def normalize_item(
    raw: Mapping[str, object],
    index: int,
    *,
    default_vendor: str = DEFAULT_VENDOR,
    default_product_type: str = DEFAULT_PRODUCT_TYPE,
) -> FeedItem:
    """Turn one raw feed element into a :class:`FeedItem`."""

    gtin = normalize_gtin(raw.get("gtin"))
    external_id = _first_text(raw, _ID_FIELDS) or f"product-{index}"
    mpn = text_of(raw.get("mpn"))
    title = _first_text(raw, _TITLE_FIELDS) or f"Product {index + 1}"
    availability = normalize_availability(raw.get("availability"))

    return FeedItem(
        external_id=external_id,
        group_id=_first_text(raw, _GROUP_FIELDS),
        title=_collapse(title),
        description=_first_text(raw, _DESCRIPTION_FIELDS) or title,
        vendor=_first_text(raw, _VENDOR_FIELDS) or default_vendor,
        condition=normalize_condition(raw.get("condition")),
        price=extract_price(_price_source(raw)),
        sku=resolve_sku(gtin=gtin, mpn=mpn, external_id=external_id),
        gtin=gtin,
        mpn=mpn,
        image_urls=extract_images(raw),
        availability=availability,
        color=text_of(raw.get("color")),
        size=text_of(raw.get("size")),
        inventory=resolve_inventory(raw, availability),
        category=_first_text(raw, _CATEGORY_FIELDS) or "",
        product_type=_first_text(raw, _PRODUCT_TYPE_FIELDS) or default_product_type,
        link=text_of(raw.get("link")),
        tags=extract_tags(raw),
    )


def nested_variants(raw: Mapping[str, object]) -> list[Mapping[str, object]]:
    """Entries of a ``<variants><variant>...</variant></variants>`` block."""

    container = raw.get("variants")
    if not isinstance(container, Mapping):
        return []
    entries = cast("Mapping[str, object]", container).get("variant")
    if isinstance(entries, Mapping):
        return [cast("Mapping[str, object]", entries)]
    if isinstance(entries, list):
        return [
            cast("Mapping[str, object]", entry)
            for entry in cast("list[object]", entries)
            if isinstance(entry, Mapping)
        ]
    return []


def expand_variants(parent: FeedItem, variants: Iterable[Mapping[str, object]]) -> list[FeedItem]:
    """One item per nested variant, grouped under the parent.

    Variants inherit the parent's text fields and fall back to its price,
    colour and images. A variant without a stock count or availability has
    no stock.
    """

    group_id = parent.group_id or parent.external_id
    items: list[FeedItem] = []
    for position, raw in enumerate(variants, start=1):
        external_id = _first_text(raw, _VARIANT_ID_FIELDS) or f"{parent.external_id}-{position}"
        gtin = normalize_gtin(raw.get("gtin"))
        price_source = _price_source(raw)
        availability = normalize_availability(raw.get("availability"))
        inventory = resolve_inventory(raw, availability)
        if availability is Availability.UNKNOWN:
            availability = _availability_for(inventory, parent.availability)
        items.append(
            replace(
                parent,
                external_id=external_id,
                group_id=group_id,
                price=extract_price(price_source) if price_source is not None else parent.price,
                sku=text_of(raw.get("sku")) or gtin or external_id,
                gtin=gtin,
                mpn=None,
                image_urls=extract_images(raw) or parent.image_urls,
                availability=availability,
                color=text_of(raw.get("color")) or parent.color,
                size=text_of(raw.get("size")) or parent.size,
                inventory=inventory if inventory is not None else 0,
            )
        )
    return items


def normalize_entry(
    raw: Mapping[str, object],
    index: int,
    *,
    default_vendor: str = DEFAULT_VENDOR,
    default_product_type: str = DEFAULT_PRODUCT_TYPE,
) -> list[FeedItem]:
    """Items for one feed element: the element itself or its nested variants."""

    item = normalize_item(
        raw,
        index,
        default_vendor=default_vendor,
        default_product_type=default_product_type,
    )
    variants = nested_variants(raw)
    if not variants:
        return [item]
    return expand_variants(item, variants)


def normalize_items(
    raws: Iterable[Mapping[str, object]],
    *,
    default_vendor: str = DEFAULT_VENDOR,
    default_product_type: str = DEFAULT_PRODUCT_TYPE,
) -> list[FeedItem]:
    items: list[FeedItem] = []
    for index, raw in enumerate(raws):
        items.extend(
            normalize_entry(
                raw,
                index,
                default_vendor=default_vendor,
                default_product_type=default_product_type,
            )
        )
    return items


def _availability_for(inventory: int | None, fallback: Availability) -> Availability:
    if inventory is None:
        return fallback
    return Availability.IN_STOCK if inventory > 0 else Availability.OUT_OF_STOCK


def _price_source(raw: Mapping[str, object]) -> object:
    return next((raw[key] for key in _PRICE_FIELDS if text_of(raw.get(key))), None)


def _first_text(raw: Mapping[str, object], keys: Iterable[str]) -> str | None:
    for key in keys:
        text = text_of(raw.get(key))
        if text is not None:
            return text
    return None


def _collapse(text: str) -> str:
    return " ".join(text.split())
