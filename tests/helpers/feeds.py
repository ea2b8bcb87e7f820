"""Builders for feed items and sample feed documents."""

from __future__ import annotations

from decimal import Decimal

from feedsync.domain.model import Availability, Condition, FeedItem


def make_item(
    external_id: str = "SKU-1",
    *,
    title: str = "Acme Wireless Mouse Pro",
    group_id: str | None = None,
    price: str = "19.99",
    vendor: str = "Acme",
    availability: Availability = Availability.IN_STOCK,
    condition: Condition = Condition.NEW,
    color: str | None = None,
    size: str | None = None,
    inventory: int | None = None,
    gtin: str | None = None,
    sku: str | None = None,
    images: tuple[str, ...] = (),
    tags: frozenset[str] = frozenset(),
) -> FeedItem:
    """Create a feed item with sensible defaults; ``sku`` falls back to gtin then id."""

    return FeedItem(
        external_id=external_id,
        title=title,
        group_id=group_id,
        description=f"<p>{title}</p>",
        vendor=vendor,
        condition=condition,
        price=Decimal(price),
        sku=sku or gtin or external_id,
        gtin=gtin,
        image_urls=images,
        availability=availability,
        color=color,
        size=size,
        inventory=inventory,
        category="Electronics",
        product_type="Accessories",
        tags=tags,
    )


GOOGLE_SHOPPING_FEED = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:g="http://base.google.com/ns/1.0">
  <channel>
    <title>Supplier</title>
    <item>
      <g:id>P-RED</g:id>
      <g:item_group_id>G1</g:item_group_id>
      <g:title>Phone X 128GB Red</g:title>
      <g:description>Refurbished phone</g:description>
      <g:brand>Acme</g:brand>
      <g:condition>refurbished</g:condition>
      <g:price>179.00 EUR</g:price>
      <g:availability>in stock</g:availability>
      <g:color>Red</g:color>
      <g:gtin>04006381333931</g:gtin>
      <g:image_link>https://cdn.example.com/img/phone-red.jpg</g:image_link>
    </item>
    <item>
      <g:id>P-BLUE</g:id>
      <g:item_group_id>G1</g:item_group_id>
      <g:title>Phone X 128GB Blue</g:title>
      <g:brand>Acme</g:brand>
      <g:condition>refurbished</g:condition>
      <g:price>189.00 EUR</g:price>
      <g:availability>in stock</g:availability>
      <g:color>Blue</g:color>
      <g:image_link>https://cdn.example.com/img/phone-blue.jpg</g:image_link>
    </item>
    <item>
      <g:id>P-BLACK</g:id>
      <g:item_group_id>G1</g:item_group_id>
      <g:title>Phone X 256GB Black</g:title>
      <g:brand>Acme</g:brand>
      <g:condition>used</g:condition>
      <g:price>149.00 EUR</g:price>
      <g:availability>out of stock</g:availability>
      <g:color>Black</g:color>
    </item>
    <item>
      <g:id>CASE-1</g:id>
      <g:title>Leather Case</g:title>
      <g:brand>Acme</g:brand>
      <g:price>\xe2\x82\xac45</g:price>
      <g:availability>in stock</g:availability>
    </item>
  </channel>
</rss>
"""


NESTED_VARIANTS_FEED = b"""<?xml version="1.0" encoding="UTF-8"?>
<products>
  <product>
    <id>TEE-1</id>
    <title>Organic Cotton Tee</title>
    <brand>Acme</brand>
    <price>25.00</price>
    <color>White</color>
    <image>https://cdn.example.com/img/tee.jpg</image>
    <variants>
      <variant><sku>TEE-1-S</sku><size>S</size><stock>4</stock></variant>
      <variant><sku>TEE-1-M</sku><size>M</size><price>27.00</price><stock>0</stock></variant>
      <variant><sku>TEE-1-L</sku><size>L</size><inventory>12</inventory><color>Black</color></variant>
    </variants>
  </product>
  <product>
    <id>MUG-1</id>
    <title>Travel Mug</title>
    <brand>Acme</brand>
    <price>12.50</price>
    <availability>in_stock</availability>
  </product>
</products>
"""
