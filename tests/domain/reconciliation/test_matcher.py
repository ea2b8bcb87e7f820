from __future__ import annotations

import asyncio

import pytest

from feedsync.domain.errors import TransportError
from feedsync.domain.feed import group_items
from feedsync.domain.model import RemoteProduct, VariantGroup
from feedsync.domain.reconciliation import (
    BackoffPolicy,
    CatalogGateway,
    CatalogMatcher,
    MatchCache,
    QueryTier,
    build_search_query,
    normalize_text,
)
from feedsync.domain.reconciliation.matcher import choose_candidate
from tests.helpers.catalog import FakeCatalogClient
from tests.helpers.feeds import make_item
from tests.helpers.timing import RecordingSleep


def _matcher(catalog: FakeCatalogClient, *, cache: MatchCache | None = None, attempts: int = 1) -> CatalogMatcher:
    gateway = CatalogGateway(catalog, policy=BackoffPolicy(attempts=attempts), sleep=RecordingSleep())
    return CatalogMatcher(gateway, cache=cache)


def _group(title: str = "Acme Wireless Mouse Pro") -> VariantGroup:
    return next(iter(group_items([make_item(title=title)]).values()))


def test_normalize_text_strips_quotes_and_collapses_whitespace() -> None:
    assert normalize_text(' The  "Best"\n Mouse ’s ') == "The Best Mouse s"
    assert normalize_text(None) == ""


@pytest.mark.parametrize(
    ("vendor", "title", "expected_tier", "expected_text"),
    [
        ("Acme", "Wireless Mouse Pro", QueryTier.VENDOR_AND_TITLE, 'vendor:"Acme" title:"Wireless Mouse Pro"'),
        ("Acme", "Hub", QueryTier.VENDOR, "vendor:Acme"),
        ("Big Co", "Hub", None, None),
        ("AB", "Laptop", QueryTier.TITLE_PREFIX, 'title:"Laptop"'),
        ("", "Ultra Slim Laptop Stand", QueryTier.TITLE_PREFIX, 'title:"Ultra Slim Laptop"'),
        ("AB", "Pen", None, None),
    ],
)
def test_build_search_query_tiers(
    vendor: str,
    title: str,
    expected_tier: QueryTier | None,
    expected_text: str | None,
) -> None:
    query = build_search_query(vendor, title)

    if expected_tier is None:
        assert query is None
    else:
        assert query is not None
        assert query.tier is expected_tier
        assert query.text == expected_text


def test_tier_one_prefers_exact_title() -> None:
    query = build_search_query("Acme", "Mouse Pro")
    assert query is not None
    first = RemoteProduct(id="1", title="Mouse Pro Max")
    exact = RemoteProduct(id="2", title="mouse pro")

    assert choose_candidate([first, exact], query) is exact
    assert choose_candidate([first], query) is first
    assert choose_candidate([], query) is None


def test_find_existing_returns_matching_product(catalog: FakeCatalogClient) -> None:
    product_id = catalog.add_product(title="Acme Wireless Mouse Pro", vendor="Acme")
    matcher = _matcher(catalog)

    found = asyncio.run(matcher.find_existing(_group()))

    assert found is not None
    assert found.id == product_id


def test_cache_shares_results_within_a_run(catalog: FakeCatalogClient) -> None:
    catalog.add_product(title="Acme Wireless Mouse Pro", vendor="Acme")
    cache = MatchCache()
    matcher = _matcher(catalog, cache=cache)
    group = _group()

    async def lookup_twice() -> None:
        await matcher.find_existing(group)
        await matcher.find_existing(group)

    asyncio.run(lookup_twice())

    assert len(catalog.calls_to("searchProducts")) == 1
    assert len(cache) == 1


def test_cache_records_misses(catalog: FakeCatalogClient) -> None:
    cache = MatchCache()
    matcher = _matcher(catalog, cache=cache)
    group = _group(title="Nothing Like This")

    async def lookup_twice() -> None:
        assert await matcher.find_existing(group) is None
        assert await matcher.find_existing(group) is None

    asyncio.run(lookup_twice())

    assert len(catalog.calls_to("searchProducts")) == 1
    query = build_search_query("Acme", "Nothing Like This")
    assert query is not None
    assert query.text in cache
    assert cache.get(query.text) is None


def test_failed_lookup_is_not_cached(catalog: FakeCatalogClient) -> None:
    catalog.add_product(title="Acme Wireless Mouse Pro", vendor="Acme")
    catalog.fail("searchProducts", TransportError("connection reset"))
    cache = MatchCache()
    matcher = _matcher(catalog, cache=cache, attempts=1)
    group = _group()

    async def lookup_twice() -> tuple[RemoteProduct | None, RemoteProduct | None]:
        return await matcher.find_existing(group), await matcher.find_existing(group)

    first, second = asyncio.run(lookup_twice())

    assert first is None
    assert second is not None
    assert len(catalog.calls_to("searchProducts")) == 2


def test_concurrent_lookups_share_one_call() -> None:
    catalog = FakeCatalogClient(delay=0.01)
    catalog.add_product(title="Acme Wireless Mouse Pro", vendor="Acme")
    matcher = _matcher(catalog, cache=MatchCache())
    group = _group()

    async def lookup_concurrently() -> list[RemoteProduct | None]:
        return list(await asyncio.gather(*(matcher.find_existing(group) for _ in range(4))))

    results = asyncio.run(lookup_concurrently())

    assert len(catalog.calls_to("searchProducts")) == 1
    assert {result.id for result in results if result is not None} == {"gid://shopify/Product/1"}


def test_find_existing_by_group_searches_codes(catalog: FakeCatalogClient) -> None:
    product_id = catalog.add_product(title="Renamed", variants=({"sku": "SKU-7"},))
    matcher = _matcher(catalog)

    found = asyncio.run(matcher.find_existing_by_group("G-unknown", "SKU-7"))

    assert found is not None
    assert found.id == product_id
    assert [call.variables["query"] for call in catalog.calls_to("searchProducts")] == [
        'sku:"G-unknown"',
        'barcode:"G-unknown"',
        'sku:"SKU-7"',
    ]


def test_find_by_id_treats_failures_as_not_found(catalog: FakeCatalogClient) -> None:
    product_id = catalog.add_product(title="Tracked", vendor="Acme")
    matcher = _matcher(catalog)
    catalog.fail("productById", ConnectionError("down"))

    assert asyncio.run(matcher.find_by_id(product_id)) is None
    found = asyncio.run(matcher.find_by_id(product_id))
    assert found is not None
    assert found.title == "Tracked"
    assert asyncio.run(matcher.find_by_id("gid://shopify/Product/999")) is None
