"""Catalog matcher: find the remote product a variant group corresponds to.

Lookups build one search query per group from a ladder of tiers and the
first usable tier wins. Results, including misses, are cached per run by
query text; failed lookups are never cached.
"""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass
from enum import IntEnum
from logging import getLogger
from typing import TYPE_CHECKING

from feedsync.domain.errors import ResponseFormatError, TransportError

from .gateway import parse_payload
from .queries import PRODUCT_BY_ID_QUERY, SEARCH_PRODUCTS_QUERY
from .schema import ProductPayload, ProductSearchData

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from feedsync.domain.model import RemoteProduct, VariantGroup

    from .gateway import CatalogGateway

log = getLogger(__name__)

SEARCH_PAGE_SIZE = 5

_MIN_VENDOR_WITH_TITLE = 2
_MIN_TITLE_WITH_VENDOR = 3
_MIN_VENDOR_ALONE = 3
_MIN_TITLE_ALONE = 5
_TITLE_PREFIX_WORDS = 3

_QUOTES = re.compile(r"[\"'`‘’“”]")


class QueryTier(IntEnum):
    VENDOR_AND_TITLE = 1
    VENDOR = 2
    TITLE_PREFIX = 3


@dataclass(frozen=True, slots=True)
class SearchQuery:
    text: str
    tier: QueryTier
    title: str | None = None


def normalize_text(value: str | None) -> str:
    """Strip quotes and line breaks, collapse whitespace."""

    if not value:
        return ""
    return " ".join(_QUOTES.sub("", value).split())


def build_search_query(vendor: str | None, title: str | None) -> SearchQuery | None:
    """Return the first usable query tier for ``vendor``/``title``, or ``None``."""

    vendor_text = normalize_text(vendor)
    title_text = normalize_text(title)

    if len(vendor_text) > _MIN_VENDOR_WITH_TITLE and len(title_text) > _MIN_TITLE_WITH_VENDOR:
        return SearchQuery(
            text=f'vendor:"{vendor_text}" title:"{title_text}"',
            tier=QueryTier.VENDOR_AND_TITLE,
            title=title_text,
        )
    if len(vendor_text) > _MIN_VENDOR_ALONE and " " not in vendor_text:
        return SearchQuery(text=f"vendor:{vendor_text}", tier=QueryTier.VENDOR)
    if len(title_text) > _MIN_TITLE_ALONE:
        prefix = " ".join(title_text.split()[:_TITLE_PREFIX_WORDS])
        return SearchQuery(text=f'title:"{prefix}"', tier=QueryTier.TITLE_PREFIX)
    return None


def choose_candidate(candidates: list[RemoteProduct], query: SearchQuery) -> RemoteProduct | None:
    """Prefer an exact title match for title-bearing queries, else the first hit."""

    if not candidates:
        return None
    if query.title is not None:
        wanted = query.title.casefold()
        for candidate in candidates:
            if normalize_text(candidate.title).casefold() == wanted:
                return candidate
    return candidates[0]


class MatchCache:
    """Per-run map of query text to a product or an explicit miss.

    A miss is stored as ``None``; absence of the key means "not looked up".
    Concurrent lookups of the same query share one in-flight call.
    """

    def __init__(self) -> None:
        self._entries: dict[str, RemoteProduct | None] = {}
        self._pending: dict[str, asyncio.Future[RemoteProduct | None]] = {}

    def __contains__(self, query: str) -> bool:
        return query in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, query: str) -> RemoteProduct | None:
        return self._entries[query]

    def store(self, query: str, product: RemoteProduct | None) -> None:
        self._entries[query] = product

    def clear(self) -> None:
        self._entries.clear()

    async def resolve(
        self,
        query: str,
        lookup: Callable[[], Awaitable[RemoteProduct | None]],
    ) -> RemoteProduct | None:
        if query in self._entries:
            return self._entries[query]
        pending = self._pending.get(query)
        if pending is not None:
            return await asyncio.shield(pending)

        future: asyncio.Future[RemoteProduct | None] = asyncio.get_running_loop().create_future()
        self._pending[query] = future
        try:
            result = await lookup()
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as exc:
            future.set_exception(exc)
            future.exception()  # mark retrieved when nobody else is waiting
            raise
        finally:
            del self._pending[query]
        self._entries[query] = result
        future.set_result(result)
        return result


class CatalogMatcher:
    def __init__(
        self,
        gateway: CatalogGateway,
        *,
        cache: MatchCache | None = None,
        page_size: int = SEARCH_PAGE_SIZE,
    ) -> None:
        self.gateway = gateway
        self.cache = cache
        self.page_size = page_size

    async def find_existing(self, group: VariantGroup) -> RemoteProduct | None:
        query = build_search_query(group.master.vendor, group.title)
        if query is None:
            log.debug("No usable search query for %r", group.title)
            return None

        async def lookup() -> RemoteProduct | None:
            return choose_candidate(await self.search(query.text), query)

        return await self._cached(query.text, lookup)

    async def find_existing_by_group(
        self,
        group_id: str | None,
        first_sku: str | None,
    ) -> RemoteProduct | None:
        """Look for a product whose variants carry the group id or first SKU as a code."""

        for value in (group_id, first_sku):
            token = normalize_text(value)
            if not token:
                continue
            for field_name in ("sku", "barcode"):
                text = f'{field_name}:"{token}"'

                async def lookup(text: str = text) -> RemoteProduct | None:
                    candidates = await self.search(text)
                    return candidates[0] if candidates else None

                product = await self._cached(text, lookup)
                if product is not None:
                    return product
        return None

    async def find_by_id(self, product_id: str) -> RemoteProduct | None:
        """Fetch a tracked product directly; failures count as not found."""

        try:
            data = await self.gateway.query(
                PRODUCT_BY_ID_QUERY,
                {"id": product_id},
                label=f"fetch {product_id}",
            )
            node = parse_payload(ProductPayload, data, label="product fetch").product
        except (TransportError, ResponseFormatError) as exc:
            log.warning("Fetching %s failed, treating as not found: %s", product_id, exc)
            return None
        return node.to_domain() if node is not None else None

    async def search(self, query: str) -> list[RemoteProduct]:
        data = await self.gateway.query(
            SEARCH_PRODUCTS_QUERY,
            {"query": query, "first": self.page_size},
            label=f"search {query}",
        )
        return parse_payload(ProductSearchData, data, label="product search").to_domain()

    async def _cached(
        self,
        query: str,
        lookup: Callable[[], Awaitable[RemoteProduct | None]],
    ) -> RemoteProduct | None:
        try:
            if self.cache is None:
                return await lookup()
            return await self.cache.resolve(query, lookup)
        except (TransportError, ResponseFormatError) as exc:
            log.warning("Lookup %s failed, treating as not found: %s", query, exc)
            return None
