from __future__ import annotations

import asyncio
from collections.abc import Callable  # noqa: TC003

import httpx
import pytest

from feedsync.adapters.feed import HttpFeedFetcher
from feedsync.adapters.http_resilience import ResilientClient
from feedsync.config.http_resilience import ResilienceConfig  # noqa: TC001
from feedsync.domain.errors import FeedFetchError
from tests.helpers.feeds import GOOGLE_SHOPPING_FEED

FEED_URL = "https://feeds.example.com/supplier.xml"


def _make_client_factory(
    handler: Callable[[httpx.Request], httpx.Response],
) -> Callable[[ResilienceConfig], ResilientClient]:
    async def async_handler(request: httpx.Request) -> httpx.Response:
        return handler(request)

    def factory(resilience: ResilienceConfig) -> ResilientClient:
        client = ResilientClient(resilience)
        client._client = httpx.AsyncClient(transport=httpx.MockTransport(async_handler))  # noqa: SLF001  # type: ignore[reportPrivateUsage]
        return client

    return factory


def test_fetch_returns_feed_bytes() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert str(request.url) == FEED_URL
        return httpx.Response(200, content=GOOGLE_SHOPPING_FEED)

    fetcher = HttpFeedFetcher(client_factory=_make_client_factory(handler))

    assert asyncio.run(fetcher.fetch(FEED_URL)) == GOOGLE_SHOPPING_FEED


@pytest.mark.parametrize(
    ("response", "message"),
    [
        (httpx.Response(404, text="missing"), "404"),
        (httpx.Response(200, content=b"  \n"), "empty"),
    ],
)
def test_fetch_failures_raise_feed_fetch_error(response: httpx.Response, message: str) -> None:
    fetcher = HttpFeedFetcher(client_factory=_make_client_factory(lambda _request: response))

    with pytest.raises(FeedFetchError, match=message):
        asyncio.run(fetcher.fetch(FEED_URL))


def test_network_errors_raise_feed_fetch_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    fetcher = HttpFeedFetcher(client_factory=_make_client_factory(handler))

    with pytest.raises(FeedFetchError, match="connection refused"):
        asyncio.run(fetcher.fetch(FEED_URL))
