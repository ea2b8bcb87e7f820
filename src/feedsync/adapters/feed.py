"""HTTP download of supplier feeds."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

import httpx

from feedsync.adapters.http_resilience import ResilientClient
from feedsync.config.feed import FeedConfig
from feedsync.domain.errors import FeedFetchError

if TYPE_CHECKING:
    from collections.abc import Callable

    from feedsync.config.http_resilience import ResilienceConfig

log = getLogger(__name__)


class HttpFeedFetcher:
    """Downloads feed documents through a :class:`ResilientClient`."""

    def __init__(
        self,
        config: FeedConfig | None = None,
        *,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        self.config = config or FeedConfig()
        self._client_factory = client_factory or ResilientClient

    async def fetch(self, url: str) -> bytes:
        log.info("Downloading feed %s", url)
        async with self._client_factory(self.config.resilience) as client:
            try:
                response = await client.get(url)
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                raise FeedFetchError(
                    f"Feed {url} responded {exc.response.status_code}"
                ) from exc
            except httpx.HTTPError as exc:
                raise FeedFetchError(f"Could not download feed {url}: {exc}") from exc
        content = response.content
        if not content.strip():
            raise FeedFetchError(f"Feed {url} is empty")
        log.debug("Downloaded %d bytes from %s", len(content), url)
        return content
