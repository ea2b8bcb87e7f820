"""Shared ``httpx`` client for feed downloads and Admin API calls."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from aiolimiter import AsyncLimiter
from hishel import AsyncSqliteStorage
from hishel.httpx import AsyncCacheClient
from httpx_retries import Retry, RetryTransport

from feedsync.config.storage import get_storage_config

if TYPE_CHECKING:
    from types import TracebackType

    from feedsync.config.http_resilience import CacheConfig, ResilienceConfig, RetryPolicy

log = getLogger(__name__)


def build_retry(policy: RetryPolicy) -> Retry:
    return Retry(
        total=policy.total,
        backoff_factor=policy.backoff_factor,
        max_backoff_wait=policy.max_backoff_wait,
        backoff_jitter=policy.backoff_jitter,
        respect_retry_after_header=policy.respect_retry_after_header,
        allowed_methods=sorted(policy.methods),
        status_forcelist=sorted(policy.statuses),
        retry_on_exceptions=policy.exceptions,
    )


def build_cache_storage(config: CacheConfig | None) -> AsyncSqliteStorage | None:
    """Hishel storage for ``config``: a file in the data directory or ``:memory:``."""

    if config is None:
        return None
    if config.persistent:
        database_path = str(get_storage_config().http_cache_path())
    else:
        database_path = ":memory:"
    return AsyncSqliteStorage(database_path=database_path, default_ttl=config.ttl_seconds)


class ResilientClient:
    """Async HTTP client with transport retries, a call budget and an optional cache.

    Every request, retries included, waits for a slot from the limiter. Hooks
    in ``config.response_hooks`` run on each response before it is returned.
    """

    def __init__(self, config: ResilienceConfig) -> None:
        self.config = config
        self._limiter = (
            AsyncLimiter(config.ratelimit.max_calls, config.ratelimit.per_seconds)
            if config.ratelimit
            else None
        )
        transport = RetryTransport(retry=build_retry(config.retry))
        event_hooks = {"response": list(config.response_hooks)} if config.response_hooks else None
        headers = dict(config.default_headers or {})
        storage = build_cache_storage(config.cache)

        self._client: httpx.AsyncClient
        if storage is not None:
            self._client = AsyncCacheClient(
                base_url=config.base_url or "",
                timeout=config.timeout_seconds,
                headers=headers,
                event_hooks=event_hooks,
                transport=transport,
                follow_redirects=True,
                storage=storage,
            )
        else:
            self._client = httpx.AsyncClient(
                base_url=config.base_url or "",
                timeout=config.timeout_seconds,
                headers=headers,
                event_hooks=event_hooks,
                transport=transport,
                follow_redirects=True,
            )
        log.debug("HTTP client %s ready (cache=%s)", config.name, storage is not None)

    async def __aenter__(self) -> ResilientClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get(self, url: str) -> httpx.Response:
        return await self._throttled(self._client.build_request("GET", url))

    async def post(self, url: str, *, json: object) -> httpx.Response:
        return await self._throttled(self._client.build_request("POST", url, json=json))

    async def _throttled(self, request: httpx.Request) -> httpx.Response:
        if self._limiter is None:
            return await self._client.send(request)
        async with self._limiter:
            return await self._client.send(request)
