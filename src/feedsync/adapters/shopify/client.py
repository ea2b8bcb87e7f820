"""Shopify Admin GraphQL transport."""

from __future__ import annotations

import json
from logging import getLogger
from typing import TYPE_CHECKING, cast

import httpx

from feedsync.adapters.http_resilience import ResilientClient
from feedsync.config.http_resilience import RetryableResponseError
from feedsync.domain.errors import TransportError

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import TracebackType

    from feedsync.config import ShopifyConfig
    from feedsync.config.http_resilience import ResilienceConfig

log = getLogger(__name__)

THROTTLED_CODE = "THROTTLED"


async def raise_on_throttle(response: httpx.Response) -> None:
    """Raise :class:`RetryableResponseError` for a ``THROTTLED`` GraphQL error."""

    if response.status_code != httpx.codes.OK:
        return
    await response.aread()
    try:
        payload = json.loads(response.content)
    except (UnicodeDecodeError, json.JSONDecodeError):
        return
    if not isinstance(payload, dict):
        return
    errors = cast("dict[str, object]", payload).get("errors")
    if not isinstance(errors, list):
        return
    for error in cast("list[object]", errors):
        if not isinstance(error, dict):
            continue
        extensions = cast("dict[str, object]", error).get("extensions")
        if isinstance(extensions, dict) and extensions.get("code") == THROTTLED_CODE:  # pyright: ignore[reportUnknownMemberType]
            log.info("Shopify throttled the request, backing off")
            raise RetryableResponseError("Shopify GraphQL throttled", response=response)


class ShopifyAdminClient:
    """Posts ``{query, variables}`` to the shop's Admin GraphQL endpoint.

    Use as an async context manager so the rate limiter and connection pool
    are shared by every call of a run. The raw :class:`httpx.Response` is
    returned; callers normalize it.
    """

    def __init__(
        self,
        config: ShopifyConfig,
        *,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        self.config = config
        self._resilience = config.resilience.with_response_hooks(raise_on_throttle)
        self._client_factory = client_factory or ResilientClient
        self._client: ResilientClient | None = None

    @property
    def shop(self) -> str:
        return self.config.shop

    async def __aenter__(self) -> ShopifyAdminClient:
        self._ensure_client()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _ensure_client(self) -> ResilientClient:
        if self._client is None:
            self._client = self._client_factory(self._resilience)
        return self._client

    async def execute(self, operation: str, variables: dict[str, object] | None = None) -> object:
        client = self._ensure_client()
        body: dict[str, object] = {"query": operation}
        if variables is not None:
            body["variables"] = variables
        try:
            response = await client.post(self.config.graphql_path, json=body)
        except httpx.HTTPError as exc:
            raise TransportError(f"Shopify request failed: {exc}") from exc
        if response.is_error:
            raise TransportError(
                f"Shopify responded {response.status_code}: {response.text[:200]}"
            )
        return response
