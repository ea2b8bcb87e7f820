"""Settings for the shared ``httpx`` client: transport retries, call budget, cache."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

import httpx

if TYPE_CHECKING:
    from collections.abc import Mapping

type ResponseHook = Callable[[httpx.Response], Awaitable[None] | None]

RETRY_STATUSES = frozenset({429, 500, 502, 503, 504})


class RetryableResponseError(httpx.HTTPError):
    """Raised by a response hook when a successful status hides a retryable body."""

    def __init__(self, message: str, *, response: httpx.Response) -> None:
        super().__init__(message)
        self.response = response


@dataclass(slots=True, frozen=True)
class RetryPolicy:
    """Retries done by the transport, below the catalog gateway's own backoff.

    Only connection-level failures and the statuses in ``statuses`` are
    repeated here; GraphQL errors surface to the gateway.
    """

    total: int = 3
    backoff_factor: float = 0.5
    max_backoff_wait: float = 30.0
    backoff_jitter: float = 1.0
    respect_retry_after_header: bool = True
    methods: frozenset[str] = frozenset({"GET", "POST"})
    statuses: frozenset[int] = RETRY_STATUSES
    exceptions: tuple[type[httpx.HTTPError], ...] = (
        httpx.TimeoutException,
        httpx.NetworkError,
        httpx.RemoteProtocolError,
    )

    @classmethod
    def downloads(cls, total: int = 3) -> RetryPolicy:
        return cls(total=total, methods=frozenset({"GET", "HEAD"}))

    @classmethod
    def disabled(cls) -> RetryPolicy:
        return cls(total=0, methods=frozenset())


@dataclass(slots=True, frozen=True)
class RateLimit:
    max_calls: int
    per_seconds: float = 1.0


@dataclass(slots=True, frozen=True)
class CacheConfig:
    """Response cache for idempotent downloads.

    ``persistent`` keeps entries in the data directory between runs;
    otherwise they live in memory for the lifetime of one client.
    """

    ttl_seconds: float | None = None
    persistent: bool = False


@dataclass(slots=True, frozen=True)
class ResilienceConfig:
    name: str
    base_url: str | None = None
    timeout_seconds: float = 30.0
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    ratelimit: RateLimit | None = None
    cache: CacheConfig | None = None
    response_hooks: tuple[ResponseHook, ...] = ()
    default_headers: Mapping[str, str] | None = None

    def with_response_hooks(self, *hooks: ResponseHook) -> ResilienceConfig:
        return replace(self, response_hooks=(*self.response_hooks, *hooks))
