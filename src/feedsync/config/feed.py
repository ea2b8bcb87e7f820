"""Feed download configuration values."""

from __future__ import annotations

from dataclasses import dataclass, field

from .env import env_flag, env_float
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy

FEED_TIMEOUT_SECONDS = 60.0
FEED_CACHE_TTL_SECONDS = 300.0
FEED_USER_AGENT = "feedsync/1.0 (+product-feed-reader)"


def feed_resilience(cache: CacheConfig | None = None) -> ResilienceConfig:
    return ResilienceConfig(
        name="feed",
        timeout_seconds=FEED_TIMEOUT_SECONDS,
        # Suppliers often host feeds on small servers; one download at a time.
        ratelimit=RateLimit(max_calls=1),
        retry=RetryPolicy.downloads(),
        cache=cache or CacheConfig(ttl_seconds=FEED_CACHE_TTL_SECONDS),
        default_headers={
            "Accept": "application/xml, text/xml, */*",
            "User-Agent": FEED_USER_AGENT,
        },
    )


@dataclass(frozen=True, slots=True)
class FeedConfig:
    resilience: ResilienceConfig = field(default_factory=feed_resilience)


def get_feed_config() -> FeedConfig:
    cache = CacheConfig(
        ttl_seconds=env_float("FEEDSYNC_FEED_CACHE_TTL", FEED_CACHE_TTL_SECONDS, minimum=0.0),
        persistent=env_flag("FEEDSYNC_FEED_CACHE_PERSISTENT", default=False),
    )
    return FeedConfig(resilience=feed_resilience(cache))
