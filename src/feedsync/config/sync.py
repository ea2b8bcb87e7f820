"""Reconciliation defaults and the explicit per-run configuration."""

from __future__ import annotations

from dataclasses import dataclass

from feedsync.domain.feed.normalize import DEFAULT_PRODUCT_TYPE, DEFAULT_VENDOR

from .env import env_flag, env_float, env_int
from .errors import ConfigurationError

DEFAULT_BATCH_SIZE = 6
DEFAULT_INTER_BATCH_DELAY_SECONDS = 1.0
DEFAULT_RETRY_ATTEMPTS = 3
DEFAULT_RETRY_BASE_DELAY_SECONDS = 0.5
DEFAULT_MAX_BACKOFF_SECONDS = 8.0


@dataclass(frozen=True, slots=True)
class SyncConfig:
    """Knobs for one reconciliation run.

    ``batch_size`` is the number of variant groups reconciled concurrently;
    ``inter_batch_delay`` is the fixed pause between batches. Retry settings
    apply to every remote call made on behalf of a group.
    """

    batch_size: int = DEFAULT_BATCH_SIZE
    inter_batch_delay: float = DEFAULT_INTER_BATCH_DELAY_SECONDS
    retry_attempts: int = DEFAULT_RETRY_ATTEMPTS
    retry_base_delay: float = DEFAULT_RETRY_BASE_DELAY_SECONDS
    max_backoff: float = DEFAULT_MAX_BACKOFF_SECONDS
    cache_enabled: bool = True
    bulk_input_accepts_sku: bool = True
    max_groups: int | None = None
    auto_delete: bool = False
    default_vendor: str = DEFAULT_VENDOR
    default_product_type: str = DEFAULT_PRODUCT_TYPE

    def __post_init__(self) -> None:
        if self.batch_size < 1:
            raise ConfigurationError("batch_size must be at least 1")
        if self.retry_attempts < 1:
            raise ConfigurationError("retry_attempts must be at least 1")
        if self.inter_batch_delay < 0 or self.retry_base_delay < 0:
            raise ConfigurationError("delays must be non-negative")
        if self.max_groups is not None and self.max_groups < 0:
            raise ConfigurationError("max_groups must be non-negative")


def get_sync_config() -> SyncConfig:
    return SyncConfig(
        batch_size=env_int("FEEDSYNC_BATCH_SIZE", DEFAULT_BATCH_SIZE, minimum=1),
        inter_batch_delay=env_float(
            "FEEDSYNC_INTER_BATCH_DELAY", DEFAULT_INTER_BATCH_DELAY_SECONDS, minimum=0.0
        ),
        retry_attempts=env_int("FEEDSYNC_RETRY_ATTEMPTS", DEFAULT_RETRY_ATTEMPTS, minimum=1),
        retry_base_delay=env_float(
            "FEEDSYNC_RETRY_BASE_DELAY", DEFAULT_RETRY_BASE_DELAY_SECONDS, minimum=0.0
        ),
        cache_enabled=env_flag("FEEDSYNC_MATCH_CACHE", default=True),
        bulk_input_accepts_sku=env_flag("FEEDSYNC_BULK_SKU", default=True),
    )
