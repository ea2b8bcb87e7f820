"""Application configuration helpers."""

from __future__ import annotations

from .env import env_flag, env_float, env_int, optional_env, require_env_vars
from .errors import ConfigurationError, InvalidShopDomainError, MissingConfigurationError
from .feed import FeedConfig, get_feed_config
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .shopify import ShopifyConfig, get_shopify_config, normalize_shop_domain
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config
from .sync import SyncConfig, get_sync_config

__all__ = [
    "CacheConfig",
    "ConfigurationError",
    "DatabaseConfig",
    "FeedConfig",
    "InvalidShopDomainError",
    "MissingConfigurationError",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "ShopifyConfig",
    "StorageConfig",
    "SyncConfig",
    "configure_logging",
    "env_flag",
    "env_float",
    "env_int",
    "get_database_config",
    "get_feed_config",
    "get_shopify_config",
    "get_storage_config",
    "get_sync_config",
    "normalize_shop_domain",
    "optional_env",
    "require_env_vars",
]
