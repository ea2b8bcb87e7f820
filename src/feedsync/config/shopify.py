"""Shopify Admin API configuration values."""

from __future__ import annotations

import re
from dataclasses import dataclass

from .env import optional_env, require_env_vars
from .errors import InvalidShopDomainError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy

DEFAULT_SHOPIFY_API_VERSION = "2024-10"
SHOPIFY_TIMEOUT_SECONDS = 30.0

_SHOP_PATTERN = re.compile(r"^[a-z0-9][a-z0-9-]*$")


@dataclass(frozen=True, slots=True)
class ShopifyConfig:
    shop: str
    access_token: str
    resilience: ResilienceConfig
    api_version: str = DEFAULT_SHOPIFY_API_VERSION

    @property
    def graphql_path(self) -> str:
        return f"/admin/api/{self.api_version}/graphql.json"


def normalize_shop_domain(shop: str) -> str:
    """Return ``{name}.myshopify.com`` for a bare name or full domain."""

    candidate = shop.strip().lower()
    candidate = candidate.removeprefix("https://").removeprefix("http://").rstrip("/")
    name = candidate.removesuffix(".myshopify.com")
    if not _SHOP_PATTERN.match(name):
        raise InvalidShopDomainError(f"Invalid shop domain: {shop!r}")
    return f"{name}.myshopify.com"


def shopify_resilience(shop_domain: str, access_token: str) -> ResilienceConfig:
    return ResilienceConfig(
        name="shopify",
        base_url=f"https://{shop_domain}",
        timeout_seconds=SHOPIFY_TIMEOUT_SECONDS,
        # Admin GraphQL leaky bucket refills at roughly 2 requests per second.
        ratelimit=RateLimit(max_calls=2, per_seconds=1.0),
        # Mutations are not idempotent; the catalog gateway is the only retry layer.
        retry=RetryPolicy.disabled(),
        cache=None,
        default_headers={
            "X-Shopify-Access-Token": access_token,
            "Content-Type": "application/json",
            "Accept": "application/json",
        },
    )


def get_shopify_config(*, shop: str | None = None) -> ShopifyConfig:
    values = require_env_vars(("SHOPIFY_ACCESS_TOKEN",))
    raw_shop = shop or require_env_vars(("SHOPIFY_SHOP_DOMAIN",))["SHOPIFY_SHOP_DOMAIN"]
    domain = normalize_shop_domain(raw_shop)
    token = values["SHOPIFY_ACCESS_TOKEN"]
    return ShopifyConfig(
        shop=domain,
        access_token=token,
        resilience=shopify_resilience(domain, token),
        api_version=optional_env("SHOPIFY_API_VERSION") or DEFAULT_SHOPIFY_API_VERSION,
    )
