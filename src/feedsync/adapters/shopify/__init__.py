"""Shopify Admin API adapter."""

from __future__ import annotations

from .client import ShopifyAdminClient, raise_on_throttle

__all__ = ["ShopifyAdminClient", "raise_on_throttle"]
