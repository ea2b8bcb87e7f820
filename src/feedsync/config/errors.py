"""Errors raised while reading feedsync configuration."""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """A configuration value is present but unusable."""


class MissingConfigurationError(ConfigurationError):
    """A required environment variable is unset or blank."""


class InvalidShopDomainError(ConfigurationError):
    """Raised when a shop domain cannot be turned into an Admin API host."""
