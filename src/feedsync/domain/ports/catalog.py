"""Port for the remote catalog transport."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class CatalogClient(Protocol):
    """Executes GraphQL operations against the remote catalog.

    The return value is loose: a mapping or object exposing
    ``data``/``errors``, an object with a ``json()`` accessor (sync or
    async), or a JSON string. Callers pass it through
    :func:`feedsync.domain.reconciliation.responses.normalize_response`.
    """

    async def execute(self, operation: str, variables: dict[str, object] | None = None) -> object:
        ...


__all__ = ["CatalogClient"]
