"""Single entry point for catalog calls: normalize, classify, retry."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from logging import getLogger
from typing import TYPE_CHECKING, cast

import pydantic

from feedsync.domain.errors import (
    FeedSyncError,
    MutationError,
    ResponseFormatError,
    TransportError,
)

from .responses import normalize_response
from .retry import BackoffPolicy, Sleep, retry_async

if TYPE_CHECKING:
    from feedsync.domain.ports import CatalogClient

log = getLogger(__name__)


class CatalogGateway:
    """Wraps a :class:`CatalogClient` with the run's error and retry policy.

    Exceptions raised by the client and top-level GraphQL errors become
    :class:`TransportError` and are retried. ``userErrors`` become
    :class:`MutationError` and are not.
    """

    def __init__(
        self,
        client: CatalogClient,
        *,
        policy: BackoffPolicy | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.client = client
        self.policy = policy or BackoffPolicy()
        self._sleep = sleep

    async def query(
        self,
        operation: str,
        variables: dict[str, object] | None = None,
        *,
        label: str = "catalog query",
    ) -> dict[str, object]:
        async def attempt() -> dict[str, object]:
            return await self._execute_once(operation, variables, label=label)

        return await retry_async(attempt, policy=self.policy, sleep=self._sleep, label=label)

    async def mutate(
        self,
        operation: str,
        variables: dict[str, object],
        *,
        root: str,
        label: str,
        errors_key: str = "userErrors",
    ) -> Mapping[str, object]:
        """Run a mutation and return its payload object (``data[root]``)."""

        data = await self.query(operation, variables, label=label)
        payload = data.get(root)
        if not isinstance(payload, Mapping):
            raise ResponseFormatError(f"{label}: response has no {root} payload")
        payload = cast("Mapping[str, object]", payload)
        user_errors = payload.get(errors_key) or []
        if not isinstance(user_errors, list):
            raise ResponseFormatError(f"{label}: {errors_key} is not a list")
        if user_errors:
            entries = [
                dict(cast("Mapping[str, object]", entry))
                if isinstance(entry, Mapping)
                else {"message": str(entry)}
                for entry in cast("list[object]", user_errors)
            ]
            error = MutationError.from_user_errors(entries)
            log.warning("%s rejected: %s", label, error)
            raise error
        return payload

    async def _execute_once(
        self,
        operation: str,
        variables: dict[str, object] | None,
        *,
        label: str,
    ) -> dict[str, object]:
        try:
            raw = await self.client.execute(operation, variables)
        except FeedSyncError:
            raise
        except Exception as exc:
            raise TransportError(f"{label} failed: {exc}") from exc

        result = await normalize_response(raw)
        if result.errors:
            raise TransportError(f"{label} returned errors: {', '.join(result.error_messages())}")
        if result.data is None:
            raise ResponseFormatError(f"{label}: response carries no data")
        return result.data


def parse_payload[M: pydantic.BaseModel](model: type[M], payload: object, *, label: str) -> M:
    """Validate ``payload`` against ``model``, mapping failures to :class:`ResponseFormatError`."""

    try:
        return model.model_validate(payload)
    except pydantic.ValidationError as exc:
        raise ResponseFormatError(f"{label}: unexpected payload: {exc}") from exc
