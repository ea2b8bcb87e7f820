"""Port for downloading supplier feeds."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class FeedFetcher(Protocol):
    """Returns the raw bytes of the feed at ``url``.

    Implementations raise :class:`~feedsync.domain.errors.FeedFetchError`
    when the document cannot be retrieved.
    """

    async def fetch(self, url: str) -> bytes: ...


__all__ = ["FeedFetcher"]
