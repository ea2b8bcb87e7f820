"""Repository ports for providers and sync runs."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from uuid import UUID

    from feedsync.domain.model import FeedProvider, SyncRun


@runtime_checkable
class ProviderRepository(Protocol):
    def add(self, provider: FeedProvider) -> None: ...

    def get(self, provider_id: UUID) -> FeedProvider | None: ...

    def find(self, *, shop: str, name: str) -> FeedProvider | None: ...

    def list_providers(
        self, *, shop: str | None = None, active_only: bool = False
    ) -> list[FeedProvider]: ...


@runtime_checkable
class SyncRunRepository(Protocol):
    def add(self, run: SyncRun) -> None: ...

    def latest(self, provider_id: UUID, *, limit: int = 10) -> list[SyncRun]: ...


__all__ = ["ProviderRepository", "SyncRunRepository"]
