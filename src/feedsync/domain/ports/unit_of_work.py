"""Unit-of-work abstraction for the sync bookkeeping repositories."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from types import TracebackType
    from uuid import UUID

    from .persistence import ProviderRepository, SyncRunRepository
    from .tracking import TrackingStore


@dataclass(slots=True)
class SyncRepositories:
    providers: ProviderRepository
    sync_runs: SyncRunRepository


@runtime_checkable
class SyncUnitOfWork(Protocol):
    @property
    def repositories(self) -> SyncRepositories: ...

    def tracking(self, provider_id: UUID) -> TrackingStore: ...

    def __enter__(self) -> SyncUnitOfWork: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


__all__ = ["SyncRepositories", "SyncUnitOfWork"]
