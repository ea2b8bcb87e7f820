"""Port for streaming reconciliation progress."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from feedsync.domain.reconciliation.events import ProgressEvent


@runtime_checkable
class ProgressNotifier(Protocol):
    """Receives structured progress events for one shop."""

    def send(self, shop: str, event: ProgressEvent) -> None: ...


__all__ = ["ProgressNotifier"]
