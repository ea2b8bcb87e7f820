"""Port for the local record of what was pushed to the remote catalog."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from feedsync.domain.model import ProductMapping


@runtime_checkable
class TrackingStore(Protocol):
    """Mappings between variant groups and remote products for one provider."""

    def get(self, group_key: str) -> ProductMapping | None: ...

    def active_mappings(self) -> list[ProductMapping]: ...

    def upsert(self, mapping: ProductMapping) -> None: ...

    def mark_inactive(self, mapping: ProductMapping) -> None: ...


__all__ = ["TrackingStore"]
