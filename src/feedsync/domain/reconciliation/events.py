"""Progress events emitted while a reconciliation run advances."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum


class ProgressEventType(StrEnum):
    SYNC_STARTED = "sync_started"
    PROCESSING = "processing"
    CREATED = "created"
    UPDATED = "updated"
    SKIPPED = "skipped"
    DELETED = "deleted"
    ERROR = "error"
    SYNC_COMPLETED = "sync_completed"


@dataclass(frozen=True, slots=True)
class ProgressEvent:
    type: ProgressEventType
    product_title: str = ""
    processed: int = 0
    total: int = 0
    extra: dict[str, object] = field(default_factory=dict[str, object])

    def to_payload(self) -> dict[str, object]:
        """Wire form: camelCase keys, extras merged last."""

        payload: dict[str, object] = {
            "type": self.type.value,
            "productTitle": self.product_title,
            "processed": self.processed,
            "total": self.total,
        }
        payload.update(self.extra)
        return payload
