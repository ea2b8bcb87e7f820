"""Per-run counters."""

from __future__ import annotations

from dataclasses import dataclass, field

from feedsync.domain.model import SyncStatus


@dataclass(frozen=True, slots=True)
class GroupError:
    title: str
    message: str


@dataclass(slots=True)
class PipelineStats:
    """Counters shared by the group tasks of one run.

    All tasks run on a single event loop and only touch the counters between
    awaits, so plain increments are safe.
    """

    processed: int = 0
    created: int = 0
    updated: int = 0
    skipped: int = 0
    deleted: int = 0
    errored: int = 0
    variants_created: int = 0
    variants_updated: int = 0
    errors: list[GroupError] = field(default_factory=list[GroupError])

    def record_error(self, title: str, message: str) -> None:
        self.errored += 1
        self.errors.append(GroupError(title=title, message=message))

    @property
    def succeeded(self) -> int:
        return self.created + self.updated + self.skipped + self.deleted

    def status(self) -> SyncStatus:
        """``error`` when nothing succeeded despite errors, ``partial`` for mixed runs."""

        if not self.errored:
            return SyncStatus.SUCCESS
        if self.succeeded:
            return SyncStatus.PARTIAL
        return SyncStatus.ERROR

    def to_payload(self) -> dict[str, object]:
        return {
            "processed": self.processed,
            "created": self.created,
            "updated": self.updated,
            "skipped": self.skipped,
            "deleted": self.deleted,
            "errors": self.errored,
            "variantsCreated": self.variants_created,
            "variantsUpdated": self.variants_updated,
            "errorDetails": [{"title": e.title, "message": e.message} for e in self.errors],
        }
