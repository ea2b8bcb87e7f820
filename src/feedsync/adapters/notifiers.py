"""Progress notifier adapters."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from feedsync.domain.reconciliation.events import ProgressEventType

if TYPE_CHECKING:
    from feedsync.domain.ports import ProgressNotifier
    from feedsync.domain.reconciliation.events import ProgressEvent

_LEVELS: dict[ProgressEventType, int] = {
    ProgressEventType.PROCESSING: logging.DEBUG,
    ProgressEventType.ERROR: logging.WARNING,
}


class LoggingProgressNotifier:
    """Writes one log line per event."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._log = logger or logging.getLogger("feedsync.progress")

    def send(self, shop: str, event: ProgressEvent) -> None:
        level = _LEVELS.get(event.type, logging.INFO)
        if event.type is ProgressEventType.SYNC_STARTED:
            self._log.log(level, "[%s] sync started: %d groups", shop, event.total)
        elif event.type is ProgressEventType.SYNC_COMPLETED:
            self._log.log(level, "[%s] sync completed: %s", shop, event.extra.get("stats"))
        elif event.type is ProgressEventType.ERROR:
            self._log.log(
                level,
                "[%s] %d/%d %s: %s",
                shop,
                event.processed,
                event.total,
                event.product_title,
                event.extra.get("error"),
            )
        else:
            self._log.log(
                level,
                "[%s] %d/%d %s %s",
                shop,
                event.processed,
                event.total,
                event.type.value,
                event.product_title,
            )


@dataclass(slots=True)
class RecordingNotifier:
    """Keeps every event in memory, per shop."""

    events: list[tuple[str, ProgressEvent]] = field(default_factory=list)

    def send(self, shop: str, event: ProgressEvent) -> None:
        self.events.append((shop, event))

    def of_type(self, event_type: ProgressEventType) -> list[ProgressEvent]:
        return [event for _, event in self.events if event.type is event_type]


class QueueNotifier:
    """Forwards event payloads to an :class:`asyncio.Queue` for streaming consumers."""

    def __init__(self, queue: asyncio.Queue[dict[str, object]] | None = None) -> None:
        self.queue: asyncio.Queue[dict[str, object]] = queue or asyncio.Queue()

    def send(self, shop: str, event: ProgressEvent) -> None:
        self.queue.put_nowait({"shop": shop, **event.to_payload()})


class CompositeNotifier:
    def __init__(self, *notifiers: ProgressNotifier) -> None:
        self._notifiers = notifiers

    def send(self, shop: str, event: ProgressEvent) -> None:
        for notifier in self._notifiers:
            notifier.send(shop, event)
