from __future__ import annotations

import asyncio
import logging

import pytest

from feedsync.adapters.notifiers import (
    CompositeNotifier,
    LoggingProgressNotifier,
    QueueNotifier,
    RecordingNotifier,
)
from feedsync.domain.ports import ProgressNotifier
from feedsync.domain.reconciliation import ProgressEvent, ProgressEventType

SHOP = "acme-outlet.myshopify.com"


def test_notifiers_satisfy_the_port() -> None:
    for notifier in (LoggingProgressNotifier(), RecordingNotifier(), QueueNotifier(), CompositeNotifier()):
        assert isinstance(notifier, ProgressNotifier)


def test_queue_notifier_forwards_payloads() -> None:
    async def run() -> dict[str, object]:
        notifier = QueueNotifier()
        notifier.send(SHOP, ProgressEvent(ProgressEventType.CREATED, "Mouse", 1, 2, {"productId": "p1"}))
        return await notifier.queue.get()

    assert asyncio.run(run()) == {
        "shop": SHOP,
        "type": "created",
        "productTitle": "Mouse",
        "processed": 1,
        "total": 2,
        "productId": "p1",
    }


def test_composite_notifier_fans_out() -> None:
    first, second = RecordingNotifier(), RecordingNotifier()
    event = ProgressEvent(ProgressEventType.SYNC_STARTED, total=4)

    CompositeNotifier(first, second).send(SHOP, event)

    assert first.events == second.events == [(SHOP, event)]


def test_logging_notifier_writes_errors_as_warnings(caplog: pytest.LogCaptureFixture) -> None:
    notifier = LoggingProgressNotifier(logging.getLogger("tests.progress"))

    with caplog.at_level(logging.DEBUG, logger="tests.progress"):
        notifier.send(SHOP, ProgressEvent(ProgressEventType.ERROR, "Mouse", 1, 3, {"error": "Invalid price"}))
        notifier.send(SHOP, ProgressEvent(ProgressEventType.CREATED, "Keyboard", 2, 3))

    assert [record.levelno for record in caplog.records] == [logging.WARNING, logging.INFO]
    assert "Invalid price" in caplog.records[0].getMessage()
    assert "created Keyboard" in caplog.records[1].getMessage()
