from __future__ import annotations

from feedsync.domain.model import SyncStatus
from feedsync.domain.reconciliation import PipelineStats, ProgressEvent, ProgressEventType


def test_event_payload_uses_wire_keys() -> None:
    event = ProgressEvent(ProgressEventType.CREATED, "Mouse", 3, 10, {"productId": "gid://shopify/Product/1"})

    assert event.to_payload() == {
        "type": "created",
        "productTitle": "Mouse",
        "processed": 3,
        "total": 10,
        "productId": "gid://shopify/Product/1",
    }


def test_status_reflects_errors_and_successes() -> None:
    stats = PipelineStats()
    assert stats.status() is SyncStatus.SUCCESS

    stats.record_error("Mouse", "boom")
    assert stats.status() is SyncStatus.ERROR

    stats.skipped += 1
    assert stats.status() is SyncStatus.PARTIAL
    assert stats.errored == 1
    assert stats.to_payload()["errorDetails"] == [{"title": "Mouse", "message": "boom"}]
