from __future__ import annotations

import asyncio

import pytest

from feedsync.config import SyncConfig
from feedsync.domain.errors import MutationError, TransportError
from feedsync.domain.reconciliation import BackoffPolicy, retry_async
from tests.helpers.timing import RecordingSleep


class _Flaky:
    def __init__(self, failures: int, error: Exception | None = None) -> None:
        self.failures = failures
        self.error = error or TransportError("connection reset")
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return "ok"


def test_delay_doubles_and_is_capped() -> None:
    policy = BackoffPolicy(attempts=6, base_delay=0.5, max_delay=3.0)

    assert [policy.delay_for(attempt) for attempt in range(1, 6)] == [0.5, 1.0, 2.0, 3.0, 3.0]


def test_policy_from_config() -> None:
    config = SyncConfig(retry_attempts=5, retry_base_delay=0.25, max_backoff=4.0)

    policy = BackoffPolicy.from_config(config)

    assert (policy.attempts, policy.base_delay, policy.max_delay) == (5, 0.25, 4.0)


def test_transient_failures_are_retried_with_backoff() -> None:
    sleep = RecordingSleep()
    operation = _Flaky(failures=2)
    policy = BackoffPolicy(attempts=3, base_delay=0.5)

    result = asyncio.run(retry_async(operation, policy=policy, sleep=sleep))

    assert result == "ok"
    assert operation.calls == 3
    assert sleep.delays == [0.5, 1.0]
    assert sleep.total >= policy.base_delay * (1 + 2)


def test_last_error_is_raised_when_attempts_run_out() -> None:
    sleep = RecordingSleep()
    operation = _Flaky(failures=5)

    with pytest.raises(TransportError, match="connection reset"):
        asyncio.run(retry_async(operation, policy=BackoffPolicy(attempts=3), sleep=sleep))

    assert operation.calls == 3
    assert len(sleep.delays) == 2


def test_non_retryable_errors_propagate_immediately() -> None:
    sleep = RecordingSleep()
    operation = _Flaky(failures=1, error=MutationError("title: can't be blank"))

    with pytest.raises(MutationError):
        asyncio.run(retry_async(operation, policy=BackoffPolicy(attempts=3), sleep=sleep))

    assert operation.calls == 1
    assert sleep.delays == []
