"""Capped exponential backoff for remote calls."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from feedsync.domain.errors import TransportError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from feedsync.config import SyncConfig

log = getLogger(__name__)

type Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True, slots=True)
class BackoffPolicy:
    attempts: int = 3
    base_delay: float = 0.5
    max_delay: float = 8.0
    retry_on: tuple[type[BaseException], ...] = (TransportError,)

    @classmethod
    def from_config(cls, config: SyncConfig) -> BackoffPolicy:
        return cls(
            attempts=config.retry_attempts,
            base_delay=config.retry_base_delay,
            max_delay=config.max_backoff,
        )

    def delay_for(self, attempt: int) -> float:
        """Delay after failed ``attempt`` (1-based): ``base * 2**(attempt-1)``, capped."""

        return min(self.base_delay * 2 ** (attempt - 1), self.max_delay)


async def retry_async[T](
    operation: Callable[[], Awaitable[T]],
    *,
    policy: BackoffPolicy,
    sleep: Sleep = asyncio.sleep,
    label: str = "remote call",
) -> T:
    """Run ``operation`` until it succeeds or ``policy.attempts`` is exhausted.

    Only exceptions listed in ``policy.retry_on`` are retried; the last one is
    re-raised to the caller.
    """

    attempt = 1
    while True:
        try:
            return await operation()
        except policy.retry_on as exc:
            if attempt >= policy.attempts:
                log.warning("%s failed after %d attempts: %s", label, attempt, exc)
                raise
            delay = policy.delay_for(attempt)
            log.info(
                "%s failed (attempt %d/%d), retrying in %.2fs: %s",
                label,
                attempt,
                policy.attempts,
                delay,
                exc,
            )
            await sleep(delay)
            attempt += 1
