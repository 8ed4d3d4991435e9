"""Retry policy for transient store failures (exponential backoff with jitter)."""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from gearlog.core.config import Settings, get_settings
from gearlog.domain.exceptions import TransientStoreException

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class StoreRetryPolicy:
    """Retries an async operation on TransientStoreException only.

    Other exceptions (not found, validation, conflict) are terminal and
    propagate on the first attempt. Delay for attempt n (1-based) is
    min(base * 2^(n-1), max) plus up to base milliseconds of jitter.
    """

    max_attempts: int = 3
    base_delay_ms: int = 100
    max_delay_ms: int = 2000

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> StoreRetryPolicy:
        s = settings or get_settings()
        return cls(
            max_attempts=s.store_retry_max_attempts,
            base_delay_ms=s.store_retry_base_delay_ms,
            max_delay_ms=s.store_retry_max_delay_ms,
        )

    def backoff_seconds(self, attempt: int) -> float:
        delay_ms = min(self.base_delay_ms * (2 ** (attempt - 1)), self.max_delay_ms)
        jitter_ms = random.uniform(0, self.base_delay_ms)
        return (delay_ms + jitter_ms) / 1000

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        operation_name: str,
    ) -> T:
        """Run operation, retrying transient store failures.

        Args:
            operation: Zero-argument coroutine factory (called once per attempt).
            operation_name: Stable identifier used in logs (e.g. "snapshot.save").

        Returns:
            The operation's result.

        Raises:
            TransientStoreException: When all attempts failed.
        """
        attempt = 1
        while True:
            try:
                return await operation()
            except TransientStoreException:
                if attempt >= self.max_attempts:
                    logger.error(
                        "%s failed after %d attempt(s); giving up",
                        operation_name,
                        attempt,
                    )
                    raise
                delay = self.backoff_seconds(attempt)
                logger.warning(
                    "%s hit a transient store error (attempt %d/%d); retrying in %.3fs",
                    operation_name,
                    attempt,
                    self.max_attempts,
                    delay,
                )
                await asyncio.sleep(delay)
                attempt += 1
