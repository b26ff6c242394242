"""Retry with exponential backoff for store calls.

- Only UnavailableError (and its StoreTimeoutError subclass) is retried;
  NotFound, PermissionDenied, Conflict and Validation propagate at once.
- Default schedule: 100ms -> 500ms -> 2000ms (capped), 3 retries.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeVar

from src.shared.errors import UnavailableError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

T = TypeVar("T")

logger = logging.getLogger(__name__)

_DEFAULT_RETRIABLE: tuple[type[Exception], ...] = (UnavailableError,)


class RetryExhaustedError(UnavailableError):
    """All attempts failed with a retriable error.

    Still an UnavailableError, so callers that branch on the taxonomy see
    the same outcome as a single failed attempt.
    """

    def __init__(self, attempts: int, last_error: Exception) -> None:
        port_name = getattr(last_error, "port_name", "unknown")
        super().__init__(port_name, f"Retry exhausted after {attempts} attempts: {last_error}")
        self.attempts = attempts
        self.last_error = last_error


@dataclass(frozen=True)
class RetryPolicy:
    """Configuration for retry behavior."""

    max_retries: int = 3
    base_delay: float = 0.1
    multiplier: float = 5.0
    max_delay: float = 2.0

    def delay_for_attempt(self, attempt: int) -> float:
        """Delay before retry ``attempt`` (0-indexed)."""
        delay = self.base_delay * (self.multiplier**attempt)
        return min(delay, self.max_delay)


NO_RETRY = RetryPolicy(max_retries=0)


async def retry_with_backoff(  # noqa: UP047
    fn: Callable[[], Awaitable[T]],
    *,
    policy: RetryPolicy | None = None,
    retriable_exceptions: tuple[type[Exception], ...] = _DEFAULT_RETRIABLE,
) -> T:
    """Execute an async callable with retry and exponential backoff.

    Args:
        fn: Async callable (no arguments) to execute.
        policy: Retry policy configuration.
        retriable_exceptions: Exception types that trigger a retry.

    Raises:
        RetryExhaustedError: If all retries are exhausted.
    """
    p = policy or RetryPolicy()
    last_error: Exception | None = None

    for attempt in range(1 + p.max_retries):
        try:
            return await fn()
        except retriable_exceptions as exc:
            last_error = exc
            if attempt < p.max_retries:
                delay = p.delay_for_attempt(attempt)
                logger.debug("Retriable failure (attempt %d), sleeping %.3fs: %s", attempt + 1, delay, exc)
                await asyncio.sleep(delay)

    assert last_error is not None
    raise RetryExhaustedError(attempts=1 + p.max_retries, last_error=last_error)
