"""Retry with exponential backoff."""

from __future__ import annotations

import pytest

from src.shared.errors import ConflictError, StoreTimeoutError, UnavailableError
from src.shared.retry import NO_RETRY, RetryExhaustedError, RetryPolicy, retry_with_backoff

_FAST = RetryPolicy(max_retries=3, base_delay=0.0)


class Flaky:
    """Fails ``failures`` times with ``exc`` before returning ``value``."""

    def __init__(self, failures: int, exc: Exception, value: str = "ok") -> None:
        self.failures = failures
        self.exc = exc
        self.value = value
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise self.exc
        return self.value


@pytest.mark.unit
class TestRetryPolicy:
    def test_default_schedule(self) -> None:
        policy = RetryPolicy()
        delays = [policy.delay_for_attempt(i) for i in range(3)]
        assert delays == pytest.approx([0.1, 0.5, 2.0])

    def test_delay_capped(self) -> None:
        assert RetryPolicy().delay_for_attempt(10) == 2.0


@pytest.mark.unit
class TestRetryWithBackoff:
    async def test_recovers_from_transient_outage(self) -> None:
        fn = Flaky(2, StoreTimeoutError("identity_store"))
        assert await retry_with_backoff(fn, policy=_FAST) == "ok"
        assert fn.calls == 3

    async def test_exhausted_is_still_unavailable(self) -> None:
        fn = Flaky(10, UnavailableError("label_store"))
        with pytest.raises(UnavailableError) as exc_info:
            await retry_with_backoff(fn, policy=_FAST)
        assert isinstance(exc_info.value, RetryExhaustedError)
        assert exc_info.value.attempts == 4
        assert exc_info.value.port_name == "label_store"

    async def test_non_retriable_propagates_immediately(self) -> None:
        fn = Flaky(1, ConflictError("taken"))
        with pytest.raises(ConflictError):
            await retry_with_backoff(fn, policy=_FAST)
        assert fn.calls == 1

    async def test_no_retry_policy(self) -> None:
        fn = Flaky(1, UnavailableError("label_store"))
        with pytest.raises(RetryExhaustedError):
            await retry_with_backoff(fn, policy=NO_RETRY)
        assert fn.calls == 1
