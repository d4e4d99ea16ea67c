"""
Tests for retry policies and the retry combinator.
"""

import pytest

from wismon.database.retry import (
    QUERY_RETRY_POLICY,
    STARTUP_PROBE_POLICY,
    RetryExhausted,
    RetryPolicy,
    compute_delay,
    with_retry,
)


class TestComputeDelay:
    """Tests for backoff delay computation."""

    def test_startup_backoff_without_jitter(self):
        """Exponential delays should be 1s then 3s before jitter."""
        no_jitter = lambda low, high: 0.0  # noqa: E731

        assert compute_delay(STARTUP_PROBE_POLICY, 1, rand=no_jitter) == 1.0
        assert compute_delay(STARTUP_PROBE_POLICY, 2, rand=no_jitter) == 3.0

    def test_startup_backoff_is_capped(self):
        """Delays never exceed the 9s cap, even with maximal jitter."""
        max_jitter = lambda low, high: high  # noqa: E731

        assert compute_delay(STARTUP_PROBE_POLICY, 3, rand=max_jitter) == 9.0
        assert compute_delay(STARTUP_PROBE_POLICY, 5, rand=max_jitter) == 9.0

    @pytest.mark.parametrize("attempt,low,high", [(1, 1.0, 1.2), (2, 3.0, 3.2)])
    def test_startup_jitter_bounds(self, attempt, low, high):
        """Real jitter stays within 0..200ms on top of the base delay."""
        for _ in range(50):
            delay = compute_delay(STARTUP_PROBE_POLICY, attempt)
            assert low <= delay <= high

    def test_query_backoff_is_linear(self):
        assert compute_delay(QUERY_RETRY_POLICY, 1) == 1.0
        assert compute_delay(QUERY_RETRY_POLICY, 2) == 2.0
        assert compute_delay(QUERY_RETRY_POLICY, 3) == 2.0

    def test_attempt_is_one_based(self):
        with pytest.raises(ValueError):
            compute_delay(QUERY_RETRY_POLICY, 0)


class TestWithRetry:
    """Tests for with_retry."""

    @pytest.mark.asyncio
    async def test_returns_result_and_attempt_count(self, fake_sleep):
        """Succeeding on the third attempt should report three attempts."""
        seen = []

        async def operation(attempt):
            seen.append(attempt)
            if attempt < 3:
                raise ConnectionResetError("reset")
            return "ok"

        result, attempts = await with_retry(operation, STARTUP_PROBE_POLICY, sleep=fake_sleep)

        assert result == "ok"
        assert attempts == 3
        assert seen == [1, 2, 3]
        assert len(fake_sleep.delays) == 2

    @pytest.mark.asyncio
    async def test_exhaustion_wraps_last_error(self, fake_sleep):
        errors = [RuntimeError("first"), RuntimeError("second"), RuntimeError("third")]

        async def operation(attempt):
            raise errors[attempt - 1]

        with pytest.raises(RetryExhausted) as exc_info:
            await with_retry(operation, STARTUP_PROBE_POLICY, sleep=fake_sleep)

        assert exc_info.value.attempts == 3
        assert exc_info.value.last_error is errors[2]
        # No sleep after the final attempt
        assert len(fake_sleep.delays) == 2

    @pytest.mark.asyncio
    async def test_non_retryable_error_stops_immediately(self, fake_sleep):
        calls = 0

        async def operation(attempt):
            nonlocal calls
            calls += 1
            raise ValueError("bad input")

        with pytest.raises(RetryExhausted) as exc_info:
            await with_retry(
                operation,
                QUERY_RETRY_POLICY,
                is_retryable=lambda exc: not isinstance(exc, ValueError),
                sleep=fake_sleep,
            )

        assert calls == 1
        assert exc_info.value.attempts == 1
        assert fake_sleep.delays == []

    @pytest.mark.asyncio
    async def test_on_failure_reports_delay_or_none(self, fake_sleep):
        reports = []
        policy = RetryPolicy(max_attempts=2, base_delay=0.5, max_delay=1.0, backoff="linear")

        async def operation(attempt):
            raise ConnectionResetError("reset")

        with pytest.raises(RetryExhausted):
            await with_retry(
                operation,
                policy,
                on_failure=lambda attempt, exc, delay: reports.append((attempt, delay)),
                sleep=fake_sleep,
            )

        assert reports == [(1, 0.5), (2, None)]
        assert fake_sleep.delays == [0.5]
