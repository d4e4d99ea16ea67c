"""
Retry policies and a generic async retry combinator.

The same combinator drives startup probing (exponential backoff with jitter)
and query execution (linear backoff over a whitelist of transient errors).
"""
import asyncio
import logging
import random
from typing import Any, Awaitable, Callable, Literal, Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class RetryPolicy(BaseModel):
    """Retry budget and delay shape. Delays are in seconds."""
    max_attempts: int = Field(..., ge=1)
    base_delay: float = Field(..., ge=0)
    max_delay: float = Field(..., ge=0)
    backoff: Literal["exponential", "linear"] = "exponential"
    growth: float = Field(3.0, description="Exponential growth factor per attempt")
    jitter: float = Field(0.0, ge=0, description="Upper bound of uniform jitter added to each delay")

    class Config:
        frozen = True


STARTUP_PROBE_POLICY = RetryPolicy(
    max_attempts=3,
    base_delay=1.0,
    max_delay=9.0,
    backoff="exponential",
    jitter=0.2,
)

QUERY_RETRY_POLICY = RetryPolicy(
    max_attempts=2,
    base_delay=1.0,
    max_delay=2.0,
    backoff="linear",
)


def compute_delay(
    policy: RetryPolicy,
    attempt: int,
    rand: Callable[[float, float], float] = random.uniform,
) -> float:
    """
    Delay to wait after failed attempt ``attempt`` (1-based).

    exponential: min(base * growth^(attempt-1) + U(0, jitter), max_delay)
    linear:      min(base * attempt + U(0, jitter), max_delay)
    """
    if attempt < 1:
        raise ValueError("attempt is 1-based")
    if policy.backoff == "exponential":
        delay = policy.base_delay * policy.growth ** (attempt - 1)
    else:
        delay = policy.base_delay * attempt
    if policy.jitter:
        delay += rand(0, policy.jitter)
    return min(delay, policy.max_delay)


class RetryExhausted(Exception):
    """Raised when an operation failed on its last permitted attempt."""

    def __init__(self, last_error: BaseException, attempts: int):
        super().__init__(str(last_error))
        self.last_error = last_error
        self.attempts = attempts


def _always(exc: BaseException) -> bool:
    return True


async def with_retry(
    operation: Callable[[int], Awaitable[Any]],
    policy: RetryPolicy,
    is_retryable: Callable[[BaseException], bool] = _always,
    on_failure: Optional[Callable[[int, BaseException, Optional[float]], None]] = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> tuple[Any, int]:
    """
    Run ``operation(attempt)`` until it succeeds or the policy gives up.

    Attempts are strictly sequential. A non-retryable error ends the loop
    immediately.

    Args:
        operation: Coroutine factory receiving the 1-based attempt number
        policy: Retry budget and delay shape
        is_retryable: Predicate deciding whether an error earns another attempt
        on_failure: Callback (attempt, error, delay or None when giving up)
        sleep: Awaitable sleep, injectable for tests

    Returns:
        Tuple of (operation result, attempts used)

    Raises:
        RetryExhausted: Wrapping the last error and the attempts made
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            return await operation(attempt), attempt
        except Exception as e:
            retry = attempt < policy.max_attempts and is_retryable(e)
            delay = compute_delay(policy, attempt) if retry else None
            if on_failure is not None:
                on_failure(attempt, e, delay)
            if not retry:
                raise RetryExhausted(e, attempt) from e
            await sleep(delay)
