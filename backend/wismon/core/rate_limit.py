"""
Rate limiting utilities.

Fixed-window counters kept in process memory, keyed like
``ratelimit:{endpoint}:{ip}``. Each worker process counts on its own.
"""
import math
import time
from typing import Callable

# Expired windows are swept once the table grows past this many keys
_SWEEP_THRESHOLD = 10_000


class RateLimiter:
    """Per-client request counters for the authentication endpoints."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._windows: dict[str, tuple[float, int]] = {}

    @staticmethod
    def _key(ip: str, endpoint: str) -> str:
        return f"ratelimit:{endpoint}:{ip}"

    def _sweep(self, now: float) -> None:
        expired = [key for key, (resets_at, _) in self._windows.items() if resets_at <= now]
        for key in expired:
            del self._windows[key]

    async def check_rate_limit(
        self,
        ip: str,
        endpoint: str,
        limit: int,
        window_seconds: int,
    ) -> bool:
        """
        Count one request and decide whether it may proceed.

        The first request from a client opens a window of ``window_seconds``;
        every request inside it counts, rejected ones included.

        Args:
            ip: Client IP address
            endpoint: Endpoint identifier (e.g., "/api/auth/login")
            limit: Max requests allowed per window
            window_seconds: Window length in seconds

        Returns:
            True if request is allowed, False if rate limited
        """
        now = self._clock()
        if len(self._windows) > _SWEEP_THRESHOLD:
            self._sweep(now)

        key = self._key(ip, endpoint)
        resets_at, count = self._windows.get(key, (now + window_seconds, 0))
        if resets_at <= now:
            resets_at, count = now + window_seconds, 0

        count += 1
        self._windows[key] = (resets_at, count)
        return count <= limit

    def retry_after(self, ip: str, endpoint: str) -> int:
        """Whole seconds until the client's current window resets."""
        window = self._windows.get(self._key(ip, endpoint))
        if window is None:
            return 0
        return max(0, math.ceil(window[0] - self._clock()))
