"""Sliding-window rate limiter for outbound RPC calls."""

import time
from collections import deque
from collections.abc import Callable
from datetime import UTC, datetime

from blockpool_client.core.models import RateLimitStatus


class SlidingWindowRateLimiter:
    """
    Counts admitted requests inside a moving time window.

    Callers check ``can_make_request()`` and call ``record_request()`` only
    once the request is actually admitted, with no ``await`` in between.

    Parameters
    ----------
    max_requests : int
        Admission ceiling per window
    window_ms : int
        Window length in milliseconds
    clock : Callable[[], float]
        Time source in seconds (injectable for tests)

    """

    def __init__(
        self,
        max_requests: int = 120,
        window_ms: int = 60_000,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if max_requests <= 0:
            msg = f"max_requests must be positive, got {max_requests}"
            raise ValueError(msg)
        if window_ms <= 0:
            msg = f"window_ms must be positive, got {window_ms}"
            raise ValueError(msg)
        self.max_requests = max_requests
        self.window_ms = window_ms
        self._clock = clock
        self._requests: deque[float] = deque()

    def _purge(self, now: float) -> None:
        window = self.window_ms / 1000
        while self._requests and now - self._requests[0] >= window:
            self._requests.popleft()

    def can_make_request(self) -> bool:
        """True iff another request fits in the current window."""
        self._purge(self._clock())
        return len(self._requests) < self.max_requests

    def record_request(self) -> None:
        """Record an admitted request at the current time."""
        self._requests.append(self._clock())

    def status(self) -> RateLimitStatus:
        """
        Remaining capacity and when the next slot frees up.

        Returns
        -------
        RateLimitStatus
            ``reset_time`` is the oldest request plus the window, or now when
            the window is empty

        """
        now = self._clock()
        self._purge(now)
        remaining = max(0, self.max_requests - len(self._requests))
        reset_at = self._requests[0] + self.window_ms / 1000 if self._requests else now
        return RateLimitStatus(remaining=remaining, reset_time=datetime.fromtimestamp(reset_at, UTC))

    def reset(self) -> None:
        """Forget all recorded requests."""
        self._requests.clear()
