"""Sliding-window rate limiting for outbound requests."""

from __future__ import annotations

import asyncio
import time
from collections import deque
from collections.abc import Awaitable, Callable
from typing import Final

DEFAULT_BUFFER_SECONDS: Final[float] = 0.1


class SlidingWindowRateLimiter:
    """Admit at most ``max_requests`` per ``window_seconds``.

    When the window is full the caller sleeps until the oldest request leaves
    the window (plus a small buffer) instead of polling.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        *,
        buffer_seconds: float = DEFAULT_BUFFER_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if max_requests <= 0:
            raise ValueError("max_requests must be positive")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.buffer_seconds = buffer_seconds
        self._clock = clock
        self._sleep = sleep
        self._timestamps: deque[float] = deque()
        self._lock = asyncio.Lock()

    @classmethod
    def per_minute(cls, requests_per_minute: int) -> SlidingWindowRateLimiter:
        return cls(requests_per_minute, 60.0)

    def _prune(self, now: float) -> None:
        while self._timestamps and now - self._timestamps[0] >= self.window_seconds:
            self._timestamps.popleft()

    def wait_time(self) -> float:
        """Seconds until the next request would be admitted (0 when free)."""

        now = self._clock()
        self._prune(now)
        if len(self._timestamps) < self.max_requests:
            return 0.0
        oldest = self._timestamps[0]
        return self.window_seconds - (now - oldest) + self.buffer_seconds

    async def acquire(self) -> None:
        async with self._lock:
            while True:
                delay = self.wait_time()
                if delay <= 0:
                    self._timestamps.append(self._clock())
                    return
                await self._sleep(delay)
