from __future__ import annotations

import asyncio

import pytest

from prospectminer.domain.ratelimit import SlidingWindowRateLimiter


class _FakeTime:
    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def clock(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def test_admits_up_to_limit_without_waiting() -> None:
    fake = _FakeTime()
    limiter = SlidingWindowRateLimiter(3, 60.0, clock=fake.clock, sleep=fake.sleep)

    async def scenario() -> None:
        for _ in range(3):
            await limiter.acquire()

    asyncio.run(scenario())

    assert fake.sleeps == []


def test_waits_for_oldest_request_to_leave_window() -> None:
    fake = _FakeTime()
    limiter = SlidingWindowRateLimiter(
        2, 10.0, buffer_seconds=0.5, clock=fake.clock, sleep=fake.sleep
    )

    async def scenario() -> None:
        await limiter.acquire()
        fake.now = 4.0
        await limiter.acquire()
        await limiter.acquire()

    asyncio.run(scenario())

    assert fake.sleeps == [pytest.approx(6.5)]


def test_wait_time_reports_zero_when_free() -> None:
    limiter = SlidingWindowRateLimiter.per_minute(5)

    assert limiter.wait_time() == 0.0
    assert limiter.window_seconds == 60.0


@pytest.mark.parametrize(("requests", "window"), [(0, 60.0), (5, 0.0)])
def test_rejects_invalid_configuration(requests: int, window: float) -> None:
    with pytest.raises(ValueError, match="must be positive"):
        SlidingWindowRateLimiter(requests, window)
