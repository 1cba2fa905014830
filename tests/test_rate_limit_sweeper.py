"""Tests for the background sweep of expired rate limit entries."""

import asyncio
from unittest.mock import MagicMock, Mock

import pytest

from ratekeeper.adapters.rate_limit.base import AbstractRateLimiter, RateLimitConfig
from ratekeeper.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from ratekeeper.adapters.rate_limit.sweeper import RateLimitSweeper

ONE_SECOND = RateLimitConfig(window_ms=1_000, max_requests=1)


async def _wait_until(predicate, *, attempts: int = 200, delay: float = 0.01) -> bool:
    for _ in range(attempts):
        if predicate():
            return True
        await asyncio.sleep(delay)
    return predicate()


def test_sweep_once_returns_removed_count() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemoryFixedWindowRateLimiter(clock=clock)
    limiter.check("a", ONE_SECOND)
    limiter.check("b", ONE_SECOND)
    sweeper = RateLimitSweeper(limiter)

    assert sweeper.sweep_once() == 0

    clock.return_value = 1001.0
    assert sweeper.sweep_once() == 2
    assert sweeper.sweep_once() == 0


@pytest.mark.parametrize("interval", [0, -1.0])
def test_rejects_non_positive_interval(interval: float) -> None:
    with pytest.raises(ValueError):
        RateLimitSweeper(InMemoryFixedWindowRateLimiter(), interval_seconds=interval)


@pytest.mark.asyncio
async def test_running_sweeper_purges_expired_entries() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemoryFixedWindowRateLimiter(clock=clock)
    limiter.check("expired", ONE_SECOND)
    clock.return_value = 1005.0
    limiter.check("live", RateLimitConfig(window_ms=60_000, max_requests=1))

    sweeper = RateLimitSweeper(limiter, interval_seconds=0.01)
    sweeper.start()
    try:
        assert await _wait_until(lambda: len(limiter) == 1)
    finally:
        await sweeper.stop()

    assert limiter.stats()["purged"] == 1


@pytest.mark.asyncio
async def test_start_is_idempotent_and_stop_cancels() -> None:
    sweeper = RateLimitSweeper(InMemoryFixedWindowRateLimiter(), interval_seconds=60)

    sweeper.start()
    first_task = sweeper._task
    sweeper.start()

    assert sweeper._task is first_task
    assert sweeper.running is True

    await sweeper.stop()

    assert sweeper.running is False
    assert first_task.cancelled()


@pytest.mark.asyncio
async def test_stop_without_start_is_noop() -> None:
    sweeper = RateLimitSweeper(InMemoryFixedWindowRateLimiter())

    await sweeper.stop()

    assert sweeper.running is False


@pytest.mark.asyncio
async def test_failing_purge_does_not_stop_the_loop() -> None:
    limiter = MagicMock(spec=AbstractRateLimiter)
    limiter.purge_expired.side_effect = RuntimeError("boom")

    sweeper = RateLimitSweeper(limiter, interval_seconds=0.01)
    sweeper.start()
    try:
        assert await _wait_until(lambda: limiter.purge_expired.call_count >= 2)
        assert sweeper.running is True
    finally:
        await sweeper.stop()
