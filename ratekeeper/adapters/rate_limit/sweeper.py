"""Background sweep of expired rate limit entries.

The sweep is garbage collection only: limiters treat an expired entry as
absent, so a slow or stopped sweeper never changes admission decisions.
"""

from __future__ import annotations

import asyncio
import logging

from ratekeeper.adapters.rate_limit.base import AbstractRateLimiter

logger = logging.getLogger(__name__)


class RateLimitSweeper:
    """Owns the asyncio task that periodically calls ``purge_expired``.

    Attributes:
        interval_seconds: Delay between two sweeps.
    """

    def __init__(self, limiter: AbstractRateLimiter, *, interval_seconds: float = 60.0) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")

        self._limiter = limiter
        self.interval_seconds = interval_seconds
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Schedule the sweep loop on the running event loop (idempotent)."""

        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(
            self._run(), name="rate-limit-sweeper"
        )
        logger.info(
            "rate_limit.sweeper_started",
            extra={"interval_s": self.interval_seconds},
        )

    async def stop(self) -> None:
        """Cancel the sweep loop and wait for it to finish."""

        task = self._task
        self._task = None
        if task is None:
            return

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("rate_limit.sweeper_stopped")

    def sweep_once(self) -> int:
        """Run a single purge and log the outcome.

        Returns:
            Number of entries removed.
        """

        removed = self._limiter.purge_expired()
        level = logging.INFO if removed else logging.DEBUG
        logger.log(
            level,
            "rate_limit.sweep",
            extra={"removed": removed, "entries": self._limiter.stats()["entries"]},
        )
        return removed

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                self.sweep_once()
            except Exception:
                logger.exception("rate_limit.sweep_failed")
