"""In-memory fixed-window rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around shared state.
- Fixed window: up to 2x ``max_requests`` can be admitted in any
  window-length interval that straddles a reset boundary.
- ``retry_after_seconds`` is rounded up to whole seconds, so it is at most
  ``ceil(window_ms / 1000)``. For windows that are not a whole number of
  seconds (e.g. 1500 ms) it can exceed the window length.
"""

from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass
from typing import Callable

from ratekeeper.adapters.rate_limit.base import (
    AbstractRateLimiter,
    RateLimitConfig,
    RateLimitDecision,
    epoch_seconds,
)


@dataclass
class _WindowState:
    count: int
    window_reset_at: float


class InMemoryFixedWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter keeping one fixed window per key.

    A window opens on the first request seen for a key and lasts
    ``config.window_ms`` from that instant. Expired entries are treated as
    absent by :meth:`check`, so :meth:`purge_expired` is only garbage
    collection and may overlap with checks freely.

    Important:
        This limiter is per-process only. If the API runs with multiple workers
        (e.g., multiple Uvicorn/Gunicorn workers), each worker will enforce its
        own independent limits.
    """

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        """Initialize the in-memory rate limiter.

        Args:
            clock: Time source function returning UNIX time in seconds.
        """
        self._clock = clock
        self._lock = threading.RLock()
        self._state_by_key: dict[str, _WindowState] = {}
        self._checks = 0
        self._rejections = 0
        self._purged = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._state_by_key)

    def _now_ms(self) -> float:
        return self._clock() * 1000

    def _open_window(self, key: str, now_ms: float, config: RateLimitConfig) -> _WindowState:
        state = _WindowState(count=1, window_reset_at=now_ms + config.window_ms)
        self._state_by_key[key] = state
        return state

    def check(self, key: str, config: RateLimitConfig) -> RateLimitDecision:
        """Count a request for ``key`` and decide whether to admit it.

        Every call counts, including rejected ones, so a caller hammering a
        throttled route keeps the window full until it resets.

        Args:
            key: Caller+resource identity. Any string is accepted; callers
                whose origin is unknown share the ``"unknown"`` bucket.
            config: Quota to enforce.

        Returns:
            RateLimitDecision with admission decision and metadata.
        """
        now_ms = self._now_ms()

        with self._lock:
            self._checks += 1
            state = self._state_by_key.get(key)
            if state is None or state.window_reset_at <= now_ms:
                state = self._open_window(key, now_ms, config)
            else:
                state.count += 1

            remaining = max(0, config.max_requests - state.count)
            if state.count <= config.max_requests:
                return RateLimitDecision(
                    admitted=True,
                    limit=config.max_requests,
                    remaining=remaining,
                    reset_at=epoch_seconds(state.window_reset_at),
                    retry_after_seconds=None,
                    window_reset_at_ms=state.window_reset_at,
                )

            self._rejections += 1
            retry_after = int(math.ceil((state.window_reset_at - now_ms) / 1000))
            return RateLimitDecision(
                admitted=False,
                limit=config.max_requests,
                remaining=remaining,
                reset_at=epoch_seconds(state.window_reset_at),
                retry_after_seconds=retry_after,
                window_reset_at_ms=state.window_reset_at,
            )

    def purge_expired(self) -> int:
        """Remove every entry whose window has already passed.

        Returns:
            Number of entries removed (0 when nothing had expired).
        """
        now_ms = self._now_ms()

        with self._lock:
            expired_keys = [
                key
                for key, state in self._state_by_key.items()
                if state.window_reset_at <= now_ms
            ]
            for key in expired_keys:
                del self._state_by_key[key]
            self._purged += len(expired_keys)
            return len(expired_keys)

    def record_outcome(
        self,
        key: str,
        config: RateLimitConfig,
        decision: RateLimitDecision,
        *,
        succeeded: bool,
    ) -> bool:
        """Refund an admitted request when the config skips its outcome.

        The refund only applies while the entry is still in the window the
        decision was taken in. Once the window has rolled over the old count
        is gone, so there is nothing to refund.

        Args:
            key: Key the decision was taken for.
            config: Config the decision was taken under.
            decision: Decision returned by :meth:`check`.
            succeeded: Whether the downstream handler succeeded.

        Returns:
            True if the count was decremented.
        """
        if not decision.admitted:
            return False
        if succeeded and not config.skip_successful_requests:
            return False
        if not succeeded and not config.skip_failed_requests:
            return False

        with self._lock:
            state = self._state_by_key.get(key)
            if state is None or state.window_reset_at != decision.window_reset_at_ms:
                return False
            if state.count == 0:
                return False
            state.count -= 1
            return True

    def reset(self, key: str) -> None:
        with self._lock:
            self._state_by_key.pop(key, None)

    def stats(self) -> dict[str, int]:
        """Return lightweight limiter metrics without exposing keys."""
        with self._lock:
            return {
                "entries": len(self._state_by_key),
                "checks": self._checks,
                "rejections": self._rejections,
                "purged": self._purged,
            }
