"""Rate limiter interfaces.

The HTTP layer should depend on this abstraction (not the concrete
implementation) so the counter store can be swapped later (e.g., Redis for
multi-instance deployments) with minimal changes.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitConfig:
    """Quota applied to a protected route or route class.

    Attributes:
        window_ms: Length of the fixed window in milliseconds.
        max_requests: Admitted requests allowed per key per window.
        message: Human-readable text returned to throttled callers.
        skip_successful_requests: Refund admitted requests that succeed.
        skip_failed_requests: Refund admitted requests that fail.
        name: Policy name, used to namespace keys and in logs.
        per_route: Count each route separately; when False one counter per
            caller is shared by every route using the policy.
    """

    window_ms: int
    max_requests: int
    message: str = "Too many requests"
    skip_successful_requests: bool = False
    skip_failed_requests: bool = False
    name: str = "default"
    per_route: bool = True

    def __post_init__(self) -> None:
        if self.window_ms < 1:
            raise ValueError("window_ms must be >= 1")
        if self.max_requests < 1:
            raise ValueError("max_requests must be >= 1")

    @property
    def window_seconds(self) -> float:
        return self.window_ms / 1000


@dataclass(frozen=True)
class RateLimitDecision:
    """Result of a rate limit check.

    Attributes:
        admitted: Whether the request is allowed to proceed.
        limit: Max requests per window (echoed from the config).
        remaining: Remaining requests in the current window (0 when rejected).
        reset_at: UNIX epoch seconds when the current window resets.
        retry_after_seconds: Suggested wait time in seconds when rejected.
        window_reset_at_ms: Exact reset instant (epoch ms) of the window the
            decision was taken in.
    """

    admitted: bool
    limit: int
    remaining: int
    reset_at: int
    retry_after_seconds: int | None
    window_reset_at_ms: float

    def headers(self) -> dict[str, str]:
        """Standard throttling headers for this decision."""
        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset_at),
        }
        if self.retry_after_seconds is not None:
            headers["Retry-After"] = str(self.retry_after_seconds)
        return headers


def epoch_seconds(timestamp_ms: float) -> int:
    """Convert an epoch-millisecond instant to whole seconds, rounding up."""
    return int(math.ceil(timestamp_ms / 1000))


class AbstractRateLimiter(ABC):
    """Interface for rate limiters."""

    @abstractmethod
    def check(self, key: str, config: RateLimitConfig) -> RateLimitDecision:
        """Count a request for ``key`` and decide whether to admit it.

        Args:
            key: Caller+resource identity (e.g., client address + route path).
            config: Quota to enforce.

        Returns:
            RateLimitDecision describing whether it was admitted.
        """
        raise NotImplementedError

    @abstractmethod
    def purge_expired(self) -> int:
        """Remove entries whose window has already passed.

        Returns:
            Number of entries removed.
        """
        raise NotImplementedError

    @abstractmethod
    def record_outcome(
        self,
        key: str,
        config: RateLimitConfig,
        decision: RateLimitDecision,
        *,
        succeeded: bool,
    ) -> bool:
        """Report how an admitted request ended so skip flags can apply.

        Returns:
            True if the request was refunded from the window count.
        """
        raise NotImplementedError

    @abstractmethod
    def reset(self, key: str) -> None:
        """Forget any state held for ``key``."""
        raise NotImplementedError

    @abstractmethod
    def stats(self) -> dict[str, int]:
        """Return lightweight counters without exposing keys."""
        raise NotImplementedError
