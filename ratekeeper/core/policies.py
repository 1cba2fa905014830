"""Named rate limit policies for route classes.

Routes pick a policy by name (``rate_limit("financial_write")``) instead of
spelling out quotas inline, so every endpoint of a class shares one quota
definition.

Every policy is enforced with the fixed-window limiter, including
``read_operations`` and ``global_per_ip``, which used to run on a sliding
window. Across a window boundary they can admit up to twice their quota.

``global_per_ip`` sets ``per_route=False``: one counter per caller covers
every route that uses it.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

from ratekeeper.adapters.rate_limit.base import RateLimitConfig
from ratekeeper.core.errors import ValidationAppError

MINUTE_MS = 60 * 1000

_POLICIES = {
    config.name: config
    for config in (
        RateLimitConfig(
            name="api",
            window_ms=15 * MINUTE_MS,
            max_requests=100,
            message="Too many API requests from this IP, please try again later.",
        ),
        RateLimitConfig(
            name="auth",
            window_ms=15 * MINUTE_MS,
            max_requests=5,
            message="Too many authentication attempts, please try again later.",
        ),
        RateLimitConfig(
            name="strict",
            window_ms=MINUTE_MS,
            max_requests=10,
            message="Rate limit exceeded for sensitive endpoint.",
        ),
        RateLimitConfig(
            name="read_operations",
            window_ms=MINUTE_MS,
            max_requests=100,
            message="Too many requests. Please slow down.",
        ),
        RateLimitConfig(
            name="write_operations",
            window_ms=MINUTE_MS,
            max_requests=30,
            message="Too many write operations. Please wait before retrying.",
        ),
        RateLimitConfig(
            name="financial_read",
            window_ms=MINUTE_MS,
            max_requests=60,
            message="Too many financial queries. Please wait before retrying.",
        ),
        RateLimitConfig(
            name="financial_write",
            window_ms=MINUTE_MS,
            max_requests=20,
            message="Too many financial operations. Please wait before making changes.",
        ),
        RateLimitConfig(
            name="admin",
            window_ms=MINUTE_MS,
            max_requests=10,
            message="Too many administrative operations. Please wait before retrying.",
        ),
        RateLimitConfig(
            name="global_per_ip",
            window_ms=MINUTE_MS,
            max_requests=10_000,
            message="Too many requests from this IP, please try again later.",
            per_route=False,
        ),
    )
}

POLICIES: Mapping[str, RateLimitConfig] = MappingProxyType(_POLICIES)


def get_policy(name: str) -> RateLimitConfig:
    """Look up a policy by name.

    Raises:
        ValidationAppError: If no policy has that name.
    """
    try:
        return POLICIES[name]
    except KeyError:
        raise ValidationAppError(
            code="unknown_rate_limit_policy",
            message=f"Unknown rate limit policy: {name}",
            details={"hint": f"Known policies: {', '.join(sorted(POLICIES))}"},
        ) from None
