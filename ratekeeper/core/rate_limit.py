"""Rate limiting dependency for FastAPI routes.

This module wires the rate limiting adapter into the HTTP layer.

Design goals:
- Minimal coupling: routes depend on ``rate_limit("<policy>")`` only.
- Swap-friendly: the limiter lives on ``app.state`` behind
  ``AbstractRateLimiter`` and can be replaced (e.g., Redis).
- Honest accounting: skip flags are applied after the handler finishes,
  by ``rate_limit_outcome_middleware``, once the outcome is known.

Keying strategy:
- ``{policy}:{origin}:{path}``, origin taken from the socket peer (or proxy
  headers when trusted), optionally fingerprinted with the user agent.
- Policies with ``per_route=False`` use ``*`` as the path, so one counter
  per caller covers every route sharing the policy.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

from fastapi import Request, Response

from ratekeeper.adapters.rate_limit.base import (
    AbstractRateLimiter,
    RateLimitConfig,
    RateLimitDecision,
)
from ratekeeper.core.client_identity import (
    ALL_ROUTES,
    build_rate_limit_key,
    fingerprint_user_agent,
    get_client_origin,
    hash_key_for_logging,
)
from ratekeeper.core.config import settings
from ratekeeper.core.errors import RateLimitAppError
from ratekeeper.core.policies import get_policy

logger = logging.getLogger(__name__)

_PENDING_STATE_ATTR = "rate_limit_pending"


@dataclass(frozen=True)
class _PendingOutcome:
    key: str
    config: RateLimitConfig
    decision: RateLimitDecision


def get_rate_limiter(request: Request) -> AbstractRateLimiter:
    """Return the limiter owned by the running application.

    Raises:
        RuntimeError: If the app was built without a limiter.
    """

    limiter = getattr(request.app.state, "rate_limiter", None)
    if limiter is None:
        raise RuntimeError("rate limiter is not configured on app.state")
    return limiter


def _client_identity(request: Request, origin: str) -> str:
    if settings.rate_limit.include_user_agent:
        return fingerprint_user_agent(origin, request.headers.get("user-agent"))
    return origin


def _is_exempt(request: Request, origin: str) -> bool:
    rl = settings.rate_limit
    return request.url.path in rl.exempt_path_set or origin in rl.exempt_client_set


def rate_limit(
    policy: str | RateLimitConfig,
) -> Callable[[Request, Response], Awaitable[RateLimitDecision | None]]:
    """Build a FastAPI dependency enforcing a rate limit policy.

    Usage:
        @router.post("/payments", dependencies=[Depends(rate_limit("financial_write"))])

    Args:
        policy: Policy name from ``ratekeeper.core.policies`` or an explicit config.

    Returns:
        Dependency returning the decision (None when the request was exempt).
    """

    config = policy if isinstance(policy, RateLimitConfig) else get_policy(policy)

    async def enforce_rate_limit(
        request: Request, response: Response
    ) -> RateLimitDecision | None:
        """Count the request and raise 429 when the caller is over quota.

        Raises:
            RateLimitAppError: When the quota for this window is exhausted.
        """

        if not settings.rate_limit.enabled:
            return None

        origin = get_client_origin(
            request, trust_forwarded_for=settings.rate_limit.trust_forwarded_for
        )
        if _is_exempt(request, origin):
            logger.debug(
                "rate_limit.exempt",
                extra={"policy": config.name, "path": request.url.path},
            )
            return None

        key = build_rate_limit_key(
            _client_identity(request, origin),
            request.url.path if config.per_route else ALL_ROUTES,
            policy_name=config.name,
        )
        limiter = get_rate_limiter(request)
        decision = limiter.check(key, config)
        log_fields = {
            "policy": config.name,
            "key_hash": hash_key_for_logging(key),
            "limit": decision.limit,
            "remaining": decision.remaining,
            "window_s": config.window_seconds,
        }

        if decision.admitted:
            logger.info("rate_limit.allowed", extra=log_fields)
            if settings.rate_limit.include_headers:
                response.headers.update(decision.headers())
            if config.skip_successful_requests or config.skip_failed_requests:
                pending = getattr(request.state, _PENDING_STATE_ATTR, None)
                if pending is None:
                    pending = []
                    setattr(request.state, _PENDING_STATE_ATTR, pending)
                pending.append(_PendingOutcome(key=key, config=config, decision=decision))
            return decision

        retry_after = decision.retry_after_seconds or 0
        logger.warning(
            "rate_limit.exceeded",
            extra={**log_fields, "retry_after_s": retry_after},
        )
        raise RateLimitAppError(
            code="rate_limit_exceeded",
            message=config.message,
            details={
                "policy": config.name,
                "limit": decision.limit,
                "remaining": decision.remaining,
                "reset_at": decision.reset_at,
                "retry_after": retry_after,
            },
            headers=decision.headers() if settings.rate_limit.include_headers else {},
        )

    return enforce_rate_limit


def _settle_pending(request: Request, *, succeeded: bool) -> None:
    pending: list[_PendingOutcome] | None = getattr(request.state, _PENDING_STATE_ATTR, None)
    if not pending:
        return

    limiter = get_rate_limiter(request)
    for item in pending:
        refunded = limiter.record_outcome(
            item.key, item.config, item.decision, succeeded=succeeded
        )
        if refunded:
            logger.debug(
                "rate_limit.refunded",
                extra={
                    "policy": item.config.name,
                    "key_hash": hash_key_for_logging(item.key),
                    "succeeded": succeeded,
                },
            )
    pending.clear()


async def rate_limit_outcome_middleware(request: Request, call_next) -> Response:
    """Report the outcome of admitted requests back to the limiter.

    A response with status >= 400, or a handler that raised, counts as a
    failed request.

    Usage:
        app.middleware("http")(rate_limit_outcome_middleware)
    """

    try:
        response: Response = await call_next(request)
    except Exception:
        _settle_pending(request, succeeded=False)
        raise

    _settle_pending(request, succeeded=response.status_code < 400)
    return response
