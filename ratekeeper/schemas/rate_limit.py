"""Pydantic schemas for rate limit inspection endpoints."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field

from ratekeeper.adapters.rate_limit.base import RateLimitConfig, RateLimitDecision


class RateLimitStatusResponse(BaseModel):
    """Quota state of the calling client after this request was counted."""

    enforced: bool = Field(
        ..., description="False when the caller is exempt or rate limiting is disabled."
    )
    policy: str = Field(..., description="Name of the policy applied to this route.")
    limit: int | None = Field(
        default=None, description="Maximum admitted requests per window."
    )
    remaining: int | None = Field(
        default=None, description="Requests left in the current window."
    )
    reset_at: int | None = Field(
        default=None, description="UNIX epoch seconds when the current window resets."
    )

    @classmethod
    def from_decision(
        cls, policy: str, decision: RateLimitDecision | None
    ) -> "RateLimitStatusResponse":
        if decision is None:
            return cls(enforced=False, policy=policy)
        return cls(
            enforced=True,
            policy=policy,
            limit=decision.limit,
            remaining=decision.remaining,
            reset_at=decision.reset_at,
        )


class PolicyResponse(BaseModel):
    """Public description of a rate limit policy."""

    name: str
    window_seconds: float = Field(..., description="Length of the fixed window.")
    max_requests: int = Field(..., description="Admitted requests per window.")
    message: str = Field(..., description="Message returned when throttled.")
    skip_successful_requests: bool = False
    skip_failed_requests: bool = False

    @classmethod
    def from_config(cls, config: RateLimitConfig) -> "PolicyResponse":
        return cls(
            name=config.name,
            window_seconds=config.window_seconds,
            max_requests=config.max_requests,
            message=config.message,
            skip_successful_requests=config.skip_successful_requests,
            skip_failed_requests=config.skip_failed_requests,
        )


class PolicyListResponse(BaseModel):
    policies: List[PolicyResponse] = Field(default_factory=list)
