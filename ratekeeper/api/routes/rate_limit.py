from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from ratekeeper.adapters.rate_limit.base import RateLimitDecision
from ratekeeper.core.policies import POLICIES
from ratekeeper.core.rate_limit import rate_limit
from ratekeeper.schemas.rate_limit import (
    PolicyListResponse,
    PolicyResponse,
    RateLimitStatusResponse,
)

router = APIRouter(tags=["Rate limit"])

STATUS_POLICY = "read_operations"


@router.get("/rate-limit/status", response_model=RateLimitStatusResponse)
async def rate_limit_status(
    decision: Annotated[RateLimitDecision | None, Depends(rate_limit(STATUS_POLICY))],
) -> RateLimitStatusResponse:
    """Report the caller's quota under the read policy.

    The request itself is counted, so ``remaining`` already reflects it.
    """

    return RateLimitStatusResponse.from_decision(STATUS_POLICY, decision)


@router.get(
    "/rate-limit/policies",
    response_model=PolicyListResponse,
    dependencies=[Depends(rate_limit("strict"))],
)
async def list_policies() -> PolicyListResponse:
    """List the configured rate limit policies."""

    return PolicyListResponse(
        policies=[PolicyResponse.from_config(config) for config in POLICIES.values()]
    )
