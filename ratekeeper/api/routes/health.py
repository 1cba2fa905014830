from __future__ import annotations

from fastapi import APIRouter, Request

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check(request: Request) -> dict:
    """Health check endpoint.

    Used by load balancers and monitoring systems to determine service
    health. Never rate limited. Includes limiter counters (no keys).

    Returns:
        dict: ``status`` plus ``rate_limiter`` stats when a limiter is attached.
    """

    body: dict = {"status": "ok"}
    limiter = getattr(request.app.state, "rate_limiter", None)
    if limiter is not None:
        body["rate_limiter"] = limiter.stats()
    return body
