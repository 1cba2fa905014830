from __future__ import annotations

from ratekeeper.api.routes.health import router as health_router
from ratekeeper.api.routes.rate_limit import router as rate_limit_router

__all__ = ["health_router", "rate_limit_router"]
