"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It pins APP_ENV to "testing" so no developer .env file leaks into the
suite, and provides limiter/app/client fixtures driven by a fake clock.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("RATE_LIMIT_ENABLED", "true")
os.environ.setdefault("RATE_LIMIT_INCLUDE_HEADERS", "true")
os.environ.setdefault("RATE_LIMIT_TRUST_FORWARDED_FOR", "false")

from unittest.mock import Mock  # noqa: E402

import pytest  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from ratekeeper.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter  # noqa: E402
from ratekeeper.core.app_factory import create_app  # noqa: E402


@pytest.fixture
def clock() -> Mock:
    """Deterministic UNIX clock (seconds) shared by limiter and tests."""
    return Mock(return_value=1000.0)


@pytest.fixture
def limiter(clock: Mock) -> InMemoryFixedWindowRateLimiter:
    return InMemoryFixedWindowRateLimiter(clock=clock)


@pytest.fixture
def app(limiter: InMemoryFixedWindowRateLimiter) -> FastAPI:
    return create_app(limiter=limiter, configure_logs=False)


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """Create FastAPI test client (lifespan not started)."""
    return TestClient(app)
