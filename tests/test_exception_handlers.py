"""Tests for global exception handlers.

Validates that all exception types are handled consistently with
proper HTTP status codes, error format, and no information leakage.
"""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from ratekeeper.core.errors import AppError, RateLimitAppError, ValidationAppError
from ratekeeper.core.exception_handlers import (
    general_exception_handler,
    setup_exception_handlers,
)


@pytest.fixture
def app_with_handlers() -> FastAPI:
    """Create FastAPI app with exception handlers registered."""
    app = FastAPI()
    setup_exception_handlers(app)
    return app


@pytest.fixture
def client(app_with_handlers: FastAPI) -> TestClient:
    """Create test client with handlers enabled."""
    return TestClient(app_with_handlers)


class TestAppErrorHandler:
    """Test handler for AppError and subclasses."""

    def test_validation_error_returns_400(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-validation")
        async def test_endpoint():
            raise ValidationAppError(
                code="unknown_rate_limit_policy",
                message="Unknown rate limit policy: nope",
                details={"hint": "Known policies: api"},
            )

        response = client.get("/test-validation")

        assert response.status_code == 400
        data = response.json()
        assert data["error"]["code"] == "unknown_rate_limit_policy"
        assert data["error"]["details"]["hint"] == "Known policies: api"
        assert "request_id" in data["error"]

    def test_rate_limit_error_returns_429_with_headers(
        self, client: TestClient, app_with_handlers: FastAPI
    ):
        @app_with_handlers.get("/test-throttled")
        async def test_endpoint():
            raise RateLimitAppError(
                code="rate_limit_exceeded",
                message="Too many requests",
                details={"retry_after": 12, "limit": 5},
                headers={"Retry-After": "12", "X-RateLimit-Limit": "5"},
            )

        response = client.get("/test-throttled")

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "12"
        assert response.headers["X-RateLimit-Limit"] == "5"
        assert response.json()["error"]["details"]["retry_after"] == 12

    def test_rate_limit_error_without_headers(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-throttled-bare")
        async def test_endpoint():
            raise RateLimitAppError(code="rate_limit_exceeded", message="Too many requests")

        response = client.get("/test-throttled-bare")

        assert response.status_code == 429
        assert "Retry-After" not in response.headers
        assert "details" not in response.json()["error"]

    def test_base_app_error_defaults_to_400(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-base")
        async def test_endpoint():
            raise AppError(code="generic", message="generic failure")

        response = client.get("/test-base")

        assert response.status_code == 400
        assert set(response.json()["error"]) == {"code", "message", "request_id"}


class TestGeneralExceptionHandler:
    def test_general_exception_handler_hides_message(self):
        request = AsyncMock()
        request.url.path = "/test"
        request.method = "GET"

        exc = RuntimeError("limiter store unreachable at 10.0.0.5")
        response = asyncio.run(general_exception_handler(request, exc))

        data = json.loads(bytes(response.body).decode())
        assert response.status_code == 500
        assert data["error"]["code"] == "internal_server_error"
        assert "10.0.0.5" not in data["error"]["message"]

    def test_unhandled_route_error_returns_500_envelope(self, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-crash")
        async def test_endpoint():
            raise ValueError("Test error with details")

        client = TestClient(app_with_handlers, raise_server_exceptions=False)
        response = client.get("/test-crash")

        assert response.status_code == 500
        assert "Traceback" not in response.text
        assert "ValueError" not in response.text


def test_setup_exception_handlers_registers_handlers(app_with_handlers: FastAPI):
    assert AppError in app_with_handlers.exception_handlers
    assert Exception in app_with_handlers.exception_handlers


def test_error_str_is_message():
    error = RateLimitAppError(code="rate_limit_exceeded", message="Too many requests")

    assert str(error) == "Too many requests"
    assert error.headers == {}
