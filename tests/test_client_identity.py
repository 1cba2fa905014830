"""Unit tests for caller identification and policy lookup."""

import pytest
from starlette.requests import Request

from ratekeeper.core.client_identity import (
    build_rate_limit_key,
    fingerprint_user_agent,
    get_client_origin,
    hash_key_for_logging,
)
from ratekeeper.core.config import parse_csv
from ratekeeper.core.errors import ValidationAppError
from ratekeeper.core.policies import POLICIES, get_policy


def _request(headers: dict[str, str] | None = None, client: tuple[str, int] | None = ("10.0.0.7", 5000)) -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/v1/orders",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": client,
    }
    return Request(scope)


class TestClientOrigin:
    def test_uses_socket_peer_by_default(self):
        request = _request({"X-Forwarded-For": "203.0.113.9"})

        assert get_client_origin(request) == "10.0.0.7"

    def test_first_forwarded_hop_when_trusted(self):
        request = _request({"X-Forwarded-For": " 203.0.113.9 , 10.0.0.1"})

        assert get_client_origin(request, trust_forwarded_for=True) == "203.0.113.9"

    def test_falls_back_to_real_ip_when_trusted(self):
        request = _request({"X-Real-IP": "198.51.100.4"})

        assert get_client_origin(request, trust_forwarded_for=True) == "198.51.100.4"

    def test_falls_back_to_peer_when_proxy_headers_empty(self):
        request = _request({"X-Forwarded-For": " , "})

        assert get_client_origin(request, trust_forwarded_for=True) == "10.0.0.7"

    def test_unknown_when_no_origin_available(self):
        request = _request(client=None)

        assert get_client_origin(request, trust_forwarded_for=True) == "unknown"


def test_fingerprint_appends_truncated_user_agent():
    fingerprint = fingerprint_user_agent("10.0.0.1", "Mozilla/5.0 (X11; Linux x86_64)")

    origin, encoded = fingerprint.split(":")
    assert origin == "10.0.0.1"
    assert len(encoded) == 16
    assert fingerprint_user_agent("10.0.0.1", None) == fingerprint_user_agent("10.0.0.1", "unknown")


def test_key_combines_policy_origin_and_path():
    assert build_rate_limit_key("10.0.0.1", "/v1/orders", policy_name="api") == "api:10.0.0.1:/v1/orders"


def test_hashed_key_is_stable_and_opaque():
    key = "api:10.0.0.1:/v1/orders"

    assert hash_key_for_logging(key) == hash_key_for_logging(key)
    assert len(hash_key_for_logging(key)) == 16
    assert "10.0.0.1" not in hash_key_for_logging(key)


@pytest.mark.parametrize(
    "raw,expected",
    [
        (None, set()),
        ("", set()),
        ("a", {"a"}),
        (" a , b ,, ", {"a", "b"}),
    ],
)
def test_parse_csv(raw, expected):
    assert parse_csv(raw) == expected


class TestPolicies:
    def test_known_policy(self):
        policy = get_policy("financial_write")

        assert policy.max_requests == 20
        assert policy.window_ms == 60_000

    def test_unknown_policy_raises_validation_error(self):
        with pytest.raises(ValidationAppError) as exc_info:
            get_policy("does-not-exist")

        assert exc_info.value.code == "unknown_rate_limit_policy"
        assert "auth" in exc_info.value.details["hint"]

    def test_only_global_policy_spans_routes(self):
        assert get_policy("global_per_ip").per_route is False
        assert [name for name, config in POLICIES.items() if not config.per_route] == [
            "global_per_ip"
        ]

    def test_policy_names_match_keys(self):
        assert all(name == config.name for name, config in POLICIES.items())

    def test_policy_table_is_read_only(self):
        with pytest.raises(TypeError):
            POLICIES["api"] = get_policy("strict")  # type: ignore[index]
