"""Caller identification for rate limiting.

A rate limit key combines the policy, the caller's origin and the route
path, so each caller gets an independent counter per protected resource.
"""

from __future__ import annotations

import base64
import hashlib

from fastapi import Request

UNKNOWN_ORIGIN = "unknown"

# Path segment of keys for policies shared by every route
ALL_ROUTES = "*"


def get_client_origin(request: Request, *, trust_forwarded_for: bool = False) -> str:
    """Return the network origin of the caller.

    Proxy headers are only honoured when ``trust_forwarded_for`` is set;
    otherwise any client could pick its own bucket by sending them.
    Callers with no resolvable origin all share the ``"unknown"`` bucket.

    Args:
        request: FastAPI request.
        trust_forwarded_for: Read X-Forwarded-For / X-Real-IP first.

    Returns:
        str: Origin address or ``"unknown"``.
    """

    if trust_forwarded_for:
        forwarded_for = request.headers.get("x-forwarded-for")
        if forwarded_for:
            first_hop = forwarded_for.split(",")[0].strip()
            if first_hop:
                return first_hop
        real_ip = request.headers.get("x-real-ip", "").strip()
        if real_ip:
            return real_ip

    if request.client and request.client.host:
        return request.client.host
    return UNKNOWN_ORIGIN


def fingerprint_user_agent(origin: str, user_agent: str | None) -> str:
    """Extend an origin with a short user-agent fingerprint.

    Examples:
        >>> fingerprint_user_agent("10.0.0.1", "curl/8.0")
        '10.0.0.1:Y3VybC84LjA='
    """

    encoded = base64.b64encode((user_agent or UNKNOWN_ORIGIN).encode()).decode()
    return f"{origin}:{encoded[:16]}"


def build_rate_limit_key(origin: str, path: str, *, policy_name: str) -> str:
    """Build the namespaced limiter key for a caller and route."""

    return f"{policy_name}:{origin}:{path}"


def hash_key_for_logging(key: str) -> str:
    """Hash the rate limit key for logging without exposing the caller."""
    return hashlib.sha256(key.encode()).hexdigest()[:16]
