"""
Unit tests for shared error types.
"""

import pytest

from shared.errors import (
    AuthError,
    InternalError,
    MethodNotAllowed,
    RateLimitError,
    RouteNotFound,
    UpstreamProtocolError,
    UpstreamTimeout,
)


@pytest.mark.parametrize("exc, status, body", [
    (AuthError(), 403, b"Forbidden"),
    (MethodNotAllowed("POST"), 405, b"Method Not Allowed"),
    (RouteNotFound("/x"), 404, b"Not allowed"),
    (RateLimitError(), 429, b"Too Many Requests"),
    (UpstreamTimeout("took too long", target="https://x.example/secret"), 502, b"Upstream error"),
    (InternalError("db password leaked"), 500, b"Internal server error"),
])
def test_public_response(exc, status, body):
    response = exc.to_response()

    assert response.status_code == status
    assert response.body == body


def test_upstream_error_keeps_target_in_details():
    error = UpstreamProtocolError("bad gzip", target="https://x.example/a")

    assert error.details["target"] == "https://x.example/a"
    assert error.kind == "protocol"
    assert error.code == "UPSTREAM_ERROR"


def test_rate_limit_sets_retry_after():
    response = RateLimitError(details={"retry_after": 12}).to_response()
    assert response.headers["Retry-After"] == "12"
