"""
Unit tests for the inbound rate limiter.
"""

from unittest.mock import MagicMock

import pytest

from service_proxy.app.ratelimit import FixedWindowRateLimiter, get_client_ip


class TestFixedWindowRateLimiter:
    """Test cases for FixedWindowRateLimiter."""

    @pytest.fixture
    def rate_limiter(self, clock):
        return FixedWindowRateLimiter(max_requests=3, window_seconds=60, clock=clock)

    def test_allows_up_to_limit(self, rate_limiter):
        results = [rate_limiter.check_rate_limit("10.0.0.1") for _ in range(3)]

        assert all(r["allowed"] for r in results)
        assert [r["remaining"] for r in results] == [2, 1, 0]
        assert results[-1]["current_count"] == 3

    def test_rejects_over_limit(self, rate_limiter):
        for _ in range(3):
            rate_limiter.check_rate_limit("10.0.0.1")

        result = rate_limiter.check_rate_limit("10.0.0.1")

        assert result["allowed"] is False
        assert result["limit"] == 3
        assert result["retry_after"] == 60

    def test_clients_are_counted_separately(self, rate_limiter):
        for _ in range(3):
            rate_limiter.check_rate_limit("10.0.0.1")

        assert rate_limiter.check_rate_limit("10.0.0.2")["allowed"] is True

    def test_window_resets(self, rate_limiter, clock):
        for _ in range(4):
            rate_limiter.check_rate_limit("10.0.0.1")

        clock.advance(60)
        result = rate_limiter.check_rate_limit("10.0.0.1")

        assert result["allowed"] is True
        assert result["current_count"] == 1

    def test_reset_in_counts_down(self, rate_limiter, clock):
        rate_limiter.check_rate_limit("10.0.0.1")
        clock.advance(45)

        assert rate_limiter.check_rate_limit("10.0.0.1")["reset_in_seconds"] == 15

    def test_reset_client(self, rate_limiter):
        for _ in range(4):
            rate_limiter.check_rate_limit("10.0.0.1")

        assert rate_limiter.reset("10.0.0.1") is True
        assert rate_limiter.check_rate_limit("10.0.0.1")["allowed"] is True


class TestGetClientIp:
    """Client address extraction."""

    @pytest.fixture
    def request_with_headers(self):
        def _make(headers):
            request = MagicMock()
            request.headers = headers
            request.client.host = "127.0.0.1"
            return request
        return _make

    def test_uses_peer_address_by_default(self, request_with_headers):
        request = request_with_headers({"X-Forwarded-For": "203.0.113.7"})
        assert get_client_ip(request) == "127.0.0.1"

    def test_trusts_forwarded_for_when_enabled(self, request_with_headers):
        request = request_with_headers({"X-Forwarded-For": "203.0.113.7, 10.0.0.1"})
        assert get_client_ip(request, trust_forwarded=True) == "203.0.113.7"

    def test_falls_back_to_real_ip(self, request_with_headers):
        request = request_with_headers({"X-Real-IP": "198.51.100.2"})
        assert get_client_ip(request, trust_forwarded=True) == "198.51.100.2"

    def test_unknown_without_client(self):
        request = MagicMock()
        request.headers = {}
        request.client = None
        assert get_client_ip(request) == "unknown"
