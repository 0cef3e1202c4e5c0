"""
Unit tests for proxy settings.
"""

import pytest
from pydantic import ValidationError

from service_proxy.app.settings import DEFAULT_ROUTES, ProxySettings


class TestProxySettings:
    """Test cases for ProxySettings."""

    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch):
        for name in ("PROXY_KEY", "PROXY_PORT", "PORT", "PROXY_ROUTES", "PROXY_ROUTES_FILE",
                     "PROXY_CACHE_TTL_SECONDS", "PROXY_RETRY_DELAYS_MS", "PROXY_RETRY_ON"):
            monkeypatch.delenv(name, raising=False)

    def test_defaults(self):
        settings = ProxySettings(_env_file=None)

        assert settings.proxy_key == "change-me"
        assert settings.port == 3000
        assert settings.routes == DEFAULT_ROUTES
        assert settings.cache_max_entries == 1000
        assert settings.cache_ttl_seconds == 30
        assert settings.upstream_timeout_seconds == 10.0
        assert settings.max_redirects == 2
        assert settings.retry_delays_ms == [0, 200, 400]
        assert settings.retry_jitter_ms == 150
        assert settings.max_attempts == 3
        assert settings.rate_limit_max_requests == 300

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("PROXY_KEY", "from-env")
        monkeypatch.setenv("PORT", "8081")
        monkeypatch.setenv("PROXY_CACHE_TTL_SECONDS", "45")
        monkeypatch.setenv("PROXY_ROUTES", '[{"mount_prefix": "/a", "upstream_base": "https://a.example"}]')
        monkeypatch.setenv("PROXY_RETRY_ON", '["timeout"]')

        settings = ProxySettings(_env_file=None)

        assert settings.proxy_key == "from-env"
        assert settings.port == 8081
        assert settings.cache_ttl_seconds == 45
        assert [r.mount_prefix for r in settings.routes] == ["/a"]
        assert settings.retry_on == ["timeout"]

    def test_routes_file(self, tmp_path):
        routes_file = tmp_path / "routes.yaml"
        routes_file.write_text(
            "routes:\n"
            "  - mount_prefix: /inventory\n"
            "    upstream_base: https://inventory.example\n"
            "  - mount_prefix: /users\n"
            "    upstream_base: https://users.example\n"
        )

        settings = ProxySettings(_env_file=None, routes_file=routes_file)

        assert [r.mount_prefix for r in settings.routes] == ["/inventory", "/users"]

    def test_routes_file_as_plain_list(self, tmp_path):
        routes_file = tmp_path / "routes.yaml"
        routes_file.write_text("- mount_prefix: /x\n  upstream_base: http://x.internal\n")

        settings = ProxySettings(_env_file=None, routes_file=routes_file)

        assert settings.routes[0].upstream_base == "http://x.internal"

    @pytest.mark.parametrize("overrides", [
        {"routes": []},
        {"cache_max_entries": 0},
        {"cache_ttl_seconds": -1},
        {"upstream_timeout_seconds": 0},
        {"retry_delays_ms": []},
        {"retry_delays_ms": [0, -5]},
        {"retry_on": ["timeout", "everything"]},
        {"health_path": "healthz"},
    ])
    def test_rejects_invalid_values(self, overrides):
        with pytest.raises(ValidationError):
            ProxySettings(_env_file=None, **overrides)
