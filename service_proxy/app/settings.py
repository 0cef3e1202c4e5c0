"""
Settings for the proxy service.

Loaded once at startup from ``PROXY_*`` environment variables (and ``.env``)
and treated as immutable afterwards.
"""

from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import AliasChoices, Field, field_validator, model_validator

from shared.config import BaseConfig
from .routing import AllowRule


DEFAULT_ROUTES = [
    AllowRule(mount_prefix="/catalog", upstream_base="https://catalog.roblox.com"),
    AllowRule(mount_prefix="/games", upstream_base="https://games.roblox.com"),
]

RETRYABLE_KINDS = {"timeout", "network", "protocol", "invalid_target"}


def load_routes_file(path: Path) -> List[AllowRule]:
    """Read allow rules from a YAML file.

    The file holds either a top-level list or a mapping with a ``routes`` list;
    each item has ``mount_prefix`` and ``upstream_base``.
    """
    with open(path, "r", encoding="utf-8") as handle:
        payload = yaml.safe_load(handle) or []
    if isinstance(payload, dict):
        payload = payload.get("routes", [])
    if not isinstance(payload, list):
        raise ValueError(f"routes file {path} must contain a list of rules")
    return [AllowRule(**item) for item in payload]


class ProxySettings(BaseConfig):
    """Proxy configuration."""

    service_name: str = "proxy"

    # Access guard
    proxy_key: str = Field(default="change-me", validation_alias=AliasChoices("PROXY_KEY", "proxy_key"))
    key_header: str = "x-proxy-key"
    health_path: str = "/healthz"
    metrics_path: str = "/metrics"

    # Allow list
    routes: List[AllowRule] = Field(default_factory=lambda: list(DEFAULT_ROUTES))
    routes_file: Optional[Path] = None

    # Response cache
    cache_max_entries: int = 1000
    cache_ttl_seconds: int = 30
    coalesce_requests: bool = False

    # Upstream calls
    upstream_timeout_seconds: float = 10.0
    max_redirects: int = 2
    user_agent: str = "upstream-proxy/1.2"
    default_accept: str = "*/*"
    retry_delays_ms: List[int] = Field(default_factory=lambda: [0, 200, 400])
    retry_jitter_ms: int = 150
    retry_on: List[str] = Field(default_factory=lambda: ["timeout", "network", "protocol"])

    # Inbound rate limiting
    rate_limit_max_requests: int = 300
    rate_limit_window_seconds: int = 60
    trust_forwarded_for: bool = False

    # Hardening
    security_headers: bool = True
    gzip_minimum_size: int = 1000

    @field_validator("cache_max_entries", "cache_ttl_seconds", "rate_limit_max_requests", "rate_limit_window_seconds")
    @classmethod
    def _positive_int(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be positive")
        return value

    @field_validator("upstream_timeout_seconds")
    @classmethod
    def _positive_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("must be positive")
        return value

    @field_validator("max_redirects", "retry_jitter_ms", "gzip_minimum_size")
    @classmethod
    def _non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("must not be negative")
        return value

    @field_validator("retry_delays_ms")
    @classmethod
    def _check_delays(cls, value: List[int]) -> List[int]:
        if not value:
            raise ValueError("at least one attempt is required")
        if any(delay < 0 for delay in value):
            raise ValueError("delays must not be negative")
        return value

    @field_validator("retry_on")
    @classmethod
    def _check_retry_on(cls, value: List[str]) -> List[str]:
        unknown = set(value) - RETRYABLE_KINDS
        if unknown:
            raise ValueError(f"unknown error kinds: {sorted(unknown)}")
        return value

    @field_validator("health_path", "metrics_path")
    @classmethod
    def _check_path(cls, value: str) -> str:
        if not value.startswith("/"):
            raise ValueError("path must start with '/'")
        return value

    @model_validator(mode="after")
    def _load_routes(self) -> "ProxySettings":
        if self.routes_file is not None:
            self.routes = load_routes_file(self.routes_file)
        if not self.routes:
            raise ValueError("at least one route is required")
        return self

    @property
    def max_attempts(self) -> int:
        return len(self.retry_delays_ms)


def get_settings(**overrides) -> ProxySettings:
    """Load proxy settings from the environment."""
    return ProxySettings(**overrides)
