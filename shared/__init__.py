"""
Shared utilities for the upstream proxy.

This package aggregates common building blocks consumed by the proxy service:

- config: Service configuration via pydantic-settings
- logging: Structured logging with request correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and plain-text responses
- retry: Jittered backoff retry policy with explicit attempt outcomes
- base_service: FastAPI app scaffolding shared by services

Any cross-service logic should live here to avoid import cycles across
service packages. Do not import from service_* packages into shared/.
"""
