"""
Security headers middleware.

Adds a fixed set of hardening headers to every response. Proxied API
responses are consumed cross-origin, so the resource policy stays permissive.
"""

from dataclasses import dataclass
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp


@dataclass(frozen=True)
class SecurityHeadersConfig:
    """Header values applied as-is; None skips the header."""

    x_content_type_options: str = "nosniff"
    x_frame_options: str = "DENY"
    referrer_policy: str = "no-referrer"
    cross_origin_resource_policy: Optional[str] = "cross-origin"
    strict_transport_security: Optional[str] = None


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to every response without overriding existing ones."""

    def __init__(self, app: ASGIApp, config: Optional[SecurityHeadersConfig] = None):
        super().__init__(app)
        self.config = config or SecurityHeadersConfig()

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)
        headers = {
            "X-Content-Type-Options": self.config.x_content_type_options,
            "X-Frame-Options": self.config.x_frame_options,
            "Referrer-Policy": self.config.referrer_policy,
            "Cross-Origin-Resource-Policy": self.config.cross_origin_resource_policy,
            "Strict-Transport-Security": self.config.strict_transport_security,
        }
        for name, value in headers.items():
            if value is not None and name not in response.headers:
                response.headers[name] = value
        return response
