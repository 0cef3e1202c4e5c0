"""
HTTP hardening middleware for the proxy.
"""

from .security_headers import SecurityHeadersConfig, SecurityHeadersMiddleware

__all__ = ["SecurityHeadersConfig", "SecurityHeadersMiddleware"]
