"""
Shared error handling for the upstream proxy.

Every exception carries the HTTP status and the fixed public message written
to the client. Operator-facing detail lives in ``details`` and is only logged.
"""

from typing import Any, Dict, Optional

from fastapi.responses import PlainTextResponse


class ProxyException(Exception):
    """Base exception for proxy services."""

    status_code: int = 500
    public_message: str = "Internal server error"

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> PlainTextResponse:
        """Convert to the client-facing response. Never includes details."""
        return PlainTextResponse(self.public_message, status_code=self.status_code)


class AuthError(ProxyException):
    """Missing or incorrect shared secret."""

    status_code = 403
    public_message = "Forbidden"

    def __init__(self, message: str = "Invalid proxy key", details: Optional[Dict[str, Any]] = None):
        super().__init__("AUTH_ERROR", message, details)


class MethodNotAllowed(ProxyException):
    """Method outside the forwarded set."""

    status_code = 405
    public_message = "Method Not Allowed"

    def __init__(self, method: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("METHOD_NOT_ALLOWED", f"Method {method} is not forwarded", details)
        self.method = method


class RouteNotFound(ProxyException):
    """No allow rule matched the path."""

    status_code = 404
    public_message = "Not allowed"

    def __init__(self, path: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("ROUTE_NOT_FOUND", f"No allow rule for {path}", details)
        self.path = path


class RateLimitError(ProxyException):
    """Inbound rate limit exceeded."""

    status_code = 429
    public_message = "Too Many Requests"

    def __init__(self, message: str = "Rate limit exceeded", details: Optional[Dict[str, Any]] = None):
        super().__init__("RATE_LIMIT_ERROR", message, details)

    def to_response(self) -> PlainTextResponse:
        response = super().to_response()
        retry_after = self.details.get("retry_after")
        if retry_after is not None:
            response.headers["Retry-After"] = str(retry_after)
        return response


class UpstreamError(ProxyException):
    """A single failed outbound call."""

    status_code = 502
    public_message = "Upstream error"
    kind = "upstream"

    def __init__(self, message: str, target: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        details = dict(details or {})
        if target is not None:
            details.setdefault("target", target)
        super().__init__("UPSTREAM_ERROR", message, details)
        self.target = target


class UpstreamTimeout(UpstreamError):
    """Outbound call exceeded its wall-clock budget."""

    kind = "timeout"


class UpstreamNetworkError(UpstreamError):
    """Connection, read or write failure."""

    kind = "network"


class UpstreamProtocolError(UpstreamError):
    """Malformed response, too many redirects or undecodable body."""

    kind = "protocol"


class UpstreamInvalidTarget(UpstreamError):
    """The resolved target URL cannot be requested at all."""

    kind = "invalid_target"


class InternalError(ProxyException):
    """Unexpected failure inside the proxy."""

    status_code = 500
    public_message = "Internal server error"

    def __init__(self, message: str = "Internal error", details: Optional[Dict[str, Any]] = None):
        super().__init__("INTERNAL_ERROR", message, details)
