"""
Shared-secret access guard.
"""

import hmac
from typing import Iterable, Optional

from shared.errors import AuthError


class AccessGuard:
    """Checks the shared-secret header on every request except open paths."""

    def __init__(self, secret: str, header_name: str = "x-proxy-key", open_paths: Iterable[str] = ("/healthz",)):
        self.secret = secret
        self.header_name = header_name
        self.open_paths = frozenset(open_paths)

    def authorize(self, header_value: Optional[str], path: str) -> bool:
        if path in self.open_paths:
            return True
        if header_value is None:
            return False
        return hmac.compare_digest(header_value.encode("utf-8"), self.secret.encode("utf-8"))

    def enforce(self, header_value: Optional[str], path: str) -> None:
        """Raise ``AuthError`` when the request may not proceed."""
        if not self.authorize(header_value, path):
            raise AuthError(details={"path": path, "header_present": header_value is not None})
