"""
Inbound rate limiting package.
"""

from .fixed_window import FixedWindowRateLimiter, get_client_ip

__all__ = ["FixedWindowRateLimiter", "get_client_ip"]
