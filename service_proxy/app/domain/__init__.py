"""
Domain helpers for the proxy: the access guard and response translation.
"""

from .access_guard import AccessGuard
from .translator import ResponseTranslator

__all__ = ["AccessGuard", "ResponseTranslator"]
