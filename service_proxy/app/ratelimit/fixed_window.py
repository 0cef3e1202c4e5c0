"""
Fixed-window rate limiter for inbound proxy traffic.
"""

import math
import threading
import time
from typing import Any, Callable, Dict, Tuple

from fastapi import Request

from shared.logging import get_logger


class FixedWindowRateLimiter:
    """In-process fixed-window request counter keyed by client id."""

    def __init__(self, max_requests: int = 300, window_seconds: float = 60.0,
                 clock: Callable[[], float] = time.monotonic):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.logger = get_logger("proxy.rate_limiter")
        self._clock = clock
        self._lock = threading.Lock()
        # client id -> (window start, count)
        self._windows: Dict[str, Tuple[float, int]] = {}
        self._last_prune = clock()

    def check_rate_limit(self, client_id: str) -> Dict[str, Any]:
        """Count one request for ``client_id`` and report whether it is allowed."""
        now = self._clock()
        with self._lock:
            self._prune(now)
            window_start, count = self._windows.get(client_id, (now, 0))
            if now - window_start >= self.window_seconds:
                window_start, count = now, 0

            reset_in = max(0, math.ceil(window_start + self.window_seconds - now))

            if count >= self.max_requests:
                self.logger.warning(
                    "Rate limit exceeded",
                    client_id=client_id,
                    current_count=count,
                    limit=self.max_requests,
                )
                return {
                    "allowed": False,
                    "current_count": count,
                    "limit": self.max_requests,
                    "remaining": 0,
                    "reset_in_seconds": reset_in,
                    "retry_after": reset_in,
                }

            count += 1
            self._windows[client_id] = (window_start, count)
            return {
                "allowed": True,
                "current_count": count,
                "limit": self.max_requests,
                "remaining": max(0, self.max_requests - count),
                "reset_in_seconds": reset_in,
            }

    def reset(self, client_id: str) -> bool:
        with self._lock:
            return self._windows.pop(client_id, None) is not None

    def _prune(self, now: float) -> None:
        if now - self._last_prune < self.window_seconds:
            return
        self._last_prune = now
        expired = [
            client_id
            for client_id, (window_start, _) in self._windows.items()
            if now - window_start >= self.window_seconds
        ]
        for client_id in expired:
            del self._windows[client_id]


def get_client_ip(request: Request, trust_forwarded: bool = False) -> str:
    """Extract the caller IP, consulting proxy headers only when trusted."""
    if trust_forwarded:
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()
        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return real_ip
    if request.client:
        return request.client.host
    return "unknown"
