"""
Proxy caching package.

Provides the local response cache used to shield upstream hosts from
repeated identical requests, plus optional coalescing of concurrent misses.
The cache is per process; there is no cross-instance coherence.
"""

from .response_cache import CacheEntry, ResponseCache, make_cache_key
from .inflight import InFlightRegistry

__all__ = ["CacheEntry", "ResponseCache", "make_cache_key", "InFlightRegistry"]
