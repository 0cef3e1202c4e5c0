"""
Translation of upstream results into client responses.
"""

from typing import Dict, Mapping, Optional

from fastapi import Response

from service_proxy.app.adapters import ForwardResult
from service_proxy.app.caching import CacheEntry


DEFAULT_CONTENT_TYPE = "application/json; charset=utf-8"


def with_utf8_charset(content_type: Optional[str]) -> str:
    """Rewrite the charset parameter to utf-8, the encoding bodies are sent in."""
    if not content_type:
        return DEFAULT_CONTENT_TYPE
    media_type, *params = [part.strip() for part in content_type.split(";")]
    kept = [p for p in params if p and not p.lower().startswith("charset=")]
    return "; ".join([media_type, *kept, "charset=utf-8"])


class ResponseTranslator:
    """Normalizes outbound headers and builds the client response.

    The advertised ``cache-control`` max-age is derived from the cache TTL so
    the two cannot drift apart.
    """

    def __init__(self, cache_ttl_seconds: int):
        self.cache_ttl_seconds = int(cache_ttl_seconds)

    def build_headers(self, upstream_headers: Mapping[str, str]) -> Dict[str, str]:
        return {
            "content-type": with_utf8_charset(upstream_headers.get("content-type")),
            "access-control-allow-origin": "*",
            "access-control-allow-headers": "*",
            "cache-control": f"public, max-age={self.cache_ttl_seconds}",
        }

    def to_entry(self, result: ForwardResult) -> CacheEntry:
        return CacheEntry(status=result.status, headers=self.build_headers(result.headers), body=result.body)

    def render(self, entry: CacheEntry) -> Response:
        return Response(
            content=entry.body.encode("utf-8"),
            status_code=entry.status,
            headers=dict(entry.headers),
        )
