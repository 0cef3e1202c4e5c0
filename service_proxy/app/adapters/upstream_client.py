"""
Upstream HTTP client for the proxy.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Dict, Optional

import httpx

from shared.errors import (
    UpstreamError,
    UpstreamInvalidTarget,
    UpstreamNetworkError,
    UpstreamProtocolError,
    UpstreamTimeout,
)
from shared.logging import get_logger
from shared.retry import RetryPolicy


DEFAULT_USER_AGENT = "upstream-proxy/1.2"


@dataclass(frozen=True)
class ForwardRequest:
    """One outbound call to make."""

    method: str
    target_url: str
    accept: Optional[str] = None


@dataclass(frozen=True)
class ForwardResult:
    """A fully buffered upstream response."""

    status: int
    headers: Dict[str, str] = field(default_factory=dict)
    body: str = ""

    @property
    def is_success(self) -> bool:
        return 200 <= self.status < 300


class UpstreamClient:
    """Client for forwarding requests to upstream hosts."""

    def __init__(self,
                 *,
                 timeout_seconds: float = 10.0,
                 max_redirects: int = 2,
                 user_agent: str = DEFAULT_USER_AGENT,
                 default_accept: str = "*/*",
                 retry_policy: Optional[RetryPolicy] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.timeout_seconds = timeout_seconds
        self.max_redirects = max_redirects
        self.user_agent = user_agent
        self.default_accept = default_accept
        self.retry_policy = retry_policy or RetryPolicy(name="upstream")
        self.logger = get_logger("proxy.upstream_client")
        self._client = httpx.AsyncClient(
            follow_redirects=max_redirects > 0,
            max_redirects=max_redirects,
            timeout=httpx.Timeout(timeout_seconds),
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def forward(self, target_url: str, method: str, accept: Optional[str] = None) -> ForwardResult:
        """Forward one request under the retry policy.

        Raises ``RetryError`` once the attempt budget is spent or a
        non-retryable error occurs.
        """
        request = ForwardRequest(method=method, target_url=target_url, accept=accept)
        return await self.retry_policy.run(self.fetch, request)

    async def fetch(self, request: ForwardRequest) -> ForwardResult:
        """Make a single attempt, bounded by the wall-clock timeout."""
        headers = {
            "accept": request.accept or self.default_accept,
            "user-agent": self.user_agent,
        }
        target = request.target_url

        try:
            return await asyncio.wait_for(self._send(request, headers), timeout=self.timeout_seconds)
        except UpstreamError:
            raise
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            raise UpstreamTimeout(
                f"Upstream call exceeded {self.timeout_seconds}s",
                target=target,
                details={"error": str(e) or type(e).__name__},
            )
        except (httpx.InvalidURL, httpx.UnsupportedProtocol) as e:
            raise UpstreamInvalidTarget(f"Invalid target: {e}", target=target)
        except (httpx.TooManyRedirects, httpx.DecodingError, httpx.ProtocolError) as e:
            raise UpstreamProtocolError(f"Protocol error: {e}", target=target)
        except httpx.TransportError as e:
            raise UpstreamNetworkError(f"Network error: {e}", target=target)
        except httpx.HTTPError as e:
            raise UpstreamProtocolError(f"HTTP error: {e}", target=target)

    async def _send(self, request: ForwardRequest, headers: Dict[str, str]) -> ForwardResult:
        response = await self._client.request(request.method, request.target_url, headers=headers)

        try:
            body = response.text
        except (UnicodeDecodeError, LookupError) as e:
            raise UpstreamProtocolError(f"Undecodable body: {e}", target=request.target_url)

        self.logger.debug(
            "Upstream response",
            method=request.method,
            target=request.target_url,
            status_code=response.status_code,
        )

        return ForwardResult(
            status=response.status_code,
            headers={key.lower(): value for key, value in response.headers.items()},
            body=body,
        )
