"""
Caching reverse proxy service for allow-listed upstream APIs.
"""

import asyncio
import random
import time
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx
from fastapi import Request, Response
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import PlainTextResponse
from starlette.types import Receive, Scope, Send

from shared.base_service import BaseService
from shared.errors import AuthError, MethodNotAllowed, RateLimitError, RouteNotFound
from shared.retry import AttemptOutcome, RetryConfig, RetryError, RetryPolicy
from .adapters import UpstreamClient
from .caching import CacheEntry, InFlightRegistry, ResponseCache, make_cache_key
from .domain import AccessGuard, ResponseTranslator
from .middleware import SecurityHeadersMiddleware
from .ratelimit import FixedWindowRateLimiter, get_client_ip
from .routing import RouteResolver
from .settings import ProxySettings, get_settings


FORWARDED_METHODS = ("GET", "HEAD")


class ProxyService(BaseService):
    """Proxy service implementation."""

    def __init__(self,
                 settings: Optional[ProxySettings] = None,
                 *,
                 transport: Optional[httpx.AsyncBaseTransport] = None,
                 clock: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
                 rand: Callable[[], float] = random.random):
        self.settings = settings if settings is not None else get_settings()
        self.health_path = self.settings.health_path
        self.metrics_path = self.settings.metrics_path

        # Components exist before the base class wires middleware and routes
        self.resolver = RouteResolver(self.settings.routes)
        self.cache = ResponseCache(
            max_entries=self.settings.cache_max_entries,
            ttl_seconds=self.settings.cache_ttl_seconds,
            clock=clock,
        )
        self.inflight = InFlightRegistry() if self.settings.coalesce_requests else None
        self.guard = AccessGuard(
            self.settings.proxy_key,
            header_name=self.settings.key_header,
            open_paths=(self.settings.health_path,),
        )
        self.translator = ResponseTranslator(self.settings.cache_ttl_seconds)
        self.rate_limiter = FixedWindowRateLimiter(
            max_requests=self.settings.rate_limit_max_requests,
            window_seconds=self.settings.rate_limit_window_seconds,
            clock=clock,
        )
        retry_policy = RetryPolicy(
            RetryConfig.from_milliseconds(
                self.settings.retry_delays_ms,
                self.settings.retry_jitter_ms,
                retry_on=self.settings.retry_on,
            ),
            name="upstream",
            sleep=sleep,
            rand=rand,
            on_outcome=self._record_attempt,
        )
        self.upstream = UpstreamClient(
            timeout_seconds=self.settings.upstream_timeout_seconds,
            max_redirects=self.settings.max_redirects,
            user_agent=self.settings.user_agent,
            default_accept=self.settings.default_accept,
            retry_policy=retry_policy,
            transport=transport,
        )

        super().__init__(self.settings.service_name, self.settings)

        @self.app.on_event("startup")
        async def _startup():
            self.logger.info(
                "Proxy listening",
                port=self.settings.port,
                mounts=[rule.mount_prefix for rule in self.resolver.rules],
                cache_ttl_seconds=self.settings.cache_ttl_seconds,
                max_attempts=self.settings.max_attempts,
            )

        @self.app.on_event("shutdown")
        async def _shutdown():
            await self.upstream.close()
            self.logger.info("Proxy stopped", uptime_seconds=round(self.get_uptime(), 3))

        # Expose service instance via app state for introspection/testing
        self.app.state.proxy_service = self

    def _setup_middleware(self):
        """Set up proxy middleware; the base timing middleware ends up outermost."""

        @self.app.middleware("http")
        async def guard_request(request: Request, call_next):
            try:
                self.guard.enforce(request.headers.get(self.guard.header_name), request.url.path)
            except AuthError as e:
                self.logger.debug("Access denied", **e.details)
                return e.to_response()
            return await call_next(request)

        @self.app.middleware("http")
        async def limit_request(request: Request, call_next):
            client_ip = get_client_ip(request, trust_forwarded=self.settings.trust_forwarded_for)
            rate_result = self.rate_limiter.check_rate_limit(client_ip)
            if not rate_result["allowed"]:
                self.metrics.increment_counter("rate_limit_hits_total")
                response = RateLimitError(details=rate_result).to_response()
            else:
                response = await call_next(request)
            self._set_rate_limit_headers(response, rate_result)
            return response

        if self.settings.security_headers:
            self.app.add_middleware(SecurityHeadersMiddleware)
        self.app.add_middleware(GZipMiddleware, minimum_size=self.settings.gzip_minimum_size)

        super()._setup_middleware()

    def _setup_routes(self):
        """Set up health, metrics and the catch-all proxy route."""
        super()._setup_routes()

        # Registered as a plain ASGI endpoint so the route accepts every method
        self.app.add_route("/{full_path:path}", ProxyEndpoint(self), include_in_schema=False)

    def _set_rate_limit_headers(self, response: Response, rate_result: Dict[str, Any]) -> None:
        """Propagate rate limiting metadata via standard headers."""
        response.headers["X-RateLimit-Limit"] = str(rate_result["limit"])
        response.headers["X-RateLimit-Remaining"] = str(rate_result["remaining"])
        response.headers["X-RateLimit-Reset"] = str(rate_result["reset_in_seconds"])

    def _record_attempt(self, outcome: AttemptOutcome) -> None:
        label = "success" if outcome.ok else outcome.error.kind
        self.metrics.increment_counter("upstream_attempts_total", outcome=label)

    async def handle(self, request: Request) -> Response:
        """Run one request through resolve, cache and forward."""
        # Mount check and resolution both see the undecoded path
        path = _raw_path(request)
        if not self.resolver.is_mounted(path):
            return PlainTextResponse("Not found", status_code=404)

        target = self.resolver.resolve(path, _raw_query(request))
        if target is None:
            raise RouteNotFound(path)

        method = request.method
        if method not in FORWARDED_METHODS:
            raise MethodNotAllowed(method)

        key = make_cache_key(method, target)
        if method == "GET":
            cached = self.cache.get(key)
            if cached is not None:
                request.state.cache_result = "hit"
                self.metrics.increment_counter("cache_events_total", result="hit")
                return self.translator.render(cached)
            request.state.cache_result = "miss"
            self.metrics.increment_counter("cache_events_total", result="miss")

        try:
            entry = await self._fetch(key, target, method, request.headers.get("accept"))
        except RetryError as e:
            request.state.cache_result = "error"
            return e.to_response()

        return self.translator.render(entry)

    async def _fetch(self, key: str, target: str, method: str, accept: Optional[str]) -> CacheEntry:
        async def load() -> CacheEntry:
            result = await self.upstream.forward(target, method, accept)
            entry = self.translator.to_entry(result)
            if method == "GET" and result.is_success:
                self.cache.set(key, entry)
                self.metrics.increment_counter("cache_events_total", result="store")
            return entry

        if self.inflight is not None and method == "GET":
            return await self.inflight.run(key, load)
        return await load()


class ProxyEndpoint:
    """ASGI endpoint handing every request on the catch-all route to the service."""

    def __init__(self, service: ProxyService):
        self.service = service

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        request = Request(scope, receive)
        response = await self.service.handle(request)
        await response(scope, receive, send)


def _raw_path(request: Request) -> str:
    """Path exactly as the client sent it, without the query string."""
    raw_path = request.scope.get("raw_path")
    if not raw_path:
        return request.url.path
    return raw_path.split(b"?", 1)[0].decode("latin-1")


def _raw_query(request: Request) -> str:
    """Query string with its leading '?', or empty when absent."""
    query = request.scope.get("query_string") or b""
    if not query:
        return ""
    return "?" + query.decode("latin-1")


def create_app(settings: Optional[ProxySettings] = None, **kwargs):
    """Create FastAPI application."""
    service = ProxyService(settings, **kwargs)
    return service.app


def main():
    service = ProxyService()
    service.run()


if __name__ == "__main__":
    main()
