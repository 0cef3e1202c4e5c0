"""
Base service class for upstream proxy services.
"""

from fastapi import FastAPI, Request, Response
from fastapi.responses import PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from typing import Optional
import time

from shared.config import BaseConfig, get_config
from shared.logging import configure_logging, get_logger, set_request_id, clear_context
from shared.metrics import MetricsCollector, get_metrics_collector
from shared.errors import InternalError, ProxyException


REQUEST_ID_HEADER = "X-Request-ID"

_STATUS_TEXT = {
    404: "Not found",
    405: "Method Not Allowed",
}


class BaseService:
    """Base service class with common functionality."""

    health_path = "/health"
    metrics_path = "/metrics"

    def __init__(self, service_name: str, config: Optional[BaseConfig] = None):
        self.service_name = service_name
        self.config = config if config is not None else get_config(service_name)
        self.logger = get_logger(service_name)
        self.metrics: MetricsCollector = get_metrics_collector(service_name)
        self._start_time = time.time()

        # Configure logging
        configure_logging(service_name, self.config.log_level)

        # Create FastAPI app
        self.app = self._create_app()

        # Set up middleware
        self._setup_middleware()

        # Set up routes
        self._setup_routes()

    def _create_app(self) -> FastAPI:
        """Create FastAPI application."""
        return FastAPI(
            title=f"{self.service_name.title()} Service",
            version="1.2.0",
            docs_url=None,
            redoc_url=None,
            openapi_url=None,
        )

    def _setup_middleware(self):
        """Set up middleware."""

        # Request timing middleware
        @self.app.middleware("http")
        async def add_request_timing(request: Request, call_next):
            start_time = time.time()
            request_id = set_request_id(request.headers.get(REQUEST_ID_HEADER))

            try:
                response = await call_next(request)
            finally:
                clear_context()

            duration = time.time() - start_time
            response.headers[REQUEST_ID_HEADER] = request_id

            self.metrics.record_http_request(
                method=request.method,
                status_code=response.status_code,
                duration=duration
            )

            self.logger.info(
                "HTTP request",
                request_id=request_id,
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                cache=getattr(request.state, "cache_result", None),
                duration_ms=round(duration * 1000, 2)
            )

            return response

    def _setup_routes(self):
        """Set up common routes."""

        @self.app.get(self.health_path, response_class=PlainTextResponse)
        async def health_check():
            """Health check endpoint."""
            return "ok"

        @self.app.get(self.metrics_path)
        async def metrics_endpoint():
            """Prometheus metrics endpoint."""
            return Response(
                content=self.metrics.render(),
                media_type=self.metrics.content_type
            )

        # Error handlers
        @self.app.exception_handler(ProxyException)
        async def proxy_exception_handler(request: Request, exc: ProxyException):
            """Render ProxyException as its fixed public message."""
            log = self.logger.error if exc.status_code >= 500 else self.logger.debug
            log(
                "Proxy error",
                code=exc.code,
                message=exc.message,
                details=exc.details,
                path=request.url.path,
            )
            return exc.to_response()

        @self.app.exception_handler(StarletteHTTPException)
        async def http_exception_handler(request: Request, exc: StarletteHTTPException):
            """Plain-text bodies for framework-level HTTP errors."""
            text = _STATUS_TEXT.get(exc.status_code, str(exc.detail))
            return PlainTextResponse(text, status_code=exc.status_code, headers=getattr(exc, "headers", None))

        @self.app.exception_handler(Exception)
        async def general_exception_handler(request: Request, exc: Exception):
            """Handle general exceptions."""
            self.logger.error("Unhandled exception", error=str(exc), path=request.url.path, exc_info=True)
            return InternalError(str(exc)).to_response()

    def get_uptime(self) -> float:
        """Get service uptime in seconds."""
        return time.time() - self._start_time

    def run(self):
        """Run the service."""
        import uvicorn
        uvicorn.run(
            self.app,
            host=self.config.host,
            port=self.config.port,
            log_level=self.config.log_level.lower()
        )
