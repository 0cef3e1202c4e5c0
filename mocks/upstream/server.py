"""
Mock upstream API with failure injection for exercising the proxy locally.
"""

import asyncio
from typing import Any, Dict, List

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse, RedirectResponse

from shared.logging import get_logger


class MockUpstreamServer:
    """Mock upstream implementation.

    ``POST /_control/fail?count=N`` makes the next N requests fail with 503
    and ``POST /_control/delay?seconds=S`` delays every response by S seconds.
    Every other request is echoed back as JSON and recorded.
    """

    def __init__(self, name: str = "catalog"):
        self.name = name
        self.logger = get_logger(f"mock.upstream.{name}")
        self.app = FastAPI(title=f"Mock upstream {name}", version="1.0.0")
        self.requests: List[Dict[str, Any]] = []
        self.fail_next = 0
        self.delay_seconds = 0.0
        self._setup_routes()

    def _setup_routes(self):
        """Set up mock upstream routes."""

        @self.app.post("/_control/fail")
        async def fail(count: int = 1):
            self.fail_next = count
            return {"fail_next": self.fail_next}

        @self.app.post("/_control/delay")
        async def delay(seconds: float = 0.0):
            self.delay_seconds = seconds
            return {"delay_seconds": self.delay_seconds}

        @self.app.post("/_control/reset")
        async def reset():
            self.requests.clear()
            self.fail_next = 0
            self.delay_seconds = 0.0
            return {"reset": True}

        @self.app.get("/redirect/{hops}")
        async def redirect(hops: int):
            if hops <= 0:
                return {"redirected": True}
            return RedirectResponse(f"/redirect/{hops - 1}", status_code=302)

        @self.app.get("/text")
        async def text():
            return PlainTextResponse("plain upstream text")

        @self.app.get("/status/{code}")
        async def status(code: int):
            return Response(content=f"status {code}", status_code=code, media_type="text/plain")

        @self.app.api_route("/{path:path}", methods=["GET", "HEAD"])
        async def echo(path: str, request: Request):
            self.requests.append({
                "method": request.method,
                "path": "/" + path,
                "query": request.url.query,
                "headers": dict(request.headers),
            })
            if self.delay_seconds:
                await asyncio.sleep(self.delay_seconds)
            if self.fail_next > 0:
                self.fail_next -= 1
                self.logger.info("Injected failure", path=path, remaining=self.fail_next)
                return PlainTextResponse("injected failure", status_code=503)
            return JSONResponse({
                "upstream": self.name,
                "path": "/" + path,
                "query": request.url.query,
                "count": len(self.requests),
            })


def create_app(name: str = "catalog"):
    """Create mock upstream application."""
    server = MockUpstreamServer(name)
    return server.app


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(create_app(), host="0.0.0.0", port=8090)
