"""
Reusable ASGI / Starlette middleware for API request metrics.

Usage::

    from jellyfish_metrics import init_app

    app = init_app()                       # new FastAPI app, instrumented

    # or instrument an existing one
    init_app(app, ignored_paths={"/health"})
"""

import time

from fastapi import FastAPI
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from .catalog import Names, describe
from .registry import MetricsRegistry, resolve_registry
from .utils import to_seconds


class MetricsMiddleware(BaseHTTPMiddleware):
    """Starlette middleware that counts and times every request.

    Increments ``jf_api_requests_total{method,path,status}`` and observes
    ``jf_api_request_duration_seconds{method,path}``.

    Args:
        app: The ASGI application.
        registry: Registry to record into; the default registry if omitted.
        ignored_paths: Optional set of paths to skip
            (e.g. ``{"/metrics", "/health"}``).
    """

    def __init__(self, app, registry: MetricsRegistry | None = None, ignored_paths: set[str] | None = None):
        super().__init__(app)
        self.registry = registry
        self.ignored_paths = ignored_paths or set()

    async def dispatch(self, request: Request, call_next):
        start = time.monotonic()
        response = await call_next(request)

        path = request.url.path
        if path not in self.ignored_paths:
            registry = resolve_registry(self.registry)
            registry.inc(
                Names.api.requests_total,
                1,
                {"method": request.method, "path": path, "status": str(response.status_code)},
            )
            registry.histogram(
                Names.api.request_duration_seconds,
                to_seconds((time.monotonic() - start) * 1000),
                {"method": request.method, "path": path},
            )

        return response


def init_app(
    app: FastAPI | None = None,
    *,
    registry: MetricsRegistry | None = None,
    ignored_paths: set[str] | None = None,
) -> FastAPI:
    """Return ``app`` (or a new FastAPI app) with API request metrics installed."""
    if app is None:
        app = FastAPI()
    describe(registry)
    app.add_middleware(MetricsMiddleware, registry=registry, ignored_paths=ignored_paths)
    return app
