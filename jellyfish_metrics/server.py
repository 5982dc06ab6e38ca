"""
HTTP server exposing the registry on ``/metrics`` behind basic auth.

Usage::

    from jellyfish_metrics import start_server

    server = start_server(context, 9000)
    ...
    server.close()
"""

import base64
import errno
import logging
import secrets
import socket
import threading
import time

import uvicorn
from fastapi import FastAPI, HTTPException, Request, Response

from . import config
from .catalog import describe
from .logging import context_extra
from .registry import MetricsRegistry, resolve_registry

logger = logging.getLogger(__name__)

MONITOR_USER = "monitor"
_STARTUP_TIMEOUT = 10.0
_SHUTDOWN_TIMEOUT = 5.0


def basic_auth_header(token: str) -> str:
    """Return the ``Authorization`` header value for the ``monitor`` user."""
    credentials = base64.b64encode(f"{MONITOR_USER}:{token}".encode("utf-8")).decode("ascii")
    return f"Basic {credentials}"


def create_metrics_app(token: str | None, *, registry: MetricsRegistry | None = None) -> FastAPI:
    """
    Build a FastAPI app serving the registry on ``GET /metrics``.

    Requests must carry basic-auth credentials for ``monitor:<token>``;
    anything else gets a 401.  Without a token every request is rejected.
    """
    expected = basic_auth_header(token).encode("utf-8") if token else None

    def is_authorized(request: Request) -> bool:
        if expected is None:
            return False
        provided = request.headers.get("authorization", "")
        return secrets.compare_digest(provided.encode("utf-8"), expected)

    app = FastAPI(title="Jellyfish metrics", docs_url=None, redoc_url=None, openapi_url=None)

    @app.get("/metrics")
    def metrics(request: Request):
        if not is_authorized(request):
            raise HTTPException(
                status_code=401,
                detail="Unauthorized",
                headers={"WWW-Authenticate": "Basic"},
            )
        body, content_type = resolve_registry(registry).render()
        return Response(content=body, media_type=content_type)

    return app


class MetricsServer:
    """
    Handle on a running metrics server.

    Attributes:
        port: The port actually bound, which differs from the requested one
            when that was already in use.
    """

    def __init__(self, server: uvicorn.Server, thread: threading.Thread, sock: socket.socket):
        self._server = server
        self._thread = thread
        self._socket = sock
        self.port = sock.getsockname()[1]
        self._closed = False

    @property
    def running(self) -> bool:
        return self._thread.is_alive() and not self._closed

    def close(self) -> None:
        """Stop serving and wait for the server thread to exit."""
        if self._closed:
            return
        self._closed = True
        self._server.should_exit = True
        self._thread.join(timeout=_SHUTDOWN_TIMEOUT)
        self._socket.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()


def _bind(host: str, port: int) -> socket.socket:
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    try:
        sock.bind((host, port))
    except OSError:
        sock.close()
        raise
    return sock


def start_server(
    context,
    port: int,
    *,
    token: str | None = None,
    registry: MetricsRegistry | None = None,
    host: str = "0.0.0.0",
) -> MetricsServer:
    """
    Describe the catalog and expose the registry on ``/metrics``.

    If ``port`` is already in use the server is started on a random free
    port instead; check ``MetricsServer.port``.

    Args:
        context: Caller context, used to tag log lines.
        port: Port to listen on.
        token: Basic-auth password for the ``monitor`` user.  Defaults to
            ``MONITOR_SECRET_TOKEN``.
        registry: Registry to expose; the default registry if omitted.
        host: Interface to bind.
    """
    describe(registry)
    if token is None:
        token = config.metrics_token()
    if not token:
        logger.warning("No metrics token configured, /metrics will reject every request",
                       extra=context_extra(context))

    logger.info("Starting metrics server on %d", port, extra=context_extra(context))
    try:
        sock = _bind(host, port)
    except OSError as exc:
        if exc.errno != errno.EADDRINUSE:
            raise
        logger.info("Port %d is in use, starting metrics server on a random port", port,
                    extra=context_extra(context))
        sock = _bind(host, 0)

    server = uvicorn.Server(uvicorn.Config(
        create_metrics_app(token, registry=registry),
        lifespan="off",
        log_config=None,
        log_level="warning",
    ))
    thread = threading.Thread(
        target=server.run,
        kwargs={"sockets": [sock]},
        name="metrics-server",
        daemon=True,
    )
    thread.start()

    deadline = time.monotonic() + _STARTUP_TIMEOUT
    while not server.started:
        if not thread.is_alive() or time.monotonic() > deadline:
            server.should_exit = True
            thread.join(timeout=_SHUTDOWN_TIMEOUT)
            sock.close()
            raise RuntimeError(f"Metrics server failed to start on port {sock.getsockname()[1]}")
        time.sleep(0.01)

    handle = MetricsServer(server, thread, sock)
    logger.info("Metrics server listening on port %d", handle.port, extra=context_extra(context))
    return handle
