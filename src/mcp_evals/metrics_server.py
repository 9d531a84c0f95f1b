"""HTTP server exposing Prometheus metrics and a health check."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

import uvicorn
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, CollectorRegistry, generate_latest
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from mcp_evals import __version__

logger = logging.getLogger(__name__)

DEFAULT_METRICS_HOST = "localhost"
DEFAULT_METRICS_PORT = 9090


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def create_metrics_app(registry: CollectorRegistry | None = None) -> Starlette:
    """Build the ASGI app serving /metrics, /health and a service index.

    Args:
        registry: Registry to expose, defaults to the process-wide registry.
    """
    registry = registry if registry is not None else REGISTRY

    async def index(request: Request) -> JSONResponse:
        return JSONResponse(
            {
                "service": "mcp-evals metrics server",
                "version": __version__,
                "endpoints": {"metrics": "/metrics", "health": "/health"},
                "timestamp": _now(),
            }
        )

    async def health(request: Request) -> JSONResponse:
        return JSONResponse({"status": "healthy", "timestamp": _now()})

    async def metrics(request: Request) -> Response:
        return Response(generate_latest(registry), media_type=CONTENT_TYPE_LATEST)

    return Starlette(
        routes=[
            Route("/", index),
            Route("/health", health),
            Route("/metrics", metrics),
        ]
    )


def build_metrics_server(
    host: str = DEFAULT_METRICS_HOST,
    port: int = DEFAULT_METRICS_PORT,
    registry: CollectorRegistry | None = None,
) -> uvicorn.Server:
    """Create a uvicorn server for the metrics app.

    Call serve() to run it; set should_exit to stop it.
    """
    config = uvicorn.Config(create_metrics_app(registry), host=host, port=port, log_level="warning")
    return uvicorn.Server(config)


async def serve_metrics(
    host: str = DEFAULT_METRICS_HOST,
    port: int = DEFAULT_METRICS_PORT,
    registry: CollectorRegistry | None = None,
) -> None:
    """Serve metrics until the server is interrupted."""
    server = build_metrics_server(host, port, registry)
    logger.info(f"Serving metrics on http://{host}:{port}/metrics")
    await server.serve()
    logger.info("Metrics server stopped")
