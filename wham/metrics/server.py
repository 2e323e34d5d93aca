"""Pull-based metrics endpoint — Prometheus text exposition over aiohttp.

Runs on its own port, separate from the webhook listener.
Exposes:
- ``GET /metrics`` → all wham counters in the text exposition format
"""

from __future__ import annotations

import structlog
from aiohttp import web
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, generate_latest

from wham.metrics.registry import REGISTRY

logger = structlog.stdlib.get_logger()


async def _handle_metrics(request: web.Request) -> web.Response:
    registry: CollectorRegistry = request.app["registry"]
    return web.Response(
        body=generate_latest(registry),
        headers={"Content-Type": CONTENT_TYPE_LATEST},
    )


def create_metrics_app(registry: CollectorRegistry | None = None) -> web.Application:
    """Create the aiohttp application serving ``/metrics``."""
    app = web.Application()
    app["registry"] = registry if registry is not None else REGISTRY
    app.router.add_get("/metrics", _handle_metrics)
    return app


async def start_metrics_server(
    host: str = "0.0.0.0",
    port: int = 9090,
    registry: CollectorRegistry | None = None,
) -> web.AppRunner:
    """Start the metrics server. Returns the runner for cleanup."""
    app = create_metrics_app(registry)
    runner = web.AppRunner(app, access_log=None)
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()
    logger.info("metrics_exposed", host=host, port=port)
    return runner
