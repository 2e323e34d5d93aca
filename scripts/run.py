#!/usr/bin/env python3
"""Main entrypoint — starts the handler manager and the metrics endpoint.

Usage::

    # Run with default config
    python scripts/run.py

    # Custom config file
    python scripts/run.py --config config/settings.yaml

    # Override log level
    python scripts/run.py --log-level DEBUG
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys

import structlog
from aiohttp import web

from wham.api.server import API
from wham.core.config import load_settings
from wham.core.logging import setup_logging
from wham.handlers.factory import create_registry
from wham.handlers.manager import Manager
from wham.metrics.server import start_metrics_server

logger = structlog.get_logger(__name__)


async def run(args: argparse.Namespace) -> int:
    """Start all components and run until interrupted."""
    settings = load_settings(args.config)
    setup_logging(level=args.log_level)

    if not settings.handlers:
        logger.error("no_handlers_configured")
        print(
            "No handlers configured. Add at least one entry under 'handlers' "
            "in config/settings.yaml (e.g. handlers.baremetal).",
            file=sys.stderr,
        )
        return 1

    # ── Handlers + shared webhook listener ───────────────────────
    registry = create_registry()
    manager = Manager(registry, settings.handlers, API(settings.api))
    logger.info("wham_starting", handlers=sorted(settings.handlers), available=registry.names())

    try:
        launched = await manager.start()
    except OSError as exc:
        logger.error("api_start_failed", error=str(exc))
        await manager.stop()
        return 1

    if launched == 0:
        logger.error("no_handlers_loaded")
        await manager.stop()
        return 1

    # ── Metrics ──────────────────────────────────────────────────
    metrics_runner: web.AppRunner | None = None
    if settings.metrics.enabled:
        port = args.metrics_port or settings.metrics.port
        try:
            metrics_runner = await start_metrics_server(settings.metrics.host, port)
        except OSError as exc:
            logger.error("metrics_start_failed", port=port, error=str(exc))

    # ── Wait for shutdown signal ─────────────────────────────────
    stop_event = manager.shutdown

    def _signal_handler() -> None:
        logger.info("shutdown_signal_received")
        stop_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _signal_handler)
        except NotImplementedError:
            # Windows: signal handlers not supported on ProactorEventLoop
            pass

    try:
        await stop_event.wait()
    except KeyboardInterrupt:
        logger.info("keyboard_interrupt")

    # ── Graceful shutdown ────────────────────────────────────────
    logger.info("wham_shutting_down")
    await manager.stop()
    if metrics_runner is not None:
        await metrics_runner.cleanup()
    logger.info("wham_stopped")
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Receive Alertmanager webhooks and put affected nodes into maintenance.",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to settings YAML (default: config/settings.yaml)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level override: DEBUG, INFO, WARNING, ERROR",
    )
    parser.add_argument(
        "--metrics-port",
        type=int,
        default=None,
        help="Prometheus metrics port override (default from config: 9090)",
    )
    args = parser.parse_args()

    code = asyncio.run(run(args))
    sys.exit(code)


if __name__ == "__main__":
    main()
