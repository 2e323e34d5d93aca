"""Shared webhook listener — one aiohttp application for all handlers.

Handlers attach their routes under ``/alerts`` before the listener starts;
the router is frozen once ``start()`` has run.
"""

from __future__ import annotations

from typing import Awaitable, Callable

import structlog
from aiohttp import web

from wham.core.config import ApiConfig

logger = structlog.stdlib.get_logger()

RouteHandler = Callable[[web.Request], Awaitable[web.StreamResponse]]

ALERTS_PREFIX = "/alerts"


class API:
    """Owns the HTTP router and socket shared by every configured handler."""

    def __init__(self, config: ApiConfig | None = None) -> None:
        self._config = config or ApiConfig()
        self._app = web.Application()
        self._runner: web.AppRunner | None = None
        self._paths: list[str] = []

    @property
    def app(self) -> web.Application:
        return self._app

    @property
    def paths(self) -> list[str]:
        """Full paths of every route attached so far."""
        return list(self._paths)

    @property
    def running(self) -> bool:
        return self._runner is not None

    def add_route(self, method: str, path: str, handler: RouteHandler) -> None:
        """Attach *handler* at ``/alerts<path>``.

        Raises:
            RuntimeError: The listener is already running.
        """
        if self._runner is not None:
            raise RuntimeError("cannot add routes after the API has started")
        if not path.startswith("/"):
            path = "/" + path
        full_path = ALERTS_PREFIX + path
        self._app.router.add_route(method, full_path, handler)
        self._paths.append(full_path)
        logger.debug("route_added", method=method, path=full_path)

    async def start(self) -> None:
        """Bind the listener on the configured host and port."""
        if self._runner is not None:
            return
        runner = web.AppRunner(self._app)
        await runner.setup()
        site = web.TCPSite(runner, self._config.host, self._config.listen_port)
        try:
            await site.start()
        except OSError:
            await runner.cleanup()
            raise
        self._runner = runner
        logger.info(
            "api_listening",
            host=self._config.host,
            port=self._config.listen_port,
            routes=self._paths,
        )

    async def stop(self) -> None:
        if self._runner is None:
            return
        await self._runner.cleanup()
        self._runner = None
        logger.info("api_stopped")
