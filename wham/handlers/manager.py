"""Manager — builds configured handlers, shares one listener, owns shutdown."""

from __future__ import annotations

import asyncio
from typing import Any

import structlog

from wham.api.server import API
from wham.handlers.base import Handler
from wham.handlers.registry import HandlerRegistry

logger = structlog.stdlib.get_logger()


class Manager:
    """Starts one task per configured handler and the shared webhook listener.

    A handler whose factory fails is logged and skipped; a handler whose run
    loop dies is logged and not restarted. Neither affects the others.

    Usage::

        manager = Manager(registry, settings.handlers, API(settings.api))
        await manager.start()
        await shutdown_signal.wait()
        await manager.stop()
    """

    def __init__(
        self,
        registry: HandlerRegistry,
        handlers: dict[str, Any],
        api: API,
        shutdown: asyncio.Event | None = None,
    ) -> None:
        self._registry = registry
        self._handler_configs = handlers
        self._api = api
        self._shutdown = shutdown or asyncio.Event()
        self._handlers: dict[str, Handler] = {}
        self._tasks: dict[str, asyncio.Task[None]] = {}

    @property
    def shutdown(self) -> asyncio.Event:
        return self._shutdown

    @property
    def api(self) -> API:
        return self._api

    @property
    def handlers(self) -> dict[str, Handler]:
        return dict(self._handlers)

    @property
    def running(self) -> list[str]:
        """Names of handlers whose task is still alive."""
        return [name for name, task in self._tasks.items() if not task.done()]

    async def start(self) -> int:
        """Create and attach every handler, start the listener, launch the loops.

        Returns:
            Number of handlers launched.

        Raises:
            OSError: The shared listener could not bind.
        """
        for name, raw in self._handler_configs.items():
            logger.info("loading_handler", handler=name)
            try:
                handler = await self._registry.create_handler(name, self._shutdown, raw)
            except Exception as exc:
                logger.error("handler_load_failed", handler=name, error=str(exc))
                continue
            try:
                handler.attach(self._api)
            except Exception as exc:
                logger.error("handler_attach_failed", handler=name, error=str(exc))
                await handler.close()
                continue
            self._handlers[name] = handler

        await self._api.start()

        for name, handler in self._handlers.items():
            task = asyncio.create_task(handler.run(), name=f"handler:{name}")
            task.add_done_callback(self._on_task_done)
            self._tasks[name] = task

        logger.info("manager_started", handlers=sorted(self._handlers))
        return len(self._tasks)

    def _on_task_done(self, task: asyncio.Task[None]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "handler_crashed",
                task=task.get_name(),
                error=str(exc),
                exc_info=exc,
            )
        elif not self._shutdown.is_set():
            logger.warning("handler_exited", task=task.get_name())

    async def stop(self) -> None:
        """Signal shutdown, close the listener, stop every handler task."""
        self._shutdown.set()
        await self._api.stop()

        for task in self._tasks.values():
            if not task.done():
                task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks.values(), return_exceptions=True)
        self._tasks.clear()

        for name, handler in self._handlers.items():
            try:
                await handler.close()
            except Exception:
                logger.exception("handler_close_error", handler=name)

        logger.info("manager_stopped")
