"""Handler registry — maps handler names to their factories.

Populated once during bootstrap, before any handler runs; read-only after.
"""

from __future__ import annotations

import asyncio
from typing import Any

import structlog

from wham.handlers.base import Handler, HandlerFactory
from wham.handlers.exceptions import HandlerRegistrationError, UnknownHandlerError

logger = structlog.stdlib.get_logger()


class HandlerRegistry:
    """Name → factory mapping. The first registration of a name wins."""

    def __init__(self) -> None:
        self._factories: dict[str, HandlerFactory] = {}

    def register(self, name: str, factory: HandlerFactory | None) -> None:
        """Register *factory* under *name*.

        Raises:
            HandlerRegistrationError: *factory* is None.
        """
        if factory is None:
            raise HandlerRegistrationError(f"handler factory {name} does not exist")
        if name in self._factories:
            logger.error("handler_already_registered", handler=name)
            return
        self._factories[name] = factory
        logger.debug("handler_registered", handler=name)

    def names(self) -> list[str]:
        """Registered handler names, sorted."""
        return sorted(self._factories)

    def __contains__(self, name: object) -> bool:
        return name in self._factories

    def __len__(self) -> int:
        return len(self._factories)

    async def create_handler(
        self,
        name: str,
        shutdown: asyncio.Event,
        config: Any,
    ) -> Handler:
        """Run the factory registered under *name* with its raw configuration.

        Raises:
            UnknownHandlerError: Nothing is registered under *name*.
        """
        factory = self._factories.get(name)
        if factory is None:
            raise UnknownHandlerError(name, self.names())
        return await factory(shutdown, config)
