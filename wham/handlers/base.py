"""Handler capability — consume an alert queue and drive remediation."""

from __future__ import annotations

import abc
import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from wham.api.server import API
from wham.handlers.exceptions import HandlerConfigError

ConfigT = TypeVar("ConfigT", bound=BaseModel)


class Handler(abc.ABC):
    """A remediation backend owning its alert queue and backend client.

    The manager calls ``attach()`` for every handler before the shared
    listener starts, then runs ``run()`` as an independent task until the
    shutdown event fires.
    """

    name: str = ""

    @abc.abstractmethod
    def attach(self, api: API) -> None:
        """Register this handler's webhook route(s) on the shared API."""

    @abc.abstractmethod
    async def run(self) -> None:
        """Process alerts until shutdown. Must not return on per-alert errors."""

    async def close(self) -> None:
        """Release resources (HTTP clients, etc.)."""


# (shutdown event, raw handler configuration) -> Handler
HandlerFactory = Callable[[asyncio.Event, Any], Awaitable[Handler]]


def parse_handler_config(name: str, schema: type[ConfigT], raw: Any) -> ConfigT:
    """Validate a raw handler block against the handler's config schema.

    Args:
        name: Handler name, used in the error message.
        schema: Pydantic model describing the handler's configuration.
        raw: The opaque block taken from ``Settings.handlers``.

    Raises:
        HandlerConfigError: The block does not match the schema.
    """
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise HandlerConfigError(
            f"handler {name}: configuration must be a mapping, got {type(raw).__name__}"
        )
    try:
        return schema.model_validate(raw)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
            for err in exc.errors()
        )
        raise HandlerConfigError(f"handler {name}: invalid configuration: {problems}") from exc
