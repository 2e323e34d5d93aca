"""Bootstrap — builds the handler registry with every built-in handler."""

from __future__ import annotations

from wham.handlers.baremetal import handler as baremetal
from wham.handlers.registry import HandlerRegistry


def create_registry() -> HandlerRegistry:
    """Return a registry holding all built-in handler factories."""
    registry = HandlerRegistry()
    baremetal.register(registry)
    return registry
