"""Tests for wham/handlers/registry.py — registration and lookup."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest
from structlog.testing import capture_logs

from wham.api.server import API
from wham.handlers.base import Handler
from wham.handlers.exceptions import HandlerRegistrationError, UnknownHandlerError
from wham.handlers.factory import create_registry
from wham.handlers.registry import HandlerRegistry


class _Stub(Handler):
    def __init__(self, name: str, config: Any) -> None:
        self.name = name
        self.config = config

    def attach(self, api: API) -> None:
        pass

    async def run(self) -> None:
        pass


def _factory(name: str):  # type: ignore[no-untyped-def]
    async def factory(shutdown: asyncio.Event, config: Any) -> Handler:
        return _Stub(name, config)

    return factory


class TestRegister:
    def test_register_and_names(self) -> None:
        registry = HandlerRegistry()
        registry.register("zeta", _factory("zeta"))
        registry.register("alpha", _factory("alpha"))
        assert registry.names() == ["alpha", "zeta"]
        assert "alpha" in registry
        assert len(registry) == 2

    def test_none_factory_rejected(self) -> None:
        registry = HandlerRegistry()
        with pytest.raises(HandlerRegistrationError, match="ghost"):
            registry.register("ghost", None)
        assert "ghost" not in registry

    async def test_duplicate_keeps_first(self) -> None:
        registry = HandlerRegistry()
        registry.register("dup", _factory("first"))
        with capture_logs() as logs:
            registry.register("dup", _factory("second"))
        assert any(e["event"] == "handler_already_registered" for e in logs)

        handler = await registry.create_handler("dup", asyncio.Event(), None)
        assert handler.name == "first"


class TestCreateHandler:
    async def test_passes_config(self) -> None:
        registry = HandlerRegistry()
        registry.register("stub", _factory("stub"))
        handler = await registry.create_handler("stub", asyncio.Event(), {"k": "v"})
        assert isinstance(handler, _Stub)
        assert handler.config == {"k": "v"}

    async def test_unknown_name_lists_available(self) -> None:
        registry = HandlerRegistry()
        registry.register("b", _factory("b"))
        registry.register("a", _factory("a"))
        with pytest.raises(UnknownHandlerError) as exc_info:
            await registry.create_handler("nope", asyncio.Event(), None)
        assert exc_info.value.available == ["a", "b"]
        assert str(exc_info.value) == "unknown handler 'nope', must be one of: a, b"


class TestBuiltins:
    def test_baremetal_registered(self) -> None:
        assert create_registry().names() == ["baremetal"]
