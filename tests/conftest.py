"""Shared fixtures — settings reset plus the fake cloud and its httpx client."""

from __future__ import annotations

from typing import Any

import pytest
import structlog

from tests.helpers import FakeCloud
from wham.core.config import reset_settings


@pytest.fixture(autouse=True)
def _clean_state() -> Any:
    reset_settings()
    yield
    structlog.reset_defaults()


@pytest.fixture()
def cloud() -> FakeCloud:
    fake = FakeCloud()
    fake.add_node()
    return fake


@pytest.fixture()
async def http(cloud: FakeCloud) -> Any:
    client = cloud.client()
    yield client
    await client.aclose()
