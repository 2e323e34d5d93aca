"""Test doubles and builders shared across test packages.

``FakeCloud`` serves an in-memory identity + bare-metal API behind
httpx.MockTransport.
"""

from __future__ import annotations

import asyncio
import copy
import json
import re
import socket
from collections.abc import Callable
from typing import Any

import aiohttp
import httpx
from pydantic import SecretStr

from wham.handlers.baremetal.config import BaremetalConfig, RegionCredentials, RetryConfig

NODE_ID = "aaaaaaaa-bbbb-cccc-dddd-eeeeeeeeeeee"
ENDPOINT = "https://baremetal.test:6385"

_NODE_PATH = re.compile(r"^/v1/nodes/([^/]+)(/maintenance)?$")


class FakeCloud:
    """Keystone token issuer plus an Ironic node store.

    ``calls`` records every node API request as ``(method, path)``; identity
    requests are counted in ``auth_calls`` instead.
    """

    def __init__(self, regions: tuple[str, ...] = ("r1", "r2")) -> None:
        self.regions = regions
        self.nodes: dict[str, dict[str, Any]] = {}
        self.calls: list[tuple[str, str]] = []
        self.bodies: list[Any] = []
        self.auth_calls = 0
        self.auth_status = 201
        self.auth_delay = 0.0
        self.rejected_tokens: set[str] = set()
        self.echo_maintenance = True
        self.reason_status: int | None = None
        # Injected failures for node calls, consumed in order.
        self.failures: list[httpx.Response | Exception] = []

    def add_node(self, node_id: str = NODE_ID, **fields: Any) -> dict[str, Any]:
        node = {
            "uuid": node_id,
            "name": "node-001",
            "provision_state": "available",
            "maintenance": False,
            "maintenance_reason": None,
        }
        node.update(fields)
        self.nodes[node_id] = node
        return node

    def node_calls(self, method: str) -> list[str]:
        return [path for m, path in self.calls if m == method]

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    async def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/auth/tokens"):
            return await self._auth(request)

        self.calls.append((request.method, request.url.path))
        body = json.loads(request.content) if request.content else None
        self.bodies.append(body)

        if self.failures:
            failure = self.failures.pop(0)
            if isinstance(failure, Exception):
                raise failure
            return failure

        if request.headers.get("X-Auth-Token") in self.rejected_tokens:
            return httpx.Response(401, json={"error": "token expired"})

        match = _NODE_PATH.match(request.url.path)
        if match is None:
            return httpx.Response(404)
        node = self.nodes.get(match.group(1))
        if node is None:
            return httpx.Response(404, json={"error_message": "node not found"})

        if match.group(2):
            if request.method != "PUT":
                return httpx.Response(405)
            if self.reason_status is not None:
                return httpx.Response(self.reason_status, text="reason write failed")
            node["maintenance"] = True
            node["maintenance_reason"] = body["reason"]
            return httpx.Response(202)

        if request.method == "GET":
            return httpx.Response(200, json=copy.deepcopy(node))
        if request.method == "PATCH":
            for op in body:
                field = op["path"].lstrip("/")
                node[field] = op.get("value")
            echoed = copy.deepcopy(node)
            if not self.echo_maintenance:
                echoed["maintenance"] = False
            return httpx.Response(200, json=echoed)
        return httpx.Response(405)

    async def _auth(self, request: httpx.Request) -> httpx.Response:
        self.auth_calls += 1
        if self.auth_delay:
            await asyncio.sleep(self.auth_delay)
        if self.auth_status != 201:
            return httpx.Response(self.auth_status, json={"error": {"code": self.auth_status}})
        token = f"token-{self.auth_calls}"
        catalog = [
            {"type": "identity", "endpoints": []},
            {
                "type": "baremetal",
                "endpoints": [
                    {"interface": "public", "region": region, "region_id": region, "url": ENDPOINT}
                    for region in self.regions
                ],
            },
        ]
        return httpx.Response(
            201,
            headers={"X-Subject-Token": token},
            json={"token": {"expires_at": "2099-01-01T00:00:00.000000Z", "catalog": catalog}},
        )


def region_creds(name: str = "r1") -> RegionCredentials:
    return RegionCredentials(
        user="svc",
        password=SecretStr("secret"),
        auth_url=f"https://identity.{name}.test/v3",
        project_name="admin",
    )


def baremetal_config(**kw: Any) -> BaremetalConfig:
    defaults: dict[str, Any] = {
        "regions": {"r1": region_creds("r1"), "r2": region_creds("r2")},
        "retry": RetryConfig(attempts=3, base_delay_secs=0.0, max_delay_secs=0.0),
    }
    defaults.update(kw)
    return BaremetalConfig(**defaults)


def alert_payload(
    severity: str = "critical",
    region: str | None = "r1",
    meta: str | None = f"server_id: {NODE_ID}",
    alertname: str = "x",
) -> dict[str, Any]:
    labels = {"severity": severity, "alertname": alertname}
    if region is not None:
        labels["region"] = region
    annotations = {"meta": meta} if meta is not None else {}
    return {"status": "firing", "labels": labels, "annotations": annotations}


async def eventually(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Wait until *predicate* holds, failing the test after *timeout*."""
    async def _wait() -> None:
        while not predicate():
            await asyncio.sleep(0.005)

    await asyncio.wait_for(_wait(), timeout)


def free_port() -> int:
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return int(sock.getsockname()[1])


async def post_status(url: str, body: bytes) -> int:
    """POST *body* to a live listener and return the response status."""
    async with aiohttp.ClientSession() as session:
        async with session.post(url, data=body) as resp:
            return resp.status
