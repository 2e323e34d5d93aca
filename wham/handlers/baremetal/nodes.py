"""Async client for the bare-metal node API (Ironic v1).

Only the calls needed to put a node into maintenance are implemented:
``GET /v1/nodes/{id}``, ``PATCH /v1/nodes/{id}`` and
``PUT /v1/nodes/{id}/maintenance``.
"""

from __future__ import annotations

import asyncio
from typing import Any

import httpx
import structlog

from wham.core.types import Node, ProvisionState, UpdateOp, UpdateOperation
from wham.handlers.baremetal.config import RetryConfig
from wham.handlers.baremetal.exceptions import (
    BackendAuthError,
    BackendConnectionError,
    BackendError,
    BackendRequestError,
    BackendUnavailableError,
    NodeNotFoundError,
)
from wham.handlers.baremetal.identity import RegionSession

logger = structlog.stdlib.get_logger()

API_VERSION_HEADER = "X-OpenStack-Ironic-API-Version"

_RETRYABLE = (BackendConnectionError, BackendUnavailableError)


def _parse_node(raw: Any) -> Node:
    """Convert a node document to a Node.

    Old microversions report an available node with a ``null``
    provision state, so a missing state reads as available.
    """
    if not isinstance(raw, dict):
        raise BackendRequestError("backend returned no node document")
    uuid = raw.get("uuid")
    if not uuid:
        raise BackendRequestError("node document carries no uuid")
    return Node(
        uuid=str(uuid),
        name=raw.get("name") or "",
        provision_state=raw.get("provision_state") or ProvisionState.AVAILABLE,
        maintenance=bool(raw.get("maintenance", False)),
        maintenance_reason=raw.get("maintenance_reason"),
        raw=raw,
    )


def _resource_base(endpoint: str) -> str:
    endpoint = endpoint.rstrip("/")
    if endpoint.endswith("/v1"):
        return endpoint
    return endpoint + "/v1"


def _error_for(response: httpx.Response, what: str) -> BackendError:
    status = response.status_code
    detail = response.text[:200]
    if status == 401:
        return BackendAuthError(f"{what}: token rejected", status)
    if status == 404:
        return NodeNotFoundError(f"{what}: not found", status)
    if status >= 500:
        return BackendUnavailableError(f"{what}: backend returned {status}: {detail}", status)
    return BackendRequestError(f"{what}: backend returned {status}: {detail}", status)


class BaremetalClient:
    """Node API calls bound to one authenticated region session.

    Transport failures and 5xx answers are retried with exponential backoff
    up to ``retry.attempts`` total attempts; everything else fails at once.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        session: RegionSession,
        *,
        api_version: str | None = None,
        retry: RetryConfig | None = None,
    ) -> None:
        self._http = http
        self._session = session
        self._api_version = api_version
        self._retry = retry or RetryConfig()
        self._base = _resource_base(session.endpoint)

    @property
    def session(self) -> RegionSession:
        return self._session

    def service_url(self, *parts: str) -> str:
        return "/".join([self._base, *parts])

    # ── Node calls ───────────────────────────────────────────────

    async def get_node(self, node_id: str) -> Node:
        """Fetch the current node record."""
        body = await self._request(
            "GET", self.service_url("nodes", node_id), what=f"node {node_id}"
        )
        return _parse_node(body)

    async def update_node(self, node_id: str, ops: list[UpdateOperation]) -> Node:
        """Apply a JSON-Patch to the node and return the updated record."""
        body = await self._request(
            "PATCH",
            self.service_url("nodes", node_id),
            json=[op.to_json() for op in ops],
            what=f"node {node_id}",
        )
        return _parse_node(body)

    async def set_maintenance(self, node_id: str, enabled: bool = True) -> Node:
        return await self.update_node(
            node_id,
            [UpdateOperation(op=UpdateOp.REPLACE, path="/maintenance", value=enabled)],
        )

    async def set_maintenance_reason(self, node_id: str, reason: str) -> None:
        """Record the maintenance reason via the maintenance sub-resource."""
        await self._request(
            "PUT",
            self.service_url("nodes", node_id, "maintenance"),
            json={"reason": reason},
            ok_codes=(200, 202),
            what=f"node {node_id} maintenance",
        )

    # ── Transport ────────────────────────────────────────────────

    def _headers(self) -> dict[str, str]:
        headers = {
            "X-Auth-Token": self._session.token,
            "Accept": "application/json",
        }
        if self._api_version:
            headers[API_VERSION_HEADER] = self._api_version
        return headers

    async def _request(
        self,
        method: str,
        url: str,
        *,
        json: Any = None,
        ok_codes: tuple[int, ...] = (200,),
        what: str = "request",
    ) -> Any:
        delay = self._retry.base_delay_secs
        attempt = 1
        while True:
            try:
                return await self._request_once(
                    method, url, json=json, ok_codes=ok_codes, what=what
                )
            except _RETRYABLE as exc:
                if attempt >= self._retry.attempts:
                    raise
                logger.warning(
                    "backend_retry",
                    region=self._session.region,
                    method=method,
                    url=url,
                    attempt=attempt,
                    delay=delay,
                    error=str(exc),
                )
                await asyncio.sleep(delay)
                delay = min(delay * 2, self._retry.max_delay_secs)
                attempt += 1

    async def _request_once(
        self,
        method: str,
        url: str,
        *,
        json: Any,
        ok_codes: tuple[int, ...],
        what: str,
    ) -> Any:
        try:
            response = await self._http.request(method, url, json=json, headers=self._headers())
        except httpx.HTTPError as exc:
            raise BackendConnectionError(f"{what}: request failed: {exc}") from exc

        if response.status_code not in ok_codes:
            raise _error_for(response, what)

        if method == "PUT" or not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise BackendRequestError(f"{what}: backend returned invalid JSON") from exc
