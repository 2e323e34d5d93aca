"""Keystone v3 password authentication and service-catalog endpoint lookup."""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import httpx
import structlog

from wham.handlers.baremetal.config import RegionCredentials
from wham.handlers.baremetal.exceptions import AuthenticationError

logger = structlog.stdlib.get_logger()

TOKEN_HEADER = "X-Subject-Token"


@dataclass(frozen=True)
class RegionSession:
    """An authenticated token plus the resolved service endpoint for one region."""

    region: str
    token: str
    endpoint: str
    expires_at: float | None = None

    def expired(self, margin_secs: float = 60.0) -> bool:
        if self.expires_at is None:
            return False
        return time.time() + margin_secs >= self.expires_at


def build_auth_body(creds: RegionCredentials) -> dict[str, Any]:
    """Password-method auth request, project-scoped when a project is set."""
    body: dict[str, Any] = {
        "auth": {
            "identity": {
                "methods": ["password"],
                "password": {
                    "user": {
                        "name": creds.user,
                        "domain": {"name": creds.user_domain_name},
                        "password": creds.password.get_secret_value(),
                    },
                },
            },
        },
    }
    if creds.project_name:
        body["auth"]["scope"] = {
            "project": {
                "name": creds.project_name,
                "domain": {"name": creds.project_domain_name},
            },
        }
    return body


def locate_endpoint(
    catalog: list[dict[str, Any]],
    service_type: str,
    interface: str = "public",
    region: str | None = None,
) -> str | None:
    """Find the URL of *service_type* in a token's catalog.

    Endpoints are matched on interface and, when given, on ``region`` or
    ``region_id``. Returns None if nothing matches.
    """
    for service in catalog:
        if service.get("type") != service_type:
            continue
        for endpoint in service.get("endpoints") or []:
            if endpoint.get("interface") != interface:
                continue
            if region and region not in (endpoint.get("region"), endpoint.get("region_id")):
                continue
            url = endpoint.get("url")
            if url:
                return str(url).rstrip("/")
    return None


def _parse_expiry(raw: Any) -> float | None:
    if not isinstance(raw, str) or not raw:
        return None
    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00")).timestamp()
    except ValueError:
        return None


async def authenticate(
    http: httpx.AsyncClient,
    region: str,
    creds: RegionCredentials,
    *,
    service_type: str = "baremetal",
    interface: str = "public",
) -> RegionSession:
    """Exchange *creds* for a token and resolve the service endpoint.

    Raises:
        AuthenticationError: Credentials rejected, identity service unreachable,
            malformed response, or no matching catalog endpoint.
    """
    url = f"{creds.auth_url}/auth/tokens"
    try:
        response = await http.post(url, json=build_auth_body(creds))
    except httpx.HTTPError as exc:
        raise AuthenticationError(region, f"identity request failed: {exc}") from exc

    if response.status_code not in (200, 201):
        raise AuthenticationError(
            region, f"identity service returned {response.status_code}"
        )

    token = response.headers.get(TOKEN_HEADER)
    if not token:
        raise AuthenticationError(region, f"response carries no {TOKEN_HEADER} header")

    try:
        body = response.json()
    except ValueError as exc:
        raise AuthenticationError(region, "identity service returned invalid JSON") from exc

    token_body = body.get("token") if isinstance(body, dict) else None
    if not isinstance(token_body, dict):
        raise AuthenticationError(region, "response carries no token body")

    endpoint = locate_endpoint(
        token_body.get("catalog") or [],
        service_type,
        interface,
        creds.region_name or region,
    )
    if endpoint is None:
        raise AuthenticationError(
            region, f"no {interface} {service_type} endpoint in service catalog"
        )

    logger.debug("endpoint_located", region=region, endpoint=endpoint)
    return RegionSession(
        region=region,
        token=token,
        endpoint=endpoint,
        expires_at=_parse_expiry(token_body.get("expires_at")),
    )
