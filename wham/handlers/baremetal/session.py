"""Per-region session cache — lazy authentication, at most one per region.

Sessions are created on first use of a region and kept for the life of the
handler. Creation is serialised per region, so concurrent first use of a
region authenticates once. A token rejected mid-flight triggers one
re-authentication and one replay of the failed call.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from typing import TypeVar

import httpx
import structlog

from wham.handlers.baremetal.config import RegionCredentials, RetryConfig
from wham.handlers.baremetal.exceptions import BackendAuthError, UnknownRegionError
from wham.handlers.baremetal.identity import RegionSession, authenticate
from wham.handlers.baremetal.nodes import BaremetalClient
from wham.metrics.registry import REGION_AUTHENTICATIONS

logger = structlog.stdlib.get_logger()

T = TypeVar("T")

ClientCall = Callable[[BaremetalClient], Awaitable[T]]


class RegionClientCache:
    """Authenticated ``BaremetalClient`` per region, built on demand."""

    def __init__(
        self,
        regions: Mapping[str, RegionCredentials],
        http: httpx.AsyncClient,
        *,
        service_type: str = "baremetal",
        interface: str = "public",
        api_version: str | None = None,
        retry: RetryConfig | None = None,
        handler_name: str = "baremetal",
    ) -> None:
        self._regions = dict(regions)
        self._http = http
        self._service_type = service_type
        self._interface = interface
        self._api_version = api_version
        self._retry = retry or RetryConfig()
        self._handler_name = handler_name
        self._sessions: dict[str, RegionSession] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._auth_count = 0

    @property
    def regions(self) -> list[str]:
        return sorted(self._regions)

    @property
    def auth_count(self) -> int:
        """Successful authentications since construction."""
        return self._auth_count

    def cached(self, region: str) -> RegionSession | None:
        return self._sessions.get(region)

    def _credentials(self, region: str) -> RegionCredentials:
        creds = self._regions.get(region)
        if creds is None:
            raise UnknownRegionError(region)
        return creds

    def _lock(self, region: str) -> asyncio.Lock:
        lock = self._locks.get(region)
        if lock is None:
            lock = self._locks[region] = asyncio.Lock()
        return lock

    @staticmethod
    def _usable(session: RegionSession | None) -> bool:
        return session is not None and not session.expired()

    async def _authenticate(self, region: str, creds: RegionCredentials) -> RegionSession:
        session = await authenticate(
            self._http,
            region,
            creds,
            service_type=self._service_type,
            interface=self._interface,
        )
        self._sessions[region] = session
        self._auth_count += 1
        REGION_AUTHENTICATIONS.labels(handler=self._handler_name, region=region).inc()
        logger.info("region_authenticated", region=region, endpoint=session.endpoint)
        return session

    async def get(self, region: str) -> RegionSession:
        """Return the cached session for *region*, authenticating on first use.

        Raises:
            UnknownRegionError: No credentials are configured for *region*.
            AuthenticationError: The identity service rejected the credentials.
        """
        creds = self._credentials(region)
        session = self._sessions.get(region)
        if self._usable(session):
            return session  # type: ignore[return-value]
        async with self._lock(region):
            session = self._sessions.get(region)
            if self._usable(session):
                return session  # type: ignore[return-value]
            return await self._authenticate(region, creds)

    async def reauthenticate(self, region: str, stale: RegionSession) -> RegionSession:
        """Replace *stale* with a fresh session.

        If another task already replaced it, that session is returned and no
        new authentication happens.
        """
        creds = self._credentials(region)
        async with self._lock(region):
            current = self._sessions.get(region)
            if current is not None and current is not stale and self._usable(current):
                return current
            self._sessions.pop(region, None)
            logger.warning("region_reauthenticating", region=region)
            return await self._authenticate(region, creds)

    async def warm(self) -> None:
        """Authenticate every configured region now."""
        for region in self.regions:
            await self.get(region)

    def client(self, session: RegionSession) -> BaremetalClient:
        return BaremetalClient(
            self._http,
            session,
            api_version=self._api_version,
            retry=self._retry,
        )

    async def call(self, region: str, fn: ClientCall[T]) -> T:
        """Run *fn* with a client for *region*, re-authenticating once on 401."""
        session = await self.get(region)
        try:
            return await fn(self.client(session))
        except BackendAuthError:
            session = await self.reauthenticate(region, session)
            return await fn(self.client(session))
