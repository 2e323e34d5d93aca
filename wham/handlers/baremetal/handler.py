"""Bare-metal handler — puts the node named in an alert into maintenance.

Each alert taken off the queue goes through:

1. severity filter (anything but the configured severities is discarded)
2. region from the ``region`` label
3. authenticated session for that region
4. node id from the ``server_id: <uuid>`` text in the ``meta`` annotation
5. node fetch and provision-state check
6. maintenance flag (PATCH), then maintenance reason (PUT)

Every failure is terminal for its alert only; the loop keeps running.
"""

from __future__ import annotations

import asyncio
import re

import httpx
import structlog

from wham.alertmanager.webhook import handle_webhook_alerts
from wham.api.server import API
from wham.core.types import Alert, Node
from wham.handlers.base import Handler, parse_handler_config
from wham.handlers.baremetal.config import BaremetalConfig
from wham.handlers.baremetal.exceptions import (
    MaintenanceUpdateError,
    NodeNotEligibleError,
    PartialMaintenanceError,
)
from wham.handlers.baremetal.session import RegionClientCache
from wham.handlers.exceptions import (
    MissingRegionError,
    MissingServerIdError,
    RemediationError,
)
from wham.handlers.registry import HandlerRegistry
from wham.metrics.registry import ALERTS_RECEIVED, REMEDIATIONS, Outcome

logger = structlog.stdlib.get_logger()

HANDLER_NAME = "baremetal"

_SERVER_ID_RE = re.compile(r"server_id: (([a-z0-9]*-){4}[a-z0-9]*)")


class BaremetalHandler(Handler):
    """Consumes alerts from ``/alerts<path>`` and flags nodes for maintenance."""

    name = HANDLER_NAME

    def __init__(
        self,
        config: BaremetalConfig,
        shutdown: asyncio.Event,
        http: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config
        self._shutdown = shutdown
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(
            timeout=httpx.Timeout(config.request_timeout_secs),
        )
        self._alerts: asyncio.Queue[Alert] = asyncio.Queue(maxsize=config.queue_size)
        self._severities = {s.upper() for s in config.severities}
        self._eligible = {s.lower() for s in config.eligible_states}
        self._cache = RegionClientCache(
            config.regions,
            self._http,
            service_type=config.service_type,
            interface=config.interface,
            api_version=config.api_version,
            retry=config.retry,
            handler_name=self.name,
        )
        self._log = logger.bind(component=f"{self.name}_handler")

    @property
    def config(self) -> BaremetalConfig:
        return self._config

    @property
    def alerts(self) -> asyncio.Queue[Alert]:
        return self._alerts

    @property
    def cache(self) -> RegionClientCache:
        return self._cache

    # ── Lifecycle ────────────────────────────────────────────────

    def attach(self, api: API) -> None:
        counter = ALERTS_RECEIVED.labels(handler=self.name)
        api.add_route(
            "*", self._config.path, handle_webhook_alerts(counter, self._alerts, self._shutdown)
        )

    async def run(self) -> None:
        self._log.info("handler_running", path=self._config.path, regions=self._cache.regions)
        while True:
            alert = await self._next_alert()
            if alert is None:
                self._log.info("handler_stopped", pending=self._alerts.qsize())
                return
            await self.handle(alert)

    async def _next_alert(self) -> Alert | None:
        """Wait for the next alert; None once shutdown is signalled."""
        if self._shutdown.is_set():
            return None
        get = asyncio.ensure_future(self._alerts.get())
        stop = asyncio.ensure_future(self._shutdown.wait())
        try:
            done, _ = await asyncio.wait({get, stop}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (get, stop):
                if not task.done():
                    task.cancel()
        if stop in done:
            return None
        return get.result()

    async def close(self) -> None:
        if self._owns_http and not self._http.is_closed:
            await self._http.aclose()

    # ── Per-alert processing ─────────────────────────────────────

    async def handle(self, alert: Alert) -> Outcome:
        """Process one alert. Never raises for per-alert failures."""
        log = self._log.bind(alertname=alert.name)
        severity = alert.severity
        log.debug("new_alert", service=alert.labels.get("service", ""), severity=severity)

        if severity.upper() not in self._severities:
            log.debug("no_action_on_severity", severity=severity)
            return self._count(Outcome.DISCARDED)

        region = alert.labels.get(self._config.region_label)
        node_id: str | None = None
        try:
            region = self.region_of(alert)
            await self._cache.get(region)
            node_id = self.server_id_of(alert)
            log.debug("found_server_id", node_id=node_id)
            outcome = await self.remediate(region, node_id)
        except NodeNotEligibleError as exc:
            log.warning("remediation_rejected", region=region, node_id=node_id, error=str(exc))
            outcome = Outcome.REJECTED
        except PartialMaintenanceError as exc:
            log.error("maintenance_reason_failed", region=region, node_id=node_id, error=str(exc))
            outcome = Outcome.PARTIAL
        except RemediationError as exc:
            log.error("remediation_failed", region=region, node_id=node_id, error=str(exc))
            outcome = Outcome.FAILED
        except Exception:
            log.exception("alert_processing_crashed", region=region, node_id=node_id)
            outcome = Outcome.FAILED
        return self._count(outcome)

    def _count(self, outcome: Outcome) -> Outcome:
        REMEDIATIONS.labels(handler=self.name, outcome=outcome.value).inc()
        return outcome

    def region_of(self, alert: Alert) -> str:
        region = alert.labels.get(self._config.region_label, "").strip()
        if not region:
            raise MissingRegionError(alert.name)
        return region

    def server_id_of(self, alert: Alert) -> str:
        """Extract the node id from the alert's meta text.

        The annotation is preferred; older rules carried ``meta`` as a label.
        """
        key = self._config.meta_annotation
        meta = alert.annotations.get(key) or alert.labels.get(key)
        if not meta:
            raise MissingServerIdError(alert.name)
        match = _SERVER_ID_RE.search(meta)
        if match is None:
            raise MissingServerIdError(alert.name)
        return match.group(1)

    async def remediate(self, region: str, node_id: str) -> Outcome:
        """Fetch the node and put it into maintenance.

        Raises:
            RemediationError: Any backend, precondition or update failure.
        """
        node = await self._cache.call(region, lambda c: c.get_node(node_id))
        return await self.set_node_in_maintenance(region, node)

    def check_eligible(self, node: Node) -> None:
        if node.provision_state.lower() not in self._eligible:
            raise NodeNotEligibleError(node.uuid, node.provision_state)

    async def set_node_in_maintenance(self, region: str, node: Node) -> Outcome:
        """Two-phase update: maintenance flag, then maintenance reason.

        A node already flagged with the configured reason is left alone. If the
        reason cannot be written after the flag was set, the node stays flagged
        and PartialMaintenanceError is raised.
        """
        self.check_eligible(node)
        reason = self._config.maintenance_reason
        log = self._log.bind(region=region, node_id=node.uuid)

        if node.maintenance and node.maintenance_reason == reason:
            log.info("maintenance_already_set")
            return Outcome.SKIPPED

        updated = await self._cache.call(region, lambda c: c.set_maintenance(node.uuid))
        if not updated.maintenance:
            raise MaintenanceUpdateError(node.uuid)
        log.info("node_maintenance_set")

        try:
            await self._cache.call(
                region, lambda c: c.set_maintenance_reason(node.uuid, reason)
            )
        except RemediationError as exc:
            raise PartialMaintenanceError(node.uuid, exc) from exc
        log.info("node_maintenance_reason_set")
        return Outcome.REMEDIATED


async def create_baremetal_handler(shutdown: asyncio.Event, raw: object) -> BaremetalHandler:
    """Factory registered under ``baremetal``.

    Validates the raw block against BaremetalConfig and, with ``eager_auth``,
    authenticates every region before returning.
    """
    config = parse_handler_config(HANDLER_NAME, BaremetalConfig, raw).with_env_region()
    handler = BaremetalHandler(config, shutdown)
    if config.eager_auth:
        try:
            await handler.cache.warm()
        except Exception:
            await handler.close()
            raise
    return handler


def register(registry: HandlerRegistry) -> None:
    registry.register(HANDLER_NAME, create_baremetal_handler)
