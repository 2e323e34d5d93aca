"""Alertmanager webhook receiver — decodes alert batches onto a handler queue."""

from __future__ import annotations

import asyncio

import structlog
from aiohttp import web
from prometheus_client import Counter
from pydantic import ValidationError

from wham.api.server import RouteHandler
from wham.core.types import Alert, AlertBatch

logger = structlog.stdlib.get_logger()


def to_json(status: int, message: str) -> web.Response:
    """Frame a response the way Alertmanager receivers expect it."""
    return web.json_response({"Status": status, "Message": message}, status=status)


def decode_alerts(body: bytes) -> list[Alert]:
    """Decode a webhook body into its alerts.

    The whole batch is validated before anything is returned, so a single
    malformed alert rejects the batch.

    Raises:
        ValueError: The body is not valid JSON or not an alert batch.
    """
    try:
        batch = AlertBatch.model_validate_json(body)
    except ValidationError as exc:
        raise ValueError(_describe(exc)) from exc
    return list(batch.alerts)


def _describe(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return str(exc)
    first = errors[0]
    loc = ".".join(str(p) for p in first["loc"])
    message = f"{loc}: {first['msg']}" if loc else first["msg"]
    if len(errors) > 1:
        message += f" (and {len(errors) - 1} more errors)"
    return message


async def _enqueue(
    alerts: asyncio.Queue[Alert], alert: Alert, shutdown: asyncio.Event
) -> bool:
    """Put *alert* on the queue unless shutdown fires first."""
    if shutdown.is_set():
        return False
    put = asyncio.ensure_future(alerts.put(alert))
    stop = asyncio.ensure_future(shutdown.wait())
    try:
        await asyncio.wait({put, stop}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for pending in (put, stop):
            if not pending.done():
                pending.cancel()
    return put.done() and not put.cancelled()


def handle_webhook_alerts(
    counter: Counter, alerts: asyncio.Queue[Alert], shutdown: asyncio.Event
) -> RouteHandler:
    """Build the aiohttp handler feeding *alerts*.

    ``counter`` is incremented once per enqueued alert. Enqueueing blocks when
    the queue is full, so a stalled consumer delays the webhook response. Once
    *shutdown* is set the rest of the batch is dropped and the request is
    answered with 503.
    """

    async def handler(request: web.Request) -> web.Response:
        if request.method != "POST":
            return to_json(405, "method not allowed")

        body = await request.read()
        if not body.strip():
            return to_json(400, "empty request body")

        try:
            decoded = decode_alerts(body)
        except ValueError as exc:
            logger.info("webhook_decode_failed", error=str(exc))
            return to_json(400, str(exc))

        for index, alert in enumerate(decoded):
            logger.debug(
                "alert_received",
                status=alert.status,
                labels=alert.labels,
                annotations=alert.annotations,
            )
            if not await _enqueue(alerts, alert, shutdown):
                logger.warning("webhook_shutting_down", dropped=len(decoded) - index)
                return to_json(503, "shutting down")
            counter.inc()

        return to_json(200, "success")

    return handler
