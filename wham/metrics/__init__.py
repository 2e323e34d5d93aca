"""Prometheus counters and the pull endpoint."""

from wham.metrics.registry import (
    ALERTS_RECEIVED,
    REGION_AUTHENTICATIONS,
    REGISTRY,
    REMEDIATIONS,
    Outcome,
)
from wham.metrics.server import create_metrics_app, start_metrics_server

__all__ = [
    "ALERTS_RECEIVED",
    "REGION_AUTHENTICATIONS",
    "REGISTRY",
    "REMEDIATIONS",
    "Outcome",
    "create_metrics_app",
    "start_metrics_server",
]
