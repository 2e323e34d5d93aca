"""Prometheus counters exposed on the metrics port."""

from __future__ import annotations

from enum import StrEnum

from prometheus_client import CollectorRegistry, Counter

REGISTRY = CollectorRegistry(auto_describe=True)


class Outcome(StrEnum):
    """Result of processing one alert in a handler's dispatch loop."""

    REMEDIATED = "remediated"
    SKIPPED = "skipped"
    DISCARDED = "discarded"
    REJECTED = "rejected"
    PARTIAL = "partial"
    FAILED = "failed"


ALERTS_RECEIVED = Counter(
    "wham_webhook_alerts_total",
    "Number of alerts received by a handler's webhook",
    ["handler"],
    registry=REGISTRY,
)

REMEDIATIONS = Counter(
    "wham_remediations_total",
    "Alerts processed by a handler, by outcome",
    ["handler", "outcome"],
    registry=REGISTRY,
)

REGION_AUTHENTICATIONS = Counter(
    "wham_region_authentications_total",
    "Successful backend authentications per region",
    ["handler", "region"],
    registry=REGISTRY,
)


def sample(name: str, **labels: str) -> float:
    """Current value of a sample in the wham registry, 0.0 if never observed."""
    value = REGISTRY.get_sample_value(name, labels)
    return value if value is not None else 0.0
