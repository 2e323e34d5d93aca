"""Tests for wham/metrics — counters and the /metrics endpoint."""

from __future__ import annotations

from aiohttp import test_utils
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Counter

from wham.metrics.registry import REMEDIATIONS, Outcome, sample
from wham.metrics.server import create_metrics_app


class TestRegistry:
    def test_sample_defaults_to_zero(self) -> None:
        assert sample("wham_remediations_total", handler="nobody", outcome="remediated") == 0.0

    def test_sample_reads_counter(self) -> None:
        before = sample("wham_remediations_total", handler="exposition", outcome="failed")
        REMEDIATIONS.labels(handler="exposition", outcome=Outcome.FAILED.value).inc()
        after = sample("wham_remediations_total", handler="exposition", outcome="failed")
        assert after - before == 1.0


class TestMetricsEndpoint:
    async def test_serves_text_format(self) -> None:
        registry = CollectorRegistry()
        Counter("probe_hits", "hits", registry=registry).inc(3)
        app = create_metrics_app(registry)
        async with test_utils.TestClient(test_utils.TestServer(app)) as client:
            resp = await client.get("/metrics")
            assert resp.status == 200
            assert resp.headers["Content-Type"] == CONTENT_TYPE_LATEST
            body = await resp.text()
        assert "probe_hits_total 3.0" in body

    async def test_default_registry_lists_wham_counters(self) -> None:
        REMEDIATIONS.labels(handler="exposition", outcome=Outcome.SKIPPED.value).inc()
        async with test_utils.TestClient(test_utils.TestServer(create_metrics_app())) as client:
            body = await (await client.get("/metrics")).text()
        assert "wham_remediations_total" in body
        assert 'outcome="skipped"' in body
