from __future__ import annotations

import asyncio

from fastapi import FastAPI
from fastapi.testclient import TestClient

from wgcasting.obs import (
    QUEUE_DEPTH_GAUGE,
    PrometheusMiddleware,
    initialise_tracing,
    metrics_router,
    report_queue_depth,
    traced_span,
)
from wgcasting.services.write_queue import WriteSerializer


def _gauge_value(queue_name: str) -> float:
    sample_family = next(iter(QUEUE_DEPTH_GAUGE.collect()))
    sample = next(item for item in sample_family.samples if item.labels["queue_name"] == queue_name)
    return sample.value


def test_metrics_endpoint_exposes_counters() -> None:
    app = FastAPI()
    app.add_middleware(PrometheusMiddleware)
    app.include_router(metrics_router)

    client = TestClient(app)
    response = client.get("/metrics")

    assert response.status_code == 200
    assert "http_requests_total" in response.text
    assert "document_store_requests_total" in response.text


def test_report_queue_depth_updates_gauge() -> None:
    report_queue_depth("test-queue", 7)
    assert _gauge_value("test-queue") == 7


def test_write_serializer_reports_queue_depth() -> None:
    serializer = WriteSerializer(metrics_prefix="observability-test")
    observed: list[float] = []

    async def run() -> None:
        async with serializer.slot("main:bin"):
            observed.append(_gauge_value("observability-test:main:bin"))

    asyncio.run(run())
    observed.append(_gauge_value("observability-test:main:bin"))

    assert observed == [1, 0]


def test_traced_span_sets_attributes() -> None:
    initialise_tracing(service_name="unit-test-service")

    with traced_span("backup.run", strategy="local", bucket=None) as span:
        assert span.is_recording()
        attributes = dict(span.attributes)

    assert attributes == {"strategy": "local"}
