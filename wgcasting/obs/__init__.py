"""Observability utilities."""

from .metrics import (
    BACKUP_DURATION_SECONDS,
    BACKUP_RUN_COUNTER,
    QUEUE_DEPTH_GAUGE,
    REQUEST_COUNTER,
    REQUEST_ERROR_COUNTER,
    REQUEST_LATENCY_SECONDS,
    STORE_REQUEST_COUNTER,
    STORE_RETRY_COUNTER,
    PrometheusMiddleware,
    metrics_router,
    report_queue_depth,
)
from .tracing import initialise_tracing, instrument_fastapi_app, traced_span

__all__ = [
    "BACKUP_DURATION_SECONDS",
    "BACKUP_RUN_COUNTER",
    "PrometheusMiddleware",
    "QUEUE_DEPTH_GAUGE",
    "REQUEST_COUNTER",
    "REQUEST_ERROR_COUNTER",
    "REQUEST_LATENCY_SECONDS",
    "STORE_REQUEST_COUNTER",
    "STORE_RETRY_COUNTER",
    "metrics_router",
    "report_queue_depth",
    "initialise_tracing",
    "instrument_fastapi_app",
    "traced_span",
]
