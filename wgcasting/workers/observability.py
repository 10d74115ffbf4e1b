"""Shared observability helpers for worker processes."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator

from opentelemetry.trace import Span

from wgcasting.core.config import Settings, get_settings
from wgcasting.core.logging import configure_logging
from wgcasting.obs import initialise_tracing, traced_span


def configure_worker(service_name: str, settings: Settings | None = None) -> Settings:
    """Configure logging and, when enabled, tracing for a worker process."""

    settings = settings or get_settings()
    configure_logging(settings.log_level)
    if settings.enable_tracing:
        initialise_tracing(
            service_name=service_name,
            endpoint=settings.otel_exporter_endpoint,
            instrument_logging=False,
        )
    return settings


@contextmanager
def worker_span(name: str, **attributes: Any) -> Iterator[Span]:
    """Span around one unit of worker work, tagged with the worker attributes."""

    with traced_span(name, component="worker", **attributes) as span:
        yield span


__all__ = ["configure_worker", "worker_span"]
