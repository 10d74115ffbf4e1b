"""FastAPI application entrypoint."""
from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager, suppress

import httpx
from fastapi import FastAPI

from wgcasting.api.routes import register_routes
from wgcasting.core.config import Settings, get_settings
from wgcasting.core.logging import configure_logging
from wgcasting.obs import (
    PrometheusMiddleware,
    initialise_tracing,
    instrument_fastapi_app,
    metrics_router,
)
from wgcasting.services.jsonbin import JsonBinClient
from wgcasting.services.repository import BinIds, DocumentRepository, initialize_bins
from wgcasting.services.throttling import RateLimiter

logger = logging.getLogger(__name__)


def _build_lifespan(settings: Settings, repository: DocumentRepository | None):
    @asynccontextmanager
    async def lifespan(application: FastAPI) -> AsyncIterator[None]:
        if repository is not None:
            application.state.repository = repository
            yield
            return

        http_client = httpx.AsyncClient(timeout=settings.jsonbin_timeout_seconds)
        client = JsonBinClient(settings.jsonbin_base_url, settings.jsonbin_api_key, client=http_client)
        limiter = RateLimiter(settings.store_min_interval_seconds)
        scheduler_task: asyncio.Task[None] | None = None
        try:
            bins = await initialize_bins(
                client,
                BinIds.from_settings(settings),
                rate_limiter=limiter,
                auto_create=settings.jsonbin_auto_create,
                max_attempts=settings.store_max_attempts,
            )
            application.state.repository = DocumentRepository(
                client,
                bins,
                rate_limiter=limiter,
                max_attempts=settings.store_max_attempts,
                cache_freshness_seconds=settings.cache_freshness_seconds,
            )
            if settings.backup_schedule_enabled:
                from workers.backup_scheduler.main import run as run_backup_worker

                logger.info("starting in-process backup scheduler")
                scheduler_task = asyncio.create_task(run_backup_worker(settings), name="backup-scheduler")
            yield
        finally:
            if scheduler_task is not None:
                scheduler_task.cancel()
                with suppress(asyncio.CancelledError):
                    await scheduler_task
            await http_client.aclose()

    return lifespan


def create_application(
    settings: Settings | None = None,
    *,
    repository: DocumentRepository | None = None,
) -> FastAPI:
    """Application factory used by ASGI servers and tests.

    Passing ``repository`` skips bin initialisation, which tests use to run
    against a fake store.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    if settings.enable_tracing:
        initialise_tracing(service_name=settings.app_name, endpoint=settings.otel_exporter_endpoint)

    application = FastAPI(
        title=settings.app_name,
        version=settings.version,
        docs_url=settings.docs_url,
        redoc_url=settings.redoc_url,
        openapi_url=settings.openapi_url,
        lifespan=_build_lifespan(settings, repository),
    )

    if settings.enable_metrics:
        application.add_middleware(PrometheusMiddleware)
        application.include_router(metrics_router, prefix="/api")
    register_routes(application)

    if settings.enable_tracing:
        instrument_fastapi_app(application)

    return application


app = create_application()
