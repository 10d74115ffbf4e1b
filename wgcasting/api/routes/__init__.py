"""Top level API router registration."""
from fastapi import APIRouter, FastAPI

from wgcasting.api.errors import register_exception_handlers
from wgcasting.api.routes import appointments, candidates, health, slot_notes, votes


def register_routes(application: FastAPI) -> None:
    """Register all API routers with the FastAPI application."""
    api_router = APIRouter(prefix="/api")

    api_router.include_router(health.router, tags=["health"])
    api_router.include_router(votes.router, tags=["votes"])
    api_router.include_router(candidates.router, prefix="/candidates", tags=["candidates"])
    api_router.include_router(slot_notes.router, prefix="/slot-notes", tags=["slot-notes"])
    api_router.include_router(appointments.router, prefix="/appointments", tags=["appointments"])

    application.include_router(api_router)
    register_exception_handlers(application)


__all__ = ["register_routes"]
