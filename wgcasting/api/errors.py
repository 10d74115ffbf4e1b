"""Translate service exceptions into HTTP responses."""
from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from wgcasting.services.errors import BoardError
from wgcasting.services.jsonbin import StoreError

logger = logging.getLogger(__name__)


async def board_error_handler(request: Request, exc: BoardError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})


async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
    logger.error(
        "document store request failed",
        extra={"path": request.url.path, "error_type": type(exc).__name__},
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "The document store is currently unavailable"},
    )


def register_exception_handlers(application: FastAPI) -> None:
    application.add_exception_handler(BoardError, board_error_handler)  # type: ignore[arg-type]
    application.add_exception_handler(StoreError, store_error_handler)  # type: ignore[arg-type]


__all__ = ["register_exception_handlers"]
