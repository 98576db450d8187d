"""Application entrypoint for the FastAPI service."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from dealmatch.api.v1.router import get_api_router
from dealmatch.core.config import get_config
from dealmatch.core.exceptions import (
    DealMatchException,
    NotFoundError,
    ResolutionSetupError,
    ReviewStateError,
    ValidationError,
)
from dealmatch.schemas.common import ErrorEnvelope

logger = logging.getLogger(__name__)

ERROR_STATUS = (
    (NotFoundError, status.HTTP_404_NOT_FOUND, "not_found"),
    (ReviewStateError, status.HTTP_409_CONFLICT, "review_state_conflict"),
    (ValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY, "validation_error"),
    (ResolutionSetupError, status.HTTP_503_SERVICE_UNAVAILABLE, "resolution_setup_error"),
)


def _error_response(exc: DealMatchException) -> JSONResponse:
    for exc_type, code, error_code in ERROR_STATUS:
        if isinstance(exc, exc_type):
            break
    else:
        code, error_code = status.HTTP_500_INTERNAL_SERVER_ERROR, "internal_error"
    envelope = ErrorEnvelope(error_code=error_code, detail=str(exc))
    return JSONResponse(status_code=code, content=envelope.model_dump())


def create_app() -> FastAPI:
    """Create the FastAPI application."""
    cfg = get_config()
    app = FastAPI(title=cfg.APP_NAME, version=cfg.APP_VERSION)
    app.include_router(get_api_router())

    @app.exception_handler(DealMatchException)
    async def handle_domain_error(request: Request, exc: DealMatchException) -> JSONResponse:
        logger.warning(
            "api.request.failed",
            extra={"event": "api.request.failed", "status": type(exc).__name__},
        )
        return _error_response(exc)

    @app.get("/")
    def root() -> dict:
        return {"service": cfg.APP_NAME, "version": cfg.APP_VERSION, "api_prefix": cfg.API_PREFIX}

    return app


# Exposes the ASGI app for `uvicorn dealmatch.main:app`.
app = create_app()
