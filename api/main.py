"""
Referral Capture Platform API - Main Application.

FastAPI application with CORS enabled for frontend communication.

The referral service is created once per application and injected into the
route handlers through `app.state`; pass your own to `create_app` to choose a
different store (tests do this).

The module builds no application at import time. Serve it with:

    uvicorn --factory api.main:create_app
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api import __version__
from api.models import ErrorResponse
from api.routers import referrals
from domain.errors import NotFound, ReferralError, StorageFailure, ValidationError
from repositories.config import Settings, build_storage, load_settings
from services.referral_service import ReferralService
from services.referral_store import ReferralStore

logger = logging.getLogger(__name__)

_STATUS_CODES = {
    ValidationError: 400,
    NotFound: 404,
    StorageFailure: 500,
}


def _error_response(status_code: int, error: str, kind: str, detail: str, fields=()) -> JSONResponse:
    body = ErrorResponse(
        error=error,
        kind=kind,
        detail=detail,
        fields=list(fields),
        status_code=status_code,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump())


async def handle_referral_error(request: Request, exc: ReferralError) -> JSONResponse:
    status_code = _STATUS_CODES.get(type(exc), 500)
    if isinstance(exc, ValidationError):
        return _error_response(status_code, "Invalid request", exc.kind, exc.message, exc.fields)
    if isinstance(exc, NotFound):
        return _error_response(status_code, "Referral not found", exc.kind, exc.message)
    return _error_response(status_code, "Storage failure", exc.kind, exc.message)


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part != "body"]
        if location and location[0] not in fields:
            fields.append(location[0])
    logger.warning("Malformed referral request", extra={"fields": fields})
    return _error_response(
        400,
        "Invalid request",
        ValidationError.kind,
        "Request body is malformed or has fields of the wrong type",
        fields,
    )


def build_referral_service(settings: Settings) -> ReferralService:
    store = ReferralStore(build_storage(settings))
    return ReferralService(store, restrict_update_fields=settings.restrict_update_fields)


def create_app(
    service: Optional[ReferralService] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    """Create the FastAPI application, building the service from settings if not given."""

    settings = settings or load_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title="Referral Capture Platform API",
        description="REST API for capturing referrals and managing the referral pipeline",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Origins come from REFERRAL_CORS_ORIGINS; "*" by default for the demo form
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.referral_service = service or build_referral_service(settings)
    logger.info(f"Referral storage backend: {settings.storage_backend}")

    app.add_exception_handler(ReferralError, handle_referral_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)

    @app.get("/health", tags=["Health"])
    def health_check():
        """
        Health check endpoint.

        Returns the API status and version.
        """
        return {
            "status": "healthy",
            "version": __version__,
            "service": "referral-capture-api"
        }

    @app.get("/", tags=["Root"])
    def root():
        """
        Root endpoint with API information.
        """
        return {
            "message": "Referral Capture Platform API",
            "version": __version__,
            "docs": "/docs",
            "health": "/health"
        }

    app.include_router(referrals.router, tags=["Referrals"])

    return app

