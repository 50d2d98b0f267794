"""FastAPI application factory."""

from __future__ import annotations

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tms_shared import __version__
from tms_shared.config import settings
from tms_shared.db import get_supabase_client

from tms_core.auth.session import AuthProvider, SupabaseAuthProvider
from tms_core.context import ContextRegistry
from tms_core.errors import (
    AuthError,
    EntityNotFoundError,
    MutationError,
    OfferLockedError,
    OfferTransitionError,
    PermissionDeniedError,
    TrackMyStartupError,
)
from tms_core.utils.logging import configure_logging

from tms_api.middleware.logging import LoggingMiddleware
from tms_api.responses import error_response
from tms_api.routers.health import router as health_router
from tms_api.routers.v1 import v1_router

logger = structlog.get_logger()

# First match wins, so subclasses come before their bases
ERROR_STATUS: tuple[tuple[type[TrackMyStartupError], int], ...] = (
    (PermissionDeniedError, 403),
    (AuthError, 401),
    (EntityNotFoundError, 404),
    (OfferTransitionError, 409),
    (OfferLockedError, 409),
    (MutationError, 400),
)


def status_for(exc: TrackMyStartupError) -> int:
    return next((status for cls, status in ERROR_STATUS if isinstance(exc, cls)), 500)


async def _app_error_handler(request: Request, exc: TrackMyStartupError) -> JSONResponse:
    status = status_for(exc)
    log = logger.warning if status < 500 else logger.error
    log("request_rejected", code=exc.code, status=status, error=exc.message)
    return JSONResponse(
        status_code=status,
        content=error_response(exc.code, exc.message, details=exc.details),
    )


def _supabase_provider(access_token: str | None) -> AuthProvider:
    return SupabaseAuthProvider(get_supabase_client(service_role=True), access_token)


def create_app(registry: ContextRegistry | None = None) -> FastAPI:
    configure_logging()

    app = FastAPI(
        title="TrackMyStartup Session API",
        description="Auth orchestration, role-scoped data and view routing for TrackMyStartup",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )
    app.state.registry = (
        registry if registry is not None else ContextRegistry(_supabase_provider)
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(LoggingMiddleware)

    app.add_exception_handler(TrackMyStartupError, _app_error_handler)

    # Routers
    app.include_router(health_router)
    app.include_router(v1_router)

    logger.info("app_created", cors_origins=settings.cors_origins_list)
    return app


app = create_app()
