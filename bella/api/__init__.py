"""
REST API Layer for Bella Planner.

Provides:
- FastAPI application with CORS middleware
- Planning conversation, plan, daily-assistant and Slack webhook endpoints
- Exception handlers mapping Bella exceptions to status codes
- API versioning under /api/v1 prefix
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from bella.api.routes import router
from bella.api.schemas import error_response
from bella.config.settings import Settings, get_settings
from bella.lib.database import init_db
from bella.lib.errors import INTERNAL_ERROR, VALIDATION_ERROR, classify_exception
from bella.lib.exceptions import BellaException
from bella.services.llm_client import get_llm_client
from bella.services.redis_service import get_redis_service

logger = logging.getLogger(__name__)

_ALLOWED_HEADERS: list[str] = [
    "Authorization",
    "Content-Type",
    "Accept",
    "X-Request-ID",
]


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    init_db()
    yield
    await get_redis_service().close()
    await get_llm_client().close()


def create_app(settings: Settings | None = None, init_database: bool = True) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Includes:
    - CORS middleware with origins from BELLA_CORS_ORIGINS
    - Exception handlers for Bella exceptions, request validation, and a catch-all
    - API v1 router with all endpoints
    - Root-level health check for load balancer probes
    - Production: /docs and /redoc disabled

    Returns:
        Configured FastAPI application instance.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Bella Planner",
        description="Weekly planning conversations and a daily assistant",
        version="0.1.0",
        docs_url=None if settings.is_production else "/docs",
        redoc_url=None if settings.is_production else "/redoc",
        lifespan=_lifespan if init_database else None,
    )

    # -------------------------------------------------------------------------
    # Exception handlers
    # -------------------------------------------------------------------------
    @app.exception_handler(BellaException)
    async def bella_exception_handler(request: Request, exc: BellaException) -> JSONResponse:
        code, status = classify_exception(exc)
        if status >= 500:
            logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc)
            return JSONResponse(status_code=status, content=error_response(code))
        logger.info("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc)
        return JSONResponse(status_code=status, content=error_response(code, str(exc)))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        fields = [".".join(str(part) for part in err.get("loc", ())) for err in exc.errors()]
        return JSONResponse(
            status_code=400,
            content=error_response(VALIDATION_ERROR, details={"fields": fields}),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content=error_response(INTERNAL_ERROR))

    # -------------------------------------------------------------------------
    # CORS Middleware
    # -------------------------------------------------------------------------
    cors_origins = list(settings.cors_origins)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=_ALLOWED_HEADERS,
    )
    if cors_origins:
        logger.info("CORS enabled for origins: %s", cors_origins)
    else:
        logger.info("CORS: no origins configured (restrictive default)")

    app.include_router(router)

    @app.get("/health")
    async def root_health_check() -> dict[str, str]:
        """Root health check for infrastructure probes."""
        return {"status": "ok"}

    return app


__all__ = ["create_app", "router"]
