"""
Tubely API - FastAPI Application Entry Point.

Initializes the FastAPI application with CORS and request-size middleware,
registers the v1 API router, mounts the thumbnail assets directory, maps
pipeline errors onto JSON responses, and manages MongoDB connections through
startup/shutdown event handlers.

Run locally with:
    uvicorn tubely.main:app --reload --port 8091
"""

import logging

from datetime import UTC, datetime
from pathlib import Path

import uvicorn

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from tubely import __version__
from tubely.api.v1 import api_router
from tubely.config import get_settings
from tubely.core.database import close_db, init_db, ping_db
from tubely.exceptions import TubelyError, Unauthorized
from tubely.middleware.body_limit import (
    BodySizeLimitMiddleware,
    RequestBodyTooLarge,
    payload_too_large_response,
)
from tubely.utils.logger import setup_logging


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Loading
# =============================================================================

settings = get_settings()


# =============================================================================
# FastAPI Application Initialization
# =============================================================================

app = FastAPI(
    title="Tubely API",
    version=__version__,
    description="Video ingestion with fast-start remuxing and signed playback links",
    docs_url=None if settings.is_production else "/docs",
    redoc_url=None if settings.is_production else "/redoc",
    openapi_url=None if settings.is_production else "/openapi.json",
)


# =============================================================================
# Middleware
# =============================================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Outermost, so oversized bodies are refused before any other processing
app.add_middleware(BodySizeLimitMiddleware, max_body_size=settings.max_upload_size_bytes)


# =============================================================================
# Exception Handlers
# =============================================================================


@app.exception_handler(TubelyError)
async def tubely_error_handler(request: Request, exc: TubelyError) -> JSONResponse:
    """
    Render a pipeline error as ``{"error": code, "message": ..., "details": ...}``.

    Server-side failures (5xx) are logged with their cause; client errors
    were already logged where they were detected.
    """
    if exc.status_code >= 500:
        logger.error(
            "%s: %s",
            exc.error_code,
            exc.message,
            exc_info=exc.__cause__ or exc,
            extra={"path": request.url.path, **exc.details},
        )

    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthorized) else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


@app.exception_handler(RequestBodyTooLarge)
async def body_too_large_handler(request: Request, exc: RequestBodyTooLarge) -> JSONResponse:
    return payload_too_large_response(exc.max_body_size)


# =============================================================================
# Static Assets
# =============================================================================

app.mount(
    "/assets",
    StaticFiles(directory=settings.assets_root, check_dir=False),
    name="assets",
)


# =============================================================================
# Startup / Shutdown
# =============================================================================


@app.on_event("startup")
async def startup_event() -> None:
    """
    Configure logging, prepare the assets directory and connect to MongoDB.

    A database failure is logged but does not stop startup, so that
    ``/health`` can report it.
    """
    setup_logging(log_level=settings.log_level, json_logs=settings.json_logs)
    Path(settings.assets_root).mkdir(parents=True, exist_ok=True)

    try:
        await init_db(settings)
    except RuntimeError:
        logger.exception("Failed to initialize database connection")

    logger.info("Tubely API started on %s:%d", settings.host, settings.port)


@app.on_event("shutdown")
async def shutdown_event() -> None:
    await close_db()
    logger.info("Tubely API shutdown complete")


# =============================================================================
# Health Check Endpoint
# =============================================================================


@app.get("/health", tags=["health"])
async def health_check() -> dict:
    """
    Liveness probe with database reachability.

    Example Response:
        {
            "status": "healthy",
            "timestamp": "2025-01-15T10:30:00.000000+00:00",
            "service": "tubely",
            "version": "1.0.0",
            "database": "connected"
        }
    """
    database = "connected" if await ping_db() else "unavailable"
    return {
        "status": "healthy" if database == "connected" else "degraded",
        "timestamp": datetime.now(UTC).isoformat(),
        "service": settings.app_name,
        "version": __version__,
        "database": database,
    }


# =============================================================================
# API Router Registration
# =============================================================================

app.include_router(api_router, prefix="/api/v1")


if __name__ == "__main__":
    uvicorn.run(
        "tubely.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level,
    )
