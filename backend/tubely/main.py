"""
Tubely API - FastAPI Application Entry Point.

This module assembles the Tubely backend:
- Lifespan management for MongoDB, the S3 client, the in-memory thumbnail
  cache and the local assets directory
- CORS middleware for browser clients
- Request logging middleware adding X-Request-ID and X-Process-Time headers
- Upload body ceilings for the video and thumbnail routes
- A single exception handler rendering pipeline errors as
  {"error": ..., "message": ...}
- Static delivery of locally stored thumbnails under /assets
- Health and readiness endpoints

Run with the `tubely` console script, or:
    uvicorn tubely.main:app --host 0.0.0.0 --port 8091
"""

import asyncio
import logging
import time

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import Any
from uuid import uuid4

import uvicorn

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from tubely import __app_name__, __version__
from tubely.api.v1 import api_router
from tubely.config import Settings, get_settings
from tubely.core.database import close_db, get_db_client, init_db
from tubely.core.exceptions import TubelyError
from tubely.core.limits import UploadSizeLimitMiddleware
from tubely.core.storage import StorageClient
from tubely.services.thumbnail_cache import ThumbnailCache
from tubely.utils.logger import request_id_var, setup_logging


logger = logging.getLogger(__name__)

HTTP_ERROR_THRESHOLD = 400

VIDEO_UPLOAD_PATH = r"/api/videos/[^/]+/video"
THUMBNAIL_UPLOAD_PATH = r"/api/videos/[^/]+/thumbnail"


# =============================================================================
# Application Lifespan Management
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Startup: configure logging, connect MongoDB, build the storage client and
    thumbnail cache, create the assets directory.
    Shutdown: clear the cache and close MongoDB.

    A MongoDB failure aborts startup except when app_env is "testing".
    """
    settings: Settings = app.state.settings

    setup_logging(log_level=settings.log_level, json_logs=settings.json_logs)
    logger.info(
        "%s API starting",
        settings.app_name,
        extra={"environment": settings.app_env, "host": settings.host, "port": settings.port},
    )

    try:
        await init_db(settings)
    except RuntimeError:
        if not settings.is_testing:
            logger.exception("MongoDB initialization failed")
            raise
        logger.warning("Continuing without MongoDB in testing environment")

    app.state.storage = StorageClient(settings)
    app.state.thumbnail_cache = ThumbnailCache()
    Path(settings.assets_root).mkdir(parents=True, exist_ok=True)

    logger.info("%s API ready to accept requests", settings.app_name)

    yield

    logger.info("%s API shutting down", settings.app_name)
    app.state.thumbnail_cache.clear()
    await close_db()
    logger.info("%s API shutdown complete", settings.app_name)


# =============================================================================
# Middleware and Exception Handlers
# =============================================================================


async def request_logging_middleware(request: Request, call_next) -> Response:
    """
    Tag the request with an ID, time it, and log its outcome.

    An incoming X-Request-ID is reused so traces can span services.
    """
    request_id = request.headers.get("x-request-id") or uuid4().hex
    token = request_id_var.set(request_id)
    start_time = time.perf_counter()

    try:
        logger.debug("Request started: %s %s", request.method, request.url.path)
        try:
            response = await call_next(request)
        except Exception:
            logger.exception("Request failed: %s %s", request.method, request.url.path)
            raise

        process_time_ms = round((time.perf_counter() - start_time) * 1000, 2)
        response.headers["X-Process-Time"] = f"{process_time_ms}ms"
        response.headers["X-Request-ID"] = request_id

        log_level = logging.DEBUG if response.status_code < HTTP_ERROR_THRESHOLD else logging.WARNING
        logger.log(
            log_level,
            "Request completed: %s %s",
            request.method,
            request.url.path,
            extra={"status_code": response.status_code, "process_time_ms": process_time_ms},
        )
        return response
    finally:
        request_id_var.reset(token)


async def tubely_error_handler(request: Request, exc: TubelyError) -> JSONResponse:
    """Render a pipeline error. 5xx errors are logged with their cause."""
    if exc.status_code >= 500:
        logger.error(
            "%s on %s %s: %s",
            exc.error_code,
            request.method,
            request.url.path,
            exc.message,
            exc_info=exc.__cause__ or exc,
        )
    else:
        logger.info(
            "%s on %s %s: %s", exc.error_code, request.method, request.url.path, exc.message
        )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Internal server error on %s %s", request.method, request.url.path, exc_info=exc
    )
    return JSONResponse(
        status_code=500,
        content={"error": "internal_error", "message": "An unexpected error occurred"},
    )


# =============================================================================
# Core Endpoints
# =============================================================================


async def health_check() -> dict[str, Any]:
    """Liveness probe. Does not touch dependencies."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(UTC).isoformat(),
        "version": __version__,
        "service": f"{__app_name__} API",
    }


async def readiness_check(request: Request) -> JSONResponse:
    """
    Readiness probe checking MongoDB and the media bucket.

    Returns 503 until both are reachable.
    """
    checks: dict[str, bool] = {}

    try:
        checks["mongodb"] = await get_db_client().ping()
    except RuntimeError:
        checks["mongodb"] = False

    storage: StorageClient | None = getattr(request.app.state, "storage", None)
    checks["storage"] = storage is not None and await asyncio.to_thread(storage.bucket_exists)

    is_ready = all(checks.values())
    return JSONResponse(
        status_code=200 if is_ready else 503,
        content={
            "ready": is_ready,
            "timestamp": datetime.now(UTC).isoformat(),
            "checks": checks,
        },
    )


# =============================================================================
# FastAPI Application Factory
# =============================================================================


def create_app(settings: Settings | None = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Configuration to use. Defaults to get_settings().
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=f"{settings.app_name} API",
        description="Video and thumbnail ingestion with S3 publishing and signed delivery URLs.",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
        debug=settings.debug,
    )
    app.state.settings = settings

    # Innermost, so early 413 responses still pass through CORS and request logging
    app.add_middleware(
        UploadSizeLimitMiddleware,
        limits=[
            (VIDEO_UPLOAD_PATH, settings.max_video_upload_bytes),
            (THUMBNAIL_UPLOAD_PATH, settings.max_thumbnail_upload_bytes),
        ],
    )
    app.middleware("http")(request_logging_middleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Process-Time"],
    )

    app.add_exception_handler(TubelyError, tubely_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(api_router, prefix="/api")
    app.add_api_route("/health", health_check, methods=["GET"], tags=["health"])
    app.add_api_route("/ready", readiness_check, methods=["GET"], tags=["health"])
    app.mount(
        "/assets",
        StaticFiles(directory=settings.assets_root, check_dir=False),
        name="assets",
    )

    return app


app = create_app()


def run() -> None:
    """Console script entry point."""
    settings = get_settings()
    uvicorn.run(
        "tubely.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level,
    )


if __name__ == "__main__":
    run()
