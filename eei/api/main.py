"""
FastAPI application entry point.

A thin HTTP adapter over the batch orchestrator, the single-URL auditor and
the drift history. No audit logic lives here.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from arq import create_pool
from arq.connections import RedisSettings
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from eei.api.dependencies import AppServices
from eei.api.routes import audit, batches, drift, health
from eei.core.config import settings
from eei.core.exceptions import (
    EEIError,
    InputError,
    JobConflictError,
    JobNotFoundError,
)
from eei.core.logging import configure_logging
from eei.db.store import StoreError

configure_logging(
    json_logs=not settings.debug,  # JSON in production, console in dev
    log_level="DEBUG" if settings.debug else "INFO",
)

logger = structlog.get_logger()


def _error(status_code: int, message: str, error_type: str, details: dict | None = None) -> JSONResponse:
    body: dict = {"message": message, "type": error_type}
    if details is not None:
        body["details"] = details
    return JSONResponse(status_code=status_code, content={"error": body})


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    logger.info("Starting EEI Auditor API", version=settings.app_version)

    built_here = getattr(app.state, "services", None) is None
    if built_here:
        arq_pool = None
        try:
            arq_pool = await create_pool(RedisSettings.from_dsn(str(settings.redis_url)))
        except Exception as e:
            logger.warning("Worker queue unavailable, batches advance via API only", error=str(e))
        app.state.services = AppServices.build(settings, arq_pool=arq_pool)

    yield

    logger.info("Shutting down EEI Auditor API")
    if built_here:
        await app.state.services.close()


def create_app(services: AppServices | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        services: pre-built services (tests); built in the lifespan otherwise
    """
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Entity audit and resumable batch auditing",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )
    if services is not None:
        app.state.services = services

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(health.router, tags=["Health"])
    app.include_router(batches.router, prefix="/api/v1/batches", tags=["Batches"])
    app.include_router(audit.router, prefix="/api/v1/audit", tags=["Audit"])
    app.include_router(drift.router, prefix="/api/v1/drift", tags=["Drift"])

    # Exception Handlers
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle FastAPI validation errors"""
        logger.warning("Validation error", url=str(request.url), errors=exc.errors())
        return _error(422, "Validation failed", "validation_error", {"errors": jsonable_encoder(exc.errors())})

    @app.exception_handler(InputError)
    async def input_exception_handler(request: Request, exc: InputError):
        """Handle invalid input"""
        logger.info("Invalid input", url=str(request.url), message=exc.message)
        return _error(400, exc.message, "input_error", exc.details)

    @app.exception_handler(JobNotFoundError)
    async def not_found_exception_handler(request: Request, exc: JobNotFoundError):
        """Handle unknown jobs"""
        logger.info("Job not found", url=str(request.url), message=exc.message)
        return _error(404, exc.message, "not_found_error", exc.details)

    @app.exception_handler(JobConflictError)
    async def conflict_exception_handler(request: Request, exc: JobConflictError):
        """Handle concurrent advance attempts"""
        logger.warning("Conflict error", url=str(request.url), message=exc.message)
        return _error(409, exc.message, "conflict_error", exc.details)

    @app.exception_handler(StoreError)
    async def store_exception_handler(request: Request, exc: StoreError):
        """Handle store outages"""
        logger.error("Store error", url=str(request.url), error=exc.message)
        return _error(503, "Job store unavailable", "store_error")

    @app.exception_handler(EEIError)
    async def app_exception_handler(request: Request, exc: EEIError):
        """Handle custom app exceptions"""
        logger.error("App error", url=str(request.url), message=exc.message)
        message = exc.message if settings.debug else "An unexpected error occurred"
        return _error(500, message, "application_error", exc.details if settings.debug else None)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions"""
        logger.error("Unexpected error", url=str(request.url), error=str(exc), exc_info=True)

        # Don't expose internal details in production
        message = str(exc) if settings.debug else "An unexpected error occurred"
        return _error(500, message, "internal_server_error")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "eei.api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
