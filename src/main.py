"""
FastAPI application entry point.

This module creates and configures the FastAPI application.
Using an application factory pattern (create_app function) because:
- Easier to test with different configurations
- Explicit about initialization order

For local development:
    uvicorn src.main:app --reload --port 8080

For production:
    MODE=production gunicorn src.main:app -w 4 -k uvicorn.workers.UvicornWorker
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .api.dependencies import build_object_store
from .api.routes import health, optimize
from .config.settings import get_settings
from .core.optimization.errors import (
    ConfigurationError,
    DecodeError,
    NotFoundError,
    OptimizationError,
)

# Configure logging
logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=logging.INFO,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    On startup:
    - Refuse to start if required configuration is missing
    - Build the storage client once; every request shares it

    FastAPI calls this automatically when the application starts/stops.
    """
    settings = get_settings()

    logger.info(
        "Image Optimizer API starting",
        extra={
            "version": settings.api_version,
            "mode": settings.mode,
            "mock_mode": {"storage": settings.storage_mock_mode},
        }
    )

    missing_fields = settings.validate_required_fields()
    if missing_fields:
        logger.error(
            "Missing required configuration",
            extra={"missing_fields": missing_fields}
        )
        raise ConfigurationError(missing_fields)

    app.state.object_store = build_object_store(settings)

    yield

    app.state.object_store = None
    logger.info("Image Optimizer API shutting down")


def _status_for(error: OptimizationError) -> int:
    if isinstance(error, NotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(error, DecodeError):
        return status.HTTP_422_UNPROCESSABLE_ENTITY
    return status.HTTP_400_BAD_REQUEST


def create_app() -> FastAPI:
    """
    Application factory.

    Creates and configures the FastAPI application.
    """
    settings = get_settings()
    logging.getLogger().setLevel(settings.log_level.upper())

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description="""
        Replaces images stored in S3 with optimized WebP copies.

        ## Authentication

        `POST /optimize/` requires the shared secret in the `token` header.

        ## Workflow

        1. **Optimize**: `POST /optimize/` with `{"S3_URL": "s3://bucket/path/img.jpg"}`
           - The original is downloaded, re-encoded as WebP (quality 80, sRGB,
             metadata stripped) and deleted
           - The WebP copy is written to the optimized bucket under the
             original key minus its extension
           - The response carries the public URL of the copy
        """,
        docs_url=None if settings.is_production else "/docs",
        redoc_url=None if settings.is_production else "/redoc",
        lifespan=lifespan,
    )

    # Include routers
    app.include_router(
        health.router,
        prefix="/health",
        tags=["Health"],
    )

    app.include_router(
        optimize.router,
        prefix="/optimize",
        tags=["Optimize"],
    )

    # Liveness check kept at the root for existing monitors
    @app.get("/", tags=["Health"])
    async def ping():
        return {"message": "pong"}

    @app.exception_handler(OptimizationError)
    async def optimization_error_handler(request: Request, exc: OptimizationError):
        """Report which stage failed and why."""
        stage = exc.stage.value if exc.stage else None

        logger.warning(
            "Optimization failed",
            extra={
                "path": request.url.path,
                "stage": stage,
                "error_type": type(exc).__name__,
                "error": exc.message,
            }
        )

        return JSONResponse(
            status_code=_status_for(exc),
            content={"error": exc.message, "stage": stage},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Use the {"error": ...} envelope for framework errors too."""
        message = exc.detail
        if exc.status_code == status.HTTP_404_NOT_FOUND and message == "Not Found":
            message = "Page not found"

        return JSONResponse(
            status_code=exc.status_code,
            content={"error": message},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Malformed or incomplete request bodies are client errors."""
        problems = [
            f"{'.'.join(str(part) for part in error['loc'] if part != 'body') or 'body'}: {error['msg']}"
            for error in exc.errors()
        ]

        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "; ".join(problems) or "Invalid request"},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """
        Catch-all exception handler.

        In production, this prevents stack traces from leaking to clients.
        We log the full error server-side but return a generic message.
        """
        logger.error(
            "Unhandled exception",
            extra={
                "path": request.url.path,
                "method": request.method,
                "error": str(exc),
            },
            exc_info=exc,
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error"},
        )

    logger.info(
        "FastAPI application created",
        extra={
            "title": settings.api_title,
            "version": settings.api_version,
        }
    )

    return app


# Create the application instance
# This is what uvicorn/gunicorn will import
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "src.main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=not settings.is_production,
        log_level=settings.log_level.lower(),
    )
