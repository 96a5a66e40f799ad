"""
FastAPI dependency injection.

Dependencies provide instances of services, clients, and configuration
to route handlers. Using dependency injection means:
- Routes don't instantiate their own dependencies (easier to test)
- Dependencies can be overridden in tests
- Configuration is centralized
- The storage client is built once at startup and shared, not rebuilt
  per request

Each dependency is a function that FastAPI calls when needed.
"""

import logging
import secrets
from functools import lru_cache
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import APIKeyHeader

from ..config.settings import Settings, get_settings
from ..core.optimization.optimizer import ImageOptimizer, ObjectStore, OptimizerConfig
from ..core.optimization.transcode import TranscodeEngine
from ..infrastructure.storage.client import StorageConfig, create_object_store

logger = logging.getLogger(__name__)

# Shared-secret header, named `token` for compatibility with existing callers
api_token_header = APIKeyHeader(name="token", auto_error=False)


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

async def verify_api_token(
    settings: Annotated[Settings, Depends(get_settings)],
    token: Optional[str] = Security(api_token_header),
) -> str:
    """
    Validate the shared-secret token from the request header.

    Runs before the request body is parsed, so a rejected request never
    reaches the pipeline.

    Raises 401 if the token is missing or wrong.
    """
    if not token:
        logger.warning("Request missing API token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="API token required",
        )

    if not settings.api_token or not secrets.compare_digest(
        token.encode("utf-8"), settings.api_token.encode("utf-8")
    ):
        logger.warning("Invalid API token attempt")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API token",
        )

    return token


# ---------------------------------------------------------------------------
# Service Dependencies
# ---------------------------------------------------------------------------

def build_object_store(settings: Settings) -> ObjectStore:
    """
    Create the object store described by settings.

    Called once from the application lifespan (and by the command line
    script). Requests get the shared instance through get_object_store.
    """
    if settings.storage_mock_mode:
        return create_object_store(mock_mode=True)

    config = StorageConfig(
        access_key_id=settings.aws_access_key_id,
        secret_access_key=settings.aws_secret_access_key,
        region=settings.aws_region,
        endpoint_url=settings.s3_endpoint_url,
    )
    return create_object_store(config=config)


def get_object_store(request: Request) -> ObjectStore:
    """Provide the object store created at startup."""
    store = getattr(request.app.state, "object_store", None)
    if store is None:
        raise RuntimeError("Object store not initialized; application lifespan did not run")
    return store


@lru_cache()
def get_transcode_engine() -> TranscodeEngine:
    """The engine is stateless, so one instance serves every request."""
    return TranscodeEngine()


def build_optimizer(
    settings: Settings,
    store: ObjectStore,
    engine: TranscodeEngine,
) -> ImageOptimizer:
    config = OptimizerConfig(
        optimized_container=settings.aws_bucket_name,
        public_base_url=settings.public_url_base,
    )
    return ImageOptimizer(store=store, engine=engine, config=config)


def get_image_optimizer(
    settings: Annotated[Settings, Depends(get_settings)],
    store: Annotated[ObjectStore, Depends(get_object_store)],
    engine: Annotated[TranscodeEngine, Depends(get_transcode_engine)],
) -> ImageOptimizer:
    """
    Provide an ImageOptimizer wired to the shared store and engine.

    The optimizer itself holds no request state, so building one per
    request is cheap.
    """
    return build_optimizer(settings, store, engine)


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

# These type aliases make route signatures cleaner
AuthenticatedCaller = Annotated[str, Depends(verify_api_token)]
ImageOptimizerDep = Annotated[ImageOptimizer, Depends(get_image_optimizer)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
