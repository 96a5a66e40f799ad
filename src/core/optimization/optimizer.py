"""
The optimization pipeline.

One request walks these stages, stopping at the first failure:

    Resolve -> Download -> Transcode -> DeleteOriginal -> UploadResult -> Done

The original object is deleted *before* the optimized one is uploaded. If the
upload then fails, the source image is gone and nothing replaces it. There is
no rollback. This ordering is the service's established behavior and callers
depend on the original disappearing; we keep it and log the loss loudly
instead of quietly reordering.

This module doesn't know about HTTP, boto3 or Pillow. Storage comes in
through the ObjectStore protocol and transcoding through TranscodeEngine.
"""

import asyncio
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Protocol
from urllib.parse import quote

from .errors import OptimizationError
from .locator import resolve_locator
from .models import ImageBlob, OptimizationResult, PipelineStage, StorageLocator
from .transcode import TranscodeEngine

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocols (interfaces)
# ---------------------------------------------------------------------------

class ObjectStore(Protocol):
    """
    Interface for the remote object store.

    Each call is a single attempt. Implementations raise NotFoundError,
    TransportError or EmptyObjectError and never retry.
    """

    async def download(self, locator: StorageLocator) -> bytes:
        """Return the object's bytes."""
        ...

    async def upload(
        self,
        locator: StorageLocator,
        data: bytes,
        content_type: str = "application/octet-stream",
    ) -> None:
        """Create or replace the object."""
        ...

    async def delete(self, locator: StorageLocator) -> None:
        """Remove the object."""
        ...


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class OptimizerConfig:
    """Where optimized images go and how their URLs are built."""
    optimized_container: str
    public_base_url: str

    def __post_init__(self) -> None:
        if not self.optimized_container:
            raise ValueError("optimized_container is required")
        if not self.public_base_url:
            raise ValueError("public_base_url is required")


def output_key_for(locator: StorageLocator) -> str:
    """Optimized objects keep the source key minus its extension."""
    return locator.stem_key


@contextmanager
def _stage(stage: PipelineStage) -> Iterator[None]:
    """Tag any OptimizationError raised inside the block with its stage."""
    try:
        yield
    except OptimizationError as e:
        if e.stage is None:
            e.stage = stage
        raise


class ImageOptimizer:
    """
    Runs the optimization pipeline for one storage URL at a time.

    Stateless between calls. The store and engine are shared read-only,
    so one optimizer can serve concurrent requests.
    """

    def __init__(
        self,
        store: ObjectStore,
        engine: TranscodeEngine,
        config: OptimizerConfig,
    ) -> None:
        self._store = store
        self._engine = engine
        self._config = config

    def public_url_for(self, locator: StorageLocator) -> str:
        base = self._config.public_base_url.rstrip("/")
        return f"{base}/{locator.container}/{quote(locator.key, safe='/')}"

    async def optimize(self, raw_url: str) -> OptimizationResult:
        """
        Replace the image at raw_url with its optimized version.

        Raises:
            OptimizationError: any stage failed; `stage` says which one
        """
        source, destination, original, optimized = await self._fetch_and_transcode(raw_url)

        with _stage(PipelineStage.DELETE):
            await self._store.delete(source)

        try:
            with _stage(PipelineStage.UPLOAD):
                await self._store.upload(destination, optimized.data, optimized.content_type)
        except OptimizationError as e:
            # the original is already gone at this point
            logger.critical(
                "Upload failed after original was deleted; source image lost",
                extra={
                    "source": str(source),
                    "destination": str(destination),
                    "error": e.message,
                }
            )
            raise

        result = OptimizationResult(
            public_url=self.public_url_for(destination),
            source=source,
            destination=destination,
            original_size=len(original),
            optimized_size=optimized.size,
            interlace=optimized.interlace,
        )

        logger.info(
            "Image optimized",
            extra={
                "source": str(source),
                "url": result.public_url,
                "original_size": result.original_size,
                "optimized_size": result.optimized_size,
            }
        )

        return result

    async def preview(self, raw_url: str) -> tuple[StorageLocator, ImageBlob]:
        """
        Resolve, download and transcode without touching stored objects.

        Returns the locator the result would be written to and the optimized
        image. Used by the command line dry run.
        """
        _, destination, _, optimized = await self._fetch_and_transcode(raw_url)
        return destination, optimized

    async def _fetch_and_transcode(
        self,
        raw_url: str,
    ) -> tuple[StorageLocator, StorageLocator, bytes, ImageBlob]:
        with _stage(PipelineStage.RESOLVE):
            source = resolve_locator(raw_url)
            destination = StorageLocator(
                container=self._config.optimized_container,
                key=output_key_for(source),
            )

        logger.info(
            "Optimizing image",
            extra={"source": str(source), "destination": str(destination)}
        )

        with _stage(PipelineStage.DOWNLOAD):
            original = await self._store.download(source)

        with _stage(PipelineStage.TRANSCODE):
            optimized = await asyncio.to_thread(
                self._engine.transcode, original, source.extension
            )

        return source, destination, original, optimized
