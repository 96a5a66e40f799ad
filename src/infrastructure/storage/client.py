"""
Object storage client for images.

Implements the ObjectStore protocol against AWS S3 (or any S3-compatible
store reachable through an endpoint URL) with boto3, plus an in-memory mock
for local development.

Each operation is one boto3 call. We don't add retries here: whatever the
botocore transport does by default is what we get, and every failure is
surfaced to the caller as a domain StorageError.

The boto3 client is created once and shared by every request. boto3 clients
are safe to use from several threads as long as nobody mutates them, and we
never do after construction.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Optional

from botocore.exceptions import BotoCoreError, ClientError

from ...core.optimization.errors import (
    EmptyObjectError,
    NotFoundError,
    StorageError,
    TransportError,
)
from ...core.optimization.models import StorageLocator
from ...core.optimization.optimizer import ObjectStore

logger = logging.getLogger(__name__)

# S3 error codes that mean "there is nothing there"
_NOT_FOUND_CODES = frozenset({"NoSuchKey", "NoSuchBucket", "NotFound", "404"})


@dataclass
class StorageConfig:
    """
    Configuration for S3-compatible storage.

    Using a dataclass instead of raw parameters means:
    - Configuration is explicit and documented
    - Easy to validate at construction time
    - Simple to create test configurations
    """
    access_key_id: str
    secret_access_key: str
    region: str = "ap-south-1"
    endpoint_url: Optional[str] = None  # None means AWS itself


class S3ObjectStore:
    """
    S3 object store.

    All methods are async to match the ObjectStore protocol. boto3 is
    synchronous, so each call runs in a worker thread and the event loop
    keeps serving other requests meanwhile.
    """

    def __init__(self, config: StorageConfig, s3_client: Any = None) -> None:
        """
        Initialize with a boto3 S3 client.

        Pass s3_client to reuse an already configured client (tests hand in
        a stubbed one). Otherwise one is built from config.
        """
        self._config = config

        if s3_client is None:
            import boto3
            from botocore.config import Config

            boto_config = Config(
                signature_version="s3v4",
                # S3-compatible stores behind a custom endpoint rarely do
                # virtual-hosted buckets
                s3={"addressing_style": "path" if config.endpoint_url else "auto"},
            )

            s3_client = boto3.client(
                "s3",
                endpoint_url=config.endpoint_url,
                aws_access_key_id=config.access_key_id,
                aws_secret_access_key=config.secret_access_key,
                region_name=config.region,
                config=boto_config,
            )

        self._s3_client = s3_client

        logger.info(
            "Initialized S3 storage client",
            extra={
                "region": config.region,
                "endpoint": config.endpoint_url or "aws",
            }
        )

    async def download(self, locator: StorageLocator) -> bytes:
        """Download an object's bytes."""
        try:
            data = await asyncio.to_thread(self._get_object, locator)
        except (BotoCoreError, ClientError) as e:
            raise self._translate_error(e, "Download", locator) from e

        if not data:
            logger.warning(
                "Downloaded empty object",
                extra={"bucket": locator.container, "key": locator.key}
            )
            raise EmptyObjectError(f"Object is empty: {locator}")

        logger.debug(
            "Downloaded object",
            extra={
                "bucket": locator.container,
                "key": locator.key,
                "size_bytes": len(data),
            }
        )

        return data

    async def upload(
        self,
        locator: StorageLocator,
        data: bytes,
        content_type: str = "application/octet-stream",
    ) -> None:
        """Create or replace an object."""
        try:
            await asyncio.to_thread(
                self._s3_client.put_object,
                Bucket=locator.container,
                Key=locator.key,
                Body=data,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as e:
            raise self._translate_error(e, "Upload", locator) from e

        logger.debug(
            "Uploaded object",
            extra={
                "bucket": locator.container,
                "key": locator.key,
                "size_bytes": len(data),
                "content_type": content_type,
            }
        )

    async def delete(self, locator: StorageLocator) -> None:
        """
        Delete an object.

        S3 answers 204 for keys that don't exist, so NotFoundError only
        shows up when the bucket itself is missing.
        """
        try:
            await asyncio.to_thread(
                self._s3_client.delete_object,
                Bucket=locator.container,
                Key=locator.key,
            )
        except (BotoCoreError, ClientError) as e:
            raise self._translate_error(e, "Delete", locator) from e

        logger.debug(
            "Deleted object",
            extra={"bucket": locator.container, "key": locator.key}
        )

    def _get_object(self, locator: StorageLocator) -> bytes:
        response = self._s3_client.get_object(
            Bucket=locator.container,
            Key=locator.key,
        )
        body = response["Body"]
        try:
            return body.read()
        finally:
            body.close()

    def _translate_error(
        self,
        error: Exception,
        action: str,
        locator: StorageLocator,
    ) -> StorageError:
        """Map a botocore failure onto our storage errors."""
        if isinstance(error, ClientError):
            code = str(error.response.get("Error", {}).get("Code", ""))
            if code in _NOT_FOUND_CODES:
                logger.warning(
                    f"{action} target not found",
                    extra={"bucket": locator.container, "key": locator.key, "code": code}
                )
                return NotFoundError(f"{action} failed: object not found: {locator}")

        logger.error(
            f"{action} failed",
            extra={"bucket": locator.container, "key": locator.key, "error": str(error)}
        )
        return TransportError(f"{action} failed for {locator}: {error}")


# ---------------------------------------------------------------------------
# Mock Storage for Local Development
# ---------------------------------------------------------------------------

class MockObjectStore:
    """
    In-memory object store for local development.

    Objects live in a dict keyed by (bucket, key). Deleting a missing object
    raises NotFoundError, which is stricter than S3 and catches ordering
    bugs early.

    Not suitable for production, but perfect for development and testing.
    """

    def __init__(self) -> None:
        self._objects: dict[tuple[str, str], bytes] = {}
        self.content_types: dict[tuple[str, str], str] = {}
        logger.info("Initialized mock storage client (in-memory)")

    def put(self, locator: StorageLocator, data: bytes) -> None:
        """Seed an object synchronously."""
        self._objects[(locator.container, locator.key)] = data

    def get(self, locator: StorageLocator) -> Optional[bytes]:
        return self._objects.get((locator.container, locator.key))

    def exists(self, locator: StorageLocator) -> bool:
        return (locator.container, locator.key) in self._objects

    async def download(self, locator: StorageLocator) -> bytes:
        data = self.get(locator)
        if data is None:
            raise NotFoundError(f"Download failed: object not found: {locator}")
        if not data:
            raise EmptyObjectError(f"Object is empty: {locator}")
        return data

    async def upload(
        self,
        locator: StorageLocator,
        data: bytes,
        content_type: str = "application/octet-stream",
    ) -> None:
        self.put(locator, data)
        self.content_types[(locator.container, locator.key)] = content_type

        logger.debug(
            "Stored object in mock storage",
            extra={"bucket": locator.container, "key": locator.key, "size_bytes": len(data)}
        )

    async def delete(self, locator: StorageLocator) -> None:
        if not self.exists(locator):
            raise NotFoundError(f"Delete failed: object not found: {locator}")
        del self._objects[(locator.container, locator.key)]
        self.content_types.pop((locator.container, locator.key), None)


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

def create_object_store(
    config: Optional[StorageConfig] = None,
    mock_mode: bool = False,
) -> ObjectStore:
    """
    Create the object store based on configuration.

    Args:
        config: Storage configuration (required if not mock_mode)
        mock_mode: If True, return the in-memory store

    Returns:
        ObjectStore implementation (S3 or Mock)
    """
    if mock_mode:
        return MockObjectStore()

    if config is None:
        raise ValueError("config is required when not in mock mode")

    return S3ObjectStore(config)
