"""
Error taxonomy for the optimization pipeline.

Every failure the pipeline can surface to a caller is an OptimizationError.
The orchestrator stamps the failing stage onto the error before it propagates,
so the API layer can report where a request stopped without inspecting types.

Infrastructure code translates vendor exceptions (botocore, Pillow) into these
classes. Nothing above the infrastructure layer should catch a vendor error.
"""

from typing import Optional

from .models import PipelineStage


class OptimizationError(Exception):
    """Base class for all pipeline failures."""

    def __init__(self, message: str, stage: Optional[PipelineStage] = None) -> None:
        super().__init__(message)
        self.message = message
        self.stage = stage


# ---------------------------------------------------------------------------
# Resolve
# ---------------------------------------------------------------------------

class ResolveError(OptimizationError):
    """Raised when a storage URL cannot be turned into a locator."""
    pass


class UnsupportedSchemeError(ResolveError):
    """Raised for URL schemes other than s3:// and https://."""
    pass


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------

class StorageError(OptimizationError):
    """Raised when an object store operation fails."""
    pass


class NotFoundError(StorageError):
    """The object (or its bucket) does not exist."""
    pass


class TransportError(StorageError):
    """The store was unreachable or rejected the request."""
    pass


class EmptyObjectError(StorageError):
    """The object exists but holds zero bytes."""
    pass


# ---------------------------------------------------------------------------
# Transcode
# ---------------------------------------------------------------------------

class TranscodeError(OptimizationError):
    """Raised when an image cannot be re-encoded."""
    pass


class DecodeError(TranscodeError):
    """Input bytes are empty, corrupt, or not a supported image."""
    pass


class EncodeError(TranscodeError):
    """The optimization policy could not be applied to the decoded image."""
    pass


# ---------------------------------------------------------------------------
# Startup
# ---------------------------------------------------------------------------

class ConfigurationError(Exception):
    """
    Required configuration is missing.

    Not an OptimizationError: this is raised once at startup and stops the
    process, it never reaches a request.
    """

    def __init__(self, missing_fields: list[str]) -> None:
        self.missing_fields = missing_fields
        super().__init__(
            f"Missing required configuration: {', '.join(missing_fields)}"
        )
