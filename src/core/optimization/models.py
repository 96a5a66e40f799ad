"""
Domain models for the image optimization pipeline.

These models describe what moves through a single optimization request:
where an object lives, the bytes we pulled out of it, the fixed policy we
apply, and what we report back. They have no dependencies on FastAPI, boto3
or Pillow.

Nothing here is persisted. Every instance belongs to one request and is
dropped when the request finishes.
"""

import posixpath
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class PipelineStage(Enum):
    """The ordered stages of one optimization request."""
    RESOLVE = "resolve"
    DOWNLOAD = "download"
    TRANSCODE = "transcode"
    DELETE = "delete"
    UPLOAD = "upload"


class InterlaceScheme(Enum):
    """Progressive/interlaced layout requested for an encoded image."""
    JPEG = "jpeg"  # progressive scan
    PNG = "png"    # Adam7
    GIF = "gif"    # four-pass row interlace
    NONE = "none"


@dataclass(frozen=True)
class StorageLocator:
    """
    A bucket and object key inside the object store.

    Frozen because a locator is a value. Two locators naming the same
    bucket and key are the same locator, whichever URL shape produced them.
    """
    container: str
    key: str

    def __post_init__(self) -> None:
        if not self.container:
            raise ValueError("Locator container cannot be empty")
        if not self.key:
            raise ValueError("Locator key cannot be empty")
        if self.key.startswith("/"):
            raise ValueError("Locator key cannot start with '/'")

    @property
    def extension(self) -> str:
        """Lowercased file extension of the key, without the dot."""
        return posixpath.splitext(self.key)[1].lstrip(".").lower()

    @property
    def stem_key(self) -> str:
        """The key with its extension removed: images/pic.png -> images/pic"""
        return posixpath.splitext(self.key)[0]

    def with_container(self, container: str, key: Optional[str] = None) -> "StorageLocator":
        return StorageLocator(container=container, key=key if key is not None else self.key)

    def __str__(self) -> str:
        return f"s3://{self.container}/{self.key}"


_CONTENT_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "tif": "image/tiff",
    "tiff": "image/tiff",
    "bmp": "image/bmp",
}


@dataclass
class ImageBlob:
    """
    Encoded image bytes plus the format we believe they are in.

    For a downloaded object the hint comes from the key's extension and may
    be wrong or empty; the decoder sniffs the real format. For a transcoded
    result the hint is the format we just wrote.
    """
    data: bytes
    format_hint: str = ""
    interlace: InterlaceScheme = InterlaceScheme.NONE

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def content_type(self) -> str:
        return _CONTENT_TYPES.get(self.format_hint.lower(), "application/octet-stream")


@dataclass(frozen=True)
class OptimizationPolicy:
    """
    The fixed transcode policy.

    One process-wide instance (DEFAULT_POLICY) is used for every request.
    It is a dataclass rather than loose constants so the engine and tests
    can read the same values.
    """
    chroma_subsampling: tuple[int, int, int] = (4, 2, 0)
    strip_metadata: bool = True
    quality: int = 80
    colorspace: str = "sRGB"
    target_format: str = "WEBP"

    def __post_init__(self) -> None:
        if not 0 <= self.quality <= 100:
            raise ValueError("quality must be between 0 and 100")

    @property
    def target_extension(self) -> str:
        return self.target_format.lower()

    def interlace_for(self, format_hint: str) -> InterlaceScheme:
        """Pick the interlace scheme from the *source* format."""
        hint = format_hint.lower().lstrip(".")
        if hint in ("jpg", "jpeg"):
            return InterlaceScheme.JPEG
        if hint == "png":
            return InterlaceScheme.PNG
        if hint == "gif":
            return InterlaceScheme.GIF
        return InterlaceScheme.NONE


DEFAULT_POLICY = OptimizationPolicy()


@dataclass
class OptimizationResult:
    """What a successful optimization request produced."""
    public_url: str
    source: StorageLocator
    destination: StorageLocator
    original_size: int = 0
    optimized_size: int = 0
    interlace: InterlaceScheme = InterlaceScheme.NONE

    @property
    def bytes_saved(self) -> int:
        return self.original_size - self.optimized_size
