"""
Storage URL resolution.

Clients hand us whatever S3 URL they have lying around. Three shapes are
accepted and all of them resolve to the same StorageLocator:

    s3://bucket/path/to/img.jpg
    https://s3.ap-south-1.amazonaws.com/bucket/path/to/img.jpg   (path-style)
    https://bucket.s3.ap-south-1.amazonaws.com/path/to/img.jpg   (virtual-hosted)

Path-style and virtual-hosted URLs are told apart by the first host label:
if it is the service name, the bucket is in the path.
"""

from urllib.parse import unquote, urlsplit

from .errors import ResolveError, UnsupportedSchemeError
from .models import StorageLocator

STORAGE_SERVICE_NAME = "s3"
NATIVE_SCHEME = "s3"


def resolve_locator(raw_url: str) -> StorageLocator:
    """
    Parse a storage URL into a (container, key) locator.

    Raises:
        UnsupportedSchemeError: scheme is neither s3 nor https
        ResolveError: URL is malformed or names no bucket/key
    """
    if not raw_url or not raw_url.strip():
        raise ResolveError("Storage URL is empty")

    try:
        parts = urlsplit(raw_url.strip())
        host = _host_of(parts.netloc)
        path = unquote(parts.path, errors="strict")
    except UnicodeDecodeError as e:
        raise ResolveError(f"Storage URL path is not valid UTF-8: {raw_url}") from e
    except ValueError as e:
        raise ResolveError(f"Malformed storage URL: {e}") from e

    scheme = parts.scheme.lower()

    if scheme == NATIVE_SCHEME:
        container, key = host, path.lstrip("/")
    elif scheme == "https":
        first_label = host.split(".", 1)[0]
        if first_label.lower() == STORAGE_SERVICE_NAME:
            # bucket is the first path segment
            segments = path.split("/", 2)
            if len(segments) < 3:
                raise ResolveError(f"Storage URL has no object key: {raw_url}")
            container, key = segments[1], segments[2]
        else:
            container, key = first_label, path.lstrip("/")
    else:
        raise UnsupportedSchemeError(
            f"Unsupported storage URL scheme '{parts.scheme}': expected s3 or https"
        )

    try:
        return StorageLocator(container=container, key=key)
    except ValueError as e:
        raise ResolveError(f"Invalid storage URL {raw_url}: {e}") from e


def _host_of(netloc: str) -> str:
    """Host part of a netloc, without userinfo or port, case preserved."""
    host = netloc.rpartition("@")[2]
    return host.partition(":")[0]
