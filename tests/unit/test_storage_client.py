"""
Unit tests for the S3 object store.

A fake boto3 client stands in for S3. It raises real botocore exceptions,
so these tests check how vendor failures are translated into our storage
errors, and which parameters reach boto3.
"""

import io

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError
from botocore.response import StreamingBody

from src.core.optimization.errors import EmptyObjectError, NotFoundError, TransportError
from src.core.optimization.models import StorageLocator
from src.infrastructure.storage.client import (
    MockObjectStore,
    S3ObjectStore,
    StorageConfig,
    create_object_store,
)

pytestmark = pytest.mark.anyio

LOCATOR = StorageLocator(container="bucket1", key="path/to/img.jpg")


def _client_error(code: str, status: int, operation: str) -> ClientError:
    return ClientError(
        {"Error": {"Code": code, "Message": code}, "ResponseMetadata": {"HTTPStatusCode": status}},
        operation,
    )


class FakeS3Client:
    """Records calls; returns canned bodies or raises the configured error."""

    def __init__(self, body: bytes = b"", error: Exception | None = None) -> None:
        self.body = body
        self.error = error
        self.calls: list[tuple[str, dict]] = []

    def _call(self, name: str, params: dict):
        self.calls.append((name, params))
        if self.error is not None:
            raise self.error

    def get_object(self, **params):
        self._call("get_object", params)
        return {"Body": StreamingBody(io.BytesIO(self.body), len(self.body))}

    def put_object(self, **params):
        self._call("put_object", params)
        return {}

    def delete_object(self, **params):
        self._call("delete_object", params)
        return {}


def _store(client: FakeS3Client) -> S3ObjectStore:
    config = StorageConfig(access_key_id="testing", secret_access_key="testing")
    return S3ObjectStore(config, s3_client=client)


class TestDownload:

    async def test_returns_object_bytes(self):
        client = FakeS3Client(body=b"\xff\xd8image-bytes")

        data = await _store(client).download(LOCATOR)

        assert data == b"\xff\xd8image-bytes"
        assert client.calls == [("get_object", {"Bucket": "bucket1", "Key": "path/to/img.jpg"})]

    async def test_zero_bytes_is_an_error(self):
        with pytest.raises(EmptyObjectError):
            await _store(FakeS3Client(body=b"")).download(LOCATOR)

    @pytest.mark.parametrize("code", ["NoSuchKey", "NoSuchBucket", "404"])
    async def test_missing_object_is_not_found(self, code):
        client = FakeS3Client(error=_client_error(code, 404, "GetObject"))

        with pytest.raises(NotFoundError):
            await _store(client).download(LOCATOR)

    async def test_access_denied_is_transport_error(self):
        client = FakeS3Client(error=_client_error("AccessDenied", 403, "GetObject"))

        with pytest.raises(TransportError, match="AccessDenied"):
            await _store(client).download(LOCATOR)

    async def test_connection_failure_is_transport_error(self):
        client = FakeS3Client(error=EndpointConnectionError(endpoint_url="https://s3.example.test"))

        with pytest.raises(TransportError) as exc_info:
            await _store(client).download(LOCATOR)

        assert isinstance(exc_info.value.__cause__, EndpointConnectionError)

    async def test_single_attempt(self):
        """No retries at this layer."""
        client = FakeS3Client(error=_client_error("SlowDown", 503, "GetObject"))

        with pytest.raises(TransportError):
            await _store(client).download(LOCATOR)

        assert len(client.calls) == 1


class TestUpload:

    async def test_puts_object_with_content_type(self):
        client = FakeS3Client()

        await _store(client).upload(LOCATOR, b"webp-bytes", "image/webp")

        assert client.calls == [(
            "put_object",
            {
                "Bucket": "bucket1",
                "Key": "path/to/img.jpg",
                "Body": b"webp-bytes",
                "ContentType": "image/webp",
            },
        )]

    async def test_failure_is_transport_error(self):
        client = FakeS3Client(error=_client_error("InternalError", 500, "PutObject"))

        with pytest.raises(TransportError):
            await _store(client).upload(LOCATOR, b"webp-bytes", "image/webp")


class TestDelete:

    async def test_deletes_object(self):
        client = FakeS3Client()

        await _store(client).delete(LOCATOR)

        assert client.calls == [("delete_object", {"Bucket": "bucket1", "Key": "path/to/img.jpg"})]

    async def test_missing_bucket_is_not_found(self):
        client = FakeS3Client(error=_client_error("NoSuchBucket", 404, "DeleteObject"))

        with pytest.raises(NotFoundError):
            await _store(client).delete(LOCATOR)

    async def test_failure_is_transport_error(self):
        client = FakeS3Client(error=_client_error("AccessDenied", 403, "DeleteObject"))

        with pytest.raises(TransportError):
            await _store(client).delete(LOCATOR)


class TestMockStore:
    """The in-memory store follows the same contract."""

    async def test_round_trip(self):
        store = MockObjectStore()

        await store.upload(LOCATOR, b"data", "image/webp")

        assert await store.download(LOCATOR) == b"data"
        assert store.content_types[("bucket1", "path/to/img.jpg")] == "image/webp"

    async def test_missing_download(self):
        with pytest.raises(NotFoundError):
            await MockObjectStore().download(LOCATOR)

    async def test_missing_delete(self):
        with pytest.raises(NotFoundError):
            await MockObjectStore().delete(LOCATOR)

    async def test_delete_removes_object(self):
        store = MockObjectStore()
        store.put(LOCATOR, b"data")

        await store.delete(LOCATOR)

        assert not store.exists(LOCATOR)


class TestFactory:

    def test_mock_mode(self):
        assert isinstance(create_object_store(mock_mode=True), MockObjectStore)

    def test_requires_config_outside_mock_mode(self):
        with pytest.raises(ValueError, match="config is required"):
            create_object_store()

    def test_builds_s3_store(self):
        config = StorageConfig(access_key_id="testing", secret_access_key="testing")
        assert isinstance(create_object_store(config=config), S3ObjectStore)
