"""
Unit tests for storage URL resolution.

All three accepted URL shapes must land on the same bucket and key.
"""

import pytest

from src.core.optimization.errors import ResolveError, UnsupportedSchemeError
from src.core.optimization.locator import resolve_locator
from src.core.optimization.models import StorageLocator

EXPECTED = StorageLocator(container="bucket1", key="path/to/img.jpg")


class TestAcceptedShapes:
    """Each URL shape the service accepts."""

    def test_native_scheme(self):
        assert resolve_locator("s3://bucket1/path/to/img.jpg") == EXPECTED

    def test_path_style_https(self):
        """Service name in the host, bucket in the first path segment."""
        assert resolve_locator("https://s3.region.example.com/bucket1/path/to/img.jpg") == EXPECTED

    def test_virtual_hosted_https(self):
        """Bucket in the first host label."""
        assert resolve_locator("https://bucket1.s3.region.example.com/path/to/img.jpg") == EXPECTED

    def test_all_shapes_agree(self):
        urls = [
            "s3://bucket1/path/to/img.jpg",
            "https://s3.ap-south-1.amazonaws.com/bucket1/path/to/img.jpg",
            "https://bucket1.s3.ap-south-1.amazonaws.com/path/to/img.jpg",
        ]
        assert {resolve_locator(url) for url in urls} == {EXPECTED}

    def test_percent_encoded_key_is_decoded(self):
        locator = resolve_locator("https://bucket1.s3.amazonaws.com/my%20photos/img%2B1.jpg")
        assert locator.key == "my photos/img+1.jpg"

    def test_surrounding_whitespace_is_ignored(self):
        assert resolve_locator("  s3://bucket1/path/to/img.jpg\n") == EXPECTED

    def test_port_is_not_part_of_the_bucket(self):
        locator = resolve_locator("https://bucket1.s3.local:9000/img.jpg")
        assert locator == StorageLocator("bucket1", "img.jpg")

    def test_bucket_case_is_preserved(self):
        """Legacy buckets may contain uppercase letters."""
        assert resolve_locator("s3://MyLegacyBucket/img.jpg") == StorageLocator("MyLegacyBucket", "img.jpg")
        assert resolve_locator("https://MyLegacyBucket.s3.amazonaws.com/img.jpg").container == "MyLegacyBucket"

    def test_service_label_is_case_insensitive(self):
        locator = resolve_locator("https://S3.ap-south-1.amazonaws.com/bucket1/path/to/img.jpg")
        assert locator == EXPECTED

    def test_userinfo_is_not_part_of_the_bucket(self):
        assert resolve_locator("s3://user@bucket1/path/to/img.jpg") == EXPECTED

    def test_key_without_leading_separator(self):
        """Keys never start with '/' no matter how many the URL has."""
        locator = resolve_locator("s3://bucket1//nested/img.jpg")
        assert locator.key == "nested/img.jpg"


class TestRejectedUrls:
    """URLs that can't be resolved raise instead of yielding an empty locator."""

    @pytest.mark.parametrize(
        "url",
        [
            "ftp://bucket1/path/to/img.jpg",
            "http://bucket1.s3.amazonaws.com/path/to/img.jpg",
            "file:///tmp/img.jpg",
            "bucket1/path/to/img.jpg",
        ],
    )
    def test_unsupported_scheme(self, url):
        with pytest.raises(UnsupportedSchemeError):
            resolve_locator(url)

    def test_unsupported_scheme_is_a_resolve_error(self):
        with pytest.raises(ResolveError):
            resolve_locator("gs://bucket1/img.jpg")

    def test_malformed_url(self):
        with pytest.raises(ResolveError, match="Malformed"):
            resolve_locator("https://[::1/img.jpg")

    def test_invalid_utf8_escape(self):
        """An undecodable key would name a different object."""
        with pytest.raises(ResolveError, match="UTF-8"):
            resolve_locator("s3://bucket1/%FF.jpg")

    @pytest.mark.parametrize("url", ["", "   "])
    def test_empty_url(self, url):
        with pytest.raises(ResolveError, match="empty"):
            resolve_locator(url)

    def test_native_scheme_without_key(self):
        with pytest.raises(ResolveError):
            resolve_locator("s3://bucket1/")

    def test_native_scheme_without_bucket(self):
        with pytest.raises(ResolveError):
            resolve_locator("s3:///path/to/img.jpg")

    @pytest.mark.parametrize(
        "url",
        [
            "https://s3.region.example.com/bucket1",
            "https://s3.region.example.com/bucket1/",
            "https://s3.region.example.com/",
        ],
    )
    def test_path_style_without_key(self, url):
        with pytest.raises(ResolveError):
            resolve_locator(url)

    def test_virtual_hosted_without_key(self):
        with pytest.raises(ResolveError):
            resolve_locator("https://bucket1.s3.amazonaws.com/")

    def test_resolve_errors_have_no_stage_yet(self):
        """Stages are stamped by the orchestrator, not the resolver."""
        with pytest.raises(ResolveError) as exc_info:
            resolve_locator("s3://bucket1/")
        assert exc_info.value.stage is None
