"""
Application configuration using Pydantic settings.

Configuration is loaded from environment variables (and a .env file when one
is present) with sensible defaults. Using Pydantic's BaseSettings means we get:
- Type validation at startup (fail fast if config is wrong)
- Documentation of what's required vs optional
- Easy testing with different configurations

Settings are resolved once per process and handed to whatever needs them.
Nothing reads os.environ on the request path.

Mock mode enables local development without an S3 account.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Environment names match the field names in upper case
    (API_TOKEN, AWS_BUCKET_NAME, ...).
    """

    # API Configuration
    api_title: str = "Image Optimizer API"
    api_version: str = "v1"
    api_token: str = Field(
        default="",
        description="Shared secret expected in the `token` header of /optimize/ requests."
    )
    mode: str = Field(
        default="development",
        description="Set to 'production' to disable API docs and hot reload."
    )
    port: int = Field(
        default=8080,
        description="Port the server listens on when started directly."
    )

    # S3 Storage Configuration
    aws_access_key_id: str = Field(
        default="",
        description="AWS access key ID"
    )
    aws_secret_access_key: str = Field(
        default="",
        description="AWS secret access key"
    )
    aws_region: str = Field(
        default="ap-south-1",
        description="AWS region of the buckets"
    )
    aws_bucket_name: str = Field(
        default="",
        description="Bucket optimized images are written to. Must differ from the source buckets."
    )
    s3_endpoint_url: Optional[str] = Field(
        default=None,
        description="Endpoint for S3-compatible stores (MinIO, R2). Leave unset for AWS."
    )
    public_base_url: Optional[str] = Field(
        default=None,
        description="Base of returned image URLs. Defaults to the regional S3 endpoint."
    )
    storage_mock_mode: bool = Field(
        default=False,
        description="Use in-memory mock instead of real S3. Enables local dev without object storage."
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def is_production(self) -> bool:
        return self.mode.lower() == "production"

    @property
    def public_url_base(self) -> str:
        """
        Base URL for links to optimized images.

        Path-style regional endpoint: https://s3.{region}.amazonaws.com
        The bucket and key are appended by the optimizer.
        """
        if self.public_base_url:
            return self.public_base_url.rstrip("/")
        return f"https://s3.{self.aws_region}.amazonaws.com"

    def validate_required_fields(self) -> list[str]:
        """
        Validate that required fields are set based on mock mode settings.

        Returns list of missing required fields.
        This is separate from Pydantic validation because requirements
        depend on whether we're in mock mode.
        """
        missing = []

        if not self.api_token:
            missing.append("API_TOKEN")

        if not self.aws_bucket_name:
            missing.append("AWS_BUCKET_NAME")

        # Credentials only required if not in mock mode
        if not self.storage_mock_mode:
            if not self.aws_access_key_id:
                missing.append("AWS_ACCESS_KEY_ID")
            if not self.aws_secret_access_key:
                missing.append("AWS_SECRET_ACCESS_KEY")

        return missing


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache means we only load settings once per process.
    This is safe because settings don't change during runtime.
    For tests, you can call get_settings.cache_clear() to reset.
    """
    return Settings()
