"""
Image Optimizer - replaces images in S3 with smaller WebP versions.

This package contains the complete application:
- core: Framework-agnostic pipeline (locator, transcode, orchestrator)
- infrastructure: Object storage integration
- api: FastAPI routes and dependencies
- config: Application configuration
"""

__version__ = "0.1.0"
