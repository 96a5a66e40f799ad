"""
Image optimization pipeline.

Contains the locator resolver, the transcode engine, the orchestrator and
the domain models and errors they share.
"""

from .errors import (
    ConfigurationError,
    DecodeError,
    EmptyObjectError,
    EncodeError,
    NotFoundError,
    OptimizationError,
    ResolveError,
    StorageError,
    TranscodeError,
    TransportError,
    UnsupportedSchemeError,
)
from .locator import resolve_locator
from .models import (
    DEFAULT_POLICY,
    ImageBlob,
    InterlaceScheme,
    OptimizationPolicy,
    OptimizationResult,
    PipelineStage,
    StorageLocator,
)
from .optimizer import ImageOptimizer, ObjectStore, OptimizerConfig, output_key_for
from .transcode import TranscodeEngine

__all__ = [
    "ConfigurationError",
    "DecodeError",
    "EmptyObjectError",
    "EncodeError",
    "NotFoundError",
    "OptimizationError",
    "ResolveError",
    "StorageError",
    "TranscodeError",
    "TransportError",
    "UnsupportedSchemeError",
    "resolve_locator",
    "DEFAULT_POLICY",
    "ImageBlob",
    "InterlaceScheme",
    "OptimizationPolicy",
    "OptimizationResult",
    "PipelineStage",
    "StorageLocator",
    "ImageOptimizer",
    "ObjectStore",
    "OptimizerConfig",
    "output_key_for",
    "TranscodeEngine",
]
