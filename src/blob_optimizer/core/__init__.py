"""Core utilities and shared components for the blob optimizer."""

from .image_utils import (
    OUTPUT_CONTENT_TYPE,
    SUPPORTED_MIME_TYPES,
    TargetSize,
    compute_target_size,
    is_supported_mime_type,
)
from .logging_config import get_logger, setup_logger
from .exceptions import (
    BlobOptimizerError,
    ConfigurationError,
    ImageDecodeError,
    ImageEncodeError,
    ImageProcessingError,
    StoreIOError,
    UpstreamParseError,
)
from .models import (
    CompressionOptions,
    OptimizerConfig,
    ReplacementOutcome,
    ReplacementResult,
    StoredObjectRef,
    UploadManifest,
    UploadResult,
    new_compression_options,
)

__all__ = [
    "CompressionOptions",
    "OptimizerConfig",
    "ReplacementOutcome",
    "ReplacementResult",
    "StoredObjectRef",
    "UploadManifest",
    "UploadResult",
    "new_compression_options",
    "OUTPUT_CONTENT_TYPE",
    "SUPPORTED_MIME_TYPES",
    "TargetSize",
    "compute_target_size",
    "is_supported_mime_type",
    "setup_logger",
    "get_logger",
    "BlobOptimizerError",
    "ConfigurationError",
    "ImageDecodeError",
    "ImageEncodeError",
    "ImageProcessingError",
    "StoreIOError",
    "UpstreamParseError",
]
