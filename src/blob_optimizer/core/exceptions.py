"""Custom exceptions for the blob optimizer."""


class BlobOptimizerError(Exception):
    """Base exception for all blob optimizer errors."""


class UpstreamParseError(BlobOptimizerError):
    """Error raised when the upload could not be parsed."""


class StoreIOError(BlobOptimizerError):
    """Error raised for object store read, write, stat or delete failures."""


class ConfigurationError(BlobOptimizerError):
    """Error raised for invalid configuration options."""


class ImageProcessingError(BlobOptimizerError):
    """Error raised when transcoding a single image fails."""


class ImageDecodeError(ImageProcessingError):
    """Error raised for unrecognized or corrupt image data."""


class ImageEncodeError(ImageProcessingError):
    """Error raised when the output image could not be produced."""
