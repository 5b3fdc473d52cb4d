"""Object store implementations."""

from .s3 import S3ObjectStore, S3ObjectWriter

__all__ = [
    "S3ObjectStore",
    "S3ObjectWriter",
]
