"""Protocol definitions for dependency injection and testability."""

from abc import ABC, abstractmethod
from typing import Any, BinaryIO, Protocol

from .models import (
    CompressionOptions,
    ReplacementResult,
    StoredObjectRef,
    UploadResult,
)


class ObjectWriter(Protocol):
    """Byte sink for a new stored object, committed by the store's finalize."""

    content_type: str

    def write(self, data: bytes) -> int:
        """Append bytes to the pending object."""
        ...


class ObjectStoreProtocol(Protocol):
    """Protocol for object store operations.

    Every operation may fail independently by raising an exception.
    """

    def open_reader(self, key: str) -> BinaryIO:
        """Open a byte stream for reading a stored object."""
        ...

    def open_writer(self, content_type: str) -> ObjectWriter:
        """Open a byte stream for a new object of the given content type."""
        ...

    def finalize(self, writer: ObjectWriter) -> str:
        """Commit a written object and return its key."""
        ...

    def stat(self, key: str) -> StoredObjectRef:
        """Resolve the metadata of a stored object."""
        ...

    def delete(self, key: str) -> None:
        """Delete a stored object."""
        ...


class UploadParserProtocol(Protocol):
    """Protocol for the upload collaborator that stores and lists blobs."""

    def parse(self, request: Any) -> UploadResult:
        """Parse an incoming request into stored objects and form values."""
        ...


class LoggerProtocol(Protocol):
    """Protocol for logging operations."""

    def debug(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log debug message."""
        ...

    def info(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log info message."""
        ...

    def warning(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log warning message."""
        ...

    def error(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log error message."""
        ...


class ReplacementService(ABC):
    """Abstract service for replacing a single stored object."""

    @abstractmethod
    def replace_with_outcome(
        self, ref: StoredObjectRef, options: CompressionOptions
    ) -> ReplacementResult:
        """Replace one object and report how the replacement ended."""
        ...

    def replace(
        self, ref: StoredObjectRef, options: CompressionOptions
    ) -> StoredObjectRef:
        """Replace one object, returning the original ref on any failure."""
        return self.replace_with_outcome(ref, options).ref


class BatchProcessor(ABC):
    """Abstract batch processor over a parsed upload."""

    @abstractmethod
    def process(
        self, upload: UploadResult, options: CompressionOptions
    ) -> UploadResult:
        """Process every stored object of an upload."""
        ...
