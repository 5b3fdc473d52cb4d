"""Fake implementations for testing purposes."""

import io
import time
import uuid
from typing import Any, Dict, List, Optional, Set
from dataclasses import dataclass, field
from datetime import datetime, timezone
from PIL import Image

from ..core.models import StoredObjectRef, UploadManifest, UploadResult

STORE_OPERATIONS = ("open_reader", "open_writer", "write", "finalize", "stat", "delete")


@dataclass
class StoredBlob:
    """Fake stored blob for testing."""

    key: str
    body: bytes
    content_type: str = "image/jpeg"
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    filename: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.body)


class FakeObjectWriter:
    """Fake writer buffering bytes until the store finalizes it."""

    def __init__(self, store: "FakeObjectStore", content_type: str):
        self._store = store
        self._buffer = io.BytesIO()
        self.content_type = content_type
        self.finalized = False

    def write(self, data: bytes) -> int:
        self._store.check_failure("write")
        return self._buffer.write(data)

    def getvalue(self) -> bytes:
        return self._buffer.getvalue()


class FakeObjectStore:
    """In-memory object store with per-operation failure injection."""

    def __init__(self):
        self.blobs: Dict[str, StoredBlob] = {}
        self.operations: List[str] = []
        self.failing_operations: Set[str] = set()
        self.failure_message = "Simulated store failure"

    def add_blob(
        self,
        key: str,
        body: bytes,
        content_type: str = "image/jpeg",
        filename: Optional[str] = None,
    ) -> StoredObjectRef:
        """Store a blob directly and return its ref."""
        self.blobs[key] = StoredBlob(
            key=key, body=body, content_type=content_type, filename=filename
        )
        return self._ref(self.blobs[key])

    def get_blob(self, key: str) -> Optional[StoredBlob]:
        return self.blobs.get(key)

    def set_failure_mode(
        self, operation: str, should_fail: bool = True, message: str = "Simulated failure"
    ) -> None:
        """Configure one operation to fail for testing error handling."""
        if operation not in STORE_OPERATIONS:
            raise ValueError(f"Unknown store operation: {operation}")
        if should_fail:
            self.failing_operations.add(operation)
        else:
            self.failing_operations.discard(operation)
        self.failure_message = message

    def check_failure(self, operation: str) -> None:
        self.operations.append(operation)
        if operation in self.failing_operations:
            raise IOError(f"{self.failure_message} ({operation})")

    def open_reader(self, key: str) -> io.BytesIO:
        self.check_failure("open_reader")
        blob = self.blobs.get(key)
        if blob is None:
            raise KeyError(f"Object {key} not found")
        return io.BytesIO(blob.body)

    def open_writer(self, content_type: str) -> FakeObjectWriter:
        self.check_failure("open_writer")
        return FakeObjectWriter(self, content_type)

    def finalize(self, writer: FakeObjectWriter) -> str:
        self.check_failure("finalize")
        if writer.finalized:
            raise IOError("Writer was already finalized")
        key = f"blob-{uuid.uuid4().hex}"
        self.blobs[key] = StoredBlob(
            key=key, body=writer.getvalue(), content_type=writer.content_type
        )
        writer.finalized = True
        return key

    def stat(self, key: str) -> StoredObjectRef:
        self.check_failure("stat")
        blob = self.blobs.get(key)
        if blob is None:
            raise KeyError(f"Object {key} not found")
        return self._ref(blob)

    def delete(self, key: str) -> None:
        self.check_failure("delete")
        if key not in self.blobs:
            raise KeyError(f"Object {key} not found")
        del self.blobs[key]

    @staticmethod
    def _ref(blob: StoredBlob) -> StoredObjectRef:
        return StoredObjectRef(
            key=blob.key,
            content_type=blob.content_type,
            size=blob.size,
            created_at=blob.created_at,
            filename=blob.filename,
        )


class FakeUploadParser:
    """Upload parser returning a canned result, or failing."""

    def __init__(self, result: Optional[UploadResult] = None):
        self.result = result or UploadResult()
        self.error: Optional[Exception] = None
        self.requests: List[Any] = []

    def parse(self, request: Any) -> UploadResult:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.result


class FakeLogger:
    """Fake logger for testing with support for LogContext."""

    def __init__(self, name: str = "test_logger"):
        self.name = name
        self.logs: List[Dict[str, Any]] = []

    def _log(
        self, level: str, message: str, context: Any = None, **kwargs: Any
    ) -> None:
        log_entry = {
            "level": level,
            "message": message,
            "timestamp": time.time(),
            **kwargs,
        }

        if context is not None:
            if hasattr(context, "correlation_id"):
                log_entry["correlation_id"] = context.correlation_id
            if hasattr(context, "operation"):
                log_entry["operation"] = context.operation
            if hasattr(context, "metadata"):
                log_entry.update(context.metadata)

        self.logs.append(log_entry)

    def debug(self, message: str, context: Any = None, **kwargs: Any) -> None:
        self._log("DEBUG", message, context, **kwargs)

    def info(self, message: str, context: Any = None, **kwargs: Any) -> None:
        self._log("INFO", message, context, **kwargs)

    def warning(self, message: str, context: Any = None, **kwargs: Any) -> None:
        self._log("WARNING", message, context, **kwargs)

    def error(self, message: str, context: Any = None, **kwargs: Any) -> None:
        self._log("ERROR", message, context, **kwargs)

    def get_logs(self, level: Optional[str] = None) -> List[Dict[str, Any]]:
        """Get logged messages, optionally filtered by level."""
        if level:
            return [log for log in self.logs if log["level"] == level]
        return self.logs.copy()


def create_test_image(
    width: int = 100, height: int = 100, format: str = "JPEG", mode: str = "RGB"
) -> bytes:
    """Create a test image in memory."""
    fill = (255, 0, 0, 255)[: len(mode)] if mode in ("RGB", "RGBA") else 128
    image = Image.new(mode, (width, height), color=fill)

    # Add a block pattern so encoders have something to compress
    if mode in ("RGB", "RGBA"):
        blue = (0, 0, 255, 255)[: len(mode)]
        for x in range(0, width, 40):
            for y in range(0, height, 40):
                image.paste(blue, (x, y, min(x + 20, width), min(y + 20, height)))

    if format == "GIF" and mode != "P":
        image = image.convert("P")

    img_bytes = io.BytesIO()
    if format == "JPEG":
        image.save(img_bytes, format=format, quality=95)
    else:
        image.save(img_bytes, format=format)
    return img_bytes.getvalue()


def image_size(data: bytes) -> tuple:
    """Decode image bytes and return (width, height)."""
    with Image.open(io.BytesIO(data)) as image:
        return image.size


def setup_test_store() -> FakeObjectStore:
    """Set up a fake store with sample uploads."""
    store = FakeObjectStore()
    store.add_blob("photo-1", create_test_image(300, 200), "image/jpeg", "photo1.jpg")
    store.add_blob("photo-2", create_test_image(120, 240, "PNG"), "image/png", "photo2.png")
    store.add_blob("anim-1", create_test_image(80, 60, "GIF"), "image/gif", "anim.gif")
    store.add_blob("doc-1", b"%PDF-1.4 fake document", "application/pdf", "doc.pdf")
    return store


def sample_manifest() -> UploadManifest:
    """Manifest matching the blobs of setup_test_store."""
    return UploadManifest(
        blobs={"photos": ["photo-1", "photo-2", "anim-1"], "doc": ["doc-1"]},
        values={"title": ["Holiday"]},
    )
