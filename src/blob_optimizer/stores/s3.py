"""S3 backed object store."""

import io
import uuid
from datetime import datetime, timezone
from typing import Any, BinaryIO, Dict, Optional

from ..core.error_handling import with_error_handling
from ..core.exceptions import StoreIOError
from ..core.logging_config import get_logger
from ..core.models import StoredObjectRef


class S3ObjectWriter(io.BytesIO):
    """In-memory writer for a pending S3 object, uploaded on finalize."""

    def __init__(self, content_type: str):
        super().__init__()
        self.content_type = content_type


class S3ObjectStore:
    """Object store keeping blobs in one S3 bucket under a key prefix."""

    def __init__(self, s3_client: Any, bucket: str, prefix: str = ""):
        self._s3_client = s3_client
        self._bucket = bucket
        self._prefix = prefix
        self._logger = get_logger("store")

    @property
    def bucket(self) -> str:
        return self._bucket

    def new_key(self) -> str:
        """Generate a key for a new object."""
        if self._prefix:
            return f"{self._prefix.rstrip('/')}/{uuid.uuid4().hex}"
        return uuid.uuid4().hex

    @with_error_handling
    def open_reader(self, key: str) -> BinaryIO:
        self._logger.debug(f"Opening s3://{self._bucket}/{key}")
        response = self._s3_client.get_object(Bucket=self._bucket, Key=key)
        return response["Body"]

    def open_writer(self, content_type: str) -> S3ObjectWriter:
        return S3ObjectWriter(content_type)

    @with_error_handling
    def finalize(self, writer: S3ObjectWriter) -> str:
        """Upload the buffered object and return its new key."""
        if writer.closed:
            raise StoreIOError("Writer was already finalized")
        key = self.new_key()
        self._logger.debug(f"Uploading s3://{self._bucket}/{key}")
        self._s3_client.put_object(
            Bucket=self._bucket,
            Key=key,
            Body=writer.getvalue(),
            ContentType=writer.content_type,
        )
        writer.close()
        return key

    @with_error_handling
    def stat(self, key: str) -> StoredObjectRef:
        response = self._s3_client.head_object(Bucket=self._bucket, Key=key)
        return _ref_from_head(key, response)

    @with_error_handling
    def delete(self, key: str) -> None:
        self._logger.debug(f"Deleting s3://{self._bucket}/{key}")
        self._s3_client.delete_object(Bucket=self._bucket, Key=key)


def _ref_from_head(key: str, response: Dict[str, Any]) -> StoredObjectRef:
    created_at: Optional[datetime] = response.get("LastModified")
    filename = response.get("Metadata", {}).get("filename")
    return StoredObjectRef(
        key=key,
        content_type=response.get("ContentType", ""),
        size=response.get("ContentLength", 0),
        created_at=created_at or datetime.now(timezone.utc),
        filename=filename,
    )
