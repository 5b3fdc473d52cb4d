"""Shared data models for the blob optimizer."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class CompressionOptions(BaseModel):
    """Options for one optimization run, bound to an incoming request."""

    model_config = ConfigDict(validate_assignment=True, arbitrary_types_allowed=True)

    quality: int = Field(default=75, ge=0, le=100)
    max_dimension: int = Field(default=0, ge=0)
    request: Any = Field(default=None, repr=False, exclude=True)


def new_compression_options(request: Any = None) -> CompressionOptions:
    """
    Create the default options for a request.

    Quality 75 matches the usual JPEG default, and a max dimension of 0
    leaves image dimensions untouched.
    """
    return CompressionOptions(request=request)


class StoredObjectRef(BaseModel):
    """Reference to a blob held by the object store."""

    model_config = ConfigDict(frozen=True)

    key: str
    content_type: str = ""
    size: int = 0
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    filename: Optional[str] = None


class UploadResult(BaseModel):
    """Parsed upload: stored objects per form field plus plain form values."""

    blobs: Dict[str, List[StoredObjectRef]] = Field(default_factory=dict)
    other: Dict[str, List[str]] = Field(default_factory=dict)


class UploadManifest(BaseModel):
    """Upload payload listing already stored object keys per form field."""

    blobs: Dict[str, List[str]] = Field(default_factory=dict)
    values: Dict[str, List[str]] = Field(default_factory=dict)


class ReplacementOutcome(str, Enum):
    """How the replacement of a single object ended."""

    UNSUPPORTED = "unsupported"
    READ_FAILED = "read_failed"
    DECODE_FAILED = "decode_failed"
    WRITE_FAILED = "write_failed"
    STAT_FAILED = "stat_failed"
    REPLACED = "replaced"
    REPLACED_DELETE_FAILED = "replaced_delete_failed"


class ReplacementResult(BaseModel):
    """Result of processing a single stored object."""

    original: StoredObjectRef
    ref: StoredObjectRef
    outcome: ReplacementOutcome
    error: str = ""
    processing_time: float = 0.0

    @property
    def replaced(self) -> bool:
        return self.outcome in (
            ReplacementOutcome.REPLACED,
            ReplacementOutcome.REPLACED_DELETE_FAILED,
        )


class OptimizerConfig(BaseModel):
    """Configuration for a command line optimization run."""

    bucket: str
    prefix: str = ""
    quality: int = Field(default=75, ge=0, le=100)
    max_dimension: int = Field(default=0, ge=0)
    processor: Literal["serial", "multithread"] = "serial"
    max_workers: int = Field(default=8, ge=1)
    debug: bool = False
