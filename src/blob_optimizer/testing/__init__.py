"""Testing utilities and fakes for the blob optimizer."""

from .fakes import (
    FakeLogger,
    FakeObjectStore,
    FakeObjectWriter,
    FakeUploadParser,
    StoredBlob,
    create_test_image,
    image_size,
    sample_manifest,
    setup_test_store,
)

__all__ = [
    "FakeLogger",
    "FakeObjectStore",
    "FakeObjectWriter",
    "FakeUploadParser",
    "StoredBlob",
    "create_test_image",
    "image_size",
    "sample_manifest",
    "setup_test_store",
]
