"""Unit tests for the S3 object store."""

import io
from datetime import datetime, timezone
from unittest.mock import Mock

import pytest
from botocore.exceptions import ClientError

from blob_optimizer.core.exceptions import StoreIOError
from blob_optimizer.stores.s3 import S3ObjectStore, S3ObjectWriter


def client_error(code: str, operation: str) -> ClientError:
    return ClientError(
        error_response={"Error": {"Code": code, "Message": code}},
        operation_name=operation,
    )


class TestS3ObjectStore:
    """Tests for S3ObjectStore with a mocked boto3 client."""

    def test_open_reader_returns_body(self):
        s3_client = Mock()
        s3_client.get_object.return_value = {"Body": io.BytesIO(b"image")}
        store = S3ObjectStore(s3_client, "uploads")

        reader = store.open_reader("photo.jpg")

        assert reader.read() == b"image"
        s3_client.get_object.assert_called_once_with(Bucket="uploads", Key="photo.jpg")

    def test_writer_buffers_until_finalize(self):
        s3_client = Mock()
        store = S3ObjectStore(s3_client, "uploads", prefix="optimized/")

        writer = store.open_writer("image/jpeg")
        writer.write(b"jpeg")
        s3_client.put_object.assert_not_called()

        key = store.finalize(writer)

        assert key.startswith("optimized/")
        s3_client.put_object.assert_called_once_with(
            Bucket="uploads", Key=key, Body=b"jpeg", ContentType="image/jpeg"
        )
        assert writer.closed

    def test_finalize_twice_fails(self):
        store = S3ObjectStore(Mock(), "uploads")
        writer = store.open_writer("image/jpeg")
        store.finalize(writer)

        with pytest.raises(StoreIOError, match="already finalized"):
            store.finalize(writer)

    def test_new_keys_are_unique(self):
        store = S3ObjectStore(Mock(), "uploads")

        assert store.new_key() != store.new_key()
        assert "/" not in store.new_key()

    def test_stat_maps_head_object(self):
        s3_client = Mock()
        modified = datetime(2024, 5, 1, tzinfo=timezone.utc)
        s3_client.head_object.return_value = {
            "ContentType": "image/png",
            "ContentLength": 1234,
            "LastModified": modified,
            "Metadata": {"filename": "cat.png"},
        }
        store = S3ObjectStore(s3_client, "uploads")

        ref = store.stat("abc")

        assert ref.key == "abc"
        assert ref.content_type == "image/png"
        assert ref.size == 1234
        assert ref.created_at == modified
        assert ref.filename == "cat.png"

    def test_delete(self):
        s3_client = Mock()
        store = S3ObjectStore(s3_client, "uploads")

        store.delete("abc")

        s3_client.delete_object.assert_called_once_with(Bucket="uploads", Key="abc")

    @pytest.mark.parametrize(
        "method,client_method,args",
        [
            ("open_reader", "get_object", ("abc",)),
            ("stat", "head_object", ("abc",)),
            ("delete", "delete_object", ("abc",)),
        ],
    )
    def test_client_errors_become_store_errors(self, method, client_method, args):
        s3_client = Mock()
        getattr(s3_client, client_method).side_effect = client_error("NoSuchKey", client_method)
        store = S3ObjectStore(s3_client, "uploads")

        with pytest.raises(StoreIOError) as excinfo:
            getattr(store, method)(*args)

        assert isinstance(excinfo.value.__cause__, ClientError)

    def test_put_failure_becomes_store_error(self):
        s3_client = Mock()
        s3_client.put_object.side_effect = client_error("SlowDown", "PutObject")
        store = S3ObjectStore(s3_client, "uploads")
        writer = store.open_writer("image/jpeg")

        with pytest.raises(StoreIOError):
            store.finalize(writer)
        assert not writer.closed


def test_writer_keeps_content_type():
    writer = S3ObjectWriter("image/jpeg")
    writer.write(b"abc")

    assert writer.content_type == "image/jpeg"
    assert writer.getvalue() == b"abc"
