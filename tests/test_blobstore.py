import io

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from mediavault.blobstore import BlobStore, BlobStoreError, destroy_quietly
from mediavault.config import Settings
from mediavault.errors import DependencyError


class RecordingS3Client:
    def __init__(self, fail_first_part: bool = False, fail_delete: bool = False, bucket_missing: bool = False):
        self.fail_first_part = fail_first_part
        self.fail_delete = fail_delete
        self.bucket_missing = bucket_missing
        self.upload_part_calls = 0
        self.multipart_uploads: list[tuple[str, str, str]] = []
        self.uploaded_parts: list[tuple[int, bytes]] = []
        self.put_calls: list[tuple[str, str, bytes, dict]] = []
        self.deleted: list[tuple[str, str]] = []
        self.aborted = 0
        self.completed_uploads = 0
        self.completed_parts: list[dict] | None = None

    def create_multipart_upload(self, Bucket, Key, **kwargs):
        upload_id = f"upload-{len(self.multipart_uploads) + 1}"
        self.multipart_uploads.append((Bucket, Key, upload_id))
        return {"UploadId": upload_id}

    def upload_part(self, Bucket, Key, UploadId, PartNumber, Body):
        self.upload_part_calls += 1
        if self.fail_first_part and self.upload_part_calls == 1:
            raise ClientError({"Error": {"Code": "RequestTimeout", "Message": "fail"}}, "UploadPart")
        self.uploaded_parts.append((PartNumber, bytes(Body)))
        return {"ETag": f"etag-{PartNumber}"}

    def complete_multipart_upload(self, Bucket, Key, UploadId, MultipartUpload):
        self.completed_uploads += 1
        self.completed_parts = MultipartUpload["Parts"]
        return {}

    def abort_multipart_upload(self, Bucket, Key, UploadId):
        self.aborted += 1

    def put_object(self, Bucket, Key, Body, **kwargs):
        self.put_calls.append((Bucket, Key, bytes(Body), kwargs))
        return {}

    def delete_object(self, Bucket, Key):
        if self.fail_delete:
            raise EndpointConnectionError(endpoint_url="http://s3.invalid")
        self.deleted.append((Bucket, Key))
        return {}

    def head_bucket(self, Bucket):
        if self.bucket_missing:
            raise ClientError({"Error": {"Code": "404", "Message": "Not Found"}}, "HeadBucket")
        return {}


def make_store(client, chunk_size=8 * 1024 * 1024):
    return BlobStore(client, "media-bucket", public_base_url="https://cdn.example.com/", chunk_size=chunk_size)


@pytest.mark.storage
def test_put_small_payload_uses_single_put_object():
    client = RecordingS3Client()
    store = make_store(client)

    blob = store.put(b"jpeg-bytes", "image", "user_uploads", content_type="image/jpeg")

    assert len(client.put_calls) == 1
    bucket, key, body, extra = client.put_calls[0]
    assert bucket == "media-bucket"
    assert key == blob.object_id
    assert key.startswith("user_uploads/image/")
    assert body == b"jpeg-bytes"
    assert extra == {"ContentType": "image/jpeg"}
    assert blob.url == f"https://cdn.example.com/{blob.object_id}"
    assert client.multipart_uploads == []


@pytest.mark.storage
def test_put_large_stream_uses_multipart_upload():
    client = RecordingS3Client()
    store = make_store(client, chunk_size=4)

    blob = store.put(io.BytesIO(b"0123456789"), "video", "user_uploads")

    assert client.put_calls == []
    assert [key for _, key, _ in client.multipart_uploads] == [blob.object_id]
    assert client.uploaded_parts == [(1, b"0123"), (2, b"4567"), (3, b"89")]
    assert client.completed_uploads == 1
    assert [p["PartNumber"] for p in client.completed_parts] == [1, 2, 3]
    assert blob.object_id.startswith("user_uploads/video/")


@pytest.mark.storage
def test_put_aborts_multipart_upload_on_part_failure():
    client = RecordingS3Client(fail_first_part=True)
    store = make_store(client, chunk_size=4)

    with pytest.raises(BlobStoreError):
        store.put(io.BytesIO(b"0123456789"), "image", "user_uploads")

    assert client.aborted == 1
    assert client.completed_uploads == 0


@pytest.mark.storage
def test_put_rejects_unknown_kind():
    store = make_store(RecordingS3Client())
    with pytest.raises(ValueError):
        store.put(b"data", "document", "user_uploads")


@pytest.mark.storage
def test_destroy_deletes_object_and_wraps_failures():
    client = RecordingS3Client()
    store = make_store(client)
    store.destroy("user_uploads/image/abc", "image")
    assert client.deleted == [("media-bucket", "user_uploads/image/abc")]

    failing = make_store(RecordingS3Client(fail_delete=True))
    with pytest.raises(BlobStoreError) as exc_info:
        failing.destroy("user_uploads/image/abc", "image")
    assert isinstance(exc_info.value, DependencyError)
    assert exc_info.value.status_code == 503


@pytest.mark.storage
def test_destroy_quietly_reports_instead_of_raising():
    assert destroy_quietly(make_store(RecordingS3Client()), "user_uploads/image/abc", "image") is True
    assert destroy_quietly(make_store(RecordingS3Client(fail_delete=True)), "user_uploads/image/abc", "image") is False
    # Rows without a stored object have nothing to destroy.
    assert destroy_quietly(make_store(RecordingS3Client(fail_delete=True)), None, "image") is True


@pytest.mark.storage
def test_ping_reflects_bucket_reachability():
    assert make_store(RecordingS3Client()).ping() is True
    assert make_store(RecordingS3Client(bucket_missing=True)).ping() is False


def test_from_settings_requires_bucket():
    with pytest.raises(ValueError):
        BlobStore.from_settings(Settings(s3_bucket=None))


def test_from_settings_builds_public_urls_from_endpoint():
    settings = Settings(
        s3_bucket="media",
        s3_endpoint_url="http://localhost:9000",
        s3_access_key="minio",
        s3_secret_key="minio-secret",
    )
    store = BlobStore.from_settings(settings)
    assert store.bucket == "media"
    assert store.url_for("user_uploads/image/x") == "http://localhost:9000/media/user_uploads/image/x"
