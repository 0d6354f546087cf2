from __future__ import annotations

import io
import logging
import uuid
from contextlib import suppress
from dataclasses import dataclass
from typing import Any, BinaryIO, Dict, List

import boto3
from botocore.client import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from .config import Settings
from .errors import DependencyError

logger = logging.getLogger(__name__)

MEDIA_KINDS = ("image", "video")


class BlobStoreError(DependencyError):
    """Raised when the object store rejects or cannot complete a call."""


@dataclass(frozen=True)
class StoredBlob:
    url: str
    object_id: str


class BlobStore:
    """S3-compatible gateway: ``put`` returns a durable URL and object id, ``destroy`` removes it."""

    def __init__(self, client, bucket: str, *, public_base_url: str, chunk_size: int = 8 * 1024 * 1024):
        self.client = client
        self.bucket = bucket
        self.public_base_url = public_base_url.rstrip("/")
        self.chunk_size = chunk_size

    @classmethod
    def from_settings(cls, settings: Settings) -> "BlobStore":
        if not settings.s3_bucket:
            raise ValueError("No blob store configured. Set 's3_bucket'.")
        client = boto3.client(
            "s3",
            aws_access_key_id=settings.s3_access_key,
            aws_secret_access_key=settings.s3_secret_key,
            endpoint_url=settings.s3_endpoint_url,
            region_name=settings.s3_region,
            config=BotoConfig(
                signature_version="s3v4",
                s3={"addressing_style": "path" if settings.s3_use_path_style else "virtual"},
                connect_timeout=settings.s3_connect_timeout,
                read_timeout=settings.s3_read_timeout,
                retries={"max_attempts": settings.s3_max_attempts, "mode": "standard"},
            ),
        )
        base_url = settings.blob_public_base_url or f"{settings.s3_endpoint_url.rstrip('/')}/{settings.s3_bucket}"
        return cls(client, settings.s3_bucket, public_base_url=base_url)

    def url_for(self, object_id: str) -> str:
        return f"{self.public_base_url}/{object_id}"

    def put(self, data: bytes | BinaryIO, kind: str, folder: str, *, content_type: str | None = None) -> StoredBlob:
        if kind not in MEDIA_KINDS:
            raise ValueError(f"Unsupported media kind '{kind}'")
        object_id = f"{folder.strip('/')}/{kind}/{uuid.uuid4().hex}"
        stream = io.BytesIO(data) if isinstance(data, (bytes, bytearray)) else data
        try:
            self._upload_stream(object_id, stream, content_type)
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Failed to upload {object_id}: {e}")
            raise BlobStoreError(f"Blob store upload failed: {type(e).__name__}") from e
        logger.info(f"Uploaded {object_id}")
        return StoredBlob(url=self.url_for(object_id), object_id=object_id)

    def destroy(self, object_id: str, kind: str) -> None:
        try:
            self.client.delete_object(Bucket=self.bucket, Key=object_id)
        except (BotoCoreError, ClientError) as e:
            raise BlobStoreError(f"Blob store delete failed for {object_id}: {type(e).__name__}") from e
        logger.info(f"Destroyed {kind} {object_id}")

    def ping(self) -> bool:
        try:
            self.client.head_bucket(Bucket=self.bucket)
            return True
        except (BotoCoreError, ClientError) as e:
            logger.warning(f"Blob store ping failed: {type(e).__name__}")
            return False

    def _read_chunk(self, stream) -> bytes:
        chunk = stream.read(self.chunk_size)
        if not chunk:
            return b""
        return bytes(chunk)

    def _upload_stream(self, key: str, stream, content_type: str | None) -> None:
        extra = {"ContentType": content_type} if content_type else {}
        first_chunk = self._read_chunk(stream)
        second_chunk = self._read_chunk(stream) if first_chunk else b""
        if not second_chunk:
            self.client.put_object(Bucket=self.bucket, Key=key, Body=first_chunk, **extra)
            return

        upload = self.client.create_multipart_upload(Bucket=self.bucket, Key=key, **extra)
        upload_id = upload["UploadId"]
        parts: List[Dict[str, Any]] = []

        def _chunks():
            yield first_chunk
            yield second_chunk
            while chunk := self._read_chunk(stream):
                yield chunk

        try:
            for part_number, chunk in enumerate(_chunks(), start=1):
                response = self.client.upload_part(
                    Bucket=self.bucket,
                    Key=key,
                    UploadId=upload_id,
                    PartNumber=part_number,
                    Body=chunk,
                )
                parts.append({"PartNumber": part_number, "ETag": response["ETag"]})
            self.client.complete_multipart_upload(
                Bucket=self.bucket,
                Key=key,
                UploadId=upload_id,
                MultipartUpload={"Parts": parts},
            )
        except Exception:
            with suppress(Exception):
                self.client.abort_multipart_upload(Bucket=self.bucket, Key=key, UploadId=upload_id)
            raise


def destroy_quietly(blob_store, object_id: str | None, kind: str) -> bool:
    """Best-effort destroy: failures are logged and reported, never raised."""
    if not object_id:
        return True
    try:
        blob_store.destroy(object_id, kind)
        return True
    except Exception as e:
        logger.warning(f"Failed to destroy blob {object_id} ({kind}), leaving it orphaned: {e}")
        return False
