"""MinIO implementation of the ObjectStorage interface."""

import threading
import time
import uuid
from collections.abc import Callable
from datetime import timedelta
from pathlib import Path
from urllib.parse import unquote, urlparse

from minio import Minio

from meeting_recorder.exceptions import StorageDeleteError, StorageUploadError
from meeting_recorder.logging import setup_logging

from .interfaces import ObjectStorage

logger = setup_logging()

_CONTENT_TYPES = {
    ".wav": "audio/wav",
    ".m4a": "audio/mp4",
    ".mp3": "audio/mpeg",
    ".flac": "audio/flac",
    ".ogg": "audio/ogg",
}


class _UploadProgress(threading.Thread):
    """Progress receiver in the shape ``Minio.fput_object`` expects."""

    def __init__(self, on_progress: Callable[[float], None]):
        super().__init__(daemon=True)
        self._on_progress = on_progress
        self._total = 0
        self._sent = 0

    def set_meta(self, object_name: str, total_length: int) -> None:
        self._total = total_length
        self._sent = 0

    def update(self, size: int) -> None:
        self._sent += size
        if self._total > 0:
            self._on_progress(min(self._sent / self._total, 1.0))


class MinioStorage(ObjectStorage):
    """Temporary audio uploads in a MinIO bucket, shared via presigned URLs."""

    def __init__(self, client: Minio, bucket_name: str, url_expiry_seconds: int = 3600):
        self._client = client
        self._bucket_name = bucket_name
        self._url_expiry = timedelta(seconds=url_expiry_seconds)

    def upload(
        self, file_path: Path, on_progress: Callable[[float], None] | None = None
    ) -> str:
        extension = file_path.suffix.lower() or ".wav"
        object_name = f"audio/{int(time.time())}_{uuid.uuid4()}{extension}"
        try:
            self._client.fput_object(
                bucket_name=self._bucket_name,
                object_name=object_name,
                file_path=str(file_path),
                content_type=_CONTENT_TYPES.get(extension, "application/octet-stream"),
                progress=_UploadProgress(on_progress) if on_progress else None,
            )
            url = self._client.presigned_get_object(
                bucket_name=self._bucket_name,
                object_name=object_name,
                expires=self._url_expiry,
            )
            logger.info(
                "File uploaded to MinIO",
                extra={
                    "object_name": object_name,
                    "bucket": self._bucket_name,
                    "source": file_path.name,
                },
            )
            if on_progress:
                on_progress(1.0)
            return url
        except Exception as e:
            logger.exception("MinIO upload failed", extra={"object_name": object_name})
            raise StorageUploadError(object_name, e) from e

    def delete(self, remote_url: str) -> None:
        object_name = self.object_name_from_url(remote_url)
        try:
            self._client.remove_object(self._bucket_name, object_name)
            logger.info(
                "Object removed from MinIO",
                extra={"object_name": object_name, "bucket": self._bucket_name},
            )
        except Exception as e:
            logger.exception("MinIO delete failed", extra={"object_name": object_name})
            raise StorageDeleteError(object_name, e) from e

    def object_name_from_url(self, remote_url: str) -> str:
        """Recovers the object name from a presigned URL's path."""
        path = unquote(urlparse(remote_url).path).lstrip("/")
        prefix = f"{self._bucket_name}/"
        if path.startswith(prefix):
            return path[len(prefix):]
        return path

    def ensure_bucket_exists(self) -> None:
        if not self._client.bucket_exists(self._bucket_name):
            self._client.make_bucket(self._bucket_name)
            logger.info("Bucket created", extra={"bucket_name": self._bucket_name})
        else:
            logger.info("Bucket already exists", extra={"bucket_name": self._bucket_name})
