"""
Artifact blob storage.

A blob store puts bytes under a generated name and hands back a stable URL;
it deletes by that URL. It knows nothing about submissions. Blocking I/O
runs in a worker thread.
"""

import asyncio
import os
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterable, Optional
from urllib.parse import urlparse

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from symposium.config import Settings
from symposium.kernel.errors import ExternalFailure, InvalidInput
from symposium.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class StoredArtifact:
    url: str
    filename: str
    size: int


class BlobStore(ABC):
    """Interface for artifact storage backends."""

    def __init__(self, max_size: int, allowed_types: Iterable[str]):
        self.max_size = max_size
        self.allowed_types = frozenset(allowed_types)

    def validate(self, data: bytes, content_type: Optional[str]) -> None:
        """
        Raises:
            InvalidInput: empty, too large, or a content type not allowed
        """
        if not data:
            raise InvalidInput("Uploaded file is empty")
        if len(data) > self.max_size:
            raise InvalidInput(
                "File too large",
                detail={"size": len(data), "max_size": self.max_size},
            )
        if self.allowed_types and content_type not in self.allowed_types:
            raise InvalidInput(
                f"Unsupported file type: {content_type}",
                detail={"allowed_types": sorted(self.allowed_types)},
            )

    async def put(self, data: bytes, filename: str, content_type: Optional[str]) -> StoredArtifact:
        """Validate and store data; returns where it can be fetched."""
        self.validate(data, content_type)
        key = _storage_key(filename)
        url = await self._put(key, data, content_type)
        logger.info("Artifact stored", extra={"url": url, "size": len(data)})
        return StoredArtifact(url=url, filename=filename, size=len(data))

    async def delete(self, url: str) -> None:
        """Remove the blob behind url; deleting a missing blob is not an error."""
        await self._delete(url)
        logger.info("Artifact deleted", extra={"url": url})

    @abstractmethod
    async def _put(self, key: str, data: bytes, content_type: Optional[str]) -> str:
        ...

    @abstractmethod
    async def _delete(self, url: str) -> None:
        ...


def _storage_key(filename: str) -> str:
    """Unique object name that keeps the original extension."""
    extension = os.path.splitext(filename or "")[1].lower()
    return f"{uuid.uuid4()}{extension}"


class LocalBlobStore(BlobStore):
    """Stores artifacts in a directory served under base_url."""

    def __init__(
        self,
        upload_dir: str,
        base_url: str,
        max_size: int,
        allowed_types: Iterable[str],
    ):
        super().__init__(max_size, allowed_types)
        self.upload_dir = upload_dir
        self.base_url = base_url.rstrip("/")

    def _path_for(self, url: str) -> str:
        prefix = f"{self.base_url}/"
        if not url.startswith(prefix):
            raise InvalidInput(f"Not a local artifact URL: {url}")
        name = os.path.basename(url[len(prefix):])
        return os.path.join(self.upload_dir, name)

    def _write(self, key: str, data: bytes) -> None:
        os.makedirs(self.upload_dir, exist_ok=True)
        with open(os.path.join(self.upload_dir, key), "wb") as f:
            f.write(data)

    def _remove(self, path: str) -> None:
        if os.path.exists(path):
            os.remove(path)

    async def _put(self, key: str, data: bytes, content_type: Optional[str]) -> str:
        try:
            await asyncio.to_thread(self._write, key, data)
        except OSError as exc:
            raise ExternalFailure("Failed to store artifact", service="storage") from exc
        return f"{self.base_url}/{key}"

    async def _delete(self, url: str) -> None:
        path = self._path_for(url)
        try:
            await asyncio.to_thread(self._remove, path)
        except OSError as exc:
            raise ExternalFailure("Failed to delete artifact", service="storage") from exc


class S3BlobStore(BlobStore):
    """Stores artifacts as objects in one S3 bucket."""

    def __init__(
        self,
        bucket_name: str,
        region: str,
        max_size: int,
        allowed_types: Iterable[str],
        client=None,
    ):
        super().__init__(max_size, allowed_types)
        self.bucket_name = bucket_name
        self.region = region
        self.client = client or boto3.client("s3", region_name=region)

    def _url_for(self, key: str) -> str:
        return f"https://{self.bucket_name}.s3.{self.region}.amazonaws.com/{key}"

    @staticmethod
    def _key_for(url: str) -> str:
        return urlparse(url).path.lstrip("/")

    async def _put(self, key: str, data: bytes, content_type: Optional[str]) -> str:
        try:
            await asyncio.to_thread(
                self.client.put_object,
                Bucket=self.bucket_name,
                Key=key,
                Body=data,
                ContentType=content_type or "application/octet-stream",
            )
        except (BotoCoreError, ClientError) as exc:
            raise ExternalFailure("Failed to upload artifact to S3", service="s3") from exc
        return self._url_for(key)

    async def _delete(self, url: str) -> None:
        try:
            await asyncio.to_thread(
                self.client.delete_object,
                Bucket=self.bucket_name,
                Key=self._key_for(url),
            )
        except (BotoCoreError, ClientError) as exc:
            raise ExternalFailure("Failed to delete artifact from S3", service="s3") from exc


def build_blob_store(settings: Settings) -> BlobStore:
    """Blob store for the configured backend."""
    if settings.storage_backend == "s3":
        return S3BlobStore(
            bucket_name=settings.s3_bucket_name,
            region=settings.aws_region,
            max_size=settings.max_artifact_size_bytes,
            allowed_types=settings.allowed_artifact_types,
        )
    if settings.storage_backend == "local":
        return LocalBlobStore(
            upload_dir=settings.upload_dir,
            base_url=settings.upload_base_url,
            max_size=settings.max_artifact_size_bytes,
            allowed_types=settings.allowed_artifact_types,
        )
    raise ValueError(f"Unknown storage backend: {settings.storage_backend}")
