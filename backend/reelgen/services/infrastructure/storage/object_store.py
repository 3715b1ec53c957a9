"""
Durable object storage.

Implementations:
    LocalObjectStore: directory tree on local disk (development, tests)
    S3ObjectStore: Amazon S3 bucket via boto3

Keys are forward-slash paths such as
``properties/{listing_id}/videos/clips/{job_id}/segment_3.mp4``.
"""

import asyncio
import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from reelgen.core import StorageError, get_logger

logger = get_logger(__name__, component="object_store")


def _normalize_key(key: str) -> str:
    cleaned = key.replace("\\", "/").lstrip("/")
    parts = [part for part in cleaned.split("/") if part not in ("", ".")]
    if not parts or ".." in parts:
        raise StorageError(f"Invalid object key: {key!r}", key=key)
    return "/".join(parts)


class ObjectStore(ABC):
    """Async key/value blob store. Every failure surfaces as StorageError."""

    @abstractmethod
    async def get(self, key: str) -> bytes:
        pass

    @abstractmethod
    async def put(self, data: bytes, key: str, content_type: str = "application/octet-stream") -> str:
        """Store ``data`` under ``key`` and return the durable location (the key)."""
        pass

    @abstractmethod
    async def exists(self, key: str) -> bool:
        pass

    async def put_file(self, path: Path, key: str, content_type: str = "video/mp4") -> str:
        data = await asyncio.to_thread(Path(path).read_bytes)
        return await self.put(data, key, content_type)

    async def download_to(self, key: str, path: Path) -> Path:
        data = await self.get(key)
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        await asyncio.to_thread(path.write_bytes, data)
        return path


class LocalObjectStore(ObjectStore):
    def __init__(self, root: Path):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self.root / _normalize_key(key)

    async def get(self, key: str) -> bytes:
        path = self._path(key)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except FileNotFoundError as exc:
            raise StorageError(f"Object not found: {key}", key=key) from exc
        except OSError as exc:
            raise StorageError(f"Failed to read {key}: {exc}", key=key) from exc

    async def put(self, data: bytes, key: str, content_type: str = "application/octet-stream") -> str:
        normalized = _normalize_key(key)
        path = self.root / normalized
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = path.with_name(path.name + ".part")
            await asyncio.to_thread(tmp_path.write_bytes, data)
            tmp_path.replace(path)
        except OSError as exc:
            raise StorageError(f"Failed to write {key}: {exc}", key=key) from exc
        return normalized

    async def exists(self, key: str) -> bool:
        return self._path(key).is_file()

    async def download_to(self, key: str, path: Path) -> Path:
        source = self._path(key)
        if not source.is_file():
            raise StorageError(f"Object not found: {key}", key=key)
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        await asyncio.to_thread(shutil.copyfile, source, path)
        return path


class S3ObjectStore(ObjectStore):
    """S3-backed store. boto3 is blocking, so every call runs in a worker thread."""

    def __init__(self, bucket: str, region: Optional[str] = None, client=None):
        if not bucket:
            raise StorageError("S3 bucket name is required")
        self.bucket = bucket
        self._client = client or boto3.client("s3", region_name=region)

    async def get(self, key: str) -> bytes:
        normalized = _normalize_key(key)

        def _read() -> bytes:
            response = self._client.get_object(Bucket=self.bucket, Key=normalized)
            return response["Body"].read()

        try:
            return await asyncio.to_thread(_read)
        except (ClientError, BotoCoreError) as exc:
            raise StorageError(f"Failed to fetch s3://{self.bucket}/{normalized}: {exc}", key=key) from exc

    async def put(self, data: bytes, key: str, content_type: str = "application/octet-stream") -> str:
        normalized = _normalize_key(key)
        try:
            await asyncio.to_thread(
                self._client.put_object,
                Bucket=self.bucket,
                Key=normalized,
                Body=data,
                ContentType=content_type,
            )
        except (ClientError, BotoCoreError) as exc:
            raise StorageError(f"Failed to upload s3://{self.bucket}/{normalized}: {exc}", key=key) from exc
        logger.debug("Uploaded object", extra={"key": normalized, "size_bytes": len(data)})
        return normalized

    async def exists(self, key: str) -> bool:
        normalized = _normalize_key(key)
        try:
            await asyncio.to_thread(self._client.head_object, Bucket=self.bucket, Key=normalized)
            return True
        except ClientError as exc:
            code = str(exc.response.get("Error", {}).get("Code", ""))
            if code in ("404", "NoSuchKey", "NotFound"):
                return False
            raise StorageError(f"Failed to check s3://{self.bucket}/{normalized}: {exc}", key=key) from exc
        except BotoCoreError as exc:
            raise StorageError(f"Failed to check s3://{self.bucket}/{normalized}: {exc}", key=key) from exc


def create_object_store(settings) -> ObjectStore:
    if settings.storage_backend == "s3":
        return S3ObjectStore(settings.aws_bucket, settings.aws_region)
    return LocalObjectStore(settings.storage_dir)
