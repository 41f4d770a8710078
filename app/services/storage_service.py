"""Storage service for post images.

Images are accepted as in-memory buffers, checked against the upload rules and then
handed to a StorageBackend: local disk (served from /uploads) or an S3 bucket.
"""
import re
import secrets
import time
from dataclasses import dataclass
from pathlib import Path, PurePath
from typing import Protocol

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from starlette.datastructures import UploadFile
from starlette.concurrency import run_in_threadpool

from app.core.config import Settings
from app.core.errors import PayloadTooLarge, TooManyFiles, UnsupportedMediaType, UploadFailed

# Allowed MIME types
IMAGE_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"}

EXT_MAP = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
}

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_-]+")


def _log(msg: str, *args):
    print(f"[Storage] {msg}", *args)


def _get_ext(content_type: str, original_name: str) -> str:
    suffix = PurePath(original_name or "").suffix.lower()
    if suffix in {".jpg", ".jpeg", ".png", ".gif", ".webp"}:
        return suffix
    return EXT_MAP.get(content_type, ".jpg")


def unique_filename(original_name: str, content_type: str) -> str:
    """<stem>-<epoch ms>-<random>.<ext>, safe for URLs and object keys."""
    stem = _UNSAFE_CHARS.sub("-", PurePath(original_name or "").stem).strip("-")[:40] or "image"
    suffix = f"{int(time.time() * 1000)}-{secrets.randbelow(10**9):09d}"
    return f"{stem}-{suffix}{_get_ext(content_type, original_name)}"


class StorageBackend(Protocol):
    """Protocol for storage backends."""

    def save(self, filename: str, data: bytes, content_type: str) -> str:
        """Save file and return public URL."""
        ...

    def delete(self, url: str) -> bool:
        """Remove a file saved by this backend. Returns False for URLs it does not own."""
        ...


class LocalStorage:
    """Store files on local disk. Path: {UPLOAD_DIR}/{filename}"""

    def __init__(self, base_dir: str, base_url: str):
        self.base_dir = Path(base_dir).resolve()
        self.base_url = base_url.rstrip("/")

    def save(self, filename: str, data: bytes, content_type: str) -> str:
        self.base_dir.mkdir(parents=True, exist_ok=True)
        (self.base_dir / filename).write_bytes(data)
        return f"{self.base_url}/uploads/{filename}"

    def delete(self, url: str) -> bool:
        prefix = f"{self.base_url}/uploads/"
        if not url.startswith(prefix):
            return False
        filename = url[len(prefix):]
        if not filename or PurePath(filename).name != filename:
            return False
        (self.base_dir / filename).unlink(missing_ok=True)
        return True


class S3Storage:
    """Store files in an S3 (or MinIO) bucket under a key prefix."""

    def __init__(self, client, bucket: str, prefix: str, public_base_url: str):
        self.s3 = client
        self.bucket = bucket
        self.prefix = prefix.strip("/")
        self.public_base_url = public_base_url.rstrip("/")

    @classmethod
    def from_settings(cls, settings: Settings) -> "S3Storage":
        client = boto3.client(
            "s3",
            endpoint_url=settings.S3_ENDPOINT_URL,
            aws_access_key_id=settings.S3_ACCESS_KEY,
            aws_secret_access_key=settings.S3_SECRET_KEY,
            region_name=settings.S3_REGION,
            config=Config(
                signature_version="s3v4",
                connect_timeout=settings.UPLOAD_TIMEOUT_SECONDS,
                read_timeout=settings.UPLOAD_TIMEOUT_SECONDS,
                # A failed upload fails the request; no automatic retries
                retries={"total_max_attempts": 1, "mode": "standard"},
            ),
        )
        if settings.S3_PUBLIC_BASE_URL:
            public_base_url = settings.S3_PUBLIC_BASE_URL
        elif settings.S3_ENDPOINT_URL:
            public_base_url = f"{settings.S3_ENDPOINT_URL.rstrip('/')}/{settings.S3_BUCKET_MEDIA}"
        else:
            public_base_url = f"https://{settings.S3_BUCKET_MEDIA}.s3.{settings.S3_REGION}.amazonaws.com"
        return cls(client, settings.S3_BUCKET_MEDIA, settings.S3_KEY_PREFIX, public_base_url)

    def save(self, filename: str, data: bytes, content_type: str) -> str:
        key = f"{self.prefix}/{filename}" if self.prefix else filename
        try:
            self.s3.put_object(Bucket=self.bucket, Key=key, Body=data, ContentType=content_type)
        except (BotoCoreError, ClientError) as e:
            _log("S3 upload error:", e)
            raise UploadFailed("Image upload failed") from e
        return f"{self.public_base_url}/{key}"

    def delete(self, url: str) -> bool:
        prefix = f"{self.public_base_url}/"
        if not url.startswith(prefix):
            return False
        key = url[len(prefix):]
        try:
            self.s3.delete_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as e:
            _log("S3 delete error:", e)
            raise UploadFailed("Image delete failed") from e
        return True


def build_storage(settings: Settings) -> StorageBackend:
    if settings.STORAGE_BACKEND == "s3":
        return S3Storage.from_settings(settings)
    return LocalStorage(settings.UPLOAD_DIR, settings.MEDIA_BASE_URL)


@dataclass
class ImageFile:
    """An uploaded image held in memory."""
    data: bytes
    filename: str
    content_type: str


class ImageUploader:
    """Validates image uploads and relays them to the storage backend."""

    def __init__(self, backend: StorageBackend, max_size_mb: int = 5, max_files: int = 5):
        self.backend = backend
        self.max_size_mb = max_size_mb
        self.max_files = max_files

    @classmethod
    def from_settings(cls, settings: Settings) -> "ImageUploader":
        return cls(build_storage(settings), settings.MAX_UPLOAD_SIZE_MB, settings.MAX_UPLOAD_FILES)

    @property
    def max_bytes(self) -> int:
        return self.max_size_mb * 1024 * 1024

    def validate(self, data: bytes, content_type: str) -> None:
        if content_type not in IMAGE_TYPES:
            raise UnsupportedMediaType(f"Invalid file type: {content_type or 'unknown'}. Only jpg, png, gif, webp images are allowed")
        if len(data) > self.max_bytes:
            raise PayloadTooLarge(f"File too large. Max {self.max_size_mb}MB per image")

    async def admit(self, files: list[UploadFile]) -> list[ImageFile]:
        """Read and check every file before any of them is stored."""
        if len(files) > self.max_files:
            raise TooManyFiles(f"Maximum {self.max_files} images per post")
        images: list[ImageFile] = []
        for f in files:
            content_type = f.content_type or ""
            if content_type not in IMAGE_TYPES:
                raise UnsupportedMediaType(f"Invalid file type: {content_type or 'unknown'}. Only jpg, png, gif, webp images are allowed")
            if f.size is not None and f.size > self.max_bytes:
                raise PayloadTooLarge(f"File too large. Max {self.max_size_mb}MB per image")
            # One byte past the limit is enough to reject the part
            data = await f.read(self.max_bytes + 1)
            self.validate(data, content_type)
            images.append(ImageFile(data=data, filename=f.filename or "image", content_type=content_type))
        return images

    async def store(self, data: bytes, original_name: str, mime_type: str) -> str:
        self.validate(data, mime_type)
        filename = unique_filename(original_name, mime_type)
        try:
            url = await run_in_threadpool(self.backend.save, filename, data, mime_type)
        except UploadFailed:
            raise
        except OSError as e:
            _log("Write failed:", e)
            raise UploadFailed("Image upload failed") from e
        _log("Stored", filename)
        return url

    async def store_all(self, images: list[ImageFile]) -> list[str]:
        urls: list[str] = []
        try:
            for img in images:
                urls.append(await self.store(img.data, img.filename, img.content_type))
        except UploadFailed:
            await self.discard(urls)
            raise
        return urls

    async def discard(self, urls: list[str]) -> None:
        """Remove stored images. URLs the backend does not own are left alone."""
        for url in urls:
            try:
                removed = await run_in_threadpool(self.backend.delete, url)
            except (OSError, UploadFailed) as e:
                _log("Could not remove", url, e)
                continue
            if removed:
                _log("Removed", url)
