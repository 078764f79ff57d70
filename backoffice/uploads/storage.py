"""
Public blob storage on S3 for signatures, watermark images and property media.

Every write returns the public URL of the stored object, or None when the
store is unavailable or the upload failed. Callers treat None as "no asset".
"""

from __future__ import annotations

import io
import threading
import uuid
from typing import Optional
from urllib.parse import urlparse

import boto3
import requests
from botocore.exceptions import BotoCoreError, ClientError
from django.conf import settings
from PIL import Image, UnidentifiedImageError

from core.logging_utils import get_uploads_logger

logger = get_uploads_logger()

MAX_IMAGE_SIZE = (1920, 1080)
UPLOAD_JPEG_QUALITY = 80


class BlobStoreError(Exception):
    """Raised when a remote object cannot be fetched or transformed."""


def _to_jpeg(image: Image.Image, quality: int) -> bytes:
    if image.mode not in ('RGB', 'L'):
        image = image.convert('RGB')
    buffer = io.BytesIO()
    image.save(buffer, format='JPEG', quality=quality, optimize=True)
    return buffer.getvalue()


def optimize_image(data: bytes, max_size=MAX_IMAGE_SIZE, quality: int = UPLOAD_JPEG_QUALITY) -> bytes:
    """Fit an image inside ``max_size`` without enlarging it and re-encode as JPEG."""
    with Image.open(io.BytesIO(data)) as image:
        image.load()
        image.thumbnail(max_size)
        return _to_jpeg(image, quality)


def resize_to_width(data: bytes, width: int, quality: int) -> bytes:
    """Scale an image down to ``width`` keeping its aspect ratio, as JPEG."""
    with Image.open(io.BytesIO(data)) as image:
        image.load()
        if image.width > width:
            height = max(1, round(image.height * width / image.width))
            image = image.resize((width, height), Image.LANCZOS)
        return _to_jpeg(image, quality)


def key_from_url(url: str) -> str:
    """Objects live at the bucket root, so the key is the last path segment."""
    return urlparse(url).path.rstrip('/').split('/')[-1]


class S3BlobStore:
    """Blob store backed by a single public-read S3 bucket."""

    def __init__(self, bucket: str, region: str, client=None, *, timeout: float = 10.0):
        self.bucket = bucket
        self.region = region
        self.client = client
        self.timeout = timeout

    @classmethod
    def from_settings(cls) -> 'S3BlobStore':
        region = getattr(settings, 'AWS_REGION', '')
        access_key = getattr(settings, 'AWS_ACCESS_KEY_ID', '')
        secret_key = getattr(settings, 'AWS_SECRET_ACCESS_KEY', '')
        bucket = getattr(settings, 'AWS_BUCKET_NAME', '')
        timeout = getattr(settings, 'REMOTE_FETCH_TIMEOUT', 10.0)

        if not (region and access_key and secret_key and bucket):
            logger.warning("AWS S3 credentials not configured. Uploads will be skipped.")
            return cls(bucket, region, None, timeout=timeout)

        client = boto3.client(
            's3',
            region_name=region,
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
        )
        logger.info("AWS S3 client initialized", extra_data={'bucket': bucket, 'region': region})
        return cls(bucket, region, client, timeout=timeout)

    @property
    def is_configured(self) -> bool:
        return self.client is not None

    def public_url(self, key: str) -> str:
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"

    def store(self, data: bytes, content_type: str, filename: str = '') -> Optional[str]:
        """
        Upload ``data`` under a fresh random key.

        Images are shrunk to fit 1920x1080 and stored as JPEG; if that fails the
        original bytes are uploaded instead. Returns the public URL, or None.
        """
        if not self.is_configured:
            logger.warning("Skipping S3 upload - AWS not configured")
            return None

        content_type = content_type or 'application/octet-stream'
        extension = filename.rsplit('.', 1)[-1].lower() if '.' in filename else 'bin'

        if content_type.startswith('image/'):
            try:
                data = optimize_image(data)
                content_type = 'image/jpeg'
            except (UnidentifiedImageError, OSError, ValueError) as exc:
                logger.warning(f"Image optimization failed, uploading original: {exc}")

        key = f"{uuid.uuid4()}.{extension}"
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
                ACL='public-read',
            )
        except (BotoCoreError, ClientError) as exc:
            logger.upstream_failure('s3', "Failed to upload file", extra_data={'key': key, 'error': str(exc)})
            return None

        url = self.public_url(key)
        logger.info(f"File uploaded successfully: {url}")
        return url

    def upload_file(self, uploaded) -> Optional[str]:
        """Store a Django ``UploadedFile``."""
        return self.store(
            uploaded.read(),
            getattr(uploaded, 'content_type', '') or '',
            getattr(uploaded, 'name', '') or '',
        )

    def delete(self, url: str) -> None:
        """Remove the object behind ``url``. Failures are logged, never raised."""
        if not self.is_configured or not url:
            return
        key = key_from_url(url)
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as exc:
            logger.upstream_failure('s3', "Failed to delete file", extra_data={'key': key, 'error': str(exc)})
            return
        logger.info(f"File deleted successfully: {key}")

    def fetch(self, url: str) -> bytes:
        """Download a remote object. Raises BlobStoreError on any failure."""
        try:
            response = requests.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise BlobStoreError(f"Failed to fetch {url}: {exc}") from exc
        return response.content

    def get_optimized_image(self, url: str, width: int = 300, quality: int = 20) -> bytes:
        """Fetch a remote image and return a width-limited JPEG thumbnail."""
        try:
            return resize_to_width(self.fetch(url), width, quality)
        except (BlobStoreError, UnidentifiedImageError, OSError, ValueError) as exc:
            logger.upstream_failure('image-optimizer', f"Failed to optimize external image: {url}",
                                    extra_data={'error': str(exc)}, exc_info=False)
            raise BlobStoreError('Failed to fetch/optimize image') from exc


_blob_store: Optional[S3BlobStore] = None
_blob_store_lock = threading.Lock()


def get_blob_store() -> S3BlobStore:
    """Return the process-wide blob store built from settings."""
    global _blob_store
    if _blob_store is None:
        with _blob_store_lock:
            if _blob_store is None:
                _blob_store = S3BlobStore.from_settings()
    return _blob_store


def reset_blob_store() -> None:
    global _blob_store
    with _blob_store_lock:
        _blob_store = None
