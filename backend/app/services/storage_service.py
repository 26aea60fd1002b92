"""
Storage Service - uploaded PDFs on local disk or S3

Keys look like ``notifications/<uuid>.pdf``; the key is what gets stored in
the database, never an absolute path.
"""

import asyncio
import uuid
from functools import wraps
from pathlib import Path
from typing import Optional

import aiofiles
import aiofiles.os
import boto3
from botocore.exceptions import ClientError

from app.core.config import settings
from app.core.exceptions import StorageError
from app.core.logging_config import logger


def retry_with_backoff(max_retries: int = 3, base_delay: float = 0.5, max_delay: float = 5.0):
    """Retry an async S3 call on transient client errors"""
    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            last_exception = None
            for attempt in range(max_retries):
                try:
                    return await func(*args, **kwargs)
                except (ConnectionError, TimeoutError) as e:
                    last_exception = e
                    if attempt < max_retries - 1:
                        delay = min(base_delay * (2 ** attempt), max_delay)
                        logger.warning(f"[S3-Retry] Attempt {attempt + 1}/{max_retries} failed: {e}. Retrying in {delay:.1f}s...")
                        await asyncio.sleep(delay)
                    else:
                        logger.error(f"[S3-Retry] All {max_retries} attempts failed: {e}")
            raise StorageError(f"Storage unavailable: {last_exception}")
        return wrapper
    return decorator


def build_key(folder: str, filename: Optional[str] = None) -> str:
    suffix = Path(filename).suffix.lower() if filename else ".pdf"
    return f"{folder}/{uuid.uuid4()}{suffix or '.pdf'}"


class StorageService:
    """Saves, reads and deletes uploaded files"""

    def __init__(self, backend: Optional[str] = None, upload_dir: Optional[str] = None):
        self.backend = backend or settings.STORAGE_BACKEND
        self.upload_dir = Path(upload_dir or settings.UPLOAD_DIR)
        self.bucket_name = settings.S3_BUCKET_NAME
        self._client = None

    def _get_client(self):
        """Lazy initialization of the S3 client"""
        if self._client is None:
            if settings.AWS_ACCESS_KEY_ID and settings.AWS_SECRET_ACCESS_KEY:
                self._client = boto3.client(
                    's3',
                    aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
                    aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
                    region_name=settings.AWS_REGION,
                    endpoint_url=settings.S3_ENDPOINT_URL,
                )
            else:
                # IAM role credentials
                self._client = boto3.client('s3', region_name=settings.AWS_REGION, endpoint_url=settings.S3_ENDPOINT_URL)
        return self._client

    def _local_path(self, key: str) -> Path:
        path = (self.upload_dir / key).resolve()
        if self.upload_dir.resolve() not in path.parents:
            raise StorageError(f"Invalid storage key: {key}")
        return path

    async def save(self, folder: str, content: bytes, filename: Optional[str] = None,
                   content_type: str = "application/pdf") -> str:
        """Store bytes and return the generated key"""
        key = build_key(folder, filename)

        if self.backend == "s3":
            await self._s3_put(key, content, content_type)
        else:
            path = self._local_path(key)
            path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(path, "wb") as f:
                await f.write(content)

        logger.info(f"[Storage] Saved {key} ({len(content)} bytes, backend={self.backend})")
        return key

    async def read(self, key: str) -> bytes:
        if self.backend == "s3":
            return await self._s3_get(key)

        path = self._local_path(key)
        if not path.exists():
            raise StorageError(f"File not found: {key}")
        async with aiofiles.open(path, "rb") as f:
            return await f.read()

    async def delete(self, key: str) -> bool:
        """Remove a stored file; a missing file is not an error"""
        try:
            if self.backend == "s3":
                await asyncio.to_thread(self._get_client().delete_object, Bucket=self.bucket_name, Key=key)
            else:
                path = self._local_path(key)
                if path.exists():
                    await aiofiles.os.remove(path)
            logger.info(f"[Storage] Deleted {key}")
            return True
        except (ClientError, OSError) as e:
            logger.error(f"[Storage] Failed to delete {key}: {e}")
            return False

    @retry_with_backoff()
    async def _s3_put(self, key: str, content: bytes, content_type: str) -> None:
        try:
            await asyncio.to_thread(
                self._get_client().put_object,
                Bucket=self.bucket_name,
                Key=key,
                Body=content,
                ContentType=content_type,
            )
        except ClientError as e:
            logger.error(f"[S3-Upload] ✗ Failed for {key}: {e}")
            raise StorageError(f"Failed to upload {key}")

    @retry_with_backoff()
    async def _s3_get(self, key: str) -> bytes:
        try:
            response = await asyncio.to_thread(
                self._get_client().get_object, Bucket=self.bucket_name, Key=key
            )
        except ClientError as e:
            if e.response.get('Error', {}).get('Code') == 'NoSuchKey':
                raise StorageError(f"File not found: {key}")
            raise StorageError(f"Failed to download {key}")
        return response['Body'].read()


storage_service = StorageService()


def get_storage() -> StorageService:
    """FastAPI dependency; overridden in tests"""
    return storage_service
